"""
Outline building: breadcrumb paths from a catalog root down to an entity.

Every category or product gets one physical outline (its own catalog, the
ancestor categories, the entity) plus one outline per link into another
catalog or category. Variations reuse their main product's outlines with
the variation appended.

Example::

    builder = OutlineBuilder()
    builder.fill_outlines(categories, catalog_id="electronics")
    categories[0].outlines[0].path   # "electronics/audio/headphones"
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from catalog_spine.domain.models import (
    Catalog,
    CatalogProduct,
    Category,
    CategoryLink,
    Outline,
    OutlineItem,
)

SEO_CATALOG = "Catalog"
SEO_CATEGORY = "Category"
SEO_PRODUCT = "CatalogProduct"


def _catalog_item(catalog: Catalog) -> OutlineItem:
    return OutlineItem(id=catalog.id, seo_object_type=SEO_CATALOG, name=catalog.name)


def _category_item(category: Category, virtual: bool = False) -> OutlineItem:
    return OutlineItem(id=category.id, seo_object_type=SEO_CATEGORY, name=category.name, has_virtual_parent=virtual)


def _entity_item(entity: Any, virtual: bool = False) -> OutlineItem:
    if isinstance(entity, Category):
        return _category_item(entity, virtual)
    return OutlineItem(id=entity.id, seo_object_type=SEO_PRODUCT, name=entity.name, has_virtual_parent=virtual)


class OutlineBuilder:
    """Computes ``outlines`` for wired categories and products."""

    def fill_outlines(self, objects: Iterable[Any], catalog_id: str | None = None) -> None:
        for obj in objects:
            if isinstance(obj, Category):
                obj.outlines = self._filter(self.category_outlines(obj), catalog_id)
            elif isinstance(obj, CatalogProduct):
                obj.outlines = self._filter(self.product_outlines(obj), catalog_id)
                for variation in obj.variations:
                    variation.outlines = [self._extend(outline, variation) for outline in obj.outlines]

    def category_outlines(self, category: Category) -> list[Outline]:
        outlines = []
        if category.catalog is not None:
            items = [_catalog_item(category.catalog)]
            items.extend(_category_item(parent) for parent in category.parents)
            items.append(_category_item(category))
            outlines.append(Outline(items))
        outlines.extend(self._link_outlines(category, category.links))
        return outlines

    def product_outlines(self, product: CatalogProduct) -> list[Outline]:
        if product.main_product is not None:
            return [self._extend(outline, product) for outline in self.product_outlines(product.main_product)]

        outlines = []
        if product.catalog is not None:
            items = [_catalog_item(product.catalog)]
            if product.category is not None:
                items.extend(_category_item(parent) for parent in product.category.parents)
                items.append(_category_item(product.category))
            items.append(_entity_item(product))
            outlines.append(Outline(items))
        outlines.extend(self._link_outlines(product, product.links))
        return outlines

    @staticmethod
    def _link_outlines(entity: Any, links: list[CategoryLink]) -> list[Outline]:
        outlines = []
        for link in links:
            if link.catalog is None:
                continue
            items = [_catalog_item(link.catalog)]
            if link.category is not None:
                items.extend(_category_item(parent) for parent in link.category.parents)
                items.append(_category_item(link.category))
            items.append(_entity_item(entity, virtual=link.catalog.is_virtual))
            outlines.append(Outline(items))
        return outlines

    @staticmethod
    def _extend(outline: Outline, entity: Any) -> Outline:
        return Outline([*outline.items, _entity_item(entity)])

    @staticmethod
    def _filter(outlines: list[Outline], catalog_id: str | None) -> list[Outline]:
        if not catalog_id:
            return outlines
        wanted = catalog_id.lower()
        return [o for o in outlines if o.items and (o.items[0].id or "").lower() == wanted]


__all__ = ["OutlineBuilder", "SEO_CATALOG", "SEO_CATEGORY", "SEO_PRODUCT"]
