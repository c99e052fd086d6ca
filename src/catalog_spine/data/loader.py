"""
Dependency loader: wires cross-entity references for a batch.

Given freshly materialized categories, products or properties, the loader
runs a fixed sequence of batched lookups (never one round trip per entity):

1. distinct catalog ids across the batch, nested links and properties
   included → one catalog fetch → id map
2. distinct category ids → one category fetch (products) or the preloaded
   category map (categories, which would otherwise recurse into themselves)
3. every image: ``relative_url`` defaults to the stored url, ``url`` is
   resolved to an absolute url
4. wire catalog / category / parent / link references from the maps

A reference that does not resolve raises :class:`ResolutionError` naming the
field, the id and the owner; callers never receive half-wired objects.

The loader discovers ids through the capability protocols
(:class:`HasCatalogId`, :class:`HasCategoryId`, :class:`HasImages`) rather
than concrete types.

Tags:
    loader, dependencies, batching, references, ancestors
"""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

from catalog_spine.core.errors import CyclicHierarchyError, ResolutionError
from catalog_spine.core.logging import get_logger
from catalog_spine.core.protocols import SkuGenerator, UrlResolver
from catalog_spine.domain.models import (
    Catalog,
    CatalogProduct,
    Category,
    HasCatalogId,
    HasCategoryId,
    HasImages,
    Property,
    iter_flat,
)
from catalog_spine.domain.response_groups import CategoryResponseGroup

logger = get_logger(__name__)

T = TypeVar("T")

CatalogFetcher = Callable[[list[str]], Awaitable[list[Catalog]]]
CategoryFetcher = Callable[[list[str]], Awaitable[list[Category]]]

# Detail kept on categories referenced by product links
LINK_CATEGORY_GROUP = (
    CategoryResponseGroup.INFO | CategoryResponseGroup.WITH_PROPERTIES | CategoryResponseGroup.WITH_PARENTS
)


def index_by_id(items: Iterable[T]) -> dict[str, T]:
    """Map entities by lower-cased id."""
    return {item.id.lower(): item for item in items if item.id is not None}


def require(mapping: Mapping[str, T], entity_id: str | None, field: str, owner_id: str | None) -> T:
    if entity_id is None:
        raise ResolutionError(field, "<none>", owner_id=owner_id, message=f"{field} is not set on {owner_id}")
    found = mapping.get(entity_id.lower())
    if found is None:
        raise ResolutionError(field, entity_id, owner_id=owner_id)
    return found


def collect_ids(objects: Iterable[Any], capability: type, attribute: str) -> list[str]:
    """Distinct non-null ids of ``attribute`` over objects with ``capability``, first-seen order."""
    seen: dict[str, str] = {}
    for obj in iter_flat(objects):
        if not isinstance(obj, capability):
            continue
        value = getattr(obj, attribute)
        if value is not None:
            seen.setdefault(value.lower(), value)
    return list(seen.values())


def get_ancestors(category: Category, categories_by_id: Mapping[str, Category]) -> list[Category]:
    """Ancestor chain of ``category``, root first.

    Raises:
        CyclicHierarchyError: the chain revisits a category.
        ResolutionError: a parent id is not in ``categories_by_id``.
    """
    chain: list[Category] = []
    visited = {(category.id or "").lower()}
    parent_id = category.parent_id
    while parent_id is not None:
        key = parent_id.lower()
        if key in visited:
            raise CyclicHierarchyError(category.id or "<new>", [c.id for c in reversed(chain)])
        visited.add(key)
        owner = chain[-1].id if chain else category.id
        parent = require(categories_by_id, parent_id, "parent category", owner)
        chain.append(parent)
        parent_id = parent.parent_id
    chain.reverse()
    return chain


class DependencyLoader:
    """Batch reference wiring for one service.

    Parameters:
        fetch_catalogs: async ``ids -> catalogs`` lookup (usually the cached catalog service)
        url_resolver: turns stored image urls into absolute urls (images untouched when None)
        fetch_categories: async ``ids -> categories`` lookup, needed for products
        sku_generator: fills empty product codes
    """

    def __init__(
        self,
        fetch_catalogs: CatalogFetcher,
        url_resolver: UrlResolver | None = None,
        *,
        fetch_categories: CategoryFetcher | None = None,
        sku_generator: SkuGenerator | None = None,
    ) -> None:
        self._fetch_catalogs = fetch_catalogs
        self._fetch_categories = fetch_categories
        self._url_resolver = url_resolver
        self._sku_generator = sku_generator

    async def _catalogs_by_id(self, objects: list[Any]) -> dict[str, Catalog]:
        ids = collect_ids(objects, HasCatalogId, "catalog_id")
        return index_by_id(await self._fetch_catalogs(ids)) if ids else {}

    def resolve_images(self, objects: list[Any]) -> None:
        for obj in iter_flat(objects):
            if not isinstance(obj, HasImages):
                continue
            for image in obj.images:
                if not image.url or self._url_resolver is None:
                    continue
                image.relative_url = image.relative_url or image.url
                image.url = self._url_resolver.get_absolute_url(image.url)

    # ── categories ────────────────────────────────────────────────────

    async def load_categories(
        self,
        categories: list[Category],
        preloaded: Mapping[str, Category],
    ) -> None:
        """Wire categories against the preloaded id → category map."""
        catalogs = await self._catalogs_by_id(categories)
        self.resolve_images(categories)

        for category in categories:
            category.catalog = require(catalogs, category.catalog_id, "catalog", category.id)
            category.is_virtual = category.catalog.is_virtual
            category.parents = get_ancestors(category, preloaded)
            category.parent = category.parents[-1] if category.parents else None
            category.level = len(category.parents)

            for link in category.links:
                link.catalog = require(catalogs, link.catalog_id, "link catalog", category.id)
                if link.category_id is not None:
                    link.category = require(preloaded, link.category_id, "link category", category.id)

            self._wire_properties(category.properties, catalogs, preloaded, category.id)

    # ── products ──────────────────────────────────────────────────────

    async def load_products(self, products: list[CatalogProduct]) -> None:
        catalogs = await self._catalogs_by_id(products)

        categories: dict[str, Category] = {}
        category_ids = collect_ids(products, HasCategoryId, "category_id")
        if category_ids:
            if self._fetch_categories is None:
                raise RuntimeError("DependencyLoader needs fetch_categories to load products")
            categories = index_by_id(await self._fetch_categories(category_ids))

        self.resolve_images(products)

        for product in products:
            self._set_product_dependencies(product, catalogs, categories)
            if product.main_product is not None:
                self._set_product_dependencies(product.main_product, catalogs, categories)
            for variation in product.variations:
                self._set_product_dependencies(variation, catalogs, categories)

        logger.debug("products.dependencies_loaded", products=len(products), catalogs=len(catalogs),
                     categories=len(categories))

    def _set_product_dependencies(
        self,
        product: CatalogProduct,
        catalogs: Mapping[str, Catalog],
        categories: Mapping[str, Category],
    ) -> None:
        if not product.code and self._sku_generator is not None:
            product.code = self._sku_generator.generate_sku(product)

        product.catalog = require(catalogs, product.catalog_id, "catalog", product.id)
        if product.category_id is not None:
            product.category = require(categories, product.category_id, "category", product.id)

        for link in product.links:
            link.catalog = require(catalogs, link.catalog_id, "link catalog", product.id)
            if link.category_id:
                target = copy.deepcopy(require(categories, link.category_id, "link category", product.id))
                target.reduce_details(LINK_CATEGORY_GROUP)
                link.category = target

        self._wire_properties(product.properties, catalogs, categories, product.id)

    # ── properties ────────────────────────────────────────────────────

    async def load_properties(self, properties: list[Property]) -> None:
        catalogs = await self._catalogs_by_id(properties)
        for prop in properties:
            prop.catalog = require(catalogs, prop.catalog_id, "catalog", prop.id or prop.name)

    @staticmethod
    def _wire_properties(
        properties: list[Property],
        catalogs: Mapping[str, Catalog],
        categories: Mapping[str, Category],
        owner_id: str | None,
    ) -> None:
        for prop in properties:
            if prop.catalog_id is not None:
                prop.catalog = require(catalogs, prop.catalog_id, "property catalog", owner_id)
            if prop.category_id is not None:
                prop.category = categories.get(prop.category_id.lower())


__all__ = [
    "DependencyLoader",
    "get_ancestors",
    "collect_ids",
    "index_by_id",
    "require",
    "LINK_CATEGORY_GROUP",
]
