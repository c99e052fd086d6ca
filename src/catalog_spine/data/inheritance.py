"""
Inheritance resolution down the catalog → category → product → variation chain.

A child keeps every value it sets explicitly; anything unset falls back to
the parent's already-resolved value. Sources, most specific first:

- category ← parent category, else catalog
- product ← category, else catalog
- variation (product with a main product) ← main product ← its category / catalog

Categories must be resolved shallowest first so every parent is complete
before its children read from it; :meth:`InheritanceResolver.apply_to_categories`
sorts by ``level`` for that reason.

Applying inheritance twice yields the same graph as applying it once:
property definitions are matched rather than appended, and inherited
images, reviews and values are only copied into empty slots.

Tags:
    inheritance, properties, variations, display-names
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from catalog_spine.core.logging import get_logger
from catalog_spine.domain.models import (
    Catalog,
    CatalogProduct,
    Category,
    HasProperties,
    Property,
    PropertyDisplayName,
    PropertyType,
    Variation,
)

logger = get_logger(__name__)

# Product- and variation-level definitions describe the same property
_PRODUCT_LEVEL = (PropertyType.PRODUCT, PropertyType.VARIATION)


def inherit_property(target: Property, source: Property) -> None:
    """Take the parent's definition, keep the target's own values."""
    target.id = target.id or source.id
    target.catalog_id = source.catalog_id
    target.category_id = source.category_id
    target.name = source.name
    target.type = source.type
    target.value_type = source.value_type
    target.required = source.required
    target.dictionary = source.dictionary
    target.multivalue = source.multivalue
    target.multilanguage = source.multilanguage
    target.display_names = [replace(d) for d in source.display_names]
    target.dictionary_values = [replace(v) for v in source.dictionary_values]
    target.catalog = source.catalog
    target.category = source.category
    target.is_inherited = True


def normalize_display_names(properties: Iterable[Property]) -> None:
    """Make display names match the owning catalog's languages exactly.

    Names in languages the catalog declares are kept as they are; missing
    catalog languages get a blank entry; other languages are dropped.
    Properties whose catalog is not wired are left alone.
    """
    for prop in properties:
        if prop.catalog is None:
            continue
        languages = prop.catalog.language_codes
        valid = {code.lower() for code in languages}

        kept: list[PropertyDisplayName] = []
        present: set[str] = set()
        for display_name in prop.display_names:
            code = display_name.language_code.lower()
            if code in valid and code not in present:
                kept.append(display_name)
                present.add(code)
        for code in languages:
            if code.lower() not in present:
                kept.append(PropertyDisplayName(language_code=code))
                present.add(code.lower())
        prop.display_names = kept


class InheritanceResolver:
    """Merges inherited attributes into loaded categories and products."""

    def apply_to_categories(self, categories: Iterable[Category]) -> None:
        ordered = sorted(categories, key=lambda c: c.level)
        for category in ordered:
            self.inherit_category(category, category.parent or category.catalog)
        logger.debug("inheritance.categories_applied", categories=len(ordered))

    def apply_to_products(self, products: Iterable[CatalogProduct]) -> None:
        for product in products:
            main_product = product.main_product
            if main_product is not None:
                # The main product must be complete before the variation reads from it
                self.inherit_product(main_product, main_product.category or main_product.catalog)
                self.inherit_product(product, main_product)
            else:
                self.inherit_product(product, product.category or product.catalog)

    # ── categories ────────────────────────────────────────────────────

    def inherit_category(self, category: Category, parent: Category | Catalog | None) -> None:
        if parent is None:
            return
        self._inherit_properties(category, parent, editable=(PropertyType.CATEGORY,))
        if isinstance(parent, Category):
            category.tax_type = category.tax_type or parent.tax_type

    # ── products ──────────────────────────────────────────────────────

    def inherit_product(self, product: CatalogProduct, parent: Any) -> None:
        if parent is None:
            return

        if isinstance(parent, CatalogProduct):
            self._inherit_from_product(product, parent)
        elif isinstance(parent, HasProperties):
            self._inherit_properties(product, parent, editable=_PRODUCT_LEVEL)
            if isinstance(parent, Category):
                product.tax_type = product.tax_type or parent.tax_type

        for variation in product.variations:
            self.inherit_product(variation, product)

    def _inherit_from_product(self, product: CatalogProduct, parent: CatalogProduct) -> None:
        if not product.images and parent.images:
            product.images = [replace(image, is_inherited=True) for image in parent.images]

        # A variation listed under its main product does not repeat the reviews
        if not isinstance(product, Variation) and not product.reviews and parent.reviews:
            product.reviews = [replace(review, is_inherited=True) for review in parent.reviews]

        # Only variation-level properties stay editable below the main product
        self._inherit_properties(product, parent, editable=(PropertyType.VARIATION,))
        for parent_property in parent.properties:
            if not parent_property.values:
                continue
            existing = self._find_same(product.properties, parent_property)
            if existing is not None and not existing.values:
                existing.values = [replace(value, is_inherited=True) for value in parent_property.values]

        for name in CatalogProduct.INHERITABLE_FIELDS:
            if getattr(product, name) is None:
                setattr(product, name, getattr(parent, name))

    # ── shared ────────────────────────────────────────────────────────

    @staticmethod
    def _find_same(properties: list[Property], other: Property) -> Property | None:
        for prop in properties:
            if prop.is_same(other, *_PRODUCT_LEVEL):
                return prop
        return None

    def _inherit_properties(
        self,
        child: Category | CatalogProduct,
        parent: Any,
        editable: tuple[PropertyType, ...],
    ) -> None:
        for parent_property in parent.properties:
            existing = self._find_same(child.properties, parent_property)
            if existing is None:
                existing = Property()
                child.properties.append(existing)
            inherit_property(existing, parent_property)
            existing.is_read_only = existing.type not in editable
        child.properties.sort(key=_property_sort_key)


def _property_sort_key(prop: Property) -> str:
    return (prop.name or "").lower()


__all__ = ["InheritanceResolver", "inherit_property", "normalize_display_names"]
