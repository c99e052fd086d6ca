"""
Catalog domain models.

Rich in-memory objects produced by the materializer and wired by the
dependency loader. Persisted shapes live in :mod:`catalog_spine.domain.records`;
these models add the computed parts (ancestor chains, levels, resolved
references, inherited properties, outlines).

Reference fields (``catalog``, ``category``, ``parent``, ``parents``,
``main_product``) are non-owning: they point at objects resolved by id and
are excluded from equality and repr. Owned children are reported by
``iter_nested()`` so the loader can walk a batch without knowing the
concrete types.

Tags:
    domain, catalog, category, product, property, inheritance
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from catalog_spine.domain.response_groups import CategoryResponseGroup, ItemResponseGroup


# ── Capabilities ─────────────────────────────────────────────────────────


@runtime_checkable
class HasCatalogId(Protocol):
    catalog_id: str | None


@runtime_checkable
class HasCategoryId(Protocol):
    category_id: str | None


@runtime_checkable
class HasImages(Protocol):
    images: list[Image]


@runtime_checkable
class HasProperties(Protocol):
    properties: list[Property]


@runtime_checkable
class HasLinks(Protocol):
    links: list[CategoryLink]


@runtime_checkable
class HasOutlines(Protocol):
    outlines: list[Outline]


class Entity:
    """Mixin for id-bearing models."""

    id: str | None

    def is_transient(self) -> bool:
        return self.id is None

    def iter_nested(self) -> Iterator[Any]:
        """Owned child objects (not references)."""
        return iter(())


# ── Value parts ──────────────────────────────────────────────────────────


@dataclass
class Image(Entity):
    id: str | None = None
    url: str | None = None
    relative_url: str | None = None
    name: str | None = None
    group_name: str | None = None
    language_code: str | None = None
    sort_order: int = 0
    is_inherited: bool = False


@dataclass
class EditorialReview(Entity):
    id: str | None = None
    content: str | None = None
    review_type: str | None = None
    language_code: str | None = None
    is_inherited: bool = False


@dataclass
class CatalogLanguage:
    language_code: str
    is_default: bool = False


@dataclass
class OutlineItem:
    id: str
    seo_object_type: str
    name: str | None = None
    has_virtual_parent: bool = False


@dataclass
class Outline:
    items: list[OutlineItem] = field(default_factory=list)

    @property
    def path(self) -> str:
        return "/".join(item.id for item in self.items)


# ── Properties ───────────────────────────────────────────────────────────


class PropertyType(str, Enum):
    CATALOG = "Catalog"
    CATEGORY = "Category"
    PRODUCT = "Product"
    VARIATION = "Variation"


class PropertyValueType(str, Enum):
    SHORT_TEXT = "ShortText"
    LONG_TEXT = "LongText"
    NUMBER = "Number"
    INTEGER = "Integer"
    BOOLEAN = "Boolean"
    DATE_TIME = "DateTime"


@dataclass
class PropertyDisplayName:
    language_code: str
    name: str | None = None


@dataclass
class PropertyDictionaryValue(Entity):
    id: str | None = None
    property_id: str | None = None
    alias: str | None = None
    value: str | None = None
    language_code: str | None = None


@dataclass
class PropertyValue(Entity):
    id: str | None = None
    property_id: str | None = None
    property_name: str | None = None
    value: Any = None
    alias: str | None = None
    language_code: str | None = None
    value_type: PropertyValueType = PropertyValueType.SHORT_TEXT
    is_inherited: bool = False


@dataclass
class Property(Entity):
    """A property definition, optionally carrying an entity's values for it."""

    id: str | None = None
    catalog_id: str | None = None
    category_id: str | None = None
    name: str | None = None
    type: PropertyType = PropertyType.PRODUCT
    value_type: PropertyValueType = PropertyValueType.SHORT_TEXT
    required: bool = False
    dictionary: bool = False
    multivalue: bool = False
    multilanguage: bool = False
    display_names: list[PropertyDisplayName] = field(default_factory=list)
    dictionary_values: list[PropertyDictionaryValue] = field(default_factory=list)
    values: list[PropertyValue] = field(default_factory=list)
    is_inherited: bool = False
    is_read_only: bool = False

    catalog: Catalog | None = field(default=None, repr=False, compare=False)
    category: Category | None = field(default=None, repr=False, compare=False)

    def is_same(self, other: Property, *types: PropertyType) -> bool:
        """Same property: equal ids, or equal names (case-insensitive) with a compatible type.

        ``types`` lists property types treated as interchangeable (e.g. a
        product-level and a variation-level definition of one property).
        """
        if self.id is not None and other.id is not None and self.id == other.id:
            return True
        if not self.name or not other.name or self.name.lower() != other.name.lower():
            return False
        if self.type == other.type:
            return True
        return self.type in types and other.type in types

    def iter_nested(self) -> Iterator[Any]:
        yield from self.values


# ── Aggregates ───────────────────────────────────────────────────────────


@dataclass
class Catalog(Entity):
    id: str | None = None
    name: str | None = None
    is_virtual: bool = False
    languages: list[CatalogLanguage] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)

    @property
    def default_language(self) -> CatalogLanguage | None:
        for language in self.languages:
            if language.is_default:
                return language
        return self.languages[0] if self.languages else None

    @property
    def language_codes(self) -> list[str]:
        return [language.language_code for language in self.languages]

    def iter_nested(self) -> Iterator[Any]:
        yield from self.properties


@dataclass
class CategoryLink(Entity):
    """Placement of a category or product in another catalog / category."""

    id: str | None = None
    catalog_id: str | None = None
    category_id: str | None = None
    entry_id: str | None = None
    priority: int = 0

    catalog: Catalog | None = field(default=None, repr=False, compare=False)
    category: Category | None = field(default=None, repr=False, compare=False)


@dataclass
class Category(Entity):
    id: str | None = None
    catalog_id: str | None = None
    parent_id: str | None = None
    code: str | None = None
    name: str | None = None
    priority: int = 0
    tax_type: str | None = None
    is_active: bool = True
    is_virtual: bool = False
    level: int = 0
    images: list[Image] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    links: list[CategoryLink] = field(default_factory=list)
    outlines: list[Outline] = field(default_factory=list)

    catalog: Catalog | None = field(default=None, repr=False, compare=False)
    parent: Category | None = field(default=None, repr=False, compare=False)
    parents: list[Category] = field(default_factory=list, repr=False, compare=False)
    # Set by reduce_details; None means every part is loaded
    response_group: CategoryResponseGroup | None = field(default=None, repr=False, compare=False)

    def iter_nested(self) -> Iterator[Any]:
        yield from self.properties
        yield from self.links
        yield from self.images

    def reduce_details(self, group: CategoryResponseGroup) -> None:
        self.response_group = group
        if CategoryResponseGroup.WITH_IMAGES not in group:
            self.images = []
        if CategoryResponseGroup.WITH_PROPERTIES not in group:
            self.properties = []
        if CategoryResponseGroup.WITH_LINKS not in group:
            self.links = []
        if CategoryResponseGroup.WITH_PARENTS not in group:
            self.parents = []
        if CategoryResponseGroup.WITH_OUTLINES not in group:
            self.outlines = []


@dataclass
class CatalogProduct(Entity):
    id: str | None = None
    catalog_id: str | None = None
    category_id: str | None = None
    main_product_id: str | None = None
    code: str | None = None
    name: str | None = None
    product_type: str | None = None
    tax_type: str | None = None
    vendor: str | None = None
    manufacturer_part_number: str | None = None
    gtin: str | None = None
    weight: float | None = None
    weight_unit: str | None = None
    height: float | None = None
    length: float | None = None
    width: float | None = None
    measure_unit: str | None = None
    package_type: str | None = None
    is_active: bool = True
    is_buyable: bool = True
    priority: int = 0
    images: list[Image] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    links: list[CategoryLink] = field(default_factory=list)
    reviews: list[EditorialReview] = field(default_factory=list)
    variations: list[Variation] = field(default_factory=list)
    outlines: list[Outline] = field(default_factory=list)

    catalog: Catalog | None = field(default=None, repr=False, compare=False)
    category: Category | None = field(default=None, repr=False, compare=False)
    main_product: CatalogProduct | None = field(default=None, repr=False, compare=False)
    response_group: ItemResponseGroup | None = field(default=None, repr=False, compare=False)

    # Scalars a product takes from its main product when unset
    INHERITABLE_FIELDS = (
        "tax_type",
        "vendor",
        "manufacturer_part_number",
        "weight",
        "weight_unit",
        "height",
        "length",
        "width",
        "measure_unit",
        "package_type",
    )

    @property
    def is_variation(self) -> bool:
        return self.main_product_id is not None

    def iter_nested(self) -> Iterator[Any]:
        if self.main_product is not None:
            yield self.main_product
        yield from self.variations
        yield from self.properties
        yield from self.links
        yield from self.images
        yield from self.reviews

    def reduce_details(self, group: ItemResponseGroup) -> None:
        self.response_group = group
        if ItemResponseGroup.ITEM_ASSETS not in group:
            self.images = []
        if ItemResponseGroup.ITEM_PROPERTIES not in group:
            self.properties = []
        if ItemResponseGroup.ITEM_EDITORIAL_REVIEWS not in group:
            self.reviews = []
        if ItemResponseGroup.WITH_LINKS not in group:
            self.links = []
        if ItemResponseGroup.WITH_VARIATIONS not in group:
            self.variations = []
        if ItemResponseGroup.OUTLINES not in group:
            self.outlines = []


@dataclass
class Variation(CatalogProduct):
    """A variation loaded inside its main product's ``variations`` list."""


def iter_flat(objects: Any) -> Iterator[Any]:
    """Yield every model reachable through owned children, each once."""
    seen: set[int] = set()
    stack = list(objects)
    while stack:
        obj = stack.pop()
        if obj is None or id(obj) in seen:
            continue
        seen.add(id(obj))
        yield obj
        nested = getattr(obj, "iter_nested", None)
        if nested is not None:
            stack.extend(nested())


__all__ = [
    "HasCatalogId",
    "HasCategoryId",
    "HasImages",
    "HasProperties",
    "HasLinks",
    "HasOutlines",
    "Entity",
    "Image",
    "EditorialReview",
    "CatalogLanguage",
    "OutlineItem",
    "Outline",
    "PropertyType",
    "PropertyValueType",
    "PropertyDisplayName",
    "PropertyDictionaryValue",
    "PropertyValue",
    "Property",
    "Catalog",
    "CategoryLink",
    "Category",
    "CatalogProduct",
    "Variation",
    "iter_flat",
]
