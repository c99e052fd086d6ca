"""Persisted record shapes and field-level patching.

Records are what the store keeps: flat, id-keyed, referencing other
aggregates only by id. Owned parts (images, property values, links ...)
are nested records of their aggregate.

``patch(target)`` copies business fields from an incoming record onto the
persisted one and reconciles nested collections by key, leaving the
target's bookkeeping (``created_date``, ``modified_date``) untouched.
Incoming records built from reduced models carry ``None`` for the
collections that were never loaded; patching leaves those alone.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, TypeVar

R = TypeVar("R")


def patch_fields(source: Any, target: Any, names: tuple[str, ...]) -> None:
    for name in names:
        setattr(target, name, getattr(source, name))


def patch_collection(
    source: list[R] | None,
    target: list[R],
    key: Callable[[R], Any],
    patch: Callable[[R, R], None] | None = None,
) -> None:
    """Reconcile ``target`` in place: drop missing, patch matched, add new.

    A ``None`` source means the collection was not loaded; ``target`` is
    left untouched.
    """
    if source is None:
        return
    source_by_key = {key(item): item for item in source}
    kept = []
    for item in target:
        incoming = source_by_key.pop(key(item), None)
        if incoming is None:
            continue
        if patch is not None:
            patch(incoming, item)
        kept.append(item)
    kept.extend(source_by_key.values())
    target[:] = kept


def fill_unloaded(record: Any) -> Any:
    """Replace not-loaded (``None``) collections with empty lists before insert."""
    for f in fields(record):
        if f.default_factory is list and getattr(record, f.name) is None:
            setattr(record, f.name, [])
    return record


def _id_or_identity(item: Any) -> Any:
    return item.id if item.id is not None else ("new", id(item))


# ── Nested parts ─────────────────────────────────────────────────────────


@dataclass
class ImageRecord:
    id: str | None = None
    url: str | None = None
    name: str | None = None
    group_name: str | None = None
    language_code: str | None = None
    sort_order: int = 0

    FIELDS: ClassVar[tuple[str, ...]] = ("url", "name", "group_name", "language_code", "sort_order")


@dataclass
class EditorialReviewRecord:
    id: str | None = None
    content: str | None = None
    review_type: str | None = None
    language_code: str | None = None

    FIELDS: ClassVar[tuple[str, ...]] = ("content", "review_type", "language_code")


@dataclass
class PropertyValueRecord:
    id: str | None = None
    property_id: str | None = None
    property_name: str | None = None
    value: Any = None
    alias: str | None = None
    language_code: str | None = None
    value_type: str = "ShortText"

    FIELDS: ClassVar[tuple[str, ...]] = (
        "property_id", "property_name", "value", "alias", "language_code", "value_type",
    )

    def key(self) -> tuple[Any, ...]:
        return ((self.property_name or "").lower(), self.language_code, str(self.value), self.alias)


@dataclass
class CategoryLinkRecord:
    id: str | None = None
    target_catalog_id: str | None = None
    target_category_id: str | None = None
    priority: int = 0

    def key(self) -> tuple[Any, ...]:
        return (self.target_catalog_id, self.target_category_id)


@dataclass
class PropertyDisplayNameRecord:
    language_code: str
    name: str | None = None


@dataclass
class PropertyDictionaryValueRecord:
    id: str | None = None
    alias: str | None = None
    value: str | None = None
    language_code: str | None = None


@dataclass
class CatalogLanguageRecord:
    language_code: str
    is_default: bool = False


# ── Aggregates ───────────────────────────────────────────────────────────


@dataclass
class CatalogRecord:
    KIND: ClassVar[str] = "catalogs"
    FIELDS: ClassVar[tuple[str, ...]] = ("name", "is_virtual")

    id: str | None = None
    name: str | None = None
    is_virtual: bool = False
    languages: list[CatalogLanguageRecord] = field(default_factory=list)
    created_date: datetime | None = None
    modified_date: datetime | None = None

    def patch(self, target: CatalogRecord) -> None:
        patch_fields(self, target, self.FIELDS)
        patch_collection(self.languages, target.languages, key=lambda x: x.language_code.lower(),
                         patch=lambda s, t: patch_fields(s, t, ("is_default",)))


@dataclass
class PropertyRecord:
    KIND: ClassVar[str] = "properties"
    FIELDS: ClassVar[tuple[str, ...]] = (
        "catalog_id", "category_id", "name", "type", "value_type",
        "required", "dictionary", "multivalue", "multilanguage",
    )

    id: str | None = None
    catalog_id: str | None = None
    category_id: str | None = None
    name: str | None = None
    type: str = "Product"
    value_type: str = "ShortText"
    required: bool = False
    dictionary: bool = False
    multivalue: bool = False
    multilanguage: bool = False
    display_names: list[PropertyDisplayNameRecord] = field(default_factory=list)
    dictionary_values: list[PropertyDictionaryValueRecord] = field(default_factory=list)
    created_date: datetime | None = None
    modified_date: datetime | None = None

    def patch(self, target: PropertyRecord) -> None:
        patch_fields(self, target, self.FIELDS)
        patch_collection(self.display_names, target.display_names, key=lambda x: x.language_code.lower(),
                         patch=lambda s, t: patch_fields(s, t, ("name",)))
        patch_collection(self.dictionary_values, target.dictionary_values, key=_id_or_identity,
                         patch=lambda s, t: patch_fields(s, t, ("alias", "value", "language_code")))


@dataclass
class CategoryRecord:
    KIND: ClassVar[str] = "categories"
    FIELDS: ClassVar[tuple[str, ...]] = (
        "catalog_id", "parent_category_id", "code", "name", "priority", "tax_type", "is_active",
    )

    id: str | None = None
    catalog_id: str | None = None
    parent_category_id: str | None = None
    code: str | None = None
    name: str | None = None
    priority: int = 0
    tax_type: str | None = None
    is_active: bool = True
    images: list[ImageRecord] = field(default_factory=list)
    property_values: list[PropertyValueRecord] = field(default_factory=list)
    links: list[CategoryLinkRecord] = field(default_factory=list)
    created_date: datetime | None = None
    modified_date: datetime | None = None

    def patch(self, target: CategoryRecord) -> None:
        patch_fields(self, target, self.FIELDS)
        _patch_assets(self, target)


@dataclass
class ItemRecord:
    KIND: ClassVar[str] = "items"
    FIELDS: ClassVar[tuple[str, ...]] = (
        "catalog_id", "category_id", "main_product_id", "code", "name", "product_type",
        "tax_type", "vendor", "manufacturer_part_number", "gtin", "weight", "weight_unit",
        "height", "length", "width", "measure_unit", "package_type", "is_active",
        "is_buyable", "priority",
    )

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
    images: list[ImageRecord] = field(default_factory=list)
    property_values: list[PropertyValueRecord] = field(default_factory=list)
    links: list[CategoryLinkRecord] = field(default_factory=list)
    reviews: list[EditorialReviewRecord] = field(default_factory=list)
    created_date: datetime | None = None
    modified_date: datetime | None = None

    def patch(self, target: ItemRecord) -> None:
        patch_fields(self, target, self.FIELDS)
        _patch_assets(self, target)
        patch_collection(self.reviews, target.reviews, key=_id_or_identity,
                         patch=lambda s, t: patch_fields(s, t, EditorialReviewRecord.FIELDS))


def _patch_assets(source: CategoryRecord | ItemRecord, target: CategoryRecord | ItemRecord) -> None:
    patch_collection(source.images, target.images, key=_id_or_identity,
                     patch=lambda s, t: patch_fields(s, t, ImageRecord.FIELDS))
    patch_collection(source.property_values, target.property_values, key=PropertyValueRecord.key)
    patch_collection(source.links, target.links, key=CategoryLinkRecord.key,
                     patch=lambda s, t: patch_fields(s, t, ("priority",)))


RECORD_TYPES: dict[str, type] = {
    CatalogRecord.KIND: CatalogRecord,
    CategoryRecord.KIND: CategoryRecord,
    PropertyRecord.KIND: PropertyRecord,
    ItemRecord.KIND: ItemRecord,
}


__all__ = [
    "patch_fields",
    "patch_collection",
    "fill_unloaded",
    "ImageRecord",
    "EditorialReviewRecord",
    "PropertyValueRecord",
    "CategoryLinkRecord",
    "PropertyDisplayNameRecord",
    "PropertyDictionaryValueRecord",
    "CatalogLanguageRecord",
    "CatalogRecord",
    "PropertyRecord",
    "CategoryRecord",
    "ItemRecord",
    "RECORD_TYPES",
]
