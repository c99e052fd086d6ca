"""
Record ⇄ model conversion.

Pure, deterministic one-to-one mapping between persisted records and domain
models. No references are resolved and nothing is inherited here; that is
the loader's and the resolver's job.

Tags:
    materializer, mapping, records, models
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from catalog_spine.domain.models import (
    Catalog,
    CatalogLanguage,
    CatalogProduct,
    Category,
    CategoryLink,
    EditorialReview,
    Image,
    Property,
    PropertyDictionaryValue,
    PropertyDisplayName,
    PropertyType,
    PropertyValue,
    PropertyValueType,
)
from catalog_spine.domain.response_groups import CategoryResponseGroup, ItemResponseGroup
from catalog_spine.domain.records import (
    CatalogLanguageRecord,
    CatalogRecord,
    CategoryLinkRecord,
    CategoryRecord,
    EditorialReviewRecord,
    ImageRecord,
    ItemRecord,
    PropertyDictionaryValueRecord,
    PropertyDisplayNameRecord,
    PropertyRecord,
    PropertyValueRecord,
)

M = TypeVar("M")


class PrimaryKeyResolvingMap:
    """Pairs new records with the models they came from.

    After commit the store has assigned ids to the records;
    :meth:`resolve_primary_keys` copies them back onto the models.
    """

    def __init__(self) -> None:
        self._pairs: list[tuple[Any, Any]] = []

    def add(self, record: Any, model: Any) -> None:
        self._pairs.append((record, model))

    def resolve_primary_keys(self) -> None:
        for record, model in self._pairs:
            if record.id is not None:
                model.id = record.id

    def __len__(self) -> int:
        return len(self._pairs)


def order_by_ids(items: Iterable[M], ids: Sequence[str]) -> list[M]:
    """Sort entities to follow the requested id order (ids compared case-insensitively)."""
    positions: dict[str, int] = {}
    for index, entity_id in enumerate(ids):
        if entity_id is not None:
            positions.setdefault(entity_id.lower(), index)
    missing = len(positions)
    return sorted(items, key=lambda item: positions.get((item.id or "").lower(), missing))


# ── records → models ────────────────────────────────────────────────────


def image_to_model(record: ImageRecord) -> Image:
    return Image(
        id=record.id,
        url=record.url,
        name=record.name,
        group_name=record.group_name,
        language_code=record.language_code,
        sort_order=record.sort_order,
    )


def review_to_model(record: EditorialReviewRecord) -> EditorialReview:
    return EditorialReview(
        id=record.id,
        content=record.content,
        review_type=record.review_type,
        language_code=record.language_code,
    )


def link_to_model(record: CategoryLinkRecord, entry_id: str | None) -> CategoryLink:
    return CategoryLink(
        id=record.id,
        catalog_id=record.target_catalog_id,
        category_id=record.target_category_id,
        entry_id=entry_id,
        priority=record.priority,
    )


def value_to_model(record: PropertyValueRecord) -> PropertyValue:
    return PropertyValue(
        id=record.id,
        property_id=record.property_id,
        property_name=record.property_name,
        value=record.value,
        alias=record.alias,
        language_code=record.language_code,
        value_type=PropertyValueType(record.value_type),
    )


def property_to_model(record: PropertyRecord) -> Property:
    return Property(
        id=record.id,
        catalog_id=record.catalog_id,
        category_id=record.category_id,
        name=record.name,
        type=PropertyType(record.type),
        value_type=PropertyValueType(record.value_type),
        required=record.required,
        dictionary=record.dictionary,
        multivalue=record.multivalue,
        multilanguage=record.multilanguage,
        display_names=[PropertyDisplayName(d.language_code, d.name) for d in record.display_names],
        dictionary_values=[
            PropertyDictionaryValue(
                id=d.id, property_id=record.id, alias=d.alias, value=d.value, language_code=d.language_code
            )
            for d in record.dictionary_values
        ],
    )


def _attach_values(
    properties: list[Property],
    values: Iterable[PropertyValueRecord],
    default_type: PropertyType,
) -> list[Property]:
    """Group value records under their property, creating value-only properties as needed."""
    for value_record in values:
        value = value_to_model(value_record)
        target = None
        for prop in properties:
            if (value.property_id is not None and prop.id == value.property_id) or (
                prop.name and value.property_name and prop.name.lower() == value.property_name.lower()
            ):
                target = prop
                break
        if target is None:
            target = Property(
                id=value.property_id,
                name=value.property_name,
                type=default_type,
                value_type=value.value_type,
            )
            properties.append(target)
        target.values.append(value)
    return properties


def catalog_to_model(record: CatalogRecord, properties: Iterable[PropertyRecord] = ()) -> Catalog:
    return Catalog(
        id=record.id,
        name=record.name,
        is_virtual=record.is_virtual,
        languages=[CatalogLanguage(lang.language_code, lang.is_default) for lang in record.languages],
        properties=[property_to_model(p) for p in properties],
    )


def category_to_model(record: CategoryRecord, properties: Iterable[PropertyRecord] = ()) -> Category:
    defined = [property_to_model(p) for p in properties]
    return Category(
        id=record.id,
        catalog_id=record.catalog_id,
        parent_id=record.parent_category_id,
        code=record.code,
        name=record.name,
        priority=record.priority,
        tax_type=record.tax_type,
        is_active=record.is_active,
        images=[image_to_model(i) for i in record.images],
        properties=_attach_values(defined, record.property_values, PropertyType.CATEGORY),
        links=[link_to_model(link, record.id) for link in record.links],
    )


def product_to_model(record: ItemRecord, model_type: type[CatalogProduct] = CatalogProduct) -> CatalogProduct:
    default_type = PropertyType.VARIATION if record.main_product_id else PropertyType.PRODUCT
    return model_type(
        id=record.id,
        catalog_id=record.catalog_id,
        category_id=record.category_id,
        main_product_id=record.main_product_id,
        code=record.code,
        name=record.name,
        product_type=record.product_type,
        tax_type=record.tax_type,
        vendor=record.vendor,
        manufacturer_part_number=record.manufacturer_part_number,
        gtin=record.gtin,
        weight=record.weight,
        weight_unit=record.weight_unit,
        height=record.height,
        length=record.length,
        width=record.width,
        measure_unit=record.measure_unit,
        package_type=record.package_type,
        is_active=record.is_active,
        is_buyable=record.is_buyable,
        priority=record.priority,
        images=[image_to_model(i) for i in record.images],
        properties=_attach_values([], record.property_values, default_type),
        links=[link_to_model(link, record.id) for link in record.links],
        reviews=[review_to_model(r) for r in record.reviews],
    )


# ── models → records ────────────────────────────────────────────────────


def _images_from_model(images: Iterable[Image], pk_map: PrimaryKeyResolvingMap) -> list[ImageRecord]:
    result = []
    for image in images:
        if image.is_inherited:
            continue
        record = ImageRecord(
            id=image.id,
            url=image.relative_url or image.url,
            name=image.name,
            group_name=image.group_name,
            language_code=image.language_code,
            sort_order=image.sort_order,
        )
        pk_map.add(record, image)
        result.append(record)
    return result


def _values_from_model(properties: Iterable[Property], pk_map: PrimaryKeyResolvingMap) -> list[PropertyValueRecord]:
    result = []
    for prop in properties:
        for value in prop.values:
            if value.is_inherited:
                continue
            record = PropertyValueRecord(
                id=value.id,
                property_id=value.property_id or prop.id,
                property_name=value.property_name or prop.name,
                value=value.value,
                alias=value.alias,
                language_code=value.language_code,
                value_type=PropertyValueType(value.value_type).value,
            )
            pk_map.add(record, value)
            result.append(record)
    return result


def _links_from_model(links: Iterable[CategoryLink], pk_map: PrimaryKeyResolvingMap) -> list[CategoryLinkRecord]:
    result = []
    for link in links:
        record = CategoryLinkRecord(
            id=link.id,
            target_catalog_id=link.catalog_id,
            target_category_id=link.category_id,
            priority=link.priority,
        )
        pk_map.add(record, link)
        result.append(record)
    return result


def catalog_from_model(model: Catalog, pk_map: PrimaryKeyResolvingMap) -> CatalogRecord:
    record = CatalogRecord(
        id=model.id,
        name=model.name,
        is_virtual=model.is_virtual,
        languages=[CatalogLanguageRecord(lang.language_code, lang.is_default) for lang in model.languages],
    )
    pk_map.add(record, model)
    return record


def property_from_model(model: Property, pk_map: PrimaryKeyResolvingMap) -> PropertyRecord:
    record = PropertyRecord(
        id=model.id,
        catalog_id=model.catalog_id,
        category_id=model.category_id,
        name=model.name,
        type=PropertyType(model.type).value,
        value_type=PropertyValueType(model.value_type).value,
        required=model.required,
        dictionary=model.dictionary,
        multivalue=model.multivalue,
        multilanguage=model.multilanguage,
        display_names=[PropertyDisplayNameRecord(d.language_code, d.name) for d in model.display_names],
        dictionary_values=[],
    )
    for value in model.dictionary_values:
        value_record = PropertyDictionaryValueRecord(
            id=value.id, alias=value.alias, value=value.value, language_code=value.language_code
        )
        pk_map.add(value_record, value)
        record.dictionary_values.append(value_record)
    pk_map.add(record, model)
    return record


def _loaded(model: Any, part: Any) -> bool:
    return model.response_group is None or part in model.response_group


def category_from_model(model: Category, pk_map: PrimaryKeyResolvingMap) -> CategoryRecord:
    record = CategoryRecord(
        id=model.id,
        catalog_id=model.catalog_id,
        parent_category_id=model.parent_id,
        code=model.code,
        name=model.name,
        priority=model.priority,
        tax_type=model.tax_type,
        is_active=model.is_active,
        images=(
            _images_from_model(model.images, pk_map)
            if _loaded(model, CategoryResponseGroup.WITH_IMAGES) else None
        ),
        property_values=(
            _values_from_model(model.properties, pk_map)
            if _loaded(model, CategoryResponseGroup.WITH_PROPERTIES) else None
        ),
        links=_links_from_model(model.links, pk_map) if _loaded(model, CategoryResponseGroup.WITH_LINKS) else None,
    )
    pk_map.add(record, model)
    return record


def product_from_model(model: CatalogProduct, pk_map: PrimaryKeyResolvingMap) -> ItemRecord:
    record = ItemRecord(
        id=model.id,
        **{name: getattr(model, name) for name in ItemRecord.FIELDS},
        images=_images_from_model(model.images, pk_map) if _loaded(model, ItemResponseGroup.ITEM_ASSETS) else None,
        property_values=(
            _values_from_model(model.properties, pk_map)
            if _loaded(model, ItemResponseGroup.ITEM_PROPERTIES) else None
        ),
        links=_links_from_model(model.links, pk_map) if _loaded(model, ItemResponseGroup.WITH_LINKS) else None,
        reviews=None,
    )
    if _loaded(model, ItemResponseGroup.ITEM_EDITORIAL_REVIEWS):
        record.reviews = []
        for review in model.reviews:
            if review.is_inherited:
                continue
            review_record = EditorialReviewRecord(
                id=review.id, content=review.content, review_type=review.review_type, language_code=review.language_code
            )
            pk_map.add(review_record, review)
            record.reviews.append(review_record)
    pk_map.add(record, model)
    return record


__all__ = [
    "PrimaryKeyResolvingMap",
    "order_by_ids",
    "property_to_model",
    "catalog_to_model",
    "category_to_model",
    "product_to_model",
    "catalog_from_model",
    "property_from_model",
    "category_from_model",
    "product_from_model",
]
