"""Property definitions: reads, writes and dictionary lookups.

Property reads are not cached; every write expires the Catalog region
because catalogs and preloaded categories embed property definitions.
"""

from __future__ import annotations

from collections.abc import Sequence

from catalog_spine.core.cache import PlatformCache
from catalog_spine.core.errors import ErrorContext, ResolutionError, ValidationError
from catalog_spine.core.events import EventBus
from catalog_spine.core.protocols import RecordStore
from catalog_spine.data.inheritance import normalize_display_names
from catalog_spine.data.loader import DependencyLoader
from catalog_spine.data.materializer import (
    PrimaryKeyResolvingMap,
    order_by_ids,
    property_from_model,
    property_to_model,
)
from catalog_spine.domain.models import Property, PropertyDictionaryValue
from catalog_spine.domain.records import PropertyRecord
from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.crud import CrudService, store_errors


class PropertyService(CrudService[Property]):
    entity_type = "property"
    record_kind = PropertyRecord.KIND

    def __init__(
        self,
        store: RecordStore,
        cache: PlatformCache,
        events: EventBus,
        catalogs: CatalogService,
    ) -> None:
        super().__init__(store, cache, events)
        self._loader = DependencyLoader(catalogs.get_by_ids)

    async def get_by_ids(self, ids: Sequence[str]) -> list[Property]:
        ids = [i for i in ids if i]
        if not ids:
            return []
        with store_errors(self.entity_type, "fetch"):
            async with self._store.session(read_only=True) as session:
                records = await session.fetch_by_ids(self.record_kind, ids)
        return await self._materialize(order_by_ids(records, ids))

    async def get_all_catalog_properties(self, catalog_id: str) -> list[Property]:
        """Every property defined in the catalog, category-level ones included."""
        with store_errors(self.entity_type, "fetch"):
            async with self._store.session(read_only=True) as session:
                records = await session.fetch_all(self.record_kind, catalog_id=catalog_id)
        return await self._materialize(records)

    async def get_all_properties(self) -> list[Property]:
        with store_errors(self.entity_type, "fetch"):
            async with self._store.session(read_only=True) as session:
                ids = await session.fetch_ids(self.record_kind)
        return await self.get_by_ids(ids)

    async def _materialize(self, records: list[PropertyRecord]) -> list[Property]:
        properties = [property_to_model(r) for r in records]
        await self._loader.load_properties(properties)
        normalize_display_names(properties)
        return properties

    async def create(self, prop: Property) -> Property:
        if not prop.catalog_id:
            raise ValidationError(
                "Property must belong to a catalog",
                violations=["catalog id is required"],
                context=ErrorContext(entity_type=self.entity_type, operation="create"),
            )
        await self.save_changes([prop])
        created = await self.get_by_id(prop.id)
        if created is None:
            raise ResolutionError("property", prop.id)
        return created

    async def update(self, properties: Sequence[Property]) -> None:
        await self.save_changes(properties)

    async def search_dictionary_values(
        self, property_id: str, keyword: str | None = None
    ) -> list[PropertyDictionaryValue]:
        """Dictionary values of a property whose value contains ``keyword`` (case-insensitive)."""
        prop = await self.get_by_id(property_id)
        if prop is None:
            raise ResolutionError("property", property_id)
        values = list(prop.dictionary_values)
        if keyword:
            needle = keyword.lower()
            values = [v for v in values if v.value and needle in v.value.lower()]
        return values

    def to_record(self, model: Property, pk_map: PrimaryKeyResolvingMap) -> PropertyRecord:
        return property_from_model(model, pk_map)

    def to_model(self, record: PropertyRecord) -> Property:
        return property_to_model(record)


__all__ = ["PropertyService"]
