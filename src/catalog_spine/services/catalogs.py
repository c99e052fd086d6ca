"""Catalog reads and writes."""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from catalog_spine.core.cache import CacheKey
from catalog_spine.core.logging import get_logger
from catalog_spine.core.protocols import RecordSession
from catalog_spine.data.inheritance import normalize_display_names
from catalog_spine.data.materializer import (
    PrimaryKeyResolvingMap,
    catalog_from_model,
    catalog_to_model,
    order_by_ids,
)
from catalog_spine.domain.models import Catalog
from catalog_spine.domain.records import CatalogRecord, CategoryRecord, ItemRecord, PropertyRecord
from catalog_spine.services.crud import CATALOG_REGION, CrudService, store_errors

logger = get_logger(__name__)


class CatalogService(CrudService[Catalog]):
    """Catalogs with their catalog-level property definitions.

    Deleting a catalog removes its categories, products and properties in
    the same unit of work.
    """

    entity_type = "catalog"
    record_kind = CatalogRecord.KIND

    async def get_by_ids(self, ids: Sequence[str]) -> list[Catalog]:
        ids = [i for i in ids if i]
        if not ids:
            return []
        key = CacheKey.with_(type(self), "get_by_ids", ids)

        async def load(entry: Any) -> list[Catalog]:
            entry.add_expiration_token(self._cache.region(CATALOG_REGION).create_change_token())
            return await self._load(ids)

        catalogs = await self._cache.get_or_create(key, load)
        return copy.deepcopy(order_by_ids(catalogs, ids))

    async def _load(self, ids: list[str]) -> list[Catalog]:
        with store_errors(self.entity_type, "fetch"):
            async with self._store.session(read_only=True) as session:
                records = await session.fetch_by_ids(self.record_kind, ids)
                property_records = []
                if records:
                    property_records = await session.fetch_all(
                        PropertyRecord.KIND, catalog_id=[r.id for r in records], category_id=None
                    )

        catalogs = []
        for record in records:
            own = [p for p in property_records if (p.catalog_id or "").lower() == record.id.lower()]
            catalog = catalog_to_model(record, own)
            for prop in catalog.properties:
                prop.catalog = catalog
            normalize_display_names(catalog.properties)
            catalogs.append(catalog)
        logger.debug("catalogs.loaded", requested=len(ids), found=len(catalogs))
        return catalogs

    def to_record(self, model: Catalog, pk_map: PrimaryKeyResolvingMap) -> CatalogRecord:
        return catalog_from_model(model, pk_map)

    def to_model(self, record: CatalogRecord) -> Catalog:
        return catalog_to_model(record)

    async def before_delete(self, session: RecordSession, ids: Sequence[str]) -> None:
        for kind in (CategoryRecord.KIND, ItemRecord.KIND, PropertyRecord.KIND):
            for record in await session.fetch_all(kind, catalog_id=list(ids)):
                session.remove(record)


__all__ = ["CatalogService"]
