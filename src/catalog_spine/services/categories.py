"""
Category reads and writes.

Reads never query categories one by one: the whole category table is
preloaded page by page into an id → category map that is wired, resolved
and cached under the Catalog region. ``get_by_ids`` answers from that map
and hands out reduced clones.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from catalog_spine.core.cache import CacheKey, PlatformCache
from catalog_spine.core.events import EventBus
from catalog_spine.core.logging import get_logger
from catalog_spine.core.protocols import RecordSession, RecordStore, UrlResolver
from catalog_spine.data.inheritance import InheritanceResolver, normalize_display_names
from catalog_spine.data.loader import DependencyLoader, index_by_id
from catalog_spine.data.materializer import PrimaryKeyResolvingMap, category_from_model, category_to_model
from catalog_spine.data.outlines import OutlineBuilder
from catalog_spine.data.validation import CategoryValidator, PropertyValuesValidator, validate_or_raise
from catalog_spine.domain.models import Category
from catalog_spine.domain.records import CategoryRecord, ItemRecord, PropertyRecord
from catalog_spine.domain.response_groups import CategoryResponseGroup, parse_flags
from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.crud import CATALOG_REGION, CrudService, store_errors

logger = get_logger(__name__)


class CategoryService(CrudService[Category]):
    entity_type = "category"
    record_kind = CategoryRecord.KIND

    def __init__(
        self,
        store: RecordStore,
        cache: PlatformCache,
        events: EventBus,
        catalogs: CatalogService,
        url_resolver: UrlResolver,
        *,
        page_size: int = 50,
        outlines: OutlineBuilder | None = None,
        inheritance: InheritanceResolver | None = None,
    ) -> None:
        super().__init__(store, cache, events)
        self._catalogs = catalogs
        self._page_size = page_size
        self._loader = DependencyLoader(catalogs.get_by_ids, url_resolver)
        self._outlines = outlines or OutlineBuilder()
        self._inheritance = inheritance or InheritanceResolver()

    async def get_by_ids(
        self,
        ids: Sequence[str],
        response_group: str | CategoryResponseGroup | None = None,
        catalog_id: str | None = None,
    ) -> list[Category]:
        """Clones of the requested categories, in request order; unknown ids are skipped."""
        group = parse_flags(CategoryResponseGroup, response_group, CategoryResponseGroup.FULL)
        preloaded = await self.preload(catalog_id)

        result = []
        for category_id in ids:
            if category_id is None:
                continue
            category = preloaded.get(category_id.lower())
            if category is not None:
                category = copy.deepcopy(category)
                category.reduce_details(group)
                result.append(category)
        return result

    async def preload(self, catalog_id: str | None = None) -> dict[str, Category]:
        """The cached id → category map; outlines are filtered to ``catalog_id``."""
        key = CacheKey.with_(type(self), "preload", catalog_id)

        async def load(entry: Any) -> dict[str, Category]:
            entry.add_expiration_token(self._cache.region(CATALOG_REGION).create_change_token())
            return await self._load_all(catalog_id)

        return await self._cache.get_or_create(key, load)

    async def _load_all(self, catalog_id: str | None) -> dict[str, Category]:
        categories: list[Category] = []
        with store_errors(self.entity_type, "preload"):
            async with self._store.session(read_only=True) as session:
                ids = await session.fetch_ids(self.record_kind)
                for start in range(0, len(ids), self._page_size):
                    page = ids[start:start + self._page_size]
                    records = await session.fetch_by_ids(self.record_kind, page)
                    property_records = await session.fetch_all(PropertyRecord.KIND, category_id=page)
                    for record in records:
                        own = [p for p in property_records if p.category_id.lower() == record.id.lower()]
                        categories.append(category_to_model(record, own))

        preloaded = index_by_id(categories)
        await self._loader.load_categories(categories, preloaded)
        normalize_display_names(prop for category in categories for prop in category.properties)
        self._inheritance.apply_to_categories(categories)
        self._outlines.fill_outlines(categories, catalog_id)

        logger.info("categories.preloaded", count=len(categories), catalog_id=catalog_id)
        return preloaded

    # ── writes ────────────────────────────────────────────────────────

    def to_record(self, model: Category, pk_map: PrimaryKeyResolvingMap) -> CategoryRecord:
        return category_from_model(model, pk_map)

    def to_model(self, record: CategoryRecord) -> Category:
        return category_to_model(record)

    async def before_save(self, models: Sequence[Category]) -> None:
        validate_or_raise(models, CategoryValidator(), entity_type=self.entity_type)

        # Property rules need the inherited definitions; work on copies
        candidates = copy.deepcopy(list(models))
        # Incoming parent ids override the stored ones
        hierarchy = {**await self.preload(), **index_by_id(candidates)}
        await self._loader.load_categories(candidates, hierarchy)
        self._inheritance.apply_to_categories(candidates)
        loaded = [
            c for c in candidates
            if c.response_group is None or CategoryResponseGroup.WITH_PROPERTIES in c.response_group
        ]
        validate_or_raise(loaded, PropertyValuesValidator(), entity_type=self.entity_type)

    async def before_delete(self, session: RecordSession, ids: Sequence[str]) -> None:
        records = await session.fetch_all(self.record_kind)
        children: dict[str, list[Any]] = {}
        for record in records:
            if record.parent_category_id is not None:
                children.setdefault(record.parent_category_id.lower(), []).append(record)

        doomed = {i.lower() for i in ids}
        pending = list(doomed)
        while pending:
            for child in children.get(pending.pop(), []):
                key = child.id.lower()
                if key not in doomed:
                    doomed.add(key)
                    pending.append(key)
                    session.remove(child)

        for kind in (ItemRecord.KIND, PropertyRecord.KIND):
            for record in await session.fetch_all(kind, category_id=list(doomed)):
                session.remove(record)
        logger.debug("categories.cascade", categories=len(doomed))


__all__ = ["CategoryService"]
