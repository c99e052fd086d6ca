"""
Product reads and writes.

Architecture:
    ::

        get_by_ids(ids, response_group, catalog_id)
            cache key = (service, ids, group, catalog)
            ┌─ on miss ─────────────────────────────────────────────┐
            │ tokens: Item region × every requested id  + Catalog  │
            │ fetch records, main products, variations (1 session) │
            │ order by requested ids                               │
            │ load dependencies → inheritance → outlines           │
            │ tokens: Item region × products, variations, mains    │
            │ reduce details to the response group                 │
            └───────────────────────────────────────────────────────┘
            deep copy → caller

Every requested id gets an entity token, found or not: an empty result for
an id that does not exist yet must expire when that id is created.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from catalog_spine.core.cache import CacheKey, PlatformCache
from catalog_spine.core.events import EventBus
from catalog_spine.core.logging import get_logger
from catalog_spine.core.protocols import RecordSession, RecordStore, SkuGenerator, UrlResolver
from catalog_spine.data.inheritance import InheritanceResolver
from catalog_spine.data.loader import DependencyLoader, index_by_id, require
from catalog_spine.data.materializer import (
    PrimaryKeyResolvingMap,
    order_by_ids,
    product_from_model,
    product_to_model,
)
from catalog_spine.data.outlines import OutlineBuilder
from catalog_spine.data.validation import ProductValidator, PropertyValuesValidator, validate_or_raise
from catalog_spine.domain.models import CatalogProduct, Category, Variation
from catalog_spine.domain.records import ItemRecord
from catalog_spine.domain.response_groups import (
    CategoryResponseGroup,
    ItemResponseGroup,
    parse_flags,
    render_flags,
)
from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.categories import CategoryService
from catalog_spine.services.crud import CATALOG_REGION, ITEM_REGION, CrudService, store_errors

logger = get_logger(__name__)


class ItemService(CrudService[CatalogProduct]):
    entity_type = "product"
    record_kind = ItemRecord.KIND

    def __init__(
        self,
        store: RecordStore,
        cache: PlatformCache,
        events: EventBus,
        catalogs: CatalogService,
        categories: CategoryService,
        url_resolver: UrlResolver,
        sku_generator: SkuGenerator,
        *,
        outlines: OutlineBuilder | None = None,
        inheritance: InheritanceResolver | None = None,
    ) -> None:
        super().__init__(store, cache, events)
        self._categories = categories
        self._sku_generator = sku_generator
        self._loader = DependencyLoader(
            catalogs.get_by_ids,
            url_resolver,
            fetch_categories=self._fetch_categories,
            sku_generator=sku_generator,
        )
        self._outlines = outlines or OutlineBuilder()
        self._inheritance = inheritance or InheritanceResolver()

    async def _fetch_categories(self, ids: list[str]) -> list[Category]:
        return await self._categories.get_by_ids(ids, CategoryResponseGroup.FULL)

    # ── reads ─────────────────────────────────────────────────────────

    async def get_by_ids(
        self,
        ids: Sequence[str],
        response_group: str | ItemResponseGroup | None = None,
        catalog_id: str | None = None,
    ) -> list[CatalogProduct]:
        group = parse_flags(ItemResponseGroup, response_group, ItemResponseGroup.ITEM_LARGE)
        ids = [i for i in ids if i]
        key = CacheKey.with_(type(self), "get_by_ids", ids, render_flags(group), catalog_id)

        async def load(entry: Any) -> list[CatalogProduct]:
            if not ids:
                return []
            item_region = self._cache.region(ITEM_REGION)
            entry.add_expiration_token(item_region.create_change_token(ids))
            entry.add_expiration_token(self._cache.region(CATALOG_REGION).create_change_token())

            products = await self._load(ids, group)
            if not products:
                return products

            products = order_by_ids(products, ids)
            await self._loader.load_products(products)
            self._inheritance.apply_to_products(products)

            with_variations = [*products, *(v for p in products for v in p.variations)]
            if ItemResponseGroup.OUTLINES in group:
                self._outlines.fill_outlines(products, catalog_id)
            mains = [p.main_product for p in products if p.main_product is not None]
            entry.add_expiration_token(item_region.create_change_token([*with_variations, *mains]))

            for product in with_variations:
                product.reduce_details(group)
            logger.debug("items.loaded", requested=len(ids), found=len(products), group=render_flags(group))
            return products

        return copy.deepcopy(await self._cache.get_or_create(key, load))

    async def _load(self, ids: list[str], group: ItemResponseGroup) -> list[CatalogProduct]:
        with store_errors(self.entity_type, "fetch"):
            async with self._store.session(read_only=True) as session:
                records = await session.fetch_by_ids(self.record_kind, ids)
                main_ids = [r.main_product_id for r in records if r.main_product_id]
                main_records = await session.fetch_by_ids(self.record_kind, main_ids) if main_ids else []
                variation_records = []
                if records and ItemResponseGroup.WITH_VARIATIONS in group:
                    variation_records = await session.fetch_all(
                        self.record_kind, main_product_id=[r.id for r in records]
                    )

        mains = index_by_id(product_to_model(r) for r in main_records)
        products = []
        for record in records:
            product = product_to_model(record)
            if record.main_product_id:
                product.main_product = require(mains, record.main_product_id, "main product", record.id)
            product.variations = [
                product_to_model(v, Variation)
                for v in variation_records
                if v.main_product_id.lower() == record.id.lower()
            ]
            products.append(product)
        return products

    # ── writes ────────────────────────────────────────────────────────

    def to_record(self, model: CatalogProduct, pk_map: PrimaryKeyResolvingMap) -> ItemRecord:
        return product_from_model(model, pk_map)

    def to_model(self, record: ItemRecord) -> CatalogProduct:
        return product_to_model(record)

    def clear_cache(self, models: Sequence[CatalogProduct]) -> None:
        region = self._cache.region(ITEM_REGION)
        for model in models:
            region.expire_entity(model)
            for variation in model.variations:
                region.expire_entity(variation)
            # The main product's cached variation list changes too
            if model.main_product_id:
                region.expire_entity(model.main_product_id)

    async def before_save(self, models: Sequence[CatalogProduct]) -> None:
        for product in models:
            if not product.code:
                product.code = self._sku_generator.generate_sku(product)
        validate_or_raise(models, ProductValidator(), entity_type=self.entity_type)

        # Property rules need the inherited definitions; work on copies
        candidates = copy.deepcopy(list(models))
        main_ids = [p.main_product_id for p in candidates if p.main_product_id and p.main_product is None]
        if main_ids:
            mains = index_by_id(await self.get_by_ids(main_ids, ItemResponseGroup.ITEM_MEDIUM))
            for product in candidates:
                if product.main_product_id and product.main_product is None:
                    product.main_product = require(mains, product.main_product_id, "main product", product.id)
        await self._loader.load_products(candidates)
        self._inheritance.apply_to_products(candidates)
        loaded = [
            c for c in candidates
            if c.response_group is None or ItemResponseGroup.ITEM_PROPERTIES in c.response_group
        ]
        validate_or_raise(loaded, PropertyValuesValidator(), entity_type=self.entity_type)

    async def before_delete(self, session: RecordSession, ids: Sequence[str]) -> None:
        for record in await session.fetch_all(self.record_kind, main_product_id=list(ids)):
            session.remove(record)


__all__ = ["ItemService"]
