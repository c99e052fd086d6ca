"""
Composition root for the catalog layer.

:class:`CatalogModule` builds one shared cache, event bus and record store
and wires the four entity services plus the bulk update executor on top of
them, all from :class:`CatalogSettings`.

Usage::

    from catalog_spine import CatalogModule

    module = CatalogModule.from_settings()
    catalogs = await module.catalogs.get_by_ids(["c1"])

    # Or with explicit collaborators (tests, SQL-backed store):
    module = CatalogModule(CatalogSettings(cache_max_size=100), store=my_store)

    async with CatalogModule.from_settings() as module:
        ...
"""

from __future__ import annotations

from catalog_spine.bulk.actions import (
    CHANGE_CATEGORY,
    UPDATE_PROPERTIES,
    ChangeCategoryAction,
    ProductIdsDataSource,
    UpdatePropertiesAction,
)
from catalog_spine.bulk.executor import BulkUpdateActionExecutor
from catalog_spine.bulk.models import BulkUpdateContext
from catalog_spine.bulk.registrar import BulkUpdateActionDefinition, BulkUpdateActionRegistrar
from catalog_spine.core.cache import InMemoryCache, PlatformCache
from catalog_spine.core.events import EventBus
from catalog_spine.core.events.memory import InMemoryEventBus
from catalog_spine.core.logging import configure_logging, get_logger
from catalog_spine.core.protocols import RecordStore, SkuGenerator, UrlResolver
from catalog_spine.core.settings import CatalogSettings, get_settings
from catalog_spine.data.assets import DefaultSkuGenerator, PrefixUrlResolver
from catalog_spine.data.inheritance import InheritanceResolver
from catalog_spine.data.outlines import OutlineBuilder
from catalog_spine.data.store import InMemoryRecordStore
from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.categories import CategoryService
from catalog_spine.services.items import ItemService
from catalog_spine.services.properties import PropertyService

logger = get_logger(__name__)


class CatalogModule:
    """Wired services sharing one cache, one event bus and one store.

    Any collaborator left as ``None`` gets the in-memory default.
    """

    def __init__(
        self,
        settings: CatalogSettings,
        *,
        store: RecordStore | None = None,
        cache: PlatformCache | None = None,
        events: EventBus | None = None,
        url_resolver: UrlResolver | None = None,
        sku_generator: SkuGenerator | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or InMemoryRecordStore()
        self.cache = cache or PlatformCache(
            InMemoryCache(max_size=settings.cache_max_size),
            ttl_seconds=settings.cache_ttl_seconds,
        )
        self.events = events or InMemoryEventBus()
        self.url_resolver = url_resolver or PrefixUrlResolver(settings.asset_base_url)
        self.sku_generator = sku_generator or DefaultSkuGenerator()

        outlines = OutlineBuilder()
        inheritance = InheritanceResolver()

        self.catalogs = CatalogService(self.store, self.cache, self.events)
        self.categories = CategoryService(
            self.store,
            self.cache,
            self.events,
            self.catalogs,
            self.url_resolver,
            page_size=settings.preload_page_size,
            outlines=outlines,
            inheritance=inheritance,
        )
        self.items = ItemService(
            self.store,
            self.cache,
            self.events,
            self.catalogs,
            self.categories,
            self.url_resolver,
            self.sku_generator,
            outlines=outlines,
            inheritance=inheritance,
        )
        self.properties = PropertyService(self.store, self.cache, self.events, self.catalogs)

        self.bulk_registrar = BulkUpdateActionRegistrar()
        self._register_bulk_actions()
        self.bulk_executor = BulkUpdateActionExecutor(self.bulk_registrar, self.cache)

    @classmethod
    def from_settings(cls, settings: CatalogSettings | None = None) -> CatalogModule:
        """Configure logging and build a module with in-memory collaborators."""
        settings = settings or get_settings()
        configure_logging(level=settings.log_level, json_format=settings.json_logs, service=settings.service_name)
        module = cls(settings)
        logger.info(
            "catalog_module.started",
            cache_max_size=settings.cache_max_size,
            preload_page_size=settings.preload_page_size,
            bulk_page_size=settings.bulk_page_size,
        )
        return module

    def _products_source(self, context: BulkUpdateContext) -> ProductIdsDataSource:
        return ProductIdsDataSource(context.product_ids, self.items, page_size=self.settings.bulk_page_size)

    def _register_bulk_actions(self) -> None:
        self.bulk_registrar.register(
            BulkUpdateActionDefinition(
                name=CHANGE_CATEGORY,
                action_factory=lambda ctx: ChangeCategoryAction(ctx, self.items, self.catalogs, self.categories),
                data_source_factory=self._products_source,
            )
        )
        self.bulk_registrar.register(
            BulkUpdateActionDefinition(
                name=UPDATE_PROPERTIES,
                action_factory=lambda ctx: UpdatePropertiesAction(ctx, self.items, self.properties),
                data_source_factory=self._products_source,
            )
        )

    # ── Lifecycle ────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the event bus and drop every cached entry."""
        await self.events.close()
        self.cache.clear()

    async def __aenter__(self) -> CatalogModule:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


__all__ = ["CatalogModule"]
