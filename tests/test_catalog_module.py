"""Tests for CatalogModule wiring and lifecycle."""

import pytest
import structlog

from catalog_spine import CatalogModule
from catalog_spine.bulk.actions import CHANGE_CATEGORY, UPDATE_PROPERTIES
from catalog_spine.core.settings import CatalogSettings
from catalog_spine.data.store import InMemoryRecordStore


@pytest.fixture
def reset_logging():
    yield
    structlog.reset_defaults()


class TestCatalogModule:
    def test_from_settings_wires_defaults(self, reset_logging):
        module = CatalogModule.from_settings(CatalogSettings(cache_max_size=10, json_logs=True))

        assert isinstance(module.store, InMemoryRecordStore)
        assert module.settings.cache_max_size == 10
        assert [d.name for d in module.bulk_registrar.get_all()] == [CHANGE_CATEGORY, UPDATE_PROPERTIES]

    def test_asset_base_url_reaches_resolver(self, module):
        assert module.url_resolver.get_absolute_url("img/a.png") == "https://cdn.test/img/a.png"

    @pytest.mark.asyncio
    async def test_services_share_one_cache(self, seeded):
        await seeded.catalogs.get_by_ids(["c1"])
        await seeded.items.get_by_ids(["prod-1"])
        fetched = seeded.store.count_fetches("catalogs")

        # The item load reused cached catalogs
        await seeded.catalogs.get_by_ids(["c1"])
        assert seeded.store.count_fetches("catalogs") == fetched

    @pytest.mark.asyncio
    async def test_close_drops_cache_and_subscriptions(self, seeded):
        async def handler(event):
            pass

        await seeded.events.subscribe("*", handler)
        await seeded.catalogs.get_by_ids(["c1"])

        async with seeded:
            pass

        assert seeded.events.subscription_count == 0
        await seeded.catalogs.get_by_ids(["c1"])
        assert seeded.store.count_fetches("catalogs") == 2
