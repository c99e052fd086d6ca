"""
Tests for ItemService.

Covers:
- fully loaded products: dependencies, inheritance, variations, outlines
- variations loaded on their own inherit from the main product
- concurrent identical reads share one load
- cache coherency after create, update and delete
- saving a reduced product keeps what it did not load
"""

import asyncio
import gc

import pytest

from catalog_spine import CatalogModule
from catalog_spine.core.cache import InMemoryCache, PlatformCache
from catalog_spine.core.errors import ValidationError
from catalog_spine.domain.models import CatalogProduct, Variation
from catalog_spine.domain.response_groups import ItemResponseGroup
from catalog_spine.services.crud import ITEM_REGION


class TestItemReads:
    @pytest.mark.asyncio
    async def test_full_product(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"])

        assert runner.catalog.id == "c1"
        assert runner.category.id == "cat-shoes"
        assert runner.tax_type == "goods"
        assert [p.name for p in runner.properties] == ["Color", "Material", "Season", "Size"]
        color = runner.properties[0]
        assert [v.value for v in color.values] == ["Red"]
        assert color.dictionary
        assert not color.is_read_only
        assert next(p for p in runner.properties if p.name == "Material").is_read_only
        assert runner.images[0].url == "https://cdn.test/img/runner.png"
        assert [r.content for r in runner.reviews] == ["Light and fast"]
        assert [o.path for o in runner.outlines] == ["c1/cat-root/cat-shoes/prod-1"]

    @pytest.mark.asyncio
    async def test_variations_listed_under_main_product(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"])

        [variation] = runner.variations
        assert isinstance(variation, Variation)
        assert variation.id == "var-1"
        assert variation.vendor == "Acme"
        assert variation.reviews == []
        assert [o.path for o in variation.outlines] == ["c1/cat-root/cat-shoes/prod-1/var-1"]

    @pytest.mark.asyncio
    async def test_variation_loaded_alone(self, seeded):
        [variation] = await seeded.items.get_by_ids(["var-1"])

        assert variation.main_product.id == "prod-1"
        assert variation.vendor == "Acme"
        assert variation.weight == 1.2
        assert [(i.url, i.is_inherited) for i in variation.images] == [("https://cdn.test/img/runner.png", True)]
        size = next(p for p in variation.properties if p.name == "Size")
        assert [v.value for v in size.values] == ["42"]
        assert not size.is_read_only
        color = next(p for p in variation.properties if p.name == "Color")
        assert color.is_read_only
        assert [(v.value, v.is_inherited) for v in color.values] == [("Red", True)]
        assert [o.path for o in variation.outlines] == ["c1/cat-root/cat-shoes/prod-1/var-1"]

    @pytest.mark.asyncio
    async def test_links_and_catalog_filter(self, seeded):
        [hiker] = await seeded.items.get_by_ids(["prod-2"])
        assert hiker.links[0].catalog.is_virtual
        assert [o.path for o in hiker.outlines] == ["c1/cat-root/cat-shoes/cat-boots/prod-2", "v1/prod-2"]

        [hiker] = await seeded.items.get_by_ids(["prod-2"], catalog_id="v1")
        assert [o.path for o in hiker.outlines] == ["v1/prod-2"]

    @pytest.mark.asyncio
    async def test_request_order(self, seeded):
        found = await seeded.items.get_by_ids(["prod-2", "missing", "prod-1"])
        assert [p.id for p in found] == ["prod-2", "prod-1"]

    @pytest.mark.asyncio
    async def test_response_group_by_name(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"], "ItemInfo,ItemAssets")

        assert runner.response_group == ItemResponseGroup.ITEM_INFO | ItemResponseGroup.ITEM_ASSETS
        assert runner.images
        assert runner.properties == []
        assert runner.reviews == []
        assert runner.variations == []
        assert runner.outlines == []

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_load(self, seeded):
        results = await asyncio.gather(*(seeded.items.get_by_ids(["prod-1"]) for _ in range(5)))

        assert all(r[0].name == "Runner" for r in results)
        # The product fetch plus its variations
        assert seeded.store.count_fetches("items") == 2
        results[0][0].name = "Mutated"
        assert results[1][0].name == "Runner"


class TestItemCacheCoherency:
    @pytest.mark.asyncio
    async def test_missing_id_read_expires_on_create(self, seeded):
        assert await seeded.items.get_by_ids(["new-1"]) == []

        product = CatalogProduct(id="new-1", catalog_id="c1", category_id="cat-shoes", code="NEW-1", name="New")
        await seeded.items.save_changes([product])

        [created] = await seeded.items.get_by_ids(["new-1"])
        assert created.name == "New"

    @pytest.mark.asyncio
    async def test_dashed_ids_get_their_own_cache_entry(self, seeded):
        assert await seeded.items.get_by_ids(["prod", "1"]) == []

        [runner] = await seeded.items.get_by_ids(["prod-1"])

        assert runner.id == "prod-1"

    @pytest.mark.asyncio
    async def test_misses_do_not_pile_up_entity_tokens(self, settings, store):
        module = CatalogModule(settings, store=store, cache=PlatformCache(InMemoryCache(max_size=10)))

        for i in range(100):
            assert await module.items.get_by_ids([f"missing-{i}"]) == []
        gc.collect()

        # Only the entries still cached keep their tokens
        assert module.cache.region(ITEM_REGION).entity_token_count <= 10

    @pytest.mark.asyncio
    async def test_update_expires_product_and_its_main(self, seeded):
        await seeded.items.get_by_ids(["prod-1"])
        [variation] = await seeded.items.get_by_ids(["var-1"])
        variation.name = "Runner 43"

        await seeded.items.save_changes([variation])

        [runner] = await seeded.items.get_by_ids(["prod-1"])
        assert runner.variations[0].name == "Runner 43"

    @pytest.mark.asyncio
    async def test_delete_then_read(self, seeded):
        assert await seeded.items.get_by_ids(["prod-2"])
        await seeded.items.delete(["prod-2"])
        assert await seeded.items.get_by_ids(["prod-2"]) == []

    @pytest.mark.asyncio
    async def test_delete_main_product_removes_variations(self, seeded):
        await seeded.items.delete(["prod-1"])
        assert await seeded.items.get_by_ids(["var-1"]) == []
        assert seeded.store.count("items") == 1


class TestItemWrites:
    @pytest.mark.asyncio
    async def test_reduced_save_keeps_unloaded_parts(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"], "ItemInfo")
        runner.name = "Runner II"

        await seeded.items.save_changes([runner])

        [reloaded] = await seeded.items.get_by_ids(["prod-1"])
        assert reloaded.name == "Runner II"
        assert [i.id for i in reloaded.images] == ["img-run"]
        assert [r.id for r in reloaded.reviews] == ["rev-1"]
        color = next(p for p in reloaded.properties if p.name == "Color")
        assert [v.value for v in color.values] == ["Red"]

    @pytest.mark.asyncio
    async def test_full_save_round_trips(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"])
        runner.reviews = []

        await seeded.items.save_changes([runner])

        [reloaded] = await seeded.items.get_by_ids(["prod-1"])
        assert reloaded.reviews == []
        assert [i.url for i in reloaded.images] == ["https://cdn.test/img/runner.png"]
        assert seeded.store.table("items")["prod-1"].images[0].url == "img/runner.png"

    @pytest.mark.asyncio
    async def test_missing_code_is_generated(self, seeded):
        product = CatalogProduct(catalog_id="c1", category_id="cat-boots", name="Trail")

        await seeded.items.save_changes([product])

        assert product.id is not None
        assert product.code

    @pytest.mark.asyncio
    async def test_bad_dictionary_value_is_rejected(self, seeded):
        [runner] = await seeded.items.get_by_ids(["prod-1"])
        color = next(p for p in runner.properties if p.name == "Color")
        color.values[0].alias = "Green"
        color.values[0].value = "Green"

        with pytest.raises(ValidationError) as exc_info:
            await seeded.items.save_changes([runner])

        assert exc_info.value.violations == ["product prod-1: property Color: 'green' is not a dictionary value"]
        [runner] = await seeded.items.get_by_ids(["prod-1"])
        assert [v.value for v in runner.properties[0].values] == ["Red"]
