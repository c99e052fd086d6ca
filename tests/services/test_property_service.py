"""Tests for PropertyService: uncached reads, writes that expire catalog data, dictionary search."""

import pytest

from catalog_spine.core.errors import ResolutionError, ValidationError
from catalog_spine.domain.models import Property, PropertyType


class TestPropertyReads:
    @pytest.mark.asyncio
    async def test_get_by_ids_wires_catalog(self, seeded):
        [color] = await seeded.properties.get_by_ids(["p-color"])

        assert color.catalog.id == "c1"
        assert color.type is PropertyType.PRODUCT
        assert [(d.language_code, d.name) for d in color.display_names] == [("en", "Colour"), ("fr", None)]
        assert [v.value for v in color.dictionary_values] == ["Red", "Blue", "Redwood"]

    @pytest.mark.asyncio
    async def test_reads_are_not_cached(self, seeded):
        await seeded.properties.get_by_ids(["p-color"])
        await seeded.properties.get_by_ids(["p-color"])
        assert seeded.store.count_fetches("properties") >= 2

    @pytest.mark.asyncio
    async def test_catalog_properties_include_category_level(self, seeded):
        found = await seeded.properties.get_all_catalog_properties("c1")
        assert sorted(p.name for p in found) == ["Color", "Material", "Season", "Size"]

    @pytest.mark.asyncio
    async def test_all_properties(self, seeded):
        assert len(await seeded.properties.get_all_properties()) == 4


class TestPropertyWrites:
    @pytest.mark.asyncio
    async def test_create_requires_catalog(self, seeded):
        with pytest.raises(ValidationError):
            await seeded.properties.create(Property(name="Brand"))

    @pytest.mark.asyncio
    async def test_create_returns_loaded_property(self, seeded):
        created = await seeded.properties.create(Property(catalog_id="c1", name="Brand"))

        assert created.id is not None
        assert created.catalog.id == "c1"
        assert seeded.store.count("properties") == 5

    @pytest.mark.asyncio
    async def test_new_required_property_applies_to_products(self, seeded):
        """Creating a definition expires cached products so the next save sees it."""
        await seeded.items.get_by_ids(["prod-2"])
        await seeded.properties.create(Property(catalog_id="c1", name="Brand", required=True))

        [hiker] = await seeded.items.get_by_ids(["prod-2"])
        assert "Brand" in [p.name for p in hiker.properties]
        with pytest.raises(ValidationError) as exc_info:
            await seeded.items.save_changes([hiker])
        assert exc_info.value.violations == ["product prod-2: property Brand is required"]

    @pytest.mark.asyncio
    async def test_update_refreshes_catalog(self, seeded):
        await seeded.catalogs.get_by_ids(["c1"])
        [season] = await seeded.properties.get_by_ids(["p-season"])
        season.name = "Collection"

        await seeded.properties.update([season])

        [catalog] = await seeded.catalogs.get_by_ids(["c1"])
        assert sorted(p.name for p in catalog.properties) == ["Collection", "Color"]


class TestSearchDictionaryValues:
    @pytest.mark.asyncio
    async def test_keyword_matches_case_insensitively(self, seeded):
        found = await seeded.properties.search_dictionary_values("p-color", "red")
        assert [v.value for v in found] == ["Red", "Redwood"]

    @pytest.mark.asyncio
    async def test_no_keyword_returns_all(self, seeded):
        assert len(await seeded.properties.search_dictionary_values("p-color")) == 3

    @pytest.mark.asyncio
    async def test_unknown_property(self, seeded):
        with pytest.raises(ResolutionError):
            await seeded.properties.search_dictionary_values("nope", "red")
