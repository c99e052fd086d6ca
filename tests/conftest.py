"""
Shared pytest fixtures for catalog-spine tests.

This module provides:
- A wired :class:`CatalogModule` over a fresh in-memory store
- A small seeded catalog (two catalogs, a three-level category tree,
  a product with a variation, a linked product)
- A counting store wrapper for asserting batched round trips

Seeded graph::

    c1  (en default, fr)                    v1  (virtual, en)
    │   Season   [Catalog]                   ▲
    │   Color    [Product]  display en/de    │ link
    └── cat-root  tax "goods"               │
        │   Material [Category]              │
        └── cat-shoes                        │
            │   Size [Variation]             │
            ├── prod-1  Runner               │
            │   └── var-1  (Size 42)         │
            └── cat-boots ───────────────────┘
                └── prod-2  Hiker
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure catalog_spine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from catalog_spine.core.settings import CatalogSettings
from catalog_spine.data.store import InMemoryRecordStore
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
from catalog_spine.module import CatalogModule


class CountingStore(InMemoryRecordStore):
    """In-memory store that counts fetches per record kind."""

    def __init__(self) -> None:
        super().__init__()
        self.fetches: list[tuple[str, str]] = []

    def session(self, *, read_only: bool = False):
        session = super().session(read_only=read_only)
        fetches = self.fetches

        original_by_ids = session.fetch_by_ids
        original_all = session.fetch_all

        async def fetch_by_ids(kind: str, ids: list[str]) -> list[Any]:
            fetches.append(("by_ids", kind))
            return await original_by_ids(kind, ids)

        async def fetch_all(kind: str, **criteria: Any) -> list[Any]:
            fetches.append(("all", kind))
            return await original_all(kind, **criteria)

        session.fetch_by_ids = fetch_by_ids
        session.fetch_all = fetch_all
        return session

    def count_fetches(self, kind: str) -> int:
        return sum(1 for _, k in self.fetches if k == kind)


def seed_catalog(store: InMemoryRecordStore) -> None:
    store.seed(
        CatalogRecord(
            id="c1",
            name="Main",
            languages=[CatalogLanguageRecord("en", is_default=True), CatalogLanguageRecord("fr")],
        ),
        CatalogRecord(id="v1", name="Outlet", is_virtual=True, languages=[CatalogLanguageRecord("en", True)]),
        PropertyRecord(id="p-season", catalog_id="c1", name="Season", type="Catalog"),
        PropertyRecord(
            id="p-color",
            catalog_id="c1",
            name="Color",
            type="Product",
            dictionary=True,
            display_names=[PropertyDisplayNameRecord("en", "Colour"), PropertyDisplayNameRecord("de", "Farbe")],
            dictionary_values=[
                PropertyDictionaryValueRecord(id="dv-red", alias="Red", value="Red"),
                PropertyDictionaryValueRecord(id="dv-blue", alias="Blue", value="Blue"),
                PropertyDictionaryValueRecord(id="dv-redwood", alias="Redwood", value="Redwood"),
            ],
        ),
        PropertyRecord(id="p-material", catalog_id="c1", category_id="cat-root", name="Material", type="Category"),
        PropertyRecord(id="p-size", catalog_id="c1", category_id="cat-shoes", name="Size", type="Variation"),
        CategoryRecord(id="cat-root", catalog_id="c1", code="root", name="Root", tax_type="goods"),
        CategoryRecord(
            id="cat-shoes",
            catalog_id="c1",
            parent_category_id="cat-root",
            code="shoes",
            name="Shoes",
            images=[ImageRecord(id="img-shoes", url="img/shoes.png", name="shoes")],
            property_values=[
                PropertyValueRecord(id="pv-material", property_id="p-material", property_name="Material",
                                    value="Leather", value_type="ShortText"),
            ],
        ),
        CategoryRecord(
            id="cat-boots",
            catalog_id="c1",
            parent_category_id="cat-shoes",
            code="boots",
            name="Boots",
            links=[CategoryLinkRecord(id="lnk-boots", target_catalog_id="v1")],
        ),
        ItemRecord(
            id="prod-1",
            catalog_id="c1",
            category_id="cat-shoes",
            code="RUN-1",
            name="Runner",
            vendor="Acme",
            weight=1.2,
            images=[ImageRecord(id="img-run", url="img/runner.png", name="runner")],
            property_values=[
                PropertyValueRecord(id="pv-color", property_id="p-color", property_name="Color", value="Red",
                                    alias="Red"),
            ],
            reviews=[EditorialReviewRecord(id="rev-1", content="Light and fast", review_type="QuickReview")],
        ),
        ItemRecord(
            id="var-1",
            catalog_id="c1",
            category_id="cat-shoes",
            main_product_id="prod-1",
            code="RUN-1-42",
            name="Runner 42",
            property_values=[
                PropertyValueRecord(id="pv-size", property_id="p-size", property_name="Size", value="42"),
            ],
        ),
        ItemRecord(
            id="prod-2",
            catalog_id="c1",
            category_id="cat-boots",
            code="HIKE-1",
            name="Hiker",
            links=[CategoryLinkRecord(id="lnk-hiker", target_catalog_id="v1")],
        ),
    )


@pytest.fixture
def settings() -> CatalogSettings:
    return CatalogSettings(asset_base_url="https://cdn.test", preload_page_size=2, bulk_page_size=50)


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def module(settings: CatalogSettings, store: CountingStore) -> CatalogModule:
    """Wired module over an empty store."""
    return CatalogModule(settings, store=store)


@pytest.fixture
def seeded(module: CatalogModule) -> CatalogModule:
    """Wired module over the seeded catalog graph."""
    seed_catalog(module.store)
    module.store.fetches.clear()
    return module
