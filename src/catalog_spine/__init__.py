"""Catalog Spine -- data-access layer for a product catalog.

Reads hand out fully-resolved, cached aggregates (catalogs, categories,
products, property definitions); writes validate, persist atomically,
notify subscribers and invalidate exactly the cache entries they affect.

Architecture::

    core/       errors, logging, settings, cache, events, protocols
    domain/     models, persisted records, response groups
    data/       store, materializer, dependency loader, inheritance,
                outlines, validation, url / sku helpers
    services/   CatalogService, CategoryService, ItemService, PropertyService
    bulk/       bulk update actions, registrar and executor
    module.py   CatalogModule: wires everything from CatalogSettings

Quick start::

    from catalog_spine import CatalogModule

    module = CatalogModule.from_settings()
    products = await module.items.get_by_ids(["p1", "p2"], "ItemInfo,ItemAssets")
"""

from catalog_spine.module import CatalogModule

__version__ = "0.1.0"

__all__ = ["CatalogModule", "__version__"]
