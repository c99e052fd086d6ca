"""Entity services: cached reads and evented writes per aggregate."""

from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.categories import CategoryService
from catalog_spine.services.crud import CATALOG_REGION, ITEM_REGION, CrudService
from catalog_spine.services.items import ItemService
from catalog_spine.services.properties import PropertyService

__all__ = [
    "CrudService",
    "CatalogService",
    "CategoryService",
    "ItemService",
    "PropertyService",
    "CATALOG_REGION",
    "ITEM_REGION",
]
