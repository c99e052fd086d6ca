"""Built-in bulk update actions and data sources."""

from __future__ import annotations

from collections.abc import Sequence

from catalog_spine.bulk.models import ActionResult, ChangeCategoryContext, UpdatePropertiesContext
from catalog_spine.core.errors import CatalogError
from catalog_spine.domain.models import CatalogProduct, PropertyType, PropertyValue
from catalog_spine.domain.response_groups import ItemResponseGroup
from catalog_spine.services.catalogs import CatalogService
from catalog_spine.services.categories import CategoryService
from catalog_spine.services.items import ItemService
from catalog_spine.services.properties import PropertyService

CHANGE_CATEGORY = "ChangeCategory"
UPDATE_PROPERTIES = "UpdateProperties"


class ProductIdsDataSource:
    """Serves products for an explicit id list, one page per :meth:`fetch`."""

    def __init__(
        self,
        ids: Sequence[str],
        items: ItemService,
        *,
        page_size: int = 50,
        response_group: ItemResponseGroup = ItemResponseGroup.ITEM_INFO | ItemResponseGroup.ITEM_PROPERTIES,
    ) -> None:
        self._ids = list(ids)
        self._items = items
        self._page_size = page_size
        self._response_group = response_group
        self._offset = 0
        self.items: list[CatalogProduct] = []

    async def get_total_count(self) -> int:
        return len(self._ids)

    async def fetch(self) -> bool:
        if self._offset >= len(self._ids):
            self.items = []
            return False
        page = self._ids[self._offset:self._offset + self._page_size]
        self._offset += len(page)
        self.items = await self._items.get_by_ids(page, self._response_group)
        return True


class ChangeCategoryAction:
    """Moves products into a catalog, optionally under a category."""

    def __init__(
        self,
        context: ChangeCategoryContext,
        items: ItemService,
        catalogs: CatalogService,
        categories: CategoryService,
    ) -> None:
        self.context = context
        self._items = items
        self._catalogs = catalogs
        self._categories = categories

    async def validate(self) -> ActionResult:
        if not self.context.catalog_id:
            return ActionResult.fail("Target catalog id is required.")
        catalog = await self._catalogs.get_by_id(self.context.catalog_id)
        if catalog is None:
            return ActionResult.fail(f"Catalog {self.context.catalog_id} doesn't exist.")
        if catalog.is_virtual:
            return ActionResult.fail(f"Products cannot be moved into virtual catalog {catalog.id}.")

        if self.context.category_id:
            found = await self._categories.get_by_ids([self.context.category_id], "Info")
            if not found:
                return ActionResult.fail(f"Category {self.context.category_id} doesn't exist.")
            if (found[0].catalog_id or "").lower() != catalog.id.lower():
                return ActionResult.fail(
                    f"Category {self.context.category_id} does not belong to catalog {catalog.id}."
                )
        return ActionResult.success()

    async def execute(self, items: list[CatalogProduct]) -> ActionResult:
        for product in items:
            product.catalog_id = self.context.catalog_id
            product.category_id = self.context.category_id
        try:
            await self._items.save_changes(items)
        except CatalogError as e:
            return ActionResult.fail(str(e))
        return ActionResult.success()


class UpdatePropertiesAction:
    """Sets property values on products.

    Each context property carries the values to write; a product that has no
    such property (own or inherited) is reported and left unchanged.
    """

    def __init__(self, context: UpdatePropertiesContext, items: ItemService, properties: PropertyService) -> None:
        self.context = context
        self._items = items
        self._properties = properties

    async def validate(self) -> ActionResult:
        if not self.context.properties:
            return ActionResult.fail("No properties to update.")
        ids = [p.id for p in self.context.properties if p.id]
        known = {p.id.lower() for p in await self._properties.get_by_ids(ids)}
        missing = [i for i in ids if i.lower() not in known]
        if missing:
            return ActionResult.fail(*(f"Property {i} doesn't exist." for i in missing))
        return ActionResult.success()

    async def execute(self, items: list[CatalogProduct]) -> ActionResult:
        errors: list[str] = []
        changed: list[CatalogProduct] = []
        for product in items:
            product_errors = self._apply(product)
            if product_errors:
                errors.extend(product_errors)
            else:
                changed.append(product)

        if changed:
            try:
                await self._items.save_changes(changed)
            except CatalogError as e:
                errors.append(str(e))
        return ActionResult(succeeded=not errors, errors=errors)

    def _apply(self, product: CatalogProduct) -> list[str]:
        errors = []
        for source in self.context.properties:
            target = next(
                (p for p in product.properties if p.is_same(source, PropertyType.PRODUCT, PropertyType.VARIATION)),
                None,
            )
            if target is None:
                errors.append(f"Property {source.name or source.id} is not available for product {product.id}.")
                continue
            target.values = [
                PropertyValue(
                    property_id=target.id,
                    property_name=target.name,
                    value=value.value,
                    alias=value.alias,
                    language_code=value.language_code,
                    value_type=target.value_type,
                )
                for value in source.values
            ]
        return errors


__all__ = [
    "CHANGE_CATEGORY",
    "UPDATE_PROPERTIES",
    "ProductIdsDataSource",
    "ChangeCategoryAction",
    "UpdatePropertiesAction",
]
