"""Bulk updates: named actions run chunk by chunk with progress reports.

Usage::

    registrar = BulkUpdateActionRegistrar()
    registrar.register(BulkUpdateActionDefinition(
        name="ChangeCategory",
        action_factory=lambda ctx: ChangeCategoryAction(ctx, items, catalogs, categories),
        data_source_factory=lambda ctx: ProductIdsDataSource(ctx.product_ids, items),
    ))
    executor = BulkUpdateActionExecutor(registrar, cache)
    await executor.execute(ChangeCategoryContext("ChangeCategory", ids, catalog_id="c2"), print)
"""

from catalog_spine.bulk.actions import (
    CHANGE_CATEGORY,
    UPDATE_PROPERTIES,
    ChangeCategoryAction,
    ProductIdsDataSource,
    UpdatePropertiesAction,
)
from catalog_spine.bulk.executor import BulkUpdateActionExecutor
from catalog_spine.bulk.models import (
    ActionResult,
    BulkUpdateAction,
    BulkUpdateContext,
    BulkUpdateDataSource,
    BulkUpdateProgressInfo,
    ChangeCategoryContext,
    ProgressCallback,
    UpdatePropertiesContext,
)
from catalog_spine.bulk.registrar import BulkUpdateActionDefinition, BulkUpdateActionRegistrar

__all__ = [
    "ActionResult",
    "BulkUpdateAction",
    "BulkUpdateActionDefinition",
    "BulkUpdateActionExecutor",
    "BulkUpdateActionRegistrar",
    "BulkUpdateContext",
    "BulkUpdateDataSource",
    "BulkUpdateProgressInfo",
    "CHANGE_CATEGORY",
    "ChangeCategoryAction",
    "ChangeCategoryContext",
    "ProductIdsDataSource",
    "ProgressCallback",
    "UPDATE_PROPERTIES",
    "UpdatePropertiesAction",
    "UpdatePropertiesContext",
]
