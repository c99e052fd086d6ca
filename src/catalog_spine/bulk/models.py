"""Bulk update contracts: contexts, progress, results, actions and data sources."""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from catalog_spine.domain.models import Property


@dataclass
class BulkUpdateContext:
    """What to update: the action by name and the products it runs over."""

    action_name: str
    product_ids: list[str] = field(default_factory=list)


@dataclass
class ChangeCategoryContext(BulkUpdateContext):
    catalog_id: str | None = None
    category_id: str | None = None


@dataclass
class UpdatePropertiesContext(BulkUpdateContext):
    """``properties`` carry the values to set, one property per entry."""

    properties: list[Property] = field(default_factory=list)


@dataclass
class BulkUpdateProgressInfo:
    description: str = ""
    total_count: int = 0
    processed_count: int = 0
    errors: list[str] = field(default_factory=list)

    def snapshot(self) -> BulkUpdateProgressInfo:
        return copy.deepcopy(self)


@dataclass
class ActionResult:
    succeeded: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def success(cls) -> ActionResult:
        return cls()

    @classmethod
    def fail(cls, *errors: str) -> ActionResult:
        return cls(succeeded=False, errors=list(errors))


@runtime_checkable
class BulkUpdateAction(Protocol):
    context: BulkUpdateContext

    async def validate(self) -> ActionResult:
        ...

    async def execute(self, items: list[Any]) -> ActionResult:
        """Apply the action to one page; item-level problems go into the result."""
        ...


@runtime_checkable
class BulkUpdateDataSource(Protocol):
    """Pages over the items an action runs on.

    :meth:`fetch` loads the next page into ``items`` and returns False once
    everything has been served.
    """

    items: list[Any]

    async def fetch(self) -> bool:
        ...

    async def get_total_count(self) -> int:
        ...


ProgressCallback = Callable[[BulkUpdateProgressInfo], Awaitable[None] | None]


__all__ = [
    "BulkUpdateContext",
    "ChangeCategoryContext",
    "UpdatePropertiesContext",
    "BulkUpdateProgressInfo",
    "ActionResult",
    "BulkUpdateAction",
    "BulkUpdateDataSource",
    "ProgressCallback",
]
