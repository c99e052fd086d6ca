"""Registry of bulk update actions by name."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from catalog_spine.bulk.models import BulkUpdateAction, BulkUpdateContext, BulkUpdateDataSource
from catalog_spine.core.errors import ConfigError
from catalog_spine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class BulkUpdateActionDefinition:
    name: str
    action_factory: Callable[[BulkUpdateContext], BulkUpdateAction]
    data_source_factory: Callable[[BulkUpdateContext], BulkUpdateDataSource] | None = None
    applicable_types: list[str] = field(default_factory=lambda: ["CatalogProduct"])


class BulkUpdateActionRegistrar:
    def __init__(self) -> None:
        self._definitions: dict[str, BulkUpdateActionDefinition] = {}

    def register(self, definition: BulkUpdateActionDefinition) -> BulkUpdateActionDefinition:
        if definition.name in self._definitions:
            raise ConfigError(f"Bulk update action {definition.name!r} is already registered")
        self._definitions[definition.name] = definition
        logger.debug("bulk_update.action_registered", action=definition.name)
        return definition

    def get_by_name(self, name: str) -> BulkUpdateActionDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise ConfigError(f"Bulk update action {name!r} is not registered") from None

    def get_all(self) -> list[BulkUpdateActionDefinition]:
        return list(self._definitions.values())


__all__ = ["BulkUpdateActionDefinition", "BulkUpdateActionRegistrar"]
