"""
Structured error types for the catalog data-access layer.

Every failure raised by the read and write paths derives from
:class:`CatalogError` so callers can tell a broken reference from a rejected
payload from a store outage without parsing messages.

Manifesto:
    A caller must receive either a fully-resolved entity graph or a clear
    failure naming what went wrong. Errors therefore carry:

    - **Category:** what kind of failure (resolution, validation, store ...)
    - **Context:** entity type, entity id, owner id and free-form metadata
    - **Cause:** the chained underlying exception, if any

Architecture:
    ::

        CatalogError
        ├── ResolutionError          referenced id does not resolve
        ├── ValidationError          incoming entities violate rules
        ├── ConfigError
        │   └── CyclicHierarchyError parent chain loops back on itself
        ├── StoreError               persistence failure (fetch / commit)
        ├── OperationCancelledError  cooperative cancellation
        └── ChangeVetoedError        a "changing" subscriber cancelled the write

Examples:
    >>> err = ResolutionError("catalog", "c-9", owner_id="cat-1")
    >>> err.entity_id
    'c-9'
    >>> err.to_dict()["category"]
    'RESOLUTION'

Tags:
    error-handling, exception-hierarchy, catalog, resolution, validation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    RESOLUTION = "RESOLUTION"     # Dangling catalog / category / link reference
    VALIDATION = "VALIDATION"     # Structural or property-schema violations
    CONFIG = "CONFIG"             # Broken catalog configuration (cycles)
    STORAGE = "STORAGE"           # Record store fetch / commit failures
    CANCELLED = "CANCELLED"       # Cooperative cancellation
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        entity_type: Kind of entity being processed ("category", "product" ...)
        entity_id: Id of the entity the error is about
        owner_id: Id of the entity holding the failing reference
        operation: Service operation in progress ("get_by_ids", "save_changes")
        metadata: Additional key-value pairs
    """

    entity_type: str | None = None
    entity_id: str | None = None
    owner_id: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity_type", "entity_id", "owner_id", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CatalogError(Exception):
    """
    Base exception for all catalog errors.

    Subclasses set ``default_category`` so most call sites only pass a
    message. ``cause`` is chained into ``__cause__`` for tracebacks.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CatalogError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StoreError("commit failed").with_context(operation="save_changes")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================


class ResolutionError(CatalogError):
    """
    A referenced id does not resolve to an existing entity.

    Raised by the dependency loader when a catalog, category, parent or link
    target is missing. Never skipped silently: the whole read or write is
    aborted so no caller sees a partially-wired object.
    """

    default_category = ErrorCategory.RESOLUTION

    def __init__(
        self,
        field: str,
        entity_id: str,
        *,
        owner_id: str | None = None,
        message: str | None = None,
        **kwargs: Any,
    ):
        if message is None:
            message = f"{field} with key {entity_id} doesn't exist"
            if owner_id is not None:
                message = f"{message} (referenced by {owner_id})"
        super().__init__(message, **kwargs)
        self.field = field
        self.entity_id = entity_id
        self.owner_id = owner_id
        self.context.entity_id = entity_id
        self.context.owner_id = owner_id

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        return result


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(CatalogError):
    """
    Incoming entities failed structural or property-schema validation.

    ``violations`` holds every rule broken across the batch; the message
    lists them one per line.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        violations: list[str] | None = None,
        **kwargs: Any,
    ):
        self.violations = list(violations or [])
        if self.violations:
            message = "\n".join([message, *self.violations])
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["violations"] = self.violations
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CatalogError):
    """Catalog configuration is broken."""

    default_category = ErrorCategory.CONFIG


class CyclicHierarchyError(ConfigError):
    """A category's parent chain leads back to itself."""

    def __init__(self, category_id: str, chain: list[str], **kwargs: Any):
        path = " -> ".join([*chain, category_id])
        super().__init__(f"Cyclic parent chain detected for category {category_id}: {path}", **kwargs)
        self.category_id = category_id
        self.chain = chain
        self.context.entity_type = "category"
        self.context.entity_id = category_id


# =============================================================================
# STORAGE / FLOW CONTROL
# =============================================================================


class StoreError(CatalogError):
    """Underlying record store failed during fetch or commit. Not retried here."""

    default_category = ErrorCategory.STORAGE


class OperationCancelledError(CatalogError):
    """Cancellation was requested on a long-running operation."""

    default_category = ErrorCategory.CANCELLED


class ChangeVetoedError(CatalogError):
    """A subscriber cancelled a pending change before commit."""

    default_category = ErrorCategory.CANCELLED

    def __init__(self, event_type: str, reason: str | None = None, **kwargs: Any):
        message = f"Change cancelled by subscriber of {event_type}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, **kwargs)
        self.event_type = event_type
        self.reason = reason


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CatalogError):
        return error.category
    if isinstance(error, (KeyError, LookupError)):
        return ErrorCategory.RESOLUTION
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CatalogError",
    "ResolutionError",
    "ValidationError",
    "ConfigError",
    "CyclicHierarchyError",
    "StoreError",
    "OperationCancelledError",
    "ChangeVetoedError",
    "categorize_error",
]
