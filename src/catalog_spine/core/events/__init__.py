"""Change notifications for catalog writes.

Why This Package Exists
-----------------------
Other modules (search indexing, pricing, audit) need to know when catalog
entities change, and sometimes need to stop a change before it is
committed. The writer publishes two events per batch:

- ``<entity>.changing`` before commit; a subscriber may call
  :meth:`ChangeEvent.cancel` to veto the write
- ``<entity>.changed`` after commit and cache invalidation

Usage::

    from catalog_spine.core.events import ChangeEvent
    from catalog_spine.core.events.memory import InMemoryEventBus

    bus = InMemoryEventBus()

    async def on_product_changing(event: ChangeEvent):
        if any(e.new_entry.code == "LOCKED" for e in event.changed_entries):
            event.cancel("product is locked")

    await bus.subscribe("product.changing", on_product_changing)

Modules
-------
memory      InMemoryEventBus -- sequential delivery, single-node
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

__all__ = [
    "Event",
    "ChangeEvent",
    "EntryState",
    "GenericChangedEntry",
    "EventBus",
    "EventHandler",
]

T = TypeVar("T")


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Event envelope.

    Attributes:
        event_type: Dot-separated type (e.g. ``product.changed``)
        source: Origin component
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Optional ID linking related events
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (``*``, ``product.*`` or exact)."""
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


class EntryState(str, Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"


@dataclass
class GenericChangedEntry(Generic[T]):
    """One entity's change: the incoming state, the persisted state, and how."""

    new_entry: T
    entry_state: EntryState
    old_entry: T | None = None


@dataclass
class ChangeEvent(Event):
    """Batch of changed entries for one entity type."""

    changed_entries: list[GenericChangedEntry[Any]] = field(default_factory=list)
    cancelled: bool = False
    cancel_reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Veto the pending change. Only meaningful on ``*.changing`` events."""
        self.cancelled = True
        self.cancel_reason = reason


# ── Type Aliases ─────────────────────────────────────────────────────────

EventHandler = Callable[[Event], Awaitable[None]]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe contract. Publishing awaits every matching handler."""

    async def publish(self, event: Event) -> None:
        ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Subscribe to a pattern; returns a subscription id."""
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        ...

    async def close(self) -> None:
        ...
