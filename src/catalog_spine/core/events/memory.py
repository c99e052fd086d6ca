"""
In-memory event bus.

Handlers run one after another inside the publishing task, in subscription
order. For a :class:`ChangeEvent` that a handler cancels, the remaining
handlers are skipped: the change will not happen, so nobody else needs to
react to it. Nothing is persisted.

Tags:
    events, in-memory, asyncio, change-events
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass

from catalog_spine.core.events import ChangeEvent, Event, EventHandler
from catalog_spine.core.logging import get_logger

__all__ = ["InMemoryEventBus"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class Subscription:
    id: str
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """In-process event bus used by default and throughout the tests.

    A handler that raises is logged and skipped; it neither stops delivery
    to the others nor vetoes a change.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self._closed = False
        self.failed_deliveries = 0

    async def publish(self, event: Event) -> None:
        if self._closed:
            return
        async with self._lock:
            targets = [s for s in self._subscriptions.values() if event.matches(s.pattern)]

        for subscription in targets:
            if isinstance(event, ChangeEvent) and event.cancelled:
                logger.debug("events.delivery_stopped", event_type=event.event_type, reason=event.cancel_reason)
                break
            try:
                await subscription.handler(event)
            except Exception as e:
                self.failed_deliveries += 1
                logger.warning(
                    "events.handler_failed",
                    subscription_id=subscription.id,
                    event_type=event.event_type,
                    error=str(e),
                )

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Register ``handler`` for a pattern (``*``, ``product.*`` or exact); returns the subscription id."""
        async with self._lock:
            subscription = Subscription(id=f"sub-{next(self._ids)}", pattern=event_type, handler=handler)
            self._subscriptions[subscription.id] = subscription
        return subscription.id

    async def unsubscribe(self, subscription_id: str) -> None:
        async with self._lock:
            self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        """Drop every subscription; later publishes are ignored."""
        self._closed = True
        async with self._lock:
            self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)
