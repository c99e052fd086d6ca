"""Tests for catalog_spine.core.events -- ChangeEvent model and InMemoryEventBus."""

import pytest

from catalog_spine.core.events import ChangeEvent, EntryState, Event, GenericChangedEntry
from catalog_spine.core.events.memory import InMemoryEventBus


class TestEventMatches:
    def test_exact_and_wildcards(self):
        event = Event(event_type="product.changed", source="test")
        assert event.matches("product.changed")
        assert event.matches("product.*")
        assert event.matches("*")
        assert not event.matches("category.*")
        assert not event.matches("product.changing")


class TestChangeEvent:
    def test_cancel(self):
        event = ChangeEvent(event_type="product.changing", source="test")
        assert not event.cancelled
        event.cancel("locked")
        assert event.cancelled
        assert event.cancel_reason == "locked"

    def test_entries(self):
        entry = GenericChangedEntry(new_entry="n", entry_state=EntryState.MODIFIED, old_entry="o")
        event = ChangeEvent(event_type="product.changed", source="test", changed_entries=[entry])
        assert event.changed_entries[0].entry_state is EntryState.MODIFIED


class TestInMemoryEventBus:
    @pytest.mark.asyncio
    async def test_publish_reaches_matching_handlers(self):
        bus = InMemoryEventBus()
        received = []

        async def handler(event):
            received.append(event.event_type)

        await bus.subscribe("product.*", handler)
        await bus.publish(Event(event_type="product.changed", source="test"))
        await bus.publish(Event(event_type="category.changed", source="test"))

        assert received == ["product.changed"]

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_delivery(self):
        bus = InMemoryEventBus()
        received = []

        async def broken(event):
            raise RuntimeError("boom")

        async def healthy(event):
            received.append(event)

        await bus.subscribe("*", broken)
        await bus.subscribe("*", healthy)
        await bus.publish(Event(event_type="x", source="test"))

        assert len(received) == 1
        assert bus.failed_deliveries == 1

    @pytest.mark.asyncio
    async def test_handler_can_veto_before_publish_returns(self):
        bus = InMemoryEventBus()

        async def veto(event):
            event.cancel("no")

        await bus.subscribe("product.changing", veto)
        event = ChangeEvent(event_type="product.changing", source="test")
        await bus.publish(event)

        assert event.cancelled

    @pytest.mark.asyncio
    async def test_handlers_run_in_subscription_order(self):
        bus = InMemoryEventBus()
        order = []

        for name in ("first", "second", "third"):
            async def handler(event, name=name):
                order.append(name)

            await bus.subscribe("*", handler)
        await bus.publish(Event(event_type="x", source="test"))

        assert order == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_veto_skips_remaining_handlers(self):
        bus = InMemoryEventBus()
        later = []

        async def veto(event):
            event.cancel()

        async def audit(event):
            later.append(event)

        await bus.subscribe("product.changing", veto)
        await bus.subscribe("product.*", audit)
        await bus.publish(ChangeEvent(event_type="product.changing", source="test"))

        assert later == []

    @pytest.mark.asyncio
    async def test_unsubscribe_and_close(self):
        bus = InMemoryEventBus()
        received = []

        async def handler(event):
            received.append(event)

        sub_id = await bus.subscribe("*", handler)
        assert bus.subscription_count == 1
        await bus.unsubscribe(sub_id)
        await bus.publish(Event(event_type="x", source="test"))
        assert received == []

        await bus.subscribe("*", handler)
        await bus.close()
        await bus.publish(Event(event_type="x", source="test"))
        assert received == []
        assert bus.subscription_count == 0
