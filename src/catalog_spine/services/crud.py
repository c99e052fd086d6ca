"""
Change writer: the shared save / delete pipeline for catalog entities.

Architecture:
    ::

        save_changes(models)
            before_save(models)                 validation hooks
            ┌─ writable session ───────────────────────────────────┐
            │ fetch persisted records for non-transient models     │
            │ model → record; patch onto original, or add as new   │
            │ publish "<entity>.changing"  (subscribers may veto)  │
            │ commit (atomic)                                      │
            └──────────────────────────────────────────────────────┘
            resolve generated ids back onto models
            clear_cache(models)
            publish "<entity>.changed"

        delete(ids)
            get_by_ids(ids) → Deleted entries → "<entity>.changing"
            remove records (+ cascade hook) → commit
            clear_cache → "<entity>.changed"

Nothing is written when validation fails or a subscriber vetoes the
"changing" event. Store failures other than :class:`CatalogError` are
wrapped in :class:`StoreError` with the original exception as the cause.

Tags:
    crud, unit-of-work, change-events, cache-invalidation
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from catalog_spine.core.cache import PlatformCache
from catalog_spine.core.errors import CatalogError, ChangeVetoedError, ErrorContext, StoreError
from catalog_spine.core.events import ChangeEvent, EntryState, EventBus, GenericChangedEntry
from catalog_spine.core.logging import get_logger
from catalog_spine.core.protocols import RecordSession, RecordStore
from catalog_spine.data.loader import index_by_id
from catalog_spine.data.materializer import PrimaryKeyResolvingMap
from catalog_spine.domain.records import fill_unloaded

logger = get_logger(__name__)

M = TypeVar("M")

CATALOG_REGION = "Catalog"
ITEM_REGION = "Item"


@contextmanager
def store_errors(entity_type: str, operation: str) -> Iterator[None]:
    """Re-raise store failures as :class:`StoreError`; catalog errors pass through."""
    try:
        yield
    except CatalogError:
        raise
    except Exception as e:
        raise StoreError(
            f"Store failure during {entity_type} {operation}",
            context=ErrorContext(entity_type=entity_type, operation=operation),
            cause=e,
        ) from e


class CrudService(Generic[M]):
    """Base class for the entity services.

    Subclasses set ``entity_type`` / ``record_kind`` and implement the
    record conversions and :meth:`get_by_ids`.
    """

    entity_type: str = "entity"
    record_kind: str = ""

    def __init__(self, store: RecordStore, cache: PlatformCache, events: EventBus) -> None:
        self._store = store
        self._cache = cache
        self._events = events

    # ── to implement ──────────────────────────────────────────────────

    async def get_by_ids(self, ids: Sequence[str]) -> list[M]:
        raise NotImplementedError

    def to_record(self, model: M, pk_map: PrimaryKeyResolvingMap) -> Any:
        raise NotImplementedError

    def to_model(self, record: Any) -> M:
        raise NotImplementedError

    def clear_cache(self, models: Sequence[M]) -> None:
        self._cache.expire_region(CATALOG_REGION)

    # ── hooks ─────────────────────────────────────────────────────────

    async def before_save(self, models: Sequence[M]) -> None:
        """Validate incoming models; raise to abort the save."""

    async def before_delete(self, session: RecordSession, ids: Sequence[str]) -> None:
        """Stage extra removals that must commit with the delete."""

    # ── reads ─────────────────────────────────────────────────────────

    async def get_by_id(self, entity_id: str) -> M | None:
        found = await self.get_by_ids([entity_id])
        return found[0] if found else None

    # ── writes ────────────────────────────────────────────────────────

    async def save_changes(self, models: Sequence[M]) -> None:
        models = list(models)
        if not models:
            return
        await self.before_save(models)

        pk_map = PrimaryKeyResolvingMap()
        changed_entries: list[GenericChangedEntry[M]] = []

        async with self._store.session() as session:
            existing_ids = [m.id for m in models if not m.is_transient()]
            originals = index_by_id(await self._fetch(session, existing_ids)) if existing_ids else {}

            for model in models:
                modified = self.to_record(model, pk_map)
                original = originals.get(model.id.lower()) if model.id else None
                if original is not None:
                    changed_entries.append(
                        GenericChangedEntry(model, EntryState.MODIFIED, old_entry=self.to_model(original))
                    )
                    modified.patch(original)
                else:
                    session.add(fill_unloaded(modified))
                    changed_entries.append(GenericChangedEntry(model, EntryState.ADDED))

            await self._publish("changing", changed_entries)
            await self._commit(session, "save")

        pk_map.resolve_primary_keys()
        self.clear_cache(models)
        logger.info(
            "changes.committed",
            entity_type=self.entity_type,
            added=sum(1 for e in changed_entries if e.entry_state is EntryState.ADDED),
            modified=sum(1 for e in changed_entries if e.entry_state is EntryState.MODIFIED),
        )
        await self._publish("changed", changed_entries)

    async def delete(self, ids: Sequence[str]) -> None:
        ids = [i for i in ids if i]
        if not ids:
            return
        models = await self.get_by_ids(ids)
        changed_entries = [GenericChangedEntry(m, EntryState.DELETED, old_entry=m) for m in models]

        async with self._store.session() as session:
            await self._publish("changing", changed_entries)
            for record in await self._fetch(session, ids):
                session.remove(record)
            await self.before_delete(session, ids)
            await self._commit(session, "delete")

        self.clear_cache(models)
        logger.info("changes.deleted", entity_type=self.entity_type, deleted=len(models))
        await self._publish("changed", changed_entries)

    # ── internals ─────────────────────────────────────────────────────

    async def _fetch(self, session: RecordSession, ids: Sequence[str]) -> list[Any]:
        with store_errors(self.entity_type, "fetch"):
            return await session.fetch_by_ids(self.record_kind, list(ids))

    async def _commit(self, session: RecordSession, operation: str) -> None:
        with store_errors(self.entity_type, operation):
            await session.commit()

    async def _publish(self, phase: str, entries: list[GenericChangedEntry[M]]) -> None:
        event = ChangeEvent(
            event_type=f"{self.entity_type}.{phase}",
            source=type(self).__name__,
            payload={"count": len(entries)},
            changed_entries=entries,
        )
        await self._events.publish(event)
        if phase == "changing" and event.cancelled:
            logger.warning("changes.vetoed", event_type=event.event_type, reason=event.cancel_reason)
            raise ChangeVetoedError(event.event_type, event.cancel_reason)


__all__ = ["CrudService", "store_errors", "CATALOG_REGION", "ITEM_REGION"]
