"""
In-memory record store.

Reference implementation of the :class:`~catalog_spine.core.protocols.RecordStore`
contract, used as the default adapter and by the test suite. Tables are
id-keyed dicts (ids compared case-insensitively); every record handed out is
a copy, so nothing outside a committed session can alter stored state.

Example::

    store = InMemoryRecordStore()
    async with store.session() as session:
        session.add(CatalogRecord(name="Electronics"))
        await session.commit()
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from catalog_spine.core.errors import StoreError
from catalog_spine.core.logging import get_logger
from catalog_spine.domain.records import RECORD_TYPES

logger = get_logger(__name__)


def _key(entity_id: str) -> str:
    return str(entity_id).lower()


def _fold(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _matches(record: Any, criteria: dict[str, Any]) -> bool:
    # String comparisons ignore case, like ids do
    for name, expected in criteria.items():
        actual = _fold(getattr(record, name))
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {_fold(e) for e in expected}:
                return False
        elif actual != _fold(expected):
            return False
    return True


class InMemoryRecordStore:
    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._tables: dict[str, dict[str, Any]] = {kind: {} for kind in RECORD_TYPES}
        self._lock = asyncio.Lock()
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def session(self, *, read_only: bool = False) -> MemorySession:
        return MemorySession(self, read_only=read_only)

    def table(self, kind: str) -> dict[str, Any]:
        try:
            return self._tables[kind]
        except KeyError:
            raise StoreError(f"Unknown record kind {kind!r}") from None

    def seed(self, *records: Any) -> None:
        """Insert records directly, outside any unit of work (bootstrap/tests)."""
        now = datetime.now(UTC)
        for record in records:
            self.assign_ids(record)
            record.created_date = record.created_date or now
            record.modified_date = record.modified_date or now
            self.table(record.KIND)[_key(record.id)] = copy.deepcopy(record)

    def count(self, kind: str) -> int:
        return len(self.table(kind))

    def assign_ids(self, record: Any) -> None:
        """Give the record and every nested part lacking one a fresh id."""
        if getattr(record, "id", "") is None:
            record.id = self._id_factory()
        for f in dataclasses.fields(record):
            value = getattr(record, f.name)
            if isinstance(value, list):
                for item in value:
                    if dataclasses.is_dataclass(item) and hasattr(item, "id") and item.id is None:
                        item.id = self._id_factory()


class MemorySession:
    """Unit of work over :class:`InMemoryRecordStore`.

    Writable sessions track fetched records; :meth:`commit` writes back the
    tracked records that changed, inserts adds, deletes removes, all under
    the store lock. Leaving the context without committing discards
    everything.
    """

    def __init__(self, store: InMemoryRecordStore, *, read_only: bool = False) -> None:
        self._store = store
        self.read_only = read_only
        self._tracked: dict[tuple[str, str], Any] = {}
        self._added: list[Any] = []
        self._removed: list[Any] = []

    async def __aenter__(self) -> MemorySession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        self._reset()

    def _reset(self) -> None:
        self._tracked.clear()
        self._added.clear()
        self._removed.clear()

    def _hand_out(self, kind: str, stored: Any) -> Any:
        if self.read_only:
            return copy.deepcopy(stored)
        key = (kind, _key(stored.id))
        record = self._tracked.get(key)
        if record is None:
            record = self._tracked[key] = copy.deepcopy(stored)
        return record

    async def fetch_by_ids(self, kind: str, ids: list[str]) -> list[Any]:
        wanted = {_key(entity_id) for entity_id in ids if entity_id is not None}
        table = self._store.table(kind)
        # Table order, not request order
        return [self._hand_out(kind, stored) for key, stored in table.items() if key in wanted]

    async def fetch_all(self, kind: str, **criteria: Any) -> list[Any]:
        table = self._store.table(kind)
        return [self._hand_out(kind, stored) for stored in table.values() if _matches(stored, criteria)]

    async def fetch_ids(self, kind: str, **criteria: Any) -> list[str]:
        table = self._store.table(kind)
        return [stored.id for stored in table.values() if _matches(stored, criteria)]

    def add(self, record: Any) -> None:
        if self.read_only:
            raise StoreError("Cannot add records in a read-only session")
        self._added.append(record)

    def remove(self, record: Any) -> None:
        if self.read_only:
            raise StoreError("Cannot remove records in a read-only session")
        self._removed.append(record)

    async def commit(self) -> None:
        if self.read_only:
            raise StoreError("Cannot commit a read-only session")

        async with self._store._lock:
            self._check_conflicts()
            now = datetime.now(UTC)
            removed_keys = {(r.KIND, _key(r.id)) for r in self._removed if r.id is not None}

            for record in self._added:
                self._store.assign_ids(record)
                record.created_date = record.created_date or now
                record.modified_date = now
                self._store.table(record.KIND)[_key(record.id)] = copy.deepcopy(record)

            updated = 0
            for (kind, key), record in self._tracked.items():
                table = self._store.table(kind)
                if (kind, key) in removed_keys or key not in table:
                    continue
                if record != table[key]:
                    self._store.assign_ids(record)
                    record.modified_date = now
                    table[key] = copy.deepcopy(record)
                    updated += 1

            for kind, key in removed_keys:
                self._store.table(kind).pop(key, None)

            logger.debug(
                "store.committed",
                added=len(self._added),
                updated=updated,
                removed=len(removed_keys),
            )
        self._added.clear()
        self._removed.clear()

    def _check_conflicts(self) -> None:
        seen: set[tuple[str, str]] = set()
        for record in self._added:
            if record.id is None:
                continue
            key = (record.KIND, _key(record.id))
            if key in seen or key[1] in self._store.table(record.KIND):
                raise StoreError(f"Duplicate {record.KIND} id {record.id}")
            seen.add(key)


__all__ = ["InMemoryRecordStore", "MemorySession"]
