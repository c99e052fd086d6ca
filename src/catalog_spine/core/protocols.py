"""
Collaborator contracts for the catalog layer.

Every external dependency of the services is a protocol defined here, so
any object with the right shape can be plugged in: the bundled
:class:`~catalog_spine.data.store.InMemoryRecordStore`, a SQL-backed
adapter, or a test double.

Architecture:
    ::

        RecordStore.session(read_only=...) ──► RecordSession (async context manager)
            fetch_by_ids(kind, ids)   → list[record]   (any order)
            fetch_all(kind, **eq)     → list[record]
            fetch_ids(kind, **eq)     → list[str]
            add(record) / remove(record)
            commit()                  → atomic unit of work

        UrlResolver.get_absolute_url(relative_or_absolute) → absolute url
        SkuGenerator.generate_sku(product)                  → code

Guardrails:
    ❌ DON'T: Mutate records fetched in a read-only session and expect them saved
    ✅ DO: Open a writable session for the change writer

Tags:
    protocol, repository, unit-of-work, contracts
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RecordSession(Protocol):
    """One unit of work against the record store.

    ``kind`` is the record table name (``catalogs``, ``categories``,
    ``properties``, ``items``). Records fetched in a writable session are
    tracked: changes made to them are persisted by :meth:`commit`.
    """

    async def fetch_by_ids(self, kind: str, ids: list[str]) -> list[Any]:
        ...

    async def fetch_all(self, kind: str, **criteria: Any) -> list[Any]:
        """Records whose fields equal every criterion.

        A criterion value that is a list/tuple/set matches any member.
        """
        ...

    async def fetch_ids(self, kind: str, **criteria: Any) -> list[str]:
        ...

    def add(self, record: Any) -> None:
        ...

    def remove(self, record: Any) -> None:
        ...

    async def commit(self) -> None:
        """Apply adds, updates and removes atomically; assign missing ids."""
        ...

    async def __aenter__(self) -> RecordSession:
        ...

    async def __aexit__(self, *args: Any) -> None:
        ...


@runtime_checkable
class RecordStore(Protocol):
    def session(self, *, read_only: bool = False) -> RecordSession:
        ...


@runtime_checkable
class UrlResolver(Protocol):
    def get_absolute_url(self, url: str) -> str:
        ...


@runtime_checkable
class SkuGenerator(Protocol):
    def generate_sku(self, product: Any) -> str:
        ...


__all__ = ["RecordSession", "RecordStore", "UrlResolver", "SkuGenerator"]
