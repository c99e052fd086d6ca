"""
Region-aware memory cache with exclusive get-or-create.

The read paths memoize fully-resolved aggregates here. Entries carry change
tokens; an entry is served only while none of its tokens has fired.

Manifesto:
    Loading a product graph costs several batched store round trips plus
    inheritance resolution, so results are cached aggressively. Aggressive
    caching is only safe when writes can invalidate precisely:

    - **Region tokens:** expire every entry of a region ("Catalog") at once
    - **Entity tokens:** expire entries tied to one id, nothing else
    - **Tokens for absent ids:** a cached "not found" still gets a token
      for the id, so creating that entity later invalidates it
    - **Exclusive creation:** concurrent misses on one key await a single
      computation instead of stampeding the store

Architecture:
    ::

        PlatformCache
        ├── backend: CacheBackend       (InMemoryCache: LRU + optional TTL)
        ├── regions: name → CacheRegion
        │       region token  ──┐
        │       entity tokens ──┴─► CompositeChangeToken on CacheEntry
        └── get_or_create(key, factory)
                hit  → entry.value
                miss → per-key lock → re-check → factory(entry) → store

Examples:
    >>> cache = PlatformCache()
    >>> region = cache.region("Item")
    >>> async def load(entry):
    ...     entry.add_expiration_token(region.create_change_token(["p1"]))
    ...     return {"id": "p1"}
    >>> await cache.get_or_create("items:p1", load)
    {'id': 'p1'}
    >>> region.expire_entity("p1")   # next get_or_create reloads

Tags:
    cache, caching, invalidation, change-token, stampede, asyncio
"""

from __future__ import annotations

import asyncio
import json
import time
import weakref
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from catalog_spine.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CacheBackend(Protocol):
    """Protocol for cache storage backends.

    Values are stored as-is (no serialization), keys are strings.
    """

    def get(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` if missing or expired."""
        ...

    def set(self, key: str, value: Any, *, ttl_seconds: int | None = None) -> None:
        """Store a value with optional TTL (``None`` → backend default)."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. No-op if key does not exist."""
        ...

    def exists(self, key: str) -> bool:
        """Check if a key exists and has not expired."""
        ...

    def clear(self) -> None:
        """Remove all keys."""
        ...


# ------------------------------------------------------------------ #
# In-Memory Backend
# ------------------------------------------------------------------ #


class InMemoryCache:
    """Bounded in-memory cache with TTL support.

    Uses LRU eviction when ``max_size`` is reached. TTL cleanup is lazy
    (checked on access).

    Example:
        cache = InMemoryCache(max_size=500, default_ttl_seconds=1800)
        cache.set("catalogs:c1", catalog, ttl_seconds=3600)
    """

    def __init__(
        self,
        *,
        max_size: int = 10_000,
        default_ttl_seconds: int | None = None,
    ):
        self._store: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._max_size = max_size
        self._default_ttl = default_ttl_seconds

    def get(self, key: str) -> Any | None:
        if not self.exists(key):
            return None
        self._store.move_to_end(key)
        return self._store[key][0]

    def set(self, key: str, value: Any, *, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = (time.monotonic() + ttl) if ttl else None

        if key not in self._store and len(self._store) >= self._max_size:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("cache.evicted", key=evicted)

        self._store[key] = (value, expires_at)
        self._store.move_to_end(key)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def exists(self, key: str) -> bool:
        if key not in self._store:
            return False
        _, expires_at = self._store[key]
        if expires_at is not None and time.monotonic() > expires_at:
            self.delete(key)
            return False
        return True

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        """Return current number of cached keys."""
        return len(self._store)


# ------------------------------------------------------------------ #
# Change tokens and regions
# ------------------------------------------------------------------ #


class ChangeToken:
    """One-shot invalidation signal. Once expired it stays expired."""

    __slots__ = ("has_changed", "__weakref__")

    def __init__(self) -> None:
        self.has_changed = False

    def expire(self) -> None:
        self.has_changed = True


class CompositeChangeToken:
    """Fires when any of its member tokens fires."""

    __slots__ = ("tokens",)

    def __init__(self, tokens: Iterable[ChangeToken]) -> None:
        self.tokens = tuple(tokens)

    @property
    def has_changed(self) -> bool:
        return any(token.has_changed for token in self.tokens)


class CacheRegion:
    """A named group of entries that can be expired together or per entity.

    Tokens handed out by :meth:`create_change_token` always include the
    region-wide token, so :meth:`expire_region` invalidates entity-scoped
    entries too.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._region_token = ChangeToken()
        # Held weakly: a token lives only as long as some cached entry holds it
        self._entity_tokens: weakref.WeakValueDictionary[str, ChangeToken] = weakref.WeakValueDictionary()

    def create_change_token(self, ids: Iterable[Any] | None = None) -> CompositeChangeToken:
        """Token for the whole region, optionally also bound to entity ids.

        ``ids`` may hold plain ids or objects exposing ``.id``. Ids that do
        not exist (yet) still get a token.
        """
        tokens = [self._region_token]
        for item in ids or ():
            entity_id = _entity_key(item)
            if entity_id is None:
                continue
            token = self._entity_tokens.get(entity_id)
            if token is None:
                token = self._entity_tokens[entity_id] = ChangeToken()
            tokens.append(token)
        return CompositeChangeToken(tokens)

    def expire_region(self) -> None:
        """Invalidate every entry bound to this region."""
        self._region_token.expire()
        self._region_token = ChangeToken()
        self._entity_tokens.clear()
        logger.debug("cache.region_expired", region=self.name)

    def expire_entity(self, entity: Any) -> None:
        """Invalidate entries bound to one entity id, leaving others alone."""
        entity_id = _entity_key(entity)
        if entity_id is None:
            return
        token = self._entity_tokens.pop(entity_id, None)
        if token is not None:
            token.expire()
            logger.debug("cache.entity_expired", region=self.name, entity_id=entity_id)

    @property
    def entity_token_count(self) -> int:
        return len(self._entity_tokens)


def _entity_key(item: Any) -> str | None:
    entity_id = getattr(item, "id", item)
    return None if entity_id is None else str(entity_id).lower()


@dataclass
class CacheEntry:
    """Value plus the change tokens that govern its lifetime."""

    key: str
    value: Any = None
    tokens: list[Any] = field(default_factory=list)

    def add_expiration_token(self, token: ChangeToken | CompositeChangeToken) -> CacheEntry:
        self.tokens.append(token)
        return self

    @property
    def is_expired(self) -> bool:
        return any(token.has_changed for token in self.tokens)


class CacheKey:
    """Composite cache key builder."""

    @staticmethod
    def with_(*parts: Any) -> str:
        """Join parts into a key: types by name, iterables as JSON arrays, None as empty."""
        rendered = []
        for part in parts:
            if part is None:
                rendered.append("")
            elif isinstance(part, type):
                rendered.append(part.__name__)
            elif isinstance(part, (list, tuple, set, frozenset)):
                items = sorted(part, key=str) if isinstance(part, (set, frozenset)) else part
                rendered.append(json.dumps([str(p) for p in items]))
            else:
                rendered.append(str(part))
        return ":".join(rendered)


# ------------------------------------------------------------------ #
# Platform cache
# ------------------------------------------------------------------ #


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class PlatformCache:
    """Shared memoization layer for the catalog services.

    Holds the process-wide region table; regions are created lazily on
    first use and only ever mutated through expiration.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        *,
        ttl_seconds: int | None = None,
    ) -> None:
        self._backend: CacheBackend = backend or InMemoryCache()
        self._ttl_seconds = ttl_seconds
        self._regions: dict[str, CacheRegion] = {}
        self._key_locks: dict[str, _KeyLock] = {}

    def region(self, name: str) -> CacheRegion:
        """Return (creating on first use) the named region."""
        region = self._regions.get(name)
        if region is None:
            region = self._regions[name] = CacheRegion(name)
        return region

    def expire_region(self, name: str) -> None:
        self.region(name).expire_region()

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._backend.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            self._backend.delete(key)
            return None
        return entry

    def try_get(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)`` without computing anything."""
        entry = self._lookup(key)
        if entry is None:
            return False, None
        return True, entry.value

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[CacheEntry], Awaitable[T]],
    ) -> T:
        """Return the cached value for ``key`` or compute it exactly once.

        ``factory`` receives the new :class:`CacheEntry` so it can attach
        expiration tokens. Concurrent callers for the same key wait on the
        in-flight computation. If a token fires while the factory runs the
        result is returned but not stored.
        """
        entry = self._lookup(key)
        if entry is not None:
            return entry.value

        key_lock = self._key_locks.get(key)
        if key_lock is None:
            key_lock = self._key_locks[key] = _KeyLock()
        key_lock.users += 1
        try:
            async with key_lock.lock:
                entry = self._lookup(key)
                if entry is not None:
                    return entry.value

                logger.debug("cache.miss", key=key)
                entry = CacheEntry(key=key)
                entry.value = await factory(entry)
                if entry.is_expired:
                    logger.debug("cache.discarded_stale", key=key)
                else:
                    self._backend.set(key, entry, ttl_seconds=self._ttl_seconds)
                return entry.value
        finally:
            key_lock.users -= 1
            if key_lock.users == 0:
                self._key_locks.pop(key, None)

    def remove(self, key: str) -> None:
        self._backend.delete(key)

    def clear(self) -> None:
        """Drop every entry and region (teardown / tests)."""
        self._backend.clear()
        for region in self._regions.values():
            region.expire_region()
        self._regions.clear()


__all__ = [
    "CacheBackend",
    "InMemoryCache",
    "ChangeToken",
    "CompositeChangeToken",
    "CacheRegion",
    "CacheEntry",
    "CacheKey",
    "PlatformCache",
]
