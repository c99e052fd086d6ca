"""Response groups: which optional sub-graphs a read returns.

Callers pass comma-separated names (``"Info,WithImages"``); unknown names
fall back to the default group instead of failing the request.
"""

from __future__ import annotations

from enum import Flag
from typing import TypeVar

F = TypeVar("F", bound=Flag)


class CategoryResponseGroup(Flag):
    NONE = 0
    INFO = 1
    WITH_IMAGES = 2
    WITH_PROPERTIES = 4
    WITH_LINKS = 8
    WITH_PARENTS = 16
    WITH_OUTLINES = 32
    FULL = INFO | WITH_IMAGES | WITH_PROPERTIES | WITH_LINKS | WITH_PARENTS | WITH_OUTLINES


class ItemResponseGroup(Flag):
    NONE = 0
    ITEM_INFO = 1
    ITEM_ASSETS = 2
    ITEM_PROPERTIES = 4
    ITEM_EDITORIAL_REVIEWS = 8
    WITH_LINKS = 16
    WITH_VARIATIONS = 32
    OUTLINES = 64
    ITEM_SMALL = ITEM_INFO | ITEM_ASSETS
    ITEM_MEDIUM = ITEM_SMALL | ITEM_PROPERTIES | ITEM_EDITORIAL_REVIEWS
    ITEM_LARGE = ITEM_MEDIUM | WITH_LINKS | WITH_VARIATIONS | OUTLINES


def _normalize(name: str) -> str:
    return name.replace("_", "").replace(" ", "").upper()


def parse_flags(flag_type: type[F], value: str | F | None, default: F) -> F:
    """Parse ``"ItemInfo,ItemAssets"`` style strings into a flag.

    Returns ``default`` for empty input or when any name is unknown.
    """
    if value is None:
        return default
    if isinstance(value, flag_type):
        return value

    members = {_normalize(name): member for name, member in flag_type.__members__.items()}
    result = flag_type(0)
    parts = [part.strip() for part in str(value).split(",") if part.strip()]
    if not parts:
        return default
    for part in parts:
        member = members.get(_normalize(part))
        if member is None:
            return default
        result |= member
    return result


def render_flags(value: Flag) -> str:
    """Stable string form for cache keys."""
    return str(value.value)


__all__ = ["CategoryResponseGroup", "ItemResponseGroup", "parse_flags", "render_flags"]
