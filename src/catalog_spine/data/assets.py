"""Default asset url resolution and SKU generation."""

from __future__ import annotations

import random
import string
from typing import Any
from urllib.parse import urlsplit


class PrefixUrlResolver:
    """Joins relative asset urls onto a base url; absolute urls pass through."""

    def __init__(self, base_url: str = "") -> None:
        self.base_url = base_url.rstrip("/")

    def get_absolute_url(self, url: str) -> str:
        if not url or urlsplit(url).scheme or url.startswith("//"):
            return url
        if not self.base_url:
            return url
        return f"{self.base_url}/{url.lstrip('/')}"


class DefaultSkuGenerator:
    """Codes shaped like ``ABC-12345678``."""

    LETTERS = 3
    DIGITS = 8

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def generate_sku(self, product: Any) -> str:
        letters = "".join(self._rng.choice(string.ascii_uppercase) for _ in range(self.LETTERS))
        digits = "".join(self._rng.choice(string.digits) for _ in range(self.DIGITS))
        return f"{letters}-{digits}"


__all__ = ["PrefixUrlResolver", "DefaultSkuGenerator"]
