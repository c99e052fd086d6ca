"""Settings for the catalog data-access layer.

Values come from ``CATALOG_``-prefixed environment variables or a ``.env``
file, validated by pydantic at startup::

    CATALOG_CACHE_MAX_SIZE=50000
    CATALOG_BULK_PAGE_SIZE=100
    CATALOG_ASSET_BASE_URL=https://cdn.example.com/assets

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CatalogSettings(BaseSettings):
    """Runtime configuration.

    Fields
    ──────
    service_name      : Service name stamped on every log line
    log_level         : Structlog log level
    json_logs         : Force JSON (True) / console (False) logs; None = auto
    cache_max_size    : Entries kept before LRU eviction
    cache_ttl_seconds : Absolute lifetime of cache entries; None = until invalidated
    preload_page_size : Page size used when preloading categories
    bulk_page_size    : Chunk size for bulk update data sources
    asset_base_url    : Base URL prepended to relative image urls
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    service_name: str = "catalog"
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Cache ────────────────────────────────────────────────────
    cache_max_size: int = Field(default=10_000, gt=0)
    cache_ttl_seconds: int | None = Field(default=None, gt=0)

    # ── Loading ──────────────────────────────────────────────────
    preload_page_size: int = Field(default=50, gt=0)
    bulk_page_size: int = Field(default=50, gt=0)

    # ── Assets ───────────────────────────────────────────────────
    asset_base_url: str = ""


@lru_cache(maxsize=1)
def get_settings() -> CatalogSettings:
    """Process-wide settings instance (read once)."""
    return CatalogSettings()


__all__ = ["CatalogSettings", "get_settings"]
