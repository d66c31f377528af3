"""
Lotman configuration.

Usage in settings.py:
    LOTMAN = {
        "PRODUCT_CATALOG": "catalog.adapters.LotmanProductCatalog",
        "RESERVATION_TTL_MINUTES": 30,
        "EXPIRED_BATCH_SIZE": 200,
        "LOCK_RETRIES": 3,
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class LotmanSettings:
    """Lotman configuration settings."""

    # Product catalog backend (dotted path)
    PRODUCT_CATALOG: str = ""

    # Default reservation TTL in minutes (0 = no expiration)
    RESERVATION_TTL_MINUTES: int = 0

    # Batch size for release_expired processing
    EXPIRED_BATCH_SIZE: int = 200

    # Row lock attempts before CONCURRENCY_CONFLICT
    LOCK_RETRIES: int = 3

    # Base delay in seconds between lock attempts (doubles each retry)
    LOCK_RETRY_DELAY: float = 0.05

    # Location kinds considered for automatic putaway
    DEFAULT_LOCATION_KINDS: list[str] = field(default_factory=lambda: ['storage'])


def get_lotman_settings() -> LotmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LOTMAN", {})
    return LotmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in LotmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_lotman_settings(), name)


lotman_settings = _LazySettings()
