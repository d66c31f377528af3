"""
Lotman Adapters.

Implementations of protocols for external systems.
"""

from lotman.adapters.catalog import (
    get_product_catalog,
    profile_for_release,
    reset_product_catalog,
    resolve_profile,
)

__all__ = [
    "get_product_catalog",
    "profile_for_release",
    "reset_product_catalog",
    "resolve_profile",
]
