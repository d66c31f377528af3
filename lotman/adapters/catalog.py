"""
Product catalog loader.

Loads the configured ProductCatalog from settings.

Usage:
    from lotman.adapters import get_product_catalog

    profile = get_product_catalog().get_profile("SKU-001")

Settings:
    LOTMAN = {
        "PRODUCT_CATALOG": "catalog.adapters.LotmanProductCatalog",
    }

If PRODUCT_CATALOG is not configured, get_product_catalog() raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from lotman.conf import lotman_settings
from lotman.exceptions import StockError
from lotman.protocols.catalog import ProductCatalog, ProductProfile

logger = logging.getLogger(__name__)


# Cached catalog instance
_lock = threading.Lock()
_product_catalog: ProductCatalog | None = None


def get_product_catalog() -> ProductCatalog:
    """
    Return the configured product catalog.

    Raises:
        ImproperlyConfigured: If PRODUCT_CATALOG is not configured or import fails
    """
    global _product_catalog

    if _product_catalog is None:
        with _lock:
            if _product_catalog is None:  # double-checked
                catalog_path = lotman_settings.PRODUCT_CATALOG

                if not catalog_path:
                    raise ImproperlyConfigured(
                        "LOTMAN['PRODUCT_CATALOG'] must be configured. "
                        "Example: 'lotman.adapters.noop.NoopProductCatalog'"
                    )

                try:
                    catalog_class = import_string(catalog_path)
                    _product_catalog = catalog_class()
                    logger.debug("Loaded product catalog: %s", catalog_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import product catalog '{catalog_path}': {e}"
                    ) from e

    return _product_catalog


def reset_product_catalog() -> None:
    """Reset the cached catalog. Useful for testing."""
    global _product_catalog
    _product_catalog = None


def resolve_profile(sku: str) -> ProductProfile:
    """
    Look up a SKU, failing for unknown or inactive products.

    Raises:
        StockError('UNKNOWN_PRODUCT')
    """
    profile = get_product_catalog().get_profile(sku)
    if profile is None or not profile.is_active:
        raise StockError('UNKNOWN_PRODUCT', sku=sku)
    return profile


def profile_for_release(sku: str) -> ProductProfile:
    """
    Profile used when stock leaves a location.

    Stock already on hand must always be able to leave, so a product
    that was deactivated or dropped from the catalog still resolves (to
    a bare profile when unknown).
    """
    profile = get_product_catalog().get_profile(sku)
    if profile is None:
        logger.warning("Unknown SKU %s on release, using bare profile", sku)
        return ProductProfile(sku=sku)
    return profile
