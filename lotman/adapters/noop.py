"""
Noop Product Catalog — Stub adapter for development and testing.

Every SKU is an active, non-hazardous, weightless product.

Usage in settings.py:
    LOTMAN = {
        "PRODUCT_CATALOG": "lotman.adapters.noop.NoopProductCatalog",
    }

WARNING: Do NOT use in production. Capacity checks only see unit counts
and hazardous/temperature compatibility is never enforced.
"""

from __future__ import annotations

from lotman.protocols.catalog import ProductProfile


class NoopProductCatalog:
    """
    No-operation product catalog.

    Implements the ``ProductCatalog`` protocol without any external
    dependencies, for local development and CI.
    """

    def get_profile(self, sku: str) -> ProductProfile | None:
        return ProductProfile(sku=sku, name=sku)
