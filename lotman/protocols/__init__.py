"""
Lotman Protocols.

Defines interfaces for external system integration.
"""

from lotman.protocols.catalog import ProductCatalog, ProductProfile

__all__ = [
    "ProductCatalog",
    "ProductProfile",
]
