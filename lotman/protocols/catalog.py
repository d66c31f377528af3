"""
Product Catalog Protocol — physical constraints of a product.

Lotman defines this protocol; the product master (catalog app, ERP
service) implements it. The engine only needs what affects placement.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductProfile:
    """Placement-relevant attributes of a SKU."""

    sku: str
    name: str = ''
    is_active: bool = True
    is_hazardous: bool = False
    requires_temperature_control: bool = False
    unit_weight: Decimal = Decimal('0')  # per unit, same unit as Location.max_weight
    unit_volume: Decimal = Decimal('0')  # per unit, same unit as Location.max_volume

    def load_for(self, quantity: Decimal) -> dict[str, Decimal]:
        """Load that ``quantity`` units put on a location."""
        return {
            'quantity': quantity,
            'weight': quantity * self.unit_weight,
            'volume': quantity * self.unit_volume,
        }


@runtime_checkable
class ProductCatalog(Protocol):
    """
    Protocol for product lookups.

    Implementations return None for unknown SKUs.
    """

    def get_profile(self, sku: str) -> ProductProfile | None:
        """
        Get the placement profile of a SKU.

        Args:
            sku: Product code

        Returns:
            ProductProfile or None if not found
        """
        ...
