"""
Lotman Models.

Core models for inventory:
- Warehouse: Site that owns locations
- Location: Storage slot with capacity and occupancy
- Lot: Quantity cache per (sku, warehouse, lot, location)
- Movement: Immutable ledger of changes
- Reservation / ReservationLine: Holds on stock
- Operation: Applied write, keyed for idempotent retries
- LedgerSequence: Monotonic movement positions
- StockAlert: Low-stock trigger per SKU
"""

from lotman.models.alert import StockAlert
from lotman.models.enums import (
    LocationKind,
    LotStatus,
    MovementType,
    ReservationStatus,
    WarehouseStatus,
)
from lotman.models.location import Location
from lotman.models.lot import Lot
from lotman.models.movement import Movement
from lotman.models.operation import Operation
from lotman.models.reservation import Reservation, ReservationLine
from lotman.models.sequence import LedgerSequence
from lotman.models.warehouse import Warehouse

__all__ = [
    'WarehouseStatus',
    'LocationKind',
    'LotStatus',
    'MovementType',
    'ReservationStatus',
    'Warehouse',
    'Location',
    'Lot',
    'Movement',
    'Operation',
    'Reservation',
    'ReservationLine',
    'LedgerSequence',
    'StockAlert',
]
