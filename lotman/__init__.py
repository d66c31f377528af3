"""
Django Lotman — lot-tracked inventory ledger and location allocation.

Usage:
    from lotman import inventory, StockError

    inventory.receive('SKU-1', main, quantity=100, location=a1, lot_number='L1')
    inventory.reserve('SKU-1', main, 40, reference='so:42')
    inventory.current_stock('SKU-1', main)  # available 60
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'inventory':
        from lotman.service import Inventory
        return Inventory
    elif name == 'StockError':
        from lotman.exceptions import StockError
        return StockError
    elif name == 'StockLevel':
        from lotman.services.queries import StockLevel
        return StockLevel
    elif name == 'Warehouse':
        from lotman.models.warehouse import Warehouse
        return Warehouse
    elif name == 'Location':
        from lotman.models.location import Location
        return Location
    elif name == 'Lot':
        from lotman.models.lot import Lot
        return Lot
    elif name == 'Movement':
        from lotman.models.movement import Movement
        return Movement
    elif name == 'Reservation':
        from lotman.models.reservation import Reservation
        return Reservation
    elif name == 'StockAlert':
        from lotman.models.alert import StockAlert
        return StockAlert
    elif name in ('LotStatus', 'MovementType', 'LocationKind', 'ReservationStatus'):
        from lotman.models import enums
        return getattr(enums, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'inventory',
    'StockError',
    'StockLevel',
    'Warehouse',
    'Location',
    'Lot',
    'Movement',
    'Reservation',
    'StockAlert',
    'LotStatus',
    'MovementType',
    'LocationKind',
    'ReservationStatus',
]

__version__ = '0.1.0'
