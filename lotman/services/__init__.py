"""
Stock services — modular organization of stock operations.

Re-exports the service classes:
    from lotman.services import StockQueries, StockMovements, StockReservations
"""

from lotman.services.movements import StockMovements
from lotman.services.queries import StockLevel, StockQueries
from lotman.services.reservations import StockReservations

__all__ = [
    'StockQueries',
    'StockLevel',
    'StockMovements',
    'StockReservations',
]
