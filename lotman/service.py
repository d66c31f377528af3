"""
Inventory Service — The single public interface for all stock operations.

Usage:
    from lotman import inventory, StockError

    lot = inventory.receive('SKU-1', main, quantity=100, location=a1,
                            lot_number='L1', unit_cost=Decimal('2.50'))
    rsv = inventory.reserve('SKU-1', main, 40, reference='so:42')
    inventory.ship('so:42')
    inventory.current_stock('SKU-1', main)  # StockLevel(quantity=60, ...)
"""

from lotman.services import alerts, reconciliation
from lotman.services.movements import StockMovements
from lotman.services.queries import StockQueries
from lotman.services.reservations import StockReservations


class Inventory(StockQueries, StockMovements, StockReservations):
    """
    Single interface for all stock operations.

    Parameter convention: (sku, warehouse, ...) first, then what is moved.

    IMPORTANT: All state-changing methods run as one atomic, idempotent
    operation with ordered row locks. See each method's docstring.
    """

    @classmethod
    def low_stock(cls, warehouse=None):
        """Active alerts currently below threshold (nothing recorded)."""
        return alerts.low_stock(warehouse)

    @classmethod
    def check_alerts(cls, sku: str | None = None):
        """Trigger low-stock alerts; see lotman.services.alerts.check_alerts."""
        return alerts.check_alerts(sku)

    @classmethod
    def verify(cls, sku: str | None = None, warehouse=None):
        """Discrepancies between stock records and the movement log."""
        return reconciliation.verify(sku, warehouse)

    @classmethod
    def rebuild(cls, sku: str | None = None, warehouse=None) -> int:
        """Rewrite stock records from the movement log."""
        return reconciliation.rebuild(sku, warehouse)
