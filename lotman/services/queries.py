"""
Stock queries — read-only operations.

All methods are classmethod on Inventory and use no locking.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from lotman.adapters.catalog import resolve_profile
from lotman.models.enums import LotStatus
from lotman.models.lot import Lot, unexpired_pickable_q
from lotman.models.reservation import Reservation
from lotman.services.journal import MovementLog
from lotman.services.locations import LocationDirectory


@dataclass(frozen=True)
class StockLevel:
    """
    Stock position of a product in a warehouse.

    available = quantity - reserved - quarantined - expired (unreserved)
    """

    quantity: Decimal
    reserved: Decimal
    available: Decimal
    quarantined: Decimal


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def current_stock(cls, sku: str, warehouse, lot_number: str | None = None) -> StockLevel:
        """
        Current stock, summed over live lots at every location.

        Args:
            sku: Product code
            warehouse: Warehouse
            lot_number: Restrict to one lot (None = all lots)

        Returns:
            StockLevel; quarantined stock is on hand but not available.
        """
        lots = Lot.objects.live().for_sku(sku, warehouse)
        if lot_number is not None:
            lots = lots.filter(lot_number=lot_number)

        zero = Decimal('0')
        # Aliases must not shadow field names reused by later aggregates.
        totals = lots.aggregate(
            on_hand=Coalesce(Sum('quantity'), zero),
            held=Coalesce(Sum('reserved_quantity'), zero),
            free=Coalesce(Sum('available_quantity', filter=unexpired_pickable_q()), zero),
            on_hold=Coalesce(Sum('quantity', filter=Q(status=LotStatus.QUARANTINE)), zero),
        )
        return StockLevel(
            quantity=totals['on_hand'],
            reserved=totals['held'],
            available=totals['free'],
            quarantined=totals['on_hold'],
        )

    @classmethod
    def movement_history(cls, sku: str, warehouse, lot_number: str | None = None,
                         since: int | datetime | None = None,
                         until: datetime | None = None,
                         movement_type: str | None = None):
        """
        Movement log entries, ascending by ledger position.

        Args:
            since: Sequence number (entries after it) or datetime (at or after)
            until: Only entries before this datetime
            movement_type: Only this MovementType

        Returns:
            QuerySet of Movement; iterating it again re-reads from the start.
        """
        qs = MovementLog.entries_for(sku, warehouse, lot_number, since)
        if until is not None:
            qs = qs.filter(timestamp__lt=until)
        if movement_type is not None:
            qs = qs.filter(movement_type=movement_type)
        return qs

    @classmethod
    def find_candidate_locations(cls, warehouse, sku: str, quantity: Decimal, kinds=None):
        """
        Locations that could take ``quantity`` units of ``sku``.

        Partially-filled locations first, then by code.
        """
        return LocationDirectory.find_candidates(warehouse, resolve_profile(sku), quantity, kinds)

    @classmethod
    def list_lots(cls, sku: str | None = None, warehouse=None, location=None,
                  status: str | None = None, include_closed: bool = False):
        """
        Lot records, FEFO-ordered.

        Shipped and damaged lots are left out unless ``include_closed``.
        """
        qs = Lot.objects.all()
        if not include_closed:
            qs = qs.live()
        if sku is not None:
            qs = qs.filter(sku=sku)
        if warehouse is not None:
            qs = qs.filter(warehouse=warehouse)
        if location is not None:
            qs = qs.filter(location=location)
        if status is not None:
            qs = qs.filter(status=status)
        return qs.select_related('location').fefo()

    @classmethod
    def expiring(cls, warehouse, on_or_before: date, sku: str | None = None):
        """Live lots with stock expiring on or before a date."""
        qs = Lot.objects.live().filter(warehouse=warehouse, quantity__gt=0)
        if sku is not None:
            qs = qs.filter(sku=sku)
        return qs.expiring_before(on_or_before).fefo()

    @classmethod
    def get_reservation(cls, reference: str) -> Reservation | None:
        """Reservation by reference, with its lines."""
        return Reservation.objects.filter(
            reference=reference,
        ).prefetch_related('lines__lot').first()
