"""
Lot Ledger — per-(sku, warehouse, lot, location) stock records.

Every mutation runs on a locked Lot, recomputes available_quantity and
checks the quantity invariants before writing:

    available_quantity = quantity - reserved_quantity
    0 <= reserved_quantity <= quantity

Callers must be inside transaction.atomic(). Movements are appended by
the engine, not here.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from lotman.exceptions import StockError
from lotman.locking import lock_one, lock_rows
from lotman.models.enums import LIVE_STATUSES, PICKABLE_STATUSES, LocationKind, LotStatus
from lotman.models.lot import Lot

logger = logging.getLogger('lotman')

COST_PLACES = Decimal('0.0001')

QUANTITY_FIELDS = ['quantity', 'reserved_quantity', 'available_quantity', 'status', 'updated_at']


def weighted_cost(old_qty: Decimal, old_cost: Decimal, add_qty: Decimal, add_cost: Decimal) -> Decimal:
    """Weighted average unit cost after adding ``add_qty`` at ``add_cost``."""
    total = old_qty + add_qty
    if total <= 0:
        return add_cost
    return ((old_qty * old_cost + add_qty * add_cost) / total).quantize(
        COST_PLACES, rounding=ROUND_HALF_UP,
    )


def _sync_reserved_status(lot: Lot) -> None:
    """AVAILABLE ↔ RESERVED follows reserved_quantity."""
    if lot.status == LotStatus.AVAILABLE and lot.reserved_quantity > 0:
        lot.status = LotStatus.RESERVED
    elif lot.status == LotStatus.RESERVED and lot.reserved_quantity == 0:
        lot.status = LotStatus.AVAILABLE


def _check_transition(lot: Lot, status: str) -> None:
    allowed = {
        LotStatus.QUARANTINE: (LotStatus.AVAILABLE,),
        LotStatus.AVAILABLE: (LotStatus.QUARANTINE,),
    }
    if lot.status not in allowed.get(status, ()) or lot.reserved_quantity > 0:
        raise StockError(
            'INVALID_STATUS',
            lot_id=lot.pk,
            current=lot.status,
            target=status,
            reserved=lot.reserved_quantity,
        )


def _write(lot: Lot, quantity: Decimal, reserved: Decimal) -> Lot:
    """Apply new quantity/reserved to a locked lot, enforcing invariants."""
    lot.quantity = quantity
    lot.reserved_quantity = reserved
    lot.available_quantity = quantity - reserved

    errors = lot.invariant_errors()
    if errors:
        # Callers validate first; reaching here is a bug, not a user error.
        raise AssertionError(f"Lot {lot.pk} invariant violated: {', '.join(errors)}")

    _sync_reserved_status(lot)
    lot.save(update_fields=QUANTITY_FIELDS)
    return lot


class LotLedger:
    """Lot record mutations and selection."""

    @classmethod
    def lock(cls, lot: Lot) -> Lot:
        """Re-read ``lot`` under a row lock."""
        locked = lock_one(Lot.objects.all(), lot.pk)
        if locked is None:
            raise StockError('LOT_NOT_FOUND', lot_id=lot.pk)
        return locked

    @classmethod
    def lock_many(cls, lots) -> dict[int, Lot]:
        """Lock several lots in id order."""
        return lock_rows(Lot.objects.all(), [lot.pk for lot in lots])

    @classmethod
    def find_live(cls, sku: str, warehouse, lot_number: str, location,
                  quarantined: bool | None = None) -> Lot | None:
        """
        The live record at a coordinate, if any.

        A coordinate holds at most one pickable and one quarantined record.
        ``quarantined`` picks one of them; None prefers the pickable one.
        """
        qs = Lot.objects.for_sku(sku, warehouse).filter(
            lot_number=lot_number,
        ).at_location(location)
        if quarantined is None:
            return (qs.filter(status__in=PICKABLE_STATUSES).first()
                    or qs.filter(status=LotStatus.QUARANTINE).first())
        if quarantined:
            return qs.filter(status=LotStatus.QUARANTINE).first()
        return qs.filter(status__in=PICKABLE_STATUSES).first()

    @classmethod
    def upsert_on_receipt(cls, sku: str, warehouse, lot_number: str, location,
                          quantity: Decimal, unit_cost: Decimal = Decimal('0'),
                          expiry_date=None, status: str | None = None,
                          manufactured_on=None, received_at=None) -> Lot:
        """
        Add received stock at a coordinate.

        The stock's status is ``status``, or QUARANTINE in a quarantine
        location, or AVAILABLE. It merges into the live record of the same
        kind (pickable or quarantined) at the coordinate, re-averaging unit
        cost by quantity; otherwise a new record is created. Good stock never
        joins a quarantined record.

        ``received_at`` lets transfers keep the original receipt date for
        FEFO tie-breaks.
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        if status is None:
            quarantined = location is not None and location.kind == LocationKind.QUARANTINE
            status = LotStatus.QUARANTINE if quarantined else LotStatus.AVAILABLE

        existing = cls.find_live(
            sku, warehouse, lot_number, location,
            quarantined=status == LotStatus.QUARANTINE,
        )
        if existing is not None:
            lot = cls.lock(existing)
            lot.unit_cost = weighted_cost(lot.quantity, lot.unit_cost, quantity, unit_cost)
            if lot.expiry_date is None and expiry_date is not None:
                lot.expiry_date = expiry_date
            lot.save(update_fields=['unit_cost', 'expiry_date', 'updated_at'])
            return _write(lot, lot.quantity + quantity, lot.reserved_quantity)

        lot = Lot.objects.create(
            sku=sku,
            warehouse=warehouse,
            location=location,
            lot_number=lot_number,
            quantity=quantity,
            reserved_quantity=Decimal('0'),
            available_quantity=quantity,
            unit_cost=unit_cost,
            expiry_date=expiry_date,
            manufactured_on=manufactured_on,
            received_at=received_at or timezone.now(),
            status=status,
        )
        # Lock the fresh row like any other mutated record.
        return cls.lock(lot)

    @classmethod
    def reserve(cls, lot: Lot, quantity: Decimal) -> Lot:
        """
        Hold ``quantity`` of a lot.

        Raises:
            StockError('INSUFFICIENT_AVAILABLE'): quantity > available,
                or the lot is not pickable (quarantined, terminal)
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        lot = cls.lock(lot)
        if lot.status not in PICKABLE_STATUSES or quantity > lot.available_quantity:
            raise StockError(
                'INSUFFICIENT_AVAILABLE',
                lot_id=lot.pk,
                status=lot.status,
                available=lot.available_quantity if lot.status in PICKABLE_STATUSES else Decimal('0'),
                requested=quantity,
            )
        return _write(lot, lot.quantity, lot.reserved_quantity + quantity)

    @classmethod
    def commit_shipment(cls, lot: Lot, quantity: Decimal) -> Lot:
        """
        Reserved stock leaves the warehouse.

        quantity and reserved_quantity both decrease. A lot shipped down
        to zero becomes SHIPPED (terminal).

        Raises:
            StockError('INSUFFICIENT_RESERVED')
        """
        lot = cls.lock(lot)
        if quantity <= 0 or quantity > lot.reserved_quantity:
            raise StockError(
                'INSUFFICIENT_RESERVED',
                lot_id=lot.pk,
                reserved=lot.reserved_quantity,
                requested=quantity,
            )
        lot = _write(lot, lot.quantity - quantity, lot.reserved_quantity - quantity)
        if lot.quantity == 0:
            cls._set_terminal(lot, LotStatus.SHIPPED)
        return lot

    @classmethod
    def release_reservation(cls, lot: Lot, quantity: Decimal) -> Lot:
        """
        Reverse reserve().

        Raises:
            StockError('INVALID_RELEASE_AMOUNT'): quantity > reserved
        """
        lot = cls.lock(lot)
        if quantity <= 0 or quantity > lot.reserved_quantity:
            raise StockError(
                'INVALID_RELEASE_AMOUNT',
                lot_id=lot.pk,
                reserved=lot.reserved_quantity,
                requested=quantity,
            )
        return _write(lot, lot.quantity, lot.reserved_quantity - quantity)

    @classmethod
    def adjust(cls, lot: Lot, delta: Decimal, reason_code: str = '',
               terminal_status: str | None = None) -> Lot:
        """
        Direct correction of on-hand quantity (count, damage, transfer leg).

        Negative deltas may only consume unreserved stock.

        Args:
            lot: Lot to correct
            delta: Signed change
            reason_code: Why (logged)
            terminal_status: Status to enter if quantity reaches zero
                (DAMAGED for damage write-offs)

        Raises:
            StockError('INVALID_ADJUSTMENT'): would make quantity or
                available_quantity negative, or the lot is terminal
        """
        lot = cls.lock(lot)
        new_quantity = lot.quantity + delta
        new_available = lot.available_quantity + delta

        if lot.status not in LIVE_STATUSES or new_quantity < 0 or new_available < 0:
            raise StockError(
                'INVALID_ADJUSTMENT',
                lot_id=lot.pk,
                status=lot.status,
                quantity=lot.quantity,
                available=lot.available_quantity,
                delta=delta,
                reason=reason_code,
            )

        lot = _write(lot, new_quantity, lot.reserved_quantity)
        if lot.quantity == 0 and terminal_status is not None:
            cls._set_terminal(lot, terminal_status)
        return lot

    @classmethod
    def set_status(cls, lot: Lot, status: str) -> Lot:
        """
        Quality hold transitions: AVAILABLE → QUARANTINE, QUARANTINE → AVAILABLE.

        Raises:
            StockError('INVALID_STATUS'): other transitions, or reserved stock
        """
        lot = cls.lock(lot)
        _check_transition(lot, status)
        lot.status = status
        lot.save(update_fields=['status', 'updated_at'])
        return lot

    @classmethod
    def merge(cls, lot: Lot, into: Lot, status: str) -> tuple[Lot, Lot]:
        """
        Status change onto a coordinate that already holds a record of the
        target kind: ``lot``'s whole quantity moves into ``into``.

        Both lots must be locked by the caller. ``lot`` stays behind empty.

        Returns:
            (emptied lot, receiving lot)

        Raises:
            StockError('INVALID_STATUS'): same as set_status()
        """
        _check_transition(lot, status)
        into.unit_cost = weighted_cost(into.quantity, into.unit_cost, lot.quantity, lot.unit_cost)
        if into.expiry_date is None and lot.expiry_date is not None:
            into.expiry_date = lot.expiry_date
        into.save(update_fields=['unit_cost', 'expiry_date', 'updated_at'])
        into = _write(into, into.quantity + lot.quantity, into.reserved_quantity)
        lot = _write(lot, Decimal('0'), Decimal('0'))
        return lot, into

    @classmethod
    def pick_candidates(cls, sku: str, warehouse, lot_number: str | None = None):
        """
        FEFO-ordered pickable lots.

        Returns:
            QuerySet ordered by expiry, receipt date, cost, lot number, id
        """
        qs = Lot.objects.for_sku(sku, warehouse).pickable()
        if lot_number is not None:
            qs = qs.filter(lot_number=lot_number)
        return qs.fefo()

    @classmethod
    def _set_terminal(cls, lot: Lot, status: str) -> None:
        lot.status = status
        lot.save(update_fields=['status', 'updated_at'])
        logger.info(
            "stock.lot.closed",
            extra={"lot_id": lot.pk, "sku": lot.sku, "status": status},
        )
