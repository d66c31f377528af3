"""
Reconciliation — audit derived stock state against the movement log.

The movement log is authoritative. Everything else is a projection of it:

    Lot.quantity              = Σ movement.quantity for the lot
    Lot.reserved_quantity     = Σ outstanding of ACTIVE reservation lines
    Location.current_quantity = Σ quantity of live lots at the location

verify() reports differences; rebuild() rewrites the projections.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Sum

from lotman.adapters.catalog import profile_for_release
from lotman.locking import lock_rows
from lotman.models.enums import LIVE_STATUSES, ReservationStatus
from lotman.models.location import Location
from lotman.models.lot import Lot
from lotman.models.movement import Movement
from lotman.models.reservation import ReservationLine
from lotman.services.ledger import _sync_reserved_status

logger = logging.getLogger('lotman')

ZERO = Decimal('0')


@dataclass(frozen=True)
class Discrepancy:
    """One projection that disagrees with its source."""

    kind: str  # 'lot_quantity' | 'lot_reserved' | 'location_quantity'
    object_id: int
    expected: Decimal
    actual: Decimal

    def __str__(self) -> str:
        return f"{self.kind} #{self.object_id}: expected {self.expected}, found {self.actual}"


def replay(movements) -> dict[int, Decimal]:
    """Fold movements (ascending) into {lot_id: quantity}."""
    balances: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for movement in movements:
        balances[movement.lot_id] += movement.quantity
    return dict(balances)


def _scope(qs, sku, warehouse):
    if sku is not None:
        qs = qs.filter(sku=sku)
    if warehouse is not None:
        qs = qs.filter(warehouse=warehouse)
    return qs


def _expected_lots(sku=None, warehouse=None) -> tuple[dict, dict]:
    movements = _scope(Movement.objects.all(), sku, warehouse).order_by('sequence')
    quantities = replay(movements.only('lot_id', 'quantity').iterator())

    lines = ReservationLine.objects.filter(reservation__status=ReservationStatus.ACTIVE)
    if sku is not None:
        lines = lines.filter(lot__sku=sku)
    if warehouse is not None:
        lines = lines.filter(lot__warehouse=warehouse)
    reserved = {
        row['lot']: row['outstanding']
        for row in lines.values('lot').annotate(
            outstanding=Sum(F('quantity') - F('shipped_quantity') - F('released_quantity')),
        )
    }
    return quantities, reserved


def _expected_locations(warehouse=None) -> dict[int, Decimal]:
    lots = Lot.objects.filter(status__in=LIVE_STATUSES, location__isnull=False)
    if warehouse is not None:
        lots = lots.filter(warehouse=warehouse)
    return {
        row['location']: row['total']
        for row in lots.values('location').annotate(total=Sum('quantity'))
    }


def verify(sku: str | None = None, warehouse=None) -> list[Discrepancy]:
    """
    Compare lots and location occupancy with the log and reservations.

    Location occupancy is only checked for the whole warehouse (``sku``
    unset), since a location's load is not scoped to one lot.

    Returns:
        Discrepancies found (empty when consistent).
    """
    quantities, reserved = _expected_lots(sku, warehouse)
    found = []

    for lot in _scope(Lot.objects.all(), sku, warehouse).order_by('pk'):
        expected_qty = quantities.get(lot.pk, ZERO)
        if lot.quantity != expected_qty:
            found.append(Discrepancy('lot_quantity', lot.pk, expected_qty, lot.quantity))
        expected_reserved = reserved.get(lot.pk, ZERO) or ZERO
        if lot.reserved_quantity != expected_reserved:
            found.append(Discrepancy('lot_reserved', lot.pk, expected_reserved, lot.reserved_quantity))

    if sku is None:
        occupancy = _expected_locations(warehouse)
        locations = Location.objects.all()
        if warehouse is not None:
            locations = locations.filter(warehouse=warehouse)
        for location in locations.order_by('pk'):
            expected = occupancy.get(location.pk, ZERO) or ZERO
            if location.current_quantity != expected:
                found.append(Discrepancy(
                    'location_quantity', location.pk, expected, location.current_quantity,
                ))

    for discrepancy in found:
        logger.warning(
            "stock.reconcile.discrepancy",
            extra={
                "kind": discrepancy.kind,
                "object_id": discrepancy.object_id,
                "expected": str(discrepancy.expected),
                "actual": str(discrepancy.actual),
            },
        )
    return found


def rebuild(sku: str | None = None, warehouse=None) -> int:
    """
    Rewrite lot quantities and location occupancy from the log.

    Reserved quantities come from ACTIVE reservation lines, capped at the
    rebuilt quantity. Weight and volume are recomputed from the product
    catalog.

    Returns:
        Number of records changed.
    """
    fixed = 0
    with transaction.atomic():
        # Locations before lots, the order every write path uses.
        locations = _lock_locations(warehouse) if sku is None else {}
        lots = _scope(Lot.objects.all(), sku, warehouse)
        locked = lock_rows(Lot.objects.all(), lots.values_list('pk', flat=True))
        quantities, reserved = _expected_lots(sku, warehouse)

        for lot in sorted(locked.values(), key=lambda lot: lot.pk):
            quantity = quantities.get(lot.pk, ZERO)
            held = min(reserved.get(lot.pk, ZERO) or ZERO, max(quantity, ZERO))
            if lot.quantity == quantity and lot.reserved_quantity == held \
                    and lot.available_quantity == quantity - held:
                continue
            logger.warning(
                "stock.reconcile.lot_rebuilt",
                extra={
                    "lot_id": lot.pk,
                    "quantity": f"{lot.quantity} -> {quantity}",
                    "reserved": f"{lot.reserved_quantity} -> {held}",
                },
            )
            lot.quantity = quantity
            lot.reserved_quantity = held
            lot.available_quantity = quantity - held
            _sync_reserved_status(lot)
            lot.save(update_fields=[
                'quantity', 'reserved_quantity', 'available_quantity', 'status', 'updated_at',
            ])
            fixed += 1

        if sku is None:
            fixed += _rebuild_locations(locations, warehouse)

    return fixed


def _lock_locations(warehouse=None) -> dict[int, Location]:
    locations = Location.objects.all()
    if warehouse is not None:
        locations = locations.filter(warehouse=warehouse)
    return lock_rows(Location.objects.all(), locations.values_list('pk', flat=True))


def _rebuild_locations(locked: dict[int, Location], warehouse=None) -> int:
    live = Lot.objects.filter(status__in=LIVE_STATUSES, location__isnull=False)
    if warehouse is not None:
        live = live.filter(warehouse=warehouse)

    loads: dict[int, dict] = {}
    for row in live.values('location', 'sku').annotate(total=Sum('quantity')):
        if row['total'] <= 0:
            continue
        load = profile_for_release(row['sku']).load_for(row['total'])
        loads[row['location']] = {'sku': row['sku'], **load}

    fixed = 0
    for location in sorted(locked.values(), key=lambda loc: loc.pk):
        load = loads.get(location.pk, {'sku': '', 'quantity': ZERO, 'weight': ZERO, 'volume': ZERO})
        current = (location.current_sku, location.current_quantity,
                   location.current_weight, location.current_volume)
        expected = (load['sku'], load['quantity'], load['weight'], load['volume'])
        if current == expected:
            continue
        logger.warning(
            "stock.reconcile.location_rebuilt",
            extra={
                "location": location.code,
                "quantity": f"{location.current_quantity} -> {load['quantity']}",
            },
        )
        location.current_sku = load['sku']
        location.current_quantity = load['quantity']
        location.current_weight = load['weight']
        location.current_volume = load['volume']
        location.save(update_fields=[
            'current_sku', 'current_quantity', 'current_weight', 'current_volume', 'updated_at',
        ])
        fixed += 1
    return fixed
