"""
Stock reservations — hold, ship, cancel and expire.

A reservation is all-or-nothing: its lines cover the whole requested
quantity, drawn from pickable lots in FEFO order, or nothing is held.
"""

import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from lotman.adapters.catalog import profile_for_release, resolve_profile
from lotman.conf import lotman_settings
from lotman.exceptions import StockError
from lotman.locking import lock_one, lock_rows
from lotman.models.enums import PICKABLE_STATUSES, MovementType, ReservationStatus
from lotman.models.location import Location
from lotman.models.reservation import Reservation, ReservationLine
from lotman.services.journal import MovementLog
from lotman.services.ledger import LotLedger
from lotman.services.locations import LocationDirectory
from lotman.services.operations import run_operation

logger = logging.getLogger('lotman')


def _lock_reservation(reference: str) -> Reservation:
    found = Reservation.objects.filter(reference=reference).values_list('pk', flat=True).first()
    reservation = lock_one(Reservation.objects.all(), found) if found is not None else None
    if reservation is None:
        raise StockError('RESERVATION_NOT_FOUND', reference=reference)
    return reservation


def _open_lines(reservation: Reservation) -> list[ReservationLine]:
    return [
        line for line in reservation.lines.select_related('lot').order_by('pk')
        if line.outstanding > 0
    ]


class StockReservations:
    """Reservation lifecycle methods."""

    @classmethod
    def reserve(cls, sku: str, warehouse, quantity: Decimal,
                lot_hint: str | None = None, reference: str | None = None,
                expires_at=None, actor: str = '') -> Reservation:
        """
        Hold ``quantity`` units for an order.

        Lots are taken in FEFO order (earliest expiry first, undated
        last). ``lot_hint`` restricts the choice to one lot number.

        The reference is also the idempotency key: calling again with the
        same reference and request returns the existing reservation.

        Args:
            sku: Product code
            warehouse: Warehouse to reserve in
            quantity: Units to hold
            lot_hint: Only reserve from this lot number
            reference: Caller reference (generated if omitted)
            expires_at: Release time (default: now + RESERVATION_TTL_MINUTES,
                or never when the TTL is 0)
            actor: Who asked

        Raises:
            StockError('INVALID_QUANTITY'): quantity <= 0
            StockError('UNKNOWN_PRODUCT')
            StockError('INSUFFICIENT_STOCK'): pickable stock < quantity
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        resolve_profile(sku)
        reference = reference or f"rsv:{uuid.uuid4().hex}"
        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'quantity': quantity,
            'lot_hint': lot_hint,
            'expires_at': expires_at,
        }

        if expires_at is None and lotman_settings.RESERVATION_TTL_MINUTES:
            expires_at = timezone.now() + timedelta(minutes=lotman_settings.RESERVATION_TTL_MINUTES)

        def apply(operation):
            candidates = list(LotLedger.pick_candidates(sku, warehouse, lot_hint))
            locked = LotLedger.lock_many(candidates)
            # Keep FEFO order; re-check on the locked values.
            lots = [
                locked[c.pk] for c in candidates
                if c.pk in locked
                and locked[c.pk].status in PICKABLE_STATUSES
                and not locked[c.pk].is_expired
                and locked[c.pk].available_quantity > 0
            ]
            available = sum((lot.available_quantity for lot in lots), Decimal('0'))
            if available < quantity:
                raise StockError(
                    'INSUFFICIENT_STOCK',
                    sku=sku,
                    warehouse=warehouse.code,
                    available=available,
                    requested=quantity,
                )

            reservation = Reservation.objects.create(
                reference=reference,
                sku=sku,
                warehouse=warehouse,
                lot_hint=lot_hint or '',
                quantity=quantity,
                expires_at=expires_at,
                actor=actor,
            )
            remaining = quantity
            for lot in lots:
                if remaining <= 0:
                    break
                take = min(lot.available_quantity, remaining)
                LotLedger.reserve(lot, take)
                ReservationLine.objects.create(reservation=reservation, lot=lot, quantity=take)
                remaining -= take
            return reservation

        reservation = run_operation('reserve', reference, payload, apply, actor)
        logger.info(
            "stock.reserve",
            extra={
                "sku": sku,
                "qty": str(quantity),
                "reference": reservation.reference,
                "expires_at": str(reservation.expires_at),
            },
        )
        return reservation

    @classmethod
    def ship(cls, reservation_ref: str, quantity: Decimal | None = None,
             actor: str = '', idempotency_key: str | None = None) -> Reservation:
        """
        Ship reserved stock.

        Partial shipments are allowed; ``quantity=None`` ships everything
        outstanding. Lines are consumed in order. Each line appends one
        SHIPMENT movement. Lots shipped to zero become SHIPPED.

        Raises:
            StockError('RESERVATION_NOT_FOUND')
            StockError('INVALID_STATUS'): reservation not ACTIVE
            StockError('QUANTITY_MISMATCH'): quantity <= 0 or > outstanding
        """
        payload = {'reservation': reservation_ref, 'quantity': quantity}

        def apply(operation):
            reservation = _lock_reservation(reservation_ref)
            if reservation.status != ReservationStatus.ACTIVE:
                raise StockError(
                    'INVALID_STATUS',
                    reference=reservation.reference,
                    current=reservation.status,
                )

            outstanding = reservation.outstanding
            requested = outstanding if quantity is None else quantity
            if requested <= 0 or requested > outstanding:
                raise StockError(
                    'QUANTITY_MISMATCH',
                    reference=reservation.reference,
                    outstanding=outstanding,
                    requested=requested,
                )

            lines = _open_lines(reservation)
            lock_rows(Location.objects.all(), [line.lot.location_id for line in lines])
            LotLedger.lock_many([line.lot for line in lines])
            profile = profile_for_release(reservation.sku)

            shipped = []
            remaining = requested
            for line in lines:
                if remaining <= 0:
                    break
                take = min(line.outstanding, remaining)
                lot = LotLedger.commit_shipment(line.lot, take)
                if lot.location_id is not None:
                    LocationDirectory.release_capacity(lot.location, profile, take)
                line.shipped_quantity += take
                line.save(update_fields=['shipped_quantity'])
                shipped.append((lot, take))
                remaining -= take

            reservation.shipped_quantity += requested
            if reservation.outstanding == 0:
                reservation.status = ReservationStatus.FULFILLED
                reservation.resolved_at = timezone.now()
            reservation.save(update_fields=['shipped_quantity', 'status', 'resolved_at'])

            for lot, take in shipped:
                MovementLog.append(
                    operation=operation,
                    lot=lot,
                    movement_type=MovementType.SHIPMENT,
                    quantity=-take,
                    from_location=lot.location,
                    reference=reservation.reference,
                    reason='shipment',
                    actor=actor,
                )
            return reservation

        reservation = run_operation('ship', idempotency_key, payload, apply, actor)
        logger.info(
            "stock.ship",
            extra={
                "reference": reservation.reference,
                "qty": str(quantity if quantity is not None else reservation.shipped_quantity),
                "status": reservation.status,
            },
        )
        return reservation

    @classmethod
    def cancel_reservation(cls, reservation_ref: str, reason: str = '',
                           actor: str = '', idempotency_key: str | None = None) -> Reservation:
        """
        Release what a reservation still holds.

        After a partial shipment only the outstanding remainder is
        released. Cancelling a RELEASED reservation returns it unchanged.

        Raises:
            StockError('RESERVATION_NOT_FOUND')
            StockError('INVALID_STATUS'): reservation already FULFILLED
        """
        payload = {'reservation': reservation_ref, 'reason': reason}

        def apply(operation):
            return cls._release(reservation_ref, reason)

        reservation = run_operation('cancel', idempotency_key, payload, apply, actor)
        logger.info(
            "stock.reservation.cancelled",
            extra={"reference": reservation.reference, "reason": reason, "actor": actor},
        )
        return reservation

    @classmethod
    def release_expired(cls) -> int:
        """
        Release ACTIVE reservations past expires_at.

        Works in batches of EXPIRED_BATCH_SIZE, skipping rows locked by
        concurrent workers (SKIP LOCKED), so several workers can run it.

        Returns:
            Number of reservations released.
        """
        batch_size = lotman_settings.EXPIRED_BATCH_SIZE
        count = 0

        while True:
            with transaction.atomic():
                batch = list(
                    Reservation.objects.expired()
                    .select_for_update(skip_locked=True)
                    .order_by('expires_at', 'pk')
                    .values_list('reference', flat=True)[:batch_size]
                )
                for reference in batch:
                    cls._release(reference, 'expired')
                    count += 1

            if len(batch) < batch_size:
                break

        if count:
            logger.info("stock.reservations.expired", extra={"count": count})
        return count

    # ── internals ──────────────────────────────────────────────────

    @classmethod
    def _release(cls, reference: str, reason: str) -> Reservation:
        reservation = _lock_reservation(reference)
        if reservation.status == ReservationStatus.RELEASED:
            return reservation
        if reservation.status != ReservationStatus.ACTIVE:
            raise StockError(
                'INVALID_STATUS',
                reference=reservation.reference,
                current=reservation.status,
            )

        lines = _open_lines(reservation)
        LotLedger.lock_many([line.lot for line in lines])
        released = Decimal('0')
        for line in lines:
            take = line.outstanding
            LotLedger.release_reservation(line.lot, take)
            line.released_quantity += take
            line.save(update_fields=['released_quantity'])
            released += take

        reservation.released_quantity += released
        reservation.status = ReservationStatus.RELEASED
        reservation.resolved_at = timezone.now()
        reservation.metadata = {**reservation.metadata, 'release_reason': reason}
        reservation.save(update_fields=['released_quantity', 'status', 'resolved_at', 'metadata'])
        return reservation
