"""
Stock movements — quantity-changing operations (receive, transfer, adjust,
count, damage) and quality holds (quarantine).

Every quantity change runs through run_operation(): one transaction,
locks taken Location → Lot → sequence, and the movement append last.
"""

import logging
from decimal import Decimal

from django.db import transaction

from lotman.adapters.catalog import profile_for_release, resolve_profile
from lotman.exceptions import StockError
from lotman.locking import lock_rows
from lotman.models.enums import LocationKind, LotStatus, MovementType
from lotman.models.location import Location
from lotman.models.lot import Lot
from lotman.services.journal import MovementLog
from lotman.services.ledger import LotLedger
from lotman.services.locations import LocationDirectory
from lotman.services.operations import run_operation

logger = logging.getLogger('lotman')


def _pk(obj):
    return obj.pk if obj is not None else None


def _check_warehouse(location, warehouse) -> None:
    if location is not None and location.warehouse_id != warehouse.pk:
        raise StockError(
            'INCOMPATIBLE_LOCATION',
            location=location.code,
            warehouse=warehouse.code,
            problem='other_warehouse',
        )


class StockMovements:
    """Quantity-changing stock methods."""

    @classmethod
    def receive(cls, sku: str, warehouse, quantity: Decimal, location=None,
                lot_number: str = '', unit_cost: Decimal = Decimal('0'),
                expiry_date=None, actor: str = '', reference: str | None = None,
                idempotency_key: str | None = None, putaway: bool = False,
                manufactured_on=None, reason: str = 'receipt') -> Lot:
        """
        Stock entry.

        Claims capacity on the location, creates or increases the lot
        record at (sku, warehouse, lot_number, location) and appends a
        RECEIPT movement.

        With ``putaway=True`` and no location, the first candidate from
        find_candidate_locations() is used. Without either, stock is
        received unplaced (location=None) and needs a later transfer.

        Raises:
            StockError('INVALID_QUANTITY'): quantity <= 0
            StockError('UNKNOWN_PRODUCT'): SKU unknown or inactive
            StockError('INCOMPATIBLE_LOCATION')
            StockError('CAPACITY_EXCEEDED'): includes "no candidate" on putaway
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        profile = resolve_profile(sku)
        _check_warehouse(location, warehouse)

        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'location': _pk(location),
            'lot_number': lot_number,
            'quantity': quantity,
            'unit_cost': unit_cost,
            'expiry_date': expiry_date,
            'reference': reference,
            'putaway': putaway,
        }

        def apply(operation):
            target = location
            if target is None and putaway:
                target = LocationDirectory.find_candidates(warehouse, profile, quantity).first()
                if target is None:
                    raise StockError(
                        'CAPACITY_EXCEEDED',
                        warehouse=warehouse.code,
                        sku=sku,
                        requested=quantity,
                        problem='no_candidate',
                    )
            if target is not None:
                target = LocationDirectory.reserve_capacity(target, profile, quantity)
            elif not warehouse.is_active:
                raise StockError(
                    'INCOMPATIBLE_LOCATION',
                    warehouse=warehouse.code,
                    problem='inactive_warehouse',
                )

            lot = LotLedger.upsert_on_receipt(
                sku, warehouse, lot_number, target, quantity,
                unit_cost=unit_cost,
                expiry_date=expiry_date,
                manufactured_on=manufactured_on,
            )
            MovementLog.append(
                operation=operation,
                lot=lot,
                movement_type=MovementType.RECEIPT,
                quantity=quantity,
                to_location=target,
                reference=reference,
                reason=reason,
                actor=actor,
            )
            return lot

        lot = run_operation('receive', idempotency_key, payload, apply, actor)
        logger.info(
            "stock.receive",
            extra={
                "sku": sku,
                "qty": str(quantity),
                "location": str(lot.location_id),
                "lot_number": lot_number,
                "lot_id": lot.pk,
            },
        )
        return lot

    @classmethod
    def transfer(cls, sku: str, warehouse, from_location, to_location,
                 lot_number: str, quantity: Decimal, actor: str = '',
                 reference: str | None = None,
                 idempotency_key: str | None = None) -> tuple[Lot, Lot]:
        """
        Move unreserved stock of one lot between locations.

        ``from_location=None`` puts away unplaced stock. Writes two TRANSFER
        movements under one operation (negative at the source, positive at
        the target). Quarantined stock stays quarantined at the target.

        Returns:
            (source lot, target lot)

        Raises:
            StockError('INVALID_TRANSFER'): same source and target, or no target
            StockError('LOT_NOT_FOUND'): no live lot at the source
            StockError('INSUFFICIENT_AVAILABLE'): not enough unreserved stock
            StockError('INCOMPATIBLE_LOCATION') / StockError('CAPACITY_EXCEEDED')
            StockError('INVALID_STATUS'): source held or released concurrently
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if to_location is None or _pk(from_location) == to_location.pk:
            raise StockError(
                'INVALID_TRANSFER',
                from_location=getattr(from_location, 'code', None),
                to_location=getattr(to_location, 'code', None),
            )

        _check_warehouse(from_location, warehouse)
        _check_warehouse(to_location, warehouse)
        profile = resolve_profile(sku)

        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'from_location': _pk(from_location),
            'to_location': to_location.pk,
            'lot_number': lot_number,
            'quantity': quantity,
            'reference': reference,
        }

        def apply(operation):
            found = LotLedger.find_live(sku, warehouse, lot_number, from_location)
            if found is None:
                raise StockError(
                    'LOT_NOT_FOUND',
                    sku=sku,
                    lot_number=lot_number,
                    location=getattr(from_location, 'code', None),
                )
            quarantined = found.status == LotStatus.QUARANTINE
            held_at_target = quarantined or to_location.kind == LocationKind.QUARANTINE
            existing_target = LotLedger.find_live(
                sku, warehouse, lot_number, to_location, quarantined=held_at_target,
            )

            lock_rows(Location.objects.all(), [_pk(from_location), to_location.pk])
            locked = LotLedger.lock_many([found] + ([existing_target] if existing_target else []))
            source = locked[found.pk]

            if quantity > source.available_quantity:
                raise StockError(
                    'INSUFFICIENT_AVAILABLE',
                    lot_id=source.pk,
                    available=source.available_quantity,
                    requested=quantity,
                )
            if (source.status == LotStatus.QUARANTINE) != quarantined:
                # Held or released between lookup and lock.
                raise StockError(
                    'INVALID_STATUS',
                    lot_id=source.pk,
                    current=source.status,
                )

            target_location = LocationDirectory.reserve_capacity(to_location, profile, quantity)
            source = LotLedger.adjust(source, -quantity, 'transfer')
            if from_location is not None:
                LocationDirectory.release_capacity(from_location, profile, quantity)

            target = LotLedger.upsert_on_receipt(
                sku, warehouse, lot_number, target_location, quantity,
                unit_cost=source.unit_cost,
                expiry_date=source.expiry_date,
                status=LotStatus.QUARANTINE if held_at_target else LotStatus.AVAILABLE,
                manufactured_on=source.manufactured_on,
                received_at=source.received_at,
            )

            for lot, delta in ((source, -quantity), (target, quantity)):
                MovementLog.append(
                    operation=operation,
                    lot=lot,
                    movement_type=MovementType.TRANSFER,
                    quantity=delta,
                    from_location=from_location,
                    to_location=target_location,
                    reference=reference,
                    reason='transfer',
                    actor=actor,
                )
            return source, target

        source, target = run_operation('transfer', idempotency_key, payload, apply, actor)
        logger.info(
            "stock.transfer",
            extra={
                "sku": sku,
                "qty": str(quantity),
                "lot_number": lot_number,
                "from_location": str(_pk(from_location)),
                "to_location": to_location.pk,
            },
        )
        return source, target

    @classmethod
    def adjust(cls, sku: str, warehouse, lot_number: str, delta: Decimal,
               reason_code: str, location=None, actor: str = '',
               idempotency_key: str | None = None,
               unit_cost: Decimal = Decimal('0')) -> Lot:
        """
        Signed correction of on-hand quantity.

        A positive delta on a coordinate with no live lot creates the lot
        (found stock) at ``unit_cost``. Negative deltas may only consume
        unreserved stock.

        Raises:
            StockError('REASON_REQUIRED'): empty reason_code
            StockError('INVALID_QUANTITY'): delta == 0
            StockError('INVALID_ADJUSTMENT'): would go negative
        """
        if not reason_code:
            raise StockError('REASON_REQUIRED')
        if delta == 0:
            raise StockError('INVALID_QUANTITY', requested=delta)

        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'location': _pk(location),
            'lot_number': lot_number,
            'delta': delta,
            'reason_code': reason_code,
        }
        lot = cls._correct(
            'adjust', MovementType.ADJUSTMENT, sku, warehouse, lot_number, location,
            lambda current: delta, reason_code, actor, idempotency_key, payload,
            unit_cost=unit_cost,
        )
        logger.info(
            "stock.adjust",
            extra={"sku": sku, "delta": str(delta), "reason": reason_code, "lot_id": lot.pk},
        )
        return lot

    @classmethod
    def count(cls, sku: str, warehouse, lot_number: str, location,
              counted_quantity: Decimal, actor: str = '',
              idempotency_key: str | None = None,
              reason_code: str = 'cycle_count') -> Lot:
        """
        Physical count: set on-hand quantity to ``counted_quantity``.

        The difference is computed under lock and appended as a COUNT
        movement. A count that matches the books appends nothing.

        Raises:
            StockError('INVALID_QUANTITY'): counted_quantity < 0
            StockError('INVALID_ADJUSTMENT'): counted below reserved
            StockError('LOT_NOT_FOUND'): no live lot and counted_quantity == 0
        """
        if counted_quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=counted_quantity)

        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'location': _pk(location),
            'lot_number': lot_number,
            'counted_quantity': counted_quantity,
        }

        def delta_for(current):
            on_hand = current.quantity if current is not None else Decimal('0')
            return counted_quantity - on_hand

        lot = cls._correct(
            'count', MovementType.COUNT, sku, warehouse, lot_number, location,
            delta_for, reason_code, actor, idempotency_key, payload,
        )
        logger.info(
            "stock.count",
            extra={"sku": sku, "counted": str(counted_quantity), "lot_id": lot.pk},
        )
        return lot

    @classmethod
    def damage(cls, sku: str, warehouse, lot_number: str, location,
               quantity: Decimal, reason_code: str, actor: str = '',
               idempotency_key: str | None = None) -> Lot:
        """
        Write off damaged stock.

        Appends a DAMAGE movement; a lot written off to zero becomes
        DAMAGED (terminal).

        Raises:
            StockError('REASON_REQUIRED')
            StockError('INVALID_QUANTITY'): quantity <= 0
            StockError('INVALID_ADJUSTMENT'): more than unreserved stock
        """
        if not reason_code:
            raise StockError('REASON_REQUIRED')
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        payload = {
            'sku': sku,
            'warehouse': warehouse.pk,
            'location': _pk(location),
            'lot_number': lot_number,
            'quantity': quantity,
            'reason_code': reason_code,
        }
        lot = cls._correct(
            'damage', MovementType.DAMAGE, sku, warehouse, lot_number, location,
            lambda current: -quantity, reason_code, actor, idempotency_key, payload,
            terminal_status=LotStatus.DAMAGED,
        )
        logger.warning(
            "stock.damage",
            extra={"sku": sku, "qty": str(quantity), "reason": reason_code, "lot_id": lot.pk},
        )
        return lot

    @classmethod
    def quarantine(cls, lot: Lot, reason: str = '', actor: str = '') -> Lot:
        """
        Put a lot on quality hold. Its stock stops counting as available.

        When the coordinate already holds a quarantined record, the stock
        moves into it (a TRANSFER pair) and that record is returned.

        Raises:
            StockError('INVALID_STATUS'): not AVAILABLE, or has reservations
        """
        return cls._set_status(lot, LotStatus.QUARANTINE, reason, actor)

    @classmethod
    def release_quarantine(cls, lot: Lot, reason: str = '', actor: str = '') -> Lot:
        """
        Lift a quality hold. Merges into the pickable record at the
        coordinate when there is one.

        Raises:
            StockError('INVALID_STATUS'): lot is not quarantined
        """
        return cls._set_status(lot, LotStatus.AVAILABLE, reason, actor)

    # ── internals ──────────────────────────────────────────────────

    @classmethod
    def _set_status(cls, lot: Lot, status: str, reason: str, actor: str) -> Lot:
        sibling = LotLedger.find_live(
            lot.sku, lot.warehouse_id, lot.lot_number, lot.location_id,
            quarantined=status == LotStatus.QUARANTINE,
        )
        if sibling is None or sibling.pk == lot.pk:
            with transaction.atomic():
                lot = LotLedger.set_status(lot, status)
        else:
            lot = cls._merge_status(lot, sibling, status, reason, actor)
        logger.info(
            "stock.lot.status",
            extra={"lot_id": lot.pk, "status": status, "reason": reason, "actor": actor},
        )
        return lot

    @classmethod
    def _merge_status(cls, lot: Lot, sibling: Lot, status: str, reason: str, actor: str) -> Lot:
        """
        The coordinate already has a record of the target kind: the stock
        moves into it, logged as a TRANSFER pair in place.
        """
        payload = {'lot': lot.pk, 'into': sibling.pk, 'status': status}

        def apply(operation):
            locked = LotLedger.lock_many([lot, sibling])
            quantity = locked[lot.pk].quantity
            emptied, into = LotLedger.merge(locked[lot.pk], locked[sibling.pk], status)
            if quantity == 0:
                return into
            for record, delta in ((emptied, -quantity), (into, quantity)):
                MovementLog.append(
                    operation=operation,
                    lot=record,
                    movement_type=MovementType.TRANSFER,
                    quantity=delta,
                    from_location=emptied.location,
                    to_location=emptied.location,
                    reason=reason or status,
                    actor=actor,
                )
            return into

        return run_operation('set_status', None, payload, apply, actor)

    @classmethod
    def _correct(cls, kind, movement_type, sku, warehouse, lot_number, location,
                 delta_for, reason_code, actor, idempotency_key, payload,
                 terminal_status=None, unit_cost=Decimal('0')) -> Lot:
        """
        Shared body of adjust/count/damage.

        ``delta_for(locked_lot_or_None)`` returns the signed change, so
        counts can compute it from the locked quantity.
        """
        _check_warehouse(location, warehouse)

        def apply(operation):
            if location is not None:
                lock_rows(Location.objects.all(), [location.pk])

            found = LotLedger.find_live(sku, warehouse, lot_number, location)
            current = LotLedger.lock(found) if found is not None else None
            delta = delta_for(current)

            if current is None:
                if delta <= 0:
                    raise StockError(
                        'LOT_NOT_FOUND' if delta == 0 else 'INVALID_ADJUSTMENT',
                        sku=sku,
                        lot_number=lot_number,
                        delta=delta,
                        reason=reason_code,
                    )
                # Found stock: a new lot record, placed like a receipt.
                profile = resolve_profile(sku)
                if location is not None:
                    LocationDirectory.reserve_capacity(location, profile, delta)
                lot = LotLedger.upsert_on_receipt(
                    sku, warehouse, lot_number, location, delta, unit_cost=unit_cost,
                )
            elif delta == 0:
                return current
            else:
                if location is not None and delta > 0:
                    LocationDirectory.reserve_capacity(location, resolve_profile(sku), delta)
                lot = LotLedger.adjust(current, delta, reason_code, terminal_status)
                if location is not None and delta < 0:
                    LocationDirectory.release_capacity(location, profile_for_release(sku), -delta)

            MovementLog.append(
                operation=operation,
                lot=lot,
                movement_type=movement_type,
                quantity=delta,
                from_location=location if delta < 0 else None,
                to_location=location if delta > 0 else None,
                reason=reason_code,
                actor=actor,
            )
            return lot

        return run_operation(kind, idempotency_key, payload, apply, actor)
