"""
Movement Log — append-only record of every stock-affecting event.

The log is the durable source of truth; Lot quantities are a cached
projection of it (see lotman.services.reconciliation).

There is no update or delete: corrections are new compensating entries.
"""

import logging
from datetime import datetime
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from lotman.models.lot import Lot
from lotman.models.movement import Movement
from lotman.models.operation import Operation
from lotman.services import sequence

logger = logging.getLogger('lotman')


def split_reference(reference: str | None) -> tuple[str, str]:
    """
    Split a business document reference ``"type:id"``.

    >>> split_reference("purchase_order:PO-1")
    ('purchase_order', 'PO-1')
    >>> split_reference("PO-1")
    ('', 'PO-1')
    """
    if not reference:
        return '', ''
    if ':' in reference:
        ref_type, ref_id = reference.split(':', 1)
        return ref_type, ref_id
    return '', reference


class MovementLog:
    """Append and read the movement log."""

    @classmethod
    def append(cls, *, operation: Operation, lot: Lot, movement_type: str,
               quantity: Decimal, from_location=None, to_location=None,
               reference: str | None = None, reason: str = '', actor: str = '') -> Movement:
        """
        Append one entry.

        Must be the last write of the operation's transaction: the ledger
        position is allocated here and the counter row stays locked until
        commit.

        Returns:
            The new Movement; its ``sequence`` is the ledger position.
        """
        ref_type, ref_id = split_reference(reference)
        movement = Movement(
            sequence=sequence.next_value(sequence.MOVEMENT),
            operation=operation,
            lot=lot,
            sku=lot.sku,
            warehouse_id=lot.warehouse_id,
            lot_number=lot.lot_number,
            from_location=from_location,
            to_location=to_location,
            movement_type=movement_type,
            quantity=quantity,
            expiry_date=lot.expiry_date,
            unit_cost=lot.unit_cost,
            reference_type=ref_type,
            reference_id=ref_id,
            reason=reason,
            actor=actor,
        )
        movement.save()
        logger.debug(
            "stock.movement.appended",
            extra={
                "sequence": movement.sequence,
                "type": movement_type,
                "sku": lot.sku,
                "lot_id": lot.pk,
                "qty": str(quantity),
            },
        )
        return movement

    @classmethod
    def entries_for(cls, sku: str, warehouse, lot_number: str | None = None,
                    since: int | datetime | None = None):
        """
        Entries for a product in a warehouse, ascending by position.

        Args:
            sku: Product code
            warehouse: Warehouse
            lot_number: Restrict to one lot (None = all lots)
            since: Sequence number (entries after it) or datetime
                (entries at or after it)

        Returns:
            Lazy QuerySet; iterate it again to re-read from the start.
        """
        qs = Movement.objects.for_lot(sku, warehouse, lot_number)
        if isinstance(since, datetime):
            qs = qs.filter(timestamp__gte=since)
        elif since is not None:
            qs = qs.filter(sequence__gt=since)
        return qs.order_by('sequence')

    @classmethod
    def balance(cls, sku: str, warehouse, lot_number: str | None = None) -> Decimal:
        """Sum of signed quantities (equals on-hand quantity)."""
        return Movement.objects.for_lot(sku, warehouse, lot_number).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']
