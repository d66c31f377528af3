"""
Ledger sequence — monotonic position allocation via a locked counter row.

The counter row is the sole source of truth for the next value
(never MAX(sequence) + 1). The increment is part of the caller's
transaction: it is only visible on commit and returned on rollback.

Callers allocate last, right before appending, so the lock is held for
the shortest possible time and positions follow commit order.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import F

from lotman.locking import lock_one
from lotman.models.sequence import LedgerSequence

logger = logging.getLogger('lotman')

MOVEMENT = 'movement'


def _lock_counter(name: str) -> LedgerSequence | None:
    pk = LedgerSequence.objects.filter(name=name).values_list('pk', flat=True).first()
    if pk is None:
        return None
    return lock_one(LedgerSequence.objects.all(), pk)


def next_value(name: str = MOVEMENT) -> int:
    """
    Allocate the next value of a named sequence.

    Must run inside transaction.atomic(). The counter row stays locked
    until the transaction completes. Waiting for it is bounded like every
    other row lock.

    Returns:
        An integer > 0, strictly greater than any value returned before
        for this name.

    Raises:
        StockError('CONCURRENCY_CONFLICT'): counter row stayed locked
    """
    counter = _lock_counter(name)

    if counter is None:
        # First use. Another transaction may create it concurrently:
        # use a savepoint so a lost race doesn't abort the caller.
        try:
            with transaction.atomic():
                LedgerSequence.objects.create(name=name, current_value=1)
            logger.debug("stock.sequence.allocated", extra={"sequence": name, "value": 1})
            return 1
        except IntegrityError:
            logger.debug("stock.sequence.create_race", extra={"sequence": name})
            counter = _lock_counter(name)

    LedgerSequence.objects.filter(pk=counter.pk).update(current_value=F('current_value') + 1)
    counter.refresh_from_db(fields=['current_value'])
    logger.debug(
        "stock.sequence.allocated",
        extra={"sequence": name, "value": counter.current_value},
    )
    return counter.current_value


def current_value(name: str = MOVEMENT) -> int:
    """Current value without incrementing (0 if never used)."""
    counter = LedgerSequence.objects.filter(name=name).first()
    return counter.current_value if counter else 0
