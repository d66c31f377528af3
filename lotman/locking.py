"""
Row locking — ordered, bounded SELECT ... FOR UPDATE.

Global lock order (every operation follows it, so transfers cannot deadlock):

    Reservation → Location (by id) → Lot (by id) → LedgerSequence

Locks are taken with NOWAIT inside a savepoint and retried a bounded
number of times with exponential backoff. When the backend has no row
locks (SQLite) the database serializes writers instead.
"""

import logging
import time

from django.db import DatabaseError, connection, transaction

from lotman.conf import lotman_settings
from lotman.exceptions import StockError

logger = logging.getLogger('lotman')


def lock_rows(queryset, pks) -> dict:
    """
    Lock the rows ``pks`` of ``queryset`` in ascending id order.

    Must run inside transaction.atomic().

    Returns:
        Dict {pk: locked instance} with fresh values from the database.

    Raises:
        StockError('CONCURRENCY_CONFLICT'): lock not obtained within the
            configured number of attempts.
    """
    ordered = sorted({pk for pk in pks if pk is not None})
    if not ordered:
        return {}

    nowait = connection.features.has_select_for_update_nowait
    attempts = max(1, lotman_settings.LOCK_RETRIES)
    delay = lotman_settings.LOCK_RETRY_DELAY

    for attempt in range(attempts):
        try:
            with transaction.atomic():
                rows = list(
                    queryset.select_for_update(nowait=nowait)
                    .filter(pk__in=ordered)
                    .order_by('pk')
                )
            return {row.pk: row for row in rows}
        except DatabaseError as exc:
            logger.debug(
                "stock.lock.contended",
                extra={
                    "model": queryset.model.__name__,
                    "pks": ordered,
                    "attempt": attempt + 1,
                    "error": str(exc),
                },
            )
            if attempt + 1 < attempts:
                time.sleep(delay * (2 ** attempt))

    logger.warning(
        "stock.lock.conflict",
        extra={"model": queryset.model.__name__, "pks": ordered},
    )
    raise StockError(
        'CONCURRENCY_CONFLICT',
        model=queryset.model.__name__,
        ids=ordered,
    )


def lock_one(queryset, pk):
    """Lock a single row; returns None if it does not exist."""
    return lock_rows(queryset, [pk]).get(pk)
