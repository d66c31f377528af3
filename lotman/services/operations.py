"""
Operations — idempotent, all-or-nothing unit of work.

Each write runs as one transaction.atomic() block:

    Operation row → location occupancy → lot rows → movement append

A StockError anywhere rolls everything back. A retried call with the same
(kind, key) replays the recorded result; the same key with a different
request raises IDEMPOTENCY_CONFLICT.
"""

import hashlib
import json
import logging
import uuid
from collections.abc import Callable
from typing import Any

from django.db import DatabaseError, IntegrityError, transaction

from lotman.exceptions import StockError
from lotman.models.lot import Lot
from lotman.models.operation import Operation
from lotman.models.reservation import Reservation

logger = logging.getLogger('lotman')


def fingerprint(payload: dict) -> str:
    """Stable hash of a request payload."""
    payload_bytes = json.dumps(payload, sort_keys=True, default=str).encode('utf-8')
    return hashlib.sha256(payload_bytes).hexdigest()


def snapshot(result) -> dict:
    """Describe a result by ids so it can be reloaded on replay."""
    if isinstance(result, Lot):
        return {'lots': [result.pk]}
    if isinstance(result, Reservation):
        return {'reservation': result.pk}
    if isinstance(result, tuple):
        return {'lots': [lot.pk for lot in result], 'tuple': True}
    return {}


def restore(data: dict):
    """Inverse of snapshot(): reload fresh instances."""
    if 'reservation' in data:
        return Reservation.objects.get(pk=data['reservation'])
    if 'lots' in data:
        lots = Lot.objects.in_bulk(data['lots'])
        loaded = tuple(lots[pk] for pk in data['lots'])
        return loaded if data.get('tuple') else loaded[0]
    return None


def _replay(existing: Operation, request_hash: str):
    if existing.request_hash != request_hash:
        raise StockError(
            'IDEMPOTENCY_CONFLICT',
            kind=existing.kind,
            key=existing.key,
        )
    logger.info(
        "stock.operation.replayed",
        extra={"kind": existing.kind, "key": existing.key},
    )
    return restore(existing.result)


def run_operation(kind: str, key: str | None, payload: dict,
                  apply: Callable[[Operation], Any], actor: str = ''):
    """
    Run ``apply(operation)`` once per (kind, key).

    Args:
        kind: Operation kind ('receive', 'reserve', ...)
        key: Idempotency key (None = generate, no replay possible)
        payload: Request description, fingerprinted for replay checks
        apply: Does the work; returns a Lot, a Reservation or a tuple of Lots
        actor: Who asked

    Raises:
        StockError: from ``apply`` (nothing applied)
        StockError('IDEMPOTENCY_CONFLICT'): key reused with another payload
        StockError('PERSISTENCE_FAILURE'): database write failed
    """
    request_hash = fingerprint(payload)
    key = key or uuid.uuid4().hex

    try:
        with transaction.atomic():
            existing = Operation.objects.filter(kind=kind, key=key).first()
            if existing is not None:
                return _replay(existing, request_hash)

            operation = Operation.objects.create(
                kind=kind,
                key=key,
                request_hash=request_hash,
                actor=actor,
            )
            result = apply(operation)
            operation.result = snapshot(result)
            operation.save(update_fields=['result'])
            return result

    except StockError:
        raise

    except IntegrityError as exc:
        # A concurrent call with the same key committed first.
        existing = Operation.objects.filter(kind=kind, key=key).first()
        if existing is not None:
            return _replay(existing, request_hash)
        logger.error(
            "stock.operation.persistence_failure",
            extra={"kind": kind, "key": key, "error": str(exc)},
        )
        raise StockError('PERSISTENCE_FAILURE', kind=kind, key=key, error=str(exc)) from exc

    except DatabaseError as exc:
        logger.error(
            "stock.operation.persistence_failure",
            extra={"kind": kind, "key": key, "error": str(exc)},
        )
        raise StockError('PERSISTENCE_FAILURE', kind=kind, key=key, error=str(exc)) from exc
