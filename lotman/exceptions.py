"""
Exceptions for Lotman.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Error with a machine-readable code, a message and context data.

    Subclasses provide ``_default_messages`` keyed by code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")


class StockError(BaseError):
    """
    Structured exception for inventory operations.

    Usage:
        try:
            inventory.reserve('SKU-1', main_wh, Decimal('10'), reference='so:42')
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'CAPACITY_EXCEEDED': 'Location capacity exceeded',
        'INCOMPATIBLE_LOCATION': 'Location cannot hold this product',
        'INSUFFICIENT_STOCK': 'Not enough stock to satisfy the request',
        'INSUFFICIENT_AVAILABLE': 'Requested quantity exceeds available quantity',
        'INSUFFICIENT_RESERVED': 'Requested quantity exceeds reserved quantity',
        'RESERVATION_NOT_FOUND': 'Reservation not found',
        'QUANTITY_MISMATCH': 'Quantity does not match the outstanding reservation',
        'INVALID_ADJUSTMENT': 'Adjustment would make stock negative',
        'INVALID_RELEASE_AMOUNT': 'Release amount exceeds what is held',
        'CONCURRENCY_CONFLICT': 'Could not lock the records involved',
        'PERSISTENCE_FAILURE': 'Durable write failed, nothing was applied',
        'INVALID_QUANTITY': 'Invalid quantity (must be positive)',
        'INVALID_STATUS': 'Invalid status for this operation',
        'INVALID_TRANSFER': 'Source and target are the same location',
        'LOT_NOT_FOUND': 'Lot not found',
        'UNKNOWN_PRODUCT': 'Product unknown or inactive',
        'REASON_REQUIRED': 'Reason is required',
        'IDEMPOTENCY_CONFLICT': 'Idempotency key reused with a different request',
    }

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
