"""
Enums for Lotman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class WarehouseStatus(models.TextChoices):
    """Operational status of a warehouse."""
    ACTIVE = 'active', _('Active')
    INACTIVE = 'inactive', _('Inactive')
    MAINTENANCE = 'maintenance', _('Maintenance')


class LocationKind(models.TextChoices):
    """
    Type of storage slot.

    STORAGE:    Long-term storage, the target of automatic putaway.
    CROSS_DOCK: Stock passing through without long-term storage.
    QUARANTINE: Quality hold area. Stock received here is quarantined.
    LOADING:    Outbound staging at the dock.
    UNLOADING:  Inbound staging at the dock.
    """
    STORAGE = 'storage', _('Storage')
    CROSS_DOCK = 'cross_dock', _('Cross-dock')
    QUARANTINE = 'quarantine', _('Quarantine')
    LOADING = 'loading', _('Loading')
    UNLOADING = 'unloading', _('Unloading')


class LotStatus(models.TextChoices):
    """
    Lot record lifecycle.

    AVAILABLE ↔ RESERVED follows reserved_quantity > 0.
    AVAILABLE ↔ QUARANTINE by explicit quality hold.
    SHIPPED and DAMAGED are terminal (quantity reached zero).
    """
    AVAILABLE = 'available', _('Available')
    RESERVED = 'reserved', _('Reserved')
    QUARANTINE = 'quarantine', _('Quarantine')
    DAMAGED = 'damaged', _('Damaged')
    SHIPPED = 'shipped', _('Shipped')


# Statuses a lot can be picked from (FEFO candidates)
PICKABLE_STATUSES = (LotStatus.AVAILABLE, LotStatus.RESERVED)

# Statuses of a lot that still occupies its coordinate
LIVE_STATUSES = (LotStatus.AVAILABLE, LotStatus.RESERVED, LotStatus.QUARANTINE)

TERMINAL_STATUSES = (LotStatus.DAMAGED, LotStatus.SHIPPED)


class MovementType(models.TextChoices):
    """Kind of stock-affecting event."""
    RECEIPT = 'receipt', _('Receipt')
    SHIPMENT = 'shipment', _('Shipment')
    TRANSFER = 'transfer', _('Transfer')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    COUNT = 'count', _('Cycle count')
    DAMAGE = 'damage', _('Damage')


class ReservationStatus(models.TextChoices):
    """Reservation lifecycle status."""
    ACTIVE = 'active', _('Active')           # Holding stock
    FULFILLED = 'fulfilled', _('Fulfilled')  # Fully shipped
    RELEASED = 'released', _('Released')     # Cancelled or expired
