"""
Lotman Admin.

Provides views for operations and production debugging:
- Warehouse, Location: editable configuration (occupancy is read-only)
- Lot: read-only (quantity, reserved, available, expiry)
- Movement: read-only audit trail
- Reservation: read-only with "cancel" action
- StockAlert: configurable low-stock triggers
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from lotman.exceptions import StockError
from lotman.models import (
    Location,
    Lot,
    Movement,
    Reservation,
    ReservationLine,
    ReservationStatus,
    StockAlert,
    Warehouse,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Stock only changes through lotman.inventory."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# WAREHOUSE / LOCATION ADMIN
# =========================================================================

@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    """Warehouse admin — editable."""

    list_display = ['code', 'name', 'status', 'has_temperature_control', 'has_hazardous_storage']
    list_filter = ['status']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    """Location admin — configuration editable, occupancy read-only."""

    list_display = ['code', 'warehouse', 'kind', 'is_active', 'current_sku',
                    'current_quantity', 'max_quantity']
    list_filter = ['warehouse', 'kind', 'is_active', 'allows_hazardous',
                   'is_temperature_controlled']
    search_fields = ['code', 'current_sku']
    readonly_fields = ['code', 'current_sku', 'current_quantity', 'current_weight',
                       'current_volume', 'created_at', 'updated_at']


# =========================================================================
# LOT ADMIN (read-only)
# =========================================================================

@admin.register(Lot)
class LotAdmin(ReadOnlyAdmin):
    """Lot admin — read-only."""

    list_display = ['sku', 'lot_number', 'warehouse', 'location', 'quantity',
                    'reserved_quantity', 'available_quantity', 'expiry_date', 'status']
    list_filter = ['warehouse', 'status', 'expiry_date']
    search_fields = ['sku', 'lot_number']
    date_hierarchy = 'received_at'
    ordering = ['sku', 'expiry_date', 'pk']


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['sequence', 'timestamp', 'movement_type', 'sku', 'lot_number',
                    'quantity', 'reference', 'actor']
    list_filter = ['movement_type', 'warehouse', 'timestamp']
    search_fields = ['sku', 'lot_number', 'reference_id', 'reason']
    date_hierarchy = 'timestamp'


# =========================================================================
# RESERVATION ADMIN (read-only with cancel action)
# =========================================================================

class ReservationLineInline(admin.TabularInline):
    model = ReservationLine
    extra = 0
    can_delete = False
    readonly_fields = ['lot', 'quantity', 'shipped_quantity', 'released_quantity']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdmin):
    """Reservation admin — read-only with cancel action."""

    list_display = ['reference', 'sku', 'warehouse', 'quantity', 'shipped_quantity',
                    'status', 'expires_at']
    list_filter = ['status', 'warehouse']
    search_fields = ['reference', 'sku']
    inlines = [ReservationLineInline]
    actions = ['cancel_reservations']

    @admin.action(description=_('Cancel selected reservations'))
    def cancel_reservations(self, request, queryset):
        from lotman import inventory

        count = 0
        for reservation in queryset.filter(status=ReservationStatus.ACTIVE):
            try:
                inventory.cancel_reservation(
                    reservation.reference,
                    reason='admin',
                    actor=request.user.get_username(),
                )
                count += 1
            except StockError as exc:
                logger.warning(
                    "cancel_reservations: failed to cancel %s: %s", reservation.reference, exc,
                )

        self.message_user(request, _('{count} reservation(s) cancelled.').format(count=count))


# =========================================================================
# STOCK ALERT ADMIN
# =========================================================================

@admin.register(StockAlert)
class StockAlertAdmin(admin.ModelAdmin):
    """StockAlert admin — configure low-stock triggers."""

    list_display = ['sku', 'warehouse', 'min_quantity', 'is_active', 'last_triggered_at']
    list_filter = ['is_active', 'warehouse']
    search_fields = ['sku']
    readonly_fields = ['last_triggered_at', 'created_at', 'updated_at']
