"""
Stock alerts — check and trigger low-stock alerts.

Usage:
    from lotman.services.alerts import check_alerts

    # Run periodically (celery beat, cron) or after stock changes
    triggered = check_alerts()
    # Returns list of (StockAlert, current_available) tuples
"""

import logging
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from lotman.models.alert import StockAlert
from lotman.models.lot import Lot

logger = logging.getLogger('lotman')


def _available_for(alert: StockAlert) -> Decimal:
    lots = Lot.objects.pickable().filter(sku=alert.sku)
    if alert.warehouse_id:
        lots = lots.filter(warehouse_id=alert.warehouse_id)
    return lots.aggregate(
        t=Coalesce(Sum('available_quantity'), Decimal('0'))
    )['t']


def low_stock(warehouse=None) -> list[tuple[StockAlert, Decimal]]:
    """
    Alerts currently below their threshold, without recording a trigger.

    Args:
        warehouse: Only alerts scoped to this warehouse (None = all alerts)
    """
    qs = StockAlert.objects.filter(is_active=True).select_related('warehouse')
    if warehouse is not None:
        qs = qs.filter(warehouse=warehouse)

    below = []
    for alert in qs.order_by('sku', 'pk'):
        available = _available_for(alert)
        if available < alert.min_quantity:
            below.append((alert, available))
    return below


def check_alerts(sku: str | None = None) -> list[tuple[StockAlert, Decimal]]:
    """
    Check all active alerts and return those that are triggered.

    An alert is triggered when available quantity < min_quantity.
    Quarantined and reserved stock do not count as available.

    Args:
        sku: Optional SKU to check alerts for (None = all).

    Returns:
        List of (alert, current_available) tuples for triggered alerts.
    """
    qs = StockAlert.objects.filter(is_active=True)
    if sku is not None:
        qs = qs.filter(sku=sku)

    triggered = []
    now = timezone.now()

    for alert in qs.select_related('warehouse'):
        available = _available_for(alert)

        if available < alert.min_quantity:
            alert.last_triggered_at = now
            alert.save(update_fields=['last_triggered_at'])
            triggered.append((alert, available))
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "alert_id": alert.pk,
                    "sku": alert.sku,
                    "min_quantity": str(alert.min_quantity),
                    "available": str(available),
                    "warehouse": alert.warehouse.code if alert.warehouse_id else "all",
                },
            )

    return triggered
