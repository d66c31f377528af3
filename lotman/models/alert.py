"""
StockAlert model — configurable low-stock trigger per SKU and warehouse.

Usage:
    StockAlert.objects.create(sku='SKU-1', warehouse=main_wh, min_quantity=10)

    from lotman.services.alerts import check_alerts
    triggered = check_alerts()
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockAlert(models.Model):
    """
    Low-stock alert.

    Triggered when the available quantity of the SKU (optionally within
    one warehouse) drops below min_quantity.
    """

    sku = models.CharField(max_length=64, verbose_name=_('SKU'))
    warehouse = models.ForeignKey(
        'lotman.Warehouse',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='alerts',
        verbose_name=_('Warehouse'),
        help_text=_('Empty = all warehouses combined'),
    )
    min_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name=_('Minimum quantity'),
        help_text=_('Alert fires when available < this value'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    last_triggered_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Last triggered'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Stock alert')
        verbose_name_plural = _('Stock alerts')
        constraints = [
            models.UniqueConstraint(
                fields=['sku', 'warehouse'],
                name='unique_stock_alert_per_sku_warehouse',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active'], name='lotman_alert_active_idx'),
        ]

    def __str__(self) -> str:
        wh = f" @ {self.warehouse.code}" if self.warehouse_id else ""
        return f"Alert: {self.sku}{wh} < {self.min_quantity}"
