"""
Reservation model — logical hold on stock across one or more lots.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import ReservationStatus


class ReservationQuerySet(models.QuerySet):
    """Custom QuerySet for Reservation with lifecycle filters."""

    def active(self):
        """Active and not expired."""
        return self.filter(status=ReservationStatus.ACTIVE).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gte=timezone.now())
        )

    def expired(self):
        """Still ACTIVE but past expires_at (awaiting release_expired)."""
        return self.filter(
            status=ReservationStatus.ACTIVE,
            expires_at__lt=timezone.now(),
        )


class Reservation(models.Model):
    """
    Quantity hold for an order/pick request.

    LIFECYCLE:

        ACTIVE ──ship() (all)──► FULFILLED
          │
          └──cancel() / expiry──► RELEASED

    Partial shipments keep the reservation ACTIVE; cancelling after a
    partial shipment releases only the outstanding remainder.

    The reservation is all-or-nothing at creation: its lines cover the
    full requested quantity, or no reservation exists.
    """

    reference = models.CharField(
        max_length=150,
        unique=True,
        verbose_name=_('Reference'),
        help_text=_('Caller reference, also the idempotency key'),
    )
    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    warehouse = models.ForeignKey(
        'lotman.Warehouse',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Warehouse'),
    )
    lot_hint = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Lot hint'))

    quantity = models.DecimalField(max_digits=15, decimal_places=3, verbose_name=_('Quantity'))
    shipped_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('Shipped'),
    )
    released_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('Released'),
    )

    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Released automatically if not shipped by then'),
    )
    actor = models.CharField(max_length=150, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Resolved at'))
    metadata = models.JSONField(default=dict, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        constraints = [
            models.CheckConstraint(
                condition=Q(shipped_quantity__gte=0) & Q(released_quantity__gte=0)
                & Q(quantity__gte=F('shipped_quantity') + F('released_quantity')),
                name='reservation_quantities_consistent',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='lotman_rsv_status_exp_idx'),
            models.Index(fields=['sku', 'warehouse'], name='lotman_rsv_sku_wh_idx'),
        ]

    @property
    def outstanding(self) -> Decimal:
        """Quantity still held (not shipped, not released)."""
        return self.quantity - self.shipped_quantity - self.released_quantity

    @property
    def is_active(self) -> bool:
        if self.status != ReservationStatus.ACTIVE:
            return False
        if self.expires_at is None:
            return True
        return timezone.now() <= self.expires_at

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return timezone.now() > self.expires_at

    def __str__(self) -> str:
        return f"{self.reference}: {self.quantity}x {self.sku} ({self.status})"


class ReservationLine(models.Model):
    """Portion of a reservation drawn from one lot record."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name='lines',
    )
    lot = models.ForeignKey(
        'lotman.Lot',
        on_delete=models.PROTECT,
        related_name='reservation_lines',
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    shipped_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0'))
    released_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0'))

    class Meta:
        verbose_name = _('Reservation line')
        verbose_name_plural = _('Reservation lines')
        ordering = ['pk']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=F('shipped_quantity') + F('released_quantity')),
                name='reservation_line_quantities_consistent',
            ),
        ]

    @property
    def outstanding(self) -> Decimal:
        return self.quantity - self.shipped_quantity - self.released_quantity

    def __str__(self) -> str:
        return f"{self.reservation_id}/{self.lot_id}: {self.quantity}"
