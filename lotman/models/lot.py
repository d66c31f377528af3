"""
Lot model — stock record at a (product, warehouse, lot, location) coordinate.
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import LIVE_STATUSES, PICKABLE_STATUSES, LotStatus

logger = logging.getLogger('lotman')


def unexpired_pickable_q() -> Q:
    """Pickable status and not past expiry (undated lots never expire)."""
    return Q(status__in=PICKABLE_STATUSES) & (
        Q(expiry_date__isnull=True) | Q(expiry_date__gte=timezone.localdate())
    )


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def for_sku(self, sku: str, warehouse=None):
        qs = self.filter(sku=sku)
        if warehouse is not None:
            qs = qs.filter(warehouse=warehouse)
        return qs

    def live(self):
        """Lots that still occupy their coordinate (not shipped/damaged)."""
        return self.filter(status__in=LIVE_STATUSES)

    def pickable(self):
        """Unexpired lots with stock that can be reserved."""
        return self.filter(unexpired_pickable_q(), available_quantity__gt=0)

    def at_location(self, location):
        if location is None:
            return self.filter(location__isnull=True)
        return self.filter(location=location)

    def fefo(self):
        """
        First-expiry-first-out ordering.

        Expiry ascending (no expiry last), then oldest receipt,
        then lowest cost, then lot number, then id.
        """
        return self.order_by(
            F('expiry_date').asc(nulls_last=True),
            'received_at',
            'unit_cost',
            'lot_number',
            'pk',
        )

    def expiring_before(self, date):
        return self.filter(expiry_date__lte=date, expiry_date__isnull=False)


class Lot(models.Model):
    """
    Quantity of one lot of a product at one location.

    Coordinates:
    - sku + warehouse: WHAT and WHICH SITE
    - lot_number: WHICH BATCH ('' = untracked)
    - location: WHERE — null means unplaced, awaiting putaway

    Invariant (checked before every write and by the database):
        available_quantity = quantity - reserved_quantity
        0 <= reserved_quantity <= quantity

    The Movement log is the source of truth; quantity is a cache of the
    sum of this lot's movements. Use recalculate() for audit/correction.
    """

    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    warehouse = models.ForeignKey(
        'lotman.Warehouse',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Warehouse'),
    )
    location = models.ForeignKey(
        'lotman.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='lots',
        verbose_name=_('Location'),
        help_text=_('Empty = unplaced stock awaiting putaway'),
    )
    lot_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Lot'),
    )

    quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('On hand'),
    )
    reserved_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('Reserved'),
    )
    available_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('Available'),
    )
    unit_cost = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal('0'),
        verbose_name=_('Unit cost'),
    )

    expiry_date = models.DateField(null=True, blank=True, db_index=True, verbose_name=_('Expiry'))
    manufactured_on = models.DateField(null=True, blank=True, verbose_name=_('Manufactured'))
    received_at = models.DateTimeField(default=timezone.now, verbose_name=_('Received'))

    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.AVAILABLE,
        db_index=True,
        verbose_name=_('Status'),
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lot')
        verbose_name_plural = _('Lots')
        constraints = [
            # One pickable and one quarantined record per coordinate.
            models.UniqueConstraint(
                fields=['sku', 'warehouse', 'lot_number', 'location'],
                condition=Q(location__isnull=False, status__in=PICKABLE_STATUSES),
                name='unique_pickable_lot_coordinate',
            ),
            models.UniqueConstraint(
                fields=['sku', 'warehouse', 'lot_number', 'location'],
                condition=Q(location__isnull=False, status=LotStatus.QUARANTINE),
                name='unique_quarantined_lot_coordinate',
            ),
            models.UniqueConstraint(
                fields=['sku', 'warehouse', 'lot_number'],
                condition=Q(location__isnull=True, status__in=PICKABLE_STATUSES),
                name='unique_pickable_unplaced_lot',
            ),
            models.UniqueConstraint(
                fields=['sku', 'warehouse', 'lot_number'],
                condition=Q(location__isnull=True, status=LotStatus.QUARANTINE),
                name='unique_quarantined_unplaced_lot',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0) & Q(reserved_quantity__gte=0),
                name='lot_quantities_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F('quantity')),
                name='lot_reserved_within_quantity',
            ),
            models.CheckConstraint(
                condition=Q(available_quantity=F('quantity') - F('reserved_quantity')),
                name='lot_available_consistent',
            ),
        ]
        indexes = [
            models.Index(fields=['sku', 'warehouse', 'lot_number'], name='lotman_lot_coordinate_idx'),
            models.Index(fields=['warehouse', 'status'], name='lotman_lot_wh_status_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def total_value(self) -> Decimal:
        """Stock value at unit cost."""
        return self.quantity * self.unit_cost

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_pickable(self) -> bool:
        return self.status in PICKABLE_STATUSES

    @property
    def is_expired(self) -> bool:
        if self.expiry_date is None:
            return False
        return timezone.localdate() > self.expiry_date

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def invariant_errors(self) -> list[str]:
        """Return the quantity invariants this instance violates."""
        errors = []
        if self.quantity < 0:
            errors.append('quantity < 0')
        if self.reserved_quantity < 0:
            errors.append('reserved_quantity < 0')
        if self.reserved_quantity > self.quantity:
            errors.append('reserved_quantity > quantity')
        if self.available_quantity != self.quantity - self.reserved_quantity:
            errors.append('available_quantity != quantity - reserved_quantity')
        return errors

    def recalculate(self) -> Decimal:
        """
        Recalculate quantity from Movements.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Reserved quantity is left untouched; see
        lotman.services.reconciliation.rebuild for the full rebuild.

        Returns:
            New calculated quantity
        """
        total = self.movements.aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

        if total != self.quantity:
            old = self.quantity
            self.quantity = total
            self.available_quantity = total - self.reserved_quantity
            self.save(update_fields=['quantity', 'available_quantity', 'updated_at'])

            logger.warning(
                "Lot %s recalculated: %s → %s (diff: %s)",
                self.pk, old, total, total - old,
            )

        return total

    def __str__(self) -> str:
        loc = self.location.code if self.location_id else '?'
        lot = f"#{self.lot_number}" if self.lot_number else ""
        return f"{self.sku}{lot} [{loc}]: {self.quantity}"
