"""
Movement model — Immutable ledger of stock changes.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import MovementType


IMMUTABLE_MESSAGE = (
    "Movements are immutable. "
    "To correct one, append a new Movement with the inverse quantity."
)


class MovementQuerySet(models.QuerySet):
    """QuerySet that refuses bulk edits of the log."""

    def update(self, **kwargs):
        raise ValueError(IMMUTABLE_MESSAGE)

    def delete(self):
        raise ValueError(IMMUTABLE_MESSAGE)

    def for_lot(self, sku: str, warehouse, lot_number: str | None = None):
        qs = self.filter(sku=sku, warehouse=warehouse)
        if lot_number is not None:
            qs = qs.filter(lot_number=lot_number)
        return qs


class Movement(models.Model):
    """
    Immutable record of a stock change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements with inverse quantity
    - quantity is signed: positive = into the lot, negative = out of it
    - sequence is allocated last in the operation's transaction,
      so positions follow commit order

    The sum of a lot's movements equals its quantity.
    """

    sequence = models.BigIntegerField(
        unique=True,
        verbose_name=_('Position'),
    )
    operation = models.ForeignKey(
        'lotman.Operation',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Operation'),
    )
    lot = models.ForeignKey(
        'lotman.Lot',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Lot record'),
    )

    # Denormalized coordinates (lots may be re-homed, the log must not change)
    sku = models.CharField(max_length=64, verbose_name=_('SKU'))
    warehouse = models.ForeignKey(
        'lotman.Warehouse',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Warehouse'),
    )
    lot_number = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Lot'))
    from_location = models.ForeignKey(
        'lotman.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('From'),
    )
    to_location = models.ForeignKey(
        'lotman.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('To'),
    )

    movement_type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Type'),
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name=_('Quantity'),
        help_text=_('Positive = into the lot, negative = out of it'),
    )
    expiry_date = models.DateField(null=True, blank=True)
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))

    # Business document that triggered the movement
    reference_type = models.CharField(max_length=50, blank=True, default='')
    reference_id = models.CharField(max_length=100, blank=True, default='')

    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    actor = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Actor'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['sequence']
        indexes = [
            models.Index(fields=['sku', 'warehouse', 'lot_number', 'sequence'], name='lotman_mov_coordinate_idx'),
            models.Index(fields=['lot', 'sequence'], name='lotman_mov_lot_seq_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='lotman_mov_reference_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(IMMUTABLE_MESSAGE)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(IMMUTABLE_MESSAGE)

    @property
    def reference(self) -> str:
        if not self.reference_type and not self.reference_id:
            return ''
        return f"{self.reference_type}:{self.reference_id}"

    def __str__(self) -> str:
        signal = '+' if self.quantity > 0 else ''
        return f"#{self.sequence} {self.movement_type} {signal}{self.quantity} {self.sku}"
