"""
Location model — a storage slot and its occupancy.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import LocationKind


def compose_location_code(zone: str, aisle: str = '', rack: str = '', level: str = '') -> str:
    """Build a location code like ``A-01-03-2`` from its parts."""
    return '-'.join(part for part in (zone, aisle, rack, level) if part)


class LocationQuerySet(models.QuerySet):
    """Convenience filters for locations."""

    def active(self):
        return self.filter(is_active=True)

    def occupied(self):
        return self.filter(current_quantity__gt=0)

    def empty(self):
        return self.filter(current_quantity=0)


class Location(models.Model):
    """
    Storage slot inside a warehouse.

    Static attributes (kind, limits, capability flags) come from warehouse
    setup. Occupancy fields are owned by the Location Directory and only
    change inside an engine operation.

    A null limit means unlimited. A slot holds one SKU at a time; several
    lots of that SKU may share it.
    """

    warehouse = models.ForeignKey(
        'lotman.Warehouse',
        on_delete=models.PROTECT,
        related_name='locations',
        verbose_name=_('Warehouse'),
    )
    code = models.CharField(
        max_length=50,
        verbose_name=_('Code'),
        help_text=_('Zone/aisle/rack/level, e.g. A-01-03-2'),
    )
    zone = models.CharField(max_length=20, blank=True, default='')
    aisle = models.CharField(max_length=20, blank=True, default='')
    rack = models.CharField(max_length=20, blank=True, default='')
    level = models.CharField(max_length=20, blank=True, default='')
    kind = models.CharField(
        max_length=20,
        choices=LocationKind.choices,
        default=LocationKind.STORAGE,
        verbose_name=_('Kind'),
    )

    # Limits
    max_weight = models.DecimalField(
        max_digits=15, decimal_places=3, null=True, blank=True,
        verbose_name=_('Max weight'),
    )
    max_volume = models.DecimalField(
        max_digits=15, decimal_places=3, null=True, blank=True,
        verbose_name=_('Max volume'),
    )
    max_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, null=True, blank=True,
        verbose_name=_('Max quantity'),
    )
    allows_hazardous = models.BooleanField(default=False, verbose_name=_('Hazardous allowed'))
    is_temperature_controlled = models.BooleanField(
        default=False,
        verbose_name=_('Temperature controlled'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    # Occupancy (mutable, engine-owned)
    current_sku = models.CharField(
        max_length=64, blank=True, default='',
        verbose_name=_('Current product'),
        help_text=_('Empty = unoccupied'),
    )
    current_quantity = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
        verbose_name=_('Current quantity'),
    )
    current_weight = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
    )
    current_volume = models.DecimalField(
        max_digits=15, decimal_places=3, default=Decimal('0'),
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LocationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Location')
        verbose_name_plural = _('Locations')
        ordering = ['warehouse', 'code']
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'code'],
                name='unique_location_code_per_warehouse',
            ),
            models.CheckConstraint(
                condition=Q(current_quantity__gte=0) & Q(current_weight__gte=0) & Q(current_volume__gte=0),
                name='location_occupancy_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(max_quantity__isnull=True) | Q(current_quantity__lte=F('max_quantity')),
                name='location_quantity_within_max',
            ),
            models.CheckConstraint(
                condition=Q(max_weight__isnull=True) | Q(current_weight__lte=F('max_weight')),
                name='location_weight_within_max',
            ),
            models.CheckConstraint(
                condition=Q(max_volume__isnull=True) | Q(current_volume__lte=F('max_volume')),
                name='location_volume_within_max',
            ),
        ]
        indexes = [
            models.Index(fields=['warehouse', 'kind', 'is_active'], name='lotman_loc_wh_kind_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.code and self.zone:
            self.code = compose_location_code(self.zone, self.aisle, self.rack, self.level)
        super().save(*args, **kwargs)

    @property
    def is_occupied(self) -> bool:
        return self.current_quantity > 0

    def remaining(self, attr: str) -> Decimal | None:
        """Remaining capacity for 'quantity', 'weight' or 'volume' (None = unlimited)."""
        limit = getattr(self, f'max_{attr}')
        if limit is None:
            return None
        return limit - getattr(self, f'current_{attr}')

    def __str__(self) -> str:
        return f"{self.warehouse_id}:{self.code}"
