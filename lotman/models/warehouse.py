"""
Warehouse model — a site that owns storage locations.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import WarehouseStatus


class Warehouse(models.Model):
    """
    A warehouse site.

    Warehouses are created during system setup and are read-only to the engine.
    Stock operations against a non-active warehouse are refused.
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Code'),
    )
    name = models.CharField(max_length=100, verbose_name=_('Name'))
    status = models.CharField(
        max_length=20,
        choices=WarehouseStatus.choices,
        default=WarehouseStatus.ACTIVE,
        verbose_name=_('Status'),
    )
    has_temperature_control = models.BooleanField(
        default=False,
        verbose_name=_('Temperature control'),
    )
    has_hazardous_storage = models.BooleanField(
        default=False,
        verbose_name=_('Hazardous storage'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Warehouse')
        verbose_name_plural = _('Warehouses')
        ordering = ['code']

    @property
    def is_active(self) -> bool:
        return self.status == WarehouseStatus.ACTIVE

    def __str__(self) -> str:
        return self.code
