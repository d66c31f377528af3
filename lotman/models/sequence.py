"""
LedgerSequence model — named counter for monotonic ledger positions.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LedgerSequence(models.Model):
    """
    One row per named sequence.

    The row is locked (SELECT ... FOR UPDATE) while a value is allocated,
    so values are strictly increasing and only consumed on commit.
    Never derive positions from MAX(sequence) + 1.
    """

    name = models.CharField(max_length=50, unique=True, verbose_name=_('Name'))
    current_value = models.BigIntegerField(default=0, verbose_name=_('Current value'))

    class Meta:
        verbose_name = _('Ledger sequence')
        verbose_name_plural = _('Ledger sequences')

    def __str__(self) -> str:
        return f"{self.name}={self.current_value}"
