"""
Operation model — one applied write, keyed for idempotent retries.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Operation(models.Model):
    """
    Unit of work of the allocation engine.

    Created inside the same transaction as the stock changes it describes,
    so its existence means the operation was applied. A retried call with
    the same (kind, key) replays ``result`` instead of re-applying.
    """

    kind = models.CharField(max_length=30, verbose_name=_('Kind'))
    key = models.CharField(max_length=150, verbose_name=_('Idempotency key'))
    request_hash = models.CharField(max_length=64)
    result = models.JSONField(default=dict, blank=True)
    actor = models.CharField(max_length=150, blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Operation')
        verbose_name_plural = _('Operations')
        constraints = [
            models.UniqueConstraint(fields=['kind', 'key'], name='unique_operation_key'),
        ]

    def __str__(self) -> str:
        return f"{self.kind}:{self.key}"
