"""
Management command to check stock records against the movement log.

Usage:
    python manage.py reconcile_ledger
    python manage.py reconcile_ledger --sku SKU-1 --warehouse main
    python manage.py reconcile_ledger --fix
"""

from django.core.management.base import BaseCommand, CommandError

from lotman import inventory
from lotman.models import Warehouse


class Command(BaseCommand):
    """Reconcile ledger command."""

    help = 'Reports lots and locations that disagree with the movement log'

    def add_arguments(self, parser):
        parser.add_argument('--sku', help='Only this SKU')
        parser.add_argument('--warehouse', help='Only this warehouse code')
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rebuild stock records from the movement log'
        )

    def handle(self, *args, **options):
        warehouse = None
        if options['warehouse']:
            warehouse = Warehouse.objects.filter(code=options['warehouse']).first()
            if warehouse is None:
                raise CommandError(f"Unknown warehouse '{options['warehouse']}'")

        discrepancies = inventory.verify(sku=options['sku'], warehouse=warehouse)
        for discrepancy in discrepancies:
            self.stdout.write(str(discrepancy))

        if not discrepancies:
            self.stdout.write(self.style.SUCCESS('Ledger consistent'))
            return

        if options['fix']:
            fixed = inventory.rebuild(sku=options['sku'], warehouse=warehouse)
            self.stdout.write(self.style.SUCCESS(f'{fixed} record(s) rebuilt'))
        else:
            self.stdout.write(
                self.style.WARNING(f'{len(discrepancies)} discrepancy(ies) found')
            )
