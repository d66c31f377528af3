"""
Management command to check low-stock alerts.

Usage:
    python manage.py check_stock_alerts
    python manage.py check_stock_alerts --sku SKU-1
"""

from django.core.management.base import BaseCommand

from lotman import inventory


class Command(BaseCommand):
    """Check stock alerts command."""

    help = 'Triggers alerts for products below their minimum quantity'

    def add_arguments(self, parser):
        parser.add_argument('--sku', help='Only alerts for this SKU')

    def handle(self, *args, **options):
        triggered = inventory.check_alerts(sku=options['sku'])
        for alert, available in triggered:
            self.stdout.write(f'{alert}: available {available}')
        self.stdout.write(
            self.style.SUCCESS(f'{len(triggered)} alert(s) triggered')
        )
