"""
Tests for reconciliation, alerts and management commands.
"""

from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from lotman import inventory
from lotman.locking import lock_rows
from lotman.models import Location, Lot, Reservation, ReservationStatus, StockAlert


pytestmark = pytest.mark.django_db


@pytest.fixture
def busy_ledger(warehouse, bin_a, bin_b):
    """A ledger after a mix of operations."""
    inventory.receive('SKU-1', warehouse, Decimal('60'), location=bin_a, lot_number='L1')
    inventory.transfer('SKU-1', warehouse, bin_a, bin_b, 'L1', Decimal('20'))
    inventory.reserve('SKU-1', warehouse, Decimal('30'), reference='so:1')
    inventory.ship('so:1', Decimal('10'))
    inventory.count('SKU-1', warehouse, 'L1', bin_b, Decimal('18'))
    return warehouse


class TestVerify:
    """Tests for inventory.verify()."""

    def test_consistent_ledger(self, busy_ledger):
        """Normal operations never leave discrepancies."""
        assert inventory.verify() == []

    def test_lot_log_sums_to_quantity(self, busy_ledger):
        """Each lot's movements add up to its quantity."""
        for lot in Lot.objects.all():
            assert lot.recalculate() == lot.quantity

    def test_detects_lot_drift(self, busy_ledger):
        """A lot changed outside the engine is reported."""
        lot = Lot.objects.filter(location__code='A-01-01-1').get()
        Lot.objects.filter(pk=lot.pk).update(
            quantity=lot.quantity + 5, available_quantity=lot.available_quantity + 5,
        )

        found = inventory.verify(sku='SKU-1')

        assert [d.kind for d in found] == ['lot_quantity']
        assert found[0].expected == lot.quantity

    def test_detects_reserved_drift(self, busy_ledger):
        """Reserved quantity must match open reservation lines."""
        lot = Lot.objects.filter(reserved_quantity__gt=0).first()
        Lot.objects.filter(pk=lot.pk).update(
            reserved_quantity=0, available_quantity=lot.quantity, status='available',
        )

        assert [d.kind for d in inventory.verify()] == ['lot_reserved']

    def test_detects_location_drift(self, busy_ledger):
        """Occupancy must match the live lots in the location."""
        Location.objects.filter(code='A-01-02-1').update(current_quantity=Decimal('3'))

        assert [d.kind for d in inventory.verify(warehouse=busy_ledger)] == ['location_quantity']


class TestRebuild:
    """Tests for inventory.rebuild()."""

    def test_rebuild_from_log(self, busy_ledger):
        """Rebuilding restores every projection from the log."""
        lot = Lot.objects.filter(reserved_quantity__gt=0).first()
        Lot.objects.filter(pk=lot.pk).update(
            quantity=lot.quantity + 7, available_quantity=lot.available_quantity + 7,
        )
        Location.objects.filter(code='A-01-02-1').update(current_quantity=Decimal('3'))

        fixed = inventory.rebuild()

        assert fixed == 2
        assert inventory.verify() == []
        lot.refresh_from_db()
        assert lot.available_quantity == lot.quantity - lot.reserved_quantity

    def test_rebuild_nothing_to_fix(self, busy_ledger):
        """A consistent ledger is left alone."""
        assert inventory.rebuild() == 0

    def test_rebuild_locks_locations_before_lots(self, busy_ledger):
        """Rebuild takes row locks in the same order as every write."""
        models = []

        def recording(queryset, pks):
            models.append(queryset.model)
            return lock_rows(queryset, pks)

        with mock.patch('lotman.services.reconciliation.lock_rows', side_effect=recording):
            inventory.rebuild()

        assert models == [Location, Lot]


class TestAlerts:
    """Tests for low-stock alerts."""

    def test_check_alerts_triggers(self, warehouse, bin_a):
        """Available below threshold fires the alert."""
        alert = StockAlert.objects.create(sku='SKU-1', warehouse=warehouse, min_quantity=Decimal('20'))
        inventory.receive('SKU-1', warehouse, Decimal('30'), location=bin_a)
        inventory.reserve('SKU-1', warehouse, Decimal('15'))

        triggered = inventory.check_alerts()

        assert triggered == [(alert, Decimal('15'))]
        alert.refresh_from_db()
        assert alert.last_triggered_at is not None

    def test_check_alerts_above_threshold(self, warehouse, bin_a):
        """Enough stock: nothing fires."""
        StockAlert.objects.create(sku='SKU-1', warehouse=warehouse, min_quantity=Decimal('20'))
        inventory.receive('SKU-1', warehouse, Decimal('30'), location=bin_a)

        assert inventory.check_alerts(sku='SKU-1') == []

    def test_low_stock_does_not_record(self, warehouse):
        """low_stock() only reports."""
        alert = StockAlert.objects.create(sku='SKU-1', warehouse=warehouse, min_quantity=Decimal('1'))

        assert inventory.low_stock(warehouse) == [(alert, Decimal('0'))]
        alert.refresh_from_db()
        assert alert.last_triggered_at is None

    def test_inactive_alert_ignored(self, warehouse):
        """Disabled alerts never fire."""
        StockAlert.objects.create(sku='SKU-1', min_quantity=Decimal('1'), is_active=False)

        assert inventory.check_alerts() == []


class TestCommands:
    """Tests for the management commands."""

    def test_reconcile_ledger_consistent(self, busy_ledger):
        """Reports a consistent ledger."""
        out = StringIO()
        call_command('reconcile_ledger', stdout=out)

        assert 'Ledger consistent' in out.getvalue()

    def test_reconcile_ledger_fix(self, busy_ledger):
        """--fix rebuilds drifted records."""
        Location.objects.filter(code='A-01-02-1').update(current_quantity=Decimal('3'))
        out = StringIO()

        call_command('reconcile_ledger', '--warehouse', 'main', '--fix', stdout=out)

        assert '1 record(s) rebuilt' in out.getvalue()
        assert inventory.verify() == []

    def test_release_expired_reservations(self, warehouse, bin_a):
        """Dry run counts, the real run releases."""
        inventory.receive('SKU-1', warehouse, Decimal('10'), location=bin_a)
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1',
                          expires_at=timezone.now() - timedelta(minutes=1))

        out = StringIO()
        call_command('release_expired_reservations', '--dry-run', stdout=out)
        assert '1 reservation(s) would be released' in out.getvalue()
        assert Reservation.objects.get().status == ReservationStatus.ACTIVE

        out = StringIO()
        call_command('release_expired_reservations', stdout=out)
        assert '1 reservation(s) released' in out.getvalue()
        assert Reservation.objects.get().status == ReservationStatus.RELEASED

    def test_check_stock_alerts(self, warehouse):
        """Lists triggered alerts."""
        StockAlert.objects.create(sku='SKU-1', warehouse=warehouse, min_quantity=Decimal('1'))
        out = StringIO()

        call_command('check_stock_alerts', stdout=out)

        assert '1 alert(s) triggered' in out.getvalue()

    def test_system_checks_pass(self):
        """The admin and the app pass Django's system checks."""
        out = StringIO()

        call_command('check', stdout=out)

        assert 'no issues' in out.getvalue()
