"""
Tests for the reservation lifecycle: reserve, ship, cancel, expire.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from lotman import StockError, inventory
from lotman.models import Lot, LotStatus, Movement, MovementType, Reservation, ReservationStatus


pytestmark = pytest.mark.django_db


@pytest.fixture
def two_lots(warehouse, bin_a, bin_b, next_week, next_month):
    """SKU-1: 10 units expiring next week (bin B), 30 next month (bin A)."""
    late = inventory.receive('SKU-1', warehouse, Decimal('30'), location=bin_a,
                             lot_number='LATE', expiry_date=next_month)
    early = inventory.receive('SKU-1', warehouse, Decimal('10'), location=bin_b,
                              lot_number='EARLY', expiry_date=next_week)
    return early, late


class TestReserve:
    """Tests for inventory.reserve()."""

    def test_reserve_fefo(self, warehouse, two_lots):
        """The earliest-expiring lot is drawn first."""
        early, late = two_lots

        reservation = inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1')

        lines = list(reservation.lines.all())
        assert len(lines) == 1
        assert lines[0].lot_id == early.pk

    def test_reserve_spans_lots(self, warehouse, two_lots):
        """A reservation larger than one lot takes several, in FEFO order."""
        early, late = two_lots

        reservation = inventory.reserve('SKU-1', warehouse, Decimal('15'), reference='so:1')

        lines = [(line.lot_id, line.quantity) for line in reservation.lines.all()]
        assert lines == [(early.pk, Decimal('10')), (late.pk, Decimal('5'))]
        early.refresh_from_db()
        assert early.available_quantity == Decimal('0')
        assert early.status == LotStatus.RESERVED

    def test_reserve_all_or_nothing(self, warehouse, two_lots):
        """Over-asking fails and leaves every lot unchanged."""
        with pytest.raises(StockError) as exc:
            inventory.reserve('SKU-1', warehouse, Decimal('41'), reference='so:1')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == Decimal('40')
        assert not Reservation.objects.exists()
        assert all(lot.reserved_quantity == 0 for lot in Lot.objects.all())

    def test_reserve_lot_hint(self, warehouse, two_lots):
        """A lot hint restricts the choice."""
        early, late = two_lots

        reservation = inventory.reserve('SKU-1', warehouse, Decimal('5'), lot_hint='LATE')

        assert reservation.lines.get().lot_id == late.pk

    def test_reserve_lot_hint_insufficient(self, warehouse, two_lots):
        """The hint is binding: other lots are not used."""
        with pytest.raises(StockError) as exc:
            inventory.reserve('SKU-1', warehouse, Decimal('11'), lot_hint='EARLY')

        assert exc.value.code == 'INSUFFICIENT_STOCK'

    def test_reserve_skips_expired_lots(self, warehouse, bin_a, bin_b, today, next_month):
        """Out-of-date stock is never reserved, even though it expires first."""
        inventory.receive('SKU-2', warehouse, Decimal('5'), location=bin_a,
                          lot_number='STALE', expiry_date=today - timedelta(days=30))
        fresh = inventory.receive('SKU-2', warehouse, Decimal('5'), location=bin_b,
                                  lot_number='FRESH', expiry_date=next_month)

        reservation = inventory.reserve('SKU-2', warehouse, Decimal('3'))

        assert reservation.lines.get().lot_id == fresh.pk
        assert inventory.current_stock('SKU-2', warehouse).available == Decimal('2')

    def test_reserve_expired_only(self, warehouse, bin_a, today):
        """Expired stock alone cannot satisfy a reservation."""
        inventory.receive('SKU-2', warehouse, Decimal('5'), location=bin_a,
                          lot_number='STALE', expiry_date=today - timedelta(days=1))

        with pytest.raises(StockError) as exc:
            inventory.reserve('SKU-2', warehouse, Decimal('1'))

        assert exc.value.code == 'INSUFFICIENT_STOCK'

    def test_reserve_reduces_available(self, warehouse, two_lots):
        """Reserved stock is on hand but not available."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'))

        level = inventory.current_stock('SKU-1', warehouse)
        assert level.quantity == Decimal('40')
        assert level.reserved == Decimal('15')
        assert level.available == Decimal('25')

    def test_reserve_does_not_touch_the_log(self, warehouse, two_lots):
        """Reservations are not quantity changes."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'))

        assert not Movement.objects.exclude(movement_type=MovementType.RECEIPT).exists()

    def test_reserve_generates_reference(self, warehouse, two_lots):
        """Without a reference one is generated."""
        reservation = inventory.reserve('SKU-1', warehouse, Decimal('1'))

        assert reservation.reference.startswith('rsv:')

    def test_reserve_ttl_from_settings(self, settings, warehouse, two_lots):
        """RESERVATION_TTL_MINUTES sets a default expiry."""
        settings.LOTMAN = {**settings.LOTMAN, 'RESERVATION_TTL_MINUTES': 30}

        reservation = inventory.reserve('SKU-1', warehouse, Decimal('1'))

        assert reservation.expires_at is not None
        assert reservation.expires_at > timezone.now() + timedelta(minutes=29)


class TestShip:
    """Tests for inventory.ship()."""

    def test_ship_full(self, warehouse, bin_a, bin_b, two_lots):
        """Shipping everything fulfills the reservation."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'), reference='so:1')

        reservation = inventory.ship('so:1', actor='bob')

        assert reservation.status == ReservationStatus.FULFILLED
        assert reservation.shipped_quantity == Decimal('15')
        shipments = list(Movement.objects.filter(movement_type=MovementType.SHIPMENT))
        assert [m.quantity for m in shipments] == [Decimal('-10'), Decimal('-5')]
        assert all(m.reference == 'so:1' for m in shipments)

        level = inventory.current_stock('SKU-1', warehouse)
        assert level.quantity == Decimal('25')
        assert level.reserved == Decimal('0')

    def test_ship_releases_occupancy(self, warehouse, bin_a, bin_b, two_lots):
        """A lot shipped to zero is SHIPPED and its location freed."""
        early, _ = two_lots
        inventory.reserve('SKU-1', warehouse, Decimal('10'), reference='so:1')

        inventory.ship('so:1')

        early.refresh_from_db()
        bin_b.refresh_from_db()
        assert early.status == LotStatus.SHIPPED
        assert bin_b.current_quantity == Decimal('0')
        assert bin_b.current_sku == ''

    def test_ship_partial(self, warehouse, two_lots):
        """Partial shipments keep the reservation active."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'), reference='so:1')

        reservation = inventory.ship('so:1', Decimal('4'))

        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.outstanding == Decimal('11')

    def test_ship_more_than_outstanding(self, warehouse, two_lots):
        """Cannot ship what was not reserved."""
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1')

        with pytest.raises(StockError) as exc:
            inventory.ship('so:1', Decimal('6'))

        assert exc.value.code == 'QUANTITY_MISMATCH'

    def test_ship_unknown_reservation(self, warehouse):
        """Unknown references fail."""
        with pytest.raises(StockError) as exc:
            inventory.ship('so:404')

        assert exc.value.code == 'RESERVATION_NOT_FOUND'

    def test_ship_released_reservation(self, warehouse, two_lots):
        """Cancelled reservations cannot ship."""
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1')
        inventory.cancel_reservation('so:1')

        with pytest.raises(StockError) as exc:
            inventory.ship('so:1')

        assert exc.value.code == 'INVALID_STATUS'


class TestCancel:
    """Tests for inventory.cancel_reservation()."""

    def test_cancel_restores_available(self, warehouse, two_lots):
        """Cancelling gives stock back."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'), reference='so:1')

        reservation = inventory.cancel_reservation('so:1', reason='customer cancelled')

        assert reservation.status == ReservationStatus.RELEASED
        assert reservation.metadata['release_reason'] == 'customer cancelled'
        assert inventory.current_stock('SKU-1', warehouse).available == Decimal('40')

    def test_cancel_after_partial_ship(self, warehouse, two_lots):
        """Only the outstanding remainder is released."""
        inventory.reserve('SKU-1', warehouse, Decimal('15'), reference='so:1')
        inventory.ship('so:1', Decimal('4'))

        reservation = inventory.cancel_reservation('so:1')

        assert reservation.shipped_quantity == Decimal('4')
        assert reservation.released_quantity == Decimal('11')
        level = inventory.current_stock('SKU-1', warehouse)
        assert level.quantity == Decimal('36')
        assert level.reserved == Decimal('0')

    def test_cancel_twice(self, warehouse, two_lots):
        """Cancelling a released reservation is a no-op."""
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1')
        inventory.cancel_reservation('so:1')

        reservation = inventory.cancel_reservation('so:1')

        assert reservation.status == ReservationStatus.RELEASED
        assert reservation.released_quantity == Decimal('5')

    def test_cancel_fulfilled(self, warehouse, two_lots):
        """Shipped goods cannot be un-reserved."""
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:1')
        inventory.ship('so:1')

        with pytest.raises(StockError) as exc:
            inventory.cancel_reservation('so:1')

        assert exc.value.code == 'INVALID_STATUS'

    def test_cancel_unknown(self, warehouse):
        """Unknown references fail."""
        with pytest.raises(StockError) as exc:
            inventory.cancel_reservation('so:404')

        assert exc.value.code == 'RESERVATION_NOT_FOUND'


class TestExpiry:
    """Tests for inventory.release_expired()."""

    def test_release_expired(self, warehouse, two_lots):
        """Expired reservations give their stock back."""
        past = timezone.now() - timedelta(minutes=1)
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:old', expires_at=past)
        inventory.reserve('SKU-1', warehouse, Decimal('5'), reference='so:new')

        assert inventory.release_expired() == 1

        old = Reservation.objects.get(reference='so:old')
        assert old.status == ReservationStatus.RELEASED
        assert old.metadata['release_reason'] == 'expired'
        assert Reservation.objects.get(reference='so:new').status == ReservationStatus.ACTIVE
        assert inventory.current_stock('SKU-1', warehouse).reserved == Decimal('5')

    def test_release_expired_in_batches(self, settings, warehouse, two_lots):
        """Batches continue until nothing is left."""
        settings.LOTMAN = {**settings.LOTMAN, 'EXPIRED_BATCH_SIZE': 2}
        past = timezone.now() - timedelta(minutes=1)
        for i in range(5):
            inventory.reserve('SKU-1', warehouse, Decimal('1'), reference=f'so:{i}', expires_at=past)

        assert inventory.release_expired() == 5
        assert inventory.current_stock('SKU-1', warehouse).reserved == Decimal('0')

    def test_nothing_to_release(self, warehouse):
        """No expired reservations: nothing happens."""
        assert inventory.release_expired() == 0
