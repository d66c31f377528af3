"""
Tests for the Location Directory.
"""

from decimal import Decimal

import pytest

from lotman import StockError, inventory
from lotman.models import Location, WarehouseStatus
from lotman.services.locations import LocationDirectory
from lotman.tests.catalog import DEFAULT_PROFILES


pytestmark = pytest.mark.django_db

PLAIN = DEFAULT_PROFILES['SKU-1']


class TestLocationCode:
    """Tests for location code composition."""

    def test_code_composed_from_parts(self, bin_a):
        """Zone/aisle/rack/level make up the code."""
        assert bin_a.code == 'A-01-01-1'

    def test_explicit_code_kept(self, small_bin):
        """An explicit code is not overwritten."""
        assert small_bin.code == 'S-01'


class TestFindCandidates:
    """Tests for LocationDirectory.find_candidates()."""

    def test_empty_locations_ordered_by_code(self, warehouse, bin_a, bin_b, small_bin):
        """Without occupancy, candidates come in code order."""
        codes = [loc.code for loc in LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('5'))]

        assert codes == ['A-01-01-1', 'A-01-02-1', 'S-01']

    def test_partially_filled_first(self, warehouse, bin_a, bin_b):
        """A location already holding the SKU is preferred."""
        inventory.receive('SKU-1', warehouse, Decimal('10'), location=bin_b)

        candidates = list(LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('5')))

        assert candidates[0] == bin_b
        assert candidates[1] == bin_a

    def test_excludes_insufficient_capacity(self, warehouse, bin_a, small_bin):
        """Locations without room for the quantity are left out."""
        candidates = list(LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('50')))

        assert candidates == [bin_a]

    def test_excludes_other_sku(self, warehouse, bin_a, bin_b):
        """A location holding another SKU is not a candidate."""
        inventory.receive('SKU-2', warehouse, Decimal('10'), location=bin_a)

        candidates = list(LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('5')))

        assert candidates == [bin_b]

    def test_excludes_inactive_and_non_storage(self, warehouse, bin_a, bin_b, quarantine_bin):
        """Inactive and quarantine locations are skipped by default."""
        bin_b.is_active = False
        bin_b.save()

        candidates = list(LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('5')))

        assert candidates == [bin_a]

    def test_kinds_override(self, warehouse, bin_a, quarantine_bin):
        """Callers can search other location kinds."""
        candidates = list(LocationDirectory.find_candidates(
            warehouse, PLAIN, Decimal('5'), kinds=['quarantine'],
        ))

        assert candidates == [quarantine_bin]

    def test_capability_filters(self, warehouse, bin_a, cold_bin, hazmat_bin):
        """Temperature-sensitive and hazardous products need capable locations."""
        cold = list(LocationDirectory.find_candidates(warehouse, DEFAULT_PROFILES['MILK'], Decimal('5')))
        hazardous = list(LocationDirectory.find_candidates(warehouse, DEFAULT_PROFILES['ACID'], Decimal('5')))

        assert cold == [cold_bin]
        assert hazardous == [hazmat_bin]

    def test_weight_capacity(self, warehouse, hazmat_bin):
        """Weight limits are respected (10 kg per unit, 100 kg max)."""
        heavy = DEFAULT_PROFILES['HEAVY']

        assert list(LocationDirectory.find_candidates(warehouse, heavy, Decimal('10'))) == [hazmat_bin]
        assert list(LocationDirectory.find_candidates(warehouse, heavy, Decimal('11'))) == []

    def test_inactive_warehouse_has_no_candidates(self, warehouse, bin_a):
        """A warehouse under maintenance offers no locations."""
        warehouse.status = WarehouseStatus.MAINTENANCE
        warehouse.save()

        assert not LocationDirectory.find_candidates(warehouse, PLAIN, Decimal('1')).exists()


class TestCapacity:
    """Tests for reserve_capacity() / release_capacity()."""

    def test_reserve_updates_occupancy(self, bin_a):
        """Reserving capacity sets the SKU and load."""
        LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('30'))

        bin_a.refresh_from_db()
        assert bin_a.current_sku == 'SKU-1'
        assert bin_a.current_quantity == Decimal('30')
        assert bin_a.remaining('quantity') == Decimal('70')

    def test_reserve_over_capacity(self, bin_a):
        """Over capacity fails and changes nothing."""
        with pytest.raises(StockError) as exc:
            LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('101'))

        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert exc.value.data['dimension'] == 'quantity'
        bin_a.refresh_from_db()
        assert bin_a.current_quantity == Decimal('0')
        assert bin_a.current_sku == ''

    def test_reserve_over_weight(self, hazmat_bin):
        """Weight is checked alongside quantity."""
        with pytest.raises(StockError) as exc:
            LocationDirectory.reserve_capacity(hazmat_bin, DEFAULT_PROFILES['HEAVY'], Decimal('11'))

        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert exc.value.data['dimension'] == 'weight'

    def test_reserve_incompatible(self, bin_a):
        """Temperature-sensitive product in a plain location."""
        with pytest.raises(StockError) as exc:
            LocationDirectory.reserve_capacity(bin_a, DEFAULT_PROFILES['MILK'], Decimal('1'))

        assert exc.value.code == 'INCOMPATIBLE_LOCATION'
        assert exc.value.data['problem'] == 'not_temperature_controlled'

    def test_reserve_occupied_by_other_sku(self, bin_a):
        """One SKU per location."""
        LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('1'))

        with pytest.raises(StockError) as exc:
            LocationDirectory.reserve_capacity(bin_a, DEFAULT_PROFILES['SKU-2'], Decimal('1'))

        assert exc.value.data['problem'] == 'occupied_by_other_sku'

    def test_reserve_inactive_location(self, bin_a):
        """Inactive locations refuse stock."""
        bin_a.is_active = False
        bin_a.save()

        with pytest.raises(StockError) as exc:
            LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('1'))

        assert exc.value.data['problem'] == 'inactive_location'

    def test_release_to_zero_clears_sku(self, bin_a):
        """An emptied location is unoccupied but stays active."""
        LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('5'))
        LocationDirectory.release_capacity(bin_a, PLAIN, Decimal('5'))

        bin_a.refresh_from_db()
        assert bin_a.current_sku == ''
        assert bin_a.current_quantity == Decimal('0')
        assert bin_a.is_active
        assert Location.objects.empty().filter(pk=bin_a.pk).exists()

    def test_release_more_than_load(self, bin_a):
        """Releasing more than the load is refused."""
        LocationDirectory.reserve_capacity(bin_a, PLAIN, Decimal('5'))

        with pytest.raises(StockError) as exc:
            LocationDirectory.release_capacity(bin_a, PLAIN, Decimal('6'))

        assert exc.value.code == 'INVALID_RELEASE_AMOUNT'
