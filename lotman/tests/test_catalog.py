"""
Tests for the product catalog adapter and settings.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from lotman import StockError, inventory
from lotman.adapters import get_product_catalog, profile_for_release, resolve_profile
from lotman.conf import lotman_settings
from lotman.protocols import ProductCatalog, ProductProfile


class TestCatalogLoading:
    """Tests for get_product_catalog()."""

    def test_loads_configured_catalog(self):
        """The dotted path from settings is imported and cached."""
        catalog = get_product_catalog()

        assert isinstance(catalog, ProductCatalog)
        assert get_product_catalog() is catalog

    def test_missing_configuration(self, settings):
        """An unset catalog is a configuration error."""
        settings.LOTMAN = {}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()

    def test_bad_path(self, settings):
        """An unimportable catalog is a configuration error."""
        settings.LOTMAN = {'PRODUCT_CATALOG': 'lotman.nowhere.Catalog'}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()

    def test_noop_catalog(self, settings):
        """The noop catalog accepts any SKU."""
        settings.LOTMAN = {'PRODUCT_CATALOG': 'lotman.adapters.noop.NoopProductCatalog'}

        profile = resolve_profile('ANYTHING')

        assert profile.sku == 'ANYTHING'
        assert not profile.is_hazardous


class TestProfiles:
    """Tests for profile lookups."""

    def test_unknown_sku(self):
        """Unknown SKUs fail with UNKNOWN_PRODUCT."""
        with pytest.raises(StockError) as exc:
            resolve_profile('NOPE')

        assert exc.value.code == 'UNKNOWN_PRODUCT'

    def test_release_tolerates_unknown(self):
        """Stock on hand can always leave."""
        assert profile_for_release('NOPE') == ProductProfile(sku='NOPE')
        assert profile_for_release('OLD').is_active is False

    def test_load_for(self):
        """Load scales with quantity."""
        profile = ProductProfile(sku='X', unit_weight=Decimal('2'), unit_volume=Decimal('0.5'))

        assert profile.load_for(Decimal('4')) == {
            'quantity': Decimal('4'),
            'weight': Decimal('8'),
            'volume': Decimal('2.0'),
        }

    @pytest.mark.django_db
    def test_candidates_by_sku(self, catalog, warehouse, bin_a, cold_bin):
        """find_candidate_locations resolves the SKU's profile."""
        catalog.profiles['YOGURT'] = ProductProfile(sku='YOGURT', requires_temperature_control=True)

        assert list(inventory.find_candidate_locations(warehouse, 'YOGURT', Decimal('1'))) == [cold_bin]


class TestSettings:
    """Tests for LOTMAN settings."""

    def test_defaults(self, settings):
        """Unset keys fall back to defaults."""
        settings.LOTMAN = {}

        assert lotman_settings.RESERVATION_TTL_MINUTES == 0
        assert lotman_settings.LOCK_RETRIES == 3
        assert lotman_settings.DEFAULT_LOCATION_KINDS == ['storage']

    def test_unknown_keys_ignored(self, settings):
        """Typos don't break loading."""
        settings.LOTMAN = {'LOCK_RETRIES': 5, 'NOT_A_SETTING': True}

        assert lotman_settings.LOCK_RETRIES == 5
