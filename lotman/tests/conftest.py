"""
Pytest fixtures for Lotman tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from lotman.adapters.catalog import reset_product_catalog
from lotman.models import Location, LocationKind, Warehouse
from lotman.tests.catalog import DEFAULT_PROFILES, FixtureCatalog


@pytest.fixture(autouse=True)
def catalog():
    """Fresh catalog for every test."""
    reset_product_catalog()
    FixtureCatalog.profiles = dict(DEFAULT_PROFILES)
    yield FixtureCatalog
    reset_product_catalog()


@pytest.fixture
def warehouse(db):
    """Create the main warehouse."""
    return Warehouse.objects.create(code='main', name='Main Warehouse')


@pytest.fixture
def bin_a(warehouse):
    """Storage location for up to 100 units."""
    return Location.objects.create(
        warehouse=warehouse,
        zone='A', aisle='01', rack='01', level='1',
        max_quantity=Decimal('100'),
    )


@pytest.fixture
def bin_b(warehouse):
    """Second storage location for up to 100 units."""
    return Location.objects.create(
        warehouse=warehouse,
        zone='A', aisle='01', rack='02', level='1',
        max_quantity=Decimal('100'),
    )


@pytest.fixture
def small_bin(warehouse):
    """Storage location for up to 10 units."""
    return Location.objects.create(
        warehouse=warehouse,
        code='S-01',
        max_quantity=Decimal('10'),
    )


@pytest.fixture
def cold_bin(warehouse):
    """Temperature-controlled storage location."""
    return Location.objects.create(
        warehouse=warehouse,
        code='C-01',
        is_temperature_controlled=True,
    )


@pytest.fixture
def hazmat_bin(warehouse):
    """Location approved for hazardous goods, 100 kg max."""
    return Location.objects.create(
        warehouse=warehouse,
        code='H-01',
        allows_hazardous=True,
        max_weight=Decimal('100'),
    )


@pytest.fixture
def quarantine_bin(warehouse):
    """Quality hold area."""
    return Location.objects.create(
        warehouse=warehouse,
        code='Q-01',
        kind=LocationKind.QUARANTINE,
    )


@pytest.fixture
def today():
    """Return today's date."""
    return date.today()


@pytest.fixture
def next_week():
    """Return the date one week from today."""
    return date.today() + timedelta(days=7)


@pytest.fixture
def next_month():
    """Return the date 30 days from today."""
    return date.today() + timedelta(days=30)
