"""
Product catalog used by the test suite.
"""

from decimal import Decimal

from lotman.protocols.catalog import ProductProfile


DEFAULT_PROFILES = {
    'SKU-1': ProductProfile(sku='SKU-1', name='Canned beans'),
    'SKU-2': ProductProfile(sku='SKU-2', name='Rice 5kg'),
    'MILK': ProductProfile(sku='MILK', name='Milk 1L', requires_temperature_control=True),
    'ACID': ProductProfile(sku='ACID', name='Sulfuric acid', is_hazardous=True),
    'HEAVY': ProductProfile(sku='HEAVY', name='Cement bag', unit_weight=Decimal('10')),
    'OLD': ProductProfile(sku='OLD', name='Discontinued', is_active=False),
}


class FixtureCatalog:
    """In-memory catalog; tests may add profiles to ``profiles``."""

    profiles: dict[str, ProductProfile] = dict(DEFAULT_PROFILES)

    def get_profile(self, sku: str) -> ProductProfile | None:
        return self.profiles.get(sku)
