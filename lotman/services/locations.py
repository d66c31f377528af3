"""
Location Directory — placement, compatibility and occupancy of storage slots.

Side effects are confined to Location occupancy fields; lots are never
touched here. The allocation engine coordinates both.
"""

import logging
from decimal import Decimal

from django.db.models import Case, F, IntegerField, Q, Value, When

from lotman.conf import lotman_settings
from lotman.exceptions import StockError
from lotman.locking import lock_one
from lotman.models.location import Location
from lotman.protocols.catalog import ProductProfile

logger = logging.getLogger('lotman')

CAPACITY_DIMENSIONS = ('quantity', 'weight', 'volume')


def _capacity_filter(load: dict[str, Decimal]) -> Q:
    """Q matching locations with room for ``load`` in every dimension."""
    q = Q()
    for dim in CAPACITY_DIMENSIONS:
        q &= (
            Q(**{f'max_{dim}__isnull': True})
            | Q(**{f'max_{dim}__gte': F(f'current_{dim}') + load[dim]})
        )
    return q


class LocationDirectory:
    """Placement and occupancy methods."""

    @classmethod
    def find_candidates(cls, warehouse, profile: ProductProfile, quantity: Decimal,
                        kinds=None):
        """
        Active, compatible locations with room for ``quantity``.

        Ordering (placement policy):
            1. partially-filled locations first (consolidate stock)
            2. location code ascending (deterministic)

        Args:
            warehouse: Warehouse to search
            profile: Product constraints
            quantity: Units to place
            kinds: Location kinds to consider (default: settings)

        Returns:
            Ordered QuerySet of Location (empty if the warehouse is not active)
        """
        if not warehouse.is_active:
            return Location.objects.none()

        kinds = kinds or lotman_settings.DEFAULT_LOCATION_KINDS
        qs = Location.objects.active().filter(
            warehouse=warehouse,
            kind__in=kinds,
        ).filter(
            Q(current_sku='') | Q(current_sku=profile.sku)
        )
        if profile.is_hazardous:
            qs = qs.filter(allows_hazardous=True)
        if profile.requires_temperature_control:
            qs = qs.filter(is_temperature_controlled=True)

        qs = qs.filter(_capacity_filter(profile.load_for(quantity)))

        return qs.annotate(
            _is_empty=Case(
                When(current_quantity=0, then=Value(1)),
                default=Value(0),
                output_field=IntegerField(),
            )
        ).order_by('_is_empty', 'code', 'pk')

    @classmethod
    def check_compatible(cls, location: Location, profile: ProductProfile) -> None:
        """
        Raise INCOMPATIBLE_LOCATION if ``location`` may not hold the product.

        Checks: location and warehouse active, hazardous capability,
        temperature control, and single-SKU occupancy.
        """
        problem = None
        if not location.is_active:
            problem = 'inactive_location'
        elif not location.warehouse.is_active:
            problem = 'inactive_warehouse'
        elif profile.is_hazardous and not location.allows_hazardous:
            problem = 'hazardous_not_allowed'
        elif profile.requires_temperature_control and not location.is_temperature_controlled:
            problem = 'not_temperature_controlled'
        elif location.current_sku and location.current_sku != profile.sku:
            problem = 'occupied_by_other_sku'

        if problem:
            raise StockError(
                'INCOMPATIBLE_LOCATION',
                location=location.code,
                sku=profile.sku,
                problem=problem,
            )

    @classmethod
    def reserve_capacity(cls, location: Location, profile: ProductProfile,
                         quantity: Decimal) -> Location:
        """
        Claim room for ``quantity`` units on ``location``.

        Locks the location row, re-checks compatibility and capacity on the
        locked values, then updates occupancy. Fails closed: nothing changes
        on error.

        Raises:
            StockError('INCOMPATIBLE_LOCATION')
            StockError('CAPACITY_EXCEEDED')
        """
        locked = lock_one(Location.objects.all(), location.pk)
        cls.check_compatible(locked, profile)

        load = profile.load_for(quantity)
        for dim in CAPACITY_DIMENSIONS:
            remaining = locked.remaining(dim)
            if remaining is not None and load[dim] > remaining:
                raise StockError(
                    'CAPACITY_EXCEEDED',
                    location=locked.code,
                    dimension=dim,
                    remaining=remaining,
                    requested=load[dim],
                )

        locked.current_sku = profile.sku
        for dim in CAPACITY_DIMENSIONS:
            setattr(locked, f'current_{dim}', getattr(locked, f'current_{dim}') + load[dim])
        locked.save(update_fields=[
            'current_sku', 'current_quantity', 'current_weight', 'current_volume', 'updated_at',
        ])

        logger.debug(
            "stock.location.reserved",
            extra={"location": locked.code, "sku": profile.sku, "qty": str(quantity)},
        )
        return locked

    @classmethod
    def release_capacity(cls, location: Location, profile: ProductProfile,
                         quantity: Decimal) -> Location:
        """
        Give back room for ``quantity`` units.

        When the location empties it becomes unoccupied but stays active.

        Raises:
            StockError('INVALID_RELEASE_AMOUNT'): more than the current load
        """
        locked = lock_one(Location.objects.all(), location.pk)

        if quantity > locked.current_quantity:
            raise StockError(
                'INVALID_RELEASE_AMOUNT',
                location=locked.code,
                current=locked.current_quantity,
                requested=quantity,
            )

        load = profile.load_for(quantity)
        locked.current_quantity -= quantity
        if locked.current_quantity == 0:
            locked.current_sku = ''
            locked.current_weight = Decimal('0')
            locked.current_volume = Decimal('0')
        else:
            locked.current_weight = max(Decimal('0'), locked.current_weight - load['weight'])
            locked.current_volume = max(Decimal('0'), locked.current_volume - load['volume'])
        locked.save(update_fields=[
            'current_sku', 'current_quantity', 'current_weight', 'current_volume', 'updated_at',
        ])

        logger.debug(
            "stock.location.released",
            extra={"location": locked.code, "qty": str(quantity)},
        )
        return locked
