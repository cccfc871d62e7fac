"""Multi-criteria inventory filter.

Pure functions over a snapshot of vehicles: nothing here performs I/O,
mutates its input, or raises for well-typed input.  Every clause is
exposed on its own so callers (and tests) can reason about the
conjunction piecewise.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from apexauto.models.criteria import Bounds, FilterCriteria, StatusFilter
from apexauto.models.vehicle import Vehicle


def in_bracket(value: int | float | None, bounds: Bounds) -> bool:
    """Whether *value* falls in the half-open range ``[low, high)``.

    Missing, negative and non-finite values never match.
    """
    if value is None or isinstance(value, bool):
        return False
    if not math.isfinite(value) or value < 0:
        return False
    low, high = bounds
    if low is not None and value < low:
        return False
    return not (high is not None and value >= high)


def matches_search(vehicle: Vehicle, term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    if needle in vehicle.make.lower() or needle in vehicle.model.lower():
        return True
    if vehicle.year is not None and needle in str(vehicle.year):
        return True
    return any(needle in tag.lower() for tag in vehicle.tags)


def matches_status(vehicle: Vehicle, status: StatusFilter) -> bool:
    return status == StatusFilter.ALL or vehicle.status.value == status.value


def matches_make(vehicle: Vehicle, make: str | None) -> bool:
    return make is None or vehicle.make.lower() == make.lower()


def matches_year(vehicle: Vehicle, year: str | None) -> bool:
    if year is None:
        return True
    return vehicle.year is not None and str(vehicle.year) == year


def matches_price(vehicle: Vehicle, criteria: FilterCriteria) -> bool:
    return criteria.price is None or in_bracket(vehicle.price, criteria.price.bounds)


def matches_mileage(vehicle: Vehicle, criteria: FilterCriteria) -> bool:
    return criteria.mileage is None or in_bracket(vehicle.mileage, criteria.mileage.bounds)


def matches_criteria(vehicle: Vehicle, criteria: FilterCriteria) -> bool:
    """AND of every active clause."""
    return (
        matches_status(vehicle, criteria.status)
        and matches_make(vehicle, criteria.make)
        and matches_year(vehicle, criteria.year)
        and matches_price(vehicle, criteria)
        and matches_mileage(vehicle, criteria)
        and matches_search(vehicle, criteria.search)
    )


def filter_vehicles(vehicles: Iterable[Vehicle], criteria: FilterCriteria | None = None) -> list[Vehicle]:
    """Return the vehicles satisfying *criteria*, in their original order."""
    snapshot = list(vehicles)
    if criteria is None or criteria.is_unset:
        return snapshot
    return [vehicle for vehicle in snapshot if matches_criteria(vehicle, criteria)]
