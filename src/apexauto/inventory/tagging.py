"""Auto-tag derivation for newly listed vehicles.

Tags are derived once, when a vehicle is created with auto-tagging
enabled.  Later edits never re-run the derivation implicitly; callers
that want fresh tags must ask for them (see ``InventoryService.retag``).
"""

from __future__ import annotations

from typing import Any

from apexauto._constants import (
    EXOTIC_PRICE_THRESHOLD,
    LOW_MILEAGE_THRESHOLD,
    LUXURY_PRICE_THRESHOLD,
    NEW_MODEL_YEAR,
    PREMIUM_MAKES,
    SUPERCAR_MAKES,
)
from apexauto.ingestion.normalize import non_negative_or_none, safe_int
from apexauto.models.vehicle import Vehicle

TAG_LUXURY = "LUXURY"
TAG_EXOTIC = "EXOTIC"
TAG_NEW = "NEW"
TAG_LOW_MILEAGE = "LOW MILEAGE"
TAG_PREMIUM = "PREMIUM"
TAG_SUPERCAR = "SUPERCAR"

#: Every tag :func:`derive_tags` can emit, in emission order.
AUTO_TAGS: tuple[str, ...] = (TAG_LUXURY, TAG_EXOTIC, TAG_NEW, TAG_LOW_MILEAGE, TAG_PREMIUM, TAG_SUPERCAR)


def derive_tags(make: Any, year: Any, price: Any, mileage: Any) -> list[str]:
    """Derive display tags from the listing's make, year, price and mileage.

    The returned order is the display order.  Malformed numbers (missing,
    negative, non-finite) simply contribute no tag.
    """
    tags: list[str] = []
    price_value = non_negative_or_none(price)
    year_value = safe_int(year)
    mileage_value = non_negative_or_none(mileage)
    make_key = make.strip().upper() if isinstance(make, str) else ""

    if price_value is not None and price_value > LUXURY_PRICE_THRESHOLD:
        tags.append(TAG_LUXURY)
    if price_value is not None and price_value > EXOTIC_PRICE_THRESHOLD:
        tags.append(TAG_EXOTIC)
    if year_value is not None and year_value >= NEW_MODEL_YEAR:
        tags.append(TAG_NEW)
    if mileage_value is not None and mileage_value < LOW_MILEAGE_THRESHOLD:
        tags.append(TAG_LOW_MILEAGE)
    if make_key in PREMIUM_MAKES:
        tags.append(TAG_PREMIUM)
    if make_key in SUPERCAR_MAKES:
        tags.append(TAG_SUPERCAR)
    return tags


def derive_vehicle_tags(vehicle: Vehicle) -> list[str]:
    return derive_tags(vehicle.make, vehicle.year, vehicle.price, vehicle.mileage)


def combine_tags(derived: list[str], manual: list[str]) -> list[str]:
    """Derived tags first, then manual tags not already present."""
    combined = list(derived)
    for tag in manual:
        if tag not in combined:
            combined.append(tag)
    return combined


def tags_diverge(vehicle: Vehicle) -> bool:
    """Whether the stored tags lack an auto tag the listing now qualifies for,
    or carry one it no longer qualifies for.

    Manual tags are ignored.  Divergence is reported, never corrected.
    """
    expected = derive_vehicle_tags(vehicle)
    stored_auto = [tag for tag in vehicle.tags if tag in AUTO_TAGS]
    return stored_auto != expected
