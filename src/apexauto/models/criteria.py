"""Inventory filter criteria.

Criteria arrive straight from form controls, so every facet accepts the
select-box placeholder labels (``"All Makes"``, ``"Price Range"`` ...) or
an empty string as "unset".  Those are normalised to ``None`` here so the
filter engine only ever sees concrete constraints.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from apexauto._constants import UNSET_FILTER_LABELS

#: ``(lower_inclusive, upper_exclusive)``; ``None`` means unbounded.
Bounds = tuple[int | None, int | None]


class StatusFilter(enum.StrEnum):
    ALL = "all"
    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class PriceBracket(enum.StrEnum):
    """Fixed price buckets offered on the public inventory page."""

    UNDER_100K = "Under $100k"
    FROM_100K_TO_200K = "$100k - $200k"
    FROM_200K_TO_300K = "$200k - $300k"
    OVER_300K = "$300k+"

    @property
    def bounds(self) -> Bounds:
        return _PRICE_BOUNDS[self]


class MileageBracket(enum.StrEnum):
    """Fixed mileage buckets offered on the public inventory page."""

    UNDER_5K = "Under 5k"
    FROM_5K_TO_15K = "5k - 15k"
    FROM_15K_TO_30K = "15k - 30k"
    OVER_30K = "30k+"

    @property
    def bounds(self) -> Bounds:
        return _MILEAGE_BOUNDS[self]


_PRICE_BOUNDS: dict[PriceBracket, Bounds] = {
    PriceBracket.UNDER_100K: (None, 100_000),
    PriceBracket.FROM_100K_TO_200K: (100_000, 200_000),
    PriceBracket.FROM_200K_TO_300K: (200_000, 300_000),
    PriceBracket.OVER_300K: (300_000, None),
}

_MILEAGE_BOUNDS: dict[MileageBracket, Bounds] = {
    MileageBracket.UNDER_5K: (None, 5_000),
    MileageBracket.FROM_5K_TO_15K: (5_000, 15_000),
    MileageBracket.FROM_15K_TO_30K: (15_000, 30_000),
    MileageBracket.OVER_30K: (30_000, None),
}


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() in UNSET_FILTER_LABELS)


class FilterCriteria(BaseModel):
    """Conjunctive set of inventory filter facets."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: str = ""
    """Free-text term matched against make, model, year and tags."""
    status: StatusFilter = StatusFilter.ALL
    make: str | None = None
    price: PriceBracket | None = None
    year: str | None = None
    mileage: MileageBracket | None = None

    @field_validator("search", mode="before")
    @classmethod
    def _coerce_search(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if value is None or value == "":
            return StatusFilter.ALL
        return value

    @field_validator("make", "price", "mileage", mode="before")
    @classmethod
    def _unset_placeholders(cls, value: Any) -> Any:
        return None if _is_unset(value) else value

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> str | None:
        if _is_unset(value):
            return None
        return str(value).strip()

    @property
    def is_unset(self) -> bool:
        """Whether no clause constrains the result."""
        return (
            self.search == ""
            and self.status == StatusFilter.ALL
            and self.make is None
            and self.price is None
            and self.year is None
            and self.mileage is None
        )

    def active_facets(self) -> dict[str, str]:
        """Labels of the constraining facets, for "Showing N of M" summaries."""
        facets: dict[str, str] = {}
        if self.search:
            facets["search"] = self.search
        if self.status != StatusFilter.ALL:
            facets["status"] = self.status.value
        for name in ("make", "price", "year", "mileage"):
            value = getattr(self, name)
            if value is not None:
                facets[name] = str(value)
        return facets
