from __future__ import annotations

import copy

import pytest

from apexauto.inventory.filtering import (
    filter_vehicles,
    in_bracket,
    matches_make,
    matches_mileage,
    matches_price,
    matches_search,
    matches_status,
    matches_year,
)
from apexauto.inventory.samples import SAMPLE_VEHICLES
from apexauto.models.criteria import FilterCriteria, MileageBracket, PriceBracket, StatusFilter
from apexauto.models.vehicle import Vehicle

BMW = Vehicle.model_validate(
    {"id": "a", "make": "BMW", "model": "M3", "year": 2022, "tags": ["NEW"], "status": "available"}
)
AUDI = Vehicle.model_validate({"id": "b", "make": "Audi", "model": "A4", "year": 2020, "tags": [], "status": "sold"})

CRITERIA = [
    FilterCriteria(),
    FilterCriteria(search="new"),
    FilterCriteria(search="2022", status="available"),
    FilterCriteria(make="audi"),
    FilterCriteria(year="2023"),
    FilterCriteria(price="$200k - $300k"),
    FilterCriteria(price="Under $100k", mileage="5k - 15k"),
    FilterCriteria(mileage="Under 5k", search="o"),
    FilterCriteria(status="sold"),
]


def _clauses(vehicle: Vehicle, criteria: FilterCriteria) -> list[bool]:
    return [
        matches_search(vehicle, criteria.search),
        matches_status(vehicle, criteria.status),
        matches_make(vehicle, criteria.make),
        matches_year(vehicle, criteria.year),
        matches_price(vehicle, criteria),
        matches_mileage(vehicle, criteria),
    ]


def test_search_matches_vehicle_by_tag() -> None:
    assert filter_vehicles([BMW, AUDI], FilterCriteria(search="new")) == [BMW]


def test_status_filter_returns_only_sold() -> None:
    assert filter_vehicles([BMW, AUDI], FilterCriteria(status="sold")) == [AUDI]


def test_search_is_case_insensitive_over_make_model_and_year() -> None:
    assert filter_vehicles([BMW, AUDI], FilterCriteria(search="aUdI")) == [AUDI]
    assert filter_vehicles([BMW, AUDI], FilterCriteria(search="m3")) == [BMW]
    assert filter_vehicles([BMW, AUDI], FilterCriteria(search="2020")) == [AUDI]


def test_unset_criteria_is_identity() -> None:
    vehicles = list(SAMPLE_VEHICLES)

    assert filter_vehicles(vehicles, FilterCriteria()) == vehicles
    assert filter_vehicles(vehicles, None) == vehicles


def test_placeholder_labels_are_unset() -> None:
    criteria = FilterCriteria(make="All Makes", price="Price Range", year="Year", mileage="Mileage", status="")

    assert criteria.is_unset
    assert criteria.active_facets() == {}
    assert filter_vehicles(SAMPLE_VEHICLES, criteria) == list(SAMPLE_VEHICLES)


@pytest.mark.parametrize("criteria", CRITERIA)
def test_filtering_is_idempotent(criteria: FilterCriteria) -> None:
    once = filter_vehicles(SAMPLE_VEHICLES, criteria)

    assert filter_vehicles(once, criteria) == once


@pytest.mark.parametrize("criteria", CRITERIA)
def test_filtering_is_conjunctive(criteria: FilterCriteria) -> None:
    vehicles = [*SAMPLE_VEHICLES, BMW, AUDI]
    result = filter_vehicles(vehicles, criteria)

    assert all(all(_clauses(vehicle, criteria)) for vehicle in result)
    assert result == [vehicle for vehicle in vehicles if all(_clauses(vehicle, criteria))]


def test_filtering_does_not_mutate_input() -> None:
    vehicles = list(SAMPLE_VEHICLES)
    before = copy.deepcopy(vehicles)

    filter_vehicles(vehicles, FilterCriteria(search="ferrari", price="$300k+"))

    assert vehicles == before


def test_make_is_case_insensitive_and_year_is_exact() -> None:
    assert [v.id for v in filter_vehicles(SAMPLE_VEHICLES, FilterCriteria(make="porsche"))] == ["3"]
    assert [v.id for v in filter_vehicles(SAMPLE_VEHICLES, FilterCriteria(year=2023))] == ["3", "5"]
    assert filter_vehicles(SAMPLE_VEHICLES, FilterCriteria(year="202")) == []


def test_bracket_boundaries_are_half_open() -> None:
    assert in_bracket(99_999, PriceBracket.UNDER_100K.bounds)
    assert not in_bracket(100_000, PriceBracket.UNDER_100K.bounds)
    assert in_bracket(100_000, PriceBracket.FROM_100K_TO_200K.bounds)
    assert in_bracket(300_000, PriceBracket.OVER_300K.bounds)
    assert not in_bracket(5_000, MileageBracket.UNDER_5K.bounds)
    assert in_bracket(5_000, MileageBracket.FROM_5K_TO_15K.bounds)
    assert in_bracket(30_000, MileageBracket.OVER_30K.bounds)


@pytest.mark.parametrize("value", [None, -1, float("nan"), float("inf"), True])
def test_malformed_values_never_match_a_bracket(value: object) -> None:
    assert not in_bracket(value, (None, None))  # type: ignore[arg-type]


def test_price_brackets_on_samples() -> None:
    by_bracket = {
        bracket: [v.id for v in filter_vehicles(SAMPLE_VEHICLES, FilterCriteria(price=bracket))]
        for bracket in PriceBracket
    }

    assert by_bracket == {
        PriceBracket.UNDER_100K: ["1", "2"],
        PriceBracket.FROM_100K_TO_200K: ["6"],
        PriceBracket.FROM_200K_TO_300K: ["3", "5"],
        PriceBracket.OVER_300K: ["4"],
    }


def test_malformed_row_is_excluded_by_bracket_without_error() -> None:
    broken = Vehicle.model_validate({"id": "x", "make": "Kia", "model": "Rio", "price": "call us", "mileage": -50})

    assert broken.price is None
    assert broken.mileage is None
    assert filter_vehicles([broken], FilterCriteria(price="Under $100k")) == []
    assert filter_vehicles([broken], FilterCriteria(mileage="Under 5k")) == []
    assert filter_vehicles([broken], FilterCriteria(search="kia")) == [broken]


def test_status_filter_all_sentinel() -> None:
    assert matches_status(AUDI, StatusFilter.ALL)
    assert not matches_status(AUDI, StatusFilter.AVAILABLE)


def test_unknown_bracket_label_is_rejected() -> None:
    with pytest.raises(ValueError):
        FilterCriteria(price="cheap")
