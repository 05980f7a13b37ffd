from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from adlens.filters import FilterState, apply_filters, dataset_facets, default_filters
from adlens.record_parser import build_record


def _record(day: str, country: str, campaign: str, inferred: bool = False):
    data = {"country": country, "campaignName": campaign, "amountSpentUSD": 1.0}
    if not inferred:
        data["reportingStart"] = pd.Timestamp(day)
    return build_record(data, pd.Timestamp(day))


@pytest.fixture
def records():
    return [
        _record("2024-01-01 08:00", "DE", "Spring"),
        _record("2024-01-05", "FR", "Spring"),
        _record("2024-01-10 23:59", "DE", "Summer"),
        _record("2024-01-12", "PL", "Summer", inferred=True),
    ]


def test_no_filter_returns_everything(records):
    assert apply_filters(records) == records
    assert apply_filters(records, FilterState()) == records


def test_date_bounds_are_inclusive_calendar_days(records):
    state = FilterState(start="2024-01-01", end="2024-01-10")
    kept = apply_filters(records, state)
    assert [r.date_key for r in kept] == ["2024-01-01", "2024-01-05", "2024-01-10"]


def test_country_and_campaign_selection(records):
    kept = apply_filters(records, FilterState(countries=("DE",), campaigns=("Summer",)))
    assert len(kept) == 1
    assert kept[0].date_key == "2024-01-10"


def test_start_after_end_is_rejected():
    with pytest.raises(ValueError):
        FilterState(start=date(2024, 2, 1), end=date(2024, 1, 1))


def test_blank_bounds_mean_unrestricted():
    state = FilterState(start="", end=None)
    assert state.start is None
    assert state.end is None


def test_facets_cover_all_records(records):
    facets = dataset_facets(records)
    assert facets.countries == ("DE", "FR", "PL")
    assert facets.campaigns == ("Spring", "Summer")
    assert facets.min_date == pd.Timestamp("2024-01-01")
    assert facets.max_date == pd.Timestamp("2024-01-12")


def test_default_filters_keep_every_record(records):
    state = default_filters(records)
    assert apply_filters(records, state) == records


def test_facets_of_empty_dataset():
    facets = dataset_facets([])
    assert facets.min_date is None
    assert default_filters([]) == FilterState()


def test_with_dates_replaces_only_the_range(records):
    state = FilterState(countries=("DE",)).with_dates("2024-01-02", None)
    assert state.countries == ("DE",)
    assert state.start == pd.Timestamp("2024-01-02")
    assert [r.date_key for r in apply_filters(records, state)] == ["2024-01-10"]
