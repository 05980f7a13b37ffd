"""Record filtering and dataset facets for dashboard views."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .schema import AdRecord


def _as_day(value: date | datetime | str | None) -> Optional[pd.Timestamp]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


@dataclass(frozen=True)
class FilterState:
    """Date range (inclusive calendar days) plus country and campaign selections.

    Empty selections mean "no restriction".
    """

    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None
    countries: Tuple[str, ...] = field(default_factory=tuple)
    campaigns: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _as_day(self.start))
        object.__setattr__(self, "end", _as_day(self.end))
        object.__setattr__(self, "countries", tuple(self.countries or ()))
        object.__setattr__(self, "campaigns", tuple(self.campaigns or ()))
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"Filter start {self.start.date()} is after end {self.end.date()}")

    def with_dates(self, start=None, end=None) -> "FilterState":
        return replace(self, start=start, end=end)


@dataclass(frozen=True)
class DatasetFacets:
    countries: Tuple[str, ...]
    campaigns: Tuple[str, ...]
    min_date: Optional[pd.Timestamp]
    max_date: Optional[pd.Timestamp]


def matches(record: AdRecord, state: FilterState) -> bool:
    day = pd.Timestamp(record.reporting_start).normalize()
    if state.start is not None and day < state.start:
        return False
    if state.end is not None and day > state.end:
        return False
    if state.countries and record.country not in state.countries:
        return False
    if state.campaigns and record.campaign_name not in state.campaigns:
        return False
    return True


def apply_filters(records: Iterable[AdRecord], state: Optional[FilterState] = None) -> List[AdRecord]:
    """Return the records matching ``state`` as a new list."""
    if state is None:
        return list(records)
    return [r for r in records if matches(r, state)]


def dataset_facets(records: Iterable[AdRecord]) -> DatasetFacets:
    """Sorted unique countries/campaigns and the reporting date bounds."""
    records = list(records)
    countries = sorted({r.country for r in records if r.country})
    campaigns = sorted({r.campaign_name for r in records if r.campaign_name})
    dates = [pd.Timestamp(r.reporting_start).normalize() for r in records]
    return DatasetFacets(
        countries=tuple(countries),
        campaigns=tuple(campaigns),
        min_date=min(dates) if dates else None,
        max_date=max(dates) if dates else None,
    )


def default_filters(records: Iterable[AdRecord]) -> FilterState:
    """Full date range of the dataset, no country or campaign restriction."""
    facets = dataset_facets(records)
    return FilterState(start=facets.min_date, end=facets.max_date)
