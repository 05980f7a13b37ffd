"""Canonical record schema for normalized ad-performance exports.

Field identifiers are plain strings (``"amountSpentUSD"``, ``"ctrAll"`` ...)
because they double as the metric keys handed to the charting layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

import pandas as pd


class FieldKind(str, Enum):
    DATE = "date"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    TEXT = "text"


class AggregationMode(str, Enum):
    SUM = "sum"
    AVERAGE = "average"


class DerivedMetric(str, Enum):
    """Ratio metrics recomputed from summed components."""

    ROAS = "calculatedROAS"
    CTR = "calculatedCTR"
    CPM = "calculatedCPM"
    CPC = "calculatedCPC"
    COST_PER_RESULT = "calculatedCostPerResult"


# Identifiers and dates
REPORTING_START = "reportingStart"
REPORTING_END = "reportingEnd"
CAMPAIGN_NAME = "campaignName"
AD_SET_NAME = "adSetName"
AD_NAME = "adName"
COUNTRY = "country"
# Core performance
AMOUNT_SPENT_USD = "amountSpentUSD"
REACH = "reach"
IMPRESSIONS = "impressions"
LINK_CLICKS = "linkClicks"
RESULTS = "results"
VALUE_SUM = "valueSum"
APP_INSTALLS = "appInstalls"
IN_APP_PURCHASES = "inAppPurchases"
DATE_KEY = "dateKey"

FIELD_KINDS: Mapping[str, FieldKind] = MappingProxyType(
    {
        REPORTING_START: FieldKind.DATE,
        REPORTING_END: FieldKind.DATE,
        CAMPAIGN_NAME: FieldKind.TEXT,
        AD_SET_NAME: FieldKind.TEXT,
        AD_NAME: FieldKind.TEXT,
        COUNTRY: FieldKind.TEXT,
        "adSetDelivery": FieldKind.TEXT,
        "adSetBudget": FieldKind.NUMBER,
        "budgetType": FieldKind.TEXT,
        AMOUNT_SPENT_USD: FieldKind.NUMBER,
        REACH: FieldKind.NUMBER,
        IMPRESSIONS: FieldKind.NUMBER,
        LINK_CLICKS: FieldKind.NUMBER,
        RESULTS: FieldKind.NUMBER,
        "resultIndicator": FieldKind.TEXT,
        "costPerResult": FieldKind.NUMBER,
        VALUE_SUM: FieldKind.NUMBER,
        "totalROAS": FieldKind.NUMBER,
        "cpm": FieldKind.NUMBER,
        "ctrAll": FieldKind.PERCENTAGE,
        "cpcAll": FieldKind.NUMBER,
        APP_INSTALLS: FieldKind.NUMBER,
        IN_APP_PURCHASES: FieldKind.NUMBER,
        "inAppPurchasesConversionValue": FieldKind.NUMBER,
        "costPerInAppPurchase": FieldKind.NUMBER,
        "videoPlays3Sec": FieldKind.NUMBER,
        "videoPlaysTo25Percent": FieldKind.NUMBER,
        "videoPlaysTo50Percent": FieldKind.NUMBER,
        "videoPlaysTo75Percent": FieldKind.NUMBER,
        "videoPlaysTo95Percent": FieldKind.NUMBER,
        "videoPlaysTo100Percent": FieldKind.NUMBER,
        "costPer3SecVideoPlay": FieldKind.NUMBER,
        "frequency": FieldKind.NUMBER,
        "uniqueLinkClicks": FieldKind.NUMBER,
    }
)

CANONICAL_FIELDS = tuple(FIELD_KINDS)

UNKNOWN_COUNTRY = "Unknown"
UNKNOWN_CAMPAIGN = "Unknown Campaign"
UNKNOWN_CATEGORY = "Unknown"

# reportingStart is filled separately from the processing date
REQUIRED_DEFAULTS: Mapping[str, Any] = MappingProxyType(
    {
        AMOUNT_SPENT_USD: 0.0,
        REACH: 0.0,
        IMPRESSIONS: 0.0,
        COUNTRY: UNKNOWN_COUNTRY,
        CAMPAIGN_NAME: UNKNOWN_CAMPAIGN,
    }
)


def field_kind(name: str) -> FieldKind:
    try:
        return FIELD_KINDS[name]
    except KeyError:
        raise ValueError(f"Unknown canonical field: {name!r}") from None


@dataclass(frozen=True)
class AdRecord(Mapping[str, Any]):
    """One parsed export row.

    Behaves as a read-only mapping of canonical field -> typed value.
    ``dateKey`` is exposed through the mapping as well as ``date_key``.
    """

    data: Mapping[str, Any]
    date_key: str
    date_inferred: bool = False
    row_number: Optional[int] = None
    _view: Mapping[str, Any] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        view = dict(self.data)
        view[DATE_KEY] = self.date_key
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))
        object.__setattr__(self, "_view", MappingProxyType(view))

    def __getitem__(self, key: str) -> Any:
        return self._view[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._view)

    def __len__(self) -> int:
        return len(self._view)

    def __hash__(self) -> int:
        return hash((self.row_number, self.date_key))

    @property
    def reporting_start(self) -> pd.Timestamp:
        return self._view[REPORTING_START]

    @property
    def country(self) -> str:
        return self._view[COUNTRY]

    @property
    def campaign_name(self) -> str:
        return self._view[CAMPAIGN_NAME]

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._view)


@dataclass(frozen=True)
class AggregatePoint:
    """A grouping key plus metric values, ready for a chart series."""

    name: str
    values: Mapping[str, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __getitem__(self, metric: str) -> float:
        return self.values[metric]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name}
        out.update(self.values)
        return out
