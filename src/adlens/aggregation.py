"""Aggregate ad records into chart-ready series.

Ratio metrics (ROAS, CTR, CPM, CPC, cost per result) are never averaged per
row. Every group accumulates the raw component sums named in the derived
metric table and the ratio is recomputed from those sums:

    value = sum(numerator) / sum(denominator) * scale    (0 when sum(denominator) <= 0)

Both aggregation modes go through :func:`compute_derived`, so a formula only
exists once, in ``config/derived_metrics.yaml``.
"""
from __future__ import annotations

import logging
import math
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .common.config_validator import DerivedMetricSpec, load_derived_metric_config
from .schema import (
    DATE_KEY,
    FIELD_KINDS,
    UNKNOWN_CATEGORY,
    AdRecord,
    AggregatePoint,
    AggregationMode,
    DerivedMetric,
)
from .standards.naming import category_label
from .value_coercer import is_native_number


LOGGER = logging.getLogger("adlens.aggregation")

DEFAULT_DERIVED_METRICS_PATH = Path(__file__).resolve().parent / "config" / "derived_metrics.yaml"

DerivedMetricTable = Mapping[str, DerivedMetricSpec]

_GROUP_KEY = "__group_key"


def load_derived_metric_table(path: str | Path | None = None) -> DerivedMetricTable:
    config = load_derived_metric_config(path or DEFAULT_DERIVED_METRICS_PATH)
    return MappingProxyType(dict(config.derived_metrics))


@lru_cache(maxsize=1)
def get_derived_metric_table() -> DerivedMetricTable:
    return load_derived_metric_table()


def _metric_id(metric: str | DerivedMetric) -> str:
    return metric.value if isinstance(metric, DerivedMetric) else str(metric)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def component_fields(table: Optional[DerivedMetricTable] = None) -> Tuple[str, ...]:
    """Every field used as a numerator or denominator, in table order."""
    table = table if table is not None else get_derived_metric_table()
    names: List[str] = []
    for spec in table.values():
        names.extend([spec.numerator, spec.denominator])
    return tuple(_unique(names))


def _spec_for(metric: str | DerivedMetric, table: DerivedMetricTable) -> DerivedMetricSpec:
    metric_id = _metric_id(metric)
    try:
        return table[metric_id]
    except KeyError:
        raise ValueError(f"Unknown derived metric: {metric_id!r}. Known: {sorted(table)}") from None


def compute_derived(
    component_sums: Mapping[str, float],
    metric: str | DerivedMetric,
    table: Optional[DerivedMetricTable] = None,
) -> float:
    """Ratio of summed components, saturating to 0 on a non-positive denominator."""
    table = table if table is not None else get_derived_metric_table()
    spec = _spec_for(metric, table)
    denominator = float(component_sums.get(spec.denominator, 0.0) or 0.0)
    if not denominator > 0:
        return 0.0
    numerator = float(component_sums.get(spec.numerator, 0.0) or 0.0)
    return _finite(numerator / denominator * spec.scale)


def _finite(value: float) -> float:
    """Every aggregated value is finite; overflow and NaN saturate to 0."""
    return value if math.isfinite(value) else 0.0


def _numeric(value: object) -> float:
    return _finite(float(value)) if is_native_number(value) else 0.0


def _check_fields(names: Sequence[str], allowed: Iterable[str], what: str) -> None:
    allowed = set(allowed)
    unknown = [n for n in names if n not in allowed]
    if unknown:
        raise ValueError(f"Unknown {what}: {unknown}")


def _numeric_frame(records: Sequence[AdRecord], fields: Sequence[str], keys: Sequence[str]) -> pd.DataFrame:
    """One float column per field (absent or non-numeric -> 0) plus the group key."""
    frame = pd.DataFrame(
        {name: [_numeric(r.get(name)) for r in records] for name in fields},
        index=range(len(records)),
        dtype="float64",
    )
    frame[_GROUP_KEY] = list(keys)
    return frame


def _date_sort_key(name: str) -> Tuple[int, int, str]:
    ts = pd.to_datetime(name, errors="coerce")
    if pd.isna(ts):
        return (1, 0, name)
    return (0, int(ts.value), name)


def aggregate_by_date(
    records: Iterable[AdRecord],
    raw_metrics: Iterable[str] = (),
    derived_metrics: Iterable[str | DerivedMetric] = (),
    *,
    table: Optional[DerivedMetricTable] = None,
) -> List[AggregatePoint]:
    """Sum raw metrics and recompute derived metrics per ``dateKey``.

    Output is ordered by ascending calendar date.
    """
    table = table if table is not None else get_derived_metric_table()
    records = list(records)
    raw = _unique(_metric_id(m) for m in raw_metrics)
    derived = _unique(_metric_id(m) for m in derived_metrics)
    _check_fields(raw, FIELD_KINDS, "raw metrics")
    _check_fields(derived, table, "derived metrics")
    if not records:
        return []

    fields = _unique(raw + list(component_fields(table)))
    frame = _numeric_frame(records, fields, [category_label(r.get(DATE_KEY), UNKNOWN_CATEGORY) for r in records])
    sums = frame.groupby(_GROUP_KEY, sort=False)[fields].sum()

    points: List[AggregatePoint] = []
    for key, row in sums.iterrows():
        component_sums = row.to_dict()
        values: Dict[str, float] = {m: _finite(float(component_sums[m])) for m in raw}
        for metric in derived:
            values[metric] = compute_derived(component_sums, metric, table)
        points.append(AggregatePoint(name=str(key), values=values))

    points.sort(key=lambda p: _date_sort_key(p.name))
    LOGGER.debug("Aggregated %d records into %d dates", len(records), len(points))
    return points


def aggregate_by_category(
    records: Iterable[AdRecord],
    category_field: str,
    value_metric: str,
    mode: AggregationMode | str = AggregationMode.SUM,
    derived_metric: str | DerivedMetric | None = None,
    *,
    table: Optional[DerivedMetricTable] = None,
) -> List[AggregatePoint]:
    """One point per category label, sorted by descending value.

    With ``derived_metric`` the value is the recomputed ratio stored under the
    derived metric id and ``mode`` is ignored; otherwise it is the sum or the
    per-record mean of ``value_metric``. Equal values keep first-seen order.
    """
    table = table if table is not None else get_derived_metric_table()
    mode = AggregationMode(mode)
    records = list(records)
    _check_fields([category_field], list(FIELD_KINDS) + [DATE_KEY], "category field")
    _check_fields([value_metric], FIELD_KINDS, "value metric")
    derived = _metric_id(derived_metric) if derived_metric is not None else None
    if derived is not None:
        _check_fields([derived], table, "derived metric")
    if not records:
        return []

    fields = _unique([value_metric] + list(component_fields(table)))
    labels = [category_label(r.get(category_field), UNKNOWN_CATEGORY) for r in records]
    frame = _numeric_frame(records, fields, labels)
    grouped = frame.groupby(_GROUP_KEY, sort=False)
    sums = grouped[fields].sum()
    counts = grouped.size()

    metric_key = derived or value_metric
    points: List[AggregatePoint] = []
    for key, row in sums.iterrows():
        if derived is not None:
            value = compute_derived(row.to_dict(), derived, table)
        elif mode is AggregationMode.AVERAGE:
            count = int(counts.loc[key])
            value = _finite(float(row[value_metric]) / count) if count else 0.0
        else:
            value = _finite(float(row[value_metric]))
        points.append(AggregatePoint(name=str(key), values={metric_key: value}))

    # sorted() is stable, so ties stay in first-encountered order
    return sorted(points, key=lambda p: -p.values[metric_key])
