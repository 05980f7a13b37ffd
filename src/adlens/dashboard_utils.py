"""Build the standard ad-performance dashboard and export it.

The chart catalogue mirrors the analyzer dashboard: six time-series charts
aggregated by reporting day and six categorical charts (top N categories)
aggregated by country or campaign.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.chart import BarChart, LineChart, Reference
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .aggregation import DerivedMetricTable, aggregate_by_category, aggregate_by_date
from .schema import (
    AMOUNT_SPENT_USD,
    APP_INSTALLS,
    CAMPAIGN_NAME,
    COUNTRY,
    IMPRESSIONS,
    IN_APP_PURCHASES,
    REACH,
    RESULTS,
    AdRecord,
    AggregatePoint,
    AggregationMode,
    DerivedMetric,
)


LOGGER = logging.getLogger("adlens.dashboard")

DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class ChartSpec:
    """One chart of the catalogue.

    ``kind == "line"`` charts aggregate by date; ``"bar"`` charts aggregate by
    ``category_field`` and keep the top N categories.
    """

    title: str
    kind: str
    labels: Tuple[Tuple[str, str], ...]
    raw_metrics: Tuple[str, ...] = ()
    derived_metrics: Tuple[str, ...] = ()
    category_field: Optional[str] = None
    value_metric: Optional[str] = None
    mode: AggregationMode = AggregationMode.SUM
    derived_metric: Optional[str] = None


DASHBOARD_CHARTS: Tuple[ChartSpec, ...] = (
    ChartSpec(
        title="Spend Over Time",
        kind="line",
        raw_metrics=(AMOUNT_SPENT_USD,),
        labels=((AMOUNT_SPENT_USD, "Spend (USD)"),),
    ),
    ChartSpec(
        title="Reach & Impressions Over Time",
        kind="line",
        raw_metrics=(REACH, IMPRESSIONS),
        labels=((REACH, "Reach"), (IMPRESSIONS, "Impressions")),
    ),
    ChartSpec(
        title="Engagement Rates Over Time (CTR, CPM, CPC)",
        kind="line",
        derived_metrics=(DerivedMetric.CTR.value, DerivedMetric.CPM.value, DerivedMetric.CPC.value),
        labels=(
            (DerivedMetric.CTR.value, "CTR (%)"),
            (DerivedMetric.CPM.value, "CPM (USD)"),
            (DerivedMetric.CPC.value, "CPC (USD)"),
        ),
    ),
    ChartSpec(
        title="Results & Cost Per Result Over Time",
        kind="line",
        raw_metrics=(RESULTS,),
        derived_metrics=(DerivedMetric.COST_PER_RESULT.value,),
        labels=((RESULTS, "Results"), (DerivedMetric.COST_PER_RESULT.value, "Cost/Result (USD)")),
    ),
    ChartSpec(
        title="ROAS Over Time",
        kind="line",
        derived_metrics=(DerivedMetric.ROAS.value,),
        labels=((DerivedMetric.ROAS.value, "ROAS"),),
    ),
    ChartSpec(
        title="App Installs & In-App Purchases Over Time",
        kind="line",
        raw_metrics=(APP_INSTALLS, IN_APP_PURCHASES),
        labels=((APP_INSTALLS, "App Installs"), (IN_APP_PURCHASES, "In-App Purchases")),
    ),
    ChartSpec(
        title="Total Spend by Country",
        kind="bar",
        category_field=COUNTRY,
        value_metric=AMOUNT_SPENT_USD,
        labels=((AMOUNT_SPENT_USD, "Spend (USD)"),),
    ),
    ChartSpec(
        title="Total Results by Country",
        kind="bar",
        category_field=COUNTRY,
        value_metric=RESULTS,
        labels=((RESULTS, "Results"),),
    ),
    ChartSpec(
        title="Total Spend by Campaign",
        kind="bar",
        category_field=CAMPAIGN_NAME,
        value_metric=AMOUNT_SPENT_USD,
        labels=((AMOUNT_SPENT_USD, "Spend (USD)"),),
    ),
    ChartSpec(
        title="Total Results by Campaign",
        kind="bar",
        category_field=CAMPAIGN_NAME,
        value_metric=RESULTS,
        labels=((RESULTS, "Results"),),
    ),
    ChartSpec(
        title="ROAS by Campaign",
        kind="bar",
        category_field=CAMPAIGN_NAME,
        value_metric=AMOUNT_SPENT_USD,
        derived_metric=DerivedMetric.ROAS.value,
        labels=((DerivedMetric.ROAS.value, "ROAS"),),
    ),
    ChartSpec(
        title="CTR by Campaign",
        kind="bar",
        category_field=CAMPAIGN_NAME,
        value_metric=IMPRESSIONS,
        derived_metric=DerivedMetric.CTR.value,
        labels=((DerivedMetric.CTR.value, "CTR (%)"),),
    ),
)


@dataclass(frozen=True)
class ChartSeries:
    title: str
    kind: str
    labels: Tuple[Tuple[str, str], ...]
    points: Tuple[AggregatePoint, ...]

    @property
    def metric_keys(self) -> List[str]:
        return [key for key, _ in self.labels]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "kind": self.kind,
            "metrics": [{"key": key, "label": label} for key, label in self.labels],
            "data": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class Dashboard:
    """Container holding every chart series built from one record set."""

    time_series: Tuple[ChartSeries, ...]
    categorical: Tuple[ChartSeries, ...]
    record_count: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def charts(self) -> Tuple[ChartSeries, ...]:
        return self.time_series + self.categorical

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_count": self.record_count,
            "meta": dict(self.meta),
            "time_series": [c.to_dict() for c in self.time_series],
            "categorical": [c.to_dict() for c in self.categorical],
        }


def build_chart(
    records: Sequence[AdRecord],
    spec: ChartSpec,
    top_n: int = DEFAULT_TOP_N,
    table: Optional[DerivedMetricTable] = None,
) -> ChartSeries:
    if spec.kind == "line":
        points = aggregate_by_date(records, spec.raw_metrics, spec.derived_metrics, table=table)
    elif spec.kind == "bar":
        points = aggregate_by_category(
            records,
            spec.category_field,
            spec.value_metric,
            mode=spec.mode,
            derived_metric=spec.derived_metric,
            table=table,
        )[: max(0, int(top_n))]
    else:
        raise ValueError(f"Unsupported chart kind '{spec.kind}' for '{spec.title}'")
    return ChartSeries(title=spec.title, kind=spec.kind, labels=spec.labels, points=tuple(points))


def build_dashboard(
    records: Iterable[AdRecord],
    top_n: int = DEFAULT_TOP_N,
    charts: Sequence[ChartSpec] = DASHBOARD_CHARTS,
    meta: Optional[Dict[str, Any]] = None,
    table: Optional[DerivedMetricTable] = None,
) -> Dashboard:
    """Aggregate ``records`` once per chart of the catalogue."""
    records = list(records)
    built = [build_chart(records, spec, top_n, table) for spec in charts]
    dashboard = Dashboard(
        time_series=tuple(c for c in built if c.kind == "line"),
        categorical=tuple(c for c in built if c.kind == "bar"),
        record_count=len(records),
        meta=dict(meta or {}),
    )
    LOGGER.info("Built dashboard: %d charts from %d records", len(built), len(records))
    return dashboard


# ============================================================
# Export
# ============================================================


def write_dashboard_json(dashboard: Dashboard, path: str | Path) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(dashboard.to_dict(), indent=2, ensure_ascii=False, default=str), encoding="utf-8")
    LOGGER.info("Dashboard JSON saved: %s", out_path)
    return out_path


def _safe_sheet_name(name: str, taken: set) -> str:
    """Return a unique sheet-safe string (openpyxl constraints)."""
    sanitized = "".join(ch if ch not in '[]:*?/\\' else '_' for ch in str(name)).strip() or "Sheet"
    candidate = sanitized[:31].rstrip()
    suffix = 1
    while candidate.lower() in taken:
        tag = f"_{suffix}"
        candidate = sanitized[: 31 - len(tag)].rstrip() + tag
        suffix += 1
    taken.add(candidate.lower())
    return candidate


def _apply_header_style(ws, n_columns: int) -> None:
    header_fill = PatternFill("solid", fgColor="1F4E78")
    header_font = Font(color="FFFFFF", bold=True, name="Calibri", size=12)
    for cell in ws[1][:n_columns]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _add_native_chart(ws, series: ChartSeries) -> None:
    n_rows = len(series.points) + 1
    n_metrics = len(series.labels)
    if series.kind == "bar":
        chart = BarChart()
        chart.type = "bar"
    else:
        chart = LineChart()
    chart.title = series.title
    chart.height = 9
    chart.width = 18
    data = Reference(ws, min_col=2, max_col=1 + n_metrics, min_row=1, max_row=n_rows)
    categories = Reference(ws, min_col=1, min_row=2, max_row=n_rows)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(categories)
    ws.add_chart(chart, f"{get_column_letter(n_metrics + 3)}2")


def _write_series_sheet(ws, series: ChartSeries) -> None:
    if not series.points:
        ws.append(["No data available"])
        return
    ws.append(["name", *[label for _, label in series.labels]])
    for point in series.points:
        ws.append([point.name, *[point.values.get(key, 0.0) for key in series.metric_keys]])
    _apply_header_style(ws, len(series.labels) + 1)
    ws.column_dimensions["A"].width = 28
    for col_idx in range(2, len(series.labels) + 2):
        ws.column_dimensions[get_column_letter(col_idx)].width = 18
        for row_idx in range(2, ws.max_row + 1):
            ws.cell(row=row_idx, column=col_idx).number_format = "0.00"
    _add_native_chart(ws, series)


def write_dashboard_workbook(dashboard: Dashboard, path: str | Path) -> Path:
    """Write one sheet per chart, each with its table and a native Excel chart."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    taken: set = set()
    for idx, series in enumerate(dashboard.charts):
        ws = wb.active if idx == 0 else wb.create_sheet()
        ws.title = _safe_sheet_name(series.title, taken)
        _write_series_sheet(ws, series)
        LOGGER.info("Dashboard sheet '%s' rows=%d", ws.title, len(series.points))

    wb.save(out_path)
    LOGGER.info("Dashboard workbook saved: %s | sheets=%d", out_path, len(dashboard.charts))
    return out_path
