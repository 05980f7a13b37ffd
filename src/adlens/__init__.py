"""
adlens: ingestion and aggregation of ad-performance exports.

Locale-specific export headers are resolved to canonical fields, raw cells
are coerced into typed values, and records are aggregated by day or by
category with ratio metrics recomputed from summed components.
"""

from .aggregation import aggregate_by_category, aggregate_by_date, compute_derived
from .dashboard_utils import build_dashboard, write_dashboard_json, write_dashboard_workbook
from .errors import (
    ConfigError,
    EmptyHeaderError,
    FileReadError,
    NoRecognizedColumnsError,
    NoValidRecordsError,
    ParseError,
)
from .filters import FilterState, apply_filters, dataset_facets
from .header_resolver import resolve_headers
from .ingestion_utils import read_grid
from .record_parser import ParseResult, parse_dataframe, parse_rows
from .schema import AdRecord, AggregatePoint, AggregationMode, DerivedMetric, FieldKind
from .session import AnalyzerSession, LoadOutcome
from .value_coercer import coerce_value

__version__ = "0.1.0"

__all__ = [
    "AdRecord",
    "AggregatePoint",
    "AggregationMode",
    "AnalyzerSession",
    "ConfigError",
    "DerivedMetric",
    "EmptyHeaderError",
    "FieldKind",
    "FileReadError",
    "FilterState",
    "LoadOutcome",
    "NoRecognizedColumnsError",
    "NoValidRecordsError",
    "ParseError",
    "ParseResult",
    "aggregate_by_category",
    "aggregate_by_date",
    "apply_filters",
    "build_dashboard",
    "coerce_value",
    "compute_derived",
    "dataset_facets",
    "parse_dataframe",
    "parse_rows",
    "read_grid",
    "resolve_headers",
    "write_dashboard_json",
    "write_dashboard_workbook",
]
