"""Turn a header row plus raw data rows into canonical ad records.

Steps:
  - resolve headers through the alias table
  - coerce every mapped cell by its field kind
  - apply required-field defaults in a pure constructor
  - derive the ``dateKey`` grouping key, falling back to the processing date
  - reject the whole parse only when no record is usable at all
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .errors import EmptyHeaderError, NoRecognizedColumnsError, NoValidRecordsError
from .header_resolver import AliasTable, get_alias_table, resolve_columns, unrecognized_headers
from .schema import (
    AMOUNT_SPENT_USD,
    CAMPAIGN_NAME,
    COUNTRY,
    REPORTING_START,
    REQUIRED_DEFAULTS,
    AdRecord,
    FieldKind,
    field_kind,
)
from .value_coercer import coerce_value, is_empty, is_native_number


LOGGER = logging.getLogger("adlens.parser")

DATE_KEY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class ParseResult:
    """Records produced by one parse, with diagnostics about best-effort fills."""

    records: Tuple[AdRecord, ...]
    header_map: Mapping[str, str]
    ignored_headers: Tuple[str, ...] = ()
    skipped_blank_rows: int = 0
    inferred_date_rows: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def inferred_date_count(self) -> int:
        """Rows whose reporting start was unparseable and bucketed under the processing date."""
        return len(self.inferred_date_rows)

    def __len__(self) -> int:
        return len(self.records)


def processing_day(value: date | datetime | str | None = None) -> pd.Timestamp:
    """Midnight of the given day, or of today when ``value`` is None."""
    ts = pd.Timestamp.now() if value is None else pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def date_key_for(value: pd.Timestamp) -> str:
    return pd.Timestamp(value).strftime(DATE_KEY_FORMAT)


def _with_default(value: Any, default: Any) -> Any:
    if isinstance(default, str):
        return value if isinstance(value, str) and value else default
    return float(value) if is_native_number(value) else default


def build_record(
    values: Mapping[str, Any],
    processing_date: pd.Timestamp,
    row_number: Optional[int] = None,
) -> AdRecord:
    """Build an immutable record, filling required fields.

    An unset reportingStart takes ``processing_date`` and the record is marked
    ``date_inferred`` so the fill stays visible downstream.
    """
    data = dict(values)
    for name, default in REQUIRED_DEFAULTS.items():
        data[name] = _with_default(data.get(name), default)

    start = data.get(REPORTING_START)
    inferred = is_empty(start)
    if inferred:
        start = processing_date
    data[REPORTING_START] = start
    return AdRecord(data=data, date_key=date_key_for(start), date_inferred=inferred, row_number=row_number)


def passes_sanity(record: AdRecord) -> bool:
    """Minimal usability check: date, spend, country and campaign all defined."""
    return (
        not is_empty(record.get(REPORTING_START))
        and isinstance(record.get(AMOUNT_SPENT_USD), float)
        and bool(record.get(COUNTRY))
        and bool(record.get(CAMPAIGN_NAME))
    )


def _row_values(row: Sequence[Any], columns: Sequence[Tuple[int, str]], kinds: Mapping[str, FieldKind]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for idx, name in columns:
        raw = row[idx] if idx < len(row) else None
        # duplicate columns for one field: an empty cell never clobbers an earlier value
        if name in values and is_empty(raw):
            continue
        values[name] = coerce_value(raw, kinds[name])
    return values


def parse_rows(
    header_row: Sequence[Any],
    data_rows: Iterable[Sequence[Any]],
    *,
    alias_table: Optional[AliasTable] = None,
    processing_date: date | datetime | str | None = None,
) -> ParseResult:
    """Parse a grid of raw cells into canonical records.

    Raises:
        EmptyHeaderError: the header row has no non-blank cell.
        NoRecognizedColumnsError: no header matches the alias table.
        NoValidRecordsError: no row produced a usable record.
    """
    if header_row is None or all(is_empty(h) for h in header_row):
        raise EmptyHeaderError("Header row is empty")

    table = alias_table if alias_table is not None else get_alias_table()
    columns = resolve_columns(header_row, table)
    if not columns:
        raise NoRecognizedColumnsError(
            f"None of {len(header_row)} headers matched a known column"
        )

    kinds = {name: field_kind(name) for _, name in columns}
    today = processing_day(processing_date)

    records: List[AdRecord] = []
    inferred_rows: List[int] = []
    blank_rows = 0
    for row_number, row in enumerate(data_rows, start=1):
        row = list(row) if row is not None else []
        if all(is_empty(cell) for cell in row):
            blank_rows += 1
            continue
        record = build_record(_row_values(row, columns, kinds), today, row_number=row_number)
        if record.date_inferred:
            inferred_rows.append(row_number)
        records.append(record)

    if not any(passes_sanity(r) for r in records):
        raise NoValidRecordsError(f"No usable rows among {len(records) + blank_rows} data rows")

    header_map = {str(header_row[idx]): name for idx, name in columns}
    ignored = tuple(unrecognized_headers(header_row, table))
    if ignored:
        LOGGER.debug("Ignoring unrecognized columns: %s", ", ".join(ignored))
    if inferred_rows:
        LOGGER.warning(
            "%d rows had no parseable reporting start; grouped under processing date %s",
            len(inferred_rows),
            date_key_for(today),
        )
    LOGGER.info(
        "Parsed %d records (%d columns recognized, %d ignored, %d blank rows skipped)",
        len(records),
        len(header_map),
        len(ignored),
        blank_rows,
    )
    return ParseResult(
        records=tuple(records),
        header_map=MappingProxyType(header_map),
        ignored_headers=ignored,
        skipped_blank_rows=blank_rows,
        inferred_date_rows=tuple(inferred_rows),
    )


def parse_dataframe(df: pd.DataFrame, **kwargs: Any) -> ParseResult:
    """Parse a DataFrame whose columns are the raw export headers."""
    header = [str(c) for c in df.columns]
    rows = (
        [None if is_empty(v) else v for v in row]
        for row in df.itertuples(index=False, name=None)
    )
    return parse_rows(header, rows, **kwargs)
