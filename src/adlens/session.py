"""Stateful analyzer session: current dataset, filters and last error."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .aggregation import DerivedMetricTable
from .dashboard_utils import DEFAULT_TOP_N, Dashboard, build_dashboard
from .errors import FileReadError, ParseError
from .filters import DatasetFacets, FilterState, apply_filters, dataset_facets, default_filters
from .header_resolver import AliasTable
from .ingestion_utils import read_grid
from .record_parser import ParseResult, parse_rows
from .schema import AdRecord


LOGGER = logging.getLogger("adlens.session")


@dataclass(frozen=True)
class LoadOutcome:
    ok: bool
    source_name: Optional[str] = None
    record_count: int = 0
    error: Optional[str] = None
    result: Optional[ParseResult] = None


class AnalyzerSession:
    """Holds one loaded dataset.

    A failed load never discards the dataset that was already loaded; it only
    records the error message for display.
    """

    def __init__(
        self,
        alias_table: Optional[AliasTable] = None,
        derived_table: Optional[DerivedMetricTable] = None,
        processing_date: Any = None,
    ) -> None:
        self._alias_table = alias_table
        self._derived_table = derived_table
        self._processing_date = processing_date
        self._records: Tuple[AdRecord, ...] = ()
        self._result: Optional[ParseResult] = None
        self._filters = FilterState()
        self._source_name: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def records(self) -> Tuple[AdRecord, ...]:
        return self._records

    @property
    def result(self) -> Optional[ParseResult]:
        return self._result

    @property
    def source_name(self) -> Optional[str]:
        return self._source_name

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def has_data(self) -> bool:
        return bool(self._records)

    @property
    def facets(self) -> DatasetFacets:
        return dataset_facets(self._records)

    def _fail(self, message: str, source_name: Optional[str]) -> LoadOutcome:
        self.last_error = message
        LOGGER.warning("Load of %s failed: %s (keeping %d existing records)", source_name or "<grid>", message, len(self._records))
        return LoadOutcome(ok=False, source_name=source_name, record_count=len(self._records), error=message)

    def load_grid(
        self,
        header: Sequence[Any],
        rows: Iterable[Sequence[Any]],
        source_name: Optional[str] = None,
    ) -> LoadOutcome:
        try:
            result = parse_rows(
                header,
                rows,
                alias_table=self._alias_table,
                processing_date=self._processing_date,
            )
        except ParseError as exc:
            return self._fail(exc.user_message, source_name)

        self._result = result
        self._records = result.records
        self._filters = default_filters(result.records)
        self._source_name = source_name
        self.last_error = None
        LOGGER.info("Loaded %d records from %s", len(result.records), source_name or "<grid>")
        return LoadOutcome(ok=True, source_name=source_name, record_count=len(result.records), result=result)

    def load_file(self, path: str | Path) -> LoadOutcome:
        path = Path(path)
        try:
            header, rows = read_grid(path)
        except FileReadError as exc:
            LOGGER.debug("Reader error for %s: %s", path, exc)
            return self._fail(exc.user_message, path.name)
        return self.load_grid(header, rows, source_name=path.name)

    def set_filters(
        self,
        start: Any = None,
        end: Any = None,
        countries: Iterable[str] = (),
        campaigns: Iterable[str] = (),
    ) -> FilterState:
        self._filters = FilterState(start=start, end=end, countries=tuple(countries), campaigns=tuple(campaigns))
        return self._filters

    def reset_filters(self) -> FilterState:
        self._filters = default_filters(self._records)
        return self._filters

    def filtered_records(self) -> List[AdRecord]:
        return apply_filters(self._records, self._filters)

    def dashboard(self, top_n: int = DEFAULT_TOP_N) -> Dashboard:
        meta = {"source": self._source_name, "total_records": len(self._records)}
        return build_dashboard(self.filtered_records(), top_n=top_n, meta=meta, table=self._derived_table)
