"""Read export files into a header row plus raw data rows."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Tuple

import pandas as pd

from .errors import FileReadError


LOGGER = logging.getLogger("adlens.ingestion")

ALLOWED_EXTENSIONS: Tuple[str, ...] = (".csv", ".tsv", ".txt", ".xlsx", ".xlsm", ".xls")
TEXT_EXTENSIONS = {".csv", ".tsv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xlsm": "openpyxl", ".xls": "xlrd"}

Grid = Tuple[List[Any], List[List[Any]]]


def validate_extension(path: Path, allowed: Iterable[str] = ALLOWED_EXTENSIONS) -> None:
    """Ensure the file extension is allowed."""

    suffix = path.suffix.lower()
    if suffix not in {ext.lower() for ext in allowed}:
        raise FileReadError(f"Unsupported file extension: {suffix}. Allowed: {list(allowed)}")


def _frame_to_grid(df: pd.DataFrame) -> Grid:
    if df.empty:
        return [], []
    cells = df.astype(object).where(df.notna(), None).values.tolist()
    return list(cells[0]), [list(row) for row in cells[1:]]


def _read_delimited(path: Path) -> pd.DataFrame:
    # Let pandas sniff the separator (comma, tab, semicolon, pipe); keep every cell as text
    options = dict(dtype=str, header=None, keep_default_na=False, encoding="utf-8-sig", engine="python")
    try:
        return pd.read_csv(path, sep=None, **options)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except Exception:
        try:
            return pd.read_csv(path, sep=",", **options)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except Exception as exc:
            raise FileReadError(f"Failed to read delimited file {path}: {exc}") from exc


def _read_excel(path: Path, sheet_name: int | str) -> pd.DataFrame:
    engine = EXCEL_ENGINES.get(path.suffix.lower(), "openpyxl")
    try:
        # native numbers and dates are kept so date serials reach the coercer untouched
        return pd.read_excel(path, sheet_name=sheet_name, header=None, dtype=object, engine=engine)
    except Exception as exc:
        raise FileReadError(f"Failed to read Excel file {path}: {exc}") from exc


def read_grid(path: str | Path, sheet_name: int | str = 0) -> Grid:
    """Read a delimited text or Excel file into ``(header_row, data_rows)``.

    Supported formats: csv, tsv, txt, xlsx, xlsm, xls (first sheet by default).
    Empty cells come back as ``None``; an empty file gives ``([], [])``.
    """

    path = Path(path)
    if not path.is_file():
        raise FileReadError(f"Input not found: {path}")
    validate_extension(path)

    suffix = path.suffix.lower()
    if suffix in TEXT_EXTENSIONS:
        df = _read_delimited(path)
    else:
        df = _read_excel(path, sheet_name)

    header, rows = _frame_to_grid(df)
    LOGGER.info("Read %s: %d columns, %d data rows", path.name, len(header), len(rows))
    return header, rows
