"""Coerce raw spreadsheet cells into typed values.

This is the one place malformed cell data is absorbed: every function here
returns a usable value (0, ``UNSET_DATE`` or ``""``) instead of raising.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict

import numpy as np
import pandas as pd

from .schema import FieldKind, field_kind


LOGGER = logging.getLogger("adlens.coercion")

UNSET_DATE = pd.NaT

# Spreadsheet serials count days from 1899-12-30 once past the phantom 1900-02-29 (serial 60).
EXCEL_EPOCH = pd.Timestamp("1899-12-30")
_PRE_LEAP_BUG_EPOCH = pd.Timestamp("1899-12-31")
_PHANTOM_LEAP_SERIAL = 60
_SECONDS_PER_DAY = 86400

_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
# five-digit spreadsheet serial stored as text, e.g. "45292" from a CSV export
_SERIAL_TEXT = re.compile(r"^\d{5}(?:\.\d+)?$")


def is_empty(value: Any) -> bool:
    """True for None, NaN/NaT/NA and strings that strip to nothing."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_native_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, (bool, np.bool_))


def parse_number(value: Any) -> float:
    """Parse a number, stripping comma thousands separators.

    Strings are read by their leading decimal number, so ``"12.5 USD"`` gives
    12.5 and ``"n/a"`` gives 0. Non-finite results saturate to 0.
    """
    if is_empty(value):
        return 0.0
    if is_native_number(value):
        num = float(value)
    else:
        text = str(value).strip().replace(",", "")
        match = _NUMBER_PREFIX.match(text)
        if not match:
            return 0.0
        num = float(match.group(0))
    return num if math.isfinite(num) else 0.0


def parse_percentage(value: Any) -> float:
    """``"5.5%"`` -> 0.055; values without a ``%`` suffix are read as plain numbers."""
    if is_empty(value):
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            return parse_number(text[:-1]) / 100.0
    return parse_number(value)


def excel_serial_to_timestamp(serial: float) -> pd.Timestamp:
    """Convert a spreadsheet date serial (1900 date system) to a Timestamp.

    Serials below 60 predate the format's fictitious 1900-02-29 and are one
    day behind the 1899-12-30 epoch; serial 60 itself is mapped to 1900-02-28.
    The fractional part is the time of day.
    """
    serial = float(serial)
    if not math.isfinite(serial) or serial <= 0:
        return UNSET_DATE
    whole = int(serial)
    seconds = int(round((serial - whole) * _SECONDS_PER_DAY))
    try:
        if whole < _PHANTOM_LEAP_SERIAL:
            day = _PRE_LEAP_BUG_EPOCH + pd.Timedelta(days=whole)
        elif whole == _PHANTOM_LEAP_SERIAL:
            day = pd.Timestamp("1900-02-28")
        else:
            day = EXCEL_EPOCH + pd.Timedelta(days=whole)
        return day + pd.Timedelta(seconds=seconds)
    except (OverflowError, ValueError):
        return UNSET_DATE


def parse_date(value: Any) -> pd.Timestamp:
    """Return a naive Timestamp, or ``UNSET_DATE`` when the value is not a date."""
    if is_empty(value):
        return UNSET_DATE
    if isinstance(value, (datetime, date)):
        ts = pd.Timestamp(value)
    elif is_native_number(value):
        return excel_serial_to_timestamp(value)
    else:
        text = str(value).strip()
        if _SERIAL_TEXT.match(text):
            return excel_serial_to_timestamp(float(text))
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (TypeError, ValueError, OverflowError):
            return UNSET_DATE
        if pd.isna(ts):
            return UNSET_DATE
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def parse_text(value: Any) -> str:
    if is_empty(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


_EMPTY_VALUES: Dict[FieldKind, Any] = {
    FieldKind.DATE: UNSET_DATE,
    FieldKind.NUMBER: 0.0,
    FieldKind.PERCENTAGE: 0.0,
    FieldKind.TEXT: "",
}

_COERCERS: Dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.DATE: parse_date,
    FieldKind.NUMBER: parse_number,
    FieldKind.PERCENTAGE: parse_percentage,
    FieldKind.TEXT: parse_text,
}


def empty_value(kind: FieldKind) -> Any:
    return _EMPTY_VALUES[FieldKind(kind)]


def coerce_value(raw: Any, kind: FieldKind) -> Any:
    """Coerce one raw cell for a field of the given kind. Never raises."""
    kind = FieldKind(kind)
    try:
        return _COERCERS[kind](raw)
    except (TypeError, ValueError, OverflowError) as exc:
        LOGGER.debug("Could not coerce %r as %s (%s); using empty value", raw, kind.value, exc)
        return _EMPTY_VALUES[kind]


def coerce_field(raw: Any, field: str) -> Any:
    """Coerce a raw cell for a canonical field, looking its kind up in the schema."""
    return coerce_value(raw, field_kind(field))
