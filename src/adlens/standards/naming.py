"""Centralized naming utilities for export headers and grouping labels."""
from __future__ import annotations

import re
from datetime import date, datetime

import pandas as pd

_WHITESPACE = re.compile(r"\s+")


def normalize_header(name: object) -> str:
    """Lower-case, trim and collapse inner whitespace of a raw header cell."""
    if name is None:
        return ""
    try:
        if pd.isna(name):
            return ""
    except (TypeError, ValueError):
        pass
    s = str(name).strip()
    s = _WHITESPACE.sub(" ", s)
    return s.lower()


def category_label(value: object, default: str) -> str:
    """String label used to bucket records by a categorical field."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        pass
    if isinstance(value, (datetime, date)):
        return pd.Timestamp(value).strftime("%Y-%m-%d")
    s = str(value).strip()
    return s or default
