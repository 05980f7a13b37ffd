"""Resolve locale-specific export headers to canonical field identifiers.

The alias table is data: it lives in ``config/header_aliases.yaml`` and is
loaded once, validated, and exposed read-only. New locales are added by
extending the YAML file.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .common.config_validator import load_alias_config
from .standards.naming import normalize_header


LOGGER = logging.getLogger("adlens.headers")

CONFIG_DIR = Path(__file__).resolve().parent / "config"
DEFAULT_ALIAS_PATH = CONFIG_DIR / "header_aliases.yaml"

AliasTable = Mapping[str, str]


def load_alias_table(path: str | Path | None = None) -> AliasTable:
    """Load and validate an alias table; defaults to the packaged YAML."""
    config = load_alias_config(path or DEFAULT_ALIAS_PATH)
    table = config.to_lookup()
    LOGGER.debug("Loaded %d header aliases from %s", len(table), path or DEFAULT_ALIAS_PATH)
    return MappingProxyType(table)


@lru_cache(maxsize=1)
def get_alias_table() -> AliasTable:
    """Return the packaged alias table (loaded on first use)."""
    return load_alias_table()


def resolve_header(header: object, alias_table: Optional[AliasTable] = None) -> Optional[str]:
    table = alias_table if alias_table is not None else get_alias_table()
    key = normalize_header(header)
    if not key:
        return None
    return table.get(key)


def resolve_columns(
    header_row: Sequence[object],
    alias_table: Optional[AliasTable] = None,
) -> List[Tuple[int, str]]:
    """Return ``(column_index, canonical_field)`` for every recognized header."""
    table = alias_table if alias_table is not None else get_alias_table()
    resolved: List[Tuple[int, str]] = []
    for idx, header in enumerate(header_row):
        canonical = resolve_header(header, table)
        if canonical is not None:
            resolved.append((idx, canonical))
    return resolved


def resolve_headers(
    header_row: Sequence[object],
    alias_table: Optional[AliasTable] = None,
) -> Dict[str, str]:
    """Map each recognized raw header string to its canonical field.

    Unrecognized and empty headers are dropped. An empty result is returned
    as-is; callers decide whether that is fatal.
    """
    return {str(header_row[idx]): canonical for idx, canonical in resolve_columns(header_row, alias_table)}


def unrecognized_headers(
    header_row: Sequence[object],
    alias_table: Optional[AliasTable] = None,
) -> List[str]:
    """Non-empty headers that have no alias entry, in column order."""
    table = alias_table if alias_table is not None else get_alias_table()
    return [
        str(h).strip()
        for h in header_row
        if normalize_header(h) and resolve_header(h, table) is None
    ]
