from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from adlens.common.config_validator import load_alias_config
from adlens.errors import ConfigError
from adlens.header_resolver import (
    DEFAULT_ALIAS_PATH,
    get_alias_table,
    load_alias_table,
    resolve_columns,
    resolve_header,
    resolve_headers,
    unrecognized_headers,
)


def test_english_headers_resolve_case_and_whitespace_insensitively():
    assert resolve_header("Campaign Name") == "campaignName"
    assert resolve_header("  AMOUNT SPENT (USD) ") == "amountSpentUSD"
    assert resolve_header("Reporting   starts") == "reportingStart"


def test_ukrainian_headers_resolve_to_same_fields():
    assert resolve_header("Назва кампанії") == "campaignName"
    assert resolve_header("Витрачена сума (USD)") == "amountSpentUSD"
    assert resolve_header("Країна") == "country"


def test_unknown_and_empty_headers_are_dropped():
    mapping = resolve_headers(["Campaign Name", "Amount Spent (USD)", "Unknown Column", "", None])
    assert mapping == {"Campaign Name": "campaignName", "Amount Spent (USD)": "amountSpentUSD"}


def test_no_recognized_headers_gives_empty_mapping():
    assert resolve_headers(["foo", "bar"]) == {}


def test_resolve_columns_keeps_positions():
    cols = resolve_columns(["Unknown", "Country", "Reach"])
    assert cols == [(1, "country"), (2, "reach")]


def test_unrecognized_headers_in_column_order():
    assert unrecognized_headers(["Country", " Extra ", "", "Other"]) == ["Extra", "Other"]


def test_packaged_table_is_read_only():
    table = get_alias_table()
    with pytest.raises(TypeError):
        table["new header"] = "country"  # type: ignore[index]


def test_custom_alias_table_from_yaml(tmp_path: Path):
    path = tmp_path / "aliases.yaml"
    path.write_text(
        dedent(
            """
            aliases:
              country:
                de: ["Land"]
              amountSpentUSD:
                de: ["Ausgegebener Betrag (USD)"]
            """
        ),
        encoding="utf-8",
    )
    table = load_alias_table(path)
    assert resolve_headers(["Land", "Ausgegebener Betrag (USD)", "Country"], table) == {
        "Land": "country",
        "Ausgegebener Betrag (USD)": "amountSpentUSD",
    }


def test_alias_mapping_to_two_fields_is_rejected(tmp_path: Path):
    path = tmp_path / "aliases.yaml"
    path.write_text(
        dedent(
            """
            aliases:
              country: {en: ["region"]}
              campaignName: {en: ["Region"]}
            """
        ),
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        load_alias_table(path)


def test_alias_for_unknown_field_is_rejected(tmp_path: Path):
    path = tmp_path / "aliases.yaml"
    path.write_text("aliases:\n  notAField: {en: ['x']}\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_alias_table(path)


def _declared_aliases():
    config = load_alias_config(DEFAULT_ALIAS_PATH)
    return [
        pytest.param(alias, canonical, id=f"{canonical}-{locale}-{alias}")
        for canonical, locales in config.aliases.items()
        for locale, names in locales.items()
        for alias in names
    ]


@pytest.mark.parametrize("alias, canonical", _declared_aliases())
def test_every_declared_alias_resolves_to_its_field(alias, canonical):
    for variant in (alias, alias.upper(), f"  {alias} ", alias.title()):
        assert resolve_headers([variant, "Unknown Column"]) == {variant: canonical}
