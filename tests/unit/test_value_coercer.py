from __future__ import annotations

import math
from datetime import date, datetime

import pandas as pd
import pytest

from adlens.schema import FieldKind
from adlens.value_coercer import (
    coerce_field,
    coerce_value,
    excel_serial_to_timestamp,
    is_empty,
    parse_date,
    parse_number,
    parse_percentage,
    parse_text,
)


class TestNumbers:
    def test_thousands_separators(self):
        assert parse_number("1,234.50") == pytest.approx(1234.5)
        assert parse_number("1,000,000") == 1_000_000.0

    def test_native_numbers_pass_through(self):
        assert parse_number(42) == 42.0
        assert parse_number(3.25) == 3.25

    def test_leading_number_prefix(self):
        assert parse_number("12.5 USD") == 12.5
        assert parse_number("-3") == -3.0

    def test_garbage_and_empty_become_zero(self):
        assert parse_number("n/a") == 0.0
        assert parse_number("") == 0.0
        assert parse_number(None) == 0.0
        assert parse_number(float("nan")) == 0.0

    def test_non_finite_saturates(self):
        assert parse_number(float("inf")) == 0.0
        assert parse_number("1e999") == 0.0


class TestPercentages:
    def test_percent_suffix_divides_by_100(self):
        assert parse_percentage("5.5%") == pytest.approx(0.055)
        assert parse_percentage("1,250%") == pytest.approx(12.5)

    def test_plain_values_are_numbers(self):
        assert parse_percentage("0.42") == pytest.approx(0.42)
        assert parse_percentage(0.1) == pytest.approx(0.1)

    def test_unparseable_is_zero(self):
        assert parse_percentage("abc%") == 0.0
        assert parse_percentage(None) == 0.0


class TestDates:
    def test_iso_string(self):
        assert parse_date("2024-03-05") == pd.Timestamp("2024-03-05")

    def test_native_date_and_datetime(self):
        assert parse_date(date(2024, 1, 2)) == pd.Timestamp("2024-01-02")
        assert parse_date(datetime(2024, 1, 2, 13, 30)) == pd.Timestamp("2024-01-02 13:30")

    def test_excel_serial(self):
        assert parse_date(45292) == pd.Timestamp("2024-01-01")
        assert parse_date(45292.5) == pd.Timestamp("2024-01-01 12:00")

    def test_excel_serials_around_phantom_leap_day(self):
        assert excel_serial_to_timestamp(1) == pd.Timestamp("1900-01-01")
        assert excel_serial_to_timestamp(59) == pd.Timestamp("1900-02-28")
        assert excel_serial_to_timestamp(61) == pd.Timestamp("1900-03-01")

    def test_non_positive_serial_is_unset(self):
        assert pd.isna(parse_date(0))
        assert pd.isna(parse_date(-5))

    def test_invalid_strings_are_unset(self):
        assert pd.isna(parse_date("not a date"))
        assert pd.isna(parse_date(""))
        assert pd.isna(parse_date(None))

    def test_timezone_is_dropped(self):
        ts = parse_date("2024-03-05T10:00:00+02:00")
        assert ts.tzinfo is None


class TestText:
    def test_strips_and_stringifies(self):
        assert parse_text("  Brand Awareness ") == "Brand Awareness"
        assert parse_text(12.0) == "12"
        assert parse_text(7) == "7"
        assert parse_text(None) == ""

    def test_dates_render_iso(self):
        assert parse_text(date(2024, 5, 1)) == "2024-05-01"


def test_is_empty():
    assert is_empty(None)
    assert is_empty("   ")
    assert is_empty(float("nan"))
    assert is_empty(pd.NaT)
    assert not is_empty(0)
    assert not is_empty("x")


@pytest.mark.parametrize(
    "kind, expected",
    [
        (FieldKind.NUMBER, 0.0),
        (FieldKind.PERCENTAGE, 0.0),
        (FieldKind.TEXT, ""),
    ],
)
def test_coerce_value_empty_per_kind(kind, expected):
    assert coerce_value(None, kind) == expected


def test_coerce_value_never_raises_on_odd_input():
    class Weird:
        def __str__(self):
            raise ValueError("boom")

    assert coerce_value(Weird(), FieldKind.NUMBER) == 0.0
    assert pd.isna(coerce_value(Weird(), FieldKind.DATE))


def test_coerce_field_uses_schema_kind():
    assert coerce_field("1,500", "impressions") == 1500.0
    assert coerce_field("2%", "ctrAll") == pytest.approx(0.02)
    assert coerce_field(" DE ", "country") == "DE"
    with pytest.raises(ValueError):
        coerce_field("1", "notAField")


def test_results_are_finite():
    for raw in ["1e308", "1e309", "-1e309", "nan", "inf"]:
        assert math.isfinite(parse_number(raw))


def test_serials_stored_as_text_are_dates():
    assert coerce_value("45292", FieldKind.DATE) == pd.Timestamp("2024-01-01")
    assert coerce_value(" 45292.5 ", FieldKind.DATE) == pd.Timestamp("2024-01-01 12:00")
    assert coerce_value("2024-01-01", FieldKind.DATE) == pd.Timestamp("2024-01-01")
