from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from adlens.errors import EmptyHeaderError, FileReadError, NoRecognizedColumnsError, NoValidRecordsError
from adlens.session import AnalyzerSession


HEADER = ["Reporting starts", "Campaign Name", "Country", "Amount Spent (USD)", "Conversion value"]
ROWS = [
    ["2024-01-01", "Spring", "DE", "100", "300"],
    ["2024-01-01", "Spring", "FR", "50", "50"],
    ["2024-01-03", "Summer", "DE", "20", "10"],
]


def _loaded_session() -> AnalyzerSession:
    session = AnalyzerSession(processing_date="2024-06-30")
    outcome = session.load_grid(HEADER, ROWS, source_name="first.csv")
    assert outcome.ok
    return session


def test_successful_load_sets_dataset_and_default_filters():
    session = _loaded_session()
    assert len(session.records) == 3
    assert session.last_error is None
    assert session.source_name == "first.csv"
    assert session.filters.start == pd.Timestamp("2024-01-01")
    assert session.filters.end == pd.Timestamp("2024-01-03")
    assert session.facets.countries == ("DE", "FR")
    assert len(session.filtered_records()) == 3


def test_failed_load_keeps_previous_dataset():
    session = _loaded_session()
    session.set_filters(countries=["DE"])
    before = session.records

    outcome = session.load_grid(["foo", "bar"], [["1", "2"]], source_name="bad.csv")
    assert not outcome.ok
    assert outcome.error == NoRecognizedColumnsError.user_message
    assert session.last_error == NoRecognizedColumnsError.user_message
    assert session.records is before
    assert session.source_name == "first.csv"
    assert session.filters.countries == ("DE",)


def test_each_parse_failure_surfaces_its_message():
    session = _loaded_session()
    assert session.load_grid([], []).error == EmptyHeaderError.user_message
    assert session.load_grid(["Country"], [[""]]).error == NoValidRecordsError.user_message
    assert len(session.records) == 3


def test_next_successful_load_clears_error():
    session = _loaded_session()
    session.load_grid([], [])
    assert session.last_error is not None
    outcome = session.load_grid(HEADER, ROWS[:1], source_name="second.csv")
    assert outcome.ok
    assert session.last_error is None
    assert len(session.records) == 1


def test_load_file_reader_errors(tmp_path: Path):
    session = _loaded_session()
    outcome = session.load_file(tmp_path / "missing.xlsx")
    assert not outcome.ok
    assert session.last_error == FileReadError.user_message
    assert len(session.records) == 3


def test_load_file_csv(tmp_path: Path):
    path = tmp_path / "export.csv"
    path.write_text("\n".join(",".join(r) for r in [HEADER] + ROWS) + "\n", encoding="utf-8")
    session = AnalyzerSession(processing_date="2024-06-30")
    outcome = session.load_file(path)
    assert outcome.ok
    assert outcome.record_count == 3
    assert outcome.source_name == "export.csv"


def test_filters_drive_dashboard():
    session = _loaded_session()
    session.set_filters(start="2024-01-01", end="2024-01-01", countries=["DE", "FR"])
    dashboard = session.dashboard(top_n=5)
    assert dashboard.record_count == 2
    assert dashboard.meta == {"source": "first.csv", "total_records": 3}
    roas = next(c for c in dashboard.time_series if c.title == "ROAS Over Time")
    assert len(roas.points) == 1
    assert roas.points[0]["calculatedROAS"] == pytest.approx(350.0 / 150.0)

    session.reset_filters()
    assert session.dashboard().record_count == 3
