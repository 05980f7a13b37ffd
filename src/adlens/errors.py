"""Exceptions raised while loading and parsing ad exports."""
from __future__ import annotations


class ParseError(ValueError):
    """A parse attempt failed; no partial record set is produced."""

    code = "parse_error"
    user_message = "The file could not be parsed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(detail or self.user_message)


class EmptyHeaderError(ParseError):
    code = "empty_header"
    user_message = "Could not read headers from the file. The first row must contain column names."


class NoRecognizedColumnsError(ParseError):
    code = "no_recognized_columns"
    user_message = (
        "No recognizable ad export columns found. Required columns like 'Reporting Starts', "
        "'Amount Spent (USD)', 'Country', 'Campaign Name' might be missing or misnamed."
    )


class NoValidRecordsError(ParseError):
    code = "no_valid_records"
    user_message = (
        "Data is missing critical fields (like date, spend, country, or campaign) after parsing, "
        "or the file has no data rows."
    )


class FileReadError(ValueError):
    """The input file could not be turned into a grid of cells."""

    user_message = "Failed to read the file. Ensure it is a valid Excel (xlsx, xls) or CSV file."


class ConfigError(ValueError):
    """A configuration table failed validation."""
