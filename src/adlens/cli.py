"""Command-line entry point: ``adlens report`` and ``adlens columns``."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .aggregation import load_derived_metric_table
from .common.config_validator import AppConfig, load_app_config
from .dashboard_utils import write_dashboard_json, write_dashboard_workbook
from .errors import ConfigError, FileReadError, NoRecognizedColumnsError
from .header_resolver import load_alias_table, resolve_headers, unrecognized_headers
from .ingestion_utils import read_grid
from .logging_utils import get_logger, log_error, log_system_event, log_warning, timed_step
from .session import AnalyzerSession


EXIT_OK = 0
EXIT_FAILURE = 2

OUTPUT_FORMATS = ("json", "xlsx")


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser for the adlens CLI."""

    parser = argparse.ArgumentParser(prog="adlens", description="Ad performance export analyzer")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Parse an export and write the dashboard series")
    report.add_argument("input", help="CSV/TSV/XLSX export to analyze")
    report.add_argument("--config", default=None, help="Optional YAML configuration file")
    report.add_argument("--output", default=None, help="Output path (default: <input>_dashboard.<format>)")
    report.add_argument("--format", choices=OUTPUT_FORMATS, default=None, help="Output format (json or xlsx)")
    report.add_argument("--start", default=None, help="First reporting day to include (YYYY-MM-DD)")
    report.add_argument("--end", default=None, help="Last reporting day to include (YYYY-MM-DD)")
    report.add_argument("--country", action="append", default=[], help="Keep only this country (repeatable)")
    report.add_argument("--campaign", action="append", default=[], help="Keep only this campaign (repeatable)")
    report.add_argument("--top-n", type=int, default=None, help="Categories kept per categorical chart")

    columns = sub.add_parser("columns", help="Show how the export headers are recognized")
    columns.add_argument("input", help="CSV/TSV/XLSX export to inspect")
    columns.add_argument("--config", default=None, help="Optional YAML configuration file")
    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return EXIT_FAILURE


def _resolve_format(args: argparse.Namespace, config: AppConfig) -> str:
    if args.format:
        return args.format
    if args.output:
        suffix = Path(args.output).suffix.lower().lstrip(".")
        if suffix in OUTPUT_FORMATS:
            return suffix
    return config.output_format


def _default_output(input_path: Path, fmt: str) -> Path:
    return input_path.with_name(f"{input_path.stem}_dashboard.{fmt}")


def run_report(args: argparse.Namespace, config: AppConfig) -> int:
    logger = get_logger("adlens", config.logging)
    input_path = Path(args.input)
    alias_table = load_alias_table(config.header_aliases) if config.header_aliases else None
    derived_table = load_derived_metric_table(config.derived_metrics) if config.derived_metrics else None
    session = AnalyzerSession(alias_table=alias_table, derived_table=derived_table)
    timings: dict = {}

    with timed_step("load", timings, logger):
        outcome = session.load_file(input_path)
    if not outcome.ok:
        log_error(logger, f"Could not load {input_path.name}: {outcome.error}")
        return _fail(outcome.error or "The file could not be parsed.")

    result = outcome.result
    if result is not None and result.inferred_date_count:
        log_warning(
            logger,
            f"{result.inferred_date_count} rows had an unreadable reporting start and were grouped under the processing date",
        )

    try:
        session.set_filters(start=args.start, end=args.end, countries=args.country, campaigns=args.campaign)
    except ValueError as exc:
        return _fail(f"Invalid filter: {exc}")

    top_n = args.top_n if args.top_n is not None else config.dashboard.top_n
    if top_n < 1:
        return _fail("--top-n must be at least 1")

    fmt = _resolve_format(args, config)
    out_path = Path(args.output) if args.output else _default_output(input_path, fmt)
    with timed_step("dashboard", timings, logger):
        dashboard = session.dashboard(top_n=top_n)
        if fmt == "xlsx":
            write_dashboard_workbook(dashboard, out_path)
        else:
            write_dashboard_json(dashboard, out_path)

    log_system_event(logger, f"Report for {input_path.name}: {dashboard.record_count} records -> {out_path}")
    print(f"{dashboard.record_count} of {len(session.records)} records -> {out_path}")
    return EXIT_OK


def run_columns(args: argparse.Namespace, config: AppConfig) -> int:
    alias_table = load_alias_table(config.header_aliases) if config.header_aliases else None
    try:
        header, _ = read_grid(args.input)
    except FileReadError as exc:
        return _fail(exc.user_message)

    recognized = resolve_headers(header, alias_table)
    for raw, canonical in recognized.items():
        print(f"{raw} -> {canonical}")
    for raw in unrecognized_headers(header, alias_table):
        print(f"{raw} -> (ignored)")
    if not recognized:
        return _fail(NoRecognizedColumnsError.user_message)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit code."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = load_app_config(args.config)
        if args.command == "report":
            return run_report(args, config)
        return run_columns(args, config)
    except ConfigError as exc:
        return _fail(str(exc))


if __name__ == "__main__":  # pragma: no cover - CLI guard
    sys.exit(main())
