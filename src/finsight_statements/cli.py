# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for FinSight Statements.

This module wires together the main building blocks of FinSight Statements:

- global configuration (reporting, projection defaults, display options),
- payload I/O (JSON responses of the ledger API saved to disk),
- statement builders (income statement, balance sheet, cash flow,
  trial balance),
- the multi-period and comparative engines,
- the projection engine and its override map,
- view helpers (console tables and CSV export rows).

The CLI is intentionally thin: it does not implement accounting or
financial logic itself. It orchestrates the underlying modules based on
command-line arguments and the configuration file.


Subcommands
-----------

    statement KIND PAYLOAD
        Render one statement.

    pivot KIND PAYLOAD [PAYLOAD ...] [--from DATE --to DATE]
        Multi-period pivot, one column per payload. With dates, columns are
        the calendar-month buckets of the range and the number of payloads
        must match; without dates, columns are named after the files.

    compare KIND CURRENT PREVIOUS
        Current vs. previous period with change and change %.

    project BASELINE [--granularity monthly|yearly] [--periods N] ...
        What-if projection from a baseline, with growth rates and optional
        overrides (``--overrides FILE`` and/or ``--set INDEX:METRIC=VALUE``).

KIND is one of: income-statement, balance-sheet, cash-flow, trial-balance.


Configuration and display
-------------------------

By default, the CLI reads ``finsight_statements.toml`` in the current
working directory when it exists (``--config PATH`` to override). The
display mode (``table``, ``csv``, ``both``) comes from the configuration
and can be overridden with ``--display-mode``. CSV files are written to
``--output-dir`` (default: the configured ``display.output_dir``).


Examples
--------

    python -m finsight_statements.cli statement income-statement is.json
    python -m finsight_statements.cli pivot cash-flow jan.json feb.json \\
        --from 2025-01-01 --to 2025-02-28
    python -m finsight_statements.cli compare balance-sheet bs_2025.json \\
        bs_2024.json
    python -m finsight_statements.cli project baseline.json --granularity \\
        yearly --revenue-growth 8 --set 2:sales=+10%
"""

import argparse
import logging
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .comparative import (
    compare_balance_sheets,
    compare_lines,
    comparative_to_dataframe,
)
from .config import DISPLAY_MODES, LOG_LEVELS, AppConfig, load_app_config
from .io import read_overrides, read_payload, write_overrides
from .logging_config import configure_logging
from .multi_periods import MATCH_MODES, pivot_payloads
from .periods import (
    COMPARE_MODES,
    PRESETS,
    Period,
    determine_period_from_args,
    month_buckets,
    months_in_range,
    previous_period,
)
from .projections import (
    GRANULARITIES,
    OVERRIDABLE_METRICS,
    Baseline,
    GrowthRates,
    OverrideMap,
    default_tab_id,
    period_key,
    project,
    projection_table,
)
from .statements import (
    STATEMENT_KINDS,
    build_cash_flow_sections,
    build_income_statement,
    build_statement_lines,
    build_trial_balance,
    flatten_cash_flow,
    normalize_balance_sheet,
    trial_balance_totals,
)
from .views import (
    Row,
    balance_sheet_rows,
    cash_flow_rows,
    comparative_rows,
    control_rows,
    pivot_rows,
    projection_rows,
    rows_to_dataframe,
    statement_rows,
    statement_to_dataframe,
    trial_balance_rows,
    trial_balance_to_dataframe,
    write_csv,
)

logger = logging.getLogger(__name__)

STATEMENT_TITLES: dict[str, str] = {
    "income-statement": "Income Statement",
    "balance-sheet": "Balance Sheet",
    "cash-flow": "Cash Flow Statement",
    "trial-balance": "Trial Balance",
}


def _add_period_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--preset",
        choices=list(PRESETS),
        help="Predefined reporting period (2m, quarter, half, year).",
    )
    parser.add_argument(
        "--from",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--to",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m finsight_statements.cli",
        description=(
            "FinSight Statements - Financial statement normalization & "
            "reporting engine. Normalizes ledger API payloads into income "
            "statements, balance sheets, cash flow statements and trial "
            "balances, pivots them across periods, compares periods and "
            "projects what-if scenarios."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of finsight_statements and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'finsight_statements.toml' in the current directory is used "
            "when present."
        ),
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory where CSV files are written when display mode includes "
        "'csv'.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=list(LOG_LEVELS),
        help="Override the logging.level setting from the configuration file.",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # statement
    statement = subparsers.add_parser("statement", help="Render one statement.")
    statement.add_argument("kind", choices=list(STATEMENT_KINDS))
    statement.add_argument("payload", help="JSON payload file.")
    _add_period_options(statement)

    # pivot
    pivot = subparsers.add_parser(
        "pivot", help="Multi-period pivot of one statement kind."
    )
    pivot.add_argument("kind", choices=list(STATEMENT_KINDS))
    pivot.add_argument("payloads", nargs="+", help="One JSON payload per period.")
    pivot.add_argument(
        "--from",
        dest="from_date",
        help="Start date (YYYY-MM-DD) of the monthly buckets.",
    )
    pivot.add_argument(
        "--to",
        dest="to_date",
        help="End date (YYYY-MM-DD) of the monthly buckets.",
    )
    pivot.add_argument(
        "--match-on",
        dest="match_on",
        choices=list(MATCH_MODES),
        help="Row matching mode (default from configuration).",
    )

    # compare
    compare = subparsers.add_parser(
        "compare", help="Compare a current and a previous statement."
    )
    compare.add_argument("kind", choices=list(STATEMENT_KINDS))
    compare.add_argument("current", help="JSON payload of the current period.")
    compare.add_argument("previous", help="JSON payload of the previous period.")
    compare.add_argument(
        "--compare-mode",
        dest="compare_mode",
        choices=[m for m in COMPARE_MODES if m != "none"],
        help="How the previous period relates to the current one (labels only).",
    )
    compare.add_argument(
        "--match-on",
        dest="match_on",
        choices=list(MATCH_MODES),
        help="Row matching mode (default from configuration).",
    )
    _add_period_options(compare)

    # project
    proj = subparsers.add_parser("project", help="What-if projection.")
    proj.add_argument(
        "baseline", help="JSON file with {sales, costOfGoods, totalExpenses}."
    )
    proj.add_argument(
        "--granularity",
        choices=list(GRANULARITIES),
        default="monthly",
        help="Monthly or yearly periods (default: monthly).",
    )
    proj.add_argument(
        "--periods",
        type=int,
        help="Number of periods (default from configuration horizons).",
    )
    proj.add_argument(
        "--from",
        dest="from_date",
        help="Custom range start (YYYY-MM-DD); implies monthly periods.",
    )
    proj.add_argument(
        "--to",
        dest="to_date",
        help="Custom range end (YYYY-MM-DD); implies monthly periods.",
    )
    proj.add_argument("--revenue-growth", dest="revenue_growth", type=float)
    proj.add_argument("--cost-growth", dest="cost_growth", type=float)
    proj.add_argument("--expense-growth", dest="expense_growth", type=float)
    proj.add_argument(
        "--overrides",
        dest="overrides_path",
        help="JSON file with saved overrides.",
    )
    proj.add_argument(
        "--set",
        dest="edits",
        action="append",
        default=[],
        metavar="INDEX:METRIC=VALUE",
        help=(
            "Override one cell, e.g. '3:sales=2000' or '3:costs=+5%%'. "
            "An empty VALUE clears the cell. Can be repeated."
        ),
    )
    proj.add_argument(
        "--save-overrides",
        dest="save_overrides",
        help="Write the resulting override map to this JSON file.",
    )

    return ap


def _parse_date(parser: argparse.ArgumentParser, raw: str, option: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        parser.error(f"Invalid date for {option}: {raw!r}, expected YYYY-MM-DD.")
        raise  # pragma: no cover - parser.error exits


def _load(parser: argparse.ArgumentParser, path: str):
    try:
        return read_payload(path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))


def _period_from_args(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> Period:
    try:
        return determine_period_from_args(args, config.reporting.default_preset)
    except ValueError as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits


class _Output:
    """Renders titled DataFrames to stdout and export rows to CSV files."""

    def __init__(self, mode: str, output_dir: Path) -> None:
        self.mode = mode
        self.output_dir = output_dir
        self.timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

    def table(self, title: str, df: pd.DataFrame) -> None:
        if self.mode not in {"table", "both"}:
            return
        print()
        print(f"=== {title} ===")
        if df.empty:
            print("No data available.")
        else:
            print(df.to_string(index=False))

    def csv(self, name: str, rows: list[Row]) -> None:
        if self.mode not in {"csv", "both"}:
            return
        path = write_csv(rows, self.output_dir / f"{name}_{self.timestamp}.csv")
        print(f"Wrote {path} ({len(rows)} rows)")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _handle_statement(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: AppConfig,
    out: _Output,
) -> None:
    payload = _load(parser, args.payload)
    period = _period_from_args(parser, args, config)
    currency = config.reporting.currency
    title = STATEMENT_TITLES[args.kind]
    name = args.kind.replace("-", "_")

    if args.kind == "income-statement":
        lines = build_income_statement(payload)
        out.table(title, statement_to_dataframe(lines))
        out.csv(name, statement_rows(lines, title, period, currency))

    elif args.kind == "balance-sheet":
        sheet = normalize_balance_sheet(payload)
        out.table(f"{title} - Assets", statement_to_dataframe(sheet.assets))
        out.table(
            f"{title} - Equity and Liabilities",
            statement_to_dataframe([*sheet.liabilities, *sheet.equity]),
        )
        out.table(f"{title} - Control", rows_to_dataframe(control_rows(sheet.totals)))
        if not sheet.totals.is_balanced:
            diff = sheet.totals.diff
            print(f"Warning: balance sheet is out of balance by {diff:.2f}.")
        out.csv(name, balance_sheet_rows(sheet, period.end, currency))

    elif args.kind == "cash-flow":
        sections = build_cash_flow_sections(payload)
        out.table(title, statement_to_dataframe(flatten_cash_flow(sections)))
        out.csv(name, cash_flow_rows(sections, period, currency))

    else:
        accounts = build_trial_balance(payload)
        out.table(title, trial_balance_to_dataframe(accounts))
        if out.mode in {"table", "both"} and accounts:
            total_debit, total_credit = trial_balance_totals(accounts)
            print(f"TOTALS: debit {total_debit:.2f} / credit {total_credit:.2f}")
        out.csv(name, trial_balance_rows(accounts, period.end, currency))


def _handle_pivot(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: AppConfig,
    out: _Output,
) -> None:
    if bool(args.from_date) != bool(args.to_date):
        parser.error("pivot requires both --from and --to, or neither.")

    if args.from_date:
        start = _parse_date(parser, args.from_date, "--from")
        end = _parse_date(parser, args.to_date, "--to")
        try:
            labels = [b.label for b in month_buckets(start, end)]
        except ValueError as exc:
            parser.error(str(exc))
        if len(labels) != len(args.payloads):
            parser.error(
                f"{len(labels)} monthly periods between {start} and {end}, "
                f"but {len(args.payloads)} payload files were given."
            )
    else:
        labels = [Path(p).stem for p in args.payloads]

    payloads = [_load(parser, p) for p in args.payloads]
    match_on = args.match_on or config.reporting.match_on
    pivots = pivot_payloads(args.kind, labels, payloads, match_on=match_on)

    title = STATEMENT_TITLES[args.kind]
    name = f"{args.kind.replace('-', '_')}_pivot"
    rows: list[Row] = []
    for section, pivot in pivots.items():
        section_title = title if section == "lines" else f"{title} - {section.title()}"
        out.table(section_title, pivot.to_dataframe())
        rows.extend(pivot_rows(pivot, section_title))
    out.csv(name, rows)


def _comparison_labels(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> tuple[str, str]:
    mode = args.compare_mode or config.reporting.compare_mode
    if mode == "none":
        return "Current", "Previous"
    period = _period_from_args(parser, args, config)
    prev = previous_period(period, mode)
    return period.label, prev.label if prev else "Previous"


def _handle_compare(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: AppConfig,
    out: _Output,
) -> None:
    current = _load(parser, args.current)
    previous = _load(parser, args.previous)
    match_on = args.match_on or config.reporting.match_on
    current_label, previous_label = _comparison_labels(parser, args, config)

    title = f"{STATEMENT_TITLES[args.kind]} - Comparative"
    name = f"{args.kind.replace('-', '_')}_comparative"

    if args.kind == "balance-sheet":
        sections = compare_balance_sheets(
            normalize_balance_sheet(current),
            normalize_balance_sheet(previous),
            match_on=match_on,
        )
    else:
        sections = {
            "lines": compare_lines(
                build_statement_lines(args.kind, current),
                build_statement_lines(args.kind, previous),
                match_on=match_on,
            )
        }

    rows: list[Row] = []
    for section, compared in sections.items():
        section_title = title if section == "lines" else f"{title} - {section.title()}"
        out.table(
            section_title,
            comparative_to_dataframe(compared, current_label, previous_label),
        )
        rows.extend(
            comparative_rows(compared, section_title, current_label, previous_label)
        )
    out.csv(name, rows)


def _parse_edit(parser: argparse.ArgumentParser, raw: str) -> tuple[int, str, str]:
    """Split 'INDEX:METRIC=VALUE' into its parts."""
    target, sep, value = raw.partition("=")
    index_raw, colon, metric = target.partition(":")
    if not sep or not colon:
        parser.error(f"Invalid --set value {raw!r}, expected INDEX:METRIC=VALUE.")
    try:
        index = int(index_raw)
    except ValueError:
        parser.error(f"Invalid period index in --set {raw!r}.")
        raise  # pragma: no cover - parser.error exits
    metric = metric.strip()
    if metric not in OVERRIDABLE_METRICS:
        parser.error(
            f"Invalid metric {metric!r} in --set. Expected one of: "
            + ", ".join(OVERRIDABLE_METRICS)
        )
    return index, metric, value


def _projection_horizon(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> tuple[str, int, str]:
    """Return (granularity, number of periods, override tab id)."""
    if args.from_date or args.to_date:
        if not (args.from_date and args.to_date):
            parser.error("project requires both --from and --to, or neither.")
        start = _parse_date(parser, args.from_date, "--from")
        end = _parse_date(parser, args.to_date, "--to")
        if end < start:
            parser.error("Custom range end date cannot be before start date.")
        return "monthly", months_in_range(start, end), "custom"

    granularity = args.granularity
    if args.periods is not None:
        if args.periods < 1:
            parser.error("--periods must be a positive integer.")
        periods = args.periods
    elif granularity == "yearly":
        periods = config.projections.horizon_years
    else:
        periods = config.projections.horizon_months
    return granularity, periods, default_tab_id(periods, granularity)


def _handle_project(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: AppConfig,
    out: _Output,
) -> None:
    baseline = Baseline.from_payload(_load(parser, args.baseline))
    if baseline is None:
        parser.error(f"Invalid baseline payload in {args.baseline}.")

    defaults = config.projections
    revenue = args.revenue_growth
    cost = args.cost_growth
    expenses = args.expense_growth
    try:
        rates = GrowthRates(
            revenue=defaults.revenue_growth if revenue is None else revenue,
            cost=defaults.cost_growth if cost is None else cost,
            expenses=defaults.expense_growth if expenses is None else expenses,
        )
    except ValueError as exc:
        parser.error(str(exc))
    granularity, periods, tab_id = _projection_horizon(parser, args, config)

    overrides = OverrideMap()
    if args.overrides_path:
        try:
            overrides = read_overrides(args.overrides_path)
        except (FileNotFoundError, ValueError) as exc:
            parser.error(str(exc))

    for raw in args.edits:
        index, metric, value = _parse_edit(parser, raw)
        if not 1 <= index <= periods:
            parser.error(f"Period index {index} in --set is outside 1..{periods}.")
        if not overrides.apply_edit(period_key(tab_id, index), metric, value):
            parser.error(f"Invalid override value {value!r} in --set {raw!r}.")

    points = project(
        baseline,
        rates,
        periods,
        granularity=granularity,
        overrides=overrides,
        tab_id=tab_id,
    )

    unit = "years" if granularity == "yearly" else "months"
    title = f"Projections ({periods} {unit})"
    out.table(title, projection_table(points))
    out.csv("projections", projection_rows(points, title))

    if args.save_overrides:
        path = write_overrides(overrides, args.save_overrides)
        print(f"Wrote {path} ({len(overrides)} overridden periods)")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the FinSight Statements CLI.

    This function parses command-line arguments, loads the configuration,
    sets up logging, reads the JSON payloads given on the command line and
    dispatches to the selected subcommand, which renders its result as
    console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"finsight_statements version {__version__}")
        return

    if not args.command:
        parser.error("a command is required (statement, pivot, compare, project).")

    # 1) Load application configuration
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    # 2) Logging: CLI override, then configuration
    configure_logging(args.log_level or config.logging.level)

    # 3) Resolve display mode and output directory
    display_mode = args.display_mode or config.display.mode
    output_dir = Path(args.output_dir) if args.output_dir else config.display.output_dir
    out = _Output(display_mode, output_dir)

    logger.debug("Running %s (display mode: %s)", args.command, display_mode)

    handlers = {
        "statement": _handle_statement,
        "pivot": _handle_pivot,
        "compare": _handle_compare,
        "project": _handle_project,
    }
    handlers[args.command](parser, args, config, out)


if __name__ == "__main__":
    main()
