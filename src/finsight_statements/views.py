# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View and export utilities for FinSight Statements.

This module turns normalized statements into "views" ready for display or
CSV export. It never computes accounting figures itself: it only decides
which rows are shown and how their amounts are rendered.

Two families of helpers live here:

- ``*_to_dataframe`` helpers return pandas DataFrames with an ``item``
  column and numeric amount columns, for console tables,
- ``*_rows`` helpers return export rows (lists of cells) mirroring the
  downloadable CSV layout: a title row, a period row, a blank row, then a
  column header row and the statement body.

Rendering rules shared by every view:

- subheader rows carry a label only,
- zero-ish amounts are blank except on total rows (``always_show``),
- amounts are signed and rounded to two decimals.

``rows_to_dataframe()`` and ``write_csv()`` convert export rows to a
DataFrame and write them with pandas.
"""

import math
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .comparative import ComparativeRow
from .lines import BalanceSheet, Line, Totals, is_zeroish, should_render
from .multi_periods import Pivot
from .periods import Period
from .projections import METRIC_LABELS, ProjectionPoint
from .statements import CashFlowSection, TrialBalanceRow, trial_balance_totals

Cell = Union[str, float]
Row = list[Cell]


def export_amount(value: Any, always_show: bool = False) -> Cell:
    """Render an amount cell: a number rounded to 2 decimals, or "".

    Missing and non-finite values are blank. Zero-ish values are blank
    unless ``always_show`` is set (totals).
    """
    if value is None or isinstance(value, bool):
        return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    if not math.isfinite(number):
        return ""
    if not always_show and is_zeroish(number):
        return ""
    return round(number, 2)


def _line_cell(line: Line) -> Cell:
    if line.is_subheader:
        return ""
    return export_amount(line.amount, always_show=line.is_total)


def _period_text(period: Optional[Period]) -> str:
    if period is None:
        return ""
    return f"For the period {period.start.isoformat()} to {period.end.isoformat()}"


def _as_of_text(as_of: Optional[date]) -> str:
    if as_of is None:
        return ""
    return f"As of {as_of.isoformat()}"


def _preamble(title: str, subtitle: str) -> list[Row]:
    rows: list[Row] = [[title]]
    if subtitle:
        rows.append([subtitle])
    rows.append([""])
    return rows


def _amount_header(currency: str) -> str:
    return f"Amount ({currency})" if currency else "Amount"


# ---------------------------------------------------------------------------
# Export rows
# ---------------------------------------------------------------------------


def statement_rows(
    lines: Sequence[Line],
    title: str,
    period: Optional[Period] = None,
    currency: str = "",
) -> list[Row]:
    """Export rows for an income statement (or any flat Line list)."""
    rows = _preamble(title, _period_text(period))
    rows.append(["Item", _amount_header(currency)])
    for line in lines:
        if should_render(line):
            rows.append([line.key, _line_cell(line)])
    return rows


def balance_sheet_rows(
    sheet: BalanceSheet,
    as_of: Optional[date] = None,
    currency: str = "",
) -> list[Row]:
    """
    Export rows for a balance sheet.

    Layout: an ASSETS block, an EQUITY AND LIABILITIES block (liabilities
    then equity), then the control totals. When the sheet does not
    balance, an OUT OF BALANCE row carries the difference.
    """
    rows = _preamble("Balance Sheet", _as_of_text(as_of))
    amount_header = _amount_header(currency)

    rows.append(["ASSETS"])
    rows.append(["Item", amount_header])
    rows.extend([li.key, _line_cell(li)] for li in sheet.assets if should_render(li))

    rows.append([""])
    rows.append(["EQUITY AND LIABILITIES"])
    rows.append(["Item", amount_header])
    for li in [*sheet.liabilities, *sheet.equity]:
        if should_render(li):
            rows.append([li.key, _line_cell(li)])

    rows.append([""])
    rows.extend(control_rows(sheet.totals))
    return rows


def control_rows(totals: Totals) -> list[Row]:
    """Control total rows of a balance sheet (always shown)."""
    rows: list[Row] = [
        [
            "TOTAL ASSETS (control)",
            export_amount(totals.total_assets, always_show=True),
        ],
        [
            "TOTAL EQUITY AND LIABILITIES (control)",
            export_amount(totals.total_equity_and_liabilities, always_show=True),
        ],
    ]
    if not totals.is_balanced:
        rows.append(["OUT OF BALANCE", export_amount(totals.diff, always_show=True)])
    return rows


def cash_flow_rows(
    sections: Sequence[CashFlowSection],
    period: Optional[Period] = None,
    currency: str = "",
) -> list[Row]:
    """Export rows for a cash flow statement.

    Each bucket gets its category row, a column header, its items and the
    "Net cash from/used in" subtotal. The terminal net-change block is a
    category row followed by its total.
    """
    rows = _preamble("Cash Flow Statement", _period_text(period))
    for section in sections:
        rows.append([section.category])
        if section.show_subtotal:
            rows.append(["Item", _amount_header(currency)])
            rows.extend([name, export_amount(amount)] for name, amount in section.items)
            rows.append(
                [
                    section.subtotal_label,
                    export_amount(section.total, always_show=True),
                ]
            )
        else:
            rows.append(["", export_amount(section.total, always_show=True)])
        rows.append([""])
    return rows


def trial_balance_rows(
    accounts: Sequence[TrialBalanceRow],
    as_of: Optional[date] = None,
    currency: str = "",
) -> list[Row]:
    """Export rows for a trial balance: debit/credit columns and TOTALS."""
    rows = _preamble("Trial Balance", _as_of_text(as_of))
    suffix = f" ({currency})" if currency else ""
    rows.append(["Account", f"Debit{suffix}", f"Credit{suffix}"])
    for account in accounts:
        if is_zeroish(account.debit) and is_zeroish(account.credit):
            continue
        rows.append(
            [
                account.label,
                export_amount(account.debit),
                export_amount(account.credit),
            ]
        )
    total_debit, total_credit = trial_balance_totals(accounts)
    rows.append(
        [
            "TOTALS",
            export_amount(total_debit, always_show=True),
            export_amount(total_credit, always_show=True),
        ]
    )
    return rows


def pivot_rows(pivot: Pivot, title: str, subtitle: str = "") -> list[Row]:
    """Export rows for a multi-period pivot: one amount column per period."""
    rows = _preamble(title, subtitle)
    rows.append(["Item", *pivot.periods])
    for row in pivot.rows:
        rows.append(
            [
                row.key,
                *(export_amount(v, always_show=True) for v in row.display_values()),
            ]
        )
    return rows


def comparative_rows(
    rows_in: Sequence[ComparativeRow],
    title: str,
    current_label: str = "Current",
    previous_label: str = "Previous",
) -> list[Row]:
    """Export rows for a comparative statement.

    Columns: item, current, previous, change, change %.
    """
    rows = _preamble(title, "")
    rows.append(["Item", current_label, previous_label, "Change", "Change %"])
    for row in rows_in:
        if row.is_subheader:
            rows.append([row.key, "", "", "", ""])
            continue
        rows.append(
            [
                row.key,
                export_amount(row.display_current(), always_show=True),
                export_amount(row.display_previous(), always_show=True),
                export_amount(row.delta, always_show=row.is_total),
                export_amount(row.percent_change, always_show=True),
            ]
        )
    return rows


def projection_rows(
    points: Sequence[ProjectionPoint],
    title: str = "Projections",
) -> list[Row]:
    """Export rows for a projection: metrics as rows, periods as columns."""
    rows = _preamble(title, "")
    if not points:
        rows.append(["No data available."])
        return rows
    rows.append(["Metric", *(p.period for p in points)])
    for metric, label in METRIC_LABELS.items():
        rows.append(
            [label, *(export_amount(p.metric(metric), True) for p in points)]
        )
    return rows


# ---------------------------------------------------------------------------
# DataFrames and CSV
# ---------------------------------------------------------------------------


def statement_to_dataframe(lines: Sequence[Line]) -> pd.DataFrame:
    """Return the rendered rows of a statement as ``item`` / ``amount``."""
    records = []
    for line in lines:
        if not should_render(line):
            continue
        cell = _line_cell(line)
        records.append([line.key, None if cell == "" else cell])
    df = pd.DataFrame(records, columns=["item", "amount"])
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    return df


def trial_balance_to_dataframe(accounts: Sequence[TrialBalanceRow]) -> pd.DataFrame:
    """Trial balance as ``account`` / ``debit`` / ``credit`` / ``net`` columns."""
    records = [
        [a.label, a.debit, a.credit, a.net]
        for a in accounts
        if not (is_zeroish(a.debit) and is_zeroish(a.credit))
    ]
    return pd.DataFrame(records, columns=["account", "debit", "credit", "net"])


def rows_to_dataframe(rows: Sequence[Sequence[Cell]]) -> pd.DataFrame:
    """Pad export rows to a common width and wrap them in a DataFrame."""
    width = max((len(r) for r in rows), default=0)
    padded = [list(r) + [""] * (width - len(r)) for r in rows]
    return pd.DataFrame(padded)


def write_csv(rows: Sequence[Sequence[Cell]], path: Path) -> Path:
    """Write export rows to ``path`` as CSV (no header, no index)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows_to_dataframe(rows).to_csv(path, header=False, index=False)
    return path
