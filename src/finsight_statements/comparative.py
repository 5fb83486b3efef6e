# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Comparative (current vs. previous) statements.

A two-period specialization of ``multi_periods.align_periods`` that also
computes, per row, the delta and the percentage change between the
current and the previous period.

Balance sheets are compared section by section (assets, liabilities,
equity) so each section keeps its own aligned ordering.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .lines import ZERO_EPSILON, BalanceSheet, Line, display_amount
from .multi_periods import PivotRow, align_periods


def percent_change(current: float, previous: Optional[float]) -> Optional[float]:
    """
    Percentage change from ``previous`` to ``current``.

    Returns None when the previous value is missing, not finite, or
    within ZERO_EPSILON of zero: a prior period with nothing in it has no
    meaningful percentage change.
    """
    if previous is None or not math.isfinite(previous):
        return None
    if abs(previous) < ZERO_EPSILON:
        return None
    return (current - previous) / abs(previous) * 100


@dataclass(frozen=True)
class ComparativeRow:
    """
    One row of a comparative statement.

    ``current`` / ``previous`` are None when the row did not appear in that
    period; they render blank. For the delta, a missing side counts as 0.
    """

    key: str
    current: Optional[float]
    previous: Optional[float]
    kind: str = "detail"
    is_total: bool = False
    is_subheader: bool = False
    is_adjustment: bool = False

    @property
    def delta(self) -> float:
        return (self.current or 0.0) - (self.previous or 0.0)

    @property
    def percent_change(self) -> Optional[float]:
        return percent_change(self.current or 0.0, self.previous)

    def _as_line(self, amount: Optional[float]) -> Line:
        return Line(
            key=self.key,
            amount=amount,
            kind=self.kind,
            is_total=self.is_total,
            is_subheader=self.is_subheader,
            is_adjustment=self.is_adjustment,
        )

    def display_current(self) -> Optional[float]:
        return display_amount(self._as_line(self.current))

    def display_previous(self) -> Optional[float]:
        return display_amount(self._as_line(self.previous))


def _from_pivot_row(row: PivotRow) -> ComparativeRow:
    current, previous = row.values
    return ComparativeRow(
        key=row.key,
        current=current,
        previous=previous,
        kind=row.kind,
        is_total=row.is_total,
        is_subheader=row.is_subheader,
        is_adjustment=row.is_adjustment,
    )


def compare_lines(
    current: Sequence[Line],
    previous: Sequence[Line],
    match_on: str = "label",
) -> list[ComparativeRow]:
    """Align a current and a previous statement and compute deltas.

    Row order: current rows first, then rows only present in the previous
    period, in their previous-period order.
    """
    return [
        _from_pivot_row(row)
        for row in align_periods([current, previous], match_on=match_on)
    ]


def compare_balance_sheets(
    current: BalanceSheet,
    previous: BalanceSheet,
    match_on: str = "label",
) -> dict[str, list[ComparativeRow]]:
    """Compare two balance sheets section by section."""
    previous_sections = previous.sections()
    return {
        name: compare_lines(lines, previous_sections[name], match_on=match_on)
        for name, lines in current.sections().items()
    }


def comparative_to_dataframe(
    rows: Sequence[ComparativeRow],
    current_label: str = "current",
    previous_label: str = "previous",
) -> pd.DataFrame:
    """
    Convert comparative rows into a DataFrame for display or export.

    Columns: item, <current_label>, <previous_label>, delta, percent_change.
    Subheader rows carry no values at all.
    """
    columns = ["item", current_label, previous_label, "delta", "percent_change"]
    records = []
    for row in rows:
        if row.is_subheader:
            records.append([row.key, None, None, None, None])
            continue
        records.append(
            [
                row.key,
                row.display_current(),
                row.display_previous(),
                row.delta,
                row.percent_change,
            ]
        )
    if not records:
        return pd.DataFrame(columns=columns)
    # Built by position: both period labels may be the same.
    items = pd.Series([record[0] for record in records], name="item")
    values = pd.DataFrame([record[1:] for record in records])
    values = values.apply(pd.to_numeric, errors="coerce")
    df = pd.concat([items, values], axis=1)
    df.columns = columns
    return df
