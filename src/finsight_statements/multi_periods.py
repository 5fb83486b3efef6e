# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-period alignment of statements.

This module merges N independently-built statements (one ``Line`` list per
period) into a single pivot table keyed by line identity.

Overview
--------
The core function, ``align_periods()``, walks the periods in order:

1. Period 0's rows establish the base order.
2. Each subsequent period appends the keys not seen so far, in that
   period's own order.

Rows that only appear in later periods are therefore never lost, and the
common case (same rows every period) keeps a stable, predictable order.

Each pivot row carries one value per period: the row's amount in that
period, or ``None`` when the row did not appear in that period's statement.
Flags (kind, is_total, is_subheader, is_adjustment) are taken from the
earliest period that defines the key.

Matching
--------
By default rows are joined on their display label. With
``match_on="id"`` rows are joined on the backend-assigned ``line_id``
and fall back to the label when no id is present. Label matching is
fragile by nature: a cosmetic relabeling between periods produces two
rows instead of one.

Rows computed by the builders carry no ``line_id``, so they always match
on their label, even with ``match_on="id"``. Sign-dependent labels
("NET PROFIT" / "NET LOSS for the period", "Net cash from" / "Net cash
used in ...", "Net Profit" / "Net Loss for Period") hold the absolute
amount. A profit period next to a loss period therefore gives two
one-sided rows rather than one row with a meaningless delta.

Higher-level helpers
--------------------
- ``build_pivot()`` attaches period labels to the aligned rows.
- ``pivot_payloads()`` runs a statement builder for every payload and
  pivots the results (balance sheets are pivoted per section).
- ``build_multi_period()`` does the same with columns labelled by Period
  buckets.
- ``Pivot.to_dataframe()`` exposes the pivot as a pandas DataFrame for
  display and CSV export.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

from .lines import Line, is_zeroish
from .periods import Period
from .statements import build_statement_lines, normalize_balance_sheet

logger = logging.getLogger(__name__)

MATCH_MODES: tuple[str, ...] = ("label", "id")


@dataclass(frozen=True)
class PivotRow:
    """
    One row of a multi-period pivot.

    Attributes
    ----------
    key :
        Display label (taken from the earliest period defining the row).
    values :
        One entry per period: the amount, or None if the row was absent.
    """

    key: str
    values: tuple[Optional[float], ...]
    kind: str = "detail"
    is_total: bool = False
    is_subheader: bool = False
    is_adjustment: bool = False
    line_id: Optional[str] = None

    def display_values(self) -> list[Optional[float]]:
        """Values as they should be rendered (None means a blank cell).

        Missing values are blank, never zero. Subheader rows never show
        values. Zero-ish values are blank except on total rows.
        """
        if self.is_subheader:
            return [None] * len(self.values)
        out: list[Optional[float]] = []
        for value in self.values:
            if value is None or not math.isfinite(value):
                out.append(None)
            elif is_zeroish(value) and not self.is_total:
                out.append(None)
            else:
                out.append(value)
        return out


@dataclass(frozen=True)
class Pivot:
    """Aligned rows plus the labels of the periods (columns)."""

    periods: tuple[str, ...]
    rows: list[PivotRow]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the pivot as a DataFrame: ``item`` then one column per period.

        Blank cells (absent rows, suppressed values) are missing values (NaN).
        """
        columns = ["item", *self.periods]
        if not self.rows:
            return pd.DataFrame(columns=columns)
        # Built by position: period labels are not guaranteed to be unique.
        items = pd.Series([row.key for row in self.rows], name="item")
        values = pd.DataFrame([row.display_values() for row in self.rows])
        values = values.apply(pd.to_numeric, errors="coerce")
        df = pd.concat([items, values], axis=1)
        df.columns = columns
        return df


def _match_key(line: Line, match_on: str) -> str:
    if match_on == "id" and line.line_id:
        return f"id:{line.line_id}"
    return f"label:{line.key}"


def align_periods(
    period_lines: Sequence[Sequence[Line]],
    match_on: str = "label",
) -> list[PivotRow]:
    """
    Merge per-period Line lists into pivot rows.

    Parameters
    ----------
    period_lines :
        One Line list per period, in period order.
    match_on :
        "label" (default) joins rows on their display label; "id" joins on
        ``Line.line_id`` and falls back to the label when it is missing.
        Builder-computed rows (net result, cash subtotals) have no id and
        always match on their sign-dependent label.

    Returns
    -------
    list[PivotRow]
        Rows in first-seen order across periods, each with one value per
        period (None where the row was absent).

    Raises
    ------
    ValueError
        If ``match_on`` is not a supported mode.
    """
    if match_on not in MATCH_MODES:
        raise ValueError(f"Unknown match mode: {match_on!r}")

    # 1) Lookup map per period. Within one period the first occurrence wins.
    lookups: list[dict[str, Line]] = []
    for index, lines in enumerate(period_lines):
        lookup: dict[str, Line] = {}
        for line in lines:
            key = _match_key(line, match_on)
            if key in lookup:
                logger.debug("Duplicate row %r in period %d ignored.", line.key, index)
                continue
            lookup[key] = line
        lookups.append(lookup)

    # 2) First-seen order across periods; flags come from the first definer.
    first_seen: dict[str, Line] = {}
    for lookup in lookups:
        for key, line in lookup.items():
            first_seen.setdefault(key, line)

    # 3) One value per period.
    rows: list[PivotRow] = []
    for key, line in first_seen.items():
        values = tuple(
            (lookup[key].amount if key in lookup else None) for lookup in lookups
        )
        rows.append(
            PivotRow(
                key=line.key,
                values=values,
                kind=line.kind,
                is_total=line.is_total,
                is_subheader=line.is_subheader,
                is_adjustment=line.is_adjustment,
                line_id=line.line_id,
            )
        )
    return rows


def build_pivot(
    periods: Sequence[Period],
    period_lines: Sequence[Sequence[Line]],
    match_on: str = "label",
) -> Pivot:
    """Align per-period lines and label the columns with the period labels.

    Raises:
        ValueError: if the number of periods and Line lists differ.
    """
    if len(periods) != len(period_lines):
        raise ValueError(
            f"Got {len(period_lines)} statements for {len(periods)} periods."
        )
    return Pivot(
        periods=tuple(p.label for p in periods),
        rows=align_periods(period_lines, match_on=match_on),
    )


def pivot_payloads(
    kind: str,
    labels: Sequence[str],
    payloads: Sequence[Any],
    match_on: str = "label",
) -> dict[str, Pivot]:
    """
    Build one statement per payload and pivot the results.

    Parameters
    ----------
    kind :
        Statement kind (see ``statements.STATEMENT_KINDS``).
    labels :
        Column label of each payload, in order.
    payloads :
        One raw API payload per period, in the same order.
    match_on :
        Row matching mode, see ``align_periods()``.

    Returns
    -------
    dict[str, Pivot]
        ``{"assets", "liabilities", "equity"}`` for balance sheets (each
        section pivoted on its own), ``{"lines"}`` for the other kinds.

    Raises
    ------
    ValueError
        If no payloads are given, or the numbers of labels and payloads
        differ.
    """
    if not payloads:
        raise ValueError("At least one period is required.")
    if len(labels) != len(payloads):
        raise ValueError(f"Got {len(payloads)} payloads for {len(labels)} periods.")

    columns = tuple(labels)
    if kind == "balance-sheet":
        sheets = [normalize_balance_sheet(p) for p in payloads]
        return {
            section: Pivot(
                periods=columns,
                rows=align_periods(
                    [s.sections()[section] for s in sheets], match_on=match_on
                ),
            )
            for section in ("assets", "liabilities", "equity")
        }

    period_lines = [build_statement_lines(kind, p) for p in payloads]
    return {"lines": Pivot(columns, align_periods(period_lines, match_on=match_on))}


def build_multi_period(
    kind: str,
    periods: Sequence[Period],
    payloads: Sequence[Any],
    match_on: str = "label",
) -> dict[str, Pivot]:
    """Pivot one payload per Period bucket, labelling columns by period.

    See ``pivot_payloads()`` for the returned structure.

    Raises:
        ValueError: if no periods are given, or the numbers of periods and
            payloads differ.
    """
    if not periods:
        raise ValueError("build_multi_period requires at least one Period.")
    return pivot_payloads(kind, [p.label for p in periods], payloads, match_on)
