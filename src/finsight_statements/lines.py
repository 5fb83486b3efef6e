# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Line model for FinSight Statements.

Every statement produced by this package (income statement, balance sheet,
cash flow, trial balance, projection series) is an ordered list of ``Line``
records. A Line is a pure value: builders create new lines on every
parameter change and never mutate them in place.

This module exposes:
- Line:          one row of a statement (label, optional amount, flags),
- Totals:        grand totals and the balancing control of a balance sheet,
- BalanceSheet:  assets / liabilities / equity sections plus Totals,
- epsilon-zero helpers used for suppression decisions
  (``ZERO_EPSILON``, ``to_number``, ``is_zeroish``, ``non_zero``),
- rendering helpers shared by all consumers
  (``display_amount``, ``should_render``).
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional

# Values whose magnitude is below this threshold are "blank" for display.
ZERO_EPSILON = 0.005

# Allowed values for Line.kind, in rendering-weight order.
LINE_KINDS: tuple[str, ...] = (
    "header",
    "subheader",
    "detail",
    "detail-expense",
    "subtotal",
    "total",
)


def to_number(value: Any) -> float:
    """Convert a loosely-typed payload value into a float.

    The ledger API returns numbers either as JSON numbers or as numeric
    strings. Anything that cannot be parsed (None, empty string, garbage,
    NaN) is treated as 0.0.

    Examples:
        "1250.40" -> 1250.4
        12        -> 12.0
        None      -> 0.0
        "n/a"     -> 0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def is_zeroish(value: Any) -> bool:
    """Return True if the value is within ZERO_EPSILON of zero."""
    return abs(to_number(value)) < ZERO_EPSILON


def non_zero(value: Any) -> bool:
    """Return True if the value is NOT zero-ish."""
    return not is_zeroish(value)


@dataclass(frozen=True)
class Line:
    """
    One row of a financial statement or projection.

    Attributes
    ----------
    key :
        Display label. It doubles as the alignment key across periods;
        leading spaces encode nesting depth for display only.
    amount :
        Row amount, or None for pure header/subheader rows.
    kind :
        Rendering weight, one of LINE_KINDS.
    is_total :
        Totals always render, even when they round to zero.
    is_subheader :
        Section heading; its amount is never rendered.
    is_adjustment :
        Informational child of a detail row (e.g. gross cost and
        accumulated depreciation under a PPE category). Never part of a
        roll-up sum.
    line_id :
        Stable identifier supplied by the backend, when available.
    """

    key: str
    amount: Optional[float] = None
    kind: str = "detail"
    is_total: bool = False
    is_subheader: bool = False
    is_adjustment: bool = False
    line_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in LINE_KINDS:
            raise ValueError(
                f"Unknown line kind {self.kind!r}. Expected one of: "
                + ", ".join(LINE_KINDS)
            )

    @property
    def level(self) -> int:
        """Nesting depth derived from the label indentation (2 spaces/level)."""
        return (len(self.key) - len(self.key.lstrip(" "))) // 2

    @property
    def label(self) -> str:
        """Label without its indentation."""
        return self.key.strip()

    @property
    def is_heading(self) -> bool:
        return self.is_subheader or self.kind in ("header", "subheader")


def header(key: str, kind: str = "header") -> Line:
    """Build a header/subheader row carrying no amount."""
    return Line(key=key, amount=None, kind=kind, is_subheader=True)


def detail(
    key: str,
    amount: float,
    kind: str = "detail",
    is_adjustment: bool = False,
    line_id: Optional[str] = None,
) -> Line:
    """Build a detail row."""
    return Line(
        key=key,
        amount=amount,
        kind=kind,
        is_adjustment=is_adjustment,
        line_id=line_id,
    )


def total(key: str, amount: float, kind: str = "total", **flags: bool) -> Line:
    """Build a subtotal/total row (always flagged ``is_total``)."""
    return Line(key=key, amount=amount, kind=kind, is_total=True, **flags)


def display_amount(line: Line) -> Optional[float]:
    """
    Return the amount to display for a line, or None for a blank cell.

    Rules:
    - subheader rows never show a value, even if one is present,
    - absent or non-finite amounts are blank,
    - zero-ish amounts are blank, except on total rows where a true zero
      must stay visible.
    """
    if line.is_subheader or line.amount is None:
        return None
    value = float(line.amount)
    if not math.isfinite(value):
        return None
    if is_zeroish(value) and not line.is_total:
        return None
    return value


def should_render(line: Line) -> bool:
    """Return True if the line belongs in rendered/exported output."""
    if line.is_total or line.is_heading:
        return True
    return line.amount is not None and non_zero(line.amount)


@dataclass(frozen=True)
class Totals:
    """
    Grand totals of a balance sheet.

    ``diff`` is always computed as
    ``total_assets - total_equity_and_liabilities`` from the selected
    totals. A non-zero diff is a backend data-integrity problem that must
    be displayed, never corrected. ``reported_diff`` keeps the backend's
    own control diff (when it sent one) for diagnostics.
    """

    total_assets: float = 0.0
    total_liabilities: float = 0.0
    total_equity: float = 0.0
    total_equity_and_liabilities: float = 0.0
    diff: float = 0.0
    reported_diff: Optional[float] = None

    @property
    def is_balanced(self) -> bool:
        return abs(self.diff) < ZERO_EPSILON


@dataclass(frozen=True)
class BalanceSheet:
    """Balance sheet split into its three sections, plus Totals."""

    assets: list[Line] = field(default_factory=list)
    liabilities: list[Line] = field(default_factory=list)
    equity: list[Line] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)

    def sections(self) -> dict[str, list[Line]]:
        """Return the sections keyed by name, in display order."""
        return {
            "assets": self.assets,
            "liabilities": self.liabilities,
            "equity": self.equity,
        }

    @property
    def is_empty(self) -> bool:
        return not (self.assets or self.liabilities or self.equity)
