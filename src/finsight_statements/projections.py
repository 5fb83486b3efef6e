# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
What-if projections for FinSight Statements.

This module generates a forward-looking series from one baseline record
(sales, cost of goods, total expenses) using compounding growth rates, and
applies a sparse map of user overrides on top of the generated values.

1. Growth model
   -------------
   For period index ``i`` (1-based) the exponent is ``i`` for yearly
   granularity and ``i / 12`` for monthly granularity, so month 12 reaches
   the same multiplier as one full year:

       value = baseline * (1 + rate / 100) ** exponent

   Each metric (sales, costs, expenses) grows with its own rate.

2. Overrides
   ----------
   Overrides are stored per period key (``"{tab_id}-{index}"``) and metric:

   - ``Absolute(value)`` replaces the generated value outright,
   - ``PercentAdjustment(percent)`` scales the generated value by
     ``1 + percent / 100`` (on top of growth, not on top of the baseline).

   Gross profit and net profit are always recomputed from the (possibly
   overridden) sales, costs and expenses; they cannot be overridden.

3. Edit protocol
   --------------
   ``OverrideMap.apply_edit()`` is the edit boundary. Blank input clears the
   cell (and drops the period entry once it is empty), a bare number or a
   ``%``-suffixed number sets it, anything else is rejected and leaves the
   map untouched.
"""

import logging
import math
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

import pandas as pd

from .lines import Line, header, to_number, total

logger = logging.getLogger(__name__)

# Metrics the user may override, and metrics that are always derived.
OVERRIDABLE_METRICS: tuple[str, ...] = ("sales", "costs", "expenses")
DERIVED_METRICS: tuple[str, ...] = ("gross_profit", "net_profit")

BASELINE_PERIOD = "Baseline"
GRANULARITIES: tuple[str, ...] = ("monthly", "yearly")

# Display order and labels of the inverted projection table.
METRIC_LABELS: dict[str, str] = {
    "sales": "Sales",
    "costs": "Cost of Goods",
    "gross_profit": "Gross Profit",
    "expenses": "Total Expenses",
    "net_profit": "Net Profit",
}

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class InvalidOverrideError(ValueError):
    """Raised when override text is neither a number nor a number followed by %."""


@dataclass(frozen=True)
class Absolute:
    """Override replacing the generated value."""

    value: float

    def apply(self, generated: float) -> float:
        return self.value

    def __str__(self) -> str:
        return f"{self.value:g}"


@dataclass(frozen=True)
class PercentAdjustment:
    """Override scaling the generated value by ``1 + percent / 100``."""

    percent: float

    def apply(self, generated: float) -> float:
        return generated * (1 + self.percent / 100)

    def __str__(self) -> str:
        sign = "+" if self.percent > 0 else ""
        return f"{sign}{self.percent:g}%"


Override = Union[Absolute, PercentAdjustment]


def _parse_number(text: str) -> Optional[float]:
    text = text.strip()
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    # "1e999" overflows to inf.
    return value if math.isfinite(value) else None


def parse_override(text: Any) -> Optional[Override]:
    """
    Parse user input into an override.

    - "" (or only whitespace) -> None, meaning "clear the cell",
    - "5%", "+5%", "-2.5%"    -> PercentAdjustment,
    - "2000", "-150.5"        -> Absolute,
    - int / float values      -> Absolute.

    Raises:
        InvalidOverrideError: for any other input.
    """
    if isinstance(text, bool):
        raise InvalidOverrideError(f"Invalid override value: {text!r}")
    if isinstance(text, (int, float)):
        if not math.isfinite(text):
            raise InvalidOverrideError(f"Invalid override value: {text!r}")
        return Absolute(float(text))
    if not isinstance(text, str):
        raise InvalidOverrideError(f"Invalid override value: {text!r}")

    raw = text.strip()
    if raw == "":
        return None

    if raw.endswith("%"):
        percent = _parse_number(raw[:-1])
        if percent is None:
            raise InvalidOverrideError(
                f"Percentage must be a number followed by '%': {text!r}"
            )
        return PercentAdjustment(percent)

    value = _parse_number(raw)
    if value is None:
        raise InvalidOverrideError(
            f"Expected a number or a percentage (e.g. '5%' or '+5%'): {text!r}"
        )
    return Absolute(value)


def period_key(tab_id: str, index: int) -> str:
    """Override key of a generated period, e.g. ``"12-months-3"``."""
    return f"{tab_id}-{index}"


class OverrideMap:
    """
    Sparse ``period_key -> metric -> Override`` mapping.

    Created empty per projection session and mutated only by explicit
    edits. A period entry exists only while it holds at least one override.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Override]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __repr__(self) -> str:
        return f"OverrideMap({self.to_dict()!r})"

    def get(self, key: str, metric: str) -> Optional[Override]:
        return self._data.get(key, {}).get(metric)

    def for_period(self, key: str) -> dict[str, Override]:
        """Copy of the overrides of one period (empty dict if none)."""
        return dict(self._data.get(key, {}))

    def set(self, key: str, metric: str, override: Override) -> None:
        """Store an override.

        Raises:
            ValueError: for the baseline row or a derived/unknown metric.
        """
        if key == BASELINE_PERIOD:
            raise ValueError("The baseline row cannot be overridden.")
        if metric not in OVERRIDABLE_METRICS:
            raise ValueError(
                f"Metric {metric!r} cannot be overridden. Expected one of: "
                + ", ".join(OVERRIDABLE_METRICS)
            )
        self._data.setdefault(key, {})[metric] = override

    def clear(self, key: str, metric: str) -> None:
        """Remove one override, dropping the period entry once it is empty."""
        period = self._data.get(key)
        if period is None:
            return
        period.pop(metric, None)
        if not period:
            del self._data[key]

    def apply_edit(self, key: str, metric: str, text: Any) -> bool:
        """
        Apply a user edit to one cell.

        Returns:
            True if the map was updated (set or cleared), False if the input
            was rejected and the map left unchanged.

        Raises:
            ValueError: for the baseline row or a derived/unknown metric.
        """
        try:
            override = parse_override(text)
        except InvalidOverrideError as exc:
            logger.info("Override edit for %s/%s rejected: %s", key, metric, exc)
            return False

        if override is None:
            self.clear(key, metric)
        else:
            self.set(key, metric, override)
        return True

    def to_dict(self) -> dict[str, dict[str, Union[float, str]]]:
        """Plain representation: numbers for absolute values, "+5%" strings."""
        out: dict[str, dict[str, Union[float, str]]] = {}
        for key, metrics in self._data.items():
            out[key] = {
                metric: (o.value if isinstance(o, Absolute) else str(o))
                for metric, o in metrics.items()
            }
        return out

    @classmethod
    def from_dict(cls, raw: Mapping[str, Mapping[str, Any]]) -> "OverrideMap":
        """Rebuild a map from its plain representation.

        Raises:
            InvalidOverrideError: if a stored value cannot be parsed.
            ValueError: for the baseline row or a derived/unknown metric.
        """
        overrides = cls()
        for key, metrics in raw.items():
            for metric, value in metrics.items():
                override = parse_override(value)
                if override is not None:
                    overrides.set(str(key), str(metric), override)
        return overrides


@dataclass(frozen=True)
class Baseline:
    """Baseline figures the projection grows from."""

    sales: float
    cost_of_goods: float
    total_expenses: float

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["Baseline"]:
        """Build a Baseline from ``{sales, costOfGoods, totalExpenses}``.

        Returns None (and logs a warning) if the payload is not an object.
        """
        if not isinstance(payload, Mapping):
            logger.warning("Malformed projection baseline payload.")
            return None
        return cls(
            sales=to_number(payload.get("sales")),
            cost_of_goods=to_number(payload.get("costOfGoods")),
            total_expenses=to_number(payload.get("totalExpenses")),
        )


@dataclass(frozen=True)
class GrowthRates:
    """Annual growth rates, in percent."""

    revenue: float = 5.0
    cost: float = 3.0
    expenses: float = 2.0

    def __post_init__(self) -> None:
        # At -100% or below the compounding base is no longer positive.
        for name in ("revenue", "cost", "expenses"):
            rate = getattr(self, name)
            if not math.isfinite(rate) or rate <= -100:
                raise ValueError(
                    f"Invalid {name} growth rate: {rate!r} (must be above -100%)."
                )


@dataclass(frozen=True)
class ProjectionPoint:
    """One row of the projection series (baseline or generated period)."""

    period: str
    sales: float
    costs: float
    expenses: float
    key: Optional[str] = None
    overridden: frozenset[str] = frozenset()

    @property
    def gross_profit(self) -> float:
        return self.sales - self.costs

    @property
    def net_profit(self) -> float:
        return self.gross_profit - self.expenses

    def metric(self, name: str) -> float:
        return float(getattr(self, name))


def growth_exponent(index: int, granularity: str) -> float:
    """Compounding exponent of period ``index`` (1-based)."""
    if granularity == "yearly":
        return float(index)
    if granularity == "monthly":
        return index / 12
    raise ValueError(f"Unknown granularity: {granularity!r}")


def default_tab_id(periods: int, granularity: str) -> str:
    """Tab identifier used in override keys, e.g. "12-months", "5-years"."""
    unit = "years" if granularity == "yearly" else "months"
    return f"{periods}-{unit}"


def project(
    baseline: Optional[Baseline],
    rates: GrowthRates,
    periods: int,
    granularity: str = "monthly",
    overrides: Optional[OverrideMap] = None,
    tab_id: Optional[str] = None,
) -> list[ProjectionPoint]:
    """
    Generate the projection series.

    Parameters
    ----------
    baseline :
        Starting figures. None yields an empty series.
    rates :
        Annual growth rates per metric.
    periods :
        Number of generated periods (N).
    granularity :
        "monthly" or "yearly".
    overrides :
        Optional override map; looked up with ``period_key(tab_id, i)``.
    tab_id :
        Override key prefix. Defaults to ``default_tab_id(periods,
        granularity)``.

    Returns
    -------
    list[ProjectionPoint]
        The "Baseline" row followed by N generated rows.

    Raises
    ------
    ValueError
        If the granularity is unknown or periods is negative.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity!r}")
    if periods < 0:
        raise ValueError("Number of projection periods cannot be negative.")
    if baseline is None:
        return []

    tab = tab_id or default_tab_id(periods, granularity)
    overrides = overrides or OverrideMap()
    period_word = "Year" if granularity == "yearly" else "Month"

    points = [
        ProjectionPoint(
            period=BASELINE_PERIOD,
            sales=baseline.sales,
            costs=baseline.cost_of_goods,
            expenses=baseline.total_expenses,
        )
    ]

    for i in range(1, periods + 1):
        exponent = growth_exponent(i, granularity)
        generated = {
            "sales": baseline.sales * (1 + rates.revenue / 100) ** exponent,
            "costs": baseline.cost_of_goods * (1 + rates.cost / 100) ** exponent,
            "expenses": baseline.total_expenses
            * (1 + rates.expenses / 100) ** exponent,
        }

        key = period_key(tab, i)
        period_overrides = overrides.for_period(key)
        for metric, override in period_overrides.items():
            generated[metric] = override.apply(generated[metric])

        points.append(
            ProjectionPoint(
                period=f"{period_word} {i}",
                key=key,
                overridden=frozenset(period_overrides),
                **generated,
            )
        )
    return points


def projection_table(points: Sequence[ProjectionPoint]) -> pd.DataFrame:
    """
    Invert the series: one row per metric, one column per period.

    Values are rounded to whole currency units for display.
    """
    if not points:
        return pd.DataFrame(columns=["metric"])
    records = [
        [label, *(round(p.metric(metric)) for p in points)]
        for metric, label in METRIC_LABELS.items()
    ]
    return pd.DataFrame(records, columns=["metric", *(p.period for p in points)])


def projection_period_lines(
    points: Sequence[ProjectionPoint],
) -> tuple[list[str], list[list[Line]]]:
    """
    Convert the series into per-period Line lists.

    The result can be pivoted with ``multi_periods.align_periods`` and
    exported like any other statement.

    Returns:
        (period labels, one Line list per period)
    """
    labels: list[str] = []
    period_lines: list[list[Line]] = []
    for p in points:
        labels.append(p.period)
        period_lines.append(
            [
                header("Projection"),
                Line(key="  Sales", amount=p.sales),
                Line(key="  Cost of Goods", amount=p.costs, kind="detail-expense"),
                total("Gross Profit", p.gross_profit, kind="subtotal"),
                Line(key="  Total Expenses", amount=p.expenses, kind="detail-expense"),
                total("Net Profit", p.net_profit),
            ]
        )
    return labels, period_lines
