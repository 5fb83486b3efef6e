# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for FinSight Statements.

This module defines a Period value object and helpers to derive
reporting periods: calendar-month buckets over a date range, preset
ranges (2m, quarter, half, year), comparison periods (previous period,
previous year) and CLI-driven period selection.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

PRESETS: tuple[str, ...] = ("2m", "quarter", "half", "year")
COMPARE_MODES: tuple[str, ...] = ("none", "prev-period", "prev-year")


@dataclass(frozen=True)
class Period:
    """Represents a reporting period with a key and a human-readable label."""

    start: date
    end: date
    label: str
    key: str = ""

    @property
    def days(self) -> int:
        """Number of days in the period (inclusive)."""
        return (self.end - self.start).days + 1


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def add_months(d: date, months: int) -> date:
    """Shift a date by a number of months, clamping to the month's last day.

    Examples:
        2025-01-31 + 1 -> 2025-02-28
        2024-03-15 - 12 -> 2023-03-15
    """
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, monthrange(year, month)[1])
    return date(year, month, day)


def month_buckets(start: date, end: date) -> list[Period]:
    """
    Slice [start, end] into calendar-month buckets.

    The first and last bucket are clipped to the requested boundaries, so
    2025-01-15 → 2025-03-10 yields 15-31 Jan, 1-28 Feb and 1-10 Mar.

    Raises:
        ValueError: if end is before start.
    """
    if end < start:
        raise ValueError("Period end date cannot be before start date.")

    buckets: list[Period] = []
    cursor = start
    while cursor <= end:
        days_in_month = monthrange(cursor.year, cursor.month)[1]
        bucket_end = min(date(cursor.year, cursor.month, days_in_month), end)
        buckets.append(
            Period(
                start=cursor,
                end=bucket_end,
                label=cursor.strftime("%b %Y"),
                key=cursor.strftime("%Y-%m"),
            )
        )
        cursor = bucket_end + timedelta(days=1)
    return buckets


def months_in_range(start: date, end: date) -> int:
    """Number of whole months between two dates, plus one.

    Used to size a custom monthly projection horizon:
    2025-01-01 → 2025-12-31 gives 12, 2025-01-15 → 2025-02-14 gives 1.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months + 1


def preset_range(preset: str, anchor: Optional[date] = None) -> Period:
    """
    Date range for a preset, relative to ``anchor`` (today by default).

    - "2m":      two months back to today,
    - "quarter": the current calendar quarter,
    - "half":    six months back to today,
    - "year":    twelve months back to today.
    """
    today = anchor or _today()

    if preset == "2m":
        return Period(start=add_months(today, -2), end=today, label="Last 2 months")
    if preset == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        start = date(today.year, first_month, 1)
        end = add_months(start, 3) - timedelta(days=1)
        quarter = (first_month - 1) // 3 + 1
        return Period(start=start, end=end, label=f"Q{quarter} {today.year}")
    if preset == "half":
        return Period(start=add_months(today, -6), end=today, label="Last 6 months")
    if preset == "year":
        return Period(start=add_months(today, -12), end=today, label="Last 12 months")
    raise ValueError(f"Unknown preset: {preset!r}")


def previous_period(period: Period, mode: str) -> Optional[Period]:
    """
    Comparison period for ``period`` under the given compare mode.

    - "none":        no comparison (returns None),
    - "prev-period": the same number of days immediately before the start,
    - "prev-year":   both bounds shifted back twelve months.
    """
    if mode == "none":
        return None
    if mode == "prev-period":
        prev_end = period.start - timedelta(days=1)
        prev_start = period.start - timedelta(days=period.days)
        return Period(start=prev_start, end=prev_end, label="Previous period")
    if mode == "prev-year":
        return Period(
            start=add_months(period.start, -12),
            end=add_months(period.end, -12),
            label="Previous year",
        )
    raise ValueError(f"Unknown compare mode: {mode!r}")


def determine_period_from_args(args, default_preset: str = "year") -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.preset (2m, quarter, half, year)
        2. args.from_date / args.to_date (custom period)
        3. the configured default preset
    """
    # 1) Predefined preset wins over everything else
    if getattr(args, "preset", None):
        return preset_range(args.preset)

    # 2) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        fallback = preset_range(default_preset)
        start = date.fromisoformat(from_raw) if from_raw else fallback.start
        end = date.fromisoformat(to_raw) if to_raw else fallback.end

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    # 3) Default preset
    return preset_range(default_preset)
