# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FinSight Statements
-------------------

A Python-based engine that turns the raw, loosely-typed payloads of a
ledger API into presentation-ready financial statements, and analyses them
across periods.

Main capabilities:
- income statement, balance sheet, cash flow and trial balance builders,
- balance sheet reconciliation with control totals and an exact
  out-of-balance difference,
- epsilon-zero display suppression shared by every view,
- multi-period pivots (calendar-month buckets, first-seen row order),
- comparative statements with change and change %,
- what-if projections with compounding growth and per-cell overrides,
- console tables and CSV export rows.

FinSight Statements separates computation (statements, periods, engines),
configuration (TOML) and presentation (CLI / views), making it suitable for
scripting, automation and financial diagnostics.


Version: 0.1.0

Usage:
    python -m finsight_statements.cli --help
"""

__all__ = [
    "lines",
    "statements",
    "periods",
    "multi_periods",
    "comparative",
    "projections",
    "views",
    "io",
]

__version__ = "0.1.0"
