# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement builders for FinSight Statements.

This module turns the raw, loosely-typed payloads returned by the ledger API
into ordered lists of ``Line`` records, one builder per statement kind:

1. Income statement
   -----------------
   ``build_income_statement(sections)`` groups accounts by section
   (revenue, cogs, other_income, and an open set of expense categories) and
   emits, in fixed order: revenue, COGS, gross profit, other income, one
   group per expense category, total expenses and the net profit/loss row.
   The net row label carries the sign ("NET PROFIT" / "NET LOSS"); its
   stored amount is always non-negative.

2. Balance sheet
   --------------
   ``normalize_balance_sheet(response)`` reconciles the independent signals
   sent by the backend (direct asset/liability totals, optional itemized
   current-asset and PPE detail, an equity breakdown and a backend control
   block) into assets / liabilities / equity lines plus ``Totals``.

3. Cash flow
   ----------
   ``build_cash_flow_sections(grouped)`` groups lines into operating,
   investing and financing buckets with a subtotal each, followed by the
   terminal "Net Increase / (Decrease) in Cash" row.
   ``build_cash_flow(grouped)`` flattens the same data to ``Line`` records.

4. Trial balance
   --------------
   ``build_trial_balance(items)`` passes account rows through with their
   debit/credit columns; ``trial_balance_lines(rows)`` collapses them to
   signed nets (debit - credit) and appends a net-total row.

Failure policy
--------------
Builders never raise on a missing or malformed payload. They log a warning
and return an empty result, so a missing statement renders as "no data".
Integrity problems (a balance sheet that does not balance, a trial balance
whose nets do not sum to zero) are returned as data and logged.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from .lines import (
    BalanceSheet,
    Line,
    Totals,
    detail,
    header,
    is_zeroish,
    non_zero,
    to_number,
    total,
)

logger = logging.getLogger(__name__)

# Income statement sections with a fixed position; every other section key
# is an expense category.
FIXED_INCOME_SECTIONS: tuple[str, ...] = ("revenue", "cogs", "other_income")

CASH_FLOW_CATEGORIES: tuple[str, ...] = ("operating", "investing", "financing")
NET_CASH_LABEL = "Net Increase / (Decrease) in Cash"

TRIAL_BALANCE_NET_LABEL = "NET TOTAL (debit - credit)"

STATEMENT_KINDS: tuple[str, ...] = (
    "income-statement",
    "balance-sheet",
    "cash-flow",
    "trial-balance",
)


def _unwrap(payload: Any, key: str) -> Any:
    """Return ``payload[key]`` for envelope objects, or the payload itself."""
    if isinstance(payload, Mapping) and key in payload:
        return payload[key]
    return payload


def _backend_id(raw: Mapping[str, Any], *names: str) -> Optional[str]:
    for name in names:
        value = raw.get(name)
        if value is not None and str(value).strip() != "":
            return str(value)
    return None


# ---------------------------------------------------------------------------
# Income statement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Section:
    key: str
    amount: float
    accounts: list[tuple[str, float, Optional[str]]]

    def has_activity(self) -> bool:
        return any(non_zero(amount) for _, amount, _ in self.accounts)


def _parse_income_sections(payload: Any) -> Optional[dict[str, _Section]]:
    """Index income statement sections by key; None if the shape is wrong."""
    sections = _unwrap(payload, "sections")
    if not isinstance(sections, Sequence) or isinstance(sections, (str, bytes)):
        return None

    by_key: dict[str, _Section] = {}
    for raw in sections:
        if not isinstance(raw, Mapping) or "section" not in raw:
            return None
        raw_accounts = raw.get("accounts") or []
        if not isinstance(raw_accounts, Sequence) or isinstance(raw_accounts, str):
            return None

        accounts: list[tuple[str, float, Optional[str]]] = []
        for acc in raw_accounts:
            if not isinstance(acc, Mapping):
                return None
            accounts.append(
                (
                    str(acc.get("name") or ""),
                    to_number(acc.get("amount")),
                    _backend_id(acc, "id", "account_id", "code"),
                )
            )

        key = str(raw["section"])
        # Later sections with the same key replace earlier ones.
        by_key[key] = _Section(
            key=key, amount=to_number(raw.get("amount")), accounts=accounts
        )
    return by_key


def _account_lines(
    section: _Section, indent: str, kind: str
) -> list[Line]:
    return [
        detail(
            f"{indent}{name}",
            amount,
            kind=kind,
            line_id=f"{section.key}:{acc_id}" if acc_id else None,
        )
        for name, amount, acc_id in section.accounts
        if non_zero(amount)
    ]


def build_income_statement(payload: Any) -> list[Line]:
    """Build the income statement lines from the raw section list.

    Args:
        payload: Either a list of ``{section, amount, accounts: [{name,
            amount}]}`` objects or an envelope with a ``sections`` key.

    Returns:
        Ordered list of Line records. Empty if the payload is malformed.
    """
    sections = _parse_income_sections(payload)
    if sections is None:
        logger.warning("Malformed income statement payload, returning no lines.")
        return []

    lines: list[Line] = []

    revenue = sections.get("revenue")
    if revenue is not None and revenue.accounts:
        lines.append(header("Revenue"))
        lines.extend(_account_lines(revenue, "  ", "detail"))
        if non_zero(revenue.amount):
            lines.append(total("Total Revenue", revenue.amount, kind="subtotal"))

    cogs = sections.get("cogs")
    if cogs is not None and cogs.has_activity():
        lines.append(header("Less: Cost of Goods Sold"))
        lines.extend(_account_lines(cogs, "  ", "detail-expense"))
        if non_zero(cogs.amount):
            lines.append(
                total("Total Cost of Goods Sold", cogs.amount, kind="subtotal")
            )

    total_revenue = revenue.amount if revenue is not None else 0.0
    total_cogs = cogs.amount if cogs is not None else 0.0
    gross_profit = total_revenue - total_cogs
    if non_zero(gross_profit):
        lines.append(total("Gross Profit", gross_profit, kind="subtotal"))

    other_income = sections.get("other_income")
    if other_income is not None and other_income.has_activity():
        lines.append(header("Other Income"))
        lines.extend(_account_lines(other_income, "  ", "detail"))
        if non_zero(other_income.amount):
            lines.append(
                total("Total Other Income", other_income.amount, kind="subtotal")
            )

    expense_sections = [
        s
        for key, s in sections.items()
        if key not in FIXED_INCOME_SECTIONS and s.has_activity()
    ]
    total_expenses = 0.0
    if expense_sections:
        lines.append(header("Less: Expenses"))
        for section in expense_sections:
            title = section.key.replace("_", " ")
            lines.append(header(f"  {title}", kind="subheader"))
            lines.extend(_account_lines(section, "    ", "detail-expense"))
            if non_zero(section.amount):
                lines.append(
                    total(f"  Total {title}", section.amount, kind="subtotal")
                )
            total_expenses += section.amount

        if non_zero(total_expenses):
            lines.append(total("Total Expenses", total_expenses, kind="subtotal"))

    other_amount = other_income.amount if other_income is not None else 0.0
    net = gross_profit + other_amount - total_expenses
    label = "NET PROFIT for the period" if net >= 0 else "NET LOSS for the period"
    lines.append(total(label, abs(net)))

    return lines


# ---------------------------------------------------------------------------
# Balance sheet
# ---------------------------------------------------------------------------


def _first_non_zero(*values: float) -> float:
    """Return the first value that is not exactly zero (0.0 if none)."""
    for value in values:
        if value != 0:
            return value
    return 0.0


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _detail_rows(block: Any) -> list[Mapping[str, Any]]:
    rows = _mapping(block).get("rows")
    if not isinstance(rows, Sequence) or isinstance(rows, str):
        return []
    return [r for r in rows if isinstance(r, Mapping)]


def normalize_balance_sheet(response: Any) -> BalanceSheet:
    """Normalize the backend balance sheet payload.

    Resolution rules
    ----------------
    - Non-current assets: sum of the itemized PPE net book values when that
      sum is non-zero, else the direct ``assets.non_current`` figure.
    - Total equity: first non-zero of the backend effective equity, the
      breakdown total, ``equityAccounts + sinceInception``, and
      ``opening + periodProfit + otherMovements``.
    - Grand totals: backend control totals (when present) override the
      locally-computed ones.
    - ``diff`` is computed from the selected totals, never assumed.

    Args:
        response: Raw balance sheet object as returned by the ledger API.

    Returns:
        A BalanceSheet. Empty (all totals zero) if the payload is malformed.
    """
    if not isinstance(response, Mapping):
        logger.warning("Malformed balance sheet payload, returning empty sheet.")
        return BalanceSheet()

    breakdown = _mapping(response.get("equityBreakdown"))
    control = _mapping(response.get("control"))
    effective = _mapping(control.get("effective"))
    assets_raw = _mapping(response.get("assets"))
    liabs_raw = _mapping(response.get("liabilities"))

    def _pick(primary: str, fallback: Any) -> float:
        value = breakdown.get(primary)
        return to_number(fallback if value is None else value)

    opening_equity = _pick("opening", response.get("openingEquity"))
    period_profit = _pick("periodProfit", response.get("netProfitLoss"))
    prior_retained = _pick("priorRetained", 0)
    since_inception = _pick("sinceInception", 0)
    closing = response.get("closingEquity")
    equity_accounts = _pick("equityAccounts", 0 if closing is None else closing)
    other_movements = to_number(response.get("otherEquityMovements"))

    current_assets = to_number(assets_raw.get("current"))
    ppe_rows = _detail_rows(response.get("non_current_assets_detail"))
    non_current_from_detail = sum(to_number(r.get("net_book_value")) for r in ppe_rows)
    non_current_assets = _first_non_zero(
        non_current_from_detail, to_number(assets_raw.get("non_current"))
    )

    current_liabs = to_number(liabs_raw.get("current"))
    non_current_liabs = to_number(liabs_raw.get("non_current"))

    display_total_assets = current_assets + non_current_assets
    display_total_liabs = current_liabs + non_current_liabs

    total_equity = _first_non_zero(
        to_number(effective.get("equityComputed")),
        to_number(breakdown.get("totalComputed")),
        equity_accounts + since_inception,
        opening_equity + period_profit + other_movements,
    )

    total_assets = _first_non_zero(
        to_number(control.get("assetsTotal")), display_total_assets
    )
    total_equity_and_liabs = _first_non_zero(
        to_number(effective.get("liabPlusEquityComputed")),
        display_total_liabs + total_equity,
    )

    reported_raw = effective.get("diffComputed", control.get("diff"))
    reported_diff = None if reported_raw is None else to_number(reported_raw)

    totals = Totals(
        total_assets=total_assets,
        total_liabilities=display_total_liabs,
        total_equity=total_equity,
        total_equity_and_liabilities=total_equity_and_liabs,
        diff=total_assets - total_equity_and_liabs,
        reported_diff=reported_diff,
    )
    if not totals.is_balanced:
        logger.warning(
            "Balance sheet out of balance: assets %.2f vs equity+liabilities "
            "%.2f (diff %.2f).",
            totals.total_assets,
            totals.total_equity_and_liabilities,
            totals.diff,
        )

    # ----- Assets ---------------------------------------------------------
    assets: list[Line] = [header("Current Assets", kind="subheader")]
    current_rows = _detail_rows(response.get("current_assets_detail"))
    if current_rows:
        for r in current_rows:
            amount = to_number(r.get("amount"))
            if non_zero(amount):
                assets.append(
                    detail(
                        f"  {r.get('label') or ''}",
                        amount,
                        line_id=_backend_id(r, "reporting_category_id"),
                    )
                )
    elif non_zero(current_assets):
        assets.append(detail("  Current Assets (total)", current_assets))
    assets.append(total("Total Current Assets", current_assets, kind="subtotal"))

    assets.append(header("Non-current Assets", kind="subheader"))
    if ppe_rows:
        assets.append(
            header("  Property, Plant & Equipment (by category)", kind="subheader")
        )
        for r in ppe_rows:
            nbv = to_number(r.get("net_book_value"))
            if is_zeroish(nbv):
                continue
            label = str(r.get("label") or "")
            gross = to_number(r.get("gross_cost"))
            accumulated = to_number(r.get("accumulated_depreciation"))
            assets.append(
                detail(
                    f"    {label}",
                    nbv,
                    line_id=_backend_id(r, "reporting_category_id"),
                )
            )
            if non_zero(gross):
                assets.append(
                    detail(f"      Gross cost – {label}", gross, is_adjustment=True)
                )
            if non_zero(accumulated):
                assets.append(
                    detail(
                        f"      Accumulated depreciation – {label}",
                        -abs(accumulated),
                        is_adjustment=True,
                    )
                )
    elif non_zero(non_current_assets):
        assets.append(detail("  Non-current Assets (total)", non_current_assets))
    assets.append(
        total("Total Non-Current Assets", non_current_assets, kind="subtotal")
    )
    assets.append(total("TOTAL ASSETS", display_total_assets, is_subheader=True))

    # ----- Liabilities ----------------------------------------------------
    liabilities: list[Line] = [header("Current Liabilities", kind="subheader")]
    if non_zero(current_liabs):
        liabilities.append(detail("  Current Liabilities (total)", current_liabs))
    liabilities.append(
        total("Total Current Liabilities", current_liabs, kind="subtotal")
    )
    liabilities.append(header("Non-Current Liabilities", kind="subheader"))
    if non_zero(non_current_liabs):
        liabilities.append(
            detail("  Non-Current Liabilities (total)", non_current_liabs)
        )
    liabilities.append(
        total("Total Non-Current Liabilities", non_current_liabs, kind="subtotal")
    )
    liabilities.append(
        total("TOTAL LIABILITIES", display_total_liabs, is_subheader=True)
    )

    # ----- Equity ---------------------------------------------------------
    equity: list[Line] = [header("Equity", kind="subheader")]
    equity.append(detail("  Contributed / Opening Equity", opening_equity))
    if non_zero(prior_retained):
        equity.append(detail("  Retained Earnings (prior periods)", prior_retained))
    profit_label = (
        "  Net Profit for Period" if period_profit >= 0 else "  Net Loss for Period"
    )
    equity.append(detail(profit_label, abs(period_profit)))
    if non_zero(other_movements):
        equity.append(
            detail(
                "  Other Equity Movements (Owner contributions/drawings)",
                other_movements,
                is_adjustment=True,
            )
        )
    equity.append(total("TOTAL EQUITY", total_equity, is_subheader=True))

    return BalanceSheet(
        assets=assets, liabilities=liabilities, equity=equity, totals=totals
    )


# ---------------------------------------------------------------------------
# Cash flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashFlowSection:
    """
    One block of the cash flow statement.

    ``show_subtotal`` is False only for the terminal net-change block, which
    has no items and whose ``total`` is the sum of the bucket subtotals.
    """

    category: str
    items: list[tuple[str, float]] = field(default_factory=list)
    total: float = 0.0
    show_subtotal: bool = True

    @property
    def subtotal_label(self) -> str:
        if not self.show_subtotal:
            return self.category
        if self.total >= 0:
            return f"Net cash from {self.category}"
        return f"Net cash used in {self.category}"


def build_cash_flow_sections(payload: Any) -> list[CashFlowSection]:
    """Group cash flow lines into bucket sections plus the net-change block.

    Args:
        payload: ``{operating?, investing?, financing?}`` where each bucket is
            a list of ``{line, amount}`` objects (amounts may be strings), or
            an envelope with a ``sections`` key.

    Returns:
        Sections for the buckets with at least one non-zero line, followed by
        the terminal net-change section (always present). Empty list if the
        payload is malformed.
    """
    grouped = _unwrap(payload, "sections")
    if not isinstance(grouped, Mapping):
        logger.warning("Malformed cash flow payload, returning no sections.")
        return []

    sections: list[CashFlowSection] = []
    net_change = 0.0

    for category in CASH_FLOW_CATEGORIES:
        raw_items = grouped.get(category)
        if not isinstance(raw_items, Sequence) or isinstance(raw_items, str):
            continue

        items = [
            (str(i.get("line") or ""), to_number(i.get("amount")))
            for i in raw_items
            if isinstance(i, Mapping)
        ]
        items = [(name, amount) for name, amount in items if non_zero(amount)]
        subtotal = sum(amount for _, amount in items)
        net_change += subtotal

        if items:
            sections.append(
                CashFlowSection(
                    category=f"{category.capitalize()} Activities",
                    items=items,
                    total=subtotal,
                )
            )

    sections.append(
        CashFlowSection(category=NET_CASH_LABEL, total=net_change, show_subtotal=False)
    )
    return sections


def flatten_cash_flow(sections: Sequence[CashFlowSection]) -> list[Line]:
    """Flatten cash flow sections into Line records."""
    lines: list[Line] = []
    for section in sections:
        if section.show_subtotal:
            lines.append(header(section.category, kind="subheader"))
            lines.extend(detail(f"  {name}", amount) for name, amount in section.items)
            lines.append(total(section.subtotal_label, section.total, kind="subtotal"))
        else:
            lines.append(total(section.category, section.total))
    return lines


def build_cash_flow(payload: Any) -> list[Line]:
    """Build the cash flow statement as a flat list of Line records."""
    return flatten_cash_flow(build_cash_flow_sections(payload))


# ---------------------------------------------------------------------------
# Trial balance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrialBalanceRow:
    """One account of the trial balance with its debit/credit balances."""

    code: str
    name: str
    debit: float
    credit: float

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name}"

    @property
    def net(self) -> float:
        """Signed net balance (debit - credit)."""
        return self.debit - self.credit


def build_trial_balance(payload: Any) -> list[TrialBalanceRow]:
    """Pass the trial balance account rows through with parsed amounts.

    Args:
        payload: List of ``{code, name, balance_debit, balance_credit}``
            objects (numeric strings), or an envelope with an ``items`` key.

    Returns:
        List of TrialBalanceRow in payload order. Empty if malformed.
    """
    items = _unwrap(payload, "items")
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        logger.warning("Malformed trial balance payload, returning no rows.")
        return []
    if not all(isinstance(i, Mapping) for i in items):
        logger.warning("Malformed trial balance payload, returning no rows.")
        return []

    return [
        TrialBalanceRow(
            code=str(i.get("code", "")),
            name=str(i.get("name") or ""),
            debit=to_number(i.get("balance_debit")),
            credit=to_number(i.get("balance_credit")),
        )
        for i in items
    ]


def trial_balance_totals(rows: Sequence[TrialBalanceRow]) -> tuple[float, float]:
    """Return (total_debit, total_credit) across all accounts."""
    return (sum(r.debit for r in rows), sum(r.credit for r in rows))


def trial_balance_lines(rows: Sequence[TrialBalanceRow]) -> list[Line]:
    """Collapse trial balance rows to signed nets plus a net-total row.

    The net total equals zero for a balanced ledger. A non-zero value is an
    upstream integrity problem: it is kept in the output and logged.
    """
    if not rows:
        return []

    lines = [
        detail(r.label, r.net, line_id=r.code or None)
        for r in rows
        if non_zero(r.debit) or non_zero(r.credit)
    ]
    net_total = sum(r.net for r in rows)
    if not is_zeroish(net_total):
        logger.warning("Trial balance does not balance: net total %.2f.", net_total)
    lines.append(total(TRIAL_BALANCE_NET_LABEL, net_total))
    return lines


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def build_statement_lines(kind: str, payload: Any) -> list[Line]:
    """Build the flat Line list for any statement kind.

    Balance sheets are flattened assets, liabilities, equity (in that order);
    use ``normalize_balance_sheet`` directly to keep the sections apart.

    Raises:
        ValueError: if ``kind`` is not one of STATEMENT_KINDS.
    """
    if kind == "income-statement":
        return build_income_statement(payload)
    if kind == "balance-sheet":
        sheet = normalize_balance_sheet(payload)
        return [*sheet.assets, *sheet.liabilities, *sheet.equity]
    if kind == "cash-flow":
        return build_cash_flow(payload)
    if kind == "trial-balance":
        return trial_balance_lines(build_trial_balance(payload))
    raise ValueError(
        f"Unknown statement kind {kind!r}. Expected one of: "
        + ", ".join(STATEMENT_KINDS)
    )
