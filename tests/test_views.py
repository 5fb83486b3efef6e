from datetime import date

import pandas as pd
import pytest

import finsight_statements.views as views
from finsight_statements.comparative import compare_lines
from finsight_statements.lines import detail, header, total
from finsight_statements.multi_periods import pivot_payloads
from finsight_statements.periods import Period
from finsight_statements.projections import Baseline, GrowthRates, project
from finsight_statements.statements import (
    build_cash_flow_sections,
    build_income_statement,
    build_trial_balance,
    normalize_balance_sheet,
)


def test_export_amount_rules() -> None:
    assert views.export_amount(None) == ""
    assert views.export_amount(float("inf")) == ""
    assert views.export_amount(0.001) == ""
    assert views.export_amount(0.001, always_show=True) == 0.0
    assert views.export_amount(-1234.567) == -1234.57
    assert views.export_amount("12.5") == 12.5


def test_statement_rows_layout() -> None:
    lines = build_income_statement(
        [
            {
                "section": "revenue",
                "amount": 1000,
                "accounts": [
                    {"name": "Sales", "amount": 1000},
                    {"name": "Rounding", "amount": 0.001},
                ],
            },
        ]
    )
    period = Period(start=date(2025, 1, 1), end=date(2025, 3, 31), label="Q1 2025")
    rows = views.statement_rows(lines, "Income Statement", period, "ZAR")

    assert rows[0] == ["Income Statement"]
    assert rows[1] == ["For the period 2025-01-01 to 2025-03-31"]
    assert rows[2] == [""]
    assert rows[3] == ["Item", "Amount (ZAR)"]
    assert ["Revenue", ""] in rows
    assert ["  Sales", 1000.0] in rows
    assert all(r[0] != "  Rounding" for r in rows)
    assert rows[-1] == ["NET PROFIT for the period", 1000.0]


def test_balance_sheet_rows_with_out_of_balance_row() -> None:
    sheet = normalize_balance_sheet(
        {
            "assets": {"current": 1000},
            "liabilities": {"current": 400},
            "openingEquity": 500,
        }
    )
    rows = views.balance_sheet_rows(sheet, date(2025, 3, 31))

    assert rows[1] == ["As of 2025-03-31"]
    assert ["ASSETS"] in rows
    assert ["EQUITY AND LIABILITIES"] in rows
    assert rows.index(["ASSETS"]) < rows.index(["EQUITY AND LIABILITIES"])
    assert ["TOTAL ASSETS", ""] in rows
    assert ["Total Current Assets", 1000.0] in rows
    assert rows[-3] == ["TOTAL ASSETS (control)", 1000.0]
    assert rows[-2] == ["TOTAL EQUITY AND LIABILITIES (control)", 900.0]
    assert rows[-1] == ["OUT OF BALANCE", 100.0]


def test_balanced_sheet_has_no_out_of_balance_row() -> None:
    sheet = normalize_balance_sheet({"assets": {"current": 500}, "openingEquity": 500})
    rows = views.balance_sheet_rows(sheet)
    assert rows[-1][0] == "TOTAL EQUITY AND LIABILITIES (control)"


def test_cash_flow_rows() -> None:
    sections = build_cash_flow_sections(
        {"operating": [{"line": "Receipts", "amount": 250}]}
    )
    rows = views.cash_flow_rows(sections)

    assert ["Operating Activities"] in rows
    assert ["Receipts", 250.0] in rows
    assert ["Net cash from Operating Activities", 250.0] in rows
    net_index = rows.index(["Net Increase / (Decrease) in Cash"])
    assert rows[net_index + 1] == ["", 250.0]


def _account(code, name, debit, credit):
    return {
        "code": code,
        "name": name,
        "balance_debit": debit,
        "balance_credit": credit,
    }


def test_trial_balance_rows_totals_and_filtering() -> None:
    accounts = build_trial_balance(
        [
            _account("1000", "Bank", 100, 0),
            _account("3000", "Capital", 0, 100),
            _account("9999", "Dormant", 0, 0),
        ]
    )
    rows = views.trial_balance_rows(accounts, currency="ZAR")

    assert ["Account", "Debit (ZAR)", "Credit (ZAR)"] in rows
    assert ["1000 - Bank", 100.0, ""] in rows
    assert ["3000 - Capital", "", 100.0] in rows
    assert all(r[0] != "9999 - Dormant" for r in rows)
    assert rows[-1] == ["TOTALS", 100.0, 100.0]


def test_pivot_rows_blank_missing_values() -> None:
    pivot = pivot_payloads(
        "cash-flow",
        ["Jan", "Feb"],
        [
            {"operating": [{"line": "Receipts", "amount": 10}]},
            {"operating": [{"line": "Grant", "amount": 5}]},
        ],
    )["lines"]
    rows = views.pivot_rows(pivot, "Cash Flow")

    assert ["Item", "Jan", "Feb"] in rows
    assert ["  Receipts", 10.0, ""] in rows
    assert ["  Grant", "", 5.0] in rows


def test_comparative_rows() -> None:
    compared = compare_lines(
        [header("Revenue"), detail("  Sales", 150.0), total("Total", 150.0)],
        [header("Revenue"), detail("  Sales", 100.0), total("Total", 100.0)],
    )
    rows = views.comparative_rows(compared, "Income Statement", "2025", "2024")

    assert ["Item", "2025", "2024", "Change", "Change %"] in rows
    assert ["Revenue", "", "", "", ""] in rows
    assert ["  Sales", 150.0, 100.0, 50.0, 50.0] in rows


def test_projection_rows() -> None:
    points = project(
        Baseline(sales=100.0, cost_of_goods=40.0, total_expenses=20.0),
        GrowthRates(revenue=0, cost=0, expenses=0),
        1,
        granularity="yearly",
    )
    rows = views.projection_rows(points)

    assert ["Metric", "Baseline", "Year 1"] in rows
    assert ["Net Profit", 40.0, 40.0] in rows
    assert views.projection_rows([])[-1] == ["No data available."]


def test_statement_to_dataframe() -> None:
    df = views.statement_to_dataframe(
        [header("Revenue"), detail("  Sales", 10.0), detail("  Nil", 0.0)]
    )
    assert list(df["item"]) == ["Revenue", "  Sales"]
    assert pd.isna(df.iloc[0]["amount"])
    assert df.iloc[1]["amount"] == pytest.approx(10.0)


def test_write_csv(tmp_path) -> None:
    rows = [["Title"], [""], ["Item", "Amount"], ["Sales", 12.5]]
    path = views.write_csv(rows, tmp_path / "out" / "report.csv")

    content = path.read_text(encoding="utf-8").splitlines()
    assert content[0] == "Title,"
    assert content[2] == "Item,Amount"
    assert content[3] == "Sales,12.5"
