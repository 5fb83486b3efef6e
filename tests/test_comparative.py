import math

import pandas as pd
import pytest

import finsight_statements.comparative as cmp
from finsight_statements.lines import detail, header, total
from finsight_statements.statements import normalize_balance_sheet


def test_percent_change_guard_on_zero_previous() -> None:
    """500 vs 0 has no percentage change (no infinity, no exception)."""
    assert cmp.percent_change(500, 0) is None
    assert cmp.percent_change(500, 0.004) is None
    assert cmp.percent_change(500, None) is None
    assert cmp.percent_change(500, math.nan) is None


def test_percent_change_uses_absolute_previous() -> None:
    assert cmp.percent_change(150, 100) == pytest.approx(50.0)
    assert cmp.percent_change(-50, -100) == pytest.approx(50.0)
    assert cmp.percent_change(0, 200) == pytest.approx(-100.0)


def test_compare_lines_delta_and_missing_sides() -> None:
    current = [
        header("Revenue"),
        detail("  Sales", 500.0),
        detail("  Grants", 40.0),
        total("Total Revenue", 540.0, kind="subtotal"),
    ]
    previous = [
        header("Revenue"),
        detail("  Sales", 400.0),
        detail("  Royalties", 10.0),
        total("Total Revenue", 410.0, kind="subtotal"),
    ]
    rows = {row.key: row for row in cmp.compare_lines(current, previous)}

    assert list(rows) == [
        "Revenue",
        "  Sales",
        "  Grants",
        "Total Revenue",
        "  Royalties",
    ]
    assert rows["  Sales"].delta == pytest.approx(100.0)
    assert rows["  Sales"].percent_change == pytest.approx(25.0)

    grants = rows["  Grants"]
    assert grants.previous is None
    assert grants.delta == pytest.approx(40.0)
    assert grants.percent_change is None

    royalties = rows["  Royalties"]
    assert royalties.current is None
    assert royalties.delta == pytest.approx(-10.0)
    assert royalties.percent_change == pytest.approx(-100.0)
    assert royalties.display_current() is None


def test_compare_balance_sheets_by_section() -> None:
    current = normalize_balance_sheet(
        {"assets": {"current": 600}, "openingEquity": 600}
    )
    previous = normalize_balance_sheet(
        {"assets": {"current": 500}, "openingEquity": 500}
    )
    sections = cmp.compare_balance_sheets(current, previous)

    assert list(sections) == ["assets", "liabilities", "equity"]
    assets = {row.key: row for row in sections["assets"]}
    assert assets["Total Current Assets"].delta == pytest.approx(100.0)
    assert assets["Total Current Assets"].percent_change == pytest.approx(20.0)


def test_comparative_dataframe_columns_and_blank_subheaders() -> None:
    rows = cmp.compare_lines(
        [header("Revenue"), detail("  Sales", 500.0)],
        [header("Revenue"), detail("  Sales", 0.0)],
    )
    df = cmp.comparative_to_dataframe(rows, "FY2025", "FY2024")

    assert list(df.columns) == ["item", "FY2025", "FY2024", "delta", "percent_change"]
    heading = df.iloc[0]
    assert heading["item"] == "Revenue"
    assert pd.isna(heading["FY2025"]) and pd.isna(heading["delta"])

    sales = df.iloc[1]
    assert sales["FY2025"] == pytest.approx(500.0)
    assert pd.isna(sales["FY2024"])
    assert sales["delta"] == pytest.approx(500.0)
    assert pd.isna(sales["percent_change"])


def test_comparative_dataframe_with_identical_labels() -> None:
    rows = cmp.compare_lines([detail("  Sales", 150.0)], [detail("  Sales", 100.0)])
    df = cmp.comparative_to_dataframe(rows, "Q1", "Q1")

    assert list(df.columns) == ["item", "Q1", "Q1", "delta", "percent_change"]
    assert df.iloc[0, 1] == pytest.approx(150.0)
    assert df.iloc[0, 2] == pytest.approx(100.0)
    assert df.iloc[0, 4] == pytest.approx(50.0)


def test_net_result_rows_split_on_sign_even_when_matching_on_id() -> None:
    """Profit and loss rows hold absolute amounts and never share a row."""
    profit = [total("NET PROFIT for the period", 200.0)]
    loss = [total("NET LOSS for the period", 100.0)]
    rows = cmp.compare_lines(profit, loss, match_on="id")

    assert [(r.key, r.current, r.previous) for r in rows] == [
        ("NET PROFIT for the period", 200.0, None),
        ("NET LOSS for the period", None, 100.0),
    ]
