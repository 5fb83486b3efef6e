import logging

import pytest

import finsight_statements.projections as pj
from finsight_statements.projections import (
    Absolute,
    Baseline,
    GrowthRates,
    InvalidOverrideError,
    OverrideMap,
    PercentAdjustment,
)


def _baseline():
    return Baseline(sales=1000.0, cost_of_goods=400.0, total_expenses=300.0)


def _rates():
    return GrowthRates(revenue=10.0, cost=0.0, expenses=0.0)


def test_growth_exponent() -> None:
    assert pj.growth_exponent(3, "yearly") == 3
    assert pj.growth_exponent(12, "monthly") == pytest.approx(1.0)
    assert pj.growth_exponent(6, "monthly") == pytest.approx(0.5)
    with pytest.raises(ValueError):
        pj.growth_exponent(1, "weekly")


def test_month_12_matches_one_full_year() -> None:
    points = pj.project(_baseline(), _rates(), 12)

    assert len(points) == 13
    assert points[0].period == "Baseline"
    assert points[0].key is None
    assert points[12].period == "Month 12"
    assert points[12].key == "12-months-12"
    assert points[12].sales == pytest.approx(1100.0)


def test_percent_override_applies_on_top_of_growth() -> None:
    """Generated 1100 with +5% gives 1155."""
    overrides = OverrideMap()
    overrides.set("12-months-12", "sales", PercentAdjustment(5))
    points = pj.project(_baseline(), _rates(), 12, overrides=overrides)

    assert points[12].sales == pytest.approx(1155.0)
    assert points[12].overridden == frozenset({"sales"})
    assert points[11].overridden == frozenset()


def test_absolute_override_ignores_generated_value() -> None:
    overrides = OverrideMap()
    assert overrides.apply_edit("12-months-12", "sales", "2000")
    points = pj.project(_baseline(), _rates(), 12, overrides=overrides)
    assert points[12].sales == 2000.0


def test_derived_metrics_are_recomputed() -> None:
    overrides = OverrideMap()
    overrides.apply_edit("5-years-1", "costs", "500")
    points = pj.project(
        _baseline(), _rates(), 5, granularity="yearly", overrides=overrides
    )
    year1 = points[1]

    assert year1.period == "Year 1"
    assert year1.sales == pytest.approx(1100.0)
    assert year1.gross_profit == pytest.approx(600.0)
    assert year1.net_profit == pytest.approx(300.0)


def test_override_cleanup_removes_the_period_key() -> None:
    overrides = OverrideMap()
    overrides.apply_edit("12-months-3", "sales", "+5%")
    assert "12-months-3" in overrides

    assert overrides.apply_edit("12-months-3", "sales", "")
    assert "12-months-3" not in overrides
    assert len(overrides) == 0
    assert overrides.to_dict() == {}


def test_clearing_one_metric_keeps_the_others() -> None:
    overrides = OverrideMap()
    overrides.apply_edit("12-months-3", "sales", "100")
    overrides.apply_edit("12-months-3", "costs", "-2%")
    overrides.apply_edit("12-months-3", "sales", "  ")

    assert overrides.to_dict() == {"12-months-3": {"costs": "-2%"}}


def test_invalid_edit_leaves_the_map_unchanged(caplog) -> None:
    overrides = OverrideMap()
    overrides.apply_edit("12-months-1", "sales", "1500")

    with caplog.at_level(logging.INFO, logger="finsight_statements.projections"):
        assert not overrides.apply_edit("12-months-1", "sales", "lots")
        assert not overrides.apply_edit("12-months-1", "sales", "abc%")

    assert overrides.get("12-months-1", "sales") == Absolute(1500.0)
    assert "rejected" in caplog.text


def test_baseline_and_derived_metrics_cannot_be_overridden() -> None:
    overrides = OverrideMap()
    with pytest.raises(ValueError):
        overrides.apply_edit("Baseline", "sales", "10")
    with pytest.raises(ValueError):
        overrides.apply_edit("12-months-1", "net_profit", "10")
    assert len(overrides) == 0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", None),
        ("5%", PercentAdjustment(5.0)),
        ("+5%", PercentAdjustment(5.0)),
        (" -2.5% ", PercentAdjustment(-2.5)),
        ("2000", Absolute(2000.0)),
        ("-150.5", Absolute(-150.5)),
        (42, Absolute(42.0)),
    ],
)
def test_parse_override(text, expected) -> None:
    assert pj.parse_override(text) == expected


@pytest.mark.parametrize(
    "text", ["abc", "5%%", "%", "1e", "inf", "1e999", "1e999%", True]
)
def test_parse_override_rejects_garbage(text) -> None:
    with pytest.raises(InvalidOverrideError):
        pj.parse_override(text)


def test_override_text_form_round_trips() -> None:
    overrides = OverrideMap()
    overrides.apply_edit("5-years-2", "sales", "+5%")
    overrides.apply_edit("5-years-2", "expenses", "750")

    raw = overrides.to_dict()
    assert raw == {"5-years-2": {"sales": "+5%", "expenses": 750.0}}
    assert OverrideMap.from_dict(raw).to_dict() == raw


def test_baseline_from_payload() -> None:
    baseline = Baseline.from_payload(
        {"sales": "1000", "costOfGoods": 400, "totalExpenses": None}
    )
    assert baseline == Baseline(sales=1000.0, cost_of_goods=400.0, total_expenses=0.0)
    assert Baseline.from_payload([1, 2, 3]) is None


def test_project_without_baseline_is_empty() -> None:
    assert pj.project(None, GrowthRates(), 12) == []


def test_project_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError):
        pj.project(_baseline(), GrowthRates(), 12, granularity="weekly")
    with pytest.raises(ValueError):
        pj.project(_baseline(), GrowthRates(), -1)


def test_custom_tab_id_is_used_for_override_lookup() -> None:
    overrides = OverrideMap()
    overrides.apply_edit("custom-2", "sales", "5")
    points = pj.project(_baseline(), _rates(), 3, overrides=overrides, tab_id="custom")
    assert points[2].key == "custom-2"
    assert points[2].sales == 5.0


def test_projection_table_is_inverted_and_rounded() -> None:
    points = pj.project(_baseline(), _rates(), 2, granularity="yearly")
    df = pj.projection_table(points)

    assert list(df.columns) == ["metric", "Baseline", "Year 1", "Year 2"]
    assert list(df["metric"]) == [
        "Sales",
        "Cost of Goods",
        "Gross Profit",
        "Total Expenses",
        "Net Profit",
    ]
    assert df.iloc[0]["Year 2"] == 1210
    assert df.iloc[4]["Baseline"] == 300


def test_projection_period_lines_can_be_pivoted() -> None:
    from finsight_statements.multi_periods import align_periods

    points = pj.project(_baseline(), _rates(), 2, granularity="yearly")
    labels, period_lines = pj.projection_period_lines(points)
    rows = {row.key: row for row in align_periods(period_lines)}

    assert labels == ["Baseline", "Year 1", "Year 2"]
    assert rows["Net Profit"].values[0] == pytest.approx(300.0)
    assert rows["Net Profit"].is_total


@pytest.mark.parametrize(
    "rates",
    [
        {"revenue": -150.0},
        {"cost": -100.0},
        {"expenses": float("nan")},
        {"revenue": float("inf")},
    ],
)
def test_growth_rates_must_stay_above_minus_100(rates) -> None:
    with pytest.raises(ValueError):
        GrowthRates(**rates)


def test_steep_decline_stays_real() -> None:
    points = pj.project(_baseline(), GrowthRates(revenue=-99.0), 2)
    assert all(isinstance(p.sales, float) and p.sales > 0 for p in points)
    assert pj.projection_table(points).iloc[0]["Month 2"] >= 0
