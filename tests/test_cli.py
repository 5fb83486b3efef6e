import json
from pathlib import Path

import pytest

from finsight_statements import __version__
from finsight_statements.cli import main
from finsight_statements.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Run every CLI test from an empty directory with pristine logging."""
    monkeypatch.chdir(tmp_path)
    yield
    reset_logging()


def _dump(path: Path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _section(key: str, account: str, amount: float) -> dict:
    return {
        "section": key,
        "amount": amount,
        "accounts": [{"name": account, "amount": amount}],
    }


def _income(tmp_path: Path, name: str, expenses: float) -> str:
    return _dump(
        tmp_path / name,
        [
            _section("revenue", "Sales", 1000),
            _section("cogs", "Purchases", 400),
            _section("admin", "Rent", expenses),
        ],
    )


def _receipts(amount: float) -> dict:
    return {"line": "Receipts", "amount": amount}


def _bank(debit: float) -> dict:
    return {"code": "1", "name": "Bank", "balance_debit": debit}


def test_version(capsys) -> None:
    main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])


def test_statement_table(tmp_path, capsys) -> None:
    main(["statement", "income-statement", _income(tmp_path, "is.json", 800)])
    out = capsys.readouterr().out

    assert "=== Income Statement ===" in out
    assert "Gross Profit" in out
    assert "NET LOSS for the period" in out


def test_statement_balance_sheet_csv(tmp_path, capsys) -> None:
    payload = _dump(
        tmp_path / "bs.json",
        {
            "assets": {"current": 1000},
            "liabilities": {"current": 400},
            "openingEquity": 500,
        },
    )
    out_dir = tmp_path / "out"
    main(
        [
            "--display-mode",
            "csv",
            "--output-dir",
            str(out_dir),
            "statement",
            "balance-sheet",
            payload,
            "--to",
            "2025-03-31",
            "--from",
            "2025-01-01",
        ]
    )
    (csv_file,) = out_dir.glob("balance_sheet_*.csv")
    content = csv_file.read_text(encoding="utf-8")

    assert "Wrote" in capsys.readouterr().out
    assert "As of 2025-03-31" in content
    assert "OUT OF BALANCE,100.0" in content


def test_statement_missing_payload_is_a_usage_error(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["statement", "cash-flow", str(tmp_path / "missing.json")])
    assert exc.value.code == 2


def test_pivot_with_month_buckets(tmp_path, capsys) -> None:
    jan = _dump(tmp_path / "jan.json", {"operating": [_receipts(10)]})
    feb = _dump(tmp_path / "feb.json", {"operating": [_receipts(20)]})
    main(["pivot", "cash-flow", jan, feb, "--from", "2025-01-01", "--to", "2025-02-28"])
    out = capsys.readouterr().out

    assert "Jan 2025" in out and "Feb 2025" in out
    assert "Receipts" in out


def test_pivot_rejects_payload_count_mismatch(tmp_path) -> None:
    jan = _dump(tmp_path / "jan.json", {})
    with pytest.raises(SystemExit):
        main(["pivot", "cash-flow", jan, "--from", "2025-01-01", "--to", "2025-03-31"])


def test_pivot_without_dates_uses_file_names(tmp_path, capsys) -> None:
    a = _dump(tmp_path / "fy2024.json", [_bank(5)])
    b = _dump(tmp_path / "fy2025.json", [_bank(7)])
    main(["pivot", "trial-balance", a, b])
    out = capsys.readouterr().out
    assert "fy2024" in out and "fy2025" in out


def test_compare(tmp_path, capsys) -> None:
    current = _income(tmp_path, "current.json", 100)
    previous = _income(tmp_path, "previous.json", 800)
    main(["compare", "income-statement", current, previous])
    out = capsys.readouterr().out

    assert "Comparative" in out
    assert "percent_change" in out
    assert "NET PROFIT for the period" in out
    assert "NET LOSS for the period" in out


def test_project_with_edits_and_saved_overrides(tmp_path, capsys) -> None:
    baseline = _dump(
        tmp_path / "baseline.json",
        {"sales": 1000, "costOfGoods": 400, "totalExpenses": 300},
    )
    out_dir = tmp_path / "out"
    saved = tmp_path / "overrides.json"
    main(
        [
            "--display-mode",
            "both",
            "--output-dir",
            str(out_dir),
            "project",
            baseline,
            "--set",
            "12:sales=2000",
            "--set",
            "3:costs=+5%",
            "--save-overrides",
            str(saved),
        ]
    )
    out = capsys.readouterr().out
    (csv_file,) = out_dir.glob("projections_*.csv")

    assert "Month 12" in out
    assert "2000.0" in csv_file.read_text(encoding="utf-8")
    assert json.loads(saved.read_text(encoding="utf-8")) == {
        "12-months-12": {"sales": 2000.0},
        "12-months-3": {"costs": "+5%"},
    }


def test_project_custom_range_and_yearly(tmp_path, capsys) -> None:
    baseline = _dump(tmp_path / "baseline.json", {"sales": 100})

    main(["project", baseline, "--from", "2025-01-01", "--to", "2025-03-31"])
    out = capsys.readouterr().out
    assert "Month 3" in out and "Month 4" not in out

    main(["project", baseline, "--granularity", "yearly", "--periods", "2"])
    out = capsys.readouterr().out
    assert "Year 2" in out and "Year 3" not in out


@pytest.mark.parametrize(
    "edit",
    ["12:sales=lots", "12:net_profit=5", "99:sales=5", "sales=5"],
)
def test_project_rejects_bad_edits(tmp_path, edit) -> None:
    baseline = _dump(tmp_path / "baseline.json", {"sales": 100})
    with pytest.raises(SystemExit):
        main(["project", baseline, "--set", edit])


def test_invalid_config_is_a_usage_error(tmp_path) -> None:
    config = tmp_path / "bad.toml"
    config.write_text('[display]\nmode = "pdf"\n', encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["--config", str(config), "statement", "cash-flow", "x.json"])


def test_pivot_with_repeated_file_names(tmp_path, capsys) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    first = _dump(tmp_path / "a" / "jan.json", {"operating": [_receipts(10)]})
    second = _dump(tmp_path / "b" / "jan.json", {"operating": [_receipts(20)]})
    main(["pivot", "cash-flow", first, second])
    out = capsys.readouterr().out

    assert "Receipts" in out
    assert "jan" in out


@pytest.mark.parametrize("option", ["--revenue-growth", "--expense-growth"])
def test_project_rejects_growth_at_or_below_minus_100(tmp_path, option) -> None:
    baseline = _dump(tmp_path / "baseline.json", {"sales": 100})
    with pytest.raises(SystemExit) as exc:
        main(["project", baseline, option, "-150"])
    assert exc.value.code == 2
