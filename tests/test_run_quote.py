"""Smoke tests for the quote runner with catalogue perils (no network)."""

import asyncio
import json

import pytest

import run_quote


def write_config(tmp_path, **policy):
    cfg = {
        "product": "Port closure cover",
        "policy": {
            "peril": "shipping-disruption",
            "lat": 31.23,
            "lng": 121.47,
            "trigger_value": 7.0,
            "coverage_amount": 100000,
            **policy,
        },
        "outputs": {
            "breakdown_json": str(tmp_path / "premium.json"),
            "backtest_csv": str(tmp_path / "backtest.csv"),
        },
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(cfg))
    return str(path)


def test_run_all_modes(tmp_path, capsys):
    asyncio.run(run_quote.run(write_config(tmp_path), "all"))

    out = capsys.readouterr().out
    assert "===== Premium =====" in out
    assert "===== Backtest =====" in out
    assert "===== Live check =====" in out
    assert (tmp_path / "premium.json").exists()
    assert (tmp_path / "backtest.csv").exists()


def test_main_reports_error_kind(tmp_path, monkeypatch, capsys):
    config = write_config(tmp_path, coverage_amount=-1)
    monkeypatch.setattr("sys.argv", ["run_quote.py", "--config", config])
    with pytest.raises(SystemExit) as exc:
        run_quote.main()
    assert exc.value.code == 1
    assert "invalid_policy" in capsys.readouterr().err
