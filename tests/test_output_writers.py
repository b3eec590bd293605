"""Tests for the JSON and CSV writers."""

import csv
import json

from satshield_pricing.backtest import backtest_observations
from satshield_pricing.models import PolicyParameters
from satshield_pricing.output_writers import (
    BACKTEST_FIELDS,
    write_backtest_csv,
    write_backtest_json,
    write_breakdown_json,
)
from satshield_pricing.pricing_engine import price_observations

from conftest import obs


def flood_policy():
    return PolicyParameters(peril="flood", lat=29.76, lng=-95.37,
                            trigger_value=1.0, coverage_amount=30_000.0)


SERIES = [obs("2008-05-01", 1.5), obs("2012-09-01", 0.4), obs("2017-08-01", 2.4)]


def test_breakdown_json(tmp_path, twenty_years):
    b = price_observations(flood_policy(), SERIES, twenty_years)
    path = tmp_path / "premium.json"
    write_breakdown_json(b, str(path))

    data = json.loads(path.read_text())
    assert data["peril"] == "flood"
    assert data["premium_amount"] == b.premium_amount
    assert data["frequency_interval"] == list(b.frequency_interval)
    assert data["confidence"] == "high"


def test_backtest_csv_has_every_event(tmp_path, twenty_years):
    r = backtest_observations(flood_policy(), SERIES, twenty_years)
    path = tmp_path / "backtest.csv"
    write_backtest_csv(r, str(path))

    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        rows = list(reader)
    assert reader.fieldnames == BACKTEST_FIELDS
    assert len(rows) == 3
    assert [row["fired"] for row in rows] == ["True", "False", "True"]
    assert rows[0]["timestamp"] == "2008-05-01T00:00:00Z"
    assert float(rows[0]["payout_amount"]) == 15_000.0


def test_backtest_json(tmp_path, twenty_years):
    r = backtest_observations(flood_policy(), SERIES, twenty_years)
    path = tmp_path / "backtest.json"
    write_backtest_json(r, str(path))

    data = json.loads(path.read_text())
    assert data["total_fired"] == 2
    assert len(data["events"]) == 3
    assert data["events"][2]["payout_fraction"] == 1.0
