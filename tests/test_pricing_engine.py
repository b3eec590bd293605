"""Tests for the parametric pricing engine.

Tests cover:
  - earthquake scenario numbers
  - graduated severity
  - rate invariants for every peril
  - empty-series floor premium and low confidence
  - exposure period
  - Poisson rate interval and annual loss CV
  - determinism
"""

import math
from datetime import date

import pytest

from satshield_pricing.models import PolicyParameters, SignalWindow, TriggerOutcome
from satshield_pricing.perils import PERIL_TABLE, Peril
from satshield_pricing.pricing_engine import (
    annual_loss_cv,
    confidence_level,
    poisson_rate_interval,
    price_observations,
)

from conftest import obs


def policy(peril, trigger, coverage=50_000.0, term_months=12):
    return PolicyParameters(peril=peril, lat=37.77, lng=-122.42,
                            trigger_value=trigger, coverage_amount=coverage,
                            term_months=term_months)


# ---------------------------------------------------------------------------
# Scenario numbers
# ---------------------------------------------------------------------------

def test_earthquake_breakdown(twenty_years):
    series = [obs("2010-03-01", 6.0), obs("2014-08-24", 5.9)]
    b = price_observations(policy("earthquake", 6.0), series, twenty_years)

    assert b.event_count == 1
    assert b.n_observations == 2
    assert math.isclose(b.expected_frequency, 1 / 20, rel_tol=1e-9)
    assert b.expected_severity == 1.0
    assert math.isclose(b.pure_risk_rate, 0.05, rel_tol=1e-9)
    assert b.loading_factor == 2.2
    d = b.to_dict()
    assert (d["pool_margin"], d["reinsurance_cost"], d["volatility_buffer"]) == (0.3, 0.5, 0.4)
    assert math.isclose(d["loading_factor"], 1.0 + d["pool_margin"]
                        + d["reinsurance_cost"] + d["volatility_buffer"])
    assert math.isclose(b.gross_premium_rate, 0.11, rel_tol=1e-9)
    assert math.isclose(b.premium_amount, 5500.0, rel_tol=1e-9)
    assert math.isclose(b.trigger_probability, 1 - math.exp(-0.05), rel_tol=1e-9)
    assert b.confidence == "high"
    assert b.low_confidence is False
    assert b.is_simulated is False
    assert b.data_range == "2005–2025"


def test_graduated_severity_is_mean_fraction(twenty_years):
    # flood trigger 1.0, ceiling 2.0: fractions 0.5 and 1.0, one miss
    series = [obs("2008-05-01", 1.5), obs("2012-09-01", 2.4), obs("2016-01-01", 0.3)]
    b = price_observations(policy("flood", 1.0), series, twenty_years)
    assert b.event_count == 2
    assert math.isclose(b.expected_severity, 0.75)
    assert math.isclose(b.expected_frequency, 2 / 20)
    assert math.isclose(b.pure_risk_rate, 0.1 * 0.75)


def test_exposure_fraction_scales_pure_rate(twenty_years):
    series = [obs("2010-03-01", 7.0)]
    annual = price_observations(policy("earthquake", 6.0), series, twenty_years)
    half = price_observations(policy("earthquake", 6.0, term_months=6),
                              series, twenty_years)
    assert half.exposure_fraction == 0.5
    assert math.isclose(half.pure_risk_rate, annual.pure_risk_rate / 2)


def test_floor_applies_when_pure_rate_is_tiny(twenty_years):
    series = [obs("2010-03-01", 7.0)]
    b = price_observations(policy("earthquake", 6.0, term_months=1),
                           series, twenty_years)
    # 0.05 / 12 * 2.2 = 0.00917 > 0.005 floor; one month of a rarer peril
    # drops below it
    assert b.gross_premium_rate >= b.floor_premium_rate
    rare = price_observations(policy("earthquake", 6.0, term_months=1),
                              series, SignalWindow(date(1925, 1, 1), date(2025, 1, 1)))
    assert rare.gross_premium_rate == rare.floor_premium_rate


# ---------------------------------------------------------------------------
# Invariants across perils
# ---------------------------------------------------------------------------

REPRESENTATIVE = {
    Peril.EARTHQUAKE: (6.0, [5.5, 6.0, 6.8]),
    Peril.FLOOD: (1.0, [0.4, 1.2, 2.5]),
    Peril.DROUGHT: (0.15, [0.30, 0.12, 0.15]),
    Peril.CROP_YIELD: (-100.0, [40.0, -120.0, -260.0]),
    Peril.EXTREME_HEAT: (38.0, [35.0, 39.5, 44.0]),
    Peril.FLIGHT_DELAY: (120.0, [150.0, 180.0, 90.0]),
    Peril.SHIPPING_DISRUPTION: (7.0, [5.0, 14.0, 30.0]),
    Peril.CYBER_OUTAGE: (240.0, [240.0, 180.0, 720.0]),
}


@pytest.mark.parametrize("peril", list(Peril))
@pytest.mark.parametrize("coverage", [1.0, 50_000.0, 10_000_000.0])
def test_rate_invariants(peril, coverage, twenty_years):
    trigger, values = REPRESENTATIVE[peril]
    series = [obs(f"{2006 + 4 * i}-06-01", v) for i, v in enumerate(values)]
    b = price_observations(policy(peril, trigger, coverage), series, twenty_years)

    assert b.gross_premium_rate >= b.pure_risk_rate >= 0.0
    assert b.loading_factor >= 1.0
    assert math.isfinite(b.premium_amount)
    assert b.premium_amount > 0.0
    assert 0.0 <= b.expected_severity <= 1.0


def test_loading_factors_within_table_range():
    for cfg in PERIL_TABLE.values():
        assert 1.4 <= cfg.loading_factor <= 2.2
        assert cfg.floor_premium_rate > 0


# ---------------------------------------------------------------------------
# Insufficient data
# ---------------------------------------------------------------------------

def test_empty_series_floor_premium(twenty_years):
    b = price_observations(policy("earthquake", 6.0), [], twenty_years)
    assert b.expected_frequency == 0.0
    assert b.expected_severity == 0.0
    assert b.pure_risk_rate == 0.0
    assert b.gross_premium_rate == PERIL_TABLE[Peril.EARTHQUAKE].floor_premium_rate
    assert math.isclose(b.premium_amount, 50_000 * 0.005)
    assert b.low_confidence is True
    assert b.confidence == "low"
    assert b.frequency_interval == (0.0, 0.0)
    assert b.loss_cv is None
    assert b.years_of_data == 0.0


def test_no_fired_observations_severity_zero_not_nan(twenty_years):
    series = [obs("2010-01-01", 4.0), obs("2011-01-01", 5.0)]
    b = price_observations(policy("earthquake", 6.0), series, twenty_years)
    assert b.expected_severity == 0.0
    assert b.expected_frequency == 0.0
    assert b.premium_amount > 0.0


def test_zero_length_window_does_not_divide_by_zero():
    window = SignalWindow(date(2024, 1, 1), date(2024, 1, 1))
    b = price_observations(policy("earthquake", 6.0), [obs("2024-01-01", 7.0)], window)
    assert b.expected_frequency == 0.0
    assert math.isfinite(b.premium_amount)


def test_short_window_is_low_confidence():
    window = SignalWindow(date(2020, 1, 1), date(2023, 1, 1))
    b = price_observations(policy("flood", 1.0), [obs("2021-05-01", 1.4)], window)
    assert b.confidence == "low"
    assert b.low_confidence is True


def test_simulated_peril_caps_at_medium(twenty_years):
    series = [obs("2017-02-28", 240.0)]
    b = price_observations(policy("cyber-outage", 200.0), series, twenty_years)
    assert b.is_simulated is True
    assert b.confidence == "medium"


def test_confidence_levels():
    assert confidence_level(0, 30.0, False) == "low"
    assert confidence_level(5, 20.0, False) == "high"
    assert confidence_level(5, 10.0, False) == "medium"
    assert confidence_level(5, 5.0, False) == "low"


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------

def test_poisson_interval_zero_events():
    lo, hi = poisson_rate_interval(0, 10.0)
    assert lo == 0.0
    # chi2(2) quantile has closed form -2 ln(1 - q)
    assert math.isclose(hi, -math.log(0.025) / 10.0, rel_tol=1e-9)


def test_poisson_interval_brackets_point_estimate():
    lo, hi = poisson_rate_interval(4, 20.0)
    assert lo < 4 / 20 < hi


def test_poisson_interval_no_years():
    assert poisson_rate_interval(3, 0.0) == (0.0, 0.0)


def test_annual_loss_cv():
    window = SignalWindow(date(2020, 1, 1), date(2023, 12, 31))
    series = [obs("2020-06-01", 1.0), obs("2022-06-01", 1.0)]
    outcomes = [TriggerOutcome(True, 1.0), TriggerOutcome(True, 1.0)]
    # annual losses [1, 0, 1, 0]
    assert math.isclose(annual_loss_cv(series, outcomes, window), 2 / math.sqrt(3))


def test_annual_loss_cv_undefined():
    window = SignalWindow(date(2020, 1, 1), date(2023, 12, 31))
    series = [obs("2020-06-01", 1.0)]
    assert annual_loss_cv(series, [TriggerOutcome(False, 0.0)], window) is None
    single_year = SignalWindow(date(2020, 1, 1), date(2020, 12, 31))
    assert annual_loss_cv(series, [TriggerOutcome(True, 1.0)], single_year) is None


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

def test_deterministic(twenty_years):
    series = [obs("2008-05-01", 1.5), obs("2012-09-01", 2.4)]
    p = policy("flood", 1.0)
    a = price_observations(p, series, twenty_years)
    b = price_observations(p, series, twenty_years)
    assert a == b
    assert a.to_dict() == b.to_dict()
