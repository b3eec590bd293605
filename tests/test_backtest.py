"""Tests for the historical backtest."""

import math
from datetime import date

from satshield_pricing.backtest import backtest_observations
from satshield_pricing.fetchers.catalogue import CatalogueProvider
from satshield_pricing.models import PolicyParameters, SignalWindow
from satshield_pricing.perils import Peril

from conftest import obs


def policy(peril, trigger, coverage=50_000.0, term_months=12):
    return PolicyParameters(peril=peril, lat=29.76, lng=-95.37,
                            trigger_value=trigger, coverage_amount=coverage,
                            term_months=term_months)


def test_empty_series_has_no_loss_ratio(twenty_years):
    r = backtest_observations(policy("earthquake", 6.0), [], twenty_years)
    assert r.events == ()
    assert r.total_fired == 0
    assert r.total_payout == 0.0
    assert r.premium_equivalent == 0.0
    assert r.implied_loss_ratio is None


def test_earthquake_scenario(twenty_years):
    series = [obs("2010-03-01", 6.0), obs("2014-08-24", 5.9)]
    r = backtest_observations(policy("earthquake", 6.0), series, twenty_years)

    assert len(r.events) == 2
    assert r.total_fired == 1
    assert r.total_payout == 50_000.0
    # 5500/yr over 20 years
    assert math.isclose(r.premium_equivalent, 110_000.0, rel_tol=1e-9)
    assert math.isclose(r.implied_loss_ratio, 50_000 / 110_000, rel_tol=1e-9)
    assert r.data_range == "2005–2025"
    assert r.is_simulated is False


def test_events_are_chronological_and_complete(twenty_years):
    series = [obs("2019-01-01", 1.5), obs("2007-06-01", 0.2), obs("2012-09-01", 2.4)]
    r = backtest_observations(policy("flood", 1.0), series, twenty_years)

    stamps = [e.timestamp for e in r.events]
    assert stamps == sorted(stamps)
    assert len(r.events) == len(series)
    assert [e.fired for e in r.events] == [False, True, True]


def test_total_payout_is_sum_of_event_amounts(twenty_years):
    series = [obs("2008-05-01", 1.5), obs("2012-09-01", 2.4), obs("2016-01-01", 0.3)]
    r = backtest_observations(policy("flood", 1.0, coverage=20_000.0), series, twenty_years)
    amounts = [e.payout_amount for e in r.events]
    assert amounts == [10_000.0, 20_000.0, 0.0]
    assert r.total_payout == sum(amounts)
    for e in r.events:
        assert math.isclose(e.payout_amount, e.payout_fraction * 20_000.0)


def test_short_term_scales_premium_equivalent(twenty_years):
    series = [obs("2010-03-01", 7.0), obs("2020-03-01", 7.0)]
    annual = backtest_observations(policy("earthquake", 6.0), series, twenty_years)
    half = backtest_observations(policy("earthquake", 6.0, term_months=6),
                                 series, twenty_years)
    # half the premium per term, twice as many terms
    assert math.isclose(half.premium_equivalent, annual.premium_equivalent)


def test_catalogue_shipping_backtest():
    window = SignalWindow(date(2015, 1, 1), date(2025, 1, 1))
    series = CatalogueProvider(Peril.SHIPPING_DISRUPTION)._select(window)
    r = backtest_observations(policy("shipping-disruption", 7.0), series, window)

    assert len(r.events) == 4
    assert r.total_fired == 2
    assert r.is_simulated is True
    assert all(e.label for e in r.events)
