"""
Parametric Pricing Engine — frequency x severity with a loading table.

The engine never fetches data.  It consumes:
  - a policy     (peril, location, trigger, coverage, term)
  - a series     (signal observations, chronological)
  - a window     (the span the series was fetched for)
  - a peril table (loading components, saturation multiple, floor rate)

Pricing equations
-----------------
    expected_frequency = n_fired / observed_years
    expected_severity  = mean(payout_fraction | fired)     (0 if none fired)
    pure_risk_rate     = frequency * severity * exposure_fraction
    loading_factor     = 1 + pool_margin + reinsurance_cost + volatility_buffer
    gross_premium_rate = max(pure_risk_rate * loading_factor, floor_rate)
    premium_amount     = gross_premium_rate * coverage_amount

``observed_years`` is the window length when the series is non-empty and 0
when it is empty (nothing was observed).
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict

import numpy as np
from scipy import stats

from satshield_pricing.models import (
    PolicyParameters,
    PremiumBreakdown,
    SignalObservation,
    SignalWindow,
    TriggerOutcome,
)
from satshield_pricing.perils import peril_config
from satshield_pricing.trigger_rules import evaluate

logger = logging.getLogger(__name__)

# Confidence bands on years of data (15+ high, 8+ medium).
HIGH_CONFIDENCE_YEARS = 15.0
MEDIUM_CONFIDENCE_YEARS = 8.0


# ============================================================================
# Statistics helpers
# ============================================================================

def observed_years(observations: list[SignalObservation],
                   window: SignalWindow) -> float:
    return window.years if observations else 0.0


def poisson_rate_interval(n_events: int, years: float,
                          level: float = 0.95) -> tuple[float, float]:
    """Exact (Garwood) confidence interval on an annual Poisson rate."""
    if years <= 0:
        return (0.0, 0.0)
    alpha = 1.0 - level
    lower = 0.0 if n_events == 0 else stats.chi2.ppf(alpha / 2.0, 2 * n_events) / 2.0
    upper = stats.chi2.ppf(1.0 - alpha / 2.0, 2 * n_events + 2) / 2.0
    return (float(lower) / years, float(upper) / years)


def annual_loss_cv(observations: list[SignalObservation],
                   outcomes: list[TriggerOutcome],
                   window: SignalWindow) -> float | None:
    """Coefficient of variation of summed payout fractions per calendar year.

    Returns None with fewer than two years or zero mean loss.
    """
    years = list(range(window.start.year, window.end.year + 1))
    if len(years) < 2:
        return None

    per_year: dict[int, float] = defaultdict(float)
    for obs, out in zip(observations, outcomes):
        per_year[obs.timestamp.year] += out.payout_fraction

    losses = np.array([per_year.get(y, 0.0) for y in years], dtype=float)
    mean = losses.mean()
    if mean <= 0:
        return None
    return float(losses.std(ddof=1) / mean)


def confidence_level(n_observations: int, years: float, simulated: bool) -> str:
    if n_observations == 0:
        return "low"
    if years >= HIGH_CONFIDENCE_YEARS and not simulated:
        return "high"
    if years >= MEDIUM_CONFIDENCE_YEARS:
        return "medium"
    return "low"


# ============================================================================
# Core pricing
# ============================================================================

def price_outcomes(
    policy: PolicyParameters,
    observations: list[SignalObservation],
    outcomes: list[TriggerOutcome],
    window: SignalWindow,
    table: dict | None = None,
) -> PremiumBreakdown:
    """Aggregate already-evaluated outcomes into a premium breakdown."""
    cfg = peril_config(policy.peril, table)

    years = observed_years(observations, window)
    fired = [o for o in outcomes if o.fired]
    n_fired = len(fired)

    frequency = n_fired / years if years > 0 else 0.0
    severity = (sum(o.payout_fraction for o in fired) / n_fired) if n_fired else 0.0

    exposure = policy.exposure_fraction
    pure_rate = frequency * severity * exposure
    gross_rate = max(pure_rate * cfg.loading_factor, cfg.floor_premium_rate)
    premium = gross_rate * policy.coverage_amount

    confidence = confidence_level(len(observations), years, cfg.simulated)

    return PremiumBreakdown(
        peril=policy.peril.value,
        expected_frequency=frequency,
        expected_severity=severity,
        exposure_fraction=exposure,
        pure_risk_rate=pure_rate,
        loading_factor=cfg.loading_factor,
        **cfg.loading_components(),
        floor_premium_rate=cfg.floor_premium_rate,
        gross_premium_rate=gross_rate,
        premium_amount=premium,
        low_confidence=confidence == "low",
        trigger_probability=1.0 - math.exp(-frequency * exposure),
        frequency_interval=poisson_rate_interval(n_fired, years),
        loss_cv=annual_loss_cv(observations, outcomes, window),
        n_observations=len(observations),
        event_count=n_fired,
        years_of_data=round(years, 4),
        data_source=cfg.source,
        data_range=window.label,
        is_simulated=cfg.simulated,
        confidence=confidence,
    )


def price_observations(
    policy: PolicyParameters,
    observations: list[SignalObservation],
    window: SignalWindow,
    table: dict | None = None,
) -> PremiumBreakdown:
    """Evaluate every observation and price the policy from the outcomes."""
    outcomes = [evaluate(obs, policy, table) for obs in observations]
    breakdown = price_outcomes(policy, observations, outcomes, window, table)
    logger.info(
        "Premium for %s: rate=%.2f%%, amount=%.2f, events=%d/%d",
        breakdown.peril, breakdown.gross_premium_rate * 100,
        breakdown.premium_amount, breakdown.event_count,
        breakdown.n_observations,
    )
    return breakdown
