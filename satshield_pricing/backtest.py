"""
Backtest: replay a policy's trigger over a historical signal series.

Every observation becomes an event (fired or not) so callers can render the
full timeline.  The premium rate is priced once from the same series and
held constant across the window:

    premium_equivalent = gross_premium_rate * coverage * observed_years / term_years
    implied_loss_ratio = total_payout / premium_equivalent    (None if 0)
"""

from __future__ import annotations

import logging

from satshield_pricing.models import (
    BacktestEvent,
    BacktestResult,
    PolicyParameters,
    SignalObservation,
    SignalWindow,
)
from satshield_pricing.perils import peril_config
from satshield_pricing.pricing_engine import observed_years, price_outcomes
from satshield_pricing.trigger_rules import evaluate

logger = logging.getLogger(__name__)


def backtest_observations(
    policy: PolicyParameters,
    observations: list[SignalObservation],
    window: SignalWindow,
    table: dict | None = None,
) -> BacktestResult:
    """Evaluate every observation in order and aggregate the loss ratio."""
    cfg = peril_config(policy.peril, table)
    series = sorted(observations, key=lambda o: o.timestamp)

    outcomes = [evaluate(obs, policy, table) for obs in series]
    events = tuple(
        BacktestEvent(
            timestamp=obs.timestamp,
            observed_value=obs.value,
            fired=out.fired,
            payout_fraction=out.payout_fraction,
            payout_amount=out.payout_fraction * policy.coverage_amount,
            label=obs.label,
        )
        for obs, out in zip(series, outcomes)
    )

    total_fired = sum(1 for e in events if e.fired)
    total_payout = sum(e.payout_amount for e in events)

    years = observed_years(series, window)
    breakdown = price_outcomes(policy, series, outcomes, window, table)
    premium_equivalent = breakdown.premium_amount * years / policy.exposure_fraction
    loss_ratio = total_payout / premium_equivalent if premium_equivalent > 0 else None

    logger.info("Backtest for %s: %d observations, %d fired, loss ratio %s",
                policy.peril.value, len(events), total_fired,
                "n/a" if loss_ratio is None else f"{loss_ratio:.3f}")

    return BacktestResult(
        peril=policy.peril.value,
        events=events,
        total_fired=total_fired,
        total_payout=total_payout,
        premium_equivalent=premium_equivalent,
        implied_loss_ratio=loss_ratio,
        years_of_data=round(years, 4),
        data_source=cfg.source,
        data_range=window.label,
        is_simulated=cfg.simulated,
    )
