"""
Pricing core — async entry points.

Three operations:
    1. calculate_premium()       — fetch history + price the policy
    2. run_backtest()            — fetch history + replay the trigger
    3. check_event_and_payout()  — fetch the live window + payout decision

Each call is single-shot and stateless.  The only suspension point is the
signal fetch; everything after it is synchronous and pure.
"""

from __future__ import annotations

import logging

from satshield_pricing.backtest import backtest_observations
from satshield_pricing.fetchers import fetch_signals
from satshield_pricing.models import (
    NOT_FIRED,
    BacktestResult,
    PayoutDecision,
    PolicyParameters,
    PremiumBreakdown,
    SignalWindow,
)
from satshield_pricing.pricing_engine import price_observations
from satshield_pricing.trigger_rules import evaluate

logger = logging.getLogger(__name__)


def _log_request(name: str, policy: PolicyParameters) -> None:
    logger.info(
        "%s request: peril=%s, lat=%s, lng=%s, trigger=%s %s, coverage=%s",
        name, policy.peril.value, policy.lat, policy.lng,
        policy.trigger_value, policy.trigger_unit, policy.coverage_amount,
    )


# ── Endpoint 1: Premium calculation ──────────────────────────────────

async def calculate_premium(
    policy: PolicyParameters,
    *,
    session=None,
    cache=None,
    token=None,
    retry=None,
    window: SignalWindow | None = None,
    table: dict | None = None,
) -> PremiumBreakdown:
    """
    Price a policy from the peril's historical signal series.

    Parameters
    ----------
    policy : PolicyParameters
    session, cache, token, retry
        Passed through to ``fetch_signals()``.
    window : SignalWindow, optional
        Defaults to the peril's full history.
    table : dict, optional
        Peril table override (see ``load_peril_table``).

    Returns
    -------
    PremiumBreakdown.  An empty series yields the floor premium with
    ``low_confidence=True``.
    """
    _log_request("Premium calc", policy)
    window = window or SignalWindow.full_history(policy.peril, table=table)
    observations = await fetch_signals(
        policy.peril, policy.lat, policy.lng, window,
        session=session, cache=cache, token=token, retry=retry,
        trigger_value=policy.trigger_value, table=table,
    )
    return price_observations(policy, observations, window, table)


# ── Endpoint 2: Backtest ─────────────────────────────────────────────

async def run_backtest(
    policy: PolicyParameters,
    *,
    session=None,
    cache=None,
    token=None,
    retry=None,
    window: SignalWindow | None = None,
    table: dict | None = None,
) -> BacktestResult:
    """Replay the policy trigger over the full historical series.

    Every observation appears in ``events`` in chronological order.
    ``implied_loss_ratio`` is None when nothing was observed.
    """
    _log_request("Backtest", policy)
    window = window or SignalWindow.full_history(policy.peril, table=table)
    observations = await fetch_signals(
        policy.peril, policy.lat, policy.lng, window,
        session=session, cache=cache, token=token, retry=retry,
        trigger_value=policy.trigger_value, table=table,
    )
    return backtest_observations(policy, observations, window, table)


# ── Endpoint 3: Live trigger check + payout ──────────────────────────

async def check_event_and_payout(
    policy: PolicyParameters,
    *,
    session=None,
    cache=None,
    token=None,
    retry=None,
    window: SignalWindow | None = None,
    table: dict | None = None,
) -> PayoutDecision:
    """
    Evaluate the policy against the most recent signal window.

    The decision is driven by the observation with the largest payout
    fraction in the window (the latest one on ties).  An empty window
    returns ``status="no_data"`` with nothing due.
    """
    _log_request("Live check", policy)
    window = window or SignalWindow.latest(policy.peril, table=table)
    observations = await fetch_signals(
        policy.peril, policy.lat, policy.lng, window,
        session=session, cache=cache, token=token, retry=retry,
        trigger_value=policy.trigger_value, table=table,
    )

    if not observations:
        return PayoutDecision(
            status="no_data",
            peril=policy.peril.value,
            observation=None,
            outcome=NOT_FIRED,
            coverage_amount=policy.coverage_amount,
            payout_due=0.0,
        )

    scored = [(evaluate(obs, policy, table), obs) for obs in observations]
    outcome, obs = max(scored, key=lambda s: (s[0].payout_fraction, s[1].timestamp))

    decision = PayoutDecision(
        status="ok",
        peril=policy.peril.value,
        observation=obs,
        outcome=outcome,
        coverage_amount=policy.coverage_amount,
        payout_due=outcome.payout_fraction * policy.coverage_amount,
    )
    logger.info("Live check for %s: triggered=%s, payout_due=%.2f",
                decision.peril, outcome.fired, decision.payout_due)
    return decision
