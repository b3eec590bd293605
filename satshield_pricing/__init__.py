"""
SatShield parametric pricing core.

Premium pricing and backtesting for parametric insurance policies: fetch a
peril's signal history, evaluate each observation against the policy
trigger, and aggregate the outcomes into a premium breakdown or a backtest
report.
"""

from satshield_pricing.backtest import backtest_observations
from satshield_pricing.cache import SignalCache
from satshield_pricing.cancellation import CancellationToken
from satshield_pricing.errors import (
    FetchCancelled,
    InvalidLocation,
    InvalidPolicy,
    PricingError,
    TransientFetchError,
    UnsupportedPeril,
)
from satshield_pricing.fetchers import fetch_signals
from satshield_pricing.models import (
    BacktestEvent,
    BacktestResult,
    PayoutDecision,
    PolicyParameters,
    PremiumBreakdown,
    SignalObservation,
    SignalWindow,
    TriggerOutcome,
)
from satshield_pricing.perils import PERIL_TABLE, Peril, PerilConfig, load_peril_table
from satshield_pricing.pricing_engine import price_observations
from satshield_pricing.service import (
    calculate_premium,
    check_event_and_payout,
    run_backtest,
)
from satshield_pricing.transport import RetryPolicy
from satshield_pricing.trigger_rules import evaluate

__version__ = "0.1.0"
