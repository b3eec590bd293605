"""
Output writers: premium breakdown JSON, backtest CSV and JSON.

Product-agnostic; they take the result objects returned by the entry
points.
"""

from __future__ import annotations

import csv
import json
import logging

from satshield_pricing.models import BacktestResult, PremiumBreakdown

logger = logging.getLogger(__name__)


# ============================================================================
# JSON
# ============================================================================

def write_breakdown_json(breakdown: PremiumBreakdown, path: str) -> None:
    with open(path, "w") as f:
        json.dump(breakdown.to_dict(), f, indent=2)
    logger.info("Wrote premium breakdown: %s", path)


def write_backtest_json(result: BacktestResult, path: str) -> None:
    with open(path, "w") as f:
        json.dump(result.to_dict(), f, indent=2)
    logger.info("Wrote backtest JSON: %s  (%d events)", path, len(result.events))


# ============================================================================
# CSV
# ============================================================================

BACKTEST_FIELDS = [
    "timestamp", "observed_value", "fired",
    "payout_fraction", "payout_amount", "label",
]


def write_backtest_csv(result: BacktestResult, path: str) -> None:
    """Write one row per backtest event, fired or not."""
    with open(path, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=BACKTEST_FIELDS)
        w.writeheader()
        for event in result.events:
            row = event.to_dict()
            row["payout_fraction"] = round(row["payout_fraction"], 6)
            row["payout_amount"] = round(row["payout_amount"], 2)
            w.writerow(row)
    logger.info("Wrote backtest CSV: %s", path)
