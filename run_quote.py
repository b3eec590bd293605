#!/usr/bin/env python3
"""
Parametric premium quote and backtest runner.

Usage:
    python run_quote.py --config configs/earthquake_san_francisco.json
    python run_quote.py --config configs/flood_houston.json --mode backtest

The config JSON controls:
  - the policy (peril, location, trigger, coverage, term)
  - an optional peril-table override file
  - an optional signal cache directory
  - output file paths
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from satshield_pricing import (
    PolicyParameters,
    PricingError,
    SignalCache,
    calculate_premium,
    check_event_and_payout,
    load_peril_table,
    run_backtest,
)
from satshield_pricing.output_writers import (
    write_backtest_csv,
    write_backtest_json,
    write_breakdown_json,
)

MODES = ("premium", "backtest", "live", "all")


# ============================================================================
# Summaries
# ============================================================================

def print_premium(b) -> None:
    lo, hi = b.frequency_interval
    print("\n===== Premium =====")
    print(f"Data source:          {b.data_source} ({b.data_range})")
    print(f"Observations:         {b.n_observations}  (fired: {b.event_count})")
    print(f"Expected frequency:   {b.expected_frequency:.4f} /yr  "
          f"[95%: {lo:.4f} – {hi:.4f}]")
    print(f"Expected severity:    {b.expected_severity:.4f}")
    print(f"Pure risk rate:       {b.pure_risk_rate * 100:.3f}%")
    print(f"Loading factor:       {b.loading_factor:.2f}x  "
          f"(margin {b.pool_margin:.2f} + reinsurance {b.reinsurance_cost:.2f} "
          f"+ volatility {b.volatility_buffer:.2f})")
    print(f"Gross premium rate:   {b.gross_premium_rate * 100:.3f}%")
    print(f"Premium amount:       ${b.premium_amount:,.2f}")
    print(f"Confidence:           {b.confidence}"
          f"{'  (simulated data)' if b.is_simulated else ''}")
    print("===================\n")


def print_backtest(r) -> None:
    print("\n===== Backtest =====")
    print(f"Data source:          {r.data_source} ({r.data_range})")
    print(f"Observations:         {len(r.events)}")
    print(f"Fired:                {r.total_fired}")
    print(f"Total payout:         ${r.total_payout:,.2f}")
    print(f"Premium equivalent:   ${r.premium_equivalent:,.2f}")
    ratio = r.implied_loss_ratio
    print(f"Implied loss ratio:   {'n/a' if ratio is None else f'{ratio:.3f}'}")
    for e in r.events:
        if e.fired:
            print(f"  {e.timestamp:%Y-%m-%d}  {e.label or e.observed_value}  "
                  f"→ ${e.payout_amount:,.2f}")
    print("====================\n")


def print_decision(d) -> None:
    print("\n===== Live check =====")
    print(f"Status:               {d.status}")
    if d.observation is not None:
        print(f"Observation:          {d.observation.timestamp:%Y-%m-%d}  "
              f"{d.observation.value}  {d.observation.label}")
    print(f"Triggered:            {d.outcome.fired}  "
          f"(fraction {d.outcome.payout_fraction:.3f})")
    print(f"Payout due:           ${d.payout_due:,.2f}")
    print("======================\n")


# ============================================================================
# Main pipeline
# ============================================================================

async def run(config_path: str, mode: str) -> None:
    # 1) Load config
    with open(config_path) as f:
        cfg = json.load(f)

    policy = PolicyParameters.from_dict(cfg["policy"])
    table = load_peril_table(cfg["peril_table"]) if cfg.get("peril_table") else None
    cache = SignalCache(cfg["cache_dir"]) if cfg.get("cache_dir") else None
    outputs = cfg.get("outputs", {})

    print(f"=== {cfg.get('product', policy.peril.value)} ===")
    print(f"Location: ({policy.lat}, {policy.lng})")
    print(f"Trigger:  {policy.trigger_value} {policy.trigger_unit}")
    print(f"Coverage: ${policy.coverage_amount:,.2f} for {policy.term_months} months")

    # 2) Run the requested operations
    if mode in ("premium", "all"):
        breakdown = await calculate_premium(policy, cache=cache, table=table)
        print_premium(breakdown)
        if outputs.get("breakdown_json"):
            write_breakdown_json(breakdown, outputs["breakdown_json"])

    if mode in ("backtest", "all"):
        result = await run_backtest(policy, cache=cache, table=table)
        print_backtest(result)
        if outputs.get("backtest_csv"):
            write_backtest_csv(result, outputs["backtest_csv"])
        if outputs.get("backtest_json"):
            write_backtest_json(result, outputs["backtest_json"])

    if mode in ("live", "all"):
        decision = await check_event_and_payout(policy, cache=cache, table=table)
        print_decision(decision)

    print("Done.")


# ============================================================================
# CLI entry point
# ============================================================================

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Parametric premium quote and backtest runner."
    )
    parser.add_argument(
        "--config", required=True,
        help="Path to policy configuration JSON file.",
    )
    parser.add_argument(
        "--mode", choices=MODES, default="all",
        help="Which operations to run (default: all).",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        help="Logging level for the pricing core (default: WARNING).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(run(args.config, args.mode))
    except PricingError as exc:
        print(f"Error [{exc.kind}]: {exc.message}", file=sys.stderr)
        sys.exit(2 if exc.retryable else 1)


if __name__ == "__main__":
    main()
