"""
Trigger rules: decide whether one observation fires a policy payout.

Each rule is a callable with signature:
    rule(value: float, threshold: float, cfg: PerilConfig) -> TriggerOutcome

All rules are deterministic, stateless and total.

Boundary convention
-------------------
The threshold is inclusive: ``value == threshold`` fires.  High-is-bad
perils fire on ``value >= threshold``, low-is-bad perils on
``value <= threshold``.

Built-in rules
--------------
A) BinaryThreshold
     payout fraction is 1 when fired, 0 otherwise
B) GraduatedThreshold
     payout fraction ramps linearly from 0 at the threshold to 1 at the
     saturation ceiling  threshold + |threshold| * (saturation_multiple - 1)
     (mirrored for low-is-bad perils), clamped to [0, 1]
C) TieredThreshold
     payout fraction steps 0.25 / 0.5 / 1.0 at 100 / 130 / 160 % of the
     threshold in the adverse direction
"""

from __future__ import annotations

import math

from satshield_pricing.models import (
    NOT_FIRED,
    PolicyParameters,
    SignalObservation,
    TriggerOutcome,
)
from satshield_pricing.perils import (
    BINARY,
    GRADUATED,
    HIGH_IS_BAD,
    TIERED,
    PerilConfig,
    peril_config,
)


def crosses(value: float, threshold: float, direction: str) -> bool:
    """Inclusive threshold comparison in the peril's adverse direction."""
    if direction == HIGH_IS_BAD:
        return value >= threshold
    return value <= threshold


# ============================================================================
# A) BinaryThreshold
# ============================================================================

class BinaryThreshold:
    """All-or-nothing payout once the threshold is crossed.

    Earthquake magnitude, drought soil moisture, outage and disruption
    durations.
    """

    def __call__(self, value: float, threshold: float,
                 cfg: PerilConfig) -> TriggerOutcome:
        if not math.isfinite(value):
            return NOT_FIRED
        if crosses(value, threshold, cfg.direction):
            return TriggerOutcome(fired=True, payout_fraction=1.0)
        return NOT_FIRED


# ============================================================================
# B) GraduatedThreshold
# ============================================================================

class GraduatedThreshold:
    """Linear payout ramp between the threshold and a saturation ceiling.

    A zero-width ramp (threshold of 0) pays in full once fired.
    """

    @staticmethod
    def ceiling(threshold: float, cfg: PerilConfig) -> float:
        span = abs(threshold) * (cfg.saturation_multiple - 1.0)
        if cfg.direction == HIGH_IS_BAD:
            return threshold + span
        return threshold - span

    def __call__(self, value: float, threshold: float,
                 cfg: PerilConfig) -> TriggerOutcome:
        if not math.isfinite(value):
            return NOT_FIRED
        if not crosses(value, threshold, cfg.direction):
            return NOT_FIRED

        span = abs(threshold) * (cfg.saturation_multiple - 1.0)
        if span <= 0:
            return TriggerOutcome(fired=True, payout_fraction=1.0)

        excess = value - threshold if cfg.direction == HIGH_IS_BAD else threshold - value
        fraction = min(1.0, max(0.0, excess / span))
        return TriggerOutcome(fired=True, payout_fraction=fraction)


# ============================================================================
# C) TieredThreshold
# ============================================================================

class TieredThreshold:
    """Stepped payout: 25 %, 50 % and 100 % of cover at 100 %, 130 % and
    160 % of the trigger.

    Steps are measured in the adverse direction as multiples of
    ``|threshold|``, so a low-is-bad trigger of -100 mm pays half at
    -130 mm.  A zero threshold pays in full once fired.
    """

    def __call__(self, value: float, threshold: float,
                 cfg: PerilConfig) -> TriggerOutcome:
        if not math.isfinite(value):
            return NOT_FIRED
        if not crosses(value, threshold, cfg.direction):
            return NOT_FIRED
        if threshold == 0:
            return TriggerOutcome(fired=True, payout_fraction=1.0)

        excess = value - threshold if cfg.direction == HIGH_IS_BAD else threshold - value
        # float slack at the step edges (7.8 vs 6.0 gives 0.29999...)
        multiple = excess / abs(threshold) + 1e-9
        if multiple >= 0.6:
            fraction = 1.0
        elif multiple >= 0.3:
            fraction = 0.5
        else:
            fraction = 0.25
        return TriggerOutcome(fired=True, payout_fraction=fraction)


# ============================================================================
# Registry: resolve a rule by payout style.
# ============================================================================

RULE_REGISTRY: dict[str, object] = {
    BINARY: BinaryThreshold(),
    GRADUATED: GraduatedThreshold(),
    TIERED: TieredThreshold(),
}


def get_rule(name: str):
    """Look up a trigger rule by payout style.  Raises KeyError if unknown."""
    if name not in RULE_REGISTRY:
        raise KeyError(
            f"Unknown trigger rule '{name}'. "
            f"Available: {sorted(RULE_REGISTRY)}"
        )
    return RULE_REGISTRY[name]


def evaluate(observation: SignalObservation, policy: PolicyParameters,
             table: dict | None = None) -> TriggerOutcome:
    """Evaluate one observation against a policy's trigger."""
    cfg = peril_config(policy.peril, table)
    rule = get_rule(cfg.payout)
    return rule(observation.value, policy.trigger_value, cfg)
