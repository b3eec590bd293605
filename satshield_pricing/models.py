"""
Value objects for pricing and backtesting.

All types are frozen dataclasses built and consumed within one request.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from satshield_pricing.errors import InvalidLocation, InvalidPolicy
from satshield_pricing.perils import Peril, peril_config

MAX_COVERAGE_AMOUNT = 10_000_000.0
MAX_TERM_MONTHS = 120
DAYS_PER_YEAR = 365.25


def _is_finite_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def validate_location(lat: float, lng: float) -> None:
    """Raise InvalidLocation unless lat in [-90, 90] and lng in [-180, 180]."""
    if not _is_finite_number(lat) or not _is_finite_number(lng):
        raise InvalidLocation(
            f"Coordinates must be finite numbers, got lat={lat!r}, lng={lng!r}",
            lat=lat, lng=lng,
        )
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        raise InvalidLocation(
            "Invalid coordinates: lat must be -90 to 90, lng must be -180 to 180",
            lat=lat, lng=lng,
        )


# ============================================================================
# Policy
# ============================================================================

@dataclass(frozen=True)
class PolicyParameters:
    """The sole input to pricing and backtesting.

    ``trigger_unit`` may be left empty, in which case it takes the peril's
    natural unit.  ``term_months`` sets the exposure period (12 = one year).
    """

    peril: Peril
    lat: float
    lng: float
    trigger_value: float
    coverage_amount: float
    trigger_unit: str = ""
    term_months: int = 12

    def __post_init__(self):
        peril = Peril.coerce(self.peril)
        object.__setattr__(self, "peril", peril)

        validate_location(self.lat, self.lng)
        object.__setattr__(self, "lat", float(self.lat))
        object.__setattr__(self, "lng", float(self.lng))

        if not _is_finite_number(self.trigger_value):
            raise InvalidPolicy(f"Invalid trigger value: {self.trigger_value!r}",
                                field="trigger_value")
        object.__setattr__(self, "trigger_value", float(self.trigger_value))

        if (not _is_finite_number(self.coverage_amount)
                or self.coverage_amount <= 0
                or self.coverage_amount > MAX_COVERAGE_AMOUNT):
            raise InvalidPolicy(
                f"Invalid coverage amount: {self.coverage_amount!r} "
                f"(must be > 0 and <= {MAX_COVERAGE_AMOUNT:,.0f})",
                field="coverage_amount",
            )
        object.__setattr__(self, "coverage_amount", float(self.coverage_amount))

        if (not isinstance(self.term_months, int) or isinstance(self.term_months, bool)
                or not 1 <= self.term_months <= MAX_TERM_MONTHS):
            raise InvalidPolicy(
                f"term_months must be an integer in 1..{MAX_TERM_MONTHS}, "
                f"got {self.term_months!r}",
                field="term_months",
            )

        unit = peril_config(peril).unit
        if not self.trigger_unit:
            object.__setattr__(self, "trigger_unit", unit)
        elif self.trigger_unit != unit:
            raise InvalidPolicy(
                f"Trigger unit '{self.trigger_unit}' does not match "
                f"{peril.value} unit '{unit}'",
                field="trigger_unit",
            )

    @property
    def exposure_fraction(self) -> float:
        """Exposure period in years."""
        return self.term_months / 12.0

    @classmethod
    def from_dict(cls, d: dict) -> "PolicyParameters":
        """Build from a camelCase or snake_case mapping."""
        def pick(*keys, default=None):
            for k in keys:
                if k in d:
                    return d[k]
            return default

        return cls(
            peril=pick("peril", "poolType", "pool_type"),
            lat=pick("lat", "latitude"),
            lng=pick("lng", "lon", "longitude"),
            trigger_value=pick("trigger_value", "triggerValue"),
            coverage_amount=pick("coverage_amount", "coverageAmount"),
            trigger_unit=pick("trigger_unit", "triggerUnit", default=""),
            term_months=pick("term_months", "termMonths", default=12),
        )


# ============================================================================
# Signals
# ============================================================================

@dataclass(frozen=True)
class SignalWindow:
    """Inclusive date span a signal series was fetched for."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} precedes start {self.start}")

    @property
    def years(self) -> float:
        return (self.end - self.start).days / DAYS_PER_YEAR

    @property
    def label(self) -> str:
        return f"{self.start.year}–{self.end.year}"

    @classmethod
    def full_history(cls, peril, today: date | None = None,
                     table: dict | None = None) -> "SignalWindow":
        cfg = peril_config(peril, table)
        today = today or datetime.now(timezone.utc).date()
        if cfg.history_start:
            start = date.fromisoformat(cfg.history_start)
        else:
            start = date(today.year - cfg.history_years, 1, 1)
        return cls(start=start, end=today)

    @classmethod
    def latest(cls, peril, today: date | None = None,
               table: dict | None = None) -> "SignalWindow":
        cfg = peril_config(peril, table)
        today = today or datetime.now(timezone.utc).date()
        return cls(start=today - timedelta(days=cfg.live_days), end=today)


@dataclass(frozen=True)
class SignalObservation:
    """A single historical or live reading."""

    timestamp: datetime
    value: float
    source: str
    confidence: float | None = None
    label: str = ""
    meta: dict = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "value": self.value,
            "source": self.source,
            "confidence": self.confidence,
            "label": self.label,
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SignalObservation":
        ts = datetime.fromisoformat(d["timestamp"])
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(
            timestamp=ts,
            value=float(d["value"]),
            source=d["source"],
            confidence=d.get("confidence"),
            label=d.get("label", ""),
            meta=d.get("meta", {}),
        )


# ============================================================================
# Outcomes
# ============================================================================

@dataclass(frozen=True)
class TriggerOutcome:
    fired: bool
    payout_fraction: float


NOT_FIRED = TriggerOutcome(fired=False, payout_fraction=0.0)


@dataclass(frozen=True)
class PremiumBreakdown:
    """Premium with its full component breakdown."""

    peril: str
    expected_frequency: float
    expected_severity: float
    exposure_fraction: float
    pure_risk_rate: float
    loading_factor: float
    pool_margin: float
    reinsurance_cost: float
    volatility_buffer: float
    floor_premium_rate: float
    gross_premium_rate: float
    premium_amount: float
    low_confidence: bool
    trigger_probability: float
    frequency_interval: tuple[float, float]
    loss_cv: float | None
    n_observations: int
    event_count: int
    years_of_data: float
    data_source: str
    data_range: str
    is_simulated: bool
    confidence: str

    def to_dict(self) -> dict:
        d = dict(self.__dict__)
        d["frequency_interval"] = list(self.frequency_interval)
        return d


@dataclass(frozen=True)
class BacktestEvent:
    timestamp: datetime
    observed_value: float
    fired: bool
    payout_fraction: float
    payout_amount: float
    label: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "observed_value": self.observed_value,
            "fired": self.fired,
            "payout_fraction": self.payout_fraction,
            "payout_amount": self.payout_amount,
            "label": self.label,
        }


@dataclass(frozen=True)
class BacktestResult:
    peril: str
    events: tuple[BacktestEvent, ...]
    total_fired: int
    total_payout: float
    premium_equivalent: float
    implied_loss_ratio: float | None
    years_of_data: float
    data_source: str
    data_range: str
    is_simulated: bool

    def to_dict(self) -> dict:
        d = dict(self.__dict__)
        d["events"] = [e.to_dict() for e in self.events]
        return d


@dataclass(frozen=True)
class PayoutDecision:
    """Live trigger check against the most recent signal window."""

    status: str
    peril: str
    observation: SignalObservation | None
    outcome: TriggerOutcome
    coverage_amount: float
    payout_due: float

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "peril": self.peril,
            "observation": self.observation.to_dict() if self.observation else None,
            "triggered": self.outcome.fired,
            "payout_fraction": self.outcome.payout_fraction,
            "coverage_amount": self.coverage_amount,
            "payout_due": self.payout_due,
        }
