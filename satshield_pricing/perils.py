"""
Peril catalogue and loading-factor table.

One authoritative table keyed by peril type.  Values are provisional
defaults, not verified actuarial constants; override them per deployment
with ``load_peril_table()``.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from enum import Enum

from satshield_pricing.errors import UnsupportedPeril


class Peril(str, Enum):
    EARTHQUAKE = "earthquake"
    FLOOD = "flood"
    DROUGHT = "drought"
    CROP_YIELD = "crop-yield"
    EXTREME_HEAT = "extreme-heat"
    FLIGHT_DELAY = "flight-delay"
    SHIPPING_DISRUPTION = "shipping-disruption"
    CYBER_OUTAGE = "cyber-outage"

    @classmethod
    def coerce(cls, value) -> "Peril":
        """Accept a Peril or its string name.  Raises UnsupportedPeril."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedPeril(
                f"Unknown peril: '{value}'. "
                f"Choose from: {[p.value for p in cls]}",
                peril=str(value),
            ) from None


HIGH_IS_BAD = "high_is_bad"
LOW_IS_BAD = "low_is_bad"

BINARY = "binary"
GRADUATED = "graduated"
TIERED = "tiered"

PAYOUT_STYLES = (BINARY, GRADUATED, TIERED)
LOADING_COMPONENTS = ("pool_margin", "reinsurance_cost", "volatility_buffer")


@dataclass(frozen=True)
class PerilConfig:
    """Per-peril pricing and trigger configuration.

    The loading factor is not stored: it is ``1 + pool_margin +
    reinsurance_cost + volatility_buffer``, so every premium can report
    what each part of the loading pays for.
    """

    unit: str
    direction: str
    payout: str
    pool_margin: float
    reinsurance_cost: float
    volatility_buffer: float
    saturation_multiple: float
    floor_premium_rate: float
    history_years: int
    live_days: int
    source: str
    source_confidence: float
    history_start: str | None = None
    simulated: bool = False
    description: str = ""

    @property
    def loading_factor(self) -> float:
        # rounded so table literals recompose exactly (0.3 + 0.5 + 0.4 -> 2.2)
        return round(1.0 + self.pool_margin + self.reinsurance_cost
                     + self.volatility_buffer, 6)

    def loading_components(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in LOADING_COMPONENTS}


# ── Default table ─────────────────────────────────────────────────────

PERIL_TABLE: dict[Peril, PerilConfig] = {
    Peril.EARTHQUAKE: PerilConfig(
        unit="magnitude",
        direction=HIGH_IS_BAD,
        payout=BINARY,
        pool_margin=0.30,
        reinsurance_cost=0.50,
        volatility_buffer=0.40,
        saturation_multiple=1.5,
        floor_premium_rate=0.005,
        history_years=20,
        history_start="2005-01-01",
        live_days=30,
        source="USGS FDSNWS Event Query API",
        source_confidence=0.997,
        description="Moment magnitude of events within 500 km",
    ),
    Peril.FLOOD: PerilConfig(
        unit="m",
        direction=HIGH_IS_BAD,
        payout=GRADUATED,
        pool_margin=0.25,
        reinsurance_cost=0.30,
        volatility_buffer=0.25,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        live_days=90,
        source="Open-Meteo Historical Archive API (precipitation proxy)",
        source_confidence=0.85,
        description="Monthly max 3-day precipitation, 100 mm per index unit",
    ),
    Peril.DROUGHT: PerilConfig(
        unit="m3/m3",
        direction=LOW_IS_BAD,
        payout=BINARY,
        pool_margin=0.20,
        reinsurance_cost=0.20,
        volatility_buffer=0.20,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        live_days=90,
        source="Open-Meteo Historical Archive API",
        source_confidence=0.968,
        description="Soil moisture 0-7 cm (monthly mean)",
    ),
    Peril.CROP_YIELD: PerilConfig(
        unit="mm",
        direction=LOW_IS_BAD,
        payout=GRADUATED,
        pool_margin=0.20,
        reinsurance_cost=0.15,
        volatility_buffer=0.15,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        live_days=365,
        source="Open-Meteo Historical Archive API",
        source_confidence=0.945,
        description="Growing-season rainfall deviation from the local mean",
    ),
    Peril.EXTREME_HEAT: PerilConfig(
        unit="C",
        direction=HIGH_IS_BAD,
        payout=GRADUATED,
        pool_margin=0.20,
        reinsurance_cost=0.20,
        volatility_buffer=0.20,
        saturation_multiple=1.1,
        floor_premium_rate=0.005,
        history_years=10,
        live_days=30,
        source="Open-Meteo Historical Archive API",
        source_confidence=0.973,
        description="Daily max 2 m temperature (monthly max)",
    ),
    Peril.FLIGHT_DELAY: PerilConfig(
        unit="minutes",
        direction=HIGH_IS_BAD,
        payout=BINARY,
        pool_margin=0.15,
        reinsurance_cost=0.10,
        volatility_buffer=0.15,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        history_start="2015-01-01",
        live_days=365,
        source="Statistical model (industry average)",
        source_confidence=0.9,
        simulated=True,
        description="Average network delay during disruption episodes",
    ),
    Peril.SHIPPING_DISRUPTION: PerilConfig(
        unit="days",
        direction=HIGH_IS_BAD,
        payout=BINARY,
        pool_margin=0.25,
        reinsurance_cost=0.30,
        volatility_buffer=0.35,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        history_start="2015-01-01",
        live_days=365,
        source="Known disruption events database",
        source_confidence=0.9,
        simulated=True,
        description="Days of port or canal closure",
    ),
    Peril.CYBER_OUTAGE: PerilConfig(
        unit="minutes",
        direction=HIGH_IS_BAD,
        payout=BINARY,
        pool_margin=0.25,
        reinsurance_cost=0.35,
        volatility_buffer=0.40,
        saturation_multiple=2.0,
        floor_premium_rate=0.005,
        history_years=10,
        history_start="2015-01-01",
        live_days=365,
        source="Public outage databases",
        source_confidence=0.9,
        simulated=True,
        description="Minutes of widespread cloud or platform outage",
    ),
}


# ── Table access / override ───────────────────────────────────────────

def peril_config(peril, table: dict | None = None) -> PerilConfig:
    """Look up the configuration for *peril* (Peril or string)."""
    p = Peril.coerce(peril)
    table = PERIL_TABLE if table is None else table
    if p not in table:
        raise UnsupportedPeril(f"No configuration for peril '{p.value}'",
                               peril=p.value)
    return table[p]


def _validate_config(name: str, cfg: PerilConfig) -> None:
    if cfg.direction not in (HIGH_IS_BAD, LOW_IS_BAD):
        raise ValueError(f"{name}.direction must be '{HIGH_IS_BAD}' or "
                         f"'{LOW_IS_BAD}', got {cfg.direction!r}")
    if cfg.payout not in PAYOUT_STYLES:
        raise ValueError(f"{name}.payout must be one of {list(PAYOUT_STYLES)}, "
                         f"got {cfg.payout!r}")
    for field_name in (*LOADING_COMPONENTS, "saturation_multiple",
                       "floor_premium_rate", "source_confidence"):
        value = getattr(cfg, field_name)
        if (not isinstance(value, (int, float)) or isinstance(value, bool)
                or not math.isfinite(value)):
            raise ValueError(f"{name}.{field_name} must be finite, got {value!r}")
    for field_name in LOADING_COMPONENTS:
        if getattr(cfg, field_name) < 0:
            raise ValueError(f"{name}.{field_name} must be >= 0")
    if cfg.loading_factor < 1.0:
        raise ValueError(f"{name}.loading_factor must be >= 1")
    if cfg.saturation_multiple <= 1.0:
        raise ValueError(f"{name}.saturation_multiple must be > 1")
    if cfg.floor_premium_rate <= 0:
        raise ValueError(f"{name}.floor_premium_rate must be > 0")
    for field_name in ("history_years", "live_days"):
        value = getattr(cfg, field_name)
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"{name}.{field_name} must be an integer, got {value!r}")
        if value <= 0:
            raise ValueError(f"{name}.{field_name} must be > 0")


def load_peril_table(path: str) -> dict[Peril, PerilConfig]:
    """
    Load a peril table override from JSON.

    The file maps peril names to partial config dicts; missing fields keep
    the defaults from PERIL_TABLE.  Unknown peril names raise
    UnsupportedPeril, unknown fields raise ValueError.
    """
    with open(path) as f:
        raw = json.load(f)

    table = dict(PERIL_TABLE)
    for name, overrides in raw.items():
        peril = Peril.coerce(name)
        try:
            cfg = replace(table[peril], **overrides)
        except TypeError as exc:
            raise ValueError(f"Invalid override for '{name}': {exc}") from None
        _validate_config(name, cfg)
        table[peril] = cfg
    return table
