"""
Open-Meteo historical archive provider.

Fetches a daily weather series for the insured location and aggregates it
into one observation per natural period of the peril:

| Peril        | Daily variable              | Observation                         |
|--------------|-----------------------------|-------------------------------------|
| flood        | precipitation_sum           | monthly max 3-day sum / 100 mm      |
| extreme-heat | temperature_2m_max          | monthly max (C)                     |
| drought      | soil_moisture_0_to_7cm_mean | monthly mean (m3/m3)                |
| crop-yield   | precipitation_sum           | Apr-Sep total minus mean total (mm) |

Crop-yield deviations need a baseline of several seasons.  A window too
short to supply one (the live window) is scored against the mean of the
same stretch of season over the ``history_years`` before it, fetched
separately, so the current season cannot pull its own baseline.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

import pandas as pd

from satshield_pricing.errors import UnsupportedPeril
from satshield_pricing.models import SignalObservation, SignalWindow
from satshield_pricing.perils import Peril, peril_config
from satshield_pricing.transport import get_json

logger = logging.getLogger(__name__)

ARCHIVE_API = "https://archive-api.open-meteo.com/v1/archive"

# Precipitation proxy for flood depth: 100 mm over 3 days = 1 index unit.
MM_PER_FLOOD_UNIT = 100.0
FLOOD_ROLLING_DAYS = 3

SEASON_START = (4, 1)
SEASON_END = (9, 30)
MIN_BASELINE_SEASONS = 3

OPEN_METEO_SERIES = {
    Peril.FLOOD: {
        "daily_vars": "precipitation_sum",
        "aggregation": "monthly_max_rolling_sum",
    },
    Peril.EXTREME_HEAT: {
        "daily_vars": "temperature_2m_max",
        "aggregation": "monthly_max",
    },
    Peril.DROUGHT: {
        "daily_vars": "soil_moisture_0_to_7cm_mean",
        "aggregation": "monthly_mean",
    },
    Peril.CROP_YIELD: {
        "daily_vars": "precipitation_sum",
        "aggregation": "growing_season_deviation",
    },
}


# ── Daily series → pandas ─────────────────────────────────────────────

def daily_series(daily: dict, variable: str) -> pd.Series:
    """Build a float Series indexed by date from an Open-Meteo daily block."""
    times = daily.get("time", []) or []
    values = daily.get(variable, []) or []
    n = min(len(times), len(values))
    if n == 0:
        return pd.Series(dtype="float64", index=pd.DatetimeIndex([]))
    return pd.Series(
        [float("nan") if v is None else float(v) for v in values[:n]],
        index=pd.to_datetime(times[:n]),
        dtype="float64",
    )


def _has_data(s: pd.Series) -> pd.Series:
    return s.notna().resample("MS").sum() > 0


# ── Aggregations ──────────────────────────────────────────────────────

def monthly_max(s: pd.Series) -> pd.Series:
    return s.dropna().resample("MS").max().dropna()


def monthly_mean(s: pd.Series) -> pd.Series:
    return s.dropna().resample("MS").mean().dropna()


def monthly_max_rolling_sum(s: pd.Series,
                            days: int = FLOOD_ROLLING_DAYS) -> pd.Series:
    """Monthly max of the trailing *days*-day sum, missing days as 0 mm."""
    if s.empty:
        return s
    rolled = s.fillna(0.0).rolling(days, min_periods=days).sum()
    monthly = rolled.resample("MS").max()
    return monthly[_has_data(s).reindex(monthly.index, fill_value=False)].dropna()


def _month_day(month: int, day: int) -> int:
    return month * 100 + day


def season_totals(s: pd.Series, through: tuple[int, int] = SEASON_END) -> pd.Series:
    """Rainfall per year from 1 April up to and including *through* (month, day)."""
    s = s.dropna()
    if s.empty:
        return pd.Series(dtype="float64")
    md = s.index.month * 100 + s.index.day
    season = s[(md >= _month_day(*SEASON_START)) & (md <= _month_day(*through))]
    totals = season.groupby(season.index.year).sum()
    totals.index = totals.index.astype(int)
    return totals


def complete_seasons(window: SignalWindow) -> list[int]:
    """Years whose whole growing season lies inside *window*."""
    return [
        y for y in range(window.start.year, window.end.year + 1)
        if date(y, *SEASON_START) >= window.start and date(y, *SEASON_END) <= window.end
    ]


def latest_season(window: SignalWindow) -> tuple[int, tuple[int, int]] | None:
    """The most recent season started inside *window*, and how far it has run.

    Returns ``(year, (month, day))`` or None when no season start falls in
    the window.
    """
    year = window.end.year
    if window.end < date(year, *SEASON_START):
        year -= 1
    if date(year, *SEASON_START) < window.start:
        return None
    end = min(window.end, date(year, *SEASON_END))
    return year, (end.month, end.day)


def growing_season_deviation(s: pd.Series, window: SignalWindow) -> pd.Series:
    """Seasonal rainfall total minus the mean over complete seasons.

    Indexed by season end (30 September).  Seasons only partly inside the
    window are skipped.
    """
    totals = season_totals(s)
    totals = totals[totals.index.isin(complete_seasons(window))]
    if totals.empty:
        return pd.Series(dtype="float64")

    deviation = totals - totals.mean()
    deviation.index = pd.to_datetime([date(y, *SEASON_END) for y in deviation.index])
    return deviation


# ── Provider ──────────────────────────────────────────────────────────

class OpenMeteoProvider:
    """Historical archive series for weather-driven perils."""

    def __init__(self, peril, table: dict | None = None):
        self.peril = Peril.coerce(peril)
        if self.peril not in OPEN_METEO_SERIES:
            raise UnsupportedPeril(
                f"Open-Meteo provider does not serve '{self.peril.value}'",
                peril=self.peril.value,
            )
        self.cfg = peril_config(self.peril, table)
        self.series_cfg = OPEN_METEO_SERIES[self.peril]

    def query_params(self, lat: float, lng: float, window: SignalWindow,
                     trigger_value: float | None = None) -> dict:
        return {
            "latitude": lat,
            "longitude": lng,
            "start_date": window.start.isoformat(),
            "end_date": window.end.isoformat(),
            "daily": self.series_cfg["daily_vars"],
            "timezone": "UTC",
        }

    async def fetch(self, lat, lng, window, *, session, retry=None,
                    token=None, trigger_value=None) -> list[SignalObservation]:
        params = self.query_params(lat, lng, window)
        logger.info("Fetching Open-Meteo %s %s → %s",
                    params["daily"], params["start_date"], params["end_date"])
        data = await get_json(session, ARCHIVE_API, params, retry=retry, token=token)
        daily = data.get("daily") or {}
        if (self.peril == Peril.CROP_YIELD
                and len(complete_seasons(window)) < MIN_BASELINE_SEASONS):
            return await self._score_latest_season(
                lat, lng, window, daily, session=session, retry=retry, token=token)
        return self.normalise(daily, window)

    async def _score_latest_season(self, lat, lng, window, daily, *, session,
                                   retry=None, token=None) -> list[SignalObservation]:
        season = latest_season(window)
        if season is None:
            return []
        year, through = season
        variable = self.series_cfg["daily_vars"]

        live = season_totals(daily_series(daily, variable), through)
        if year not in live.index:
            return []

        history = SignalWindow(date(year - self.cfg.history_years, 1, 1),
                               date(year - 1, 12, 31))
        params = self.query_params(lat, lng, history)
        logger.info("Fetching Open-Meteo %s baseline %s → %s",
                    variable, params["start_date"], params["end_date"])
        data = await get_json(session, ARCHIVE_API, params, retry=retry, token=token)
        baseline = season_totals(daily_series(data.get("daily") or {}, variable), through)
        if baseline.empty:
            logger.warning("No baseline seasons for crop-yield at (%.4f, %.4f)", lat, lng)
            return []

        baseline_mm = float(baseline.mean())
        total_mm = float(live[year])
        return [self._observation(
            datetime(year, *through, tzinfo=timezone.utc),
            total_mm - baseline_mm,
            baseline_mm=round(baseline_mm, 2),
            baseline_seasons=len(baseline),
            season_total_mm=round(total_mm, 2),
        )]

    def aggregate(self, s: pd.Series, window: SignalWindow) -> pd.Series:
        method = self.series_cfg["aggregation"]
        if method == "monthly_max":
            return monthly_max(s)
        if method == "monthly_mean":
            return monthly_mean(s)
        if method == "monthly_max_rolling_sum":
            return monthly_max_rolling_sum(s) / MM_PER_FLOOD_UNIT
        if method == "growing_season_deviation":
            return growing_season_deviation(s, window)
        raise ValueError(f"Unknown aggregation: {method}")

    def _label(self, value: float) -> str:
        if self.peril == Peril.FLOOD:
            return f"Max {FLOOD_ROLLING_DAYS}-day precipitation {value * MM_PER_FLOOD_UNIT:.0f} mm"
        if self.peril == Peril.EXTREME_HEAT:
            return f"Peak temperature {value:.1f} C"
        if self.peril == Peril.DROUGHT:
            return f"Mean soil moisture {value:.3f} m3/m3"
        return f"Growing season rainfall deviation {value:+.0f} mm"

    def _observation(self, timestamp: datetime, value: float,
                     **meta) -> SignalObservation:
        return SignalObservation(
            timestamp=timestamp,
            value=round(float(value), 4),
            source=self.cfg.source,
            confidence=self.cfg.source_confidence,
            label=self._label(float(value)),
            meta={"aggregation": self.series_cfg["aggregation"],
                  "variable": self.series_cfg["daily_vars"], **meta},
        )

    def normalise(self, daily: dict, window: SignalWindow) -> list[SignalObservation]:
        s = daily_series(daily, self.series_cfg["daily_vars"])
        aggregated = self.aggregate(s, window)
        return [
            self._observation(ts.to_pydatetime().replace(tzinfo=timezone.utc), v)
            for ts, v in aggregated.items()
        ]
