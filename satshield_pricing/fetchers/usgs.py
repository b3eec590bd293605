"""
USGS Earthquake Catalog provider.

Queries the FDSNWS event/1 endpoint for events within a radius of the
insured location and normalises them to SignalObservation (value =
magnitude).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from satshield_pricing.models import SignalObservation, SignalWindow
from satshield_pricing.perils import Peril, peril_config
from satshield_pricing.transport import get_json

logger = logging.getLogger(__name__)

USGS_URL = "https://earthquake.usgs.gov/fdsnws/event/1/query"
USGS_ROW_LIMIT = 20000


class USGSProvider:
    """Fetch earthquake events around a point.

    Parameters
    ----------
    radius_km : float
        Search radius around the insured location (default 500).
    min_magnitude : float
        Floor for the requested magnitude (default 2.0).  When a trigger
        value is known the query narrows to ``trigger - 2.0``.
    """

    def __init__(
        self,
        peril=Peril.EARTHQUAKE,
        table: dict | None = None,
        radius_km: float = 500.0,
        min_magnitude: float = 2.0,
    ):
        self.peril = Peril.coerce(peril)
        self.cfg = peril_config(self.peril, table)
        self.radius_km = radius_km
        self.min_magnitude = min_magnitude

    def query_params(self, lat: float, lng: float, window: SignalWindow,
                     trigger_value: float | None = None) -> dict:
        min_mag = self.min_magnitude
        if trigger_value is not None:
            min_mag = max(self.min_magnitude, trigger_value - 2.0)
        return {
            "format": "geojson",
            "latitude": lat,
            "longitude": lng,
            "maxradiuskm": self.radius_km,
            "minmagnitude": round(min_mag, 2),
            "starttime": window.start.isoformat(),
            "endtime": (window.end + timedelta(days=1)).isoformat(),
            "orderby": "time-asc",
            "limit": USGS_ROW_LIMIT,
        }

    async def fetch(self, lat, lng, window, *, session, retry=None,
                    token=None, trigger_value=None) -> list[SignalObservation]:
        params = self.query_params(lat, lng, window, trigger_value)
        logger.info("Fetching USGS events %s → %s (M>=%s, %skm)",
                    params["starttime"], params["endtime"],
                    params["minmagnitude"], params["maxradiuskm"])
        data = await get_json(session, USGS_URL, params, retry=retry, token=token)
        features = data.get("features", [])

        if len(features) >= USGS_ROW_LIMIT:
            logger.warning("USGS query hit the %d-row limit; history is "
                           "truncated. Consider a shorter window.",
                           USGS_ROW_LIMIT)

        return self.normalise(features, self.cfg.source, self.cfg.source_confidence)

    @staticmethod
    def normalise(features: list[dict], source: str,
                  confidence: float | None = None) -> list[SignalObservation]:
        """USGS GeoJSON → SignalObservation list."""
        observations: list[SignalObservation] = []
        for feat in features:
            props = feat.get("properties") or {}
            coords = (feat.get("geometry") or {}).get("coordinates") or [None, None, None]
            mag = props.get("mag")
            time_ms = props.get("time")
            if mag is None or time_ms is None:
                continue
            place = props.get("place") or "Unknown"
            observations.append(SignalObservation(
                timestamp=datetime.fromtimestamp(time_ms / 1000.0, tz=timezone.utc),
                value=float(mag),
                source=source,
                confidence=confidence,
                label=f"M{float(mag):.1f} earthquake, {place}",
                meta={
                    "id": feat.get("id"),
                    "magnitude_scale": props.get("magType", ""),
                    "lat": coords[1],
                    "lon": coords[0],
                    "depth_km": coords[2] if len(coords) > 2 else None,
                },
            ))
        return observations
