"""
Known-event catalogue for perils without a public historical feed.

Flight delay, shipping disruption and cyber outage are priced from a small,
deterministic catalogue of documented disruptions.  No network access; the
catalogue is location independent.  Values are provisional.
"""

from __future__ import annotations

from datetime import datetime, timezone

from satshield_pricing.errors import UnsupportedPeril
from satshield_pricing.models import SignalObservation, SignalWindow
from satshield_pricing.perils import Peril, peril_config

# (date, value in the peril's unit, description)
KNOWN_EVENTS: dict[Peril, list[tuple[str, float, str]]] = {
    Peril.FLIGHT_DELAY: [
        ("2017-03-14", 150.0, "Winter storm season network delays"),
        ("2019-01-25", 180.0, "ATC system outage"),
        ("2022-06-17", 120.0, "Airline staffing crisis"),
        ("2024-07-19", 165.0, "Severe weather pattern"),
    ],
    Peril.SHIPPING_DISRUPTION: [
        ("2015-08-12", 5.0, "Tianjin port explosion closure"),
        ("2021-03-23", 6.0, "Suez Canal blocked by Ever Given"),
        ("2022-04-01", 14.0, "Shanghai port restricted during lockdown"),
        ("2024-01-12", 30.0, "Red Sea transit disruption"),
    ],
    Peril.CYBER_OUTAGE: [
        ("2017-02-28", 240.0, "AWS S3 outage"),
        ("2020-12-14", 180.0, "Google Cloud outage"),
        ("2021-10-04", 360.0, "Facebook/Meta global outage"),
        ("2024-07-19", 720.0, "CrowdStrike update, widespread outage"),
    ],
}


class CatalogueProvider:
    """Serve catalogue events that fall inside the requested window."""

    def __init__(self, peril, table: dict | None = None,
                 events: dict | None = None):
        self.peril = Peril.coerce(peril)
        catalogue = KNOWN_EVENTS if events is None else events
        if self.peril not in catalogue:
            raise UnsupportedPeril(
                f"No event catalogue for '{self.peril.value}'",
                peril=self.peril.value,
            )
        self.cfg = peril_config(self.peril, table)
        self.events = catalogue[self.peril]

    def query_params(self, lat: float, lng: float, window: SignalWindow,
                     trigger_value: float | None = None) -> dict:
        return {"catalogue": self.peril.value, "size": len(self.events)}

    def _select(self, window: SignalWindow) -> list[SignalObservation]:
        observations = []
        for day, value, description in self.events:
            ts = datetime.fromisoformat(day).replace(tzinfo=timezone.utc)
            if not window.start <= ts.date() <= window.end:
                continue
            observations.append(SignalObservation(
                timestamp=ts,
                value=float(value),
                source=self.cfg.source,
                confidence=self.cfg.source_confidence,
                label=f"{description} ({value:g} {self.cfg.unit})",
                meta={"catalogue": True},
            ))
        return observations

    async def fetch(self, lat, lng, window, *, session=None, retry=None,
                    token=None, trigger_value=None) -> list[SignalObservation]:
        if token is not None:
            token.raise_if_cancelled()
        return self._select(window)
