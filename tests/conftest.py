"""Shared fixtures: fake HTTP session and observation builders."""

from datetime import date, datetime, timezone

import pytest

from satshield_pricing.models import SignalObservation, SignalWindow
from satshield_pricing.transport import RetryPolicy


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Replays a scripted list of responses (or exceptions to raise).

    The last entry is repeated once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        pass


def obs(day: str, value: float, source: str = "test") -> SignalObservation:
    ts = datetime.fromisoformat(day).replace(tzinfo=timezone.utc)
    return SignalObservation(timestamp=ts, value=value, source=source)


def usgs_payload(*events):
    """events: (iso_time, magnitude, place)"""
    features = []
    for i, (when, mag, place) in enumerate(events):
        ts = datetime.fromisoformat(when).replace(tzinfo=timezone.utc)
        features.append({
            "id": f"us{i:04d}",
            "properties": {"mag": mag, "time": int(ts.timestamp() * 1000),
                           "place": place, "magType": "mw"},
            "geometry": {"coordinates": [-122.4, 37.7, 10.0]},
        })
    return {"type": "FeatureCollection", "features": features}


@pytest.fixture
def twenty_years():
    # 2005-01-01 .. 2025-01-01 is exactly 7305 days = 20.0 years
    return SignalWindow(date(2005, 1, 1), date(2025, 1, 1))


@pytest.fixture
def no_wait():
    return RetryPolicy(max_attempts=3, base_delay=0.0)
