"""
Caller-supplied signal cache.

Nothing in the pricing core caches on its own.  A caller that wants to
reuse fetches across requests passes a SignalCache explicitly; with
``cache_dir`` set, entries are also mirrored to JSON files.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

from satshield_pricing.models import SignalObservation, SignalWindow

logger = logging.getLogger(__name__)


class SignalCache:
    def __init__(self, cache_dir: str | Path | None = None):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self._entries: dict[str, tuple[SignalObservation, ...]] = {}

    @staticmethod
    def key(peril, lat: float, lng: float, window: SignalWindow,
            query: dict) -> str:
        raw = json.dumps({
            "peril": getattr(peril, "value", peril),
            "lat": round(lat, 4),
            "lng": round(lng, 4),
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
            "query": query,
        }, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()[:16]

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"signals_{key}.json"

    def get(self, key: str) -> list[SignalObservation] | None:
        if key in self._entries:
            logger.debug("Signal cache hit (memory): %s", key)
            return list(self._entries[key])

        if self.cache_dir is not None and self._path(key).exists():
            logger.debug("Signal cache hit (disk): %s", key)
            with open(self._path(key)) as f:
                observations = [SignalObservation.from_dict(d) for d in json.load(f)]
            self._entries[key] = tuple(observations)
            return observations
        return None

    def put(self, key: str, observations: list[SignalObservation]) -> None:
        self._entries[key] = tuple(observations)
        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self._path(key), "w") as f:
                json.dump([o.to_dict() for o in observations], f)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
