"""
Signal providers and the fetch entry point.

Each provider exposes::

    query_params(lat, lng, window, trigger_value) -> dict
    async fetch(lat, lng, window, *, session, retry, token, trigger_value)
        -> list[SignalObservation]

``fetch_signals()`` validates inputs before any I/O, consults an optional
caller-supplied cache, and returns a sorted, deduplicated series.  An empty
series is a valid result.
"""

from __future__ import annotations

import logging

import requests

from satshield_pricing.fetchers.catalogue import CatalogueProvider
from satshield_pricing.fetchers.open_meteo import OpenMeteoProvider
from satshield_pricing.fetchers.usgs import USGSProvider
from satshield_pricing.models import SignalObservation, SignalWindow, validate_location
from satshield_pricing.perils import Peril
from satshield_pricing.transport import ClosingSession

logger = logging.getLogger(__name__)

PROVIDER_REGISTRY: dict[Peril, type] = {
    Peril.EARTHQUAKE: USGSProvider,
    Peril.FLOOD: OpenMeteoProvider,
    Peril.DROUGHT: OpenMeteoProvider,
    Peril.CROP_YIELD: OpenMeteoProvider,
    Peril.EXTREME_HEAT: OpenMeteoProvider,
    Peril.FLIGHT_DELAY: CatalogueProvider,
    Peril.SHIPPING_DISRUPTION: CatalogueProvider,
    Peril.CYBER_OUTAGE: CatalogueProvider,
}


def get_provider(peril, **kwargs):
    """Instantiate the provider registered for *peril*."""
    p = Peril.coerce(peril)
    return PROVIDER_REGISTRY[p](peril=p, **kwargs)


def dedup_sorted(observations: list[SignalObservation]) -> list[SignalObservation]:
    """Drop repeated (timestamp, value) readings and order by timestamp."""
    seen: set[tuple] = set()
    unique: list[SignalObservation] = []
    for obs in observations:
        key = (obs.timestamp, round(obs.value, 3))
        if key not in seen:
            seen.add(key)
            unique.append(obs)
    before, after = len(observations), len(unique)
    if before != after:
        logger.info("Dedup: %d → %d (removed %d)", before, after, before - after)
    return sorted(unique, key=lambda o: o.timestamp)


async def fetch_signals(
    peril,
    lat: float,
    lng: float,
    window: SignalWindow | None = None,
    *,
    session: requests.Session | None = None,
    cache=None,
    token=None,
    retry=None,
    trigger_value: float | None = None,
    table: dict | None = None,
) -> list[SignalObservation]:
    """
    Fetch the signal series for *peril* at (lat, lng).

    Parameters
    ----------
    window : SignalWindow, optional
        Defaults to the peril's full available history.
    session : requests.Session, optional
        HTTP session.  A private one is opened if omitted; it is closed
        when the fetch ends, or after the abandoned request returns when
        the fetch is cancelled mid-request.
    cache : SignalCache, optional
        Caller-owned cache; consulted before and filled after the fetch.
    token : CancellationToken, optional
        Aborts the fetch with FetchCancelled when cancelled.
    retry : RetryPolicy, optional
        Backoff schedule for transient failures.
    trigger_value : float, optional
        Lets providers narrow their query (e.g. USGS minimum magnitude).

    Raises
    ------
    InvalidLocation, UnsupportedPeril, TransientFetchError, FetchCancelled
    """
    p = Peril.coerce(peril)
    validate_location(lat, lng)
    if window is None:
        window = SignalWindow.full_history(p, table=table)

    provider = get_provider(p, table=table)
    query = provider.query_params(lat, lng, window, trigger_value)

    key = None
    if cache is not None:
        key = cache.key(p, lat, lng, window, query)
        hit = cache.get(key)
        if hit is not None:
            return hit

    if token is not None:
        token.raise_if_cancelled()

    own_session = session is None
    if own_session:
        session = ClosingSession()
    try:
        observations = await provider.fetch(
            lat, lng, window,
            session=session, retry=retry, token=token,
            trigger_value=trigger_value,
        )
    finally:
        if own_session:
            session.close()

    observations = dedup_sorted(observations)
    logger.info("Fetched %d %s observations for (%.4f, %.4f) %s",
                len(observations), p.value, lat, lng, window.label)

    if cache is not None:
        cache.put(key, observations)
    return observations
