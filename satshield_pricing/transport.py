"""HTTP JSON fetch with bounded exponential-backoff retry."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from threading import Lock

import requests

from satshield_pricing.cancellation import CancellationToken, run_cancellable
from satshield_pricing.errors import TransientFetchError, UnsupportedPeril

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({408, 429})


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule: 3 attempts, 0.5 s initial delay, 2x, +/-25 % jitter."""

    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    jitter: float = 0.25
    timeout: float = 60.0

    def delay(self, attempt: int) -> float:
        """Delay before the retry that follows *attempt* (1-based)."""
        delay = self.base_delay * self.multiplier ** (attempt - 1)
        spread = delay * self.jitter
        return max(0.0, delay + random.uniform(-spread, spread))


DEFAULT_RETRY = RetryPolicy()


class ClosingSession:
    """Private ``requests.Session`` that outlives a cancelled fetch.

    Cancelling a fetch abandons the worker thread running ``get`` but
    cannot stop it.  ``close()`` therefore only marks the session; the
    underlying session is closed once the last in-flight ``get`` returns.
    """

    def __init__(self, session: requests.Session | None = None):
        self._session = session if session is not None else requests.Session()
        self._lock = Lock()
        self._inflight = 0
        self._closing = False
        self.closed = False

    def get(self, *args, **kwargs):
        with self._lock:
            if self._closing:
                raise requests.exceptions.ConnectionError("session is closed")
            self._inflight += 1
        try:
            return self._session.get(*args, **kwargs)
        finally:
            with self._lock:
                self._inflight -= 1
                close_now = self._closing and self._inflight == 0
            if close_now:
                self._close()

    def close(self) -> None:
        with self._lock:
            self._closing = True
            close_now = self._inflight == 0
        if close_now:
            self._close()
        else:
            logger.debug("Deferring session close until %d request(s) finish",
                         self._inflight)

    def _close(self) -> None:
        if not self.closed:
            self.closed = True
            self._session.close()


async def get_json(
    session: requests.Session,
    url: str,
    params: dict,
    retry: RetryPolicy | None = None,
    token: CancellationToken | None = None,
) -> dict:
    """
    GET *url* and decode JSON, retrying transient failures.

    Network errors, timeouts, undecodable bodies and HTTP 408/429/5xx are
    retried up to ``retry.max_attempts`` and then raised as
    TransientFetchError.  Any other non-200 status means the provider
    cannot serve the request and raises UnsupportedPeril immediately.
    """
    retry = retry or DEFAULT_RETRY

    for attempt in range(1, retry.max_attempts + 1):
        try:
            r = await run_cancellable(
                asyncio.to_thread(session.get, url, params=params,
                                  timeout=retry.timeout),
                token,
            )
        except requests.exceptions.RequestException as exc:
            reason = f"{type(exc).__name__}: {exc}"
        else:
            if r.status_code == 200:
                try:
                    return r.json()
                except ValueError:
                    reason = "response body is not valid JSON"
            elif r.status_code in RETRYABLE_STATUS or r.status_code >= 500:
                reason = f"HTTP {r.status_code}"
            else:
                raise UnsupportedPeril(
                    f"Signal provider rejected the request: HTTP {r.status_code}",
                    url=url, status=r.status_code,
                )

        if attempt == retry.max_attempts:
            raise TransientFetchError(
                f"Signal provider unavailable after {attempt} attempts: {reason}",
                url=url, attempts=attempt,
            )

        wait = retry.delay(attempt)
        logger.warning("Attempt %d/%d for %s failed (%s), retrying in %.2fs",
                       attempt, retry.max_attempts, url, reason, wait)
        await run_cancellable(asyncio.sleep(wait), token)

    raise TransientFetchError(f"Max retries exceeded for {url}", url=url)
