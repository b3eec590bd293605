"""Cooperative cancellation for in-flight signal fetches."""

from __future__ import annotations

import asyncio

from satshield_pricing.errors import FetchCancelled


class CancellationToken:
    """Caller-owned flag that aborts a fetch at its next suspension point.

    The caller creates one token per request and calls ``cancel()`` when the
    request is superseded (e.g. the trigger value changed).  Fetches check
    the token before each attempt and race it against every network call
    and backoff sleep.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "superseded") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise FetchCancelled(f"Fetch cancelled: {self.reason}",
                                 reason=self.reason)

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(aw, token: CancellationToken | None):
    """Await *aw*, aborting with FetchCancelled if *token* fires first."""
    if token is None:
        return await aw

    if token.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        token.raise_if_cancelled()
    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait(
            {task, waiter}, return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()
    task.cancel()
    token.raise_if_cancelled()
