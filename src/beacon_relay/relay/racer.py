"""Broadcast racing - one signed tx, many endpoints, first success wins."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from beacon_relay.errors import AllBroadcastsFailed
from beacon_relay.interfaces.broadcaster import Broadcaster
from beacon_relay.models.records import SubmissionResult

log = logging.getLogger(__name__)


class BroadcastRacer:
    """Submits the same signed bytes to every endpoint concurrently.

    The caller resumes on the first confirmed success. Slower endpoints
    are not cancelled: identical bytes settle once on chain, so they are
    left to finish and only their outcome is logged. They are tracked so
    aclose() can reap them at shutdown.
    """

    def __init__(self, broadcasters: Sequence[Broadcaster], timeout: float = 30.0) -> None:
        if not broadcasters:
            raise ValueError("at least one broadcast endpoint is required")
        names = [b.name for b in broadcasters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            # Errors are reported per endpoint name
            raise ValueError(f"duplicate broadcast endpoint names: {', '.join(duplicates)}")
        self._broadcasters = list(broadcasters)
        self._timeout = timeout
        self._stragglers: set[asyncio.Task[SubmissionResult]] = set()

    @property
    def endpoints(self) -> list[str]:
        return [b.name for b in self._broadcasters]

    @property
    def pending(self) -> int:
        """Number of losing broadcasts still running in the background."""
        return len(self._stragglers)

    async def _attempt(self, broadcaster: Broadcaster, tx_bytes: bytes) -> SubmissionResult:
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(broadcaster.broadcast(tx_bytes), self._timeout)
        except asyncio.TimeoutError:
            log.warning(
                "Broadcast via %s timed out after %.1fs", broadcaster.name, self._timeout,
            )
            raise
        except Exception as exc:
            log.warning("Broadcast via %s failed: %s", broadcaster.name, exc)
            raise
        log.info(
            "Broadcast via %s succeeded in %.2fs (height %d)",
            broadcaster.name, time.monotonic() - start, result.height,
        )
        return result

    def _adopt(self, task: asyncio.Task[SubmissionResult]) -> None:
        """Keep a losing task referenced until it finishes on its own."""
        self._stragglers.add(task)

        def _done(t: asyncio.Task[SubmissionResult]) -> None:
            self._stragglers.discard(t)
            # Outcome already logged in _attempt; retrieve it so asyncio does not warn.
            if not t.cancelled():
                t.exception()

        task.add_done_callback(_done)

    async def broadcast(self, tx_bytes: bytes) -> SubmissionResult:
        """Race tx_bytes across all endpoints.

        Returns the first successful SubmissionResult. Raises
        AllBroadcastsFailed, carrying every endpoint's error, if none succeed.
        """
        tasks = {
            asyncio.create_task(
                self._attempt(b, tx_bytes), name=f"broadcast-{b.name}",
            ): b.name
            for b in self._broadcasters
        }
        errors: dict[str, BaseException] = {}
        pending = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED,
                )
                winner: asyncio.Task[SubmissionResult] | None = None
                for task in done:
                    exc = task.exception()
                    if exc is None:
                        winner = winner or task
                    else:
                        errors[tasks[task]] = exc
                if winner is not None:
                    for loser in pending:
                        self._adopt(loser)
                    return winner.result()
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise

        # Keep endpoint order stable in the error report
        raise AllBroadcastsFailed({name: errors[name] for name in tasks.values()})

    async def aclose(self) -> None:
        """Cancel and await any broadcasts still running in the background."""
        stragglers = list(self._stragglers)
        for task in stragglers:
            task.cancel()
        if stragglers:
            await asyncio.gather(*stragglers, return_exceptions=True)
        self._stragglers.clear()
