"""drand HTTP beacon source - watches a drand chain for new rounds."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Callable, TypeVar

import httpx

from beacon_relay.beacon.clock import RoundClock
from beacon_relay.errors import BeaconError
from beacon_relay.models.beacon import BeaconRound

log = logging.getLogger(__name__)

# drand relays answer 404 (or 425 Too Early) for rounds not yet published
_NOT_YET_STATUSES = {404, 425}

T = TypeVar("T")


def _parse_info(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict) or "genesis_time" not in data or "period" not in data:
        raise ValueError(f"not a drand chain info document: {data!r:.80}")
    return data


class DrandBeaconSource:
    """Reads rounds from one or more drand HTTP relays.

    Relays are tried in order for every request, so a dead relay costs
    one failed request rather than a stalled stream. Signatures are not
    verified; the contract does that.
    """

    def __init__(
        self,
        urls: list[str],
        chain_hash: str,
        clock: RoundClock,
        retry_interval: float = 1.0,
        request_timeout: float = 10.0,
        time_fn: Callable[[], float] = time.time,
    ) -> None:
        if not urls:
            raise ValueError("at least one drand URL is required")
        self._urls = [u.rstrip("/") for u in urls]
        self._chain_hash = chain_hash
        self._clock = clock
        self._retry_interval = retry_interval
        self._request_timeout = request_timeout
        self._time = time_fn

    @property
    def clock(self) -> RoundClock:
        return self._clock

    async def _get_json(
        self, path: str, parse: Callable[[Any], T],
    ) -> T | None:
        """GET {url}/{chain_hash}/{path} and parse it, first usable relay wins.

        A relay whose body does not parse counts as failed and the next one
        is tried. Returns None when every reachable relay says the resource
        does not exist yet. Raises BeaconError when no relay gave a usable
        answer.
        """
        errors: list[str] = []
        not_yet = False
        async with httpx.AsyncClient(timeout=self._request_timeout) as client:
            for base in self._urls:
                url = f"{base}/{self._chain_hash}/{path}"
                try:
                    resp = await client.get(url)
                    if resp.status_code in _NOT_YET_STATUSES:
                        not_yet = True
                        continue
                    resp.raise_for_status()
                    return parse(resp.json())
                except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                    log.debug("drand request %s failed: %r", url, exc)
                    errors.append(f"{base}: {exc!r}")

        if not_yet:
            return None
        raise BeaconError(f"no usable drand relay for {path} ({'; '.join(errors)})")

    async def fetch_info(self) -> dict[str, Any]:
        """Chain info: public_key, period, genesis_time, hash, ..."""
        info = await self._get_json("info", _parse_info)
        if info is None:
            raise BeaconError(f"unknown drand chain {self._chain_hash}")
        return info

    async def verify_chain(self) -> None:
        """Check the relays' chain info against the configured clock."""
        info = await self.fetch_info()
        genesis = info.get("genesis_time")
        period = info.get("period")
        if genesis != self._clock.genesis_time or period != self._clock.period:
            raise BeaconError(
                f"drand chain {self._chain_hash[:16]} has genesis_time={genesis} "
                f"period={period}, configured genesis_time={self._clock.genesis_time} "
                f"period={self._clock.period}"
            )
        log.info(
            "drand chain verified: genesis_time=%s period=%ss", genesis, period,
        )

    async def fetch_round(self, round_number: int) -> BeaconRound | None:
        """Fetch a specific round. None if it is not published yet."""

        def parse(data: Any) -> BeaconRound:
            beacon = BeaconRound.from_json(data)
            if beacon.round != round_number:
                raise ValueError(f"requested round {round_number}, relay returned {beacon.round}")
            return beacon

        return await self._get_json(f"public/{round_number}", parse)

    async def fetch_latest(self) -> BeaconRound:
        beacon = await self._get_json("public/latest", BeaconRound.from_json)
        if beacon is None:
            raise BeaconError("drand relays have no latest round")
        return beacon

    async def watch(self) -> AsyncIterator[BeaconRound]:
        """Yield each new round shortly after its publication time.

        Waits indefinitely: a round that cannot be fetched is retried every
        retry_interval seconds. If the clock moves past it meanwhile, the
        stream jumps forward to the current round.
        """
        next_round = self._clock.current_round(self._time()) + 1
        log.info("Watching drand chain %s from round %d", self._chain_hash[:16], next_round)

        while True:
            delay = self._clock.time_of_round(next_round) - self._time()
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                beacon = await self.fetch_round(next_round)
            except BeaconError as exc:
                log.warning("Fetching round %d failed: %s", next_round, exc)
                beacon = None

            if beacon is None:
                await asyncio.sleep(self._retry_interval)
                current = self._clock.current_round(self._time())
                if current > next_round:
                    log.warning("Round %d missed, skipping ahead to %d", next_round, current)
                    next_round = current
                continue

            yield beacon
            next_round = max(beacon.round + 1, self._clock.current_round(self._time()))
