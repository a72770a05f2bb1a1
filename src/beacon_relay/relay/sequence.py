"""In-memory account sequence tracking.

The chain is authoritative. We read it once, then hand out sequence
numbers locally so a submission does not need a round-trip first. Any
failed submission leaves the true on-chain sequence unknown (the tx may
still have landed), so the caller must resync() before trying again.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from beacon_relay.errors import UpstreamUnavailable
from beacon_relay.interfaces.chain import ChainQueries
from beacon_relay.models.records import SignData

log = logging.getLogger(__name__)


class SequenceCache:
    """Single owner of the process' SignData.

    Only one borrowed sequence is expected in flight at a time because
    rounds are processed sequentially. Handing out sequences to parallel
    submissions would need a reservation and rollback scheme instead.
    """

    def __init__(self, queries: ChainQueries, address: str) -> None:
        self._queries = queries
        self._address = address
        self._state: SignData | None = None
        self._state_lock = threading.Lock()
        self._query_lock = asyncio.Lock()

    @property
    def current(self) -> SignData | None:
        """Snapshot of the next SignData to be handed out, without consuming it."""
        with self._state_lock:
            return self._state

    async def _query(self) -> SignData:
        try:
            chain_id = await self._queries.get_chain_id()
            account = await self._queries.get_account(self._address)
        except UpstreamUnavailable:
            raise
        except Exception as exc:
            raise UpstreamUnavailable(
                f"could not query sign data for {self._address}: {exc}"
            ) from exc
        return SignData(
            chain_id=chain_id,
            account_number=account.account_number,
            sequence=account.sequence,
        )

    async def initialize(self) -> SignData:
        """Load SignData from the chain. Raises UpstreamUnavailable on failure."""
        async with self._query_lock:
            data = await self._query()
            with self._state_lock:
                self._state = data
        log.info(
            "Sign data initialized: chain_id=%s account_number=%d sequence=%d",
            data.chain_id, data.account_number, data.sequence,
        )
        return data

    def next(self) -> SignData:
        """Return the current SignData and advance the local sequence by one."""
        with self._state_lock:
            if self._state is None:
                raise RuntimeError("SequenceCache used before initialize()")
            borrowed = self._state
            self._state = SignData(
                chain_id=borrowed.chain_id,
                account_number=borrowed.account_number,
                sequence=borrowed.sequence + 1,
            )
        log.debug("Using sequence %d", borrowed.sequence)
        return borrowed

    async def resync(self) -> SignData:
        """Discard local state and reload it from the chain.

        Raises UpstreamUnavailable if the chain cannot be queried. Callers
        must not keep submitting with stale data in that case.
        """
        async with self._query_lock:
            stale = self.current
            data = await self._query()
            with self._state_lock:
                self._state = data
        log.info(
            "Sign data resynced: sequence %s -> %d",
            stale.sequence if stale else "?", data.sequence,
        )
        return data
