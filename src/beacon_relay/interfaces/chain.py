"""ChainQueries protocol - read-only queries against the target chain."""

from __future__ import annotations

from typing import Protocol

from beacon_relay.models.records import AccountInfo, BlockInfo, Coin


class ChainQueries(Protocol):
    """Authoritative chain state. Implementations raise UpstreamUnavailable on failure."""

    async def get_chain_id(self) -> str:
        ...

    async def get_account(self, address: str) -> AccountInfo:
        """Account number and current sequence for an address."""
        ...

    async def get_block(self, height: int) -> BlockInfo:
        ...

    async def get_balance(self, address: str, denom: str) -> Coin:
        ...
