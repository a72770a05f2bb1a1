"""Faucet client for funding freshly generated bot accounts."""

from __future__ import annotations

import logging

import httpx

log = logging.getLogger(__name__)


class FaucetClient:
    """Talks to a CosmJS-style faucet (POST /credit)."""

    def __init__(self, url: str, request_timeout: float = 30.0) -> None:
        self._url = url.rstrip("/")
        self._timeout = request_timeout

    async def credit(self, address: str, denom: str) -> None:
        """Request tokens. Raises httpx.HTTPError if the faucet refuses."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(
                f"{self._url}/credit", json={"address": address, "denom": denom},
            )
            resp.raise_for_status()
        log.info("Faucet credited %s with %s", address, denom)
