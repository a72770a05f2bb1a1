"""Tendermint RPC broadcaster - submits signed txs and waits for delivery."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import itertools
import logging
import time
from typing import Any

import httpx

from beacon_relay.errors import BroadcastError
from beacon_relay.models.records import SubmissionResult

log = logging.getLogger(__name__)

_request_ids = itertools.count(1)


def tx_hash(tx_bytes: bytes) -> str:
    """Tendermint tx hash: upper-case hex SHA-256 of the raw bytes."""
    return hashlib.sha256(tx_bytes).hexdigest().upper()


class TendermintBroadcaster:
    """Broadcasts through one node's RPC endpoint.

    broadcast_tx_sync only confirms mempool admission (CheckTx). The tx
    is then looked up via /tx until it shows up in a block, and only a
    zero DeliverTx code counts as success.
    """

    def __init__(
        self,
        name: str,
        rpc_url: str,
        request_timeout: float = 10.0,
        inclusion_timeout: float = 60.0,
        poll_interval: float = 0.5,
    ) -> None:
        self.name = name
        self._rpc_url = rpc_url.rstrip("/")
        self._request_timeout = request_timeout
        self._inclusion_timeout = inclusion_timeout
        self._poll_interval = poll_interval

    def __repr__(self) -> str:
        return f"TendermintBroadcaster({self.name!r}, {self._rpc_url!r})"

    async def _broadcast_sync(self, client: httpx.AsyncClient, tx_bytes: bytes) -> str:
        payload = {
            "jsonrpc": "2.0",
            "id": next(_request_ids),
            "method": "broadcast_tx_sync",
            "params": {"tx": base64.b64encode(tx_bytes).decode("ascii")},
        }
        try:
            resp = await client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise BroadcastError(self.name, f"broadcast_tx_sync failed: {exc}") from exc

        if "error" in body:
            error = body["error"]
            raise BroadcastError(self.name, f"broadcast_tx_sync error: {error.get('data') or error}")

        result = body.get("result", {})
        code = int(result.get("code", 0))
        if code != 0:
            raise BroadcastError(
                self.name,
                f"CheckTx failed with code {code} ({result.get('codespace', '')})",
                code=code,
                raw_log=result.get("log", ""),
            )
        return result.get("hash") or tx_hash(tx_bytes)

    async def _lookup(self, client: httpx.AsyncClient, hash_hex: str) -> dict[str, Any] | None:
        """Return the /tx result, or None while the tx is not in a block yet."""
        try:
            resp = await client.get(f"{self._rpc_url}/tx", params={"hash": f"0x{hash_hex}"})
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.debug("%s: /tx lookup for %s failed: %s", self.name, hash_hex[:16], exc)
            return None
        return body.get("result")

    async def broadcast(self, tx_bytes: bytes) -> SubmissionResult:
        async with httpx.AsyncClient(timeout=self._request_timeout) as client:
            hash_hex = await self._broadcast_sync(client, tx_bytes)
            log.debug("%s: tx %s accepted into mempool", self.name, hash_hex[:16])

            deadline = time.monotonic() + self._inclusion_timeout
            while True:
                found = await self._lookup(client, hash_hex)
                if found is not None:
                    break
                if time.monotonic() >= deadline:
                    raise BroadcastError(
                        self.name,
                        f"tx {hash_hex} not included after {self._inclusion_timeout:.0f}s",
                    )
                await asyncio.sleep(self._poll_interval)

        tx_result = found.get("tx_result", {})
        code = int(tx_result.get("code", 0))
        raw_log = tx_result.get("log", "")
        if code != 0:
            raise BroadcastError(
                self.name,
                f"tx {hash_hex} failed in block {found.get('height')} with code {code}",
                code=code,
                raw_log=raw_log,
            )
        return SubmissionResult(
            tx_hash=found.get("hash", hash_hex),
            height=int(found["height"]),
            gas_used=int(tx_result.get("gas_used", 0)),
            gas_wanted=int(tx_result.get("gas_wanted", 0)),
            raw_log=raw_log,
            endpoint=self.name,
        )
