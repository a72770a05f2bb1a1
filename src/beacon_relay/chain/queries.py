"""Cosmos chain queries over Tendermint RPC and the REST (LCD) API."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from beacon_relay.errors import UpstreamUnavailable
from beacon_relay.models.records import AccountInfo, BlockInfo, Coin

log = logging.getLogger(__name__)

_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> float:
    """Tendermint timestamp to unix seconds, keeping sub-second digits.

    Block times carry nanoseconds, which datetime cannot hold, so the
    fraction is added separately.
    """
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid RFC 3339 timestamp: {value!r}")
    whole, fraction, offset = match.groups()
    if offset == "Z":
        tz = timezone.utc
    else:
        sign = 1 if offset[0] == "+" else -1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    seconds = datetime.strptime(whole, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=tz).timestamp()
    if fraction:
        seconds += float(f"0.{fraction}")
    return seconds


def _base_account(account: dict[str, Any]) -> dict[str, Any]:
    """Unwrap vesting and module accounts down to the BaseAccount fields."""
    if "base_vesting_account" in account:
        account = account["base_vesting_account"]
    if "base_account" in account:
        account = account["base_account"]
    return account


class CosmosChainQueries:
    """Read-only queries against one Cosmos node.

    Chain id and blocks come from Tendermint RPC; accounts and balances
    from the REST API. Every failure surfaces as UpstreamUnavailable.
    """

    def __init__(self, rpc_url: str, rest_url: str, request_timeout: float = 10.0) -> None:
        self._rpc_url = rpc_url.rstrip("/")
        self._rest_url = rest_url.rstrip("/")
        self._timeout = request_timeout

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(
                f"GET {url} returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"GET {url} failed: {exc}") from exc

    async def _rpc(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        body = await self._get(f"{self._rpc_url}/{path}", params)
        if "error" in body:
            raise UpstreamUnavailable(f"RPC {path} error: {body['error']}")
        return body.get("result", body)

    async def get_chain_id(self) -> str:
        result = await self._rpc("status")
        try:
            return result["node_info"]["network"]
        except (KeyError, TypeError) as exc:
            raise UpstreamUnavailable(f"malformed /status response: {exc}") from exc

    async def get_account(self, address: str) -> AccountInfo:
        url = f"{self._rest_url}/cosmos/auth/v1beta1/accounts/{address}"
        try:
            body = await self._get(url)
        except UpstreamUnavailable as exc:
            cause = exc.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
                raise UpstreamUnavailable(
                    f"Account {address} does not exist on chain. "
                    "Send some tokens there before trying to query sequence."
                ) from exc
            raise
        try:
            account = _base_account(body["account"])
            return AccountInfo(
                account_number=int(account.get("account_number", 0)),
                sequence=int(account.get("sequence", 0)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable(f"malformed account response: {exc}") from exc

    async def get_block(self, height: int) -> BlockInfo:
        result = await self._rpc("block", {"height": height})
        try:
            header = result["block"]["header"]
            return BlockInfo(
                height=int(header["height"]),
                commit_time=parse_rfc3339(header["time"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable(f"malformed block {height} response: {exc}") from exc

    async def get_balance(self, address: str, denom: str) -> Coin:
        url = f"{self._rest_url}/cosmos/bank/v1beta1/balances/{address}/by_denom"
        body = await self._get(url, {"denom": denom})
        balance = body.get("balance") or {}
        return Coin(denom=balance.get("denom", denom), amount=str(balance.get("amount", "0")))
