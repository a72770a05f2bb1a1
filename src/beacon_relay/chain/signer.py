"""Remote signing service client.

Keys never live in this process. The signer is a local daemon reached
over HTTP or a unix domain socket; it holds the account key, and turns
messages plus sign data into TxRaw bytes.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import asdict
from typing import Any

import httpx

from beacon_relay.errors import SigningError
from beacon_relay.models.records import Fee, SignData

log = logging.getLogger(__name__)


class RemoteSigner:
    """Implements TxSigner against the signer's /v1 HTTP API."""

    def __init__(self, url: str, key_id: str, request_timeout: float = 10.0) -> None:
        self._url = url
        self._key_id = key_id
        self._timeout = request_timeout

    def _transport(self) -> httpx.AsyncHTTPTransport | None:
        if self._url.startswith(("http://", "https://")):
            return None
        log.debug("Using unix domain socket: %s", self._url)
        return httpx.AsyncHTTPTransport(uds=self._url)

    def _base_url(self) -> str:
        if self._url.startswith(("http://", "https://")):
            return self._url.rstrip("/")
        return "http://localhost"

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                transport=self._transport(), timeout=self._timeout,
            ) as client:
                resp = await client.post(self._base_url() + path, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            raise SigningError(
                f"signer {path} returned HTTP {exc.response.status_code}: {detail}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SigningError(f"signer {path} failed: {exc}") from exc

    async def import_key(self, mnemonic: str, prefix: str) -> str:
        """Import a mnemonic under our key id. Returns the account address."""
        body = await self._post(
            "/v1/keys/import",
            {"key_id": self._key_id, "mnemonic": mnemonic, "prefix": prefix},
        )
        return body["address"]

    async def generate_key(self, prefix: str) -> tuple[str, str]:
        """Create a fresh key under our key id. Returns (address, mnemonic)."""
        body = await self._post(
            "/v1/keys/generate", {"key_id": self._key_id, "prefix": prefix},
        )
        return body["address"], body.get("mnemonic", "")

    async def sign(
        self,
        address: str,
        messages: list[dict[str, Any]],
        fee: Fee,
        memo: str,
        sign_data: SignData,
    ) -> bytes:
        body = await self._post(
            "/v1/sign",
            {
                "key_id": self._key_id,
                "signer": address,
                "messages": messages,
                "fee": asdict(fee),
                "memo": memo,
                "sign_data": asdict(sign_data),
            },
        )
        try:
            return base64.b64decode(body["tx_bytes"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SigningError(f"signer returned no usable tx_bytes: {exc}") from exc
