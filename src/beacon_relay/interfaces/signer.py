"""TxSigner protocol - turns messages plus sign data into signed tx bytes."""

from __future__ import annotations

from typing import Any, Protocol

from beacon_relay.models.records import Fee, SignData


class TxSigner(Protocol):
    """Signs transactions for an account it holds the key for."""

    async def sign(
        self,
        address: str,
        messages: list[dict[str, Any]],
        fee: Fee,
        memo: str,
        sign_data: SignData,
    ) -> bytes:
        """Return the serialized signed transaction (TxRaw bytes)."""
        ...

    async def import_key(self, mnemonic: str, prefix: str) -> str:
        """Store the key derived from mnemonic. Returns its bech32 address."""
        ...

    async def generate_key(self, prefix: str) -> tuple[str, str]:
        """Create a new key. Returns (address, mnemonic)."""
        ...
