"""Beacon round model as delivered by the drand HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BeaconRound:
    """One published drand round.

    Chained beacons carry the previous round's signature; unchained
    ones (quicknet) do not, so previous_signature is optional.
    """

    round: int
    randomness: bytes
    signature: bytes
    previous_signature: bytes | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BeaconRound:
        """Build a BeaconRound from the drand JSON shape (hex encoded fields)."""
        round_number = int(data["round"])
        if round_number < 1:
            raise ValueError(f"invalid beacon round: {round_number}")
        previous = data.get("previous_signature")
        return cls(
            round=round_number,
            randomness=bytes.fromhex(data["randomness"]),
            signature=bytes.fromhex(data["signature"]),
            previous_signature=bytes.fromhex(previous) if previous else None,
        )
