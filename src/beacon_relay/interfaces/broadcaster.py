"""Broadcaster protocol - delivers signed tx bytes through one endpoint."""

from __future__ import annotations

from typing import Protocol

from beacon_relay.models.records import SubmissionResult


class Broadcaster(Protocol):
    """One broadcast endpoint.

    broadcast() returns only once the tx is in a block with a successful
    execution result, and raises BroadcastError otherwise.
    """

    name: str

    async def broadcast(self, tx_bytes: bytes) -> SubmissionResult:
        ...
