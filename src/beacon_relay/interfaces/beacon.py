"""BeaconSource protocol - delivers an ordered stream of beacon rounds."""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from beacon_relay.models.beacon import BeaconRound


class BeaconSource(Protocol):
    """Yields published beacon rounds in increasing order, indefinitely."""

    async def verify_chain(self) -> None:
        """Raise BeaconError if the source serves a different chain than configured."""
        ...

    def watch(self) -> AsyncIterator[BeaconRound]:
        """Async iterator over new rounds. Gaps are possible, repeats are not."""
        ...
