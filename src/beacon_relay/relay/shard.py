"""Two-shard submission gating.

Each bot belongs to shard A or B based on one byte of a hash of its
address. Even rounds are for shard A, odd rounds for shard B. Bots in
the same shard may still both submit a round; the contract accepts the
first and no-ops the rest.
"""

from __future__ import annotations

import hashlib
from typing import Callable

from beacon_relay.models.records import Shard

HashFn = Callable[[bytes], bytes]


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


class ShardAssigner:
    """Decides which rounds an identity is responsible for."""

    def __init__(self, hash_fn: HashFn = sha256) -> None:
        self._hash = hash_fn
        self._groups: dict[str, Shard] = {}

    def group(self, identity: str) -> Shard:
        """Shard of an identity. Stable for the life of the identity."""
        shard = self._groups.get(identity)
        if shard is None:
            first_byte = self._hash(identity.encode("utf-8"))[0]
            shard = Shard.A if first_byte % 2 == 0 else Shard.B
            self._groups[identity] = shard
        return shard

    @staticmethod
    def eligible_group(round_number: int) -> Shard:
        """Shard allowed to submit a round."""
        return Shard.A if round_number % 2 == 0 else Shard.B

    def is_my_group(self, identity: str, round_number: int) -> bool:
        return self.group(identity) == self.eligible_group(round_number)
