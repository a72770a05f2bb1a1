"""Relay core - shard gating, sequence tracking and broadcast racing."""

from beacon_relay.relay.racer import BroadcastRacer
from beacon_relay.relay.sequence import SequenceCache
from beacon_relay.relay.shard import ShardAssigner

__all__ = ["BroadcastRacer", "SequenceCache", "ShardAssigner"]
