"""Data models for the beacon_relay daemon."""

from beacon_relay.models.beacon import BeaconRound
from beacon_relay.models.records import (
    AccountInfo,
    BlockInfo,
    Coin,
    Fee,
    GasPrice,
    RelayState,
    RelayStats,
    RoundOutcome,
    Shard,
    SignData,
    SubmissionResult,
)
from beacon_relay.models.config import (
    BEACON_CHAINS,
    BeaconChainPreset,
    BeaconConfig,
    ChainConfig,
    RelayConfig,
    SignerConfig,
)

__all__ = [
    "BeaconRound",
    "AccountInfo", "BlockInfo", "Coin", "Fee", "GasPrice",
    "RelayState", "RelayStats", "RoundOutcome", "Shard", "SignData",
    "SubmissionResult",
    "BEACON_CHAINS", "BeaconChainPreset", "BeaconConfig", "ChainConfig",
    "RelayConfig", "SignerConfig",
]
