"""Protocol interfaces for all beacon_relay external collaborators."""

from beacon_relay.interfaces.beacon import BeaconSource
from beacon_relay.interfaces.broadcaster import Broadcaster
from beacon_relay.interfaces.chain import ChainQueries
from beacon_relay.interfaces.signer import TxSigner

__all__ = [
    "BeaconSource",
    "Broadcaster",
    "ChainQueries",
    "TxSigner",
]
