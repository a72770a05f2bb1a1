"""Cosmos chain integration components."""

from beacon_relay.chain.broadcaster import TendermintBroadcaster
from beacon_relay.chain.faucet import FaucetClient
from beacon_relay.chain.queries import CosmosChainQueries
from beacon_relay.chain.signer import RemoteSigner

__all__ = ["TendermintBroadcaster", "FaucetClient", "CosmosChainQueries", "RemoteSigner"]
