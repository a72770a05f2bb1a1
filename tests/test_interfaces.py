"""Adapters and mocks provide every call the daemon makes through the protocols."""

from __future__ import annotations

import inspect

import pytest

from beacon_relay.beacon.drand import DrandBeaconSource
from beacon_relay.chain.broadcaster import TendermintBroadcaster
from beacon_relay.chain.queries import CosmosChainQueries
from beacon_relay.chain.signer import RemoteSigner
from beacon_relay.interfaces import BeaconSource, Broadcaster, ChainQueries, TxSigner

from tests.mocks import MockBeaconSource, MockBroadcaster, MockQueries, MockSigner


def _methods(protocol: type) -> dict[str, object]:
    return {
        name: member
        for name, member in vars(protocol).items()
        if not name.startswith("_") and callable(member)
    }


@pytest.mark.parametrize(
    "protocol, impl",
    [
        (BeaconSource, DrandBeaconSource),
        (BeaconSource, MockBeaconSource),
        (ChainQueries, CosmosChainQueries),
        (ChainQueries, MockQueries),
        (TxSigner, RemoteSigner),
        (TxSigner, MockSigner),
        (Broadcaster, TendermintBroadcaster),
        (Broadcaster, MockBroadcaster),
    ],
)
def test_implementation_matches_protocol(protocol, impl):
    for name, member in _methods(protocol).items():
        assert hasattr(impl, name), f"{impl.__name__} lacks {name}"
        if inspect.iscoroutinefunction(member):
            assert inspect.iscoroutinefunction(getattr(impl, name)), f"{impl.__name__}.{name}"


def test_daemon_collaborator_calls_are_declared():
    assert {"verify_chain", "watch"} <= set(_methods(BeaconSource))
    assert {"sign", "import_key", "generate_key"} <= set(_methods(TxSigner))
    assert {"get_block", "get_balance", "get_account"} <= set(_methods(ChainQueries))


def test_daemon_annotates_collaborators_with_protocols():
    from beacon_relay import daemon

    source = inspect.getsource(daemon.RelayDaemon.__init__)
    assert "self.beacon: BeaconSource" in source
    assert "self.queries: ChainQueries" in source
    assert "self.signer: TxSigner" in source
