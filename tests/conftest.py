"""Shared fixtures for beacon_relay tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from beacon_relay.daemon import RelayDaemon
from beacon_relay.models.config import (
    BeaconConfig,
    ChainConfig,
    RelayConfig,
    SignerConfig,
)
from beacon_relay.relay.racer import BroadcastRacer
from beacon_relay.relay.sequence import SequenceCache

from tests.factories import (
    CONTRACT,
    FASTNET_GENESIS,
    FASTNET_HASH,
    FASTNET_PERIOD,
    SHARD_A_ADDRESS,
)
from tests.mocks import MockBeaconSource, MockBroadcaster, MockQueries, MockSigner


# ── Report metadata ───────────────────────────────────────────────


def pytest_configure(config):
    """Add beacon chain info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Beacon Chain"] = f"fastnet ({FASTNET_HASH[:16]})"
    meta["Contract"] = CONTRACT
    meta["Bot Address (shard A)"] = SHARD_A_ADDRESS


def make_test_config(**overrides) -> RelayConfig:
    """Build a RelayConfig suitable for testing."""
    defaults = dict(
        log_level="debug",
        gas_limit=700_000,
        broadcast_timeout=5.0,
        balance_check_delay=0.0,
        moniker="",
        chain=ChainConfig(
            endpoints=[
                "http://127.0.0.1:26657",
                "http://127.0.0.1:26658",
                "http://127.0.0.1:26659",
            ],
            rest_url="http://127.0.0.1:1317",
            prefix="nois",
            denom="unois",
            gas_price="0.05unois",
            contract=CONTRACT,
        ),
        beacon=BeaconConfig(
            chain="fastnet",
            chain_hash=FASTNET_HASH,
            genesis_time=FASTNET_GENESIS,
            period=FASTNET_PERIOD,
            urls=["http://127.0.0.1:9300"],
            verify_info=False,
        ),
        signer=SignerConfig(url="http://127.0.0.1:9400", key_id="test-bot"),
    )
    defaults.update(overrides)
    return RelayConfig(**defaults)


@pytest.fixture
def test_config():
    """Default RelayConfig for tests."""
    return make_test_config()


@pytest.fixture
def mock_queries():
    return MockQueries(sequence=5)


@pytest.fixture
def mock_signer():
    return MockSigner(succeed=True)


@pytest.fixture
def mock_broadcasters():
    return [
        MockBroadcaster("endpoint1", succeed=True, delay=0.01),
        MockBroadcaster("endpoint2", succeed=True, delay=0.02),
        MockBroadcaster("endpoint3", succeed=True, delay=0.03),
    ]


@pytest.fixture
def mock_beacon():
    return MockBeaconSource()


@pytest.fixture
async def daemon(test_config, mock_queries, mock_signer, mock_broadcasters, mock_beacon):
    """RelayDaemon in shard A with mocked components and initialized sign data."""
    d = RelayDaemon(test_config)
    d.queries = mock_queries
    d.signer = mock_signer
    d.racer = BroadcastRacer(mock_broadcasters, timeout=test_config.broadcast_timeout)
    d.beacon = mock_beacon
    d.address = SHARD_A_ADDRESS
    d.sequence = SequenceCache(mock_queries, SHARD_A_ADDRESS)
    await d.sequence.initialize()
    yield d
    await d._shutdown()
