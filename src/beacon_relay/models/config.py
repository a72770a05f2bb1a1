"""Configuration models for the relay daemon."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_BEACON_URLS = [
    "https://api.drand.sh",
    "https://api2.drand.sh",
    "https://api3.drand.sh",
    "https://drand.cloudflare.com",
]


@dataclass(frozen=True)
class BeaconChainPreset:
    """Identity of a drand chain. Genesis and period are bound to the hash."""

    chain_hash: str
    genesis_time: int
    period: int


BEACON_CHAINS = {
    "mainnet": BeaconChainPreset(
        chain_hash="8990e7a9aaed2ffed73dbd7092123d6f289930540d7651336225dc172e51b2ce",
        genesis_time=1595431050,
        period=30,
    ),
    "fastnet": BeaconChainPreset(
        chain_hash="dbd506d6ef76e5f386f41c651dcb808c5bcbd75471cc4eafa3f4df7ad4e4c493",
        genesis_time=1677685200,
        period=3,
    ),
    "quicknet": BeaconChainPreset(
        chain_hash="52db9ba70e0cc0f6eaf7803dd07447a1f5477735fd3f661792ba94600c84e971",
        genesis_time=1692803367,
        period=3,
    ),
}


@dataclass
class ChainConfig:
    """Target Cosmos chain and contract."""

    endpoints: list[str] = field(default_factory=list)  # Tendermint RPC, first is primary
    rest_url: str = ""  # Cosmos REST (LCD) API
    prefix: str = "nois"
    denom: str = "unois"
    gas_price: str = ""  # e.g. "0.05unois"
    contract: str = ""
    request_timeout: float = 10.0  # seconds per query
    inclusion_timeout: float = 60.0  # seconds to wait for a tx to land in a block
    poll_interval: float = 0.5  # seconds between /tx lookups

    @property
    def primary_endpoint(self) -> str:
        return self.endpoints[0] if self.endpoints else ""


@dataclass
class BeaconConfig:
    """drand beacon source. chain_hash, genesis_time and period have no defaults."""

    chain: str = ""  # preset name, fills the three identity fields below
    chain_hash: str = ""
    genesis_time: int = 0
    period: int = 0
    urls: list[str] = field(default_factory=lambda: list(DEFAULT_BEACON_URLS))
    retry_interval: float = 1.0  # seconds between fetch attempts for a pending round
    request_timeout: float = 10.0
    verify_info: bool = True  # compare /info against genesis_time and period


@dataclass
class SignerConfig:
    """Remote signing service and account provisioning."""

    url: str = ""  # http(s) URL or unix socket path
    key_id: str = "beacon-relay"
    mnemonic: str = ""  # imported into the signer if set, otherwise a key is generated
    faucet_url: str = ""
    request_timeout: float = 10.0


@dataclass
class RelayConfig:
    """Complete relay configuration."""

    # Relay
    log_level: str = "info"
    gas_limit: int = 700_000
    broadcast_timeout: float = 30.0  # seconds per endpoint
    balance_check_delay: float = 5.0  # seconds after a submission
    moniker: str = ""  # registers the bot with the contract when set
    stats_every: int = 10  # rounds between stats log lines

    chain: ChainConfig = field(default_factory=ChainConfig)
    beacon: BeaconConfig = field(default_factory=BeaconConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
