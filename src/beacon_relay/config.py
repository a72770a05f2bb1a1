"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from beacon_relay.models.config import BEACON_CHAINS, RelayConfig
from beacon_relay.relay.messages import parse_gas_price

MAX_NUMBERED_ENDPOINTS = 9
_LOG_LEVELS = {logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL}


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "BEACON_RELAY_",
) -> RelayConfig:
    """Load relay configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (BEACON_RELAY_ENDPOINT, etc.)
        2. TOML config file
        3. Defaults from RelayConfig

    Raises ValueError for an unknown beacon chain preset.
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = RelayConfig()

    # ── Relay section ──────────────────────────────────────
    relay = raw.get("relay", {})
    if v := relay.get("log_level"):
        cfg.log_level = str(v)
    if v := relay.get("gas_limit"):
        cfg.gas_limit = int(v)
    if v := relay.get("broadcast_timeout"):
        cfg.broadcast_timeout = float(v)
    if (v := relay.get("balance_check_delay")) is not None:
        cfg.balance_check_delay = float(v)
    if v := relay.get("moniker"):
        cfg.moniker = str(v)
    if v := relay.get("stats_every"):
        cfg.stats_every = int(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("endpoints"):
        cfg.chain.endpoints = [str(e) for e in v]
    if v := chain.get("rest_url"):
        cfg.chain.rest_url = str(v)
    if v := chain.get("prefix"):
        cfg.chain.prefix = str(v)
    if v := chain.get("denom"):
        cfg.chain.denom = str(v)
    if v := chain.get("gas_price"):
        cfg.chain.gas_price = str(v)
    if v := chain.get("contract"):
        cfg.chain.contract = str(v)
    if v := chain.get("request_timeout"):
        cfg.chain.request_timeout = float(v)
    if v := chain.get("inclusion_timeout"):
        cfg.chain.inclusion_timeout = float(v)
    if v := chain.get("poll_interval"):
        cfg.chain.poll_interval = float(v)

    # ── Beacon section ─────────────────────────────────────
    beacon = raw.get("beacon", {})
    if v := beacon.get("chain"):
        cfg.beacon.chain = str(v)
    if v := beacon.get("chain_hash"):
        cfg.beacon.chain_hash = str(v)
    if v := beacon.get("genesis_time"):
        cfg.beacon.genesis_time = int(v)
    if v := beacon.get("period"):
        cfg.beacon.period = int(v)
    if v := beacon.get("urls"):
        cfg.beacon.urls = [str(u) for u in v]
    if v := beacon.get("retry_interval"):
        cfg.beacon.retry_interval = float(v)
    if v := beacon.get("request_timeout"):
        cfg.beacon.request_timeout = float(v)
    if "verify_info" in beacon:
        cfg.beacon.verify_info = bool(beacon["verify_info"])

    # ── Signer section ─────────────────────────────────────
    signer = raw.get("signer", {})
    if v := signer.get("url"):
        cfg.signer.url = str(v)
    if v := signer.get("key_id"):
        cfg.signer.key_id = str(v)
    if v := signer.get("mnemonic"):
        cfg.signer.mnemonic = str(v)
    if v := signer.get("faucet_url"):
        cfg.signer.faucet_url = str(v)

    # ── Environment variable overrides (highest priority) ──
    env = os.environ
    if v := env.get(f"{env_prefix}ENDPOINTS"):
        cfg.chain.endpoints = _split_list(v)
    elif v := env.get(f"{env_prefix}ENDPOINT"):
        endpoints = [v]
        for i in range(2, MAX_NUMBERED_ENDPOINTS + 1):
            if extra := env.get(f"{env_prefix}ENDPOINT{i}"):
                endpoints.append(extra)
        cfg.chain.endpoints = endpoints
    if v := env.get(f"{env_prefix}REST_URL"):
        cfg.chain.rest_url = v
    if v := env.get(f"{env_prefix}PREFIX"):
        cfg.chain.prefix = v
    if v := env.get(f"{env_prefix}DENOM"):
        cfg.chain.denom = v
    if v := env.get(f"{env_prefix}GAS_PRICE"):
        cfg.chain.gas_price = v
    if v := env.get(f"{env_prefix}CONTRACT"):
        cfg.chain.contract = v

    if v := env.get(f"{env_prefix}BEACON_CHAIN"):
        cfg.beacon.chain = v
    if v := env.get(f"{env_prefix}CHAIN_HASH"):
        cfg.beacon.chain_hash = v
    if v := env.get(f"{env_prefix}GENESIS_TIME"):
        cfg.beacon.genesis_time = int(v)
    if v := env.get(f"{env_prefix}ROUND_PERIOD"):
        cfg.beacon.period = int(v)
    if v := env.get(f"{env_prefix}BEACON_URLS"):
        cfg.beacon.urls = _split_list(v)

    if v := env.get(f"{env_prefix}SIGNER_URL"):
        cfg.signer.url = v
    if v := env.get(f"{env_prefix}KEY_ID"):
        cfg.signer.key_id = v
    if v := env.get(f"{env_prefix}MNEMONIC"):
        cfg.signer.mnemonic = v
    if v := env.get(f"{env_prefix}FAUCET_ENDPOINT"):
        cfg.signer.faucet_url = v

    if v := env.get(f"{env_prefix}MONIKER"):
        cfg.moniker = v
    if v := env.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = v

    _apply_beacon_preset(cfg)
    return cfg


def _apply_beacon_preset(cfg: RelayConfig) -> None:
    """Fill beacon identity fields from the named preset. Explicit values win."""
    if not cfg.beacon.chain:
        return
    preset = BEACON_CHAINS.get(cfg.beacon.chain)
    if preset is None:
        raise ValueError(
            f"Unknown beacon chain {cfg.beacon.chain!r}. "
            f"Known chains: {', '.join(sorted(BEACON_CHAINS))}"
        )
    if not cfg.beacon.chain_hash:
        cfg.beacon.chain_hash = preset.chain_hash
    if not cfg.beacon.genesis_time:
        cfg.beacon.genesis_time = preset.genesis_time
    if not cfg.beacon.period:
        cfg.beacon.period = preset.period


def validate_config(cfg: RelayConfig) -> list[str]:
    """Return a list of problems that prevent the daemon from running."""
    problems: list[str] = []
    if not cfg.chain.endpoints:
        problems.append("No RPC endpoint configured (BEACON_RELAY_ENDPOINT).")
    if not cfg.chain.rest_url:
        problems.append("No REST endpoint configured (BEACON_RELAY_REST_URL).")
    if not cfg.chain.contract:
        problems.append("No contract address configured (BEACON_RELAY_CONTRACT).")
    if not cfg.chain.gas_price:
        problems.append("No gas price configured (BEACON_RELAY_GAS_PRICE), e.g. '0.05unois'.")
    else:
        try:
            parse_gas_price(cfg.chain.gas_price)
        except ValueError as exc:
            problems.append(f"Invalid gas price (BEACON_RELAY_GAS_PRICE): {exc}.")
    if logging.getLevelName(cfg.log_level.upper()) not in _LOG_LEVELS:
        problems.append(
            f"Unknown log level {cfg.log_level!r} (BEACON_RELAY_LOG_LEVEL), "
            "expected debug, info, warning, error or critical."
        )
    if not cfg.beacon.chain_hash:
        problems.append(
            "No beacon chain configured. Set BEACON_RELAY_BEACON_CHAIN "
            f"({', '.join(sorted(BEACON_CHAINS))}) or BEACON_RELAY_CHAIN_HASH."
        )
    if cfg.beacon.genesis_time <= 0 or cfg.beacon.period <= 0:
        problems.append(
            "Beacon genesis time and round period are required "
            "(BEACON_RELAY_GENESIS_TIME, BEACON_RELAY_ROUND_PERIOD)."
        )
    if not cfg.beacon.urls:
        problems.append("No beacon URLs configured (BEACON_RELAY_BEACON_URLS).")
    if not cfg.signer.url:
        problems.append("No signer configured (BEACON_RELAY_SIGNER_URL).")
    return problems
