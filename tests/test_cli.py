"""CLI commands that need no network: status and config validation."""

from __future__ import annotations

import os

import pytest
from click.testing import CliRunner

from beacon_relay.cli import cli


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BEACON_RELAY_"):
            monkeypatch.delenv(key)


@pytest.fixture
def runner():
    return CliRunner()


def test_status_masks_mnemonic(runner, monkeypatch):
    monkeypatch.setenv("BEACON_RELAY_ENDPOINT", "http://rpc-a:26657")
    monkeypatch.setenv("BEACON_RELAY_ENDPOINT2", "http://rpc-b:26657")
    monkeypatch.setenv("BEACON_RELAY_BEACON_CHAIN", "fastnet")
    monkeypatch.setenv("BEACON_RELAY_MNEMONIC", "secret words here")

    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 0
    assert "http://rpc-a:26657" in result.output
    assert "http://rpc-b:26657" in result.output
    assert "fastnet" in result.output
    assert "***configured***" in result.output
    assert "secret words" not in result.output


def test_run_refuses_incomplete_config(runner):
    result = runner.invoke(cli, ["run"])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
    assert "BEACON_RELAY_ENDPOINT" in result.output


def test_unknown_beacon_chain_exits(runner, monkeypatch):
    monkeypatch.setenv("BEACON_RELAY_BEACON_CHAIN", "slownet")

    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 1
    assert "Unknown beacon chain" in result.output


def test_config_file_option(runner, tmp_path):
    path = tmp_path / "relay.toml"
    path.write_text('[chain]\ncontract = "nois1fromfile"\n')

    result = runner.invoke(cli, ["-c", str(path), "status"])

    assert result.exit_code == 0
    assert "nois1fromfile" in result.output


def _valid_env(monkeypatch):
    monkeypatch.setenv("BEACON_RELAY_ENDPOINT", "http://127.0.0.1:26657")
    monkeypatch.setenv("BEACON_RELAY_REST_URL", "http://127.0.0.1:1317")
    monkeypatch.setenv("BEACON_RELAY_CONTRACT", "nois1contract")
    monkeypatch.setenv("BEACON_RELAY_BEACON_CHAIN", "fastnet")
    monkeypatch.setenv("BEACON_RELAY_SIGNER_URL", "http://127.0.0.1:9400")


def test_run_rejects_bad_gas_price_before_starting(runner, monkeypatch):
    _valid_env(monkeypatch)
    monkeypatch.setenv("BEACON_RELAY_GAS_PRICE", "abc")

    result = runner.invoke(cli, ["run"])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
    assert "Invalid gas price" in result.output
    assert "Starting beacon relay" not in result.output
    assert not isinstance(result.exception, ValueError)


def test_unknown_log_level_exits_cleanly(runner, monkeypatch):
    monkeypatch.setenv("BEACON_RELAY_LOG_LEVEL", "chatty")

    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 1
    assert "unknown log level 'chatty'" in result.output
