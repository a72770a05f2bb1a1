"""CLI entry point for the beacon_relay daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from beacon_relay.beacon.clock import RoundClock
from beacon_relay.chain.queries import CosmosChainQueries
from beacon_relay.chain.signer import RemoteSigner
from beacon_relay.config import load_config, validate_config
from beacon_relay.daemon import run_daemon
from beacon_relay.errors import RelayError
from beacon_relay.models.config import RelayConfig
from beacon_relay.relay.messages import printable_coin
from beacon_relay.relay.shard import ShardAssigner


def _load(ctx: click.Context) -> RelayConfig:
    """Load config, exiting with an error message if it is unusable."""
    try:
        cfg = load_config(ctx.obj["config_path"])
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if not ctx.obj["verbose"]:
        try:
            logging.getLogger().setLevel(cfg.log_level.upper())
        except ValueError:
            click.echo(f"Error: unknown log level {cfg.log_level!r}", err=True)
            sys.exit(1)
    return cfg


def _require_valid(cfg: RelayConfig) -> None:
    """Exit with error if the config cannot run the daemon."""
    problems = validate_config(cfg)
    if problems:
        click.echo("Error: invalid configuration.", err=True)
        for problem in problems:
            click.echo(f"  - {problem}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """beacon-relay - submit drand rounds to a CosmWasm contract."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the relay daemon."""
    cfg = _load(ctx)
    _require_valid(cfg)

    click.echo(
        f"Starting beacon relay ({len(cfg.chain.endpoints)} endpoint(s), "
        f"contract {cfg.chain.contract})"
    )
    try:
        asyncio.run(run_daemon(cfg))
    except RelayError as exc:
        click.echo(f"Fatal: {exc}", err=True)
        sys.exit(1)


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show relay configuration."""
    cfg = _load(ctx)
    endpoints = cfg.chain.endpoints or ["(not set)"]
    click.echo(f"Endpoints:    {endpoints[0]}")
    for extra in endpoints[1:]:
        click.echo(f"              {extra}")
    click.echo(f"REST URL:     {cfg.chain.rest_url or '(not set)'}")
    click.echo(f"Contract:     {cfg.chain.contract or '(not set)'}")
    click.echo(f"Gas price:    {cfg.chain.gas_price or '(not set)'}")
    click.echo(f"Gas limit:    {cfg.gas_limit}")
    click.echo(f"Beacon chain: {cfg.beacon.chain or '(explicit)'} {cfg.beacon.chain_hash or '(not set)'}")
    click.echo(f"Genesis:      {cfg.beacon.genesis_time or '(not set)'}")
    click.echo(f"Period:       {cfg.beacon.period or '(not set)'}s")
    click.echo(f"Beacon URLs:  {', '.join(cfg.beacon.urls)}")
    click.echo(f"Signer:       {cfg.signer.url or '(not set)'} (key {cfg.signer.key_id})")
    click.echo(f"Mnemonic:     {'***configured***' if cfg.signer.mnemonic else '(generate)'}")
    click.echo(f"Moniker:      {cfg.moniker or '(none)'}")


@cli.command()
@click.option("--address", default=None, help="Bot address (default: import configured mnemonic)")
@click.pass_context
def info(ctx: click.Context, address: str | None) -> None:
    """Query account sequence, balance, shard and current beacon round."""
    cfg = _load(ctx)
    _require_valid(cfg)

    async def _info():
        queries = CosmosChainQueries(
            cfg.chain.primary_endpoint, cfg.chain.rest_url, cfg.chain.request_timeout,
        )
        addr = address
        if addr is None:
            if not cfg.signer.mnemonic:
                click.echo("Error: pass --address or configure a mnemonic.", err=True)
                sys.exit(1)
            signer = RemoteSigner(cfg.signer.url, cfg.signer.key_id, cfg.signer.request_timeout)
            addr = await signer.import_key(cfg.signer.mnemonic, cfg.chain.prefix)

        shards = ShardAssigner()
        clock = RoundClock(cfg.beacon.genesis_time, cfg.beacon.period)
        current = clock.current_round()

        click.echo(f"Address:        {addr}")
        click.echo(f"Shard:          {shards.group(addr).value}")
        click.echo(f"Chain ID:       {await queries.get_chain_id()}")
        account = await queries.get_account(addr)
        click.echo(f"Account number: {account.account_number}")
        click.echo(f"Sequence:       {account.sequence}")
        balance = await queries.get_balance(addr, cfg.chain.denom)
        click.echo(f"Balance:        {printable_coin(balance)}")
        click.echo(
            f"Beacon round:   {current} "
            f"(next eligible shard {shards.eligible_group(current + 1).value})"
        )

    try:
        asyncio.run(_info())
    except RelayError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
