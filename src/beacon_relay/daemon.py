"""Main relay loop - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Any

import httpx

from beacon_relay.beacon.clock import RoundClock
from beacon_relay.beacon.drand import DrandBeaconSource
from beacon_relay.chain.broadcaster import TendermintBroadcaster
from beacon_relay.chain.faucet import FaucetClient
from beacon_relay.chain.queries import CosmosChainQueries
from beacon_relay.chain.signer import RemoteSigner
from beacon_relay.errors import BeaconError, UpstreamUnavailable
from beacon_relay.interfaces import BeaconSource, ChainQueries, TxSigner
from beacon_relay.models.beacon import BeaconRound
from beacon_relay.models.config import RelayConfig
from beacon_relay.models.records import (
    RelayState,
    RelayStats,
    RoundOutcome,
    SubmissionResult,
)
from beacon_relay.relay.messages import (
    add_round_memo,
    add_round_msg,
    calculate_fee,
    parse_gas_price,
    printable_coin,
    register_bot_msg,
)
from beacon_relay.relay.racer import BroadcastRacer
from beacon_relay.relay.sequence import SequenceCache
from beacon_relay.relay.shard import ShardAssigner

log = logging.getLogger(__name__)


class RelayDaemon:
    """Relays drand rounds into the contract, one transaction per round.

    Rounds are handled strictly one after another. For each round the
    daemon checks whether its shard is eligible, builds and signs an
    add_round message with a locally tracked sequence, races the signed
    bytes across all endpoints and reports latency. Any failure after
    a sequence was borrowed is followed by a resync from the chain.
    """

    def __init__(self, cfg: RelayConfig) -> None:
        self._cfg = cfg
        self._running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._last_round: int | None = None

        self.state = RelayState.IDLE
        self.stats = RelayStats()
        self.last_latency: float | None = None

        self.clock = RoundClock(cfg.beacon.genesis_time, cfg.beacon.period)
        self.fee = calculate_fee(cfg.gas_limit, parse_gas_price(cfg.chain.gas_price))
        self.shards = ShardAssigner()

        # Core components
        self.beacon: BeaconSource = DrandBeaconSource(
            cfg.beacon.urls,
            cfg.beacon.chain_hash,
            self.clock,
            retry_interval=cfg.beacon.retry_interval,
            request_timeout=cfg.beacon.request_timeout,
        )
        self.queries: ChainQueries = CosmosChainQueries(
            cfg.chain.primary_endpoint, cfg.chain.rest_url, cfg.chain.request_timeout,
        )
        self.signer: TxSigner = RemoteSigner(
            cfg.signer.url, cfg.signer.key_id, cfg.signer.request_timeout,
        )
        self.racer = BroadcastRacer(
            [
                TendermintBroadcaster(
                    f"endpoint{i}",
                    url,
                    request_timeout=cfg.chain.request_timeout,
                    inclusion_timeout=cfg.chain.inclusion_timeout,
                    poll_interval=cfg.chain.poll_interval,
                )
                for i, url in enumerate(cfg.chain.endpoints, start=1)
            ],
            timeout=cfg.broadcast_timeout,
        )

        # Known after account setup
        self.address = ""
        self.sequence: SequenceCache | None = None

    def _set_state(self, state: RelayState) -> None:
        if state != self.state:
            log.debug("State %s -> %s", self.state.value, state.value)
            self.state = state

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        """Initialize sign state and run the relay loop until stopped.

        Raises UpstreamUnavailable if sign data cannot be loaded or resynced,
        and BeaconError if the beacon is misconfigured or its stream ends.
        """
        log.info("Starting beacon relay")
        log.info("  Contract: %s", self._cfg.chain.contract)
        for name, url in zip(self.racer.endpoints, self._cfg.chain.endpoints):
            log.info("  Broadcast %s: %s", name, url)
        log.info("  REST: %s", self._cfg.chain.rest_url)
        log.info("  Beacon: %s (%s)", self._cfg.beacon.chain_hash[:16], self.clock)
        log.info("  Fee: %s%s for %s gas",
                 self.fee.amount[0].amount, self.fee.amount[0].denom, self.fee.gas)

        if self._cfg.beacon.verify_info:
            await self.beacon.verify_chain()

        if not self.address:
            self.address = await self._setup_account()
        log.info("  Address: %s (shard %s)", self.address, self.shards.group(self.address).value)

        if self.sequence is None:
            self.sequence = SequenceCache(self.queries, self.address)
        await self.sequence.initialize()

        if self._cfg.moniker:
            await self._register()

        self._running = True
        self._loop_task = asyncio.create_task(self._main_loop())
        try:
            await self._loop_task
        except asyncio.CancelledError:
            if self._running:
                raise
            log.info("Main loop cancelled")
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._running = False
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()

    async def _shutdown(self) -> None:
        self._running = False
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        await self.racer.aclose()
        self._set_state(RelayState.IDLE)
        self.log_stats()
        log.info("Relay shut down cleanly")

    async def _setup_account(self) -> str:
        """Import or generate the bot key in the signer. Returns the address."""
        prefix = self._cfg.chain.prefix
        if self._cfg.signer.mnemonic:
            address = await self.signer.import_key(self._cfg.signer.mnemonic, prefix)
            log.info("Imported configured mnemonic as %s", address)
            return address

        address, _mnemonic = await self.signer.generate_key(prefix)
        log.warning(
            "Generated new key %r for address %s (mnemonic held by the signer)",
            self._cfg.signer.key_id, address,
        )
        if self._cfg.signer.faucet_url:
            faucet = FaucetClient(self._cfg.signer.faucet_url)
            try:
                await faucet.credit(address, self._cfg.chain.denom)
            except httpx.HTTPError as exc:
                log.warning("Faucet credit for %s failed: %s", address, exc)
        else:
            log.warning(
                "MNEMONIC and FAUCET_ENDPOINT are unset. Bot account probably has no funds."
            )
        return address

    async def _register(self) -> None:
        """Register the bot's moniker with the contract. Failure is not fatal."""
        msg = register_bot_msg(self.address, self._cfg.chain.contract, self._cfg.moniker)
        try:
            result = await self._submit([msg], f"Register bot {self._cfg.moniker}")
            log.info(
                "Registered bot as %r (Transaction: %s)", self._cfg.moniker, result.tx_hash,
            )
        except Exception as exc:
            log.warning("Bot registration failed: %s", exc)
            await self._recover()
        finally:
            self._set_state(RelayState.IDLE)

    # ── Main loop ──────────────────────────────────────────

    async def _main_loop(self) -> None:
        """Consume the beacon stream one round at a time."""
        self._set_state(RelayState.WAITING_FOR_ROUND)
        async for beacon in self.beacon.watch():
            await self.handle_round(beacon)
            self._set_state(RelayState.WAITING_FOR_ROUND)
        raise BeaconError("beacon stream ended")

    async def handle_round(self, beacon: BeaconRound) -> RoundOutcome:
        """Run one round through gate, build, sign, broadcast and report."""
        outcome = await self._process_round(beacon)
        self.stats.record(outcome)
        if self.stats.rounds_seen % self._cfg.stats_every == 0:
            self.log_stats()
        return outcome

    async def _process_round(self, beacon: BeaconRound) -> RoundOutcome:
        self._set_state(RelayState.GATING)
        if self._last_round is not None and beacon.round <= self._last_round:
            log.debug("Round %d already handled, ignoring", beacon.round)
            self._set_state(RelayState.IDLE)
            return RoundOutcome.DUPLICATE
        self._last_round = beacon.round

        if not self.shards.is_my_group(self.address, beacon.round):
            log.info(
                "Skipping round %d (eligible shard %s, ours %s)",
                beacon.round,
                self.shards.eligible_group(beacon.round).value,
                self.shards.group(self.address).value,
            )
            self._set_state(RelayState.IDLE)
            return RoundOutcome.SKIPPED

        log.info(
            "Submitting drand round %d (%.3fs after publish) ...",
            beacon.round, self.clock.published_since(beacon.round),
        )
        self._set_state(RelayState.BUILDING)
        msg = add_round_msg(self.address, self._cfg.chain.contract, beacon)

        submitted = False
        try:
            broadcast_time = time.time()
            result = await self._submit([msg], add_round_memo(beacon.round))
            submitted = True
            log.info(
                "✔ Round %d (Gas: %d/%d; Transaction: %s; via %s)",
                beacon.round, result.gas_used, result.gas_wanted,
                result.tx_hash, result.endpoint,
            )

            self._set_state(RelayState.REPORTING)
            await self._report_latency(beacon, result, broadcast_time)
            self._schedule_balance_check()
            return RoundOutcome.SUBMITTED

        except Exception as exc:
            log.error(
                "Round %d failed during %s: %s", beacon.round, self.state.value, exc,
            )
            await self._recover()
            return RoundOutcome.SUBMITTED if submitted else RoundOutcome.FAILED

        finally:
            self._set_state(RelayState.IDLE)

    async def _submit(self, messages: list[dict[str, Any]], memo: str) -> SubmissionResult:
        """Borrow a sequence, sign, and race the tx across all endpoints."""
        assert self.sequence is not None
        self._set_state(RelayState.SIGNING)
        sign_data = self.sequence.next()
        tx_bytes = await self.signer.sign(self.address, messages, self.fee, memo, sign_data)

        self._set_state(RelayState.BROADCASTING)
        return await self.racer.broadcast(tx_bytes)

    async def _recover(self) -> None:
        """Resync sign data after an ambiguous failure. Re-raises if that fails too."""
        assert self.sequence is not None
        self._set_state(RelayState.ERROR_RECOVERY)
        self.stats.resyncs += 1
        try:
            await self.sequence.resync()
        except UpstreamUnavailable as exc:
            log.critical("Sequence resync failed, cannot continue safely: %s", exc)
            raise

    # ── Reporting ──────────────────────────────────────────

    async def _report_latency(
        self, beacon: BeaconRound, result: SubmissionResult, broadcast_time: float,
    ) -> None:
        """Compare the block commit time with the round's publish time (seconds)."""
        publish_time = self.clock.time_of_round(beacon.round)
        block = await self.queries.get_block(result.height)
        diff = block.commit_time - publish_time
        self.last_latency = diff
        log.info(
            "Broadcast time (local): %.3f; Drand publish time: %.0f; "
            "Commit time: %.3f; Diff: %.3f",
            broadcast_time, publish_time, block.commit_time, diff,
        )

    def _schedule_balance_check(self) -> None:
        task = asyncio.create_task(self._check_balance_later())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _check_balance_later(self) -> None:
        """Log the bot balance a few seconds after a submission, when things are idle."""
        await asyncio.sleep(self._cfg.balance_check_delay)
        try:
            balance = await self.queries.get_balance(self.address, self._cfg.chain.denom)
        except Exception as exc:
            log.warning("Error getting bot balance: %s", exc)
            return
        log.info("Balance: %s", printable_coin(balance))

    def log_stats(self) -> None:
        s = self.stats
        log.info(
            "Stats: %d rounds seen, %d submitted, %d skipped, %d duplicates, "
            "%d failed, %d resyncs",
            s.rounds_seen, s.submitted, s.skipped, s.duplicates, s.failed, s.resyncs,
        )


async def run_daemon(cfg: RelayConfig) -> None:
    """Entry point for running the daemon."""
    daemon = RelayDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
