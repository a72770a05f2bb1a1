"""Internal record types for sign state, chain results and loop bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Shard(str, Enum):
    """One of the two submission partitions."""

    A = "A"
    B = "B"


class RelayState(str, Enum):
    """States of the relay loop for a single round."""

    IDLE = "idle"
    WAITING_FOR_ROUND = "waiting_for_round"
    GATING = "gating"
    BUILDING = "building"
    SIGNING = "signing"
    BROADCASTING = "broadcasting"
    REPORTING = "reporting"
    ERROR_RECOVERY = "error_recovery"


class RoundOutcome(str, Enum):
    """How the daemon disposed of one beacon round."""

    SUBMITTED = "submitted"
    SKIPPED = "skipped"  # not our shard
    DUPLICATE = "duplicate"  # round already handled
    FAILED = "failed"


@dataclass(frozen=True)
class SignData:
    """Everything the signer needs besides the messages themselves."""

    chain_id: str
    account_number: int
    sequence: int


@dataclass(frozen=True)
class AccountInfo:
    """Account number and current sequence as reported by the chain."""

    account_number: int
    sequence: int


@dataclass(frozen=True)
class BlockInfo:
    """Block height and its commit time in unix seconds (fractional)."""

    height: int
    commit_time: float


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: str  # integer string in the smallest unit


@dataclass(frozen=True)
class GasPrice:
    amount: Decimal
    denom: str


@dataclass(frozen=True)
class Fee:
    amount: list[Coin]
    gas: str


@dataclass(frozen=True)
class SubmissionResult:
    """Delivery result of the endpoint that won the broadcast race."""

    tx_hash: str
    height: int
    gas_used: int
    gas_wanted: int
    raw_log: str = ""
    endpoint: str = ""


@dataclass
class RelayStats:
    """Counters for rounds handled since startup."""

    rounds_seen: int = 0
    submitted: int = 0
    skipped: int = 0
    duplicates: int = 0
    failed: int = 0
    resyncs: int = 0

    def record(self, outcome: RoundOutcome) -> None:
        self.rounds_seen += 1
        if outcome == RoundOutcome.SUBMITTED:
            self.submitted += 1
        elif outcome == RoundOutcome.SKIPPED:
            self.skipped += 1
        elif outcome == RoundOutcome.DUPLICATE:
            self.duplicates += 1
        elif outcome == RoundOutcome.FAILED:
            self.failed += 1
