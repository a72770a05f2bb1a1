"""Round timing arithmetic for a drand chain.

All values are unix seconds (float). Milliseconds never appear here;
callers convert at their own boundary.
"""

from __future__ import annotations

import math
import time


class RoundClock:
    """Maps round numbers to canonical publication times.

    genesis_time and period belong to one specific beacon chain. A clock
    built for the wrong chain produces silently wrong latency numbers, so
    both are required.
    """

    def __init__(self, genesis_time: float, period: float) -> None:
        if genesis_time <= 0:
            raise ValueError(f"genesis_time must be positive, got {genesis_time}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.genesis_time = genesis_time
        self.period = period

    def time_of_round(self, round_number: int) -> float:
        """Publication time of a round (drand's TimeOfRound)."""
        return self.genesis_time + (round_number - 1) * self.period

    def published_since(self, round_number: int, now: float | None = None) -> float:
        """Seconds elapsed since the round was published. Negative if it is in the future."""
        if now is None:
            now = time.time()
        return now - self.time_of_round(round_number)

    def current_round(self, now: float | None = None) -> int:
        """Latest round whose publication time has passed. 0 before genesis."""
        if now is None:
            now = time.time()
        if now < self.genesis_time:
            return 0
        return math.floor((now - self.genesis_time) / self.period) + 1

    def __repr__(self) -> str:
        return f"RoundClock(genesis_time={self.genesis_time}, period={self.period})"
