"""Polling backoff schedule.

Starts at 5s, doubles after every 5th attempt, and gives up once the doubled
interval would reach 2 minutes:

    5s x5, 10s x5, 20s x5, 40s x5, 80s x5, then exhausted

A failed poll counts as an attempt like any other.
"""

BASE_INTERVAL_MS = 5_000
MAX_INTERVAL_MS = 120_000
DOUBLE_EVERY = 5


class PollBackoff:
    """Mutable backoff state for one polling session."""

    def __init__(
        self,
        base_ms: int = BASE_INTERVAL_MS,
        max_ms: int = MAX_INTERVAL_MS,
        double_every: int = DOUBLE_EVERY,
    ):
        if base_ms <= 0 or max_ms < base_ms or double_every <= 0:
            raise ValueError("invalid backoff parameters")
        self.base_ms = base_ms
        self.max_ms = max_ms
        self.double_every = double_every
        self.reset()

    def reset(self) -> None:
        self.attempts = 0
        self.interval_ms = self.base_ms
        self.exhausted = False

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000

    def record_attempt(self) -> bool:
        """Count one finished poll. Returns False once polling should stop."""
        if self.exhausted:
            return False
        self.attempts += 1
        if self.attempts % self.double_every == 0:
            self.interval_ms = min(self.interval_ms * 2, self.max_ms)
            if self.interval_ms >= self.max_ms:
                self.exhausted = True
                return False
        return True

    def schedule(self) -> list[int]:
        """Intervals (ms) a fresh session would sleep before giving up."""
        probe = PollBackoff(self.base_ms, self.max_ms, self.double_every)
        intervals = []
        while True:
            intervals.append(probe.interval_ms)
            if not probe.record_attempt():
                return intervals
