"""Time providers for contracts.

Contracts never read the wall clock directly; they call an injected
``time_provider`` returning unix seconds as int.
"""

from __future__ import annotations

import time
from typing import Callable

TimeProvider = Callable[[], int]


def system_time() -> int:
    return int(time.time())


def current_time(time_provider: TimeProvider) -> int:
    """Call a time provider and insist on an integer timestamp."""
    timestamp = time_provider()
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        raise ValueError("time_provider must return an integer timestamp")
    return timestamp


class ManualClock:
    """Deterministic clock for simulations and tests."""

    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self.current_time += seconds
        return self.current_time

    def set(self, timestamp: int) -> None:
        if timestamp < self.current_time:
            raise ValueError("Cannot move a clock backwards")
        self.current_time = timestamp
