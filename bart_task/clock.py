from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    The trial engine timestamps every pump and collect through this interface,
    so tests can drive reaction times with a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def elapsed_ms(start_s: float, end_s: float) -> float:
    """Milliseconds between two clock readings (never negative)."""

    return max(0.0, (end_s - start_s) * 1000.0)
