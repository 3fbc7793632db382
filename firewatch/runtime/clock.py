"""
Clock Sources
Millisecond clocks used by the detection loop, confirmer and alert timers
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in milliseconds"""

    def now_ms(self) -> float: ...


class MonotonicClock:
    """Wall-independent clock backed by time.monotonic()"""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """
    Virtual clock for deterministic replay and tests.
    Time only moves when advance() or set() is called.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)

    def now_ms(self) -> float:
        return self._now

    def advance(self, delta_ms: float) -> float:
        if delta_ms < 0:
            raise ValueError(f"Cannot move clock backwards ({delta_ms}ms)")
        self._now += delta_ms
        return self._now

    def set(self, now_ms: float) -> None:
        if now_ms < self._now:
            raise ValueError(f"Cannot move clock backwards to {now_ms}ms")
        self._now = float(now_ms)
