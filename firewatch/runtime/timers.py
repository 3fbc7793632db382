"""
Deferred Timers
Cancellable single-shot callbacks fired between detection cycles
"""

import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple

from .clock import Clock, ManualClock

logger = logging.getLogger(__name__)


class TimerHandle:
    """Handle for one scheduled callback"""

    def __init__(self, deadline_ms: float, callback: Callable[[], None], name: str = ""):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self.name = name
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        # Cancelling a fired or already cancelled timer is a no-op
        if self.pending:
            self._cancelled = True

    def _fire(self) -> None:
        self._fired = True
        self.callback()


class TimerQueue:
    """
    Deadline-ordered queue of deferred callbacks.

    Nothing runs on its own: the owner calls run_due() between cycles,
    so callbacks never interleave with an analysis in progress.
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        name: str = ""
    ) -> TimerHandle:
        """
        Schedule callback to run once delay_ms from now

        Args:
            delay_ms: Delay in milliseconds (negative values are treated as 0)
            callback: Zero-argument callable
            name: Label used in log messages

        Returns:
            Handle that can cancel the callback
        """
        deadline = self.clock.now_ms() + max(0.0, delay_ms)
        handle = TimerHandle(deadline, callback, name)
        heapq.heappush(self._heap, (deadline, next(self._sequence), handle))
        return handle

    def run_due(self) -> int:
        """
        Fire every pending callback whose deadline has passed

        Callbacks scheduled while running are fired in the same pass if
        they are already due.

        Returns:
            Number of callbacks fired
        """
        fired = 0
        now = self.clock.now_ms()

        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if not handle.pending:
                continue
            try:
                handle._fire()
            except Exception:
                logger.exception(f"Timer callback '{handle.name}' failed")
            fired += 1

        return fired

    def advance(self, delta_ms: float) -> int:
        """
        Move a ManualClock forward, firing timers at their own deadlines

        Each due timer observes the clock at its deadline, the same as it
        would under real time.
        """
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() requires a ManualClock")

        target = self.clock.now_ms() + delta_ms
        fired = 0

        while True:
            deadline = self.next_deadline()
            if deadline is None or deadline > target:
                break
            if deadline > self.clock.now_ms():
                self.clock.set(deadline)
            fired += self.run_due()

        self.clock.set(target)
        fired += self.run_due()
        return fired

    def next_deadline(self) -> Optional[float]:
        """Deadline of the earliest pending timer, if any"""
        while self._heap and not self._heap[0][2].pending:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def pending_count(self) -> int:
        return sum(1 for _, _, handle in self._heap if handle.pending)

    def clear(self) -> None:
        """Cancel everything"""
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()


class SingleShotTimer:
    """
    Named timer slot holding at most one pending callback.
    Arming again cancels and replaces the pending one.
    """

    def __init__(self, queue: TimerQueue, name: str):
        self.queue = queue
        self.name = name
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and self._handle.pending

    @property
    def deadline_ms(self) -> Optional[float]:
        return self._handle.deadline_ms if self.pending else None

    def arm(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        self.cancel()
        self._handle = self.queue.call_later(delay_ms, callback, name=self.name)
        return self._handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
