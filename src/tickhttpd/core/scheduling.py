"""
=============================================================================
SCHEDULING CAPABILITY
=============================================================================

The server does not own a thread or an event loop. It borrows time from
its host through two calls:

    schedule(interval_ms, task) -> handle    run task every interval_ms
    cancel(handle)                           never run it again

=============================================================================
COOPERATIVE TICKS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONE HOST THREAD, MANY TASKS                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   host loop ──► render frame ──► slow poll ──► UI ──► fast poll ──►  │
    │                                      │                    │          │
    │                                      └── must return ─────┘          │
    │                                          immediately                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A task runs on the host's own thread. If it blocks, the host freezes.
Every socket the server touches is therefore non-blocking, and a
"would block" answer simply ends the tick.

=============================================================================
TIMERLOOP
=============================================================================

TimerLoop is a small reference host: a heap of due times driven from a
single thread. The CLI runs the server inside one, and the integration
tests use it to drive real sockets without threads.

=============================================================================
"""

import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)

Task = Callable[[], None]


class Scheduler(Protocol):
    """What the server needs from its host."""

    def schedule(self, interval_ms: int, task: Task) -> Any:
        """Run `task` every `interval_ms` until cancelled. Returns a handle."""

    def cancel(self, handle: Any) -> None:
        """Stop running the task behind `handle`. Cancelling twice is a no-op."""


class TimerHandle:
    """A repeating timer registered with a TimerLoop."""

    __slots__ = ("interval_ms", "task", "due", "cancelled")

    def __init__(self, interval_ms: int, task: Task, due: float):
        self.interval_ms = interval_ms
        self.task = task
        self.due = due
        self.cancelled = False

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000.0

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else f"due={self.due:.3f}"
        return f"<TimerHandle every {self.interval_ms}ms {state}>"


class TimerLoop:
    """
    Single-threaded repeating-timer loop implementing Scheduler.

    Usage:
        loop = TimerLoop()
        server = HTTPServer(loop)
        server.apply_config(ServerConfig(run=True, webroot="./export"))
        loop.run()            # until loop.stop() or nothing is scheduled

    Tests can drive it by hand instead:
        loop.run_pending()    # run every task that is due right now
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()
        self._active = 0
        self._running = False

    # =========================================================================
    # SCHEDULER PROTOCOL
    # =========================================================================

    def schedule(self, interval_ms: int, task: Task) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        handle = TimerHandle(interval_ms, task, self._clock() + interval_ms / 1000.0)
        self._push(handle)
        self._active += 1
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        handle.cancelled = True
        self._active -= 1

    # =========================================================================
    # DRIVING THE LOOP
    # =========================================================================

    @property
    def pending(self) -> int:
        """Number of timers that have not been cancelled."""
        return self._active

    def next_due(self) -> Optional[float]:
        """Clock time of the earliest live timer, or None."""
        self._discard_cancelled()
        if not self._heap:
            return None
        return self._heap[0][0]

    def run_pending(self, now: Optional[float] = None) -> int:
        """
        Run every timer whose due time has passed, once each.

        Returns:
            Number of task invocations.
        """
        if now is None:
            now = self._clock()

        due: List[TimerHandle] = []
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if not handle.cancelled:
                due.append(handle)

        ran = 0
        for handle in due:
            # An earlier task in this batch may have cancelled this one
            if handle.cancelled:
                continue
            try:
                handle.task()
            except Exception:
                logger.exception(f"Scheduled task {handle!r} raised")
            ran += 1
            if not handle.cancelled:
                handle.due += handle.interval
                if handle.due <= now:
                    handle.due = now + handle.interval
                self._push(handle)
        return ran

    def run(self, until: Optional[float] = None) -> None:
        """
        Run timers until stop() is called, nothing is scheduled, or the
        clock reaches `until`.
        """
        self._running = True
        try:
            while self._running:
                now = self._clock()
                if until is not None and now >= until:
                    break
                self.run_pending(now)

                next_due = self.next_due()
                if next_due is None:
                    break
                wake = next_due if until is None else min(next_due, until)
                delay = wake - self._clock()
                if delay > 0:
                    self._sleep(delay)
        finally:
            self._running = False

    def stop(self) -> None:
        """Make run() return after the current pass."""
        self._running = False

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.due, next(self._counter), handle))

    def _discard_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
