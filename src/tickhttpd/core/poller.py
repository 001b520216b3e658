"""
=============================================================================
ADAPTIVE POLL SCHEDULER
=============================================================================

Decides how often the listener is polled, using nothing but the host's
schedule()/cancel() capability.

=============================================================================
WHY TWO CADENCES?
=============================================================================

Polling every 30ms forever wastes the host's time when nobody is
connected. Polling every 500ms makes a page load crawl, since a browser
opens a dozen connections one after another and each would wait up to
half a second to be accepted.

So the poller runs slow by default and speeds up while clients are
around:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    POLL STATE MACHINE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │     ┌──────┐   start()    ┌───────────┐  client accepted  ┌──────┐  │
    │     │ IDLE │ ───────────► │ SLOW_POLL │ ────────────────► │ FAST │  │
    │     └──────┘              └───────────┘                   │ POLL │  │
    │        ▲                        ▲                         └──┬───┘  │
    │        │ stop()                 │   idle counter > threshold  │      │
    │        │ (from any state)       └─────────────────────────────┘      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    SLOW_POLL   slow cadence registered (500ms)
    FAST_POLL   slow AND fast cadence registered (500ms + 30ms)

Both cadences call the same poll cycle. They differ only in interval,
plus the fast one counts how many of its cycles came up empty:

    fast tick:  idle += 1
                idle > max_fast_idle?  → cancel fast cadence, back to SLOW
                otherwise poll

    any tick that accepts a client: idle = 0 (and engage FAST if needed)

=============================================================================
ERROR ISOLATION
=============================================================================

A poll cycle never raises into the host. Per-connection problems come
back as Outcome values; anything unexpected is logged with a traceback
and the cycle ends. The cadences keep running.

=============================================================================
"""

import logging
from enum import Enum
from typing import Any, Optional

from ..outcome import Outcome
from .connection import ConnectionHandler
from .listener import Listener
from .scheduling import Scheduler


logger = logging.getLogger(__name__)


class PollMode(Enum):
    """Which cadence invoked a poll cycle."""
    SLOW = "slow"
    FAST = "fast"


class PollState(Enum):
    IDLE = "idle"
    SLOW_POLL = "slow_poll"
    FAST_POLL = "fast_poll"


class PollScheduler:
    """
    Adaptive-rate driver for accept/handle cycles.

    Usage:
        poller = PollScheduler(loop, listener, connection_handler)
        poller.start()    # registers slow cadence, polls once right away
        ...
        poller.stop()     # cancels every cadence
    """

    def __init__(
        self,
        scheduler: Scheduler,
        listener: Listener,
        connection_handler: ConnectionHandler,
        slow_interval_ms: int = 500,
        fast_interval_ms: int = 30,
        max_fast_idle: int = 20,
    ):
        self.scheduler = scheduler
        self.listener = listener
        self.connection_handler = connection_handler
        self.slow_interval_ms = slow_interval_ms
        self.fast_interval_ms = fast_interval_ms
        self.max_fast_idle = max_fast_idle

        self.state = PollState.IDLE
        self.idle_count = 0
        self.last_outcome: Optional[Outcome] = None

        self._slow_handle: Any = None
        self._fast_handle: Any = None

    @property
    def is_fast(self) -> bool:
        return self.state == PollState.FAST_POLL

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Register the slow cadence and run one cycle immediately.

        Idempotent: a running poller is stopped first.
        """
        if self.state != PollState.IDLE:
            self.stop()

        self.state = PollState.SLOW_POLL
        self.idle_count = 0
        self._slow_handle = self.scheduler.schedule(self.slow_interval_ms, self._slow_tick)

        # First poll without waiting a whole slow interval
        self.poll(PollMode.SLOW)

    def stop(self) -> None:
        """Cancel every registered cadence. Idempotent."""
        self._cancel_fast()
        if self._slow_handle is not None:
            self.scheduler.cancel(self._slow_handle)
            self._slow_handle = None
        self.state = PollState.IDLE
        self.idle_count = 0

    # =========================================================================
    # CADENCES
    # =========================================================================

    def _slow_tick(self) -> None:
        self.poll(PollMode.SLOW)

    def _fast_tick(self) -> None:
        self.poll(PollMode.FAST)

    def poll(self, mode: PollMode) -> Optional[Outcome]:
        """
        One poll cycle: at most one accepted and fully handled client.

        Returns:
            The cycle's Outcome, or None if the cycle did not poll
            (fast cadence retired, or the poller is no longer running).
        """
        if self.state == PollState.IDLE:
            return None

        if mode is PollMode.FAST:
            self.idle_count += 1
            if self.idle_count > self.max_fast_idle:
                logger.debug("No clients for a while, back to slow polling")
                self._cancel_fast()
                self.state = PollState.SLOW_POLL
                return None

        if not self.listener.is_listening:
            # Listener went away underneath us; nothing left to poll
            logger.warning("Poll cycle without a listener, stopping poller")
            self.stop()
            return None

        try:
            outcome = self.connection_handler.handle_next()
        except Exception:
            logger.exception("Unexpected error while handling a connection")
            return None

        self.last_outcome = outcome
        if outcome.accepted:
            self._on_client()
        return outcome

    def _on_client(self) -> None:
        self.idle_count = 0
        if self.state == PollState.FAST_POLL:
            return
        self.state = PollState.FAST_POLL
        self._fast_handle = self.scheduler.schedule(self.fast_interval_ms, self._fast_tick)
        logger.debug("Client activity, fast polling engaged")

    def _cancel_fast(self) -> None:
        if self._fast_handle is not None:
            self.scheduler.cancel(self._fast_handle)
            self._fast_handle = None
