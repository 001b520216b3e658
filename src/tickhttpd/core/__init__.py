"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

How a client gets served, from the host's timer to the closed socket:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HOST SCHEDULER                                    │
    │  schedule(500, slow_tick)      schedule(30, fast_tick)               │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                    POLL SCHEDULER (poller.py)                        │
    │  • Slow cadence always, fast cadence after client activity          │
    │  • Falls back to slow after max_fast_idle empty fast cycles         │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ one cycle
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONNECTION HANDLER (connection.py)                │
    │  • accept() one client from the Listener, or return NO_CLIENT       │
    │  • one recv(), parse, resolve, one send cycle, close                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                    LISTENER (listener.py)                            │
    │  • Non-blocking TCP socket bound to 127.0.0.1:<port>                │
    │  • At most one per server                                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .scheduling import Scheduler, TimerLoop, TimerHandle
from .listener import Listener, BindError
from .connection import Connection, ConnectionHandler, ConnectionState
from .poller import PollScheduler, PollMode, PollState

__all__ = [
    "Scheduler",
    "TimerLoop",
    "TimerHandle",
    "Listener",
    "BindError",
    "Connection",
    "ConnectionHandler",
    "ConnectionState",
    "PollScheduler",
    "PollMode",
    "PollState",
]
