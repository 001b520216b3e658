"""
=============================================================================
TICKHTTPD - Cooperative Static-File HTTP Server
=============================================================================

A tiny HTTP/1.1 server that lives inside another application's timer
callbacks. It serves a flat directory of web-export files (html, js,
png, wasm, pck) on the loopback interface with the cross-origin
isolation headers that SharedArrayBuffer needs.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    TICKHTTPD ARCHITECTURE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. NO THREADS, NO BLOCKING                                         │
    │      - Runs inside the host's periodic callbacks                     │
    │      - Every socket is non-blocking                                  │
    │                                                                      │
    │   2. ADAPTIVE POLLING                                                │
    │      - Slow cadence (500ms) while idle                               │
    │      - Fast cadence (30ms) while clients are active                  │
    │                                                                      │
    │   3. LOCKED-DOWN FILE ACCESS                                         │
    │      - One path segment, one dot, allowlisted extension              │
    │      - Everything else is 403 without touching the disk              │
    │                                                                      │
    │   4. MINIMAL HTTP                                                    │
    │      - GET + HTTP/1.1 only, one request per connection               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tickhttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tickhttpd)
    ├── server.py            # HTTPServer: config updates, start/stop
    ├── config.py            # ServerConfig dataclass
    ├── outcome.py           # Per-connection result codes
    ├── core/
    │   ├── scheduling.py    # Scheduler protocol, TimerLoop host
    │   ├── listener.py      # Listening socket lifecycle
    │   ├── connection.py    # One client: recv, dispatch, send, close
    │   └── poller.py        # Adaptive poll state machine
    ├── http/
    │   ├── request.py       # Request-line parser
    │   ├── response.py      # Canned and file responses
    │   ├── content_types.py # Extension allowlist
    │   └── status_codes.py  # 200 / 403 / 404
    └── handlers/
        └── static.py        # Path guard and file serving

=============================================================================
QUICK START
=============================================================================

    from tickhttpd import HTTPServer, ServerConfig, TimerLoop

    loop = TimerLoop()
    server = HTTPServer(loop)
    server.apply_config(ServerConfig(run=True, webroot="./export"))
    loop.run()

Then point a browser source at http://127.0.0.1:42069/

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig
from .core import BindError, TimerLoop
from .outcome import Outcome

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "BindError",
    "TimerLoop",
    "Outcome",
    "__version__",
]
