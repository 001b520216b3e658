"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

The configuration record handed to the server by its host application.

=============================================================================
WHO OWNS THE CONFIGURATION?
=============================================================================

The server never stores or edits its settings. The host (a settings UI,
a plugin manager, the CLI in __main__.py) owns them and pushes a complete
record whenever anything changes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION UPDATE FLOW                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Host settings ──► ServerConfig(...) ──► server.apply_config()      │
    │                                               │                      │
    │                                               ├──► stop()            │
    │                                               │    (old listener     │
    │                                               │     torn down)       │
    │                                               │                      │
    │                                               └──► start()           │
    │                                                    (only if run and  │
    │                                                     webroot is set)  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A record is never patched in place. A new record fully replaces the old
one, which is why the dataclass is frozen.

=============================================================================
HOST-FACING FIELDS VS TUNING FIELDS
=============================================================================

    run, port, webroot, debug
        What the host's settings surface exposes.

    slow_poll_ms, fast_poll_ms, max_fast_idle, backlog, buffer_size
        Knobs with sensible defaults. Hosts rarely touch them; tests do.

The bind address is NOT a field. The server only ever listens on the
loopback interface (BIND_HOST).

=============================================================================
"""

import os
from dataclasses import dataclass, fields
from typing import Iterator, Tuple


# Loopback only. Not configurable.
BIND_HOST = "127.0.0.1"

# Valid listen port range exposed by the host settings surface.
MIN_PORT = 1024
MAX_PORT = 65353

DEFAULT_PORT = 42069


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for one serving session.

    =========================================================================
    EXAMPLES
    =========================================================================

    Stopped (host default):
        ServerConfig()

    Serving a Godot web export on the default port:
        ServerConfig(run=True, webroot="/home/me/exports/game")

    Verbose logging while debugging a browser source:
        ServerConfig(run=True, webroot="./export", debug=True)

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # HOST-FACING SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    run: bool = False
    """Whether the host wants the server listening at all."""

    port: int = DEFAULT_PORT
    """TCP port to listen on. Must be within MIN_PORT..MAX_PORT."""

    webroot: str = ""
    """
    Directory served by the server. Trusted input from the host.
    Empty string means "not configured yet".
    """

    debug: bool = False
    """Log per-request detail (peer, path, mapped file) at DEBUG level."""

    # ─────────────────────────────────────────────────────────────────────
    # POLLING CADENCES
    # ─────────────────────────────────────────────────────────────────────

    slow_poll_ms: int = 500
    """Interval of the always-on slow cadence."""

    fast_poll_ms: int = 30
    """Interval of the fast cadence engaged after client activity."""

    max_fast_idle: int = 20
    """Empty fast cycles tolerated before falling back to slow polling."""

    # ─────────────────────────────────────────────────────────────────────
    # SOCKET SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    backlog: int = 128
    """listen() backlog for the listening socket."""

    buffer_size: int = 8192
    """Size of the single recv() performed per connection."""

    @property
    def is_servable(self) -> bool:
        """True when the host asked to run AND a webroot is set."""
        return self.run and bool(self.webroot)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TICKHTTPD_RUN       Start serving (default: false)
        TICKHTTPD_PORT      Listen port (default: 42069)
        TICKHTTPD_WEBROOT   Directory to serve (default: unset)
        TICKHTTPD_DEBUG     Verbose logging (default: false)

        =====================================================================
        """
        return cls(
            run=_env_flag(os.getenv("TICKHTTPD_RUN", "")),
            port=int(os.getenv("TICKHTTPD_PORT", str(DEFAULT_PORT))),
            webroot=os.getenv("TICKHTTPD_WEBROOT", ""),
            debug=_env_flag(os.getenv("TICKHTTPD_DEBUG", "")),
        )

    def describe(self) -> Iterator[Tuple[str, object]]:
        """Yield (name, value) pairs for every setting, in field order."""
        for f in fields(self):
            yield f.name, getattr(self, f.name)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called on every configuration update, before the old listener is
        torn down, so a bad record never leaves the server half-stopped.

        Raises:
            ValueError: If any value is out of range.
        """
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise ValueError(
                f"Invalid port: {self.port}. Must be {MIN_PORT}-{MAX_PORT}."
            )

        if self.slow_poll_ms <= 0 or self.fast_poll_ms <= 0:
            raise ValueError("poll intervals must be > 0")

        if self.max_fast_idle < 0:
            raise ValueError("max_fast_idle must be >= 0")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
