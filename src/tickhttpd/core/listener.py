"""
=============================================================================
LISTENER MANAGER
=============================================================================

Owns the one listening socket: creates it on start, closes it on stop.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    start()
        1. socket()        TCP stream socket (AF_INET, SOCK_STREAM)
        2. setblocking()   NON-BLOCKING, before anything else
        3. setsockopt()    SO_REUSEADDR
        4. bind()          127.0.0.1:<port>, loopback only
        5. listen()        backlog from the configuration

    accept()
        Returns a client immediately or raises BlockingIOError.
        Never waits.

    stop()
        close(). Safe to call any number of times.

If any step of start() fails, whatever was created is closed before
BindError is raised. There is never a half-built listener.

=============================================================================
WHY NON-BLOCKING IS NOT OPTIONAL
=============================================================================

A classic server blocks in accept() on its own thread:

    while running:
        client, addr = sock.accept()     ◄── sleeps until a client arrives

This server has no thread of its own. accept() is called from inside the
host's periodic callback, on the host's main thread. A blocking accept()
would freeze the host application until someone happened to connect.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Blocking listener:      host tick ──► accept() ──► ... frozen ... │
    │   Non-blocking listener:  host tick ──► accept() ──► EAGAIN ──► ok  │
    └─────────────────────────────────────────────────────────────────────┘

SO_REUSEADDR:
─────────────
The host may stop and restart the server many times in one session
(every settings change restarts it). Without SO_REUSEADDR the re-bind
would fail with "Address already in use" while the old socket sits in
TIME_WAIT.

=============================================================================
"""

import logging
import socket
from typing import Optional, Tuple

from ..config import BIND_HOST, ServerConfig


logger = logging.getLogger(__name__)


class BindError(OSError):
    """
    Raised when the listening socket cannot be set up.

    Fatal to that start attempt only. The server stays stopped until the
    host pushes a new configuration (or retries).
    """


class Listener:
    """
    The bound, listening, non-blocking server socket.

    At most one exists per server at any time.
    """

    def __init__(self, config: ServerConfig):
        """
        Store configuration. The socket is created in start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None

    @property
    def is_listening(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), or None when stopped."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[:2]

    def start(self) -> None:
        """
        Create, configure, bind and listen.

        Raises:
            BindError: If socket creation, option setting, bind or listen
                       fails. No socket is left open in that case.
        """
        if self._socket is not None:
            logger.warning("Listener already started, restarting it")
            self.stop()

        host, port = BIND_HOST, self.config.port

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            logger.error(f"Failed to create listening socket: {e}")
            raise BindError(f"Failed to create listening socket: {e}") from e

        try:
            # ─────────────────────────────────────────────────────────────
            # NON-BLOCKING FIRST
            # ─────────────────────────────────────────────────────────────
            # Critical: nothing below may ever stall the host's thread.
            sock.setblocking(False)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {host}:{port}: {e}")
            raise BindError(f"Failed to bind to {host}:{port}: {e}") from e

        self._socket = sock
        logger.debug(f"\tlistening on {host}:{port}")

    def accept(self) -> Tuple[socket.socket, Tuple[str, int]]:
        """
        Accept one pending client without waiting.

        Raises:
            BlockingIOError: No client is waiting. Not an error.
            OSError:         Anything else accept() can fail with,
                             including being called while stopped.
        """
        if self._socket is None:
            raise OSError("Listener is not started")
        return self._socket.accept()

    def stop(self) -> None:
        """Close the socket if present. No-op otherwise."""
        if self._socket is None:
            return
        sock, self._socket = self._socket, None
        try:
            sock.close()
        except OSError as e:
            logger.warning(f"Error closing listening socket: {e}")
