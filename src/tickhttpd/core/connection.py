"""
=============================================================================
CONNECTION HANDLING
=============================================================================

One poll cycle, one client, one request, one response, one close.

=============================================================================
THE LIFE OF A CONNECTION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    handle_next() FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   listener.accept()                                                  │
    │       │                                                              │
    │       ├── would block ───────────────► NO_CLIENT (cycle ends)        │
    │       ├── other error ───────────────► ACCEPT_FAILED (logged)        │
    │       │                                                              │
    │       ▼                                                              │
    │   setblocking(False)                                                 │
    │   recv() once                                                        │
    │       │                                                              │
    │       ├── would block / EOF ─────────► CLIENT_TIMEOUT, no response   │
    │       ├── other error ───────────────► READ_FAILED, no response      │
    │       │                                                              │
    │       ▼                                                              │
    │   RequestParser.parse()                                              │
    │       │                                                              │
    │       ├── ProtocolError ─────────────► PROTOCOL_ERROR, no response   │
    │       │                                                              │
    │       ▼                                                              │
    │   StaticFileHandler.handle()  ───────► response + outcome            │
    │       │                                                              │
    │       ▼                                                              │
    │   one send cycle                                                     │
    │       │                                                              │
    │       ▼                                                              │
    │   close()   ◄── ALWAYS, exactly once, whatever happened above        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
NO BUFFERING, NO KEEP-ALIVE
=============================================================================

A keep-alive server loops on recv() until it has "\r\n\r\n", then keeps
the socket for the next request. Both would mean waiting, and waiting
is not allowed on the host's thread.

Instead we assume the request line arrives in the first segment (it
always does for a browser on loopback). If the client has not sent
anything yet when we accept it, recv() would block, so the connection is
abandoned. The browser will retry.

=============================================================================
ONE SEND CYCLE
=============================================================================

send() on a non-blocking socket writes as much as the kernel buffer
accepts. We keep calling it while it makes progress. The first
"would block" ends the cycle: whatever has not been written is dropped
and the short write is logged. The socket is closed either way.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..handlers.static import StaticFileHandler
from ..http.request import ProtocolError, RequestParser
from ..outcome import Outcome
from .listener import Listener


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Used for logging and to make close() idempotent.
    """
    NEW = "new"              # Just accepted
    READING = "reading"      # Inside the single recv()
    PROCESSING = "processing"  # Parsing and resolving
    WRITING = "writing"      # Inside the send cycle
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    One accepted client socket.

    Attributes:
        socket:     The client socket (non-blocking after __post_init__).
        address:    Client's (ip, port) tuple.
        id:         Short identifier for log lines.
        state:      Current lifecycle state.
        created_at: When the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        # Accepted sockets may inherit blocking mode; never let that happen.
        self.socket.setblocking(False)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def receive(self, buffer_size: int) -> Optional[bytes]:
        """
        Perform the single recv() for this connection.

        Returns:
            The bytes read, b"" if the client already closed, or None if
            nothing has arrived yet (the call would have blocked).

        Raises:
            OSError: Any other socket error (e.g. connection reset).
        """
        self.state = ConnectionState.READING
        try:
            return self.socket.recv(buffer_size)
        except (BlockingIOError, socket.timeout):
            return None

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> int:
        """
        Run the one send cycle for this connection.

        Keeps writing while the socket accepts bytes, stops at the first
        "would block" or error. Never waits.

        Returns:
            Number of bytes actually written.
        """
        self.state = ConnectionState.WRITING
        view = memoryview(data)
        total = len(view)
        sent = 0

        while sent < total:
            try:
                written = self.socket.send(view[sent:])
            except BlockingIOError:
                break
            except OSError as e:
                logger.warning(f"[{self.id}] Send failed: {e}")
                break
            if written == 0:
                break
            sent += written

        if sent < total:
            logger.warning(f"[{self.id}] Short write: sent {sent} of {total} bytes")

        return sent

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the client socket. Safe to call more than once; the socket
        itself is only ever closed the first time.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            # Send FIN after whatever made it into the kernel buffer
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"[{self.id}] Error closing socket: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {time.time() - self.created_at:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions


class ConnectionHandler:
    """
    Accepts and serves at most one client per call.

    The Poll Scheduler calls handle_next() once per cycle and inspects the
    returned Outcome; nothing a client does can raise out of it.
    """

    def __init__(
        self,
        listener: Listener,
        static_handler: StaticFileHandler,
        parser: Optional[RequestParser] = None,
        buffer_size: int = 8192,
    ):
        self.listener = listener
        self.static_handler = static_handler
        self.parser = parser or RequestParser()
        self.buffer_size = buffer_size

    def handle_next(self) -> Outcome:
        """
        Accept one waiting client (if any) and run its whole exchange.

        Returns:
            The Outcome of the cycle. NO_CLIENT when nobody was waiting.
        """
        try:
            client_socket, client_address = self.listener.accept()
        except (BlockingIOError, socket.timeout):
            # Nobody waiting. The normal case for most cycles.
            return Outcome.NO_CLIENT
        except OSError as e:
            logger.error(f"Accept error: {e}")
            return Outcome.ACCEPT_FAILED

        try:
            conn = Connection(socket=client_socket, address=client_address)
        except OSError as e:
            logger.error(f"Could not configure client socket: {e}")
            client_socket.close()
            return Outcome.READ_FAILED

        with conn:  # Context manager ensures the socket is closed
            return self._process(conn)

    def _process(self, conn: Connection) -> Outcome:
        logger.debug(f"[{conn.id}] Got client {conn.client_ip}:{conn.client_port}")

        try:
            raw_request = conn.receive(self.buffer_size)
        except OSError as e:
            logger.error(f"[{conn.id}] Client read error: {e}")
            return Outcome.READ_FAILED

        if raw_request is None:
            # Client connected but has not sent anything yet
            logger.info(f"[{conn.id}] Client socket timeout before processing")
            return Outcome.CLIENT_TIMEOUT

        if not raw_request:
            logger.info(f"[{conn.id}] Client closed the connection before sending a request")
            return Outcome.CLIENT_TIMEOUT

        conn.state = ConnectionState.PROCESSING
        try:
            request = self.parser.parse(raw_request)
        except ProtocolError as e:
            logger.error(f"[{conn.id}] {e}")
            return Outcome.PROTOCOL_ERROR

        logger.debug(f"[{conn.id}]\trequest for {request.decoded_path}")

        result = self.static_handler.handle(request)
        conn.send(result.response.to_bytes())
        return result.outcome
