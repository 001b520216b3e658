"""
Unit tests for connection handling.
"""

import logging
import socket
from pathlib import Path

import pytest

from tickhttpd.core.connection import Connection, ConnectionHandler, ConnectionState
from tickhttpd.handlers.static import StaticFileHandler
from tickhttpd.outcome import Outcome

from conftest import WASM_BYTES, FakeSocket, get_request, split_response


class RecordingStaticHandler(StaticFileHandler):
    """StaticFileHandler that remembers whether it was consulted."""

    def __init__(self, webroot: str):
        super().__init__(webroot)
        self.requests = []

    def handle(self, request):
        self.requests.append(request)
        return super().handle(request)


@pytest.fixture
def static_handler(webroot: Path) -> RecordingStaticHandler:
    return RecordingStaticHandler(str(webroot))


@pytest.fixture
def handler(fake_listener, static_handler) -> ConnectionHandler:
    return ConnectionHandler(fake_listener, static_handler)


class TestConnection:
    """Tests for Connection class."""

    def test_made_non_blocking(self):
        sock = FakeSocket()
        Connection(socket=sock, address=("127.0.0.1", 1))

        assert sock.blocking is False

    def test_receive_would_block(self):
        conn = Connection(socket=FakeSocket(recv_error=BlockingIOError()), address=("127.0.0.1", 1))

        assert conn.receive(1024) is None

    def test_receive_other_error_propagates(self):
        conn = Connection(socket=FakeSocket(recv_error=ConnectionResetError()), address=("127.0.0.1", 1))

        with pytest.raises(OSError):
            conn.receive(1024)

    def test_send_everything(self):
        sock = FakeSocket()
        conn = Connection(socket=sock, address=("127.0.0.1", 1))

        assert conn.send(b"hello") == 5
        assert bytes(sock.sent) == b"hello"

    def test_short_write_is_logged(self, caplog):
        sock = FakeSocket(send_capacity=3)
        conn = Connection(socket=sock, address=("127.0.0.1", 1))

        with caplog.at_level(logging.WARNING):
            sent = conn.send(b"hello")

        assert sent == 3
        assert bytes(sock.sent) == b"hel"
        assert "Short write" in caplog.text

    def test_send_error_does_not_raise(self):
        sock = FakeSocket(send_error=BrokenPipeError())
        conn = Connection(socket=sock, address=("127.0.0.1", 1))

        assert conn.send(b"hello") == 0

    def test_close_is_idempotent(self):
        sock = FakeSocket()
        conn = Connection(socket=sock, address=("127.0.0.1", 1))

        conn.close()
        conn.close()

        assert sock.close_count == 1
        assert conn.state is ConnectionState.CLOSED

    def test_context_manager_closes_on_error(self):
        sock = FakeSocket()

        with pytest.raises(RuntimeError):
            with Connection(socket=sock, address=("127.0.0.1", 1)):
                raise RuntimeError("boom")

        assert sock.close_count == 1


class TestConnectionHandler:
    """Tests for ConnectionHandler.handle_next()."""

    def test_no_client(self, handler):
        assert handler.handle_next() is Outcome.NO_CLIENT

    def test_accept_failure(self, handler, fake_listener):
        fake_listener.accept_error = OSError("too many open files")

        assert handler.handle_next() is Outcome.ACCEPT_FAILED

    def test_one_client_per_cycle(self, handler, fake_listener):
        first = fake_listener.queue(FakeSocket(get_request("/")))
        second = fake_listener.queue(FakeSocket(get_request("/")))

        handler.handle_next()

        assert first.close_count == 1
        assert second.recv_calls == 0
        assert len(fake_listener.pending) == 1

    def test_serves_file(self, handler, fake_listener):
        sock = fake_listener.queue(FakeSocket(get_request("/game.wasm")))

        outcome = handler.handle_next()
        status, headers, body = split_response(bytes(sock.sent))

        assert outcome is Outcome.SERVED
        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "application/wasm"
        assert body == WASM_BYTES
        assert sock.recv_calls == 1
        assert sock.close_count == 1

    @pytest.mark.parametrize("path,outcome,status", [
        ("/missing.html", Outcome.MISSING_FILE, "404"),
        ("/notes.txt", Outcome.UNKNOWN_EXTENSION, "403"),
        ("/../index.html", Outcome.SECURITY_VIOLATION, "403"),
    ])
    def test_refusals_get_a_response(self, handler, fake_listener, path, outcome, status):
        sock = fake_listener.queue(FakeSocket(get_request(path)))

        assert handler.handle_next() is outcome
        assert bytes(sock.sent).startswith(f"HTTP/1.1 {status} ".encode())
        assert sock.close_count == 1

    def test_nul_byte_in_path_gets_404(self, handler, fake_listener):
        sock = fake_listener.queue(FakeSocket(get_request("/a%00.html")))

        assert handler.handle_next() is Outcome.MISSING_FILE
        assert bytes(sock.sent).startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert sock.close_count == 1

    def test_client_silent(self, handler, fake_listener, static_handler, caplog):
        """Nothing to read yet: closed with no response."""
        sock = fake_listener.queue(FakeSocket(recv_error=BlockingIOError()))

        with caplog.at_level(logging.INFO):
            outcome = handler.handle_next()

        assert outcome is Outcome.CLIENT_TIMEOUT
        assert sock.send_calls == 0
        assert sock.close_count == 1
        assert static_handler.requests == []
        assert "timeout before processing" in caplog.text

    def test_client_closed_early(self, handler, fake_listener):
        sock = fake_listener.queue(FakeSocket(b""))

        assert handler.handle_next() is Outcome.CLIENT_TIMEOUT
        assert sock.send_calls == 0
        assert sock.close_count == 1

    def test_read_error(self, handler, fake_listener):
        sock = fake_listener.queue(FakeSocket(recv_error=ConnectionResetError()))

        assert handler.handle_next() is Outcome.READ_FAILED
        assert sock.send_calls == 0
        assert sock.close_count == 1

    @pytest.mark.parametrize("data", [
        get_request("/index.html", method="POST"),
        get_request("/index.html", version="1.0"),
        b"garbage\r\n\r\n",
    ])
    def test_protocol_error_gets_no_response(self, handler, fake_listener, static_handler, data):
        """Rejected requests never reach path resolution."""
        sock = fake_listener.queue(FakeSocket(data))

        assert handler.handle_next() is Outcome.PROTOCOL_ERROR
        assert sock.send_calls == 0
        assert sock.close_count == 1
        assert static_handler.requests == []

    def test_short_write_still_closes(self, handler, fake_listener):
        sock = fake_listener.queue(FakeSocket(get_request("/game.wasm"), send_capacity=100))

        assert handler.handle_next() is Outcome.SERVED
        assert len(sock.sent) == 100
        assert sock.close_count == 1

    def test_unconfigured_still_responds(self, fake_listener):
        handler = ConnectionHandler(fake_listener, StaticFileHandler(""))
        sock = fake_listener.queue(FakeSocket(get_request("/")))

        assert handler.handle_next() is Outcome.UNCONFIGURED
        assert bytes(sock.sent).startswith(b"HTTP/1.1 200 OK\r\n")

    def test_setup_failure_closes_socket(self, handler, fake_listener):
        class BrokenSocket(FakeSocket):
            def setblocking(self, flag):
                raise OSError("bad descriptor")

        sock = fake_listener.queue(BrokenSocket(get_request("/")))

        assert handler.handle_next() is Outcome.READ_FAILED
        assert sock.close_count == 1

    def test_recv_size_comes_from_handler(self, fake_listener, static_handler):
        handler = ConnectionHandler(fake_listener, static_handler, buffer_size=4)
        fake_listener.queue(FakeSocket(get_request("/index.html")))

        # Only "GET " fits in the buffer
        assert handler.handle_next() is Outcome.PROTOCOL_ERROR


def test_socket_timeout_counts_as_no_client(fake_listener, static_handler):
    fake_listener.accept_error = socket.timeout()
    handler = ConnectionHandler(fake_listener, static_handler)

    assert handler.handle_next() is Outcome.NO_CLIENT
