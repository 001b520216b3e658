"""
pytest configuration and fixtures.
"""

import itertools
import socket
from collections import deque
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tickhttpd import ServerConfig
from tickhttpd.outcome import Outcome


# Binary content with bytes that would break any text round-trip
WASM_BYTES = b"\x00asm\x01\x00\x00\x00" + bytes(range(256)) * 4
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\xff" * 64
PCK_BYTES = b"GDPC" + b"\r\n\r\n" + b"\x00" * 32


class ManualScheduler:
    """
    Scheduler fake: records cadences and fires them on demand.

    Handles are plain integers. Cancelled handles disappear from `tasks`.
    """

    def __init__(self):
        self.tasks: Dict[int, Tuple[int, Callable[[], None]]] = {}
        self.cancelled: List[int] = []
        self._ids = itertools.count(1)

    def schedule(self, interval_ms: int, task: Callable[[], None]) -> int:
        handle = next(self._ids)
        self.tasks[handle] = (interval_ms, task)
        return handle

    def cancel(self, handle: int) -> None:
        self.tasks.pop(handle, None)
        self.cancelled.append(handle)

    @property
    def intervals(self) -> List[int]:
        return sorted(interval for interval, _ in self.tasks.values())

    def fire(self, interval_ms: int, times: int = 1) -> int:
        """
        Invoke the cadence registered at `interval_ms` up to `times` times.

        Stops early if the cadence cancels itself. Returns the number of
        invocations performed.
        """
        fired = 0
        for _ in range(times):
            task = self._task_for(interval_ms)
            if task is None:
                break
            task()
            fired += 1
        return fired

    def _task_for(self, interval_ms: int) -> Optional[Callable[[], None]]:
        for interval, task in self.tasks.values():
            if interval == interval_ms:
                return task
        return None


class FakeSocket:
    """
    Client socket stand-in for connection tests.

    Args:
        recv_data:     What recv() returns.
        recv_error:    Exception raised by recv() instead.
        send_capacity: Bytes the "kernel" accepts before send() would block.
        send_error:    Exception raised by send() instead.
    """

    def __init__(
        self,
        recv_data: bytes = b"",
        recv_error: Optional[BaseException] = None,
        send_capacity: Optional[int] = None,
        send_error: Optional[BaseException] = None,
    ):
        self.recv_data = recv_data
        self.recv_error = recv_error
        self.send_capacity = send_capacity
        self.send_error = send_error
        self.sent = bytearray()
        self.blocking: Optional[bool] = None
        self.recv_calls = 0
        self.send_calls = 0
        self.close_count = 0

    def setblocking(self, flag: bool) -> None:
        self.blocking = flag

    def recv(self, bufsize: int) -> bytes:
        self.recv_calls += 1
        if self.recv_error is not None:
            raise self.recv_error
        return self.recv_data[:bufsize]

    def send(self, data) -> int:
        self.send_calls += 1
        if self.send_error is not None:
            raise self.send_error
        chunk = bytes(data)
        if self.send_capacity is not None:
            room = self.send_capacity - len(self.sent)
            if room <= 0:
                raise BlockingIOError("would block")
            chunk = chunk[:room]
        self.sent.extend(chunk)
        return len(chunk)

    def shutdown(self, how: int) -> None:
        pass

    def close(self) -> None:
        self.close_count += 1


class FakeListener:
    """Listener stand-in handing out queued FakeSockets."""

    def __init__(self):
        self.pending: deque = deque()
        self.accept_error: Optional[BaseException] = None
        self.is_listening = True

    def queue(self, sock: FakeSocket) -> FakeSocket:
        self.pending.append(sock)
        return sock

    def accept(self):
        if self.accept_error is not None:
            raise self.accept_error
        if not self.pending:
            raise BlockingIOError("would block")
        return self.pending.popleft(), ("127.0.0.1", 54321)

    def stop(self) -> None:
        self.is_listening = False


class ScriptedHandler:
    """ConnectionHandler stand-in returning queued outcomes."""

    def __init__(self, *outcomes: Outcome):
        self.outcomes = deque(outcomes)
        self.calls = 0

    def push(self, *outcomes: Outcome) -> None:
        self.outcomes.extend(outcomes)

    def handle_next(self) -> Outcome:
        self.calls += 1
        if self.outcomes:
            return self.outcomes.popleft()
        return Outcome.NO_CLIENT


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fake_listener() -> FakeListener:
    return FakeListener()


@pytest.fixture
def webroot(tmp_path: Path) -> Path:
    """A flat webroot shaped like a small web export."""
    (tmp_path / "index.html").write_text("<html><body>index</body></html>")
    (tmp_path / "game.html").write_text("<html><body>game</body></html>")
    (tmp_path / "game.js").write_text("console.log('engine');\n")
    (tmp_path / "game.wasm").write_bytes(WASM_BYTES)
    (tmp_path / "icon.png").write_bytes(PNG_BYTES)
    (tmp_path / "game.pck").write_bytes(PCK_BYTES)
    (tmp_path / "notes.txt").write_text("not allowlisted")
    (tmp_path / "style.css").write_text("body {}")
    (tmp_path / "my game.html").write_text("<html>spaces</html>")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "nested.html").write_text("<html>nested</html>")
    return tmp_path


@pytest.fixture
def empty_webroot(tmp_path: Path) -> Path:
    root = tmp_path / "empty"
    root.mkdir()
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def config(webroot: Path, free_port: int) -> ServerConfig:
    """Servable configuration on a free port."""
    return ServerConfig(run=True, port=free_port, webroot=str(webroot))


def get_request(path: str, method: str = "GET", version: str = "1.1") -> bytes:
    """Raw request bytes the way a browser sends them."""
    return (
        f"{method} {path} HTTP/{version}\r\n"
        f"Host: 127.0.0.1\r\n"
        f"User-Agent: pytest\r\n"
        f"\r\n"
    ).encode("latin-1")


def split_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body
