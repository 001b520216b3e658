"""
=============================================================================
HTTP RESPONSE COMPOSER
=============================================================================

Builds every response the server can send: four canned pages and the
file-backed 200.

=============================================================================
CROSS-ORIGIN ISOLATION HEADERS
=============================================================================

The whole reason this server exists. Browsers only expose
SharedArrayBuffer (which threaded WebAssembly builds need) to pages that
are "cross-origin isolated", and a page is only isolated when it is
served with:

    Cross-Origin-Opener-Policy: same-origin
    Cross-Origin-Embedder-Policy: require-corp

A file:// URL can never carry headers, so a local export has to go
through an HTTP server that adds them. Every response we send carries
the same fixed block:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    FIXED RESPONSE HEADERS                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Connection: Close                     One request per connection   │
    │   Access-Control-Allow-Origin: *        Loadable from any origin     │
    │   Cross-Origin-Opener-Policy: same-origin                            │
    │   Cross-Origin-Embedder-Policy: require-corp                         │
    │   Cache-Control: max-age=15             Re-exports show up quickly   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
NO CONTENT-LENGTH
=============================================================================

File responses deliberately carry no Content-Length. The body ends when
the connection closes, which "Connection: Close" announces:

    HTTP/1.1 200 OK\r\n
    Connection: Close\r\n
    Content-Type: application/wasm\r\n
    ...\r\n
    \r\n
    <raw file bytes>          ◄── ends at FIN

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .status_codes import HTTPStatus


ISOLATION_HEADERS = (
    ("Access-Control-Allow-Origin", "*"),
    ("Cross-Origin-Opener-Policy", "same-origin"),
    ("Cross-Origin-Embedder-Policy", "require-corp"),
    ("Cache-Control", "max-age=15"),
)

CANNED_CONTENT_TYPE = "text/html; charset=utf-8"


# =============================================================================
# CANNED PAGE BODIES
# =============================================================================

UNCONFIGURED_BODY = """\
<div style="background-color: darkgrey; foreground-color: white">
<h1>Please configure your project location in the host settings!</h1>
</div>
"""

DUMMY_INDEX_BODY = """\
<div style="background-color: darkgrey; foreground-color: white">
<h1>Success!</h1>
<h2>The browser source httpd is running!</h2>
<p>But you don't have an index.html file.
Please point your browser source to an existing file.</p>
</div>
"""

FORBIDDEN_BODY = """\
<div style="background-color: darkgrey; foreground-color: white">
<h1>You cannot access this location, please check the server log and config.</h1>
</div>
"""

NOT_FOUND_BODY = """\
<div style="background-color: darkgrey; foreground-color: white">
<h1>There was an error accessing this location, please check the server log.</h1>
</div>
"""


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              One send cycle
        HTTPResponse    ─────►   serializes    ─────►    then close()
            │                       │
        HTTPResponse(            b"HTTP/1.1 200 OK\r\n
          status=200,              Connection: Close\r\n
          headers={...},           ...\r\n
          body=b"..."              \r\n<body>"
        )

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 403 Forbidden"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding strings as UTF-8. Returns self."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    def head_bytes(self) -> bytes:
        """Status line and headers, terminated by the blank line."""
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("latin-1")

    def to_bytes(self) -> bytes:
        """
        Serialize the response exactly as it goes on the wire.

        Unlike a keep-alive server, nothing is added here: no
        Content-Length, no Date, no Server. What is in `headers` is what
        is sent.
        """
        return self.head_bytes() + self.body


def _base_headers(content_type: str) -> Dict[str, str]:
    headers = {"Connection": "Close", "Content-Type": content_type}
    headers.update(ISOLATION_HEADERS)
    return headers


def _canned(status: HTTPStatus, body: str) -> HTTPResponse:
    return HTTPResponse(
        status=status,
        headers=_base_headers(CANNED_CONTENT_TYPE),
    ).set_body(body)


# =============================================================================
# CANNED RESPONSES
# =============================================================================
#
# Each call returns a fresh HTTPResponse so callers may inspect or tweak
# it without affecting the next request.
#
# =============================================================================

def unconfigured() -> HTTPResponse:
    """200 page asking the user to set a webroot."""
    return _canned(HTTPStatus.OK, UNCONFIGURED_BODY)


def dummy_index() -> HTTPResponse:
    """
    200 page shown when "/" (or "/index.html") is requested but the
    webroot has no index.html.

    Proves the server is up even before a project has been exported.
    """
    return _canned(HTTPStatus.OK, DUMMY_INDEX_BODY)


def forbidden() -> HTTPResponse:
    """403 for traversal attempts, bad path shapes and unknown extensions."""
    return _canned(HTTPStatus.FORBIDDEN, FORBIDDEN_BODY)


def not_found() -> HTTPResponse:
    """404 for allowlisted files missing from the webroot."""
    return _canned(HTTPStatus.NOT_FOUND, NOT_FOUND_BODY)


def file_response(content: bytes, content_type: str) -> HTTPResponse:
    """
    200 response carrying a file's raw bytes.

    Args:
        content:      The file contents, unmodified.
        content_type: Value from the Content-Type table.
    """
    return HTTPResponse(
        status=HTTPStatus.OK,
        headers=_base_headers(content_type),
        body=content,
    )
