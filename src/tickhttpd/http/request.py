"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one recv() into a ParsedRequest.

=============================================================================
HOW MUCH OF HTTP DO WE READ?
=============================================================================

Only the request line. Everything a static file server needs is there:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THE PARSER LOOKS AT                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /my%20game.html HTTP/1.1\r\n      ◄── parsed                  │
    │    ─┬─ ───────┬─────── ────┬───                                      │
    │     │         │            │                                         │
    │   Method   Raw target   Version                                      │
    │                                                                      │
    │    Host: 127.0.0.1:42069\r\n             ◄── ignored                 │
    │    User-Agent: ...\r\n                   ◄── ignored                 │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers and bodies are never inspected. Connections are always closed
after one response, so there is no framing to get right.

=============================================================================
PARSING ALGORITHM
=============================================================================

    1. Take the first line (up to the first LF, trailing CR dropped)
    2. Split on whitespace → exactly three tokens
    3. Third token must look like "HTTP/<version>"
    4. Percent-decode the raw target (%XX → byte)
    5. Method must be "GET", version must be "1.1"

Anything else raises ProtocolError. The caller logs it and closes the
connection WITHOUT sending a response.

=============================================================================
PERCENT DECODING
=============================================================================

"%XX" sequences are decoded back to the byte they stand for. Sequences
that are not valid hex are left untouched ("%zz" stays "%zz").

Decoded bytes that are not valid UTF-8 are kept as surrogate escapes, so
when the path later reaches the filesystem, os.fsencode() turns them back
into the exact bytes the client sent.

=============================================================================
"""

from dataclasses import dataclass
from urllib.parse import unquote


class ProtocolError(Exception):
    """
    Raised when a request line is malformed or not supported.

    Unsupported method, unsupported version and unparseable request line
    all end the same way: the connection is closed with no response.
    """


@dataclass(frozen=True)
class ParsedRequest:
    """
    The request line of one HTTP request.

    Attributes:
        method:       "GET" (nothing else survives parsing)
        raw_target:   Target exactly as sent, still percent-encoded
        decoded_path: Target after percent decoding
        version:      Version number without the "HTTP/" prefix ("1.1")
    """

    method: str
    raw_target: str
    decoded_path: str
    version: str


class RequestParser:
    """
    Parses raw request bytes into ParsedRequest objects.

    Stateless. One instance can be shared by every connection.
    """

    SUPPORTED_METHOD = "GET"
    SUPPORTED_VERSION = "1.1"
    VERSION_PREFIX = "HTTP/"

    def parse(self, data: bytes) -> ParsedRequest:
        """
        Parse the request line out of raw request bytes.

        Args:
            data: Whatever the single recv() returned.

        Returns:
            ParsedRequest for a "GET <target> HTTP/1.1" request.

        Raises:
            ProtocolError: Malformed line, non-GET method, or non-1.1 version.
        """
        if not data:
            raise ProtocolError("Empty request")

        # Undecodable bytes become surrogate escapes; this never raises
        text = data.decode("utf-8", errors="surrogateescape")
        request_line = text.split("\n", 1)[0].rstrip("\r")

        tokens = request_line.split()
        if len(tokens) != 3:
            raise ProtocolError(f"Invalid request line: {request_line!r}")

        method, raw_target, protocol = tokens
        if not protocol.startswith(self.VERSION_PREFIX):
            raise ProtocolError(f"Invalid request line: {request_line!r}")
        version = protocol[len(self.VERSION_PREFIX):]

        decoded_path = percent_decode(raw_target)

        if method != self.SUPPORTED_METHOD:
            raise ProtocolError(f"Unsupported HTTP method: {method}")

        if version != self.SUPPORTED_VERSION:
            raise ProtocolError(f"Unsupported HTTP version: {version}")

        return ParsedRequest(
            method=method,
            raw_target=raw_target,
            decoded_path=decoded_path,
            version=version,
        )


def percent_decode(target: str) -> str:
    """
    Decode %XX escapes in a request target.

    Examples:
        >>> percent_decode("/my%20game.html")
        '/my game.html'

        >>> percent_decode("/%2e%2e/secret.html")
        '/../secret.html'

        >>> percent_decode("/100%zz.html")
        '/100%zz.html'
    """
    return unquote(target, encoding="utf-8", errors="surrogateescape")


def parse_request(data: bytes) -> ParsedRequest:
    """Convenience wrapper around RequestParser().parse()."""
    return RequestParser().parse(data)
