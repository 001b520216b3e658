"""
=============================================================================
HTTP PROTOCOL SUBSET
=============================================================================

Everything that knows what HTTP looks like on the wire:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   b"GET /game.wasm HTTP/1.1\r\n..."  ──►  ParsedRequest             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE COMPOSER (response.py)                                     │
    │   canned pages (forbidden, not_found, dummy_index, unconfigured)    │
    │   file_response(content, content_type)                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │ CONTENT-TYPE TABLE (content_types.py)                               │
    │   html, js, png, wasm, pck  ──►  exact Content-Type                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │   200, 403, 404                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import ParsedRequest, RequestParser, ProtocolError, parse_request
from .response import (
    HTTPResponse,
    ISOLATION_HEADERS,
    unconfigured,
    dummy_index,
    forbidden,
    not_found,
    file_response,
)
from .status_codes import HTTPStatus
from .content_types import CONTENT_TYPES, get_content_type

__all__ = [
    # Request parsing
    "ParsedRequest",
    "RequestParser",
    "ProtocolError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ISOLATION_HEADERS",
    "unconfigured",
    "dummy_index",
    "forbidden",
    "not_found",
    "file_response",

    # Status codes
    "HTTPStatus",

    # Content types
    "CONTENT_TYPES",
    "get_content_type",
]
