"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The three status codes this server ever sends:

    200 OK          File served, or the dummy index page
    403 Forbidden   Traversal attempt, bad path shape, unknown extension
    404 Not Found   Allowlisted file missing from the webroot

There is no 400/405/505: a request the parser rejects gets no response
at all, the connection is simply closed.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.FORBIDDEN == 403
        True
        >>> HTTPStatus.FORBIDDEN.phrase
        'Forbidden'
    """

    OK = 200
    FORBIDDEN = 403
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
}
