"""
Per-connection result codes.

Every accepted connection ends in exactly one Outcome. Nothing that goes
wrong with a single client is raised past the Connection Handler; the
Poll Scheduler only inspects the returned member.

    Outcome            Response sent      Logged as
    ─────────────────  ─────────────────  ─────────
    NO_CLIENT          (nothing accepted) -
    ACCEPT_FAILED      (nothing accepted) error
    CLIENT_TIMEOUT     none               info
    READ_FAILED        none               error
    PROTOCOL_ERROR     none               error
    UNCONFIGURED       200 unconfigured   error
    SECURITY_VIOLATION 403                warning
    UNKNOWN_EXTENSION  403                warning
    MISSING_FILE       404                error
    DUMMY_INDEX        200 dummy index    warning
    SERVED             200 file           info (access log)
"""

from enum import Enum


class Outcome(Enum):
    NO_CLIENT = "no_client"
    ACCEPT_FAILED = "accept_failed"
    CLIENT_TIMEOUT = "client_timeout"
    READ_FAILED = "read_failed"
    PROTOCOL_ERROR = "protocol_error"
    UNCONFIGURED = "unconfigured"
    SECURITY_VIOLATION = "security_violation"
    UNKNOWN_EXTENSION = "unknown_extension"
    MISSING_FILE = "missing_file"
    DUMMY_INDEX = "dummy_index"
    SERVED = "served"

    @property
    def accepted(self) -> bool:
        """True if a client was accepted during the cycle."""
        return self not in (Outcome.NO_CLIENT, Outcome.ACCEPT_FAILED)
