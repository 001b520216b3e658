"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a decoded request path to one file in the webroot, or refuses.

=============================================================================
SECURITY: WHAT MAY BE SERVED
=============================================================================

The webroot is flat. Only files sitting directly inside it, with an
allowlisted extension, can ever be read:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    RESOLUTION PIPELINE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   decoded path                                                       │
    │        │                                                             │
    │        ├──► contains "/../"?          ── yes ──► 403                 │
    │        │                                                             │
    │        ├──► "/" ─► "/index.html"                                     │
    │        │                                                             │
    │        ├──► matches /<name>.<ext> ?   ── no ───► 403                 │
    │        │    (one segment, one dot)                                   │
    │        │                                                             │
    │        ├──► <ext> allowlisted?        ── no ───► 403                 │
    │        │    (disk is never touched)                                  │
    │        │                                                             │
    │        └──► webroot / "<name>.<ext>"                                 │
    │                  │                                                   │
    │                  ├── readable ──────────────────► 200 + bytes        │
    │                  ├── missing, was /index.html ──► 200 dummy index    │
    │                  └── missing ───────────────────► 404                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    ATTACK ATTEMPTS:
        GET /../../etc/passwd        → "/../" present           → 403
        GET /%2e%2e/secret.html      → decodes to "/../..."      → 403
        GET /sub/dir/game.html       → more than one segment     → 403
        GET /archive.tar.gz          → two dots                  → 403
        GET /notes.txt               → "txt" not allowlisted     → 403

The traversal check is the literal substring "/../" on the decoded path.
The segment pattern rejects every other "/" anyway, so "/.." and
friends never reach the disk either.

The webroot itself is trusted configuration and is not canonicalized.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..http.content_types import get_content_type, is_allowed
from ..http.request import ParsedRequest
from ..http.response import (
    HTTPResponse,
    dummy_index,
    file_response,
    forbidden,
    not_found,
    unconfigured,
)
from ..outcome import Outcome


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("tickhttpd.access")


INDEX_PATH = "/index.html"
TRAVERSAL_MARKER = "/../"

# One segment, non-empty base name, exactly one dot, non-empty extension.
TARGET_PATTERN = re.compile(r"^/([^/.]+)\.([^/.]+)$")


class Verdict(Enum):
    """What the guard decided about a path."""

    RESOLVED = "resolved"
    SECURITY_VIOLATION = "security_violation"
    UNKNOWN_EXTENSION = "unknown_extension"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    A file the guard agreed to serve.

    Attributes:
        filesystem_path: webroot / "<basename>.<extension>"
        extension:       The allowlisted extension
        content_type:    Its Content-Type from the table
    """

    filesystem_path: Path
    extension: str
    content_type: str


@dataclass(frozen=True)
class Resolution:
    """
    Result of running a path through the guard.

    `path` is the request path after the "/" → "/index.html" rewrite
    (when the guard got that far), `target` is only set for RESOLVED.
    """

    verdict: Verdict
    path: str
    target: Optional[ResolvedTarget] = None
    reason: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.verdict is Verdict.RESOLVED


def resolve_target(decoded_path: str, webroot: str) -> Resolution:
    """
    Validate a decoded request path and map it into the webroot.

    Never touches the filesystem.

    Args:
        decoded_path: Percent-decoded request target.
        webroot:      Directory the files are served from.

    Returns:
        Resolution describing the verdict.
    """
    if TRAVERSAL_MARKER in decoded_path:
        return Resolution(
            Verdict.SECURITY_VIOLATION,
            decoded_path,
            reason="Request attempted to enter a parent directory",
        )

    path = INDEX_PATH if decoded_path == "/" else decoded_path

    match = TARGET_PATTERN.match(path)
    if not match:
        return Resolution(
            Verdict.SECURITY_VIOLATION,
            path,
            reason="Request is not an allowed file",
        )

    basename, extension = match.groups()

    if not is_allowed(extension):
        return Resolution(
            Verdict.UNKNOWN_EXTENSION,
            path,
            reason=f"Unknown file extension: {extension}",
        )

    return Resolution(
        Verdict.RESOLVED,
        path,
        target=ResolvedTarget(
            filesystem_path=Path(webroot) / f"{basename}.{extension}",
            extension=extension,
            content_type=get_content_type(extension),
        ),
    )


@dataclass(frozen=True)
class ServeResult:
    """The response to send and the outcome it represents."""

    response: HTTPResponse
    outcome: Outcome


class StaticFileHandler:
    """
    Serves allowlisted files from a flat webroot.

    Usage:
        handler = StaticFileHandler("/home/me/exports/game")
        result = handler.handle(parsed_request)
        conn.send(result.response.to_bytes())
    """

    def __init__(self, webroot: str):
        """
        Args:
            webroot: Directory to serve. Empty string means unconfigured.
        """
        self.webroot = webroot

    def handle(self, request: ParsedRequest) -> ServeResult:
        """
        Produce the response for a parsed GET request.

        Never raises for anything a client can influence; every failure
        is mapped to a canned response and an Outcome.
        """
        if not self.webroot:
            logger.error("Request received with webroot unconfigured")
            return ServeResult(unconfigured(), Outcome.UNCONFIGURED)

        resolution = resolve_target(request.decoded_path, self.webroot)

        if resolution.verdict is Verdict.SECURITY_VIOLATION:
            logger.warning(f"{resolution.reason}: {request.decoded_path!r}")
            return ServeResult(forbidden(), Outcome.SECURITY_VIOLATION)

        if resolution.verdict is Verdict.UNKNOWN_EXTENSION:
            logger.warning(resolution.reason)
            return ServeResult(forbidden(), Outcome.UNKNOWN_EXTENSION)

        target = resolution.target
        logger.debug(f"\tmapped to {target.filesystem_path}")
        logger.debug(f"\textension is {target.extension}")

        return self._serve_file(resolution.path, target)

    def _serve_file(self, path: str, target: ResolvedTarget) -> ServeResult:
        """Read the whole file in binary mode and wrap it in a 200."""
        try:
            content = target.filesystem_path.read_bytes()
        except (OSError, ValueError) as e:
            # ValueError: the decoded path carried a NUL byte
            if path == INDEX_PATH:
                logger.warning("No index.html found, sending dummy index")
                return ServeResult(dummy_index(), Outcome.DUMMY_INDEX)
            logger.error(f"Error opening file: {e}")
            return ServeResult(not_found(), Outcome.MISSING_FILE)

        access_logger.info(
            f"Serving request for {path} from {target.filesystem_path} "
            f"({target.content_type}, {len(content) // 1024}kB)"
        )
        return ServeResult(
            file_response(content, target.content_type),
            Outcome.SERVED,
        )
