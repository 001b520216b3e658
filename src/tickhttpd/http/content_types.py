"""
=============================================================================
CONTENT-TYPE TABLE
=============================================================================

The allowlist of file extensions the server will serve, each bound to the
exact Content-Type it is served with.

=============================================================================
WHY AN ALLOWLIST AND NOT A MIME DATABASE?
=============================================================================

A general purpose server guesses a MIME type for anything on disk and
falls back to application/octet-stream. This server does the opposite:

    ┌────────────────────────────────────────────────────────────────────┐
    │                    ALLOWLISTED EXTENSIONS                          │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  html  → text/html                 Page shell                      │
    │  js    → application/javascript    Engine loader / glue code       │
    │  png   → image/png                 Boot splash, icons              │
    │  wasm  → application/wasm          Compiled engine                 │
    │  pck   → application/octet-stream  Game data pack                  │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

That is exactly the file set of a Godot web export. Anything else is
answered with 403 Forbidden WITHOUT looking at the disk, so unknown file
types are never probed.

The values match what Godot's own debug web server sends, so a project
behaves the same whether it is loaded from the editor or from here.

Lookups are case-sensitive: "PNG" is not "png".

=============================================================================
"""

from typing import Optional


CONTENT_TYPES = {
    "html": "text/html",
    "js": "application/javascript",
    "png": "image/png",
    "wasm": "application/wasm",
    "pck": "application/octet-stream",
}


def get_content_type(extension: str) -> Optional[str]:
    """
    Look up the Content-Type for an extension (without the leading dot).

    Returns:
        The Content-Type, or None if the extension is not allowlisted.

    Examples:
        >>> get_content_type("wasm")
        'application/wasm'

        >>> get_content_type("css") is None
        True
    """
    return CONTENT_TYPES.get(extension)


def is_allowed(extension: str) -> bool:
    """Check whether an extension is on the allowlist."""
    return extension in CONTENT_TYPES
