"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    from tickhttpd.handlers import StaticFileHandler, resolve_target

    handler = StaticFileHandler("/home/me/exports/game")
    result = handler.handle(parsed_request)   # ServeResult(response, outcome)

    resolve_target("/game.wasm", webroot)      # Resolution, no disk access

=============================================================================
"""

from .static import (
    StaticFileHandler,
    ServeResult,
    Resolution,
    ResolvedTarget,
    Verdict,
    resolve_target,
)

__all__ = [
    "StaticFileHandler",
    "ServeResult",
    "Resolution",
    "ResolvedTarget",
    "Verdict",
    "resolve_target",
]
