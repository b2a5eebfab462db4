"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for caller-side problems (unknown portfolio,
identity conflict, malformed identity, nothing to export).  Rather than
catching these in every route, global handlers inspect the message and pick
the HTTP status.  Persistence failures fall through to the generic handler,
which returns one user-facing message; the request's session dependency has
already rolled the transaction back by then.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # Company already has a submission under a different PIN
    ("already exists", 409),
    # Unknown portfolio / step, or nothing to export
    ("not found", 404),
    # PIN does not match an existing identity
    ("does not match", 403),
    # Final submit on an unconfigured portfolio
    ("only valid", 400),
]

# --- Client-safe messages keyed by HTTP status code ---
# Company names and ids stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Resource already exists",
    403: "Forbidden",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    Falls back to 400 for unrecognised messages.  The raw message is logged
    but never sent to the client.
    """
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown question id) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "저장 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요."},
    )
