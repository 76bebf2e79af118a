"""
errors.py — Turn AI-call failures into user-facing HTTP errors.

The queue propagates upstream errors verbatim; routes call
`raise_for_ai_error()` in their except block to classify them:

  QueueFullError / RequestTimeoutError / ExecutionTimeoutError → 503
  upstream 429 (rate limit / quota)                            → 429
  upstream 400 / 401 / 403                                     → same status
  anything else                                                → 500

Upstream status detection is duck-typed so it works for google-api-core
exceptions (`.code`), httpx errors (`.response.status_code`) and plain
exceptions whose message mentions 429 / quota.
"""

import logging
from typing import NoReturn, Optional

from fastapi import HTTPException

from zwift_api.core.request_queue import QueueError

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    429: "Rate limit reached. Please wait a moment and try again.",
    400: "Invalid request to AI service. Please try again.",
    401: "Authentication error with AI service. Please check your API key configuration.",
    403: "Access denied to AI service. Please check your permissions.",
}


def upstream_status(exc: BaseException) -> Optional[int]:
    """Best-effort HTTP status of an upstream failure, or None if unknown."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 100 <= value < 600:
            return value

    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    msg = str(exc).lower()
    if "429" in msg or "quota" in msg or "resource exhausted" in msg:
        return 429
    return None


def is_rate_limited(exc: BaseException) -> bool:
    return upstream_status(exc) == 429


def describe_ai_error(exc: BaseException, default_message: str) -> tuple[int, str]:
    """
    Map an exception to (http_status, client_message).

    `default_message` is used for failures with no recognisable upstream
    status, e.g. "AI inventory analysis temporarily unavailable".
    """
    if isinstance(exc, QueueError):
        return 503, str(exc)

    status = upstream_status(exc)
    if status in _STATUS_MESSAGES:
        return status, _STATUS_MESSAGES[status]
    if status is not None:
        return 500, f"AI Service Error: {exc or 'Unknown error'}"
    if isinstance(exc, (ConnectionError, OSError)):
        return 500, "Network error. Please check your internet connection and try again."
    return 500, default_message


def raise_for_ai_error(exc: BaseException, default_message: str) -> NoReturn:
    """Log `exc` and re-raise it as an HTTPException with a client-safe message."""
    status, message = describe_ai_error(exc, default_message)
    logger.error("AI call failed (%s): %s", type(exc).__name__, exc)

    headers = None
    if status in (429, 503):
        headers = {"Retry-After": "30"}
    raise HTTPException(status_code=status, detail=message, headers=headers) from exc
