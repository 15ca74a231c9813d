"""Failure taxonomy and HTTP error classification for the APItome client.

Every failure the client surfaces is an :class:`ApitomeError` carrying one
:class:`ErrorKind` and a human-readable message. :func:`classify_http_error`
turns a non-success HTTP outcome into the matching failure without ever
raising itself.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional, Type


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    NETWORK_UNREACHABLE = "network-unreachable"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate-limited"
    OVERSIZED_BATCH = "oversized-batch"
    UNSUPPORTED_CONTENT = "unsupported-content"
    TRANSIENT_SERVER = "transient-server"
    GENERIC_BAD_REQUEST = "generic-bad-request"
    PROTOCOL_MISMATCH = "protocol-mismatch"
    MALFORMED_EVENT = "malformed-event"
    SESSION_NOT_FOUND = "session-not-found"
    COLLECTION_NOT_FOUND = "collection-not-found"
    INGESTION_FAILED = "ingestion-failed"
    OPAQUE = "opaque"


class ApitomeError(Exception):
    """Base class for all client failures.

    Attributes:
        kind: The failure kind.
        message: Human-readable, never empty.
        status_code: HTTP status when the failure came from a response.
        detail: Raw server-supplied detail, if any.
    """

    kind: ErrorKind = ErrorKind.OPAQUE
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)


class NetworkUnreachableError(ApitomeError):
    kind = ErrorKind.NETWORK_UNREACHABLE
    default_message = "Sorry, the service is currently unavailable. Please try again later."


class QueryTimeoutError(ApitomeError):
    kind = ErrorKind.TIMEOUT
    default_message = "Query timed out"


class RateLimitedError(ApitomeError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "Rate limit exceeded. Please try again later."


class RateLimitActiveError(RateLimitedError):
    """Raised locally while a cooldown window is active; no request was sent."""


class OversizedBatchError(ApitomeError):
    kind = ErrorKind.OVERSIZED_BATCH


class UnsupportedContentError(ApitomeError):
    kind = ErrorKind.UNSUPPORTED_CONTENT


class TransientServerError(ApitomeError):
    kind = ErrorKind.TRANSIENT_SERVER
    default_message = (
        "The server encountered an error while processing your request. "
        "Please try again in a few moments or contact support if the issue persists."
    )


class BadRequestError(ApitomeError):
    kind = ErrorKind.GENERIC_BAD_REQUEST


class ProtocolMismatchError(ApitomeError):
    kind = ErrorKind.PROTOCOL_MISMATCH


class SessionNotFoundError(ApitomeError):
    kind = ErrorKind.SESSION_NOT_FOUND
    default_message = "Session not found"


class CollectionNotFoundError(ApitomeError):
    kind = ErrorKind.COLLECTION_NOT_FOUND
    default_message = "Collection not found. Please re-ingest documentation."


class IngestionFailedError(ApitomeError):
    kind = ErrorKind.INGESTION_FAILED
    default_message = "Ingestion failed"


class OpaqueHttpError(ApitomeError):
    kind = ErrorKind.OPAQUE


ERROR_TYPES: Dict[ErrorKind, Type[ApitomeError]] = {
    cls.kind: cls
    for cls in (
        NetworkUnreachableError,
        QueryTimeoutError,
        RateLimitedError,
        OversizedBatchError,
        UnsupportedContentError,
        TransientServerError,
        BadRequestError,
        ProtocolMismatchError,
        SessionNotFoundError,
        CollectionNotFoundError,
        IngestionFailedError,
        OpaqueHttpError,
    )
}

DEFAULT_RATE_DETAIL = "10 per 1 hour"
DEFAULT_MAX_URLS = "20"
DEFAULT_PROVIDED_URLS = "many"

UNSUPPORTED_CONTENT_MESSAGE = (
    "Invalid URLs detected. Currently we only support URLs containing keywords "
    "(api, doc, docs, documentation, reference, guide). \n\n"
    "This ensures the service is used for API documentation only."
)

_MAX_ALLOWED_RE = re.compile(r"maximum allowed: (\d+)", re.IGNORECASE)
_PROVIDED_RE = re.compile(r"provided: (\d+)", re.IGNORECASE)


def extract_detail(body: Any) -> Optional[str]:
    """Pull a usable ``detail`` string out of a parsed error body.

    FastAPI validation failures put a list of ``{"msg": ...}`` objects under
    ``detail``; those are joined into one line.

    Args:
        body: The parsed JSON error body, or ``None`` when it was unparsable.

    Returns:
        The detail text, or ``None`` when the body carries none.
    """
    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if detail is None:
        return None
    if isinstance(detail, str):
        return detail.strip() or None
    if isinstance(detail, list):
        parts = []
        for item in detail:
            if isinstance(item, dict) and item.get("msg"):
                parts.append(str(item["msg"]))
            elif isinstance(item, str):
                parts.append(item)
        return "; ".join(parts) or None
    return str(detail)


def classify_http_error(status_code: int, body: Any) -> ApitomeError:
    """Map a non-success HTTP outcome to a typed failure.

    Status-driven kinds (429, 404, 5xx) win over body parsing, so a rate
    limit is still recognised when the server sent no JSON.

    Args:
        status_code: HTTP status code of the response.
        body: Parsed JSON error body, or ``None`` if it could not be parsed.

    Returns:
        The failure to raise. Its message is never empty.
    """
    detail = extract_detail(body)

    if status_code == 429:
        rate = detail or DEFAULT_RATE_DETAIL
        return RateLimitedError(
            f"Rate limit exceeded ({rate}). This project is just a preview and has "
            "limited rates. Please try again later.",
            status_code=status_code,
            detail=detail,
        )

    if status_code == 404:
        return CollectionNotFoundError(status_code=status_code, detail=detail)

    if 500 <= status_code < 600:
        return TransientServerError(status_code=status_code, detail=detail)

    if body is None:
        return OpaqueHttpError(f"HTTP Error {status_code}", status_code=status_code)

    if status_code == 400 and detail:
        lowered = detail.lower()

        if "too many urls" in lowered:
            max_match = _MAX_ALLOWED_RE.search(detail)
            provided_match = _PROVIDED_RE.search(detail)
            maximum = max_match.group(1) if max_match else DEFAULT_MAX_URLS
            provided = provided_match.group(1) if provided_match else DEFAULT_PROVIDED_URLS
            return OversizedBatchError(
                f"Too many URLs provided ({provided}). Maximum allowed is {maximum}. "
                "Please split your request into smaller batches.",
                status_code=status_code,
                detail=detail,
            )

        if "invalid urls" in lowered and "api documentation keywords" in lowered:
            return UnsupportedContentError(
                UNSUPPORTED_CONTENT_MESSAGE, status_code=status_code, detail=detail
            )

        return BadRequestError(detail, status_code=status_code, detail=detail)

    if 400 <= status_code < 500 and detail:
        return BadRequestError(detail, status_code=status_code, detail=detail)

    return OpaqueHttpError(f"HTTP Error {status_code}", status_code=status_code, detail=detail)
