"""
Error taxonomy shared by the backend dispatcher and the client gateway.

Upstream failures arrive in many shapes (google-genai APIError, httpx errors,
plain exceptions with a message).  classify_error() reduces all of them to a
ClassifiedError so both layers react the same way: credential re-entry for
``credential_invalid``, backoff for ``rate_limited``, a generic message for
everything else.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from wayfarer.llm.parser import ReplyParseError

NOT_FOUND_MARKERS: tuple[str, ...] = ("404", "not found", "entity was not found")
RATE_LIMIT_MARKERS: tuple[str, ...] = (
    "429",
    "quota",
    "resource_exhausted",
    "resource exhausted",
)

CREDENTIAL_INVALID_MESSAGE = "API Key missing or invalid. Please check server configuration."
RATE_LIMITED_MESSAGE = "Service is temporarily busy (Quota Exceeded). Please wait a moment."
GENERIC_MESSAGE = "An unexpected error occurred"


class ErrorKind(str, Enum):
    """What the caller should do about a failure."""

    CREDENTIAL_INVALID = "credential_invalid"  # re-enter / fix the API key
    RATE_LIMITED = "rate_limited"  # back off and retry
    PARSE_FAILURE = "parse_failure"  # model reply not in the expected shape
    OTHER = "other"


_DEFAULT_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.CREDENTIAL_INVALID: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.PARSE_FAILURE: 500,
    ErrorKind.OTHER: 500,
}


class ConfigurationError(RuntimeError):
    """Raised when the server is missing required configuration (e.g. GEMINI_API_KEY)."""


class ClassifiedError(Exception):
    """A failure reduced to a kind, a user-safe message and optional code/status."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: int | None = None,
        status: str | None = None,
        http_status: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.code = code
        self.status = status
        self.http_status = http_status or _DEFAULT_HTTP_STATUS[self.kind]
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r}, "
            f"code={self.code!r}, status={self.status!r})"
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the error envelope returned by the dispatcher."""
        payload: dict[str, Any] = {"error": self.message, "kind": self.kind.value}
        if self.code is not None:
            payload["code"] = self.code
        if self.status is not None:
            payload["status"] = self.status
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload

    @classmethod
    def from_payload(cls, payload: Any, http_status: int) -> ClassifiedError:
        """Rebuild an error from a dispatcher envelope (client side)."""
        if not isinstance(payload, dict):
            payload = {}

        try:
            kind = ErrorKind(payload.get("kind"))
        except ValueError:
            if http_status == 404:
                kind = ErrorKind.CREDENTIAL_INVALID
            elif http_status == 429:
                kind = ErrorKind.RATE_LIMITED
            else:
                kind = ErrorKind.OTHER

        code = payload.get("code")
        retry_after = payload.get("retry_after")
        return cls(
            kind=kind,
            message=str(payload.get("error") or f"Request failed with status {http_status}"),
            code=code if isinstance(code, int) else None,
            status=payload.get("status") if isinstance(payload.get("status"), str) else None,
            http_status=http_status,
            retry_after=retry_after if isinstance(retry_after, int) else None,
        )


def bad_request(message: str) -> ClassifiedError:
    """Client error (unknown action, invalid params): never retried, never sent upstream."""
    return ClassifiedError(ErrorKind.OTHER, message, http_status=400)


def _error_attr(error: BaseException, name: str) -> Any:
    return getattr(error, name, None)


def serialize_error(error: BaseException) -> str:
    """Lower-cased text used for marker matching: message, type, code and status fields."""
    parts = [type(error).__name__, str(error)]
    for name in ("code", "status", "status_code", "message", "details"):
        value = _error_attr(error, name)
        if value is not None:
            parts.append(str(value))
    return " ".join(parts).lower()


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def is_rate_limited(error: BaseException) -> bool:
    """True for quota / 429 / RESOURCE_EXHAUSTED class failures."""
    if isinstance(error, ClassifiedError):
        return error.kind is ErrorKind.RATE_LIMITED
    if _error_attr(error, "status_code") == 429 or _error_attr(error, "code") == 429:
        return True
    if _error_attr(error, "status") == 429:
        return True
    return _contains_any(serialize_error(error), RATE_LIMIT_MARKERS)


def is_proxy_throttled(error: BaseException) -> bool:
    """
    True for a 429 from the proxy's own per-client limiter.

    Those envelopes carry ``retry_after`` and never reached Gemini.  A 429
    without it means the dispatcher already spent its retries upstream.
    """
    return (
        isinstance(error, ClassifiedError)
        and error.kind is ErrorKind.RATE_LIMITED
        and error.retry_after is not None
    )


def classify_error(error: BaseException) -> ClassifiedError:
    """
    Reduce any exception to a ClassifiedError.

    Rules, first match wins:
        1. not-found family (404, "not found", "entity was not found")
           -> credential_invalid, code 404
        2. rate-limit family (429, quota, resource_exhausted) -> rate_limited, code 429
        3. anything else -> other, keeping the original message and code/status
    """
    if isinstance(error, ClassifiedError):
        return error

    if isinstance(error, ReplyParseError):
        return ClassifiedError(ErrorKind.PARSE_FAILURE, str(error), status="PARSE_FAILURE")

    if isinstance(error, ConfigurationError):
        return ClassifiedError(ErrorKind.OTHER, str(error), status="FAILED_PRECONDITION")

    text = serialize_error(error)

    if _contains_any(text, NOT_FOUND_MARKERS):
        return ClassifiedError(ErrorKind.CREDENTIAL_INVALID, CREDENTIAL_INVALID_MESSAGE, code=404)

    if is_rate_limited(error):
        return ClassifiedError(
            ErrorKind.RATE_LIMITED,
            RATE_LIMITED_MESSAGE,
            code=429,
            status="RESOURCE_EXHAUSTED",
        )

    code = _error_attr(error, "code")
    status = _error_attr(error, "status")
    return ClassifiedError(
        ErrorKind.OTHER,
        str(error) or GENERIC_MESSAGE,
        code=code if isinstance(code, int) else None,
        status=status if isinstance(status, str) else None,
    )
