"""Unit tests for the shared error taxonomy."""

from __future__ import annotations

import pytest

from wayfarer.errors import (
    CREDENTIAL_INVALID_MESSAGE,
    RATE_LIMITED_MESSAGE,
    ClassifiedError,
    ConfigurationError,
    ErrorKind,
    bad_request,
    classify_error,
    is_proxy_throttled,
    is_rate_limited,
)
from wayfarer.llm.parser import EmptyReplyError, UnparseableReplyError


class SDKError(Exception):
    """Mimics google-genai APIError: message plus numeric code and string status."""

    def __init__(self, message: str, code: int | None = None, status: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


@pytest.mark.parametrize(
    "error",
    [
        SDKError("Requested entity was not found.", code=404, status="NOT_FOUND"),
        RuntimeError("404 Not Found"),
        RuntimeError("Requested entity was not found."),
    ],
)
def test_not_found_family_is_credential_invalid(error):
    classified = classify_error(error)

    assert classified.kind is ErrorKind.CREDENTIAL_INVALID
    assert classified.code == 404
    assert classified.message == CREDENTIAL_INVALID_MESSAGE
    assert classified.http_status == 404


@pytest.mark.parametrize(
    "error",
    [
        SDKError("Resource has been exhausted", code=429, status="RESOURCE_EXHAUSTED"),
        RuntimeError("Quota exceeded for quota metric"),
        RuntimeError("429 Too Many Requests"),
        RuntimeError("RESOURCE_EXHAUSTED"),
    ],
)
def test_rate_limit_family(error):
    classified = classify_error(error)

    assert classified.kind is ErrorKind.RATE_LIMITED
    assert classified.code == 429
    assert classified.status == "RESOURCE_EXHAUSTED"
    assert classified.message == RATE_LIMITED_MESSAGE
    assert is_rate_limited(error)


def test_not_found_checked_before_rate_limit():
    error = RuntimeError("404 entity was not found; quota project unset")
    assert classify_error(error).kind is ErrorKind.CREDENTIAL_INVALID


def test_other_keeps_message_and_code():
    classified = classify_error(SDKError("Internal error", code=500, status="INTERNAL"))

    assert classified.kind is ErrorKind.OTHER
    assert classified.message == "Internal error"
    assert classified.code == 500
    assert classified.status == "INTERNAL"
    assert classified.http_status == 500


def test_empty_message_falls_back_to_generic():
    assert classify_error(RuntimeError()).message == "An unexpected error occurred"


@pytest.mark.parametrize("error", [EmptyReplyError(), UnparseableReplyError()])
def test_parse_failures(error):
    classified = classify_error(error)

    assert classified.kind is ErrorKind.PARSE_FAILURE
    assert classified.status == "PARSE_FAILURE"
    assert classified.http_status == 500


def test_missing_configuration_is_other():
    classified = classify_error(ConfigurationError("GEMINI_API_KEY is not configured"))

    assert classified.kind is ErrorKind.OTHER
    assert classified.status == "FAILED_PRECONDITION"
    assert "GEMINI_API_KEY" in classified.message


def test_classified_error_passes_through():
    original = ClassifiedError(ErrorKind.RATE_LIMITED, "busy")
    assert classify_error(original) is original


def test_payload_omits_absent_fields():
    assert bad_request("Unknown action: teleport").to_payload() == {
        "error": "Unknown action: teleport",
        "kind": "other",
    }


def test_payload_carries_retry_after_when_set():
    error = ClassifiedError(ErrorKind.RATE_LIMITED, "slow down", code=429, retry_after=60)
    assert error.to_payload() == {
        "error": "slow down",
        "kind": "rate_limited",
        "code": 429,
        "retry_after": 60,
    }


@pytest.mark.parametrize(
    "error, throttled",
    [
        (ClassifiedError(ErrorKind.RATE_LIMITED, "slow down", retry_after=60), True),
        (ClassifiedError(ErrorKind.RATE_LIMITED, "busy", code=429), False),
        (ClassifiedError(ErrorKind.OTHER, "boom", retry_after=5), False),
        (SDKError("429 RESOURCE_EXHAUSTED", code=429), False),
    ],
    ids=["limiter", "upstream-exhausted", "other-kind", "raw-sdk"],
)
def test_is_proxy_throttled(error, throttled):
    assert is_proxy_throttled(error) is throttled

class TestFromPayload:
    def test_uses_explicit_kind(self):
        error = ClassifiedError.from_payload(
            {"error": "busy", "code": 429, "status": "RESOURCE_EXHAUSTED", "kind": "rate_limited"},
            429,
        )
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.code == 429
        assert error.status == "RESOURCE_EXHAUSTED"

    @pytest.mark.parametrize(
        "http_status, kind",
        [(404, ErrorKind.CREDENTIAL_INVALID), (429, ErrorKind.RATE_LIMITED), (502, ErrorKind.OTHER)],
    )
    def test_infers_kind_from_http_status(self, http_status, kind):
        error = ClassifiedError.from_payload({"error": "failed"}, http_status)
        assert error.kind is kind
        assert error.http_status == http_status

    def test_non_dict_body(self):
        error = ClassifiedError.from_payload("<html>Bad Gateway</html>", 502)
        assert error.kind is ErrorKind.OTHER
        assert "502" in error.message

    def test_reads_retry_after(self):
        error = ClassifiedError.from_payload(
            {"error": "slow down", "kind": "rate_limited", "retry_after": 3600}, 429
        )
        assert error.retry_after == 3600

    def test_ignores_non_integer_retry_after(self):
        error = ClassifiedError.from_payload({"error": "slow down", "retry_after": "soon"}, 429)
        assert error.retry_after is None
