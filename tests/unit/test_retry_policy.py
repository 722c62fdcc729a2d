"""Unit tests for rate-limit retry with exponential backoff."""

from __future__ import annotations

import asyncio

import pytest

from wayfarer.errors import ClassifiedError, ErrorKind
from wayfarer.infrastructure.retry import RetryPolicy, with_retry
from wayfarer.observability.telemetry import counter


class UpstreamHTTPError(Exception):
    """Stand-in for an SDK error carrying an HTTP status code."""

    def __init__(self, message: str = "429 RESOURCE_EXHAUSTED", code: int = 429) -> None:
        super().__init__(message)
        self.code = code


def make_operation(outcomes):
    """Operation that raises/returns the scripted outcomes in order and counts calls."""
    calls = {"count": 0}

    async def operation():
        outcome = outcomes[min(calls["count"], len(outcomes) - 1)]
        calls["count"] += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return operation, calls


def test_success_first_try_does_not_sleep(recording_sleep):
    policy = RetryPolicy(stage="test", sleep_fn=recording_sleep)
    operation, calls = make_operation(["ok"])

    assert asyncio.run(policy.execute(operation)) == "ok"
    assert calls["count"] == 1
    assert recording_sleep.delays == []


def test_always_rate_limited_exhausts_attempts(recording_sleep):
    policy = RetryPolicy(stage="test", max_attempts=4, max_jitter=0, sleep_fn=recording_sleep)
    operation, calls = make_operation([UpstreamHTTPError()])

    with pytest.raises(UpstreamHTTPError):
        asyncio.run(policy.execute(operation))

    assert calls["count"] == 4
    assert counter("retry.test.scheduled", 0) == 3


def test_backoff_doubles_from_initial_delay(recording_sleep):
    policy = RetryPolicy(
        stage="test", max_attempts=4, initial_delay=2.0, max_jitter=0, sleep_fn=recording_sleep
    )
    operation, _ = make_operation([UpstreamHTTPError()])

    with pytest.raises(UpstreamHTTPError):
        asyncio.run(policy.execute(operation))

    assert recording_sleep.delays == [2.0, 4.0, 8.0]


def test_jitter_stays_within_bound(recording_sleep):
    policy = RetryPolicy(
        stage="test", max_attempts=3, initial_delay=1.0, max_jitter=0.5, sleep_fn=recording_sleep
    )
    operation, _ = make_operation([UpstreamHTTPError()])

    with pytest.raises(UpstreamHTTPError):
        asyncio.run(policy.execute(operation))

    first, second = recording_sleep.delays
    assert 1.0 <= first <= 1.5
    assert 2.0 <= second <= 2.5


def test_recovers_after_rate_limit(recording_sleep):
    policy = RetryPolicy(stage="test", max_jitter=0, sleep_fn=recording_sleep)
    operation, calls = make_operation([UpstreamHTTPError(), UpstreamHTTPError(), "done"])

    assert asyncio.run(policy.execute(operation)) == "done"
    assert calls["count"] == 3
    assert recording_sleep.delays == [2.0, 4.0]


@pytest.mark.parametrize(
    "error",
    [
        ValueError("bad input"),
        UpstreamHTTPError("Requested entity was not found", code=404),
        ClassifiedError(ErrorKind.CREDENTIAL_INVALID, "API Key missing or invalid"),
    ],
    ids=["value-error", "not-found", "credential"],
)
def test_non_rate_limit_errors_fail_immediately(recording_sleep, error):
    policy = RetryPolicy(stage="test", sleep_fn=recording_sleep)
    operation, calls = make_operation([error])

    with pytest.raises(type(error)):
        asyncio.run(policy.execute(operation))

    assert calls["count"] == 1
    assert recording_sleep.delays == []


def test_classified_rate_limit_is_retried(recording_sleep):
    policy = RetryPolicy(stage="test", max_attempts=2, max_jitter=0, sleep_fn=recording_sleep)
    error = ClassifiedError(ErrorKind.RATE_LIMITED, "busy", code=429)
    operation, calls = make_operation([error])

    with pytest.raises(ClassifiedError):
        asyncio.run(policy.execute(operation))

    assert calls["count"] == 2


def test_quota_message_without_code_is_retried(recording_sleep):
    policy = RetryPolicy(stage="test", max_attempts=2, max_jitter=0, sleep_fn=recording_sleep)
    operation, calls = make_operation([RuntimeError("Quota exceeded for requests"), "ok"])

    assert asyncio.run(policy.execute(operation)) == "ok"
    assert calls["count"] == 2


def test_retry_on_narrows_what_is_retried(recording_sleep):
    policy = RetryPolicy(
        stage="test",
        max_attempts=3,
        max_jitter=0,
        sleep_fn=recording_sleep,
        retry_on=lambda error: isinstance(error, UpstreamHTTPError),
    )
    operation, calls = make_operation([ClassifiedError(ErrorKind.RATE_LIMITED, "busy", code=429)])

    with pytest.raises(ClassifiedError):
        asyncio.run(policy.execute(operation))

    assert calls["count"] == 1
    assert recording_sleep.delays == []


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(stage="test", max_attempts=0)


def test_with_retry_single_attempt_never_sleeps():
    operation, calls = make_operation([UpstreamHTTPError()])

    with pytest.raises(UpstreamHTTPError):
        asyncio.run(with_retry(operation, max_retries=1, initial_delay=0.01, stage="short"))

    assert calls["count"] == 1
