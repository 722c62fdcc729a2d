"""
Rate-limit retry with exponential backoff and jitter.

By default only quota / 429 failures are retried: they are the one transient
class the Gemini API produces at volume.  Everything else (bad credentials,
parse failures, configuration errors) is re-raised after the first attempt.
``retry_on`` narrows or replaces that predicate per stage.

Delay before retry i (0-based) is ``initial_delay * 2**i + uniform(0, max_jitter)``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from wayfarer.config import (
    RETRY_INITIAL_DELAY_SECONDS,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_JITTER_SECONDS,
)
from wayfarer.errors import is_rate_limited
from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import counter, log_event

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class RetryPolicy:
    stage: str
    max_attempts: int = RETRY_MAX_ATTEMPTS
    initial_delay: float = RETRY_INITIAL_DELAY_SECONDS
    max_jitter: float = RETRY_MAX_JITTER_SECONDS
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep
    retry_on: Callable[[BaseException], bool] = is_rate_limited

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds, fails without a rate limit, or attempts run out.

        Attempts are strictly sequential.  The last failure is re-raised unchanged.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_delay, exp_base=2, min=0)
            + wait_random(0, self.max_jitter),
            retry=retry_if_exception(self.retry_on),
            before_sleep=self._before_sleep,
            sleep=self.sleep_fn,
            reraise=True,
        )
        return await retrying(operation)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        counter(f"retry.{self.stage}.scheduled")
        logger.warning(
            "Quota exceeded (429). Retrying %s in %.2fs... (Attempt %d/%d)",
            self.stage,
            delay,
            retry_state.attempt_number,
            self.max_attempts,
        )
        log_event(
            "retry_scheduled",
            stage=self.stage,
            attempt=retry_state.attempt_number,
            delay=round(delay, 3),
        )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = RETRY_MAX_ATTEMPTS,
    initial_delay: float = RETRY_INITIAL_DELAY_SECONDS,
    stage: str = "default",
) -> T:
    """Shorthand for ``RetryPolicy(stage, max_retries, initial_delay).execute(operation)``."""
    policy = RetryPolicy(stage=stage, max_attempts=max_retries, initial_delay=initial_delay)
    return await policy.execute(operation)
