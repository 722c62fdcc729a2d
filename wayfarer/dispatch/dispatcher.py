"""
Action Dispatcher - the backend half of the Gemini proxy.

Receives ``{"action": ..., **params}`` from the browser, validates it, holds
the only copy of GEMINI_API_KEY, runs the action's handler and reduces any
failure to the shared error envelope.  Unknown actions and invalid params are
rejected with 400 before a client is built or anything is sent upstream.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from wayfarer.dispatch.actions import PARAMS_MODELS, Action
from wayfarer.dispatch.handlers import HANDLERS, HandlerContext
from wayfarer.errors import ClassifiedError, ConfigurationError, bad_request, classify_error
from wayfarer.infrastructure.retry import RetryPolicy
from wayfarer.infrastructure.settings import VIDEO_POLL_INTERVAL_SECONDS, get_api_key
from wayfarer.llm.gemini import UpstreamClient, get_gemini_client
from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

ClientFactory = Callable[[str], UpstreamClient]


@dataclass
class DispatchResult:
    """HTTP status plus JSON-serializable body."""

    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class ActionDispatcher:
    """Routes validated actions to their handlers against one upstream client per request."""

    client_factory: ClientFactory = get_gemini_client
    api_key_provider: Callable[[], str | None] = get_api_key
    retry_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy(stage="upstream"))
    poll_interval: float = VIDEO_POLL_INTERVAL_SECONDS
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def dispatch(self, body: Any) -> DispatchResult:
        """Run one action request and return its status and payload. Never raises."""
        if not isinstance(body, dict):
            return self._error(bad_request("Request body must be a JSON object"))

        params = dict(body)
        raw_action = params.pop("action", None)
        action = Action.parse(raw_action)
        if action is None:
            counter("dispatch.unknown_action")
            logger.warning("Rejected unknown action: %r", raw_action)
            return self._error(bad_request(f"Unknown action: {raw_action}"))

        try:
            validated = PARAMS_MODELS[action].model_validate(params)
        except ValidationError as e:
            fields = sorted({str(err["loc"][-1]) for err in e.errors() if err.get("loc")})
            logger.warning("Invalid params for %s: %s", action.value, fields)
            return self._error(
                bad_request(f"Invalid parameters for {action.value}: {', '.join(fields)}")
            )

        try:
            upstream = self._upstream()
            ctx = HandlerContext(
                upstream=upstream,
                retry=self.retry_policy,
                poll_interval=self.poll_interval,
                sleep_fn=self.sleep_fn,
            )
            with time_block(f"dispatch.{action.value}"):
                result = await HANDLERS[action](validated, ctx)
        except Exception as e:
            logger.error("API Error in %s: %s: %s", action.value, type(e).__name__, e)
            return self._error(classify_error(e), action)

        counter(f"dispatch.{action.value}.ok")
        return DispatchResult(status_code=200, payload=result)

    def _upstream(self) -> UpstreamClient:
        api_key = self.api_key_provider()
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured in server environment")
        return self.client_factory(api_key)

    def _error(self, error: ClassifiedError, action: Action | None = None) -> DispatchResult:
        counter(f"dispatch.error.{error.kind.value}")
        log_event(
            "dispatch.error",
            action=action.value if action else None,
            kind=error.kind.value,
            status=error.http_status,
        )
        return DispatchResult(status_code=error.http_status, payload=error.to_payload())
