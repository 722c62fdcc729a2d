"""
Gemini proxy endpoints.

``POST /api/gemini`` runs one dispatcher action; ``POST /api/gemini/live``
hands the live-voice assistant its session credential.  The live audio stream
itself is opened by the browser directly against Gemini, so the key has to
leave the server for that one flow.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from wayfarer.dispatch import ActionDispatcher
from wayfarer.errors import bad_request
from wayfarer.infrastructure.settings import get_api_key
from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import log_event

router = APIRouter(prefix="/api/gemini", tags=["gemini"])
logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_dispatcher() -> ActionDispatcher:
    """Process-wide dispatcher (overridable in tests via dependency_overrides)."""
    return ActionDispatcher()


def get_api_key_provider() -> Callable[[], str | None]:
    return get_api_key


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    return json.loads(raw)


@router.post("")
async def dispatch_action(
    request: Request,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Run the action named in the body and relay its status and payload."""
    try:
        body = await _json_body(request)
    except (json.JSONDecodeError, UnicodeDecodeError):
        error = bad_request("Request body must be valid JSON")
        return JSONResponse(status_code=error.http_status, content=error.to_payload())

    result = await dispatcher.dispatch(body)
    return JSONResponse(status_code=result.status_code, content=result.payload)


@router.post("/live")
async def live_session(
    request: Request,
    api_key_provider: Callable[[], str | None] = Depends(get_api_key_provider),
) -> JSONResponse:
    """Issue the live-assistant credential, or 500 when the server has none configured."""
    try:
        body = await _json_body(request)
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    lang = body.get("lang", "en") if isinstance(body, dict) else "en"

    api_key = api_key_provider()
    if not api_key:
        logger.error("Live Assistant requested but GEMINI_API_KEY is not configured")
        return JSONResponse(status_code=500, content={"error": "GEMINI_API_KEY is not configured"})

    log_event("live.session_issued", lang=lang)
    return JSONResponse(status_code=200, content={"apiKey": api_key})
