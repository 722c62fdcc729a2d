"""Health check endpoint for the Wayfarer API.

Liveness probe only: reports credential presence without calling Gemini.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from wayfarer.config import APP_VERSION, SERVICE_NAME
from wayfarer.infrastructure.settings import ENV, get_api_key

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "environment": ENV,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {"ready": bool(get_api_key())},
    }
