"""FastAPI server for the Wayfarer travel assistant proxy"""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wayfarer.api.middleware.rate_limit import RateLimitMiddleware
from wayfarer.api.routes.gemini import router as gemini_router
from wayfarer.api.routes.health import router as health_router
from wayfarer.config import ALLOWED_ORIGINS, APP_VERSION, SERVICE_NAME
from wayfarer.infrastructure.settings import get_api_key, is_production
from wayfarer.observability.logging import configure_logging, get_logger
from wayfarer.observability.telemetry import log_event

# Load environment variables from .env file
load_dotenv()

configure_logging()

app = FastAPI(title=SERVICE_NAME, version=APP_VERSION)

logger = get_logger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.add_middleware(RateLimitMiddleware, trust_forwarded=is_production())

app.include_router(health_router)
app.include_router(gemini_router)

# Missing credential is reported, not fatal: /health and 400s keep working and
# every action answers with a configuration error until the key is set.
if not get_api_key():
    logger.warning("GEMINI_API_KEY is not set; Gemini actions will fail until it is configured")

log_event("api.startup", service="wayfarer", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "dispatch": "/api/gemini",
            "live": "/api/gemini/live",
        },
    }
