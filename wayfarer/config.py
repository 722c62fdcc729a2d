"""Centralized configuration for the Wayfarer backend.

Re-exports everything from wayfarer.infrastructure.settings, then adds typed
constants for retry, caching, rate limiting and the HTTP surface.  Environment
overrides use safe defaults so the app starts with only GEMINI_API_KEY set.
"""

from __future__ import annotations

import os

from wayfarer.infrastructure.settings import *  # noqa: F401, F403
from wayfarer.infrastructure.settings import ENV

# --- App ---
APP_VERSION: str = "0.1.0"
SERVICE_NAME: str = "Wayfarer Travel Assistant API"

# --- Retry (rate-limit backoff) ---
RETRY_MAX_ATTEMPTS: int = int(os.getenv("WAYFARER_MAX_RETRIES", "4"))
RETRY_INITIAL_DELAY_SECONDS: float = float(os.getenv("WAYFARER_RETRY_INITIAL_DELAY", "2.0"))
RETRY_MAX_JITTER_SECONDS: float = float(os.getenv("WAYFARER_RETRY_MAX_JITTER", "1.0"))

# --- Result cache ---
ALERTS_CACHE_TTL_SECONDS: float = 30 * 60
INSIGHT_CACHE_TTL_SECONDS: float = 60 * 60
# Client session cache backend: "memory" or "file" (private temp dir per session)
GATEWAY_CACHE_BACKEND: str = os.getenv("WAYFARER_CACHE_BACKEND", "memory")

# --- Rate Limiting ---
RATE_LIMIT_RPM: int = int(os.getenv("WAYFARER_RATE_LIMIT_RPM", "60"))
RATE_LIMIT_RPH: int = int(os.getenv("WAYFARER_RATE_LIMIT_RPH", "1000"))
RATE_LIMIT_MAX_IPS: int = 10000

# --- Client gateway ---
GATEWAY_BASE_URL: str = os.getenv("WAYFARER_API_URL", "http://localhost:8000")
GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("WAYFARER_GATEWAY_TIMEOUT", "300"))

# --- CORS ---
ALLOWED_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")
    if origin.strip()
]

if ENV == "development":
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )
