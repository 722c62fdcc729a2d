"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os

# Environment
ENV = os.getenv("WAYFARER_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("WAYFARER_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO"))

# Gemini / Veo models
PLAN_MODEL = os.getenv("WAYFARER_PLAN_MODEL", "gemini-2.5-flash")  # needs maps grounding
TEXT_MODEL = os.getenv("WAYFARER_TEXT_MODEL", "gemini-3-flash-preview")
VIDEO_MODEL = os.getenv("WAYFARER_VIDEO_MODEL", "veo-3.1-fast-generate-preview")

# Video generation
VIDEO_POLL_INTERVAL_SECONDS = float(os.getenv("WAYFARER_VIDEO_POLL_INTERVAL", "10"))
VIDEO_RESOLUTION = "720p"
VIDEO_ASPECT_RATIO = "16:9"
VIDEO_DEFAULT_MIME_TYPE = "video/mp4"
VIDEO_DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("WAYFARER_VIDEO_DOWNLOAD_TIMEOUT", "120"))


def get_api_key() -> str | None:
    """Read the upstream credential fresh so rotated keys apply without a restart."""
    return os.getenv("GEMINI_API_KEY") or None


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"
