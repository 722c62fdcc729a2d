"""HTTP surface of the Wayfarer proxy."""

from __future__ import annotations


def main() -> None:
    """Run the API with uvicorn (console entry point ``wayfarer-api``)."""
    import uvicorn

    from wayfarer.config import API_HOST, API_PORT, LOG_LEVEL

    uvicorn.run("wayfarer.api.app:app", host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
