"""
Process-wide logging setup for the proxy and the client gateway.

configure_logging() installs one stream handler on the root logger and is safe
to call repeatedly; the handler is found again by name, so re-configuring only
changes the level.  HTTP client and SDK loggers are held at WARNING because
they log every request line at INFO, which drowns the dispatcher's own output.
"""

from __future__ import annotations

import logging
from typing import Final

from wayfarer.infrastructure.settings import LOG_LEVEL

HANDLER_NAME: Final[str] = "wayfarer"
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "google_genai", "urllib3")


def _level_from(value: str | int | None) -> int:
    if isinstance(value, int):
        return value
    name = (value or LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _installed_handler(root: logging.Logger) -> logging.Handler | None:
    for handler in root.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach the Wayfarer handler to the root logger (once) and set its level.

    Args:
        level: Level name or number; defaults to WAYFARER_LOG_LEVEL / LOG_LEVEL.
            Unknown names fall back to INFO.

    Returns:
        The root logger.
    """
    root = logging.getLogger()
    if _installed_handler(root) is None:
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)

    root.setLevel(_level_from(level))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures the root handler on first use."""
    if _installed_handler(logging.getLogger()) is None:
        configure_logging()
    return logging.getLogger(name)
