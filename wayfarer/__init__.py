"""Wayfarer - AI travel assistant backed by a Gemini proxy"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports so importing a lightweight module does not pull in google-genai or httpx
def __getattr__(name: str):
    if name in ("Action", "ActionDispatcher", "DispatchResult"):
        from wayfarer import dispatch

        return getattr(dispatch, name)

    if name == "TravelGateway":
        from wayfarer.client.gateway import TravelGateway

        return TravelGateway

    if name in ("ClassifiedError", "ErrorKind"):
        from wayfarer import errors

        return getattr(errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Action",
    "ActionDispatcher",
    "ClassifiedError",
    "DispatchResult",
    "ErrorKind",
    "TravelGateway",
    "__version__",
]
