"""Backend action dispatch: validation, routing and error envelopes."""

from __future__ import annotations

from wayfarer.dispatch.actions import Action
from wayfarer.dispatch.dispatcher import ActionDispatcher, DispatchResult

__all__ = ["Action", "ActionDispatcher", "DispatchResult"]
