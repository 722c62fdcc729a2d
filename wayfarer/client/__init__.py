"""Client-side gateway to the Wayfarer proxy."""

from __future__ import annotations

from wayfarer.client.gateway import (
    TravelGateway,
    gateway_retry_policy,
    session_cache,
    user_message,
)
from wayfarer.client.models import DashboardSnapshot

__all__ = [
    "DashboardSnapshot",
    "TravelGateway",
    "gateway_retry_policy",
    "session_cache",
    "user_message",
]
