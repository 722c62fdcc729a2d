"""Per-client rate limiting for the Wayfarer proxy.

Every proxied request spends shared Gemini quota, so each client IP gets a
sliding per-minute and per-hour budget.  Rejections use the same error
envelope as the dispatcher (kind ``rate_limited``), which the client gateway
already knows how to back off from.
"""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from wayfarer.config import RATE_LIMIT_MAX_IPS, RATE_LIMIT_RPH, RATE_LIMIT_RPM
from wayfarer.errors import ClassifiedError, ErrorKind
from wayfarer.observability.telemetry import counter, log_event

EXEMPT_PATHS = frozenset({"/", "/health"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limiter keyed by client IP.

    Buckets live in cachetools TTLCaches so idle IPs are evicted and memory
    stays bounded.  Single-instance only; multiple replicas each keep their own
    budget.
    """

    def __init__(
        self,
        app: Any,
        requests_per_minute: int = RATE_LIMIT_RPM,
        requests_per_hour: int = RATE_LIMIT_RPH,
        max_clients: int = RATE_LIMIT_MAX_IPS,
        trust_forwarded: bool = False,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.trust_forwarded = trust_forwarded

        self.minute_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_clients, ttl=120)
        self.hour_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_clients, ttl=7200)

    def _client_ip(self, request: Request) -> str:
        """Socket IP, or the first X-Forwarded-For hop when behind a trusted proxy."""
        if self.trust_forwarded:
            forwarded = request.headers.get("X-Forwarded-For", "")
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _recent(bucket: list[float], window_seconds: int, now: float) -> list[float]:
        return [ts for ts in bucket if now - ts < window_seconds]

    def _reject(self, client_ip: str, window: str, limit: int, retry_after: int) -> JSONResponse:
        counter("api.rate_limit.rejected")
        log_event("api.rate_limit.exceeded", ip=client_ip, window=window, limit=limit)
        error = ClassifiedError(
            ErrorKind.RATE_LIMITED,
            f"Rate limit exceeded. Maximum {limit} requests per {window}.",
            code=429,
            status="RESOURCE_EXHAUSTED",
            retry_after=retry_after,
        )
        return JSONResponse(
            status_code=error.http_status,
            content=error.to_payload(),
            headers={"Retry-After": str(retry_after)},
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check both windows, record the request, then pass it on."""
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = self._client_ip(request)
        now = time.time()

        minute_bucket = self._recent(self.minute_buckets.get(client_ip, []), 60, now)
        hour_bucket = self._recent(self.hour_buckets.get(client_ip, []), 3600, now)

        if len(minute_bucket) >= self.requests_per_minute:
            self.minute_buckets[client_ip] = minute_bucket
            return self._reject(client_ip, "minute", self.requests_per_minute, 60)
        if len(hour_bucket) >= self.requests_per_hour:
            self.hour_buckets[client_ip] = hour_bucket
            return self._reject(client_ip, "hour", self.requests_per_hour, 3600)

        minute_bucket.append(now)
        hour_bucket.append(now)
        self.minute_buckets[client_ip] = minute_bucket
        self.hour_buckets[client_ip] = hour_bucket

        response = await call_next(request)

        response.headers["X-RateLimit-Limit-Minute"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining-Minute"] = str(
            self.requests_per_minute - len(minute_bucket)
        )
        response.headers["X-RateLimit-Limit-Hour"] = str(self.requests_per_hour)
        response.headers["X-RateLimit-Remaining-Hour"] = str(
            self.requests_per_hour - len(hour_bucket)
        )
        return response
