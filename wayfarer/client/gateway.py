"""
Client Gateway - typed async access to the Wayfarer proxy.

One coroutine per dispatcher action with explicit parameters.  Every call is a
single POST to ``/api/gemini``, retried only when the proxy's own limiter
throttles it.  Error envelopes come back as ClassifiedError and network
failures (no response) as kind ``other``.  Daily insight and destination alerts are served from the
session ResultCache while fresh; nothing else is cached.

Usage:
    async with TravelGateway("http://localhost:8000") as gateway:
        alerts = await gateway.get_smart_alerts("Tokyo", "en")
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from wayfarer.client.models import (
    DailyInsight,
    DashboardSnapshot,
    DestinationVideo,
    ItineraryDay,
    LiveSession,
    SmartAlert,
    TextReply,
    TripPlanResponse,
)
from wayfarer.config import (
    ALERTS_CACHE_TTL_SECONDS,
    GATEWAY_BASE_URL,
    GATEWAY_CACHE_BACKEND,
    GATEWAY_TIMEOUT_SECONDS,
    INSIGHT_CACHE_TTL_SECONDS,
)
from wayfarer.dispatch.actions import Action, Expense, TravelPreferences, UserLocation
from wayfarer.errors import ClassifiedError, ErrorKind, classify_error, is_proxy_throttled
from wayfarer.infrastructure.cache import MemoryStorage, ResultCache, SessionFileStorage
from wayfarer.infrastructure.retry import RetryPolicy
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DISPATCH_PATH = "/api/gemini"
LIVE_PATH = "/api/gemini/live"

_ALERTS = TypeAdapter(list[SmartAlert])
_GUIDE = TypeAdapter(list[ItineraryDay])
_PACKING = TypeAdapter(list[str])

_USER_MESSAGES: dict[str, dict[ErrorKind, str]] = {
    "en": {
        ErrorKind.RATE_LIMITED: "Service is busy (quota exceeded). Please wait a moment and try again.",
        ErrorKind.CREDENTIAL_INVALID: "Your API key is missing or invalid. Please select a key and try again.",
        ErrorKind.PARSE_FAILURE: "This service is currently unavailable. Please try again later.",
        ErrorKind.OTHER: "This service is currently unavailable. Please try again later.",
    },
    "cn": {
        ErrorKind.RATE_LIMITED: "服务繁忙（配额已用尽），请稍候再试。",
        ErrorKind.CREDENTIAL_INVALID: "API 密钥缺失或无效，请重新选择密钥后再试。",
        ErrorKind.PARSE_FAILURE: "服务暂时不可用，请稍后再试。",
        ErrorKind.OTHER: "服务暂时不可用，请稍后再试。",
    },
}


def user_message(error: BaseException, lang: str = "en") -> str:
    """Message the UI shows for a failure, chosen by its classified kind."""
    kind = classify_error(error).kind
    return _USER_MESSAGES.get(lang, _USER_MESSAGES["en"])[kind]


def gateway_retry_policy(**overrides: Any) -> RetryPolicy:
    """
    RetryPolicy that only backs off from the proxy's own limiter.

    The dispatcher already retries Gemini 429s, so an exhausted upstream 429 is
    surfaced at once; retrying it here would multiply upstream calls.
    """
    overrides.setdefault("retry_on", is_proxy_throttled)
    return RetryPolicy(stage="gateway", **overrides)


def session_cache(backend: str = GATEWAY_CACHE_BACKEND) -> ResultCache:
    """Fresh cache for one gateway session, in memory or in a private temp file."""
    if backend == "memory":
        return ResultCache(MemoryStorage(), name="gateway")
    if backend == "file":
        return ResultCache(SessionFileStorage(), name="gateway")
    raise ValueError(f"Unknown cache backend: {backend!r}")


def _validated(adapter: Callable[[Any], T], payload: Any, label: str) -> T:
    try:
        return adapter(payload)
    except ValidationError as e:
        logger.warning("Unexpected %s result shape: %s", label, e.error_count())
        raise ClassifiedError(
            ErrorKind.PARSE_FAILURE,
            f"Unexpected response shape for {label}",
            status="PARSE_FAILURE",
        ) from e


class TravelGateway:
    """
    Typed front door to the proxy for UI code.

    One gateway is one session: an owned cache starts empty and is dropped by
    aclose(), whichever backend holds it.
    """

    def __init__(
        self,
        base_url: str = GATEWAY_BASE_URL,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: ResultCache | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        cache_backend: str = GATEWAY_CACHE_BACKEND,
    ) -> None:
        """
        Args:
            base_url: Proxy origin, e.g. ``http://localhost:8000``.
            http_client: Pre-built client (tests pass one with a MockTransport);
                its base_url is used as-is.
            cache: Shared cache; a private session cache is created if omitted.
            retry_policy: Backoff policy; defaults to gateway_retry_policy().
            timeout: Request timeout; video generation needs minutes.
            cache_backend: Backend for the private cache, "memory" or "file".
        """
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else session_cache(cache_backend)
        self.retry_policy = retry_policy or gateway_retry_policy()

    async def __aenter__(self) -> TravelGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """End the session: close the HTTP client and drop the session cache if owned."""
        if self._owns_client:
            await self._client.aclose()
        if self._owns_cache:
            self.cache.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post_once(self, path: str, body: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(path, json=body)
        except httpx.RequestError as e:
            raise ClassifiedError(ErrorKind.OTHER, f"Network error: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            raise ClassifiedError.from_payload(payload, response.status_code)
        if payload is None:
            raise ClassifiedError(
                ErrorKind.PARSE_FAILURE, "Proxy returned a non-JSON response", status="PARSE_FAILURE"
            )
        return payload

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        return await self.retry_policy.execute(lambda: self._post_once(path, body))

    async def _call(self, action: Action, **params: Any) -> Any:
        return await self._post(DISPATCH_PATH, {"action": action.value, **params})

    async def _cached(
        self,
        key: str,
        ttl_seconds: float,
        fetch: Callable[[], Awaitable[Any]],
        parse: Callable[[Any], T],
    ) -> T:
        """Serve raw payloads from cache while fresh; populate after a successful parse."""
        cached = self.cache.get(key)
        if cached is not None:
            return parse(cached)

        payload = await fetch()
        result = parse(payload)
        self.cache.set(key, payload, ttl_seconds)
        return result

    async def _text(self, action: Action, **params: Any) -> str:
        payload = await self._call(action, **params)
        return _validated(TextReply.model_validate, payload, action.value).text

    # ------------------------------------------------------------------
    # Planner & guide
    # ------------------------------------------------------------------

    async def generate_travel_plans(
        self,
        from_: str,
        to: str,
        date: str,
        preferences: TravelPreferences,
        lang: str = "en",
        user_location: UserLocation | None = None,
    ) -> TripPlanResponse:
        params: dict[str, Any] = {
            "from": from_,
            "to": to,
            "date": date,
            "preferences": preferences.model_dump(by_alias=True, exclude_none=True),
            "lang": lang,
        }
        if user_location is not None:
            params["userLocation"] = user_location.model_dump()

        payload = await self._call(Action.GENERATE_TRAVEL_PLANS, **params)
        return _validated(
            TripPlanResponse.model_validate, payload, Action.GENERATE_TRAVEL_PLANS.value
        )

    async def generate_tourist_guide(
        self,
        destination: str,
        days: int,
        preferences: str,
        is_niche: bool,
        lang: str = "en",
    ) -> list[ItineraryDay]:
        payload = await self._call(
            Action.GENERATE_TOURIST_GUIDE,
            destination=destination,
            days=days,
            preferences=preferences,
            isNiche=is_niche,
            lang=lang,
        )
        return _validated(_GUIDE.validate_python, payload, Action.GENERATE_TOURIST_GUIDE.value)

    async def generate_destination_video(self, destination: str) -> DestinationVideo:
        payload = await self._call(Action.GENERATE_DESTINATION_VIDEO, destination=destination)
        return _validated(
            DestinationVideo.model_validate, payload, Action.GENERATE_DESTINATION_VIDEO.value
        )

    # ------------------------------------------------------------------
    # Toolkit
    # ------------------------------------------------------------------

    async def get_visa_requirements(self, origin: str, destination: str, lang: str = "en") -> str:
        return await self._text(
            Action.GET_VISA_REQUIREMENTS, origin=origin, destination=destination, lang=lang
        )

    async def get_luggage_advisor(self, airline: str, lang: str = "en") -> str:
        return await self._text(Action.GET_LUGGAGE_ADVISOR, airline=airline, lang=lang)

    async def generate_packing_list(
        self, destination: str, purpose: str, days: int, lang: str = "en"
    ) -> list[str]:
        payload = await self._call(
            Action.GENERATE_PACKING_LIST,
            destination=destination,
            purpose=purpose,
            days=days,
            lang=lang,
        )
        return _validated(_PACKING.validate_python, payload, Action.GENERATE_PACKING_LIST.value)

    async def translate_text(self, text: str, target_lang: str) -> str:
        return await self._text(Action.TRANSLATE_TEXT, text=text, targetLang=target_lang)

    async def translate_image(self, base64_data: str, mime_type: str, lang: str = "en") -> str:
        return await self._text(
            Action.TRANSLATE_IMAGE, base64Data=base64_data, mimeType=mime_type, lang=lang
        )

    # ------------------------------------------------------------------
    # Business & collaboration
    # ------------------------------------------------------------------

    async def analyze_budget_split(self, expenses: list[Expense], lang: str = "en") -> str:
        return await self._text(
            Action.ANALYZE_BUDGET_SPLIT,
            expenses=[e.model_dump(by_alias=True, exclude_none=True) for e in expenses],
            lang=lang,
        )

    async def generate_travel_report_summary(
        self, trip_details: dict[str, Any], lang: str = "en"
    ) -> str:
        return await self._text(
            Action.GENERATE_TRAVEL_REPORT_SUMMARY, tripDetails=trip_details, lang=lang
        )

    async def suggest_meeting_times(self, arrival_info: str, meetings: str, lang: str = "en") -> str:
        return await self._text(
            Action.SUGGEST_MEETING_TIMES, arrivalInfo=arrival_info, meetings=meetings, lang=lang
        )

    # ------------------------------------------------------------------
    # Dashboard (cached)
    # ------------------------------------------------------------------

    async def get_smart_alerts(self, destination: str, lang: str = "en") -> list[SmartAlert]:
        return await self._cached(
            f"alerts:{destination}:{lang}",
            ALERTS_CACHE_TTL_SECONDS,
            lambda: self._call(Action.GET_SMART_ALERTS, destination=destination, lang=lang),
            lambda payload: _validated(
                _ALERTS.validate_python, payload, Action.GET_SMART_ALERTS.value
            ),
        )

    async def get_daily_travel_insight(self, lang: str = "en") -> DailyInsight:
        return await self._cached(
            f"insight:{lang}",
            INSIGHT_CACHE_TTL_SECONDS,
            lambda: self._call(Action.GET_DAILY_TRAVEL_INSIGHT, lang=lang),
            lambda payload: _validated(
                DailyInsight.model_validate, payload, Action.GET_DAILY_TRAVEL_INSIGHT.value
            ),
        )

    async def load_dashboard(self, destination: str, lang: str = "en") -> DashboardSnapshot:
        """
        Fetch insight and alerts concurrently.

        Each request settles on its own: a failure in one is recorded under its
        name in ``errors`` and never cancels the other.
        """
        insight, alerts = await asyncio.gather(
            self.get_daily_travel_insight(lang),
            self.get_smart_alerts(destination, lang),
            return_exceptions=True,
        )

        snapshot = DashboardSnapshot()
        if isinstance(insight, BaseException):
            snapshot.errors["insight"] = classify_error(insight)
            logger.warning("Dashboard insight failed: %s", insight)
        else:
            snapshot.insight = insight
        if isinstance(alerts, BaseException):
            snapshot.errors["alerts"] = classify_error(alerts)
            logger.warning("Dashboard alerts failed: %s", alerts)
        else:
            snapshot.alerts = alerts
        return snapshot

    # ------------------------------------------------------------------
    # Live assistant
    # ------------------------------------------------------------------

    async def get_live_session_key(self, lang: str = "en") -> str:
        """Credential for the browser's live-voice session."""
        payload = await self._post(LIVE_PATH, {"lang": lang})
        return _validated(LiveSession.model_validate, payload, "live session").api_key
