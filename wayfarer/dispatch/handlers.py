"""
One handler per Action.

Each handler builds the action's prompt, sets the capability flags it needs
(search / maps grounding, structured output schema, inline image), runs the
upstream call under the rate-limit RetryPolicy and shapes the reply into the
action's result.  Structured actions go through the tolerant JSON parser;
prose actions return the text verbatim.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from wayfarer.dispatch.actions import (
    Action,
    BudgetSplitParams,
    DestinationParams,
    LocalizedParams,
    LuggageParams,
    MeetingTimesParams,
    PackingListParams,
    TouristGuideParams,
    TranslateImageParams,
    TranslateTextParams,
    TravelPlansParams,
    TravelReportParams,
    VideoParams,
    VisaParams,
    target_language,
)
from wayfarer.infrastructure.retry import RetryPolicy
from wayfarer.infrastructure.settings import (
    PLAN_MODEL,
    TEXT_MODEL,
    VIDEO_MODEL,
    VIDEO_POLL_INTERVAL_SECONDS,
)
from wayfarer.llm import prompts
from wayfarer.llm.gemini import InlineImage, UpstreamClient, UpstreamReply
from wayfarer.llm.parser import ReplyParseError, parse_json_reply
from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import log_event

logger = get_logger(__name__)


class VideoGenerationError(RuntimeError):
    """Video job finished without a downloadable asset."""


@dataclass
class HandlerContext:
    """Per-request collaborators handed to every handler."""

    upstream: UpstreamClient
    retry: RetryPolicy
    poll_interval: float = VIDEO_POLL_INTERVAL_SECONDS
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def generate(self, model: str, prompt: str, **options: Any) -> UpstreamReply:
        return await self.retry.execute(lambda: self.upstream.generate(model, prompt, **options))


Handler = Callable[[Any, HandlerContext], Awaitable[Any]]


async def generate_travel_plans(params: TravelPlansParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.TRAVEL_PLANS_PROMPT.format(
        origin=params.from_,
        destination=params.to,
        date=params.date,
        transport=params.preferences.transport,
        budget=params.preferences.budget,
        language=target_language(params.lang, simplified=True),
    )
    location = None
    if params.user_location is not None:
        location = (params.user_location.latitude, params.user_location.longitude)

    reply = await ctx.generate(PLAN_MODEL, prompt, search=True, maps=True, location=location)

    data = parse_json_reply(reply.text, expected=dict)
    if reply.grounding_chunks:
        data["groundingSources"] = reply.grounding_chunks
    return data


async def get_visa_requirements(params: VisaParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.VISA_PROMPT.format(
        origin=params.origin,
        destination=params.destination,
        language=target_language(params.lang),
    )
    reply = await ctx.generate(TEXT_MODEL, prompt, search=True)
    return {"text": reply.text}


async def get_smart_alerts(params: DestinationParams, ctx: HandlerContext) -> list[Any]:
    prompt = prompts.SMART_ALERTS_PROMPT.format(
        destination=params.destination,
        language=target_language(params.lang),
    )
    reply = await ctx.generate(TEXT_MODEL, prompt, search=True)
    return parse_json_reply(reply.text, expected=list)


async def generate_tourist_guide(params: TouristGuideParams, ctx: HandlerContext) -> list[Any]:
    prompt = prompts.TOURIST_GUIDE_PROMPT.format(
        days=params.days,
        style="niche" if params.is_niche else "classic",
        destination=params.destination,
        language=target_language(params.lang),
        interests=params.preferences,
    )
    reply = await ctx.generate(PLAN_MODEL, prompt, maps=True)
    return parse_json_reply(reply.text, expected=list)


async def get_luggage_advisor(params: LuggageParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.LUGGAGE_PROMPT.format(
        airline=params.airline, language=target_language(params.lang)
    )
    reply = await ctx.generate(TEXT_MODEL, prompt, search=True)
    return {"text": reply.text}


async def analyze_budget_split(params: BudgetSplitParams, ctx: HandlerContext) -> dict[str, Any]:
    expenses = [expense.model_dump(by_alias=True, exclude_none=True) for expense in params.expenses]
    prompt = prompts.BUDGET_SPLIT_PROMPT.format(
        language=target_language(params.lang), expenses=prompts.to_json(expenses)
    )
    reply = await ctx.generate(TEXT_MODEL, prompt)
    return {"text": reply.text}


async def generate_travel_report_summary(
    params: TravelReportParams, ctx: HandlerContext
) -> dict[str, Any]:
    prompt = prompts.REPORT_SUMMARY_PROMPT.format(
        language=target_language(params.lang), details=prompts.to_json(params.trip_details)
    )
    reply = await ctx.generate(TEXT_MODEL, prompt)
    return {"text": reply.text}


async def suggest_meeting_times(params: MeetingTimesParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.MEETING_TIMES_PROMPT.format(
        arrival=params.arrival_info,
        meetings=params.meetings,
        language=target_language(params.lang),
    )
    reply = await ctx.generate(TEXT_MODEL, prompt)
    return {"text": reply.text}


async def generate_packing_list(params: PackingListParams, ctx: HandlerContext) -> list[str]:
    prompt = prompts.PACKING_LIST_PROMPT.format(
        days=params.days,
        destination=params.destination,
        purpose=params.purpose,
        language=target_language(params.lang),
    )
    reply = await ctx.generate(TEXT_MODEL, prompt, response_schema=prompts.PACKING_LIST_SCHEMA)

    items = parse_json_reply(reply.text, expected=list)
    if not all(isinstance(item, str) for item in items):
        raise ReplyParseError("Packing list must be a JSON array of strings")
    return items


async def get_daily_travel_insight(params: LocalizedParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.DAILY_INSIGHT_PROMPT.format(language=target_language(params.lang))
    reply = await ctx.generate(TEXT_MODEL, prompt, search=True)
    return {"text": reply.text, "sources": reply.grounding_chunks}


async def generate_destination_video(params: VideoParams, ctx: HandlerContext) -> dict[str, Any]:
    """
    Submit a Veo job and poll it to completion.

    Polls every ``ctx.poll_interval`` seconds with no deadline or cancellation;
    the job runs until it reports done.  The finished asset is downloaded with
    an authenticated request and returned base64-encoded.
    """
    prompt = prompts.VIDEO_PROMPT.format(destination=params.destination)
    job = await ctx.retry.execute(lambda: ctx.upstream.start_video(VIDEO_MODEL, prompt))
    log_event("video.submitted", destination=params.destination)

    polls = 0
    while not job.done:
        await ctx.sleep_fn(ctx.poll_interval)
        job = await ctx.upstream.poll_video(job)
        polls += 1

    if job.error or not job.asset_uri:
        logger.error("Video generation finished without an asset: %s", job.error)
        raise VideoGenerationError("Video generation failed")

    log_event("video.completed", destination=params.destination, polls=polls)
    data, mime_type = await ctx.upstream.download(job.asset_uri)
    return {"videoData": base64.b64encode(data).decode("ascii"), "mimeType": mime_type}


async def translate_text(params: TranslateTextParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.TRANSLATE_TEXT_PROMPT.format(language=params.target_lang, text=params.text)
    reply = await ctx.generate(TEXT_MODEL, prompt)
    return {"text": reply.text}


async def translate_image(params: TranslateImageParams, ctx: HandlerContext) -> dict[str, Any]:
    prompt = prompts.TRANSLATE_IMAGE_PROMPT.format(language=target_language(params.lang))
    image = InlineImage(base64_data=params.base64_data, mime_type=params.mime_type)
    reply = await ctx.generate(TEXT_MODEL, prompt, image=image)
    return {"text": reply.text}


HANDLERS: dict[Action, Handler] = {
    Action.GENERATE_TRAVEL_PLANS: generate_travel_plans,
    Action.GET_VISA_REQUIREMENTS: get_visa_requirements,
    Action.GET_SMART_ALERTS: get_smart_alerts,
    Action.GENERATE_TOURIST_GUIDE: generate_tourist_guide,
    Action.GET_LUGGAGE_ADVISOR: get_luggage_advisor,
    Action.ANALYZE_BUDGET_SPLIT: analyze_budget_split,
    Action.GENERATE_TRAVEL_REPORT_SUMMARY: generate_travel_report_summary,
    Action.SUGGEST_MEETING_TIMES: suggest_meeting_times,
    Action.GENERATE_PACKING_LIST: generate_packing_list,
    Action.GET_DAILY_TRAVEL_INSIGHT: get_daily_travel_insight,
    Action.GENERATE_DESTINATION_VIDEO: generate_destination_video,
    Action.TRANSLATE_TEXT: translate_text,
    Action.TRANSLATE_IMAGE: translate_image,
}

_missing = set(Action) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No handler registered for actions: {sorted(a.value for a in _missing)}")
