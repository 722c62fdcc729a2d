"""
Gemini / Veo upstream client.

Thin async wrapper over the google-genai SDK so the dispatcher deals in plain
values (UpstreamReply, VideoJob) and tests can swap in a fake with the same
coroutine methods.  The API key lives only here and in settings; it is never
logged or returned to callers.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import types

from wayfarer.errors import ConfigurationError
from wayfarer.infrastructure.settings import (
    VIDEO_ASPECT_RATIO,
    VIDEO_DEFAULT_MIME_TYPE,
    VIDEO_DOWNLOAD_TIMEOUT_SECONDS,
    VIDEO_RESOLUTION,
)
from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import counter, time_block

logger = get_logger(__name__)


@dataclass
class UpstreamReply:
    """Text of a generate_content reply plus any grounding chunks (as dicts)."""

    text: str
    grounding_chunks: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class VideoJob:
    """State of a long-running video generation operation."""

    done: bool
    asset_uri: str | None = None
    error: str | None = None
    operation: Any = None


@dataclass
class InlineImage:
    """Image sent alongside a text prompt (base64 as received from the browser)."""

    base64_data: str
    mime_type: str


class UpstreamClient(Protocol):
    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        search: bool = False,
        maps: bool = False,
        location: tuple[float, float] | None = None,
        response_schema: dict[str, Any] | None = None,
        image: InlineImage | None = None,
    ) -> UpstreamReply: ...

    async def start_video(self, model: str, prompt: str) -> VideoJob: ...

    async def poll_video(self, job: VideoJob) -> VideoJob: ...

    async def download(self, uri: str) -> tuple[bytes, str]: ...


def _grounding_chunks(response: Any) -> list[dict[str, Any]]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    return [chunk.model_dump(mode="json", exclude_none=True) for chunk in chunks]


def _video_job(operation: Any) -> VideoJob:
    uri = None
    response = getattr(operation, "response", None)
    videos = getattr(response, "generated_videos", None) or []
    if videos and videos[0].video is not None:
        uri = videos[0].video.uri

    error = getattr(operation, "error", None)
    return VideoJob(
        done=bool(operation.done),
        asset_uri=uri,
        error=str(error) if error else None,
        operation=operation,
    )


class GeminiClient:
    """google-genai backed UpstreamClient."""

    def __init__(self, api_key: str, http_client: httpx.AsyncClient | None = None) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured in server environment")
        self._api_key = api_key
        self._client = genai.Client(api_key=api_key)
        self._http_client = http_client

    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        search: bool = False,
        maps: bool = False,
        location: tuple[float, float] | None = None,
        response_schema: dict[str, Any] | None = None,
        image: InlineImage | None = None,
    ) -> UpstreamReply:
        tools: list[types.Tool] = []
        if search:
            tools.append(types.Tool(google_search=types.GoogleSearch()))
        if maps:
            tools.append(types.Tool(google_maps=types.GoogleMaps()))

        config_kwargs: dict[str, Any] = {}
        if tools:
            config_kwargs["tools"] = tools
        if location is not None:
            latitude, longitude = location
            config_kwargs["tool_config"] = types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(latitude=latitude, longitude=longitude)
                )
            )
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = response_schema

        contents: Any = prompt
        if image is not None:
            contents = [
                types.Part.from_bytes(
                    data=base64.b64decode(image.base64_data),
                    mime_type=image.mime_type,
                ),
                prompt,
            ]

        counter("upstream.generate")
        with time_block("upstream.generate"):
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(**config_kwargs) if config_kwargs else None,
            )

        return UpstreamReply(text=response.text or "", grounding_chunks=_grounding_chunks(response))

    async def start_video(self, model: str, prompt: str) -> VideoJob:
        counter("upstream.video.start")
        operation = await self._client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=VIDEO_RESOLUTION,
                aspect_ratio=VIDEO_ASPECT_RATIO,
            ),
        )
        return _video_job(operation)

    async def poll_video(self, job: VideoJob) -> VideoJob:
        counter("upstream.video.poll")
        operation = await self._client.aio.operations.get(job.operation)
        return _video_job(operation)

    async def download(self, uri: str) -> tuple[bytes, str]:
        """Fetch a generated asset; the file API requires the key on the follow-up request."""
        headers = {"x-goog-api-key": self._api_key}
        if self._http_client is not None:
            response = await self._http_client.get(uri, headers=headers, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=VIDEO_DOWNLOAD_TIMEOUT_SECONDS) as client:
                response = await client.get(uri, headers=headers, follow_redirects=True)
        response.raise_for_status()

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        return response.content, mime_type or VIDEO_DEFAULT_MIME_TYPE


@lru_cache(maxsize=4)
def get_gemini_client(api_key: str) -> GeminiClient:
    """
    Shared client per API key.

    Keyed on the key itself so a rotated GEMINI_API_KEY yields a fresh client
    without a restart.
    """
    logger.info("Initialized Gemini client (google-genai)")
    return GeminiClient(api_key)


def clear_client_cache() -> None:
    """Drop cached clients (tests, key rotation)."""
    get_gemini_client.cache_clear()
