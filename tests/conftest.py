"""
Pytest configuration for Wayfarer tests

Provides fixtures shared across all test files: telemetry reset, a recording
sleep for retry/poll timing, and a scripted fake of the Gemini upstream.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from wayfarer.llm.gemini import InlineImage, UpstreamReply, VideoJob
from wayfarer.observability import telemetry


@pytest.fixture(autouse=True)
def _reset_telemetry():
    """Counters are process-global; start every test from zero."""
    telemetry.reset()
    yield
    telemetry.reset()


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class FakeUpstream:
    """
    Scripted UpstreamClient.

    ``replies`` is consumed in order by generate(); an Exception item is raised
    instead of returned.  Every call is recorded for assertions.
    """

    def __init__(
        self,
        replies: list[UpstreamReply | Exception] | None = None,
        video_jobs: list[VideoJob | Exception] | None = None,
        asset: tuple[bytes, str] = (b"\x00\x01video", "video/mp4"),
    ) -> None:
        self.replies = list(replies or [])
        self.video_jobs = list(video_jobs or [])
        self.asset = asset
        self.generate_calls: list[dict[str, Any]] = []
        self.start_calls: list[tuple[str, str]] = []
        self.poll_calls = 0
        self.downloaded: list[str] = []

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

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
        self.generate_calls.append(
            {
                "model": model,
                "prompt": prompt,
                "search": search,
                "maps": maps,
                "location": location,
                "response_schema": response_schema,
                "image": image,
            }
        )
        return self._next(self.replies)

    async def start_video(self, model: str, prompt: str) -> VideoJob:
        self.start_calls.append((model, prompt))
        return self._next(self.video_jobs)

    async def poll_video(self, job: VideoJob) -> VideoJob:
        self.poll_calls += 1
        return self._next(self.video_jobs)

    async def download(self, uri: str) -> tuple[bytes, str]:
        self.downloaded.append(uri)
        return self.asset


@pytest.fixture
def fake_upstream_factory() -> Callable[..., FakeUpstream]:
    return FakeUpstream
