"""
Typed results returned by the client gateway.

Model output is loosely shaped, so these models accept camelCase keys, keep
unknown fields, and default anything the model tends to omit.  A reply that
cannot satisfy even these relaxed shapes is a parse failure.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from wayfarer.errors import ClassifiedError


class ReplyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TripSegment(ReplyModel):
    id: str | int = ""
    type: str = "main"  # transit | security | main | transfer | arrival
    title: str = ""
    description: str = ""
    start_time: str = Field(default="", alias="startTime")
    duration: float = 0  # minutes
    location: str | None = None
    warning: str | None = None


class TravelOption(ReplyModel):
    id: str | int = ""
    transport_type: str = Field(default="", alias="transportType")
    total_cost: float = Field(default=0, alias="totalCost")
    total_duration: float = Field(default=0, alias="totalDuration")
    score: float | None = None
    compliance: bool | None = None
    segments: list[TripSegment] = Field(default_factory=list)


class LocalInfo(ReplyModel):
    weather: str = ""
    tips: str = ""
    emergency: str = ""


class TripPlanResponse(ReplyModel):
    options: list[TravelOption] = Field(default_factory=list)
    local_info: LocalInfo = Field(default_factory=LocalInfo, alias="localInfo")
    grounding_sources: list[dict[str, Any]] | None = Field(default=None, alias="groundingSources")


class SmartAlert(ReplyModel):
    id: int | str
    title: str
    desc: str = ""
    type: str = "warning"  # warning | event | price
    color: str = "amber"  # amber | rose | indigo


class ItineraryActivity(ReplyModel):
    time: str = ""
    location: str = ""
    description: str = ""
    travel_tip: str = Field(default="", alias="travelTip")
    map_url: str | None = Field(default=None, alias="mapUrl")


class ItineraryDay(ReplyModel):
    day: int
    activities: list[ItineraryActivity] = Field(default_factory=list)


class TextReply(ReplyModel):
    text: str = ""


class DailyInsight(ReplyModel):
    text: str = ""
    sources: list[dict[str, Any]] = Field(default_factory=list)


class DestinationVideo(ReplyModel):
    video_data: str = Field(..., alias="videoData")  # base64
    mime_type: str = Field(default="video/mp4", alias="mimeType")

    def content(self) -> bytes:
        """Decoded video bytes."""
        return base64.b64decode(self.video_data)


class LiveSession(ReplyModel):
    api_key: str = Field(..., alias="apiKey")


@dataclass
class DashboardSnapshot:
    """Home-page data; each half fails independently of the other."""

    insight: DailyInsight | None = None
    alerts: list[SmartAlert] | None = None
    errors: dict[str, ClassifiedError] = field(default_factory=dict)
