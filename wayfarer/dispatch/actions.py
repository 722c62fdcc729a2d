"""
Supported dispatcher actions and their request parameters.

The browser posts ``{"action": <name>, ...params}`` with camelCase keys; each
action has a pydantic model that validates those params before anything is
sent upstream.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    """Closed set of operations the proxy knows how to run."""

    GENERATE_TRAVEL_PLANS = "generateTravelPlans"
    GET_VISA_REQUIREMENTS = "getVisaRequirements"
    GET_SMART_ALERTS = "getSmartAlerts"
    GENERATE_TOURIST_GUIDE = "generateTouristGuide"
    GET_LUGGAGE_ADVISOR = "getLuggageAdvisor"
    ANALYZE_BUDGET_SPLIT = "analyzeBudgetSplit"
    GENERATE_TRAVEL_REPORT_SUMMARY = "generateTravelReportSummary"
    SUGGEST_MEETING_TIMES = "suggestMeetingTimes"
    GENERATE_PACKING_LIST = "generatePackingList"
    GET_DAILY_TRAVEL_INSIGHT = "getDailyTravelInsight"
    GENERATE_DESTINATION_VIDEO = "generateDestinationVideo"
    TRANSLATE_TEXT = "translateText"
    TRANSLATE_IMAGE = "translateImage"

    @classmethod
    def parse(cls, name: Any) -> Action | None:
        """Return the matching action, or None for unknown / non-string names."""
        if not isinstance(name, str):
            return None
        try:
            return cls(name)
        except ValueError:
            return None


class ActionParams(BaseModel):
    """Base for action params: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LocalizedParams(ActionParams):
    lang: str = "en"


# ============================================================================
# Nested value types
# ============================================================================


class TravelPreferences(BaseModel):
    """Trip planner preferences as collected by the planner form."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    budget: float = 0
    transport: str = "Any"
    seats: str | None = None
    allow_red_eye: bool = Field(default=False, alias="allowRedEye")
    business_compliance: bool = Field(default=False, alias="businessCompliance")
    niche_interests: list[str] | None = Field(default=None, alias="nicheInterests")


class UserLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Expense(BaseModel):
    """One shared expense in a group budget."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str
    amount: float
    paid_by: str = Field(..., alias="paidBy")
    split: str = "Equal"
    id: int | str | None = None


# ============================================================================
# Per-action params
# ============================================================================


class TravelPlansParams(LocalizedParams):
    from_: str = Field(..., alias="from", min_length=1)
    to: str = Field(..., min_length=1)
    date: str
    preferences: TravelPreferences = Field(default_factory=TravelPreferences)
    user_location: UserLocation | None = Field(default=None, alias="userLocation")


class VisaParams(LocalizedParams):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)


class DestinationParams(LocalizedParams):
    destination: str = Field(..., min_length=1)


class TouristGuideParams(LocalizedParams):
    destination: str = Field(..., min_length=1)
    days: int = Field(..., ge=1, le=30)
    preferences: str = ""
    is_niche: bool = Field(default=False, alias="isNiche")


class LuggageParams(LocalizedParams):
    airline: str = Field(..., min_length=1)


class BudgetSplitParams(LocalizedParams):
    expenses: list[Expense]


class TravelReportParams(LocalizedParams):
    trip_details: dict[str, Any] = Field(..., alias="tripDetails")


class MeetingTimesParams(LocalizedParams):
    arrival_info: str = Field(..., alias="arrivalInfo")
    meetings: str


class PackingListParams(LocalizedParams):
    destination: str = Field(..., min_length=1)
    purpose: str = Field(..., min_length=1)
    days: int = Field(..., ge=1, le=90)


class VideoParams(ActionParams):
    destination: str = Field(..., min_length=1)


class TranslateTextParams(ActionParams):
    text: str = Field(..., min_length=1)
    target_lang: str = Field(..., alias="targetLang", min_length=1)


class TranslateImageParams(LocalizedParams):
    base64_data: str = Field(..., alias="base64Data", min_length=1)
    mime_type: str = Field(..., alias="mimeType", pattern=r"^image/[\w.+-]+$")


PARAMS_MODELS: dict[Action, type[ActionParams]] = {
    Action.GENERATE_TRAVEL_PLANS: TravelPlansParams,
    Action.GET_VISA_REQUIREMENTS: VisaParams,
    Action.GET_SMART_ALERTS: DestinationParams,
    Action.GENERATE_TOURIST_GUIDE: TouristGuideParams,
    Action.GET_LUGGAGE_ADVISOR: LuggageParams,
    Action.ANALYZE_BUDGET_SPLIT: BudgetSplitParams,
    Action.GENERATE_TRAVEL_REPORT_SUMMARY: TravelReportParams,
    Action.SUGGEST_MEETING_TIMES: MeetingTimesParams,
    Action.GENERATE_PACKING_LIST: PackingListParams,
    Action.GET_DAILY_TRAVEL_INSIGHT: LocalizedParams,
    Action.GENERATE_DESTINATION_VIDEO: VideoParams,
    Action.TRANSLATE_TEXT: TranslateTextParams,
    Action.TRANSLATE_IMAGE: TranslateImageParams,
}


def target_language(lang: str, simplified: bool = False) -> str:
    """Prompt language for a UI language code ('cn' is Chinese, anything else English)."""
    if lang == "cn":
        return "Chinese (Simplified)" if simplified else "Chinese"
    return "English"
