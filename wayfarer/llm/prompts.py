"""
Prompt templates for each dispatcher action.

Templates are plain ``str.format`` strings.  JSON examples in the planner and
guide prompts use doubled braces so they survive formatting.
"""

from __future__ import annotations

import json
from typing import Any

TRAVEL_PLANS_PROMPT = """Plan a travel itinerary from {origin} to {destination} on {date}.
Preferences: {transport}, Budget: ¥{budget}.
CRITICAL: All generated descriptions, tips, and titles MUST be in {language}.
Maintain English JSON keys. Provide 2 travel options.
Format: {{
  "options": [{{ "id": "s", "transportType": "s", "totalCost": 0, "totalDuration": 0, "compliance": true, "segments": [{{ "id": "s", "type": "transit|security|main|arrival", "title": "s", "description": "s", "startTime": "s", "duration": 0 }}] }}],
  "localInfo": {{ "weather": "s", "tips": "s", "emergency": "s" }}
}}"""

VISA_PROMPT = (
    "Provide current visa requirements from {origin} to {destination} in {language}. "
    "Use Google Search."
)

SMART_ALERTS_PROMPT = (
    "3 high-impact travel alerts for {destination} in {language}. "
    'Return JSON array: [{{id: 1, title: "s", desc: "s", type: "warning|event|price", '
    'color: "amber|rose|indigo"}}]'
)

TOURIST_GUIDE_PROMPT = """Generate a {days}-day {style} guide for {destination} in {language}.
Interests: {interests}. JSON array: [{{ "day": 1, "activities": [{{ "time": "s", "location": "s", "description": "s", "travelTip": "s", "mapUrl": "s" }}] }}]"""

LUGGAGE_PROMPT = "Luggage rules for {airline} in {language}. Use Google Search."

BUDGET_SPLIT_PROMPT = "Analyze expenses and show who owes what in {language}: {expenses}."

REPORT_SUMMARY_PROMPT = "Write a summary for this expense report in {language}: {details}."

MEETING_TIMES_PROMPT = (
    'Suggest business schedule based on arrival: "{arrival}" and meetings: "{meetings}" '
    "in {language}."
)

PACKING_LIST_PROMPT = (
    "Packing list for {days} days in {destination} for {purpose} in {language}. "
    "Return JSON array of strings."
)

DAILY_INSIGHT_PROMPT = (
    "Identify one major travel news or tip for today in {language} using Google Search."
)

VIDEO_PROMPT = "A beautiful cinematic travel montage of {destination}, high quality, vibrant colors."

TRANSLATE_TEXT_PROMPT = 'Translate to {language}: "{text}".'

TRANSLATE_IMAGE_PROMPT = "Translate all text in this image into {language}."

PACKING_LIST_SCHEMA: dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}


def to_json(value: Any) -> str:
    """Compact JSON for embedding structured user input in a prompt."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
