"""
services/ai_service.py — Generative-text provider (Gemini generateContent).

Two operations:
  generate_itinerary(destination, days)
      Asks for a strict JSON array of activities and validates every item.
      Missing key -> AI_UNAVAILABLE (503); any transport, status, parse or
      shape failure -> AI_GENERATION_FAILED (502).
  summarize_chat(messages)
      Fail-soft: always returns a string, never raises.

The httpx.Client is injectable so tests can use httpx.MockTransport.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime

import httpx

from backend.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

NO_MESSAGES = "No messages to summarize."
SUMMARY_KEY_MISSING = "AI Summary unavailable (Key missing)"
SUMMARY_FAILED = "Unable to summarize at this time."

ITINERARY_PROMPT = (
    "You are a travel assistant. Create a fun, realistic {days}-day itinerary "
    "for {destination}.\n"
    "Return strictly a JSON array of objects. Do not wrap in markdown code "
    "blocks. Each object must have:\n"
    '- "title" (short activity name)\n'
    '- "time" (24-hour clock, e.g. "09:30")\n'
    '- "description" (one sentence detail)\n'
    '- "day" (number 1 to {days})\n'
    "Generate about 2-3 activities per day."
)

SUMMARY_PROMPT = (
    "Summarize the following group chat travel plans and key decisions "
    "in 3 bullet points:\n\n{chat_log}"
)

_TIME_FORMATS = ("%H:%M", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p")


# ── Response parsing ───────────────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    """Removes a leading ```json / ``` fence and a trailing ``` fence."""
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*\n?", "", text)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def normalize_time(value) -> str:
    """
    Accepts "09:30", "9:30 AM", "2 pm" and returns "HH:MM".
    Raises ValueError for anything else.
    """
    raw = str(value).strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValueError(f"unrecognised time {value!r}")


def parse_itinerary(text: str, days: int) -> list[dict]:
    """
    Parses model output into [{"title", "time", "description", "day"}].

    Raises ValueError on malformed JSON or any item missing a field, with a
    day outside 1..days, or with an unreadable time.
    """
    items = json.loads(strip_code_fences(text))
    if not isinstance(items, list):
        raise ValueError("expected a JSON array")

    activities = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"item {index} is not an object")
        missing = [key for key in ("title", "time", "description", "day") if key not in item]
        if missing:
            raise ValueError(f"item {index} is missing {', '.join(missing)}")

        day = int(item["day"])
        if not 1 <= day <= days:
            raise ValueError(f"item {index} has day {day} outside 1..{days}")

        title = str(item["title"]).strip()
        if not title:
            raise ValueError(f"item {index} has an empty title")

        activities.append({
            "title": title,
            "time": normalize_time(item["time"]),
            "description": str(item["description"]).strip(),
            "day": day,
        })
    return activities


def _candidate_text(payload: dict) -> str:
    return payload["candidates"][0]["content"]["parts"][0]["text"]


# ── Client ─────────────────────────────────────────────────────────────────

class GeminiClient:

    def __init__(
            self,
            api_key: str,
            model: str = "gemini-1.5-flash",
            timeout: float = 10.0,
            http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = http_client or httpx.Client(timeout=timeout)

    def _generate(self, prompt: str) -> str:
        response = self._client.post(
            GEMINI_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        return _candidate_text(response.json())

    def generate_itinerary(self, destination: str, days: int) -> list[dict]:
        """
        Raises:
            AppError(AI_UNAVAILABLE, 503)       -- no API key configured.
            AppError(AI_GENERATION_FAILED, 502) -- anything went wrong upstream.
        """
        if not self.api_key:
            raise AppError(
                ErrorCode.AI_UNAVAILABLE,
                "Itinerary generation is not configured on this server.",
                503,
            )

        prompt = ITINERARY_PROMPT.format(days=days, destination=destination)
        try:
            return parse_itinerary(self._generate(prompt), days)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Itinerary generation for %r failed: %s", destination, exc)
            raise AppError(
                ErrorCode.AI_GENERATION_FAILED,
                "Failed to generate an itinerary. Please try again.",
                502,
            ) from exc

    def summarize_chat(self, messages: list[dict]) -> str:
        if not messages:
            return NO_MESSAGES
        if not self.api_key:
            return SUMMARY_KEY_MISSING

        chat_log = "\n".join(f"{m['sender_name']}: {m['text']}" for m in messages)
        try:
            return self._generate(SUMMARY_PROMPT.format(chat_log=chat_log)).strip()
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Chat summary failed: %s", exc)
            return SUMMARY_FAILED
