"""Narrative/sentiment provider client and strict response decoding.

The provider is a generative model that answers with JSON, sometimes wrapped
in markdown fences or prose. Decoding either yields a fully validated
:class:`MetalNarrative` or raises :class:`MalformedNarrativeError`; a partially
populated narrative is never returned.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from metal_advisor.config import get_settings

logger = logging.getLogger(__name__)

Tone = Literal["Bullish", "Bearish", "Neutral"]
GeoImpact = Literal["Positive", "Negative", "Neutral"]

_FENCE_RE = re.compile(r"```[a-zA-Z]*\n?")

# Checked in order; an event contributes the modifier of its first matching bucket.
GEO_KEYWORD_MODIFIERS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("war", "sanction", "escalation"), 10),
    (("crisis", "default", "banking"), 8),
    (("trade war", "tariff"), 6),
    (("instability",), 5),
    (("peace", "easing"), -6),
    (("hawkish", "pivot"), -8),
)

TONE_VALUES = {"Bullish": 1, "Bearish": -1, "Neutral": 0}


class MalformedNarrativeError(ValueError):
    """Raised when the provider payload does not match the narrative schema."""


class NarrativeProviderError(RuntimeError):
    """Raised when the narrative service cannot be reached or errors."""


class ExpertReport(BaseModel):
    institution: str
    date: str
    summary_text: str
    tone: Tone
    url: Optional[str] = None


class GeopoliticalEvent(BaseModel):
    event_type: str
    date: str
    description: str
    sentiment: Tone


class _NarrativePayload(BaseModel):
    reports: List[ExpertReport] = Field(default_factory=list)
    events: List[GeopoliticalEvent] = Field(default_factory=list)
    summary: Optional[str] = None
    geo_impact_label: Optional[GeoImpact] = None
    geo_bullets: List[str] = Field(default_factory=list, max_length=3)


class MetalNarrative(BaseModel):
    metal: str
    sentiment_score: float = Field(..., ge=0, le=100)
    expert_outlook: Tone
    summary: str
    geopolitical_impact: GeoImpact
    geo_bullets: List[str]
    geo_modifier: int
    reports: List[ExpertReport]
    events: List[GeopoliticalEvent]
    last_updated: datetime


def extract_json(text: str) -> Any:
    """Return the first JSON object or array embedded in ``text``."""

    if not text or not text.strip():
        raise MalformedNarrativeError("Empty narrative response")
    cleaned = _FENCE_RE.sub("", text).replace("```", "").strip()
    starts = [idx for idx in (cleaned.find("{"), cleaned.find("[")) if idx != -1]
    if not starts:
        raise MalformedNarrativeError("No JSON document found in narrative response")
    try:
        value, _ = json.JSONDecoder().raw_decode(cleaned, min(starts))
    except json.JSONDecodeError as exc:
        raise MalformedNarrativeError(f"Invalid JSON in narrative response: {exc.msg}") from exc
    return value


def geo_modifier(events: List[GeopoliticalEvent]) -> int:
    total = 0
    for event in events:
        description = event.description.lower()
        if not description:
            continue
        for keywords, modifier in GEO_KEYWORD_MODIFIERS:
            if any(keyword in description for keyword in keywords):
                total += modifier
                break
    return total


def decode_narrative(text: str, metal: str, *, now: datetime | None = None) -> MetalNarrative:
    """Validate a raw provider answer and derive the sentiment score.

    Report tones average to ``avg`` in [-1, 1]; the base score is
    ``50 + avg * 25``, shifted by the geopolitical modifier and clamped to
    0-100.
    """

    data = extract_json(text)
    if not isinstance(data, dict):
        raise MalformedNarrativeError("Narrative response must be a JSON object")
    try:
        payload = _NarrativePayload.model_validate(data)
    except ValidationError as exc:
        raise MalformedNarrativeError(f"Narrative response failed validation: {exc.error_count()} errors") from exc

    tones = [TONE_VALUES[report.tone] for report in payload.reports]
    average = sum(tones) / len(tones) if tones else 0.0
    modifier = geo_modifier(payload.events)
    score = max(0.0, min(100.0, 50 + average * 25 + modifier))
    if average > 0.2:
        outlook: Tone = "Bullish"
    elif average < -0.2:
        outlook = "Bearish"
    else:
        outlook = "Neutral"

    return MetalNarrative(
        metal=metal,
        sentiment_score=score,
        expert_outlook=outlook,
        summary=payload.summary or "No recent expert updates available.",
        geopolitical_impact=payload.geo_impact_label or "Neutral",
        geo_bullets=payload.geo_bullets,
        geo_modifier=modifier,
        reports=payload.reports,
        events=payload.events,
        last_updated=now or datetime.now(timezone.utc),
    )


class NarrativeClient:
    """HTTP client for the narrative service fronting the generative model."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout_seconds: float | None = None,
        client: Any | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.narrative_service_url or "").rstrip("/")
        self._token = token or settings.narrative_service_token
        self._timeout = timeout_seconds or settings.narrative_timeout_seconds
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    async def fetch(self, metal: str) -> MetalNarrative:
        if not self._base_url:
            raise NarrativeProviderError("Narrative service URL is not configured")
        url = f"{self._base_url}/narrative/{metal}"
        headers: dict[str, str] = {}
        if self._token:
            headers["X-Internal-Token"] = self._token
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise NarrativeProviderError(f"Failed to reach narrative service: {exc}") from exc
        if response.status_code >= 400:
            logger.warning("Narrative service error %s for %s", response.status_code, url)
            raise NarrativeProviderError(f"Narrative service error {response.status_code}")
        return decode_narrative(response.text, metal)


__all__ = [
    "ExpertReport",
    "GeopoliticalEvent",
    "MalformedNarrativeError",
    "MetalNarrative",
    "NarrativeClient",
    "NarrativeProviderError",
    "decode_narrative",
    "extract_json",
    "geo_modifier",
]
