"""Blend the technical trend score with narrative sentiment into a health score."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from metal_advisor.config import get_settings

NEUTRAL_NARRATIVE_SCORE = 50.0
BEARISH_TECHNICAL_THRESHOLD = 40
MAX_BEARISH_NARRATIVE_SWING = 5.0


class HealthLabel(str, Enum):
    OPTIMAL = "Optimal"
    NEUTRAL = "Neutral"
    CRITICAL = "Critical"


@dataclass
class HealthScore:
    technical_score: float
    narrative_score: float
    health_score: float
    label: HealthLabel


def damp_narrative(technical_score: float, narrative_score: float) -> float:
    """Limit sentiment to +/-5 points around neutral in bearish technical regimes."""

    if technical_score < BEARISH_TECHNICAL_THRESHOLD:
        delta = narrative_score - NEUTRAL_NARRATIVE_SCORE
        delta = max(-MAX_BEARISH_NARRATIVE_SWING, min(MAX_BEARISH_NARRATIVE_SWING, delta))
        return NEUTRAL_NARRATIVE_SCORE + delta
    return narrative_score


def health_label(score: float) -> HealthLabel:
    if score > 75:
        return HealthLabel.OPTIMAL
    if score > 55:
        return HealthLabel.NEUTRAL
    return HealthLabel.CRITICAL


def blend_health(
    technical_score: float,
    narrative_score: float | None = None,
    *,
    technical_weight: float | None = None,
    narrative_weight: float | None = None,
) -> HealthScore:
    """Return the weighted health score.

    A missing narrative score counts as neutral (50). The returned
    ``narrative_score`` is the damped value actually used in the blend.
    """

    settings = get_settings()
    tech_w = settings.health_technical_weight if technical_weight is None else technical_weight
    narr_w = settings.health_narrative_weight if narrative_weight is None else narrative_weight
    narrative = NEUTRAL_NARRATIVE_SCORE if narrative_score is None else float(narrative_score)
    narrative = damp_narrative(technical_score, narrative)
    score = technical_score * tech_w + narrative * narr_w
    return HealthScore(
        technical_score=technical_score,
        narrative_score=narrative,
        health_score=score,
        label=health_label(score),
    )


__all__ = ["HealthLabel", "HealthScore", "blend_health", "damp_narrative", "health_label"]
