"""Schemas for the trend dashboard and blended health score."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel


class TechnicalMetricsSchema(BaseModel):
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    distance_pct: float
    regime_above_days: int
    regime_below_days: int
    crossed_within_5_days: bool
    golden_cross: Optional[bool] = None


class ChartPointSchema(BaseModel):
    date: date
    price: float
    sma50: Optional[float] = None
    sma200: Optional[float] = None


class HealthSchema(BaseModel):
    technical_score: float
    narrative_score: float
    health_score: float
    label: str


class InsightsResponse(BaseModel):
    metal: str
    currency: str
    signal: str
    status_label: str
    technical_score: int
    summary: str
    last_price: float
    main_dma: float
    dma_type: str
    sma100: Optional[float] = None
    metrics: TechnicalMetricsSchema
    health: HealthSchema
    narrative_source: str
    chart: list[ChartPointSchema]


__all__ = [
    "ChartPointSchema",
    "HealthSchema",
    "InsightsResponse",
    "TechnicalMetricsSchema",
]
