"""Trend dashboard routes: technical signal blended with narrative sentiment."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metal_advisor.api.dependencies.services import get_narrative_client, get_price_cache
from metal_advisor.indicators.trend import CHART_WINDOW, InsufficientDataError, TrendAnalysis, analyze_trend
from metal_advisor.providers.narrative import (
    MalformedNarrativeError,
    MetalNarrative,
    NarrativeProviderError,
)
from metal_advisor.schemas import (
    ChartPointSchema,
    CurrencyCode,
    HealthSchema,
    InsightsResponse,
    MetalName,
    TechnicalMetricsSchema,
)
from metal_advisor.services.health import blend_health
from metal_advisor.services.narrative_cache import NarrativeSource
from metal_advisor.services.price_cache import PriceSeriesCache

logger = logging.getLogger(__name__)

router = APIRouter()


async def _narrative_score(
    metal: str,
    requested: Optional[float],
    client: NarrativeSource,
) -> tuple[Optional[float], str]:
    if requested is not None:
        return requested, "request"
    if not client.configured:
        return None, "neutral"
    try:
        narrative = await client.fetch(metal)
    except (NarrativeProviderError, MalformedNarrativeError) as exc:
        logger.warning("Narrative unavailable for %s, using neutral score: %s", metal, exc)
        return None, "neutral"
    return narrative.sentiment_score, "provider"


def _metrics_schema(analysis: TrendAnalysis) -> TechnicalMetricsSchema:
    metrics = analysis.metrics
    return TechnicalMetricsSchema(
        sma50=metrics.sma50,
        sma200=metrics.sma200,
        distance_pct=metrics.distance_pct,
        regime_above_days=metrics.regime_above_days,
        regime_below_days=metrics.regime_below_days,
        crossed_within_5_days=metrics.crossed_within_5_days,
        golden_cross=metrics.golden_cross,
    )


@router.get("/{metal}", response_model=InsightsResponse)
async def get_insights(
    metal: MetalName,
    currency: CurrencyCode = Query(default="USD"),
    narrative_score: Optional[float] = Query(default=None, ge=0, le=100),
    cache: PriceSeriesCache = Depends(get_price_cache),
    narrative_client: NarrativeSource = Depends(get_narrative_client),
) -> InsightsResponse:
    points = await cache.get_series(metal, currency, CHART_WINDOW)
    try:
        analysis = analyze_trend(points, metal=metal)
    except InsufficientDataError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    score, source = await _narrative_score(metal, narrative_score, narrative_client)
    health = blend_health(analysis.technical_score, score)
    return InsightsResponse(
        metal=metal,
        currency=currency,
        signal=analysis.signal.value,
        status_label=analysis.status_label,
        technical_score=analysis.technical_score,
        summary=analysis.summary,
        last_price=analysis.last_price,
        main_dma=analysis.main_dma,
        dma_type=analysis.dma_type,
        sma100=analysis.sma100,
        metrics=_metrics_schema(analysis),
        health=HealthSchema(
            technical_score=health.technical_score,
            narrative_score=health.narrative_score,
            health_score=health.health_score,
            label=health.label.value,
        ),
        narrative_source=source,
        chart=[
            ChartPointSchema(date=point.date, price=point.price, sma50=point.sma50, sma200=point.sma200)
            for point in analysis.chart
        ],
    )


@router.get("/{metal}/narrative", response_model=MetalNarrative)
async def get_narrative(
    metal: MetalName,
    narrative_client: NarrativeSource = Depends(get_narrative_client),
) -> MetalNarrative:
    """Return the decoded expert and geopolitical narrative for ``metal``."""

    try:
        return await narrative_client.fetch(metal)
    except MalformedNarrativeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except NarrativeProviderError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


__all__ = ["get_insights", "get_narrative"]
