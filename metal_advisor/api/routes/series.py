"""Cached price series routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from metal_advisor.api.dependencies.services import get_price_cache
from metal_advisor.config import get_settings
from metal_advisor.schemas import CurrencyCode, MetalName, PricePointSchema, SeriesResponse
from metal_advisor.services.price_cache import PriceSeriesCache

router = APIRouter()


@router.get("/{metal}", response_model=SeriesResponse)
async def get_series(
    metal: MetalName,
    currency: CurrencyCode = Query(default="USD"),
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    force_refresh: bool = Query(default=False),
    cache: PriceSeriesCache = Depends(get_price_cache),
) -> SeriesResponse:
    """Return the daily price-per-gram series, seeding or updating the cache first.

    The shared cached document never holds fewer than the default window;
    ``days`` only trims the response.
    """

    default_days = get_settings().series_default_days
    window = max(days or default_days, default_days)
    points = await cache.get_series(metal, currency, window, force_refresh=force_refresh)
    if days is not None:
        points = points[-days:]
    return SeriesResponse(
        metal=metal,
        currency=currency,
        points=[PricePointSchema(date=point.date, price=point.price) for point in points],
        insufficient_data=not points,
    )


__all__ = ["get_series"]
