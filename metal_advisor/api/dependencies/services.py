"""Service providers for API routes, overridable in tests."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from metal_advisor.db.session import _session_factory
from metal_advisor.providers.metals_dev import get_metals_client
from metal_advisor.providers.narrative import NarrativeClient
from metal_advisor.services.narrative_cache import CachedNarrativeClient
from metal_advisor.services.price_cache import PriceSeriesCache
from metal_advisor.services.series_repository import SeriesRepository, SqlSeriesRepository


@lru_cache()
def get_series_repository() -> SeriesRepository:
    return SqlSeriesRepository(_session_factory)


def get_price_cache(repository: SeriesRepository = Depends(get_series_repository)) -> PriceSeriesCache:
    return PriceSeriesCache(repository, get_metals_client())


@lru_cache()
def get_narrative_client() -> CachedNarrativeClient:
    return CachedNarrativeClient(NarrativeClient())


__all__ = ["get_narrative_client", "get_price_cache", "get_series_repository"]
