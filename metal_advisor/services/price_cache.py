"""Historical price series cache with reseed and incremental daily updates.

Strategy:

* Historical prices never change, so a full history is fetched once (a
  "reseed") and stored as one document per ``(metal, currency)``.
* Afterwards only the latest quote is fetched, at most once per day.
* A reseed is forced when the cache is short, unseeded, or has fallen more
  than a few days behind.

Provider failures never escape :meth:`PriceSeriesCache.get_series`; callers
get the best data already cached, which may be empty.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Protocol, Sequence

from opentelemetry import metrics, trace

from metal_advisor.config import AppSettings, get_settings
from metal_advisor.providers.metals_dev import HistoricalRate, MetalsApiError
from metal_advisor.services.series_repository import CachedSeries, PricePoint, SeriesRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)
_reseed_counter = meter.create_counter(
    "metal_advisor.series.reseeds",
    description="Full historical reseeds of a cached price series",
)
_update_counter = meter.create_counter(
    "metal_advisor.series.daily_updates",
    description="Incremental latest-price updates of a cached price series",
)

TROY_OUNCE_GRAMS = 31.1035


class PriceProvider(Protocol):
    """Historical and latest price source consumed by the cache."""

    async def timeseries(self, metal: str, currency: str, start: date, end: date) -> list[HistoricalRate]:
        ...

    async def latest_price(self, metal: str, currency: str) -> float:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def convert_to_gram_price(rate: HistoricalRate, currency: str, base_currency: str = "USD") -> float:
    """Convert a USD per troy ounce quote into price per gram in ``currency``."""

    price = rate.price_usd_per_oz / TROY_OUNCE_GRAMS
    if currency != base_currency and rate.fx_rate and rate.fx_rate > 0:
        # metals.dev quotes currencies as USD per unit, hence the division.
        price = price / rate.fx_rate
    return round(price, 2)


def merge_points(points: Iterable[PricePoint]) -> list[PricePoint]:
    """De-duplicate by date (last write wins) and sort ascending."""

    by_date: dict[date, PricePoint] = {}
    for point in points:
        by_date[point.date] = point
    return [by_date[day] for day in sorted(by_date)]


class PriceSeriesCache:
    """Owns the cached daily series for every ``(metal, currency)`` pair."""

    def __init__(
        self,
        repository: SeriesRepository,
        provider: PriceProvider,
        *,
        settings: AppSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep

    def _today(self) -> date:
        return self._clock().date()

    def reseed_reason(self, cached: CachedSeries | None, desired_days: int, force_refresh: bool = False) -> str | None:
        """Return why a full reseed is needed, or ``None`` when it is not."""

        if force_refresh:
            return "force refresh"
        if cached is None or len(cached.points) < self._settings.series_seed_min_points:
            return "not seeded"
        if len(cached.points) < math.floor(desired_days * self._settings.series_min_coverage_ratio):
            return "requested range exceeds cache"
        if cached.data_end_date is None:
            return "data gap"
        gap_days = (self._today() - cached.data_end_date).days
        if gap_days > self._settings.series_max_gap_days:
            logger.info("Data gap detected: %s days since %s", gap_days, cached.data_end_date)
            return "data gap"
        return None

    async def _load(self, metal: str, currency: str) -> CachedSeries | None:
        try:
            return await self._repository.get(metal, currency)
        except Exception:
            logger.exception("Failed to read cached series for %s/%s", metal, currency)
            return None

    async def _persist(self, series: CachedSeries) -> None:
        try:
            await self._repository.save(series)
        except Exception:
            logger.exception("Failed to save cached series for %s/%s", series.metal, series.currency)
        else:
            logger.info("Saved %s points for %s/%s", len(series.points), series.metal, series.currency)

    async def fetch_history(self, metal: str, currency: str, days: int) -> list[PricePoint]:
        """Fetch ``days`` of history walking backwards from yesterday in chunks."""

        chunk_limit = self._settings.metals_api_max_days_per_request
        current_end = self._today() - timedelta(days=1)
        remaining = days
        fetched: list[PricePoint] = []
        logger.info(
            "Fetching %s days of history for %s/%s in %s chunks",
            days,
            metal,
            currency,
            math.ceil(days / chunk_limit),
        )
        while remaining > 0:
            chunk_days = min(remaining, chunk_limit)
            start = current_end - timedelta(days=chunk_days - 1)
            rates = await self._provider.timeseries(metal, currency, start, current_end)
            for rate in rates:
                fetched.append(
                    PricePoint(
                        date=rate.date,
                        price=convert_to_gram_price(rate, currency, self._settings.base_currency),
                    )
                )
            remaining -= chunk_days
            current_end = current_end - timedelta(days=chunk_days)
            if remaining > 0 and self._settings.metals_api_chunk_pause_seconds:
                await self._sleep(self._settings.metals_api_chunk_pause_seconds)
        return merge_points(fetched)

    async def _latest_point(self, metal: str, currency: str) -> PricePoint | None:
        try:
            price = await self._provider.latest_price(metal, currency)
        except MetalsApiError as exc:
            logger.warning("Latest price fetch failed for %s/%s: %s", metal, currency, exc)
            return None
        return PricePoint(date=self._today(), price=price)

    async def _reseed(
        self,
        metal: str,
        currency: str,
        desired_days: int,
        cached: CachedSeries | None,
        reason: str,
    ) -> list[PricePoint]:
        fallback = list(cached.points) if cached else []
        logger.info("Seeding historical data for %s/%s (reason: %s)", metal, currency, reason)
        with tracer.start_as_current_span("series.reseed") as span:
            span.set_attribute("metal", metal)
            span.set_attribute("currency", currency)
            span.set_attribute("reason", reason)
            try:
                points = await self.fetch_history(metal, currency, desired_days)
            except MetalsApiError as exc:
                logger.warning("Historical fetch failed for %s/%s: %s", metal, currency, exc)
                return fallback
            if not points:
                logger.warning("No historical data returned for %s/%s", metal, currency)
                return fallback
            today = self._today()
            if all(point.date != today for point in points):
                latest = await self._latest_point(metal, currency)
                if latest is not None:
                    points = merge_points([*points, latest])
            now = self._clock()
            await self._persist(
                CachedSeries(
                    metal=metal,
                    currency=currency,
                    points=points,
                    last_seeded_at=now,
                    last_updated_at=now,
                )
            )
            span.set_attribute("points", len(points))
        _reseed_counter.add(1, {"metal": metal, "currency": currency})
        return points

    async def _daily_update(self, cached: CachedSeries, desired_days: int) -> list[PricePoint]:
        logger.info("Adding daily update for %s/%s", cached.metal, cached.currency)
        with tracer.start_as_current_span("series.daily_update") as span:
            span.set_attribute("metal", cached.metal)
            span.set_attribute("currency", cached.currency)
            latest = await self._latest_point(cached.metal, cached.currency)
            if latest is None:
                return list(cached.points)
            points = merge_points([*cached.points, latest])[-desired_days:]
            await self._persist(
                CachedSeries(
                    metal=cached.metal,
                    currency=cached.currency,
                    points=points,
                    last_seeded_at=cached.last_seeded_at,
                    last_updated_at=self._clock(),
                )
            )
        _update_counter.add(1, {"metal": cached.metal, "currency": cached.currency})
        return points

    async def get_series(
        self,
        metal: str,
        currency: str,
        desired_days: int | None = None,
        force_refresh: bool = False,
    ) -> list[PricePoint]:
        """Return the daily price-per-gram series, refreshing it as needed.

        An empty list means "insufficient data"; it is never an error signal.
        """

        desired_days = desired_days or self._settings.series_default_days
        cached = await self._load(metal, currency)
        reason = self.reseed_reason(cached, desired_days, force_refresh)
        if reason is not None:
            return await self._reseed(metal, currency, desired_days, cached, reason)

        assert cached is not None
        if cached.last_updated_at.date() != self._today():
            return await self._daily_update(cached, desired_days)

        logger.debug("Using cached series for %s/%s (%s points)", metal, currency, len(cached.points))
        return list(cached.points)

    async def seed_all(
        self,
        currencies: Sequence[str],
        metals: Sequence[str] = ("gold", "silver"),
        days: int | None = None,
    ) -> dict[tuple[str, str], int]:
        """Force-refresh every ``(metal, currency)`` pair, one after another."""

        counts: dict[tuple[str, str], int] = {}
        for currency in currencies:
            for metal in metals:
                points = await self.get_series(metal, currency, days, force_refresh=True)
                counts[(metal, currency)] = len(points)
                if self._settings.seed_pause_seconds:
                    await self._sleep(self._settings.seed_pause_seconds)
        logger.info("Historical data seed complete: %s", counts)
        return counts


__all__ = [
    "PriceProvider",
    "PriceSeriesCache",
    "TROY_OUNCE_GRAMS",
    "convert_to_gram_price",
    "merge_points",
]
