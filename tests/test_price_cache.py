"""Historical price cache tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from metal_advisor.config import AppSettings
from metal_advisor.providers.metals_dev import HistoricalRate, MetalsApiError
from metal_advisor.services.price_cache import PriceSeriesCache, convert_to_gram_price, merge_points
from metal_advisor.services.series_repository import CachedSeries, InMemorySeriesRepository, PricePoint

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


class StubProvider:
    def __init__(self, *, fail_history: bool = False, fail_latest: bool = False, latest: float = 70.0) -> None:
        self.fail_history = fail_history
        self.fail_latest = fail_latest
        self.latest = latest
        self.timeseries_calls: list[tuple[date, date]] = []
        self.latest_calls = 0

    async def timeseries(self, metal: str, currency: str, start: date, end: date) -> list[HistoricalRate]:
        self.timeseries_calls.append((start, end))
        if self.fail_history:
            raise MetalsApiError("boom")
        return [
            HistoricalRate(date=start + timedelta(days=i), price_usd_per_oz=2000.0, fx_rate=None)
            for i in range((end - start).days + 1)
        ]

    async def latest_price(self, metal: str, currency: str) -> float:
        self.latest_calls += 1
        if self.fail_latest:
            raise MetalsApiError("down")
        return self.latest


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class BrokenRepository(InMemorySeriesRepository):
    async def get(self, metal: str, currency: str) -> CachedSeries | None:
        raise RuntimeError("database offline")


def _series(end: date, count: int = 250, updated: datetime | None = None, metal: str = "gold") -> CachedSeries:
    points = [PricePoint(date=end - timedelta(days=count - 1 - i), price=60.0 + i * 0.01) for i in range(count)]
    stamp = updated or datetime.combine(end, datetime.min.time(), tzinfo=timezone.utc)
    return CachedSeries(metal=metal, currency="USD", points=points, last_seeded_at=stamp, last_updated_at=stamp)


def _cache(repository, provider, sleep=None) -> PriceSeriesCache:
    return PriceSeriesCache(
        repository,
        provider,
        settings=AppSettings(),
        clock=lambda: NOW,
        sleep=sleep or RecordingSleep(),
    )


def test_gap_of_four_days_forces_reseed():
    cache = _cache(InMemorySeriesRepository(), StubProvider())

    assert cache.reseed_reason(_series(TODAY - timedelta(days=4)), 250) == "data gap"
    assert cache.reseed_reason(_series(TODAY - timedelta(days=3)), 250) is None
    assert cache.reseed_reason(_series(TODAY - timedelta(days=2)), 250) is None


def test_reseed_reasons():
    cache = _cache(InMemorySeriesRepository(), StubProvider())
    fresh = _series(TODAY)

    assert cache.reseed_reason(None, 250) == "not seeded"
    assert cache.reseed_reason(_series(TODAY, count=99), 100) == "not seeded"
    assert cache.reseed_reason(fresh, 250, force_refresh=True) == "force refresh"
    assert cache.reseed_reason(fresh, 300) == "requested range exceeds cache"
    assert cache.reseed_reason(_series(TODAY, count=225), 250) is None


async def test_first_request_seeds_in_chunks():
    repository = InMemorySeriesRepository()
    provider = StubProvider()
    sleep = RecordingSleep()
    cache = _cache(repository, provider, sleep)

    points = await cache.get_series("gold", "USD", 250)

    assert len(provider.timeseries_calls) == 9
    assert provider.timeseries_calls[0] == (TODAY - timedelta(days=30), TODAY - timedelta(days=1))
    assert all((end - start).days < 30 for start, end in provider.timeseries_calls)
    assert sleep.calls == [0.5] * 8
    assert len(points) == 251
    assert points[-1] == PricePoint(date=TODAY, price=70.0)
    assert points[0].date == TODAY - timedelta(days=250)
    saved = repository.saves[-1]
    assert saved.last_seeded_at == NOW
    assert saved.data_end_date == TODAY


async def test_gap_triggers_reseed_through_get_series():
    stale = _series(TODAY - timedelta(days=4))
    repository = InMemorySeriesRepository([stale])
    provider = StubProvider()

    await _cache(repository, provider).get_series("gold", "USD", 250)

    assert provider.timeseries_calls


async def test_stale_but_seeded_cache_gets_daily_update():
    cached = _series(TODAY - timedelta(days=1))
    repository = InMemorySeriesRepository([cached])
    provider = StubProvider(latest=75.5)

    points = await _cache(repository, provider).get_series("gold", "USD", 250)

    assert provider.timeseries_calls == []
    assert provider.latest_calls == 1
    assert len(points) == 250
    assert points[-1] == PricePoint(date=TODAY, price=75.5)
    assert points[0].date == cached.points[1].date
    saved = repository.saves[-1]
    assert saved.last_seeded_at == cached.last_seeded_at
    assert saved.last_updated_at == NOW


async def test_same_day_request_uses_cache():
    cached = _series(TODAY, updated=NOW - timedelta(hours=1))
    repository = InMemorySeriesRepository([cached])
    provider = StubProvider()

    points = await _cache(repository, provider).get_series("gold", "USD", 250)

    assert points == cached.points
    assert provider.latest_calls == 0
    assert repository.saves == []


async def test_failed_reseed_returns_cached_points():
    short = _series(TODAY - timedelta(days=10), count=50)
    repository = InMemorySeriesRepository([short])

    points = await _cache(repository, StubProvider(fail_history=True)).get_series("gold", "USD", 250)

    assert points == short.points
    assert repository.saves == []


async def test_failed_reseed_without_cache_is_empty():
    points = await _cache(InMemorySeriesRepository(), StubProvider(fail_history=True)).get_series("silver", "INR")

    assert points == []


async def test_failed_daily_update_keeps_cache():
    cached = _series(TODAY - timedelta(days=1))
    repository = InMemorySeriesRepository([cached])

    points = await _cache(repository, StubProvider(fail_latest=True)).get_series("gold", "USD", 250)

    assert points == cached.points
    assert repository.saves == []


async def test_unreadable_repository_is_treated_as_unseeded():
    provider = StubProvider()

    points = await _cache(BrokenRepository(), provider).get_series("gold", "USD", 60)

    assert provider.timeseries_calls
    assert len(points) == 61


async def test_seed_all_refreshes_every_pair():
    repository = InMemorySeriesRepository([_series(TODAY, updated=NOW)])
    provider = StubProvider()
    sleep = RecordingSleep()

    counts = await _cache(repository, provider, sleep).seed_all(["USD", "INR"], days=30)

    assert set(counts) == {("gold", "USD"), ("silver", "USD"), ("gold", "INR"), ("silver", "INR")}
    assert all(count == 31 for count in counts.values())
    assert len(provider.timeseries_calls) == 4
    assert sleep.calls == [1.0] * 4


def test_convert_to_gram_price():
    usd = HistoricalRate(date=TODAY, price_usd_per_oz=2000.0, fx_rate=None)
    inr = HistoricalRate(date=TODAY, price_usd_per_oz=2000.0, fx_rate=0.012)

    assert convert_to_gram_price(usd, "USD") == pytest.approx(64.3)
    assert convert_to_gram_price(inr, "INR") == pytest.approx(round(2000.0 / 31.1035 / 0.012, 2))
    assert convert_to_gram_price(inr, "USD") == pytest.approx(64.3)


def test_merge_points_last_write_wins():
    merged = merge_points(
        [
            PricePoint(date=date(2024, 1, 2), price=2.0),
            PricePoint(date=date(2024, 1, 1), price=1.0),
            PricePoint(date=date(2024, 1, 2), price=3.0),
        ]
    )

    assert merged == [PricePoint(date=date(2024, 1, 1), price=1.0), PricePoint(date=date(2024, 1, 2), price=3.0)]


async def test_daily_update_replaces_existing_point_for_today():
    cached = _series(TODAY, updated=NOW - timedelta(days=1))
    repository = InMemorySeriesRepository([cached])
    provider = StubProvider(latest=81.25)

    points = await _cache(repository, provider).get_series("gold", "USD", 250)

    assert provider.timeseries_calls == []
    assert provider.latest_calls == 1
    assert len(points) == 250
    assert [p.date for p in points].count(TODAY) == 1
    assert points[-1] == PricePoint(date=TODAY, price=81.25)
    assert points[:-1] == cached.points[:-1]
    assert repository.saves[-1].last_updated_at == NOW
