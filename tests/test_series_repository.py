"""Series repository tests against SQLite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from metal_advisor.db.base import Base
from metal_advisor.models import CachedPriceSeries
from metal_advisor.services.series_repository import (
    CachedSeries,
    InMemorySeriesRepository,
    PricePoint,
    SqlSeriesRepository,
)

SEEDED = datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)


def _series(prices: list[float], updated: datetime = SEEDED) -> CachedSeries:
    start = date(2024, 5, 1)
    points = [PricePoint(date=start + timedelta(days=i), price=p) for i, p in enumerate(prices)]
    return CachedSeries(
        metal="gold",
        currency="INR",
        points=list(reversed(points)),
        last_seeded_at=SEEDED,
        last_updated_at=updated,
    )


async def _repository() -> tuple[SqlSeriesRepository, object]:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    return SqlSeriesRepository(factory), engine


def test_cached_series_sorts_points_and_tracks_range():
    series = _series([1.0, 2.0, 3.0])

    assert [p.price for p in series.points] == [1.0, 2.0, 3.0]
    assert series.data_start_date == date(2024, 5, 1)
    assert series.data_end_date == date(2024, 5, 3)


async def test_sql_repository_round_trip():
    repository, engine = await _repository()
    try:
        assert await repository.get("gold", "INR") is None

        await repository.save(_series([6000.0, 6010.5, 6020.25]))
        loaded = await repository.get("gold", "INR")

        assert loaded is not None
        assert [p.price for p in loaded.points] == [6000.0, 6010.5, 6020.25]
        assert loaded.data_end_date == date(2024, 5, 3)
        assert loaded.last_seeded_at == SEEDED
        assert loaded.last_updated_at.tzinfo is not None
        assert await repository.get("silver", "INR") is None
    finally:
        await engine.dispose()


async def test_sql_repository_save_replaces_document():
    repository, engine = await _repository()
    try:
        await repository.save(_series([1.0, 2.0, 3.0]))
        later = SEEDED + timedelta(days=1)
        await repository.save(_series([5.0, 6.0], updated=later))

        loaded = await repository.get("gold", "INR")

        assert [p.price for p in loaded.points] == [5.0, 6.0]
        assert loaded.last_updated_at == later
    finally:
        await engine.dispose()


async def test_in_memory_repository_records_saves():
    repository = InMemorySeriesRepository()
    series = _series([1.0])

    await repository.save(series)

    assert await repository.get("gold", "INR") is series
    assert repository.saves == [series]


async def test_sql_repository_keeps_single_row_per_key():
    repository, engine = await _repository()
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    try:
        first = _series([1.0, 2.0])
        second = _series([7.0, 8.0, 9.0], updated=SEEDED + timedelta(hours=3))
        await repository.save(first)
        await repository.save(second)

        async with factory() as session:
            rows = (
                await session.execute(select(func.count()).select_from(CachedPriceSeries))
            ).scalar_one()
        loaded = await repository.get("gold", "INR")

        assert rows == 1
        assert [p.price for p in loaded.points] == [7.0, 8.0, 9.0]
        assert loaded.data_start_date == date(2024, 5, 1)
        assert loaded.data_end_date == date(2024, 5, 3)
        assert loaded.last_updated_at == SEEDED + timedelta(hours=3)
    finally:
        await engine.dispose()
