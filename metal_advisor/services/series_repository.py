"""Cached price series documents and the repositories that persist them.

A cached series is keyed by ``(metal, currency)`` and is always written as a
whole document: ``save`` replaces whatever was stored before, so concurrent
writers resolve as last-write-wins without partial merges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from metal_advisor.models import CachedPriceSeries


@dataclass(frozen=True)
class PricePoint:
    date: date
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "price": self.price}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PricePoint":
        return cls(date=date.fromisoformat(str(payload["date"])), price=float(payload["price"]))


@dataclass
class CachedSeries:
    metal: str
    currency: str
    points: list[PricePoint]
    last_seeded_at: datetime
    last_updated_at: datetime
    data_start_date: date | None = field(default=None)
    data_end_date: date | None = field(default=None)

    def __post_init__(self) -> None:
        self.points = sorted(self.points, key=lambda p: p.date)
        if self.points:
            self.data_start_date = self.points[0].date
            self.data_end_date = self.points[-1].date


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SeriesRepository(Protocol):
    """Storage contract for cached series: full-document read and replace."""

    async def get(self, metal: str, currency: str) -> CachedSeries | None:
        ...

    async def save(self, series: CachedSeries) -> None:
        ...


class InMemorySeriesRepository:
    """Dict-backed repository for tests and single-process use."""

    def __init__(self, initial: Sequence[CachedSeries] | None = None) -> None:
        self._store: dict[tuple[str, str], CachedSeries] = {}
        self.saves: list[CachedSeries] = []
        for series in initial or []:
            self._store[(series.metal, series.currency)] = series

    async def get(self, metal: str, currency: str) -> CachedSeries | None:
        return self._store.get((metal, currency))

    async def save(self, series: CachedSeries) -> None:
        self._store[(series.metal, series.currency)] = series
        self.saves.append(series)


# Single-statement upsert keeps concurrent saves of one key last-write-wins.
_UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class SqlSeriesRepository:
    """SQLAlchemy-backed repository using the ``cached_price_series`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, metal: str, currency: str) -> CachedSeries | None:
        stmt = select(CachedPriceSeries).where(
            CachedPriceSeries.metal == metal,
            CachedPriceSeries.currency == currency,
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return CachedSeries(
            metal=row.metal,
            currency=row.currency,
            points=[PricePoint.from_dict(item) for item in row.points or []],
            last_seeded_at=_as_utc(row.last_seeded_at),
            last_updated_at=_as_utc(row.last_updated_at),
        )

    async def save(self, series: CachedSeries) -> None:
        record = {
            "metal": series.metal,
            "currency": series.currency,
            "points": [point.to_dict() for point in series.points],
            "data_start_date": series.data_start_date,
            "data_end_date": series.data_end_date,
            "last_seeded_at": series.last_seeded_at,
            "last_updated_at": series.last_updated_at,
        }
        async with self._session_factory() as session:
            insert = _UPSERT_INSERTS[session.bind.dialect.name]
            stmt = (
                insert(CachedPriceSeries)
                .values(**record)
                .on_conflict_do_update(
                    index_elements=[CachedPriceSeries.metal, CachedPriceSeries.currency],
                    set_={key: value for key, value in record.items() if key not in ("metal", "currency")},
                )
            )
            await session.execute(stmt)
            await session.commit()


__all__ = [
    "CachedSeries",
    "InMemorySeriesRepository",
    "PricePoint",
    "SeriesRepository",
    "SqlSeriesRepository",
]
