"""Cached daily price series model."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from metal_advisor.db.base import Base


class CachedPriceSeries(Base):
    """One document per (metal, currency); rewritten whole on every save."""

    __tablename__ = "cached_price_series"
    __table_args__ = (
        UniqueConstraint("metal", "currency", name="uq_cached_price_series_key"),
        Index("ix_cached_price_series_key", "metal", "currency"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    metal: Mapped[str] = mapped_column(String(16))
    currency: Mapped[str] = mapped_column(String(3))
    points: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    data_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    data_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_seeded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


__all__ = ["CachedPriceSeries"]
