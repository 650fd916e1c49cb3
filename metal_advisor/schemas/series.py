"""Schemas for cached price series."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel

MetalName = Literal["gold", "silver"]
CurrencyCode = Literal["INR", "USD", "AED", "GBP", "EUR"]


class PricePointSchema(BaseModel):
    date: date
    price: float


class SeriesResponse(BaseModel):
    metal: str
    currency: str
    points: list[PricePointSchema]
    insufficient_data: bool = False


__all__ = ["CurrencyCode", "MetalName", "PricePointSchema", "SeriesResponse"]
