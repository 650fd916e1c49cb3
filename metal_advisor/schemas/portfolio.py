"""Schemas for portfolio valuation and returns."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .series import MetalName


class LotSchema(BaseModel):
    metal: MetalName
    purity: Literal["24K", "22K", "18K", "999 Fine", "925 Sterling"]
    weight_grams: float = Field(..., gt=0)
    total_paid: float = Field(..., ge=0)
    purchase_date: date
    status: Literal["HOLD", "SOLD", "GIFTED"] = "HOLD"
    sale_total_received: Optional[float] = Field(default=None, ge=0)
    gifted_market_value: Optional[float] = Field(default=None, ge=0)


class ReturnsRequest(BaseModel):
    lots: list[LotSchema]
    spot_per_gram: dict[str, float] = Field(default_factory=dict)
    as_of: Optional[date] = None


class PerformanceSchema(BaseModel):
    total_invested: float
    current_value: float
    total_gain: float
    gain_percentage: float


class ReturnsSchema(BaseModel):
    absolute_roi: float
    cagr: float
    xirr: float
    xirr_computable: bool


class HoldingGroupSchema(BaseModel):
    weight_grams: float
    average_price_per_gram: float


class RealizedSummarySchema(BaseModel):
    sold_count: int
    realized_invested: float
    realized_received: float
    realized_profit: float
    realized_pct: float


class GiftedSummarySchema(BaseModel):
    gifted_count: int
    gifted_cost: float
    gifted_value: float


class ReturnsResponse(BaseModel):
    performance: PerformanceSchema
    returns: ReturnsSchema
    holdings: dict[str, HoldingGroupSchema]
    realized: RealizedSummarySchema
    gifted: GiftedSummarySchema


__all__ = [
    "GiftedSummarySchema",
    "HoldingGroupSchema",
    "LotSchema",
    "PerformanceSchema",
    "RealizedSummarySchema",
    "ReturnsRequest",
    "ReturnsResponse",
    "ReturnsSchema",
]
