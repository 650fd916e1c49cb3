"""Schemas for allocation advice."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class AdvisorRequest(BaseModel):
    price: float
    sma50: float
    sma200: float
    mode: Literal["LUMPSUM", "SIP"] = "LUMPSUM"
    planned_allocation: Optional[float] = Field(default=None, gt=0)


class AdvisorMetricsSchema(BaseModel):
    delta50: float
    delta200: float
    golden_cross: bool
    death_cross: bool
    block_lumpsum: bool


class AdvisorResponse(BaseModel):
    rule_id: str
    signal: str
    invest_pct_now: float
    lump_sum_allowed: bool
    sip_allowed: bool
    message: str
    next_action: str
    metrics: AdvisorMetricsSchema
    allocation_now_amount: Optional[float] = None
    target_exposure_pct: Optional[float] = None
    trim_pct_optional: Optional[str] = None
    price: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None


__all__ = ["AdvisorMetricsSchema", "AdvisorRequest", "AdvisorResponse"]
