"""Allocation advisor routes."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metal_advisor.api.dependencies.services import get_price_cache
from metal_advisor.rules.advisor import AdvisorOutput, advisor_inputs_from_series, evaluate_advice
from metal_advisor.schemas import (
    AdvisorMetricsSchema,
    AdvisorRequest,
    AdvisorResponse,
    CurrencyCode,
    MetalName,
)
from metal_advisor.services.price_cache import PriceSeriesCache

router = APIRouter()


def _to_response(output: AdvisorOutput, **inputs: Optional[float]) -> AdvisorResponse:
    metrics = output.metrics
    return AdvisorResponse(
        rule_id=output.rule_id,
        signal=output.signal.value,
        invest_pct_now=output.invest_pct_now,
        lump_sum_allowed=output.lump_sum_allowed,
        sip_allowed=output.sip_allowed,
        message=output.message,
        next_action=output.next_action,
        metrics=AdvisorMetricsSchema(
            delta50=metrics.delta50,
            delta200=metrics.delta200,
            golden_cross=metrics.golden_cross,
            death_cross=metrics.death_cross,
            block_lumpsum=metrics.block_lumpsum,
        ),
        allocation_now_amount=output.allocation_now_amount,
        target_exposure_pct=output.target_exposure_pct,
        trim_pct_optional=output.trim_pct_optional,
        **inputs,
    )


@router.post("", response_model=AdvisorResponse)
async def advise(payload: AdvisorRequest) -> AdvisorResponse:
    """Evaluate the advisor rules for explicit price and moving averages."""

    output = evaluate_advice(
        payload.price,
        payload.sma50,
        payload.sma200,
        mode=payload.mode,
        planned_allocation=payload.planned_allocation,
    )
    return _to_response(output, price=payload.price, sma50=payload.sma50, sma200=payload.sma200)


@router.get("/{metal}", response_model=AdvisorResponse)
async def advise_for_metal(
    metal: MetalName,
    currency: CurrencyCode = Query(default="USD"),
    mode: Literal["LUMPSUM", "SIP"] = Query(default="LUMPSUM"),
    allocation: Optional[float] = Query(default=None, gt=0),
    cache: PriceSeriesCache = Depends(get_price_cache),
) -> AdvisorResponse:
    """Evaluate the advisor rules on the cached series of ``metal``."""

    points = await cache.get_series(metal, currency)
    try:
        price, sma50, sma200 = advisor_inputs_from_series(points)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    output = evaluate_advice(price, sma50, sma200, mode=mode, planned_allocation=allocation)
    return _to_response(output, price=price, sma50=sma50, sma200=sma200)


__all__ = ["advise", "advise_for_metal"]
