"""Portfolio valuation and returns routes."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter

from metal_advisor.schemas import (
    GiftedSummarySchema,
    HoldingGroupSchema,
    PerformanceSchema,
    RealizedSummarySchema,
    ReturnsRequest,
    ReturnsResponse,
    ReturnsSchema,
)
from metal_advisor.services.returns import (
    Lot,
    LotStatus,
    Purity,
    compute_returns,
    gifted_summary,
    holding_summary,
    realized_summary,
    value_lots,
)

router = APIRouter()


@router.post("/returns", response_model=ReturnsResponse)
async def portfolio_returns(payload: ReturnsRequest) -> ReturnsResponse:
    """Value held lots at the supplied spot prices and compute ROI, CAGR and XIRR.

    Also summarises holdings per purity group and the sold and gifted history.
    """

    lots = [
        Lot(
            metal=item.metal,
            purity=Purity(item.purity),
            weight_grams=item.weight_grams,
            total_paid=item.total_paid,
            purchase_date=item.purchase_date,
            status=LotStatus(item.status),
            sale_total_received=item.sale_total_received,
            gifted_market_value=item.gifted_market_value,
        )
        for item in payload.lots
    ]
    stats = value_lots(lots, payload.spot_per_gram)
    result = compute_returns(lots, stats.current_value, now=payload.as_of)
    return ReturnsResponse(
        performance=PerformanceSchema(**asdict(stats)),
        returns=ReturnsSchema(
            absolute_roi=result.absolute_roi,
            cagr=result.cagr,
            xirr=result.xirr,
            xirr_computable=result.xirr_computable,
        ),
        holdings={
            key: HoldingGroupSchema(
                weight_grams=group.weight_grams,
                average_price_per_gram=group.average_price_per_gram,
            )
            for key, group in holding_summary(lots).items()
        },
        realized=RealizedSummarySchema(**asdict(realized_summary(lots))),
        gifted=GiftedSummarySchema(**asdict(gifted_summary(lots))),
    )


__all__ = ["portfolio_returns"]
