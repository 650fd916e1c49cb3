"""Pydantic schema exports."""

from .advisor import AdvisorMetricsSchema, AdvisorRequest, AdvisorResponse
from .insights import ChartPointSchema, HealthSchema, InsightsResponse, TechnicalMetricsSchema
from .portfolio import (
    GiftedSummarySchema,
    HoldingGroupSchema,
    LotSchema,
    PerformanceSchema,
    RealizedSummarySchema,
    ReturnsRequest,
    ReturnsResponse,
    ReturnsSchema,
)
from .series import CurrencyCode, MetalName, PricePointSchema, SeriesResponse

__all__ = [
    "AdvisorMetricsSchema",
    "AdvisorRequest",
    "AdvisorResponse",
    "ChartPointSchema",
    "CurrencyCode",
    "GiftedSummarySchema",
    "HealthSchema",
    "HoldingGroupSchema",
    "InsightsResponse",
    "LotSchema",
    "MetalName",
    "PerformanceSchema",
    "PricePointSchema",
    "RealizedSummarySchema",
    "ReturnsRequest",
    "ReturnsResponse",
    "ReturnsSchema",
    "SeriesResponse",
    "TechnicalMetricsSchema",
]
