"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .advisor import router as advisor_router
from .insights import router as insights_router
from .portfolio import router as portfolio_router
from .series import router as series_router

api_router = APIRouter()
api_router.include_router(series_router, prefix="/series", tags=["series"])
api_router.include_router(insights_router, prefix="/insights", tags=["insights"])
api_router.include_router(advisor_router, prefix="/advisor", tags=["advisor"])
api_router.include_router(portfolio_router, prefix="/portfolio", tags=["portfolio"])

__all__ = ["api_router"]
