"""Trend signal engine: DMA regime, technical score and dashboard narrative.

Every historical comparison uses the moving average as it stood on that day
(rolling window over prefix data), so nothing looks ahead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import NamedTuple, Sequence

import numpy as np

from metal_advisor.indicators.compute import price_frame, sma

MIN_TREND_POINTS = 100
CHART_WINDOW = 250
RECENT_CROSS_WINDOW = 5

GOLDEN_CROSS_CLAUSE = (
    " Additionally, the 'Golden Cross' (50-DMA > 200-DMA) suggests strong positive medium-term momentum."
)
DEATH_CROSS_CLAUSE = (
    " The 'Death Cross' (50-DMA < 200-DMA) acts as a headwind, suggesting structural weakness remains."
)


class InsufficientDataError(ValueError):
    """Raised when a series is too short for trend analysis."""


class TrendSignal(str, Enum):
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"


@dataclass
class TechnicalMetrics:
    sma50: float | None
    sma200: float | None
    distance_pct: float
    regime_above_days: int
    regime_below_days: int
    crossed_within_5_days: bool

    @property
    def golden_cross(self) -> bool | None:
        if self.sma50 is None or self.sma200 is None:
            return None
        return self.sma50 >= self.sma200


@dataclass
class ChartPoint:
    date: date
    price: float
    sma50: float | None
    sma200: float | None


@dataclass
class TrendAnalysis:
    signal: TrendSignal
    status_label: str
    technical_score: int
    summary: str
    last_price: float
    main_dma: float
    dma_type: str
    sma100: float | None
    metrics: TechnicalMetrics
    chart: list[ChartPoint] = field(default_factory=list)


class _Verdict(NamedTuple):
    signal: TrendSignal
    label: str
    score: int
    summary: str


def _optional(value: float) -> float | None:
    return None if math.isnan(value) else float(value)


def regime_persistence(prices: np.ndarray, dma: np.ndarray) -> tuple[int, int]:
    """Count consecutive days, newest first, spent above or below the DMA.

    Returns ``(above_days, below_days)``; at most one is non-zero. Counting
    stops at the first flip or where the DMA is not yet defined.
    """

    above = below = 0
    for i in range(len(prices) - 1, -1, -1):
        if math.isnan(dma[i]):
            break
        if prices[i] > dma[i]:
            if below > 0:
                break
            above += 1
        else:
            if above > 0:
                break
            below += 1
    return above, below


def crossed_below_recently(prices: np.ndarray, dma: np.ndarray, window: int = RECENT_CROSS_WINDOW) -> bool:
    """True when any of the last ``window`` prices sat below its own DMA."""

    for i in range(len(prices) - 1, max(-1, len(prices) - 1 - window), -1):
        if not math.isnan(dma[i]) and prices[i] < dma[i]:
            return True
    return False


def _decide(metal_name: str, last_price: float, main_dma: float, metrics: TechnicalMetrics) -> _Verdict:
    distance = metrics.distance_pct
    if last_price > main_dma:
        if metrics.crossed_within_5_days and metrics.regime_above_days >= 3:
            return _Verdict(
                TrendSignal.BUY,
                "BUY (Trend Reclaim)",
                75,
                f"{metal_name} price recently crossed above the major trendline. This 'Trend Reclaim' is a "
                "bullish signal indicating that buyers have stepped in to defend long-term value.",
            )
        if 0 <= distance <= 3:
            return _Verdict(
                TrendSignal.BUY,
                "BUY (Safe Zone)",
                90,
                f"{metal_name} is currently resting near its 200-day floor. This 'Safe Zone' is ideal for "
                "accumulation as the downside is limited by strong historical support.",
            )
        if distance > 8:
            return _Verdict(
                TrendSignal.HOLD,
                "HOLD (Extended)",
                60,
                "The asset is currently 'over-extended' from its average price. While the trend is up, "
                "entering here carries higher risk of a short-term correction.",
            )
        return _Verdict(
            TrendSignal.HOLD,
            "HOLD (Uptrend)",
            70,
            "Steady bullish momentum is observed. The price is holding well above the 200-DMA, "
            "confirming a structural bull market is in progress.",
        )
    if metrics.regime_below_days >= 10:
        return _Verdict(
            TrendSignal.SELL,
            "SELL (Reduce)",
            20,
            "Prolonged weakness below the 200-DMA confirms a bearish regime. Risks are skewed to the "
            "downside until a significant recovery occurs.",
        )
    return _Verdict(
        TrendSignal.HOLD,
        "HOLD (Watchlist)",
        40,
        "Price is testing the support line from below. This is a critical junction; a failure to "
        "reclaim the 200-DMA soon could trigger a deeper sell-off.",
    )


def analyze_trend(points: Sequence, metal: str = "gold") -> TrendAnalysis:
    """Run the DMA rule-set over a chronological daily series.

    ``points`` are objects with ``date`` and ``price`` attributes. At least
    :data:`MIN_TREND_POINTS` are required; shorter series raise
    :class:`InsufficientDataError` so callers can show "insufficient data".
    """

    if len(points) < MIN_TREND_POINTS:
        raise InsufficientDataError(
            f"Need at least {MIN_TREND_POINTS} daily prices for trend analysis, got {len(points)}."
        )

    df = price_frame(points)
    closes = df["close"]
    sma50_series = sma(closes, 50)
    sma100_series = sma(closes, 100)
    sma200_series = sma(closes, 200)

    prices = closes.to_numpy(dtype=float)
    last_price = float(prices[-1])
    sma50 = _optional(sma50_series.iloc[-1])
    sma100 = _optional(sma100_series.iloc[-1])
    sma200 = _optional(sma200_series.iloc[-1])

    if sma200 is not None:
        dma_series, dma_type, main_dma = sma200_series, "200-DMA", sma200
    else:
        dma_series, dma_type, main_dma = sma100_series, "100-DMA", float(sma100_series.iloc[-1])

    distance_pct = (last_price - main_dma) / main_dma * 100 if main_dma else 0.0
    dma_values = dma_series.to_numpy(dtype=float)
    above, below = regime_persistence(prices, dma_values)
    metrics = TechnicalMetrics(
        sma50=sma50,
        sma200=sma200,
        distance_pct=distance_pct,
        regime_above_days=above,
        regime_below_days=below,
        crossed_within_5_days=crossed_below_recently(prices, dma_values),
    )

    metal_name = metal[:1].upper() + metal[1:]
    verdict = _decide(metal_name, last_price, main_dma, metrics)
    summary = verdict.summary
    if metrics.golden_cross is not None:
        summary += GOLDEN_CROSS_CLAUSE if metrics.golden_cross else DEATH_CROSS_CLAUSE

    chart = [
        ChartPoint(
            date=ts.date(),
            price=float(price),
            sma50=_optional(d50),
            sma200=_optional(d200),
        )
        for ts, price, d50, d200 in zip(
            df.index[-CHART_WINDOW:],
            prices[-CHART_WINDOW:],
            sma50_series.to_numpy(dtype=float)[-CHART_WINDOW:],
            sma200_series.to_numpy(dtype=float)[-CHART_WINDOW:],
        )
    ]

    return TrendAnalysis(
        signal=verdict.signal,
        status_label=verdict.label,
        technical_score=verdict.score,
        summary=summary,
        last_price=last_price,
        main_dma=main_dma,
        dma_type=dma_type,
        sma100=sma100,
        metrics=metrics,
        chart=chart,
    )


__all__ = [
    "ChartPoint",
    "InsufficientDataError",
    "MIN_TREND_POINTS",
    "TechnicalMetrics",
    "TrendAnalysis",
    "TrendSignal",
    "analyze_trend",
    "crossed_below_recently",
    "regime_persistence",
]
