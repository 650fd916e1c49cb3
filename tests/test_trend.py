"""Trend signal engine tests."""

from __future__ import annotations

import random
from datetime import date, timedelta

import numpy as np
import pytest

from metal_advisor.indicators.trend import (
    DEATH_CROSS_CLAUSE,
    GOLDEN_CROSS_CLAUSE,
    InsufficientDataError,
    TrendSignal,
    analyze_trend,
    crossed_below_recently,
    regime_persistence,
)
from metal_advisor.services.series_repository import PricePoint


def _points(prices: list[float], start: date = date(2024, 1, 1)) -> list[PricePoint]:
    return [PricePoint(date=start + timedelta(days=i), price=price) for i, price in enumerate(prices)]


def test_short_series_is_insufficient():
    with pytest.raises(InsufficientDataError):
        analyze_trend(_points([1000.0] * 99))


def test_constant_series_has_equal_averages():
    analysis = analyze_trend(_points([1000.0] * 250))

    assert analysis.metrics.sma50 == pytest.approx(1000.0)
    assert analysis.metrics.sma200 == pytest.approx(1000.0)
    assert analysis.sma100 == pytest.approx(1000.0)
    assert analysis.metrics.golden_cross is True
    assert analysis.dma_type == "200-DMA"


def test_trend_reclaim():
    prices = [1000.0] * 200 + [990.0] * 10 + [1010.0] * 4
    analysis = analyze_trend(_points(prices))

    assert analysis.status_label == "BUY (Trend Reclaim)"
    assert analysis.signal == TrendSignal.BUY
    assert analysis.technical_score == 75
    assert analysis.metrics.regime_above_days == 4
    assert analysis.metrics.crossed_within_5_days is True


def test_safe_zone_near_the_floor():
    prices = [1000.0] * 190 + [1000.0 + 0.4 * k for k in range(1, 61)]
    analysis = analyze_trend(_points(prices))

    assert analysis.main_dma == pytest.approx(1003.66, abs=0.01)
    assert analysis.metrics.distance_pct == pytest.approx(2.03, abs=0.01)
    assert analysis.status_label == "BUY (Safe Zone)"
    assert analysis.technical_score == 90
    assert analysis.summary.endswith(GOLDEN_CROSS_CLAUSE)


def test_extended_uptrend():
    prices = [1000.0] * 200 + [1000.0 + 4 * k for k in range(1, 51)]
    analysis = analyze_trend(_points(prices))

    assert analysis.metrics.distance_pct > 8
    assert analysis.status_label == "HOLD (Extended)"
    assert analysis.signal == TrendSignal.HOLD
    assert analysis.technical_score == 60


def test_steady_uptrend():
    prices = [1000.0] * 200 + [1000.0 + k for k in range(1, 51)]
    analysis = analyze_trend(_points(prices))

    assert 3 < analysis.metrics.distance_pct <= 8
    assert analysis.status_label == "HOLD (Uptrend)"
    assert analysis.technical_score == 70


def test_watchlist_after_fresh_break():
    prices = [1000.0] * 200 + [1000.0 + k for k in range(1, 41)] + [900.0] * 3
    analysis = analyze_trend(_points(prices))

    assert analysis.metrics.regime_below_days == 3
    assert analysis.status_label == "HOLD (Watchlist)"
    assert analysis.technical_score == 40


def test_prolonged_weakness_sells():
    prices = [1000.0] * 200 + [950.0] * 30
    analysis = analyze_trend(_points(prices, start=date(2023, 3, 1)), metal="silver")

    assert analysis.metrics.regime_below_days >= 10
    assert analysis.status_label == "SELL (Reduce)"
    assert analysis.signal == TrendSignal.SELL
    assert analysis.technical_score == 20
    assert analysis.summary.endswith(DEATH_CROSS_CLAUSE)


def test_falls_back_to_100_dma_without_200_days():
    prices = [1000.0] * 100 + [1000.0 + k for k in range(1, 51)]
    analysis = analyze_trend(_points(prices))

    assert analysis.dma_type == "100-DMA"
    assert analysis.metrics.sma200 is None
    assert analysis.metrics.golden_cross is None
    assert GOLDEN_CROSS_CLAUSE not in analysis.summary
    assert DEATH_CROSS_CLAUSE not in analysis.summary


def test_safe_zone_summary_names_the_metal():
    prices = [1000.0] * 190 + [1000.0 + 0.4 * k for k in range(1, 61)]
    analysis = analyze_trend(_points(prices), metal="silver")

    assert analysis.summary.startswith("Silver is currently resting")


def test_chart_is_limited_to_last_250_points():
    analysis = analyze_trend(_points([1000.0 + (i % 7) for i in range(320)]))

    assert len(analysis.chart) == 250
    assert analysis.chart[-1].date == date(2024, 1, 1) + timedelta(days=319)
    assert analysis.chart[-1].sma200 == pytest.approx(analysis.metrics.sma200)


def test_golden_cross_matches_averages_on_random_walks():
    rng = random.Random(7)
    for _ in range(25):
        price = 1000.0
        prices = []
        for _ in range(rng.randint(200, 320)):
            price = max(1.0, price * (1 + rng.uniform(-0.02, 0.02)))
            prices.append(price)
        metrics = analyze_trend(_points(prices)).metrics
        assert metrics.golden_cross == (metrics.sma50 >= metrics.sma200)
        assert metrics.regime_above_days == 0 or metrics.regime_below_days == 0


def test_regime_persistence_stops_at_first_flip():
    prices = np.array([1.0, 3.0, 3.0, 1.0, 3.0, 3.0])
    dma = np.array([np.nan, 2.0, 2.0, 2.0, 2.0, 2.0])

    assert regime_persistence(prices, dma) == (2, 0)
    assert crossed_below_recently(prices, dma, window=3) is True
    assert crossed_below_recently(prices, dma, window=2) is False
