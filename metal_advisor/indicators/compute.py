"""Moving-average helpers shared by the trend and advisory engines."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def sma(series: pd.Series, window: int) -> pd.Series:
    """Contemporaneous SMA: each value only uses data up to that row."""

    return series.rolling(window=window, min_periods=window).mean()


def latest_sma(prices: Sequence[float], period: int) -> float | None:
    """Mean of the last ``period`` prices, or ``None`` when there are fewer."""

    if period <= 0 or len(prices) < period:
        return None
    return float(np.mean(np.asarray(prices[-period:], dtype=float)))


def price_frame(points) -> pd.DataFrame:
    """Build a date-indexed frame with a ``close`` column from price points."""

    if not points:
        return pd.DataFrame({"close": pd.Series(dtype=float)})
    df = pd.DataFrame({"close": [float(p.price) for p in points]}, index=pd.to_datetime([p.date for p in points]))
    return df.sort_index()


__all__ = ["latest_sma", "price_frame", "sma"]
