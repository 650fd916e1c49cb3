"""Allocation advisor: ordered DMA rules for lump-sum and SIP investors.

Independent of the dashboard trend signal: the two rule sets share inputs
but use different thresholds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from metal_advisor.indicators.compute import latest_sma

SIP_CAP_PCT = 10
LUMPSUM_BLOCK_DELTA50 = 4
RISK_OFF_TARGET_EXPOSURE_PCT = 30
MIN_ADVISOR_POINTS = 50


class AdvisorMode(str, Enum):
    LUMPSUM = "LUMPSUM"
    SIP = "SIP"


class AdvisorSignal(str, Enum):
    SELL_RISK_OFF = "SELL_RISK_OFF"
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    ACCUMULATE = "ACCUMULATE"
    HOLD = "HOLD"
    WAIT_TRIM = "WAIT_TRIM"


@dataclass
class AdvisorMetrics:
    delta50: float
    delta200: float
    golden_cross: bool
    death_cross: bool
    block_lumpsum: bool


@dataclass
class AdvisorOutput:
    rule_id: str
    signal: AdvisorSignal
    invest_pct_now: float
    lump_sum_allowed: bool
    sip_allowed: bool
    message: str
    next_action: str
    metrics: AdvisorMetrics
    allocation_now_amount: float | None = None
    target_exposure_pct: float | None = None
    trim_pct_optional: str | None = None


@dataclass(frozen=True)
class _Context:
    price: float
    sma50: float
    sma200: float
    mode: AdvisorMode
    metrics: AdvisorMetrics


@dataclass(frozen=True)
class AdvisorRule:
    rule_id: str
    condition: Callable[[_Context], bool]
    signal: AdvisorSignal
    invest_pct: Callable[[_Context], float]
    lump_sum_allowed: Callable[[_Context], bool]
    sip_allowed: bool
    message: str
    next_action: str
    target_exposure_pct: float | None = None
    trim_pct_optional: str | None = None


def _sip_only(pct: float) -> Callable[[_Context], float]:
    return lambda ctx: pct if ctx.mode == AdvisorMode.SIP else 0


RULES: Sequence[AdvisorRule] = (
    AdvisorRule(
        rule_id="R1",
        condition=lambda c: c.price < c.sma200 and c.metrics.death_cross,
        signal=AdvisorSignal.SELL_RISK_OFF,
        invest_pct=lambda c: 0,
        lump_sum_allowed=lambda c: False,
        sip_allowed=False,
        message="Trend breakdown: price below 200-DMA and 50-DMA below 200-DMA. Reduce risk exposure.",
        next_action="Do not invest now; reduce exposure toward 30%.",
        target_exposure_pct=RISK_OFF_TARGET_EXPOSURE_PCT,
    ),
    AdvisorRule(
        rule_id="R2",
        condition=lambda c: c.price <= c.sma200 or c.metrics.delta200 <= 2,
        signal=AdvisorSignal.STRONG_BUY,
        invest_pct=lambda c: 100,
        lump_sum_allowed=lambda c: True,
        sip_allowed=True,
        message="Strong accumulation zone near/below 200-DMA. Best risk-adjusted entry.",
        next_action="Invest full planned allocation now.",
    ),
    AdvisorRule(
        rule_id="R3",
        condition=lambda c: c.price > c.sma200 and c.metrics.golden_cross and c.metrics.delta50 <= 2,
        signal=AdvisorSignal.BUY,
        invest_pct=lambda c: 80,
        lump_sum_allowed=lambda c: True,
        sip_allowed=True,
        message="Bull trend intact and price is close to 50-DMA. Good entry with high conviction.",
        next_action="Invest 80% now; keep 20% for dips.",
    ),
    AdvisorRule(
        rule_id="R4",
        condition=lambda c: c.metrics.golden_cross and 2 < c.metrics.delta50 <= 6,
        signal=AdvisorSignal.ACCUMULATE,
        invest_pct=lambda c: 40,
        lump_sum_allowed=lambda c: not c.metrics.block_lumpsum,
        sip_allowed=True,
        message="Uptrend intact but mildly extended. Use staggered buying.",
        next_action="Invest 40% now; reserve 60% for pullbacks.",
    ),
    AdvisorRule(
        rule_id="R5",
        condition=lambda c: c.metrics.golden_cross and 6 < c.metrics.delta50 <= 10,
        signal=AdvisorSignal.HOLD,
        invest_pct=_sip_only(min(10, SIP_CAP_PCT)),
        lump_sum_allowed=lambda c: False,
        sip_allowed=True,
        message="Overextended above 50-DMA. Prefer waiting or SIP only.",
        next_action="Do not lump-sum; SIP up to 10% only.",
    ),
    AdvisorRule(
        rule_id="R6",
        condition=lambda c: c.metrics.delta50 > 10,
        signal=AdvisorSignal.WAIT_TRIM,
        invest_pct=_sip_only(min(5, SIP_CAP_PCT)),
        lump_sum_allowed=lambda c: False,
        sip_allowed=True,
        message="Overbought zone. Avoid lump-sum. Consider trimming profits if overweight.",
        next_action="Avoid buying; SIP max 5% if needed; optionally trim 10-20% if overweight.",
        trim_pct_optional="10-20",
    ),
    AdvisorRule(
        rule_id="R7",
        condition=lambda c: True,
        signal=AdvisorSignal.HOLD,
        invest_pct=_sip_only(5),
        lump_sum_allowed=lambda c: False,
        sip_allowed=True,
        message="No strong signal. Stay cautious.",
        next_action="SIP small (5%) or wait.",
    ),
)


def _usable(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value != 0


def compute_metrics(price: float | None, sma50: float | None, sma200: float | None) -> AdvisorMetrics:
    if not (_usable(price) and _usable(sma50) and _usable(sma200)):
        return AdvisorMetrics(delta50=0, delta200=0, golden_cross=False, death_cross=False, block_lumpsum=False)
    delta50 = (price - sma50) / sma50 * 100
    return AdvisorMetrics(
        delta50=delta50,
        delta200=(price - sma200) / sma200 * 100,
        golden_cross=sma50 >= sma200,
        death_cross=sma50 < sma200,
        block_lumpsum=delta50 > LUMPSUM_BLOCK_DELTA50,
    )


def allocation_amount(planned_allocation: float | None, invest_pct: float) -> float | None:
    if planned_allocation is None or not math.isfinite(planned_allocation) or planned_allocation <= 0:
        return None
    return planned_allocation * invest_pct / 100


def evaluate_advice(
    price: float | None,
    sma50: float | None,
    sma200: float | None,
    mode: AdvisorMode | str = AdvisorMode.LUMPSUM,
    planned_allocation: float | None = None,
) -> AdvisorOutput:
    """Evaluate rules R1-R7 in order and return the first match."""

    mode = AdvisorMode(mode)
    metrics = compute_metrics(price, sma50, sma200)
    if not (_usable(price) and _usable(sma50) and _usable(sma200)):
        return AdvisorOutput(
            rule_id="AWAITING_DATA",
            signal=AdvisorSignal.HOLD,
            invest_pct_now=0,
            lump_sum_allowed=False,
            sip_allowed=False,
            message="Awaiting market data...",
            next_action="Syncing...",
            metrics=metrics,
            allocation_now_amount=allocation_amount(planned_allocation, 0),
        )

    ctx = _Context(price=price, sma50=sma50, sma200=sma200, mode=mode, metrics=metrics)
    rule = next(r for r in RULES if r.condition(ctx))
    invest_pct = rule.invest_pct(ctx)
    return AdvisorOutput(
        rule_id=rule.rule_id,
        signal=rule.signal,
        invest_pct_now=invest_pct,
        lump_sum_allowed=rule.lump_sum_allowed(ctx),
        sip_allowed=rule.sip_allowed,
        message=rule.message,
        next_action=rule.next_action,
        metrics=metrics,
        allocation_now_amount=allocation_amount(planned_allocation, invest_pct),
        target_exposure_pct=rule.target_exposure_pct,
        trim_pct_optional=rule.trim_pct_optional,
    )


def advisor_inputs_from_series(points: Sequence) -> tuple[float, float, float]:
    """Derive ``(price, sma50, sma200)`` from a chronological series.

    With fewer than 200 points the long average falls back to the mean of
    the whole series.
    """

    if len(points) < MIN_ADVISOR_POINTS:
        raise ValueError(f"Need at least {MIN_ADVISOR_POINTS} daily prices for DMA calculations.")
    prices = [float(p.price) for p in sorted(points, key=lambda p: p.date)]
    sma50 = latest_sma(prices, 50)
    sma200 = latest_sma(prices, 200) or latest_sma(prices, len(prices))
    return round(prices[-1], 2), round(sma50, 2), round(sma200, 2)


__all__ = [
    "AdvisorMetrics",
    "AdvisorMode",
    "AdvisorOutput",
    "AdvisorRule",
    "AdvisorSignal",
    "RULES",
    "SIP_CAP_PCT",
    "advisor_inputs_from_series",
    "allocation_amount",
    "compute_metrics",
    "evaluate_advice",
]
