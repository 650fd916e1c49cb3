"""Portfolio valuation and return metrics (absolute ROI, CAGR, XIRR).

Only lots still held count towards invested capital, CAGR and XIRR; sold and
gifted lots are history. Any metric that cannot be computed is reported as 0.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

DAYS_PER_YEAR_CAGR = 365.25
DAYS_PER_YEAR_XIRR = 365.0

XIRR_INITIAL_GUESS = 0.1
XIRR_TOLERANCE = 1e-7
XIRR_MAX_ITERATIONS = 100
XIRR_MIN_DERIVATIVE = 1e-15


class LotStatus(str, Enum):
    HOLD = "HOLD"
    SOLD = "SOLD"
    GIFTED = "GIFTED"


class Purity(str, Enum):
    K24 = "24K"
    K22 = "22K"
    K18 = "18K"
    S999 = "999 Fine"
    S925 = "925 Sterling"


PURITY_MULTIPLIERS: dict[Purity, float] = {
    Purity.K24: 1.0,
    Purity.K22: 0.9167,
    Purity.K18: 0.75,
    Purity.S999: 1.0,
    Purity.S925: 0.925,
}


@dataclass
class Lot:
    metal: str
    purity: Purity
    weight_grams: float
    total_paid: float
    purchase_date: date
    status: LotStatus = LotStatus.HOLD
    sale_total_received: float | None = None
    gifted_market_value: float | None = None

    @property
    def purchase_price_per_gram(self) -> float:
        if not self.weight_grams:
            return 0.0
        return self.total_paid / self.weight_grams


@dataclass(frozen=True)
class CashFlow:
    amount: float
    date: date


@dataclass
class PerformanceStats:
    total_invested: float
    current_value: float
    total_gain: float
    gain_percentage: float


@dataclass
class HoldingGroup:
    weight_grams: float = 0.0
    total_paid: float = 0.0

    @property
    def average_price_per_gram(self) -> float:
        return self.total_paid / self.weight_grams if self.weight_grams > 0 else 0.0


@dataclass
class RealizedSummary:
    sold_count: int
    realized_invested: float
    realized_received: float
    realized_profit: float
    realized_pct: float


@dataclass
class GiftedSummary:
    gifted_count: int
    gifted_cost: float
    gifted_value: float


@dataclass
class ReturnsResult:
    absolute_roi: float
    cagr: float
    xirr: float
    xirr_computable: bool
    total_invested: float
    current_value: float


def held_lots(lots: Iterable[Lot]) -> list[Lot]:
    return [lot for lot in lots if LotStatus(lot.status) == LotStatus.HOLD]


def value_lots(lots: Iterable[Lot], spot_per_gram: Mapping[str, float]) -> PerformanceStats:
    """Value held lots at the given 24K/999 spot price per gram of each metal."""

    total_invested = 0.0
    current_value = 0.0
    for lot in held_lots(lots):
        total_invested += lot.total_paid
        base_price = spot_per_gram.get(lot.metal, 0.0) or 0.0
        current_value += lot.weight_grams * base_price * PURITY_MULTIPLIERS[Purity(lot.purity)]
    total_gain = current_value - total_invested
    gain_pct = (total_gain / total_invested * 100) if total_invested > 0 else 0.0
    return PerformanceStats(
        total_invested=total_invested,
        current_value=current_value,
        total_gain=total_gain,
        gain_percentage=gain_pct,
    )


HOLDING_GROUPS = ("24K", "22K", "18K", "SILVER")


def holding_summary(lots: Iterable[Lot]) -> dict[str, HoldingGroup]:
    """Weight and weighted average cost per gram of held lots by purity group.

    Gold is grouped by karat; gold of any other purity is left out. All silver
    shares one group.
    """

    groups = {key: HoldingGroup() for key in HOLDING_GROUPS}
    for lot in held_lots(lots):
        purity = Purity(lot.purity)
        if lot.metal == "gold":
            if purity not in (Purity.K24, Purity.K22, Purity.K18):
                continue
            group = groups[purity.value]
        else:
            group = groups["SILVER"]
        group.weight_grams += lot.weight_grams
        group.total_paid += lot.total_paid
    return groups


def realized_summary(lots: Iterable[Lot]) -> RealizedSummary:
    """Profit on sold lots whose sale proceeds were recorded."""

    sold = [
        lot for lot in lots if LotStatus(lot.status) == LotStatus.SOLD and lot.sale_total_received is not None
    ]
    invested = sum(lot.total_paid or 0.0 for lot in sold)
    received = sum(lot.sale_total_received or 0.0 for lot in sold)
    profit = received - invested
    return RealizedSummary(
        sold_count=len(sold),
        realized_invested=invested,
        realized_received=received,
        realized_profit=profit,
        realized_pct=(profit / invested * 100) if invested > 0 else 0.0,
    )


def gifted_summary(lots: Iterable[Lot]) -> GiftedSummary:
    gifted = [
        lot for lot in lots if LotStatus(lot.status) == LotStatus.GIFTED and lot.gifted_market_value is not None
    ]
    return GiftedSummary(
        gifted_count=len(gifted),
        gifted_cost=sum(lot.total_paid or 0.0 for lot in gifted),
        gifted_value=sum(lot.gifted_market_value or 0.0 for lot in gifted),
    )


def absolute_roi(total_invested: float, current_value: float) -> float:
    if total_invested <= 0:
        return 0.0
    return (current_value - total_invested) / total_invested * 100


def compute_cagr(total_invested: float, current_value: float, years_held: float) -> float:
    if years_held <= 0 or current_value <= 0 or total_invested <= 0:
        return 0.0
    return ((current_value / total_invested) ** (1 / years_held) - 1) * 100


def xirr(cash_flows: Sequence[CashFlow]) -> float | None:
    """Annual rate solving ``sum(amount / (1 + r) ** years) == 0``.

    Newton-Raphson from 10%. Returns ``None`` when the solver cannot produce a
    finite answer (vanishing derivative, degenerate discount factor, or a
    cash-flow list without both signs).
    """

    if not any(cf.amount < 0 for cf in cash_flows) or not any(cf.amount > 0 for cf in cash_flows):
        return None
    origin = min(cf.date for cf in cash_flows)
    flows = [(cf.amount, (cf.date - origin).days / DAYS_PER_YEAR_XIRR) for cf in cash_flows]

    rate = XIRR_INITIAL_GUESS
    for _ in range(XIRR_MAX_ITERATIONS):
        base = 1 + rate
        if base <= 0:
            return None
        npv = 0.0
        derivative = 0.0
        for amount, years in flows:
            try:
                factor = base**years
            except OverflowError:
                return None
            if not math.isfinite(factor) or factor == 0:
                return None
            npv += amount / factor
            derivative -= years * amount / (factor * base)
        if abs(derivative) < XIRR_MIN_DERIVATIVE:
            return None
        new_rate = rate - npv / derivative
        if not math.isfinite(new_rate):
            return None
        if abs(new_rate - rate) < XIRR_TOLERANCE:
            rate = new_rate
            break
        rate = new_rate
    return rate if math.isfinite(rate) else None


def lot_cash_flows(lots: Iterable[Lot], current_value: float, as_of: date) -> list[CashFlow]:
    flows = [CashFlow(amount=-lot.total_paid, date=lot.purchase_date) for lot in held_lots(lots)]
    flows.append(CashFlow(amount=current_value, date=as_of))
    return flows


def compute_returns(lots: Sequence[Lot], current_value: float, now: datetime | date | None = None) -> ReturnsResult:
    """Absolute ROI, CAGR and XIRR (all in percent) for the held lots."""

    as_of = now or date.today()
    if isinstance(as_of, datetime):
        as_of = as_of.date()
    holding = held_lots(lots)
    total_invested = sum(lot.total_paid for lot in holding)

    cagr = 0.0
    xirr_pct = 0.0
    computable = False
    if holding:
        earliest = min(lot.purchase_date for lot in holding)
        years_held = (as_of - earliest).days / DAYS_PER_YEAR_CAGR
        cagr = compute_cagr(total_invested, current_value, years_held)
        rate = xirr(lot_cash_flows(holding, current_value, as_of))
        if rate is None:
            logger.debug("XIRR not computable for %s held lots", len(holding))
        else:
            xirr_pct = rate * 100
            computable = True

    return ReturnsResult(
        absolute_roi=absolute_roi(total_invested, current_value),
        cagr=cagr,
        xirr=xirr_pct,
        xirr_computable=computable,
        total_invested=total_invested,
        current_value=current_value,
    )


__all__ = [
    "CashFlow",
    "GiftedSummary",
    "HOLDING_GROUPS",
    "HoldingGroup",
    "Lot",
    "LotStatus",
    "PURITY_MULTIPLIERS",
    "PerformanceStats",
    "Purity",
    "RealizedSummary",
    "ReturnsResult",
    "absolute_roi",
    "compute_cagr",
    "compute_returns",
    "gifted_summary",
    "held_lots",
    "holding_summary",
    "lot_cash_flows",
    "realized_summary",
    "value_lots",
    "xirr",
]
