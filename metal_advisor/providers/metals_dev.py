"""metals.dev client used for historical and latest metal prices."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import date
from typing import Any, Deque, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from metal_advisor.config import get_settings

logger = logging.getLogger(__name__)


class MetalsApiError(RuntimeError):
    """Raised when metals.dev fails or returns an error payload."""


class _MetalPrices(BaseModel):
    gold: Optional[float] = None
    silver: Optional[float] = None
    platinum: Optional[float] = None
    palladium: Optional[float] = None


class _LatestResponse(BaseModel):
    status: str
    currency: Optional[str] = None
    unit: Optional[str] = None
    metals: _MetalPrices


class _RateEntry(BaseModel):
    metals: _MetalPrices
    currencies: Dict[str, float] = {}


class _TimeseriesResponse(BaseModel):
    status: str
    rates: Dict[date, _RateEntry]


@dataclass(frozen=True)
class HistoricalRate:
    """One day of history: USD per troy ounce and the USD/currency rate if any."""

    date: date
    price_usd_per_oz: float
    fx_rate: float | None


class MetalsDevClient:
    """Throttled metals.dev client with convenience helpers."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        requests_per_minute: int | None = None,
        timeout_seconds: float | None = None,
        client: Any | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.metals_api_key
        self._base_url = (base_url or settings.metals_api_base_url).rstrip("/")
        self._requests_per_minute = requests_per_minute or settings.metals_api_requests_per_minute
        self._timeout = timeout_seconds or settings.metals_api_timeout_seconds
        self._client = client or httpx.AsyncClient()
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    async def _throttle(self) -> None:
        async with self._lock:
            now = time.monotonic()
            while self._calls and now - self._calls[0] >= 60:
                self._calls.popleft()
            if len(self._calls) >= self._requests_per_minute:
                wait_for = 60 - (now - self._calls[0])
                logger.debug("metals.dev rate limit reached, sleeping %.2fs", wait_for)
                await asyncio.sleep(wait_for)
                self._calls.popleft()
            self._calls.append(time.monotonic())

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise MetalsApiError("METALS_API_KEY is not configured")
        await self._throttle()
        query = {"api_key": self._api_key, **params}
        try:
            response = await self._client.get(f"{self._base_url}{path}", params=query, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise MetalsApiError(f"Failed to reach metals.dev: {exc}") from exc
        if response.status_code >= 400:
            raise MetalsApiError(f"metals.dev error {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise MetalsApiError("metals.dev returned invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise MetalsApiError("metals.dev response is not an object")
        if payload.get("status") != "success":
            raise MetalsApiError(f"metals.dev returned status: {payload.get('status')}")
        return payload

    async def latest_price(self, metal: str, currency: str) -> float:
        """Return the current price per gram of ``metal`` in ``currency``."""

        payload = await self._get("/latest", {"currency": currency, "unit": "g"})
        try:
            parsed = _LatestResponse.model_validate(payload)
        except ValidationError as exc:
            raise MetalsApiError("Malformed latest-price response") from exc
        price = getattr(parsed.metals, metal, None)
        if not price or price <= 0:
            raise MetalsApiError(f"No {metal} price in response")
        return round(price, 2)

    async def timeseries(self, metal: str, currency: str, start: date, end: date) -> list[HistoricalRate]:
        """Return daily USD/oz prices between ``start`` and ``end`` inclusive.

        metals.dev caps a single request at 30 days; callers are expected to
        chunk longer ranges.
        """

        payload = await self._get(
            "/timeseries",
            {
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "base": currency,
                "metals": metal,
            },
        )
        try:
            parsed = _TimeseriesResponse.model_validate(payload)
        except ValidationError as exc:
            raise MetalsApiError("Malformed timeseries response") from exc
        rates: list[HistoricalRate] = []
        for day, entry in parsed.rates.items():
            price = getattr(entry.metals, metal, None)
            if not price or price <= 0:
                continue
            rates.append(HistoricalRate(date=day, price_usd_per_oz=price, fx_rate=entry.currencies.get(currency)))
        return rates

    async def aclose(self) -> None:
        await self._client.aclose()


_client: MetalsDevClient | None = None


def get_metals_client() -> MetalsDevClient:
    """FastAPI dependency returning a process-wide client."""

    global _client  # noqa: PLW0603
    if _client is None:
        _client = MetalsDevClient()
    return _client


__all__ = ["HistoricalRate", "MetalsApiError", "MetalsDevClient", "get_metals_client"]
