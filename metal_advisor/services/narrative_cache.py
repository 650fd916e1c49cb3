"""In-process TTL cache in front of the narrative service.

Narratives are expensive to generate and change slowly, so a successful
answer is reused for ``narrative_cache_hours`` per metal. Failures are never
cached; the next request goes back to the provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from metal_advisor.config import get_settings
from metal_advisor.providers.narrative import MetalNarrative

logger = logging.getLogger(__name__)


class NarrativeSource(Protocol):
    @property
    def configured(self) -> bool:
        ...

    async def fetch(self, metal: str) -> MetalNarrative:
        ...


@dataclass
class CacheEntry:
    expires_at: datetime
    narrative: MetalNarrative


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CachedNarrativeClient:
    """Wraps a narrative source and serves repeat requests from memory."""

    def __init__(
        self,
        source: NarrativeSource,
        *,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._ttl = ttl if ttl is not None else timedelta(hours=get_settings().narrative_cache_hours)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def configured(self) -> bool:
        return self._source.configured

    def get_cached(self, metal: str) -> MetalNarrative | None:
        entry = self._entries.get(metal)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(metal, None)
            return None
        return entry.narrative

    def invalidate(self, metal: str | None = None) -> None:
        if metal is None:
            self._entries.clear()
        else:
            self._entries.pop(metal, None)

    async def fetch(self, metal: str) -> MetalNarrative:
        cached = self.get_cached(metal)
        if cached is not None:
            logger.debug("Using cached narrative for %s", metal)
            return cached
        narrative = await self._source.fetch(metal)
        self._entries[metal] = CacheEntry(expires_at=self._clock() + self._ttl, narrative=narrative)
        logger.info("Cached narrative for %s until %s", metal, self._entries[metal].expires_at.isoformat())
        return narrative


__all__ = ["CacheEntry", "CachedNarrativeClient", "NarrativeSource"]
