"""CLI wrapper for seeding every cached price series."""

from __future__ import annotations

import argparse
import asyncio

from metal_advisor.config import get_settings
from metal_advisor.config.settings import SUPPORTED_CURRENCIES, SUPPORTED_METALS
from metal_advisor.core.logging import setup_logging
from metal_advisor.db.init import init_database
from metal_advisor.db.session import _session_factory
from metal_advisor.providers.metals_dev import get_metals_client
from metal_advisor.services.price_cache import PriceSeriesCache
from metal_advisor.services.series_repository import SqlSeriesRepository


async def _run(currencies: list[str], metals: list[str], days: int | None) -> None:
    await init_database()
    client = get_metals_client()
    cache = PriceSeriesCache(SqlSeriesRepository(_session_factory), client)
    try:
        counts = await cache.seed_all(currencies, metals=metals, days=days)
    finally:
        await client.aclose()
    for (metal, currency), count in counts.items():
        print(f"Seeded {count} points for {metal}/{currency}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Reseed cached metal price series from metals.dev")
    parser.add_argument("--currency", action="append", choices=SUPPORTED_CURRENCIES, dest="currencies")
    parser.add_argument("--metal", action="append", choices=SUPPORTED_METALS, dest="metals")
    parser.add_argument("--days", type=int, default=get_settings().series_default_days)
    args = parser.parse_args()
    setup_logging()
    asyncio.run(
        _run(
            args.currencies or list(SUPPORTED_CURRENCIES),
            args.metals or list(SUPPORTED_METALS),
            args.days,
        )
    )


if __name__ == "__main__":
    main()
