"""Database model exports."""

from .series import CachedPriceSeries

__all__ = ["CachedPriceSeries"]
