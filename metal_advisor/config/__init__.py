"""Configuration package for the Metal Advisor service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
