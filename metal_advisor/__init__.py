"""Precious-metal portfolio analytics and technical advisory service."""

__version__ = "0.1.0"
