"""Glasscast city sync and weather caching layer."""

__version__ = "0.1.0"
