"""Metrics module for Prometheus monitoring."""

from .metrics import (
    API_CALLS,
    API_LATENCY,
    OP_ITEMS,
    OP_LATENCY,
    PAGES_WRITTEN,
    USER_CACHE_HITS,
    USER_CACHE_MISSES,
)

__all__ = [
    "API_CALLS",
    "API_LATENCY",
    "OP_ITEMS",
    "OP_LATENCY",
    "PAGES_WRITTEN",
    "USER_CACHE_HITS",
    "USER_CACHE_MISSES",
]
