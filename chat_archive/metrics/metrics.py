"""Prometheus metrics for archive runs."""

import prometheus_client as _prom

Counter = _prom.Counter
Histogram = _prom.Histogram


# Per-call Slack API metrics
API_LATENCY = Histogram(
    "chat_archive_api_latency_seconds",
    "Slack API latency in seconds by method and status",
    ["method", "status"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)
API_CALLS = Counter(
    "chat_archive_api_calls_total",
    "Slack API call count by method and status",
    ["method", "status"],
)

# Paginated operation metrics
OP_LATENCY = Histogram(
    "chat_archive_operation_latency_seconds",
    "Total latency of paginated Slack operations by operation",
    ["operation"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, float("inf")),
)
OP_ITEMS = Histogram(
    "chat_archive_operation_items",
    "Total number of items returned by paginated Slack operations",
    ["operation"],
    buckets=(0, 1, 5, 10, 20, 50, 100, 200, 500, 1000, 5000, float("inf")),
)

# Per-run lookup caches
USER_CACHE_HITS = Counter(
    "chat_archive_user_cache_hits_total",
    "User display name cache hits",
)
USER_CACHE_MISSES = Counter(
    "chat_archive_user_cache_misses_total",
    "User display name cache misses",
)

# Output tree
PAGES_WRITTEN = Counter(
    "chat_archive_pages_written_total",
    "Documents written because their content changed, by kind",
    ["kind"],
)
