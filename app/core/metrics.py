"""
Prometheus metrics for the picks API.

HTTP request metrics come from prometheus-fastapi-instrumentator (see
app.main); this module defines the domain counters.

Metrics exposed:
- Settlement outcomes (settled / idempotent repeat / conflict)
- Analytics cache hits and misses
- Data store connectivity failures
- Predictions and news items written
"""
from prometheus_client import Counter, Gauge

# Settlement
game_settlements_total = Counter(
    "game_settlements_total",
    "Settlement attempts by result",
    ["result"]  # settled, unchanged, conflict
)

# Analytics cache
analytics_cache_hits_total = Counter(
    "analytics_cache_hits_total",
    "Performance records served from cache"
)

analytics_cache_misses_total = Counter(
    "analytics_cache_misses_total",
    "Performance records recomputed"
)

analytics_cache_entries = Gauge(
    "analytics_cache_entries",
    "Performance records currently cached"
)

# Store
store_failures_total = Counter(
    "store_failures_total",
    "Database connectivity failures",
    ["error_type"]
)

# Content writes
predictions_written_total = Counter(
    "predictions_written_total",
    "Predictions created or updated",
    ["operation"]
)

news_written_total = Counter(
    "news_written_total",
    "News items created or updated",
    ["operation"]
)


def record_settlement(result: str) -> None:
    game_settlements_total.labels(result=result).inc()


def record_cache_lookup(hit: bool, size: int) -> None:
    if hit:
        analytics_cache_hits_total.inc()
    else:
        analytics_cache_misses_total.inc()
    analytics_cache_entries.set(size)


def record_store_failure(error_type: str = "unknown") -> None:
    store_failures_total.labels(error_type=error_type).inc()
