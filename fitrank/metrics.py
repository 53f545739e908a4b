"""Prometheus metrics for fitrank."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("fitrank", "fitrank application info")
app_info.info({"version": "0.1.0", "name": "fitrank"})

# Request metrics
recommendation_requests_total = Counter(
    "recommendation_requests_total",
    "Total number of recommendation requests served",
    ["source", "status"],
)

recommendation_fallbacks_total = Counter(
    "recommendation_fallbacks_total",
    "Total number of requests answered by the fallback scorer",
    ["reason"],
)

# Ranking service metrics
ranking_retries_total = Counter(
    "ranking_retries_total",
    "Total number of retried ranking service calls",
)

ranking_entries_dropped_total = Counter(
    "ranking_entries_dropped_total",
    "Total number of ranking reply entries dropped during validation",
    ["reason"],
)

ranking_repair_stage_total = Counter(
    "ranking_repair_stage_total",
    "Ranking replies by the repair stage that produced a valid document",
    ["stage"],
)

ranking_duration_seconds = Histogram(
    "ranking_duration_seconds",
    "Time spent in the generative ranking path",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0],
)

# Catalog cache metrics
priority_scores_refreshed_total = Counter(
    "priority_scores_refreshed_total",
    "Total number of cached priority scores recomputed",
)
