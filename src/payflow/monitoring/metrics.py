"""
Prometheus metrics for PayFlow.

Tracks:
- Transaction counts by status and request durations
- Requests in flight
- Stats cache hit ratio
- Fraud alerts, blocks, lookup failures and evaluation time
"""

from prometheus_client import Counter, Gauge, Histogram

# Transaction metrics
transactions_total = Counter(
    "payflow_transactions_total",
    "Total number of transactions",
    ["status"],
)

transaction_duration_seconds = Histogram(
    "payflow_transaction_duration_seconds",
    "Transaction duration in seconds",
    ["endpoint"],
)

requests_in_flight = Gauge(
    "payflow_requests_in_flight",
    "Number of requests currently in flight",
)

# Cache metrics
cache_hit_ratio = Gauge(
    "payflow_cache_hit_ratio",
    "Cache hit ratio",
)

# Fraud metrics
fraud_alerts_total = Counter(
    "payflow_fraud_alerts_total",
    "Total fraud alerts raised",
    ["rule", "severity"],
)

fraud_blocked_total = Counter(
    "payflow_fraud_blocked_total",
    "Total transactions blocked by fraud detection",
)

fraud_lookup_failures_total = Counter(
    "payflow_fraud_lookup_failures_total",
    "History lookups that failed and skipped a rule",
    ["rule"],
)

fraud_evaluation_duration_seconds = Histogram(
    "payflow_fraud_evaluation_duration_seconds",
    "Fraud evaluation duration in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
