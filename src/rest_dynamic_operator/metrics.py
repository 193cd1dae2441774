"""Prometheus metrics for the REST Dynamic Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "rest_dynamic_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "action", "result"],
)

reconcile_duration_seconds = Histogram(
    "rest_dynamic_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind", "action"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Work queue metrics
queue_depth = Gauge(
    "rest_dynamic_operator_queue_depth",
    "Number of events waiting in the work queue",
)

requeues_total = Counter(
    "rest_dynamic_operator_requeues_total",
    "Total number of rate limited requeues",
    ["kind"],
)

events_dropped_total = Counter(
    "rest_dynamic_operator_events_dropped_total",
    "Total number of events dropped after exhausting retries",
    ["kind", "event_type"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "rest_dynamic_operator_drift_detected_total",
    "Total number of external resource drift detections",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "rest_dynamic_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "rest_dynamic_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

error_total = Counter(
    "rest_dynamic_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)
