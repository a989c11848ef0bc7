# src/libs/dlq-common/dlq_common/monitoring.py
from prometheus_client import Counter, Histogram

# --------------------------------------------------------------------------------------
# HTTP metrics
# --------------------------------------------------------------------------------------
HTTP_REQUESTS_TOTAL = Counter(
    "dlq_manager_http_requests_total",
    "Total HTTP requests handled",
    labelnames=("service", "method", "path", "status"),
)

HTTP_REQUEST_LATENCY_SECONDS = Histogram(
    "dlq_manager_http_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("service", "method", "path"),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)

# --------------------------------------------------------------------------------------
# Kafka metrics
# --------------------------------------------------------------------------------------
KAFKA_PUBLISH_LATENCY_SECONDS = Histogram(
    "kafka_publish_latency_seconds",
    "Kafka publish latency in seconds by topic",
    labelnames=("topic",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)

# --------------------------------------------------------------------------------------
# DLQ manager metrics
# --------------------------------------------------------------------------------------
DLQ_MESSAGES_BROWSED_TOTAL = Counter(
    "dlq_messages_browsed_total",
    "Number of DLQ messages returned by paginated browsing",
    labelnames=("dlq_topic",),
)

DLQ_ERROR_SCAN_DURATION_SECONDS = Histogram(
    "dlq_error_scan_duration_seconds",
    "Duration of full-partition error breakdown scans",
    labelnames=("dlq_topic",),
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)

DLQ_REPLAYED_MESSAGES_TOTAL = Counter(
    "dlq_replayed_messages_total",
    "Number of DLQ messages replay attempts by outcome",
    labelnames=("dlq_topic", "status"),
)

DLQ_REPLAY_JOBS_TOTAL = Counter(
    "dlq_replay_jobs_total",
    "Number of replay jobs reaching a terminal state",
    labelnames=("mode", "status"),
)
