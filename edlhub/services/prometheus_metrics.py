"""
Prometheus metrics for EDL Hub
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from ..config import API_VERSION

# Build info
BUILD_INFO = Gauge(
    'edlhub_build_info',
    'Build information',
    ['version']
)

# Indicator store
INDICATORS_ADDED_TOTAL = Counter(
    'edlhub_indicators_added_total',
    'Total number of indicators inserted',
    ['source']
)

INDICATORS_REJECTED_TOTAL = Counter(
    'edlhub_indicators_rejected_total',
    'Total number of rejected indicator inserts',
    ['reason']
)

INDICATORS_DELETED_TOTAL = Counter(
    'edlhub_indicators_deleted_total',
    'Total number of indicators deleted',
    ['reason']
)

# Ingestion
MERGE_SKIPPED_TOTAL = Counter(
    'edlhub_merge_skipped_total',
    'Total number of feed indicators skipped during merge',
    ['source', 'reason']
)

FEED_SYNC_FAILURES_TOTAL = Counter(
    'edlhub_feed_sync_failures_total',
    'Total number of failed feed pulls',
    ['source']
)

# Expiration engine
SWEEP_RUNS_TOTAL = Counter(
    'edlhub_expiration_sweeps_total',
    'Total number of expiration sweeps',
    ['outcome']
)

SWEEP_DURATION_SECONDS = Histogram(
    'edlhub_expiration_sweep_duration_seconds',
    'Expiration sweep duration',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

SWEEP_LAST_SUCCESS = Gauge(
    'edlhub_expiration_sweep_last_success_timestamp',
    'Unix timestamp of the last sweep without failures'
)

# Notifications
NOTIFY_FAILURES_TOTAL = Counter(
    'edlhub_notify_failures_total',
    'Total number of failed notifications',
    ['event_type']
)

# EDL publisher
EDL_RENDERS_TOTAL = Counter(
    'edlhub_edl_renders_total',
    'Total number of EDL feed renders',
    ['category']
)


class PrometheusMetrics:
    """Service for managing Prometheus metrics."""

    def __init__(self):
        BUILD_INFO.labels(version=API_VERSION).set(1)

    def increment_indicators_added(self, source: str):
        INDICATORS_ADDED_TOTAL.labels(source=source).inc()

    def increment_indicators_rejected(self, reason: str):
        INDICATORS_REJECTED_TOTAL.labels(reason=reason).inc()

    def increment_indicators_deleted(self, reason: str, count: int = 1):
        if count:
            INDICATORS_DELETED_TOTAL.labels(reason=reason).inc(count)

    def increment_merge_skipped(self, source: str, reason: str):
        MERGE_SKIPPED_TOTAL.labels(source=source, reason=reason).inc()

    def increment_feed_sync_failures(self, source: str):
        FEED_SYNC_FAILURES_TOTAL.labels(source=source).inc()

    def record_sweep(self, outcome: str, duration: float, finished_at: float):
        """Record a finished sweep; outcome is ok | partial | failed."""
        SWEEP_RUNS_TOTAL.labels(outcome=outcome).inc()
        SWEEP_DURATION_SECONDS.observe(duration)
        if outcome == "ok":
            SWEEP_LAST_SUCCESS.set(finished_at)

    def increment_notify_failures(self, event_type: str):
        NOTIFY_FAILURES_TOTAL.labels(event_type=event_type).inc()

    def increment_edl_renders(self, category: str):
        EDL_RENDERS_TOTAL.labels(category=category).inc()

    def get_metrics(self) -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest()

    def get_content_type(self) -> str:
        """Get the content type for Prometheus metrics."""
        return CONTENT_TYPE_LATEST

# Global metrics instance
prometheus_metrics = PrometheusMetrics()
