"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    generate_latest,
)

from washq.constants import (
    METRIC_CAPACITY_REJECTIONS,
    METRIC_JOBS_CREATED,
    METRIC_NOTIFICATIONS,
    METRIC_STATUS_TRANSITIONS,
    METRIC_TOKEN_COLLISIONS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for job intake and lifecycle.

    Collects metrics for:
    - Job creations and status transitions
    - Token collisions on insert
    - Capacity rejections
    - Customer notifications
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_created = Counter(
            METRIC_JOBS_CREATED,
            "Total number of wash jobs created",
            ["tenant_id"],
            registry=self._registry,
        )

        self.status_transitions = Counter(
            METRIC_STATUS_TRANSITIONS,
            "Total number of job status transitions",
            ["tenant_id", "status"],
            registry=self._registry,
        )

        # Inserts that lost the race for a token number
        self.token_collisions = Counter(
            METRIC_TOKEN_COLLISIONS,
            "Total number of job inserts rejected by the tenant token constraint",
            ["tenant_id"],
            registry=self._registry,
        )

        self.capacity_rejections = Counter(
            METRIC_CAPACITY_REJECTIONS,
            "Total number of jobs refused by admission control",
            ["tenant_id", "mode"],
            registry=self._registry,
        )

        self.notifications = Counter(
            METRIC_NOTIFICATIONS,
            "Total number of customer notification attempts",
            ["template", "outcome"],
            registry=self._registry,
        )

    def record_job_created(self, tenant_id: str) -> None:
        """Record a job creation."""
        self.jobs_created.labels(tenant_id=tenant_id).inc()

    def record_status_transition(self, tenant_id: str, status: str) -> None:
        self.status_transitions.labels(tenant_id=tenant_id, status=status).inc()

    def record_token_collision(self, tenant_id: str) -> None:
        self.token_collisions.labels(tenant_id=tenant_id).inc()

    def record_capacity_rejection(self, tenant_id: str, mode: str) -> None:
        self.capacity_rejections.labels(tenant_id=tenant_id, mode=mode).inc()

    def record_notification(self, template: str, outcome: str) -> None:
        """Record a notification attempt ("sent", "failed" or "error")."""
        self.notifications.labels(template=template, outcome=outcome).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
