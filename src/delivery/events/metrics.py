"""Prometheus metrics for workflow observability.

Metrics Defined:
- delivery_workflows_total: Counter of feature deliveries by result
- delivery_step_failures_total: Counter of failed workflow steps
- delivery_workflow_duration_seconds: Histogram of successful delivery time

The MetricsEventEmitter integrates with the event emission system to
update metrics from workflow events. Metrics are exposed at the `/metrics`
endpoint of the HTTP adapter.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.delivery.events.emitter import EventEmitter
from src.delivery.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)


# A delivery is three API round trips; buckets cover sub-second to a minute
DEFAULT_DURATION_BUCKETS = (0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class DeliveryMetrics:
    """Container for all workflow Prometheus metrics.

    Supports custom registries for testing.

    Attributes:
        registry: The Prometheus registry for these metrics.
        workflows_total: Counter for finished workflows.
            Labels: repository, result (success/failure)
        step_failures_total: Counter for failed steps.
            Labels: repository, step
        workflow_duration_seconds: Histogram for successful workflow time.
            Labels: repository
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.workflows_total = Counter(
            "delivery_workflows_total",
            "Total number of feature delivery workflows finished",
            labelnames=["repository", "result"],
            registry=self.registry,
        )

        self.step_failures_total = Counter(
            "delivery_step_failures_total",
            "Total number of feature delivery steps that failed",
            labelnames=["repository", "step"],
            registry=self.registry,
        )

        self.workflow_duration_seconds = Histogram(
            "delivery_workflow_duration_seconds",
            "Time spent delivering a feature in seconds",
            labelnames=["repository"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_workflow(self, repository: str, success: bool) -> None:
        result = "success" if success else "failure"
        self.workflows_total.labels(repository=repository, result=result).inc()

    def record_step_failure(self, repository: str, step: str) -> None:
        self.step_failures_total.labels(repository=repository, step=step).inc()

    def record_duration(self, repository: str, duration_seconds: float) -> None:
        self.workflow_duration_seconds.labels(repository=repository).observe(
            duration_seconds
        )


# Global metrics instance for the default registry
_default_metrics: Optional[DeliveryMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> DeliveryMetrics:
    """Get or create the workflow metrics instance.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  global metrics instance for the default registry.
    """
    global _default_metrics

    if registry is not None:
        return DeliveryMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = DeliveryMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus metrics output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - STEP_FAILED: Increments step_failures_total
    - COMPLETION: Records a successful workflow and its duration
    - FAILURE: Records a failed workflow

    Attributes:
        metrics: The DeliveryMetrics instance to update.
    """

    def __init__(
        self,
        metrics: Optional[DeliveryMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        if metrics is not None:
            self._metrics = metrics
        else:
            self._metrics = get_metrics(registry)

    @property
    def metrics(self) -> DeliveryMetrics:
        return self._metrics

    async def emit(self, event: WorkflowEvent) -> None:
        try:
            if event.event_type == EventType.STEP_FAILED:
                self._metrics.record_step_failure(
                    repository=event.repository,
                    step=event.details.get("step", "unknown"),
                )
            elif event.event_type == EventType.COMPLETION:
                self._metrics.record_workflow(event.repository, success=True)
                duration = event.details.get("duration_seconds")
                if duration is not None:
                    self._metrics.record_duration(event.repository, float(duration))
            elif event.event_type == EventType.FAILURE:
                self._metrics.record_workflow(event.repository, success=False)
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={
                    "event_type": event.event_type.value,
                    "workflow_id": event.workflow_id,
                    "error": str(e),
                },
            )
