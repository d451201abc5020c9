from prometheus_client import Counter, Histogram

from src.ports.secondary.metrics import IMetrics


class MetricsRegistry(IMetrics):
    """Prometheus metrics registry."""

    def __init__(self):
        # Execution metrics
        self.WORKFLOW_EXECUTIONS_TOTAL = Counter(
            "workflow_executions_total",
            "Total number of recorded workflow executions",
            ["workflow_id", "status"],
        )

        self.WORKFLOW_EXECUTION_DURATION_SECONDS = Histogram(
            "workflow_execution_duration_seconds",
            "Wall-clock time from submission to terminal state",
            ["workflow_id"],
            buckets=(1, 5, 10, 30, 60, 120, 300, 600),
        )

        self.WORKFLOW_POLL_ATTEMPTS_TOTAL = Counter(
            "workflow_poll_attempts_total",
            "Total number of status polls",
            ["workflow_status"],
        )

        # Local state metrics
        self.CACHE_LOOKUPS_TOTAL = Counter(
            "cache_lookups_total", "Cache lookups by tier and outcome", ["tier", "outcome"]
        )

        self.HISTORY_CLEANUPS_TOTAL = Counter(
            "history_cleanups_total", "History retention trims", ["reason"]
        )

    def record_execution(self, workflow_id: str, status: str, duration: float):
        self.WORKFLOW_EXECUTIONS_TOTAL.labels(workflow_id=workflow_id, status=status).inc()
        self.WORKFLOW_EXECUTION_DURATION_SECONDS.labels(workflow_id=workflow_id).observe(duration)

    def record_poll_attempt(self, workflow_status: str):
        self.WORKFLOW_POLL_ATTEMPTS_TOTAL.labels(workflow_status=workflow_status).inc()

    def record_cache_lookup(self, tier: str, outcome: str):
        self.CACHE_LOOKUPS_TOTAL.labels(tier=tier, outcome=outcome).inc()

    def record_history_cleanup(self, reason: str):
        self.HISTORY_CLEANUPS_TOTAL.labels(reason=reason).inc()


# Global registry instance for adapter/framework layer
metrics_registry = MetricsRegistry()
