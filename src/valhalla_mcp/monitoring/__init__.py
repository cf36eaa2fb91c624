from .metrics import (
    Counter,
    EndpointStats,
    HealthStatus,
    MetricsCollector,
    MetricsSummary,
    RequestMetric,
)

__all__ = [
    "Counter",
    "EndpointStats",
    "HealthStatus",
    "MetricsCollector",
    "MetricsSummary",
    "RequestMetric",
]
