from __future__ import annotations

import math
import time
import typing as t
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Tuple

# Thresholds for the health verdict, evaluated over the most recent window.
MAX_HEALTHY_ERROR_RATE = 0.1
MAX_HEALTHY_AVG_DURATION_MS = 5000.0


@dataclass
class Counter:
    name: str
    help: str
    values: Dict[Tuple, float] = field(default_factory=dict)

    def inc(self, value: float = 1.0, **labels: Any) -> None:
        key = tuple(sorted(labels.items()))
        self.values[key] = self.values.get(key, 0.0) + value

    def get(self, **labels: Any) -> float:
        return self.values.get(tuple(sorted(labels.items())), 0.0)

    def reset(self) -> None:
        self.values.clear()


@dataclass(frozen=True)
class RequestMetric:
    endpoint: str
    method: str
    duration: float  # milliseconds
    success: bool
    timestamp: float = field(default_factory=lambda: time.time())
    request_id: t.Optional[str] = None
    error_code: t.Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _isoformat(self.timestamp),
            "endpoint": self.endpoint,
            "method": self.method,
            "duration": self.duration,
            "success": self.success,
            "error_code": self.error_code,
            "request_id": self.request_id,
        }


@dataclass
class EndpointStats:
    count: int = 0
    average_time: float = 0.0
    error_count: int = 0


@dataclass
class MetricsSummary:
    total: int
    successful: int
    failed: int
    error_rate: float
    average_response_time: float
    min_response_time: float
    max_response_time: float
    p95_response_time: float
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    endpoints: Dict[str, EndpointStats]
    last_reset: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests": {
                "total": self.total,
                "successful": self.successful,
                "failed": self.failed,
                "error_rate": self.error_rate,
            },
            "performance": {
                "average_response_time": self.average_response_time,
                "min_response_time": self.min_response_time,
                "max_response_time": self.max_response_time,
                "p95_response_time": self.p95_response_time,
            },
            "cache": {
                "hits": self.cache_hits,
                "misses": self.cache_misses,
                "hit_rate": self.cache_hit_rate,
            },
            "endpoints": {
                key: {"count": s.count, "average_time": s.average_time, "error_count": s.error_count}
                for key, s in self.endpoints.items()
            },
            "last_reset": self.last_reset,
        }


@dataclass
class HealthStatus:
    status: str  # healthy | degraded | unhealthy
    checks: Dict[str, bool]
    details: List[str]


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class MetricsCollector:
    """Bounded in-memory ledger of request outcomes.

    Holds the last `max_history` request metrics (oldest dropped first) plus
    cache hit/miss counters. Summaries and the health verdict are derived on
    demand; nothing is persisted.
    """

    def __init__(self, max_history: int = 1000, health_window: int = 50) -> None:
        self._max_history = max_history
        self._health_window = health_window
        self._requests: Deque[RequestMetric] = deque(maxlen=max_history)
        self._cache_events = Counter("valhalla_cache_lookups_total", "Cache lookups by result")
        self._start_time = time.time()

    def record_request(self, metric: RequestMetric) -> None:
        self._requests.append(metric)

    def record_cache_hit(self) -> None:
        self._cache_events.inc(result="hit")

    def record_cache_miss(self) -> None:
        self._cache_events.inc(result="miss")

    @property
    def cache_hits(self) -> int:
        return int(self._cache_events.get(result="hit"))

    @property
    def cache_misses(self) -> int:
        return int(self._cache_events.get(result="miss"))

    @property
    def history(self) -> List[RequestMetric]:
        return list(self._requests)

    def get_summary(self) -> MetricsSummary:
        requests = list(self._requests)
        total = len(requests)
        successful = sum(1 for r in requests if r.success)
        failed = total - successful

        durations = sorted(r.duration for r in requests)
        if durations:
            average = sum(durations) / total
            p95 = durations[min(math.floor(total * 0.95), total - 1)]
            minimum, maximum = durations[0], durations[-1]
        else:
            average = p95 = minimum = maximum = 0.0

        endpoints: Dict[str, EndpointStats] = {}
        for request in requests:
            stats = endpoints.setdefault(f"{request.method} {request.endpoint}", EndpointStats())
            stats.count += 1
            stats.average_time += (request.duration - stats.average_time) / stats.count
            if not request.success:
                stats.error_count += 1

        hits, misses = self.cache_hits, self.cache_misses
        lookups = hits + misses
        return MetricsSummary(
            total=total,
            successful=successful,
            failed=failed,
            error_rate=failed / total if total else 0.0,
            average_response_time=average,
            min_response_time=minimum,
            max_response_time=maximum,
            p95_response_time=p95,
            cache_hits=hits,
            cache_misses=misses,
            cache_hit_rate=hits / lookups if lookups else 0.0,
            endpoints=endpoints,
            last_reset=_isoformat(self._start_time),
        )

    def get_health_status(self) -> HealthStatus:
        recent = list(self._requests)[-self._health_window :] if self._health_window > 0 else []
        count = len(recent)
        error_rate = sum(1 for r in recent if not r.success) / count if count else 0.0
        avg_duration = sum(r.duration for r in recent) / count if count else 0.0

        checks = {
            "error_rate": error_rate < MAX_HEALTHY_ERROR_RATE,
            "response_time": avg_duration < MAX_HEALTHY_AVG_DURATION_MS,
            "has_recent_activity": count > 0,
        }
        details: List[str] = []
        if not checks["error_rate"]:
            details.append(f"High error rate: {error_rate * 100:.1f}%")
        if not checks["response_time"]:
            details.append(f"Slow response time: {avg_duration:.0f}ms")
        if not checks["has_recent_activity"]:
            details.append("No recent activity")

        failed_checks = sum(1 for passed in checks.values() if not passed)
        if failed_checks == 0:
            status = "healthy"
        elif failed_checks == 1:
            status = "degraded"
        else:
            status = "unhealthy"
        return HealthStatus(status=status, checks=checks, details=details)

    def get_recent_errors(self, limit: int = 10) -> List[RequestMetric]:
        errors = [r for r in self._requests if not r.success]
        return list(reversed(errors[-limit:])) if limit > 0 else []

    def get_slowest_requests(self, limit: int = 10) -> List[RequestMetric]:
        return sorted(self._requests, key=lambda r: r.duration, reverse=True)[: max(limit, 0)]

    def uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def reset(self) -> None:
        self._requests.clear()
        self._cache_events.reset()
        self._start_time = time.time()
