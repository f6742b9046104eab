"""
Shared metrics configuration for the Observer Conditions layer.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for a service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up observer lookup metrics."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["observer_lookups_total"] = Counter(
            "observer_lookups_total",
            "Total observer lookups",
            ["data_type"],
            registry=self.registry
        )

        self._metrics["observer_matches_total"] = Counter(
            "observer_matches_total",
            "Total observers whose conditions matched a transition",
            ["data_type"],
            registry=self.registry
        )

        self._metrics["condition_evaluation_errors_total"] = Counter(
            "condition_evaluation_errors_total",
            "Total failed condition evaluations",
            ["error_type"],
            registry=self.registry
        )

        self._metrics["observer_lookup_duration_seconds"] = Histogram(
            "observer_lookup_duration_seconds",
            "Observer lookup duration in seconds",
            ["data_type"],
            registry=self.registry
        )

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})

    def record_lookup(self, data_type: str, matched: int, duration: float):
        """Record one observer lookup."""
        with self._lock:
            self._metrics["observer_lookups_total"].labels(data_type=data_type).inc()
            if matched:
                self._metrics["observer_matches_total"].labels(data_type=data_type).inc(matched)
            self._metrics["observer_lookup_duration_seconds"].labels(data_type=data_type).observe(duration)

    def record_error(self, error_type: str):
        """Record error metrics."""
        with self._lock:
            self._metrics["condition_evaluation_errors_total"].labels(error_type=error_type).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
