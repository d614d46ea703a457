"""
Shared metrics configuration for the Risk Gateway.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so several service instances (one per
    test, for example) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_risk_metrics()

    def _setup_risk_metrics(self):
        """Set up risk-gateway metrics."""
        self._metrics["settings_cache_total"] = Counter(
            "settings_cache_total",
            "Settings cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["downstream_requests_total"] = Counter(
            "downstream_requests_total",
            "Calls issued to the trading API",
            ["endpoint", "outcome"],
            registry=self.registry
        )

        self._metrics["downstream_request_duration_seconds"] = Histogram(
            "downstream_request_duration_seconds",
            "Trading API call duration in seconds",
            ["endpoint"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_cache_lookup(self, hit: bool):
        """Record a settings cache hit or miss."""
        self._metrics["settings_cache_total"].labels(result="hit" if hit else "miss").inc()

    def record_downstream_call(self, endpoint: str, outcome: str, duration: float):
        """Record a single trading API call."""
        self._metrics["downstream_requests_total"].labels(endpoint=endpoint, outcome=outcome).inc()
        self._metrics["downstream_request_duration_seconds"].labels(endpoint=endpoint).observe(duration)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
