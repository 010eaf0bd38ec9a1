"""
Prometheus metrics for the HR services platform.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest


class MetricsCollector:
    """Metrics of one service instance.

    Each collector owns its registry so several services (or several test
    instances of one service) can live in the same process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_common_metrics()

        extra = {
            "gateway": self._setup_gateway_metrics,
            "payroll": self._setup_payroll_metrics,
        }.get(service_name)
        if extra:
            extra()

    def _add(self, metric_type, name: str, documentation: str, labels=(), **kwargs):
        self._metrics[name] = metric_type(name, documentation, list(labels), registry=self.registry, **kwargs)

    def _setup_common_metrics(self):
        Info("service", "Service information", registry=self.registry).info({
            "service": self.service_name,
            "version": "1.0.0",
        })

        self._add(Counter, "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status_code"])
        self._add(Histogram, "http_request_duration_seconds", "HTTP request duration in seconds",
                  ["method", "endpoint"])
        self._add(Counter, "errors_total", "Failed requests by error kind", ["error_type", "service"])
        self._add(Counter, "business_events_total", "Domain events such as payroll_processed",
                  ["event_type", "service"])
        self._add(Counter, "reference_checks_total", "Cross-service reference checks by outcome",
                  ["entity", "outcome"])

    def _setup_gateway_metrics(self):
        self._add(Counter, "proxy_requests_total", "Proxied requests by target and outcome",
                  ["target", "outcome"])
        self._add(Histogram, "proxy_request_duration_seconds", "Upstream round trip in seconds", ["target"])
        self._add(Counter, "rate_limit_hits_total", "Requests rejected by the rate limiter", ["endpoint"])

    def _setup_payroll_metrics(self):
        self._add(Histogram, "payroll_batch_duration_seconds", "Monthly payroll batch duration in seconds",
                  buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120))
        self._add(Counter, "payroll_batch_employees_total", "Employees handled by monthly batches",
                  ["outcome"])

    def render(self) -> bytes:
        """Registry in the Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self._metrics["http_requests_total"].labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_error(self, error_type: str):
        self._metrics["errors_total"].labels(error_type=error_type, service=self.service_name).inc()

    def record_business_event(self, event_type: str):
        self._metrics["business_events_total"].labels(event_type=event_type, service=self.service_name).inc()

    def increment_counter(self, metric_name: str, amount: float = 1, **labels):
        """Increment a counter; unknown names are ignored."""
        metric = self._metrics.get(metric_name)
        if metric is not None:
            (metric.labels(**labels) if labels else metric).inc(amount)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram; unknown names are ignored."""
        metric = self._metrics.get(metric_name)
        if metric is not None:
            (metric.labels(**labels) if labels else metric).observe(value)
