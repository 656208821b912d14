"""Prometheus metrics collection for monitoring.

Tracks chat turn outcomes and durations per provider, plus HTTP requests
served by the API.
"""

from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, generate_latest

# Chat turn metrics
chat_turns_total = Counter(
    "chat_turns_total",
    "Total number of chat turns by terminal outcome",
    labelnames=["provider", "outcome"],
)

chat_turn_duration_seconds = Histogram(
    "chat_turn_duration_seconds",
    "Chat turn duration in seconds (send to terminal event)",
    labelnames=["provider", "outcome"],
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

chat_turns_in_flight = Gauge(
    "chat_turns_in_flight",
    "Chat turns currently streaming a provider reply",
)

title_generations_total = Counter(
    "title_generations_total",
    "Total number of title generation attempts",
    labelnames=["status"],
)

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


class MetricsCollector:
    """Collects and exposes Prometheus metrics."""

    def record_chat_turn(self, provider: str, outcome: str, duration_seconds: float) -> None:
        """Record a finished chat turn.

        Args:
            provider: Provider tag of the channel used (anthropic, openai, ...)
            outcome: Terminal state (completed, aborted, errored)
            duration_seconds: Time from send to terminal event

        Example:
            >>> collector = get_metrics_collector()
            >>> collector.record_chat_turn("anthropic", "completed", 3.2)
        """
        chat_turns_total.labels(provider=provider, outcome=outcome).inc()
        chat_turn_duration_seconds.labels(provider=provider, outcome=outcome).observe(
            duration_seconds
        )

    def turn_started(self) -> None:
        chat_turns_in_flight.inc()

    def turn_finished(self) -> None:
        chat_turns_in_flight.dec()

    def record_title_generation(self, status: str) -> None:
        """Record a title generation attempt (success or failed)."""
        title_generations_total.labels(status=status).inc()

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float,
    ) -> None:
        """Record an HTTP request event.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Request endpoint path
            status_code: HTTP status code
            duration_seconds: Request duration in seconds
        """
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=status_code,
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration_seconds)

    def generate_metrics(self) -> bytes:
        """Generate Prometheus metrics in text exposition format."""
        return generate_latest()


# Singleton instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global MetricsCollector instance."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector
