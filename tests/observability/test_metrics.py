"""Tests for Prometheus metrics collection."""

from prometheus_client import REGISTRY

from proma.observability.metrics import MetricsCollector, get_metrics_collector


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_singleton(self) -> None:
        assert get_metrics_collector() is get_metrics_collector()

    def test_record_chat_turn(self) -> None:
        labels = {"provider": "google", "outcome": "aborted"}
        before = _sample("chat_turns_total", labels)

        MetricsCollector().record_chat_turn("google", "aborted", 1.5)

        assert _sample("chat_turns_total", labels) == before + 1
        assert _sample("chat_turn_duration_seconds_count", labels) >= 1

    def test_record_title_generation(self) -> None:
        before = _sample("title_generations_total", {"status": "failed"})

        MetricsCollector().record_title_generation("failed")

        assert _sample("title_generations_total", {"status": "failed"}) == before + 1

    def test_record_http_request(self) -> None:
        labels = {"method": "GET", "endpoint": "/test-endpoint", "status_code": "200"}
        before = _sample("http_requests_total", labels)

        MetricsCollector().record_http_request("GET", "/test-endpoint", 200, 0.01)

        assert _sample("http_requests_total", labels) == before + 1

    def test_generate_metrics(self) -> None:
        output = MetricsCollector().generate_metrics()

        assert isinstance(output, bytes)
        assert b"chat_turns_total" in output

    def test_in_flight_gauge(self) -> None:
        collector = MetricsCollector()
        before = _sample("chat_turns_in_flight", {})

        collector.turn_started()
        assert _sample("chat_turns_in_flight", {}) == before + 1

        collector.turn_finished()
        assert _sample("chat_turns_in_flight", {}) == before
