"""
Metrics Collection
Prometheus metrics for blueprint generation
"""

import time

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for the relay.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.generations_total = Counter(
            "blueprint_generations_total",
            "Total number of blueprint generations",
            ["status"],
            registry=self.registry,
        )
        self.generation_duration = Histogram(
            "blueprint_generation_duration_seconds",
            "Blueprint generation duration in seconds",
            ["platform"],
            buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=self.registry,
        )
        self.chunk_frames = Counter(
            "blueprint_chunk_frames_total",
            "Total number of chunk frames sent",
            registry=self.registry,
        )
        self.upstream_errors = Counter(
            "blueprint_upstream_errors_total",
            "Upstream failures by kind",
            ["kind"],
            registry=self.registry,
        )
        self.client_disconnects = Counter(
            "blueprint_client_disconnects_total",
            "Streams abandoned by the client",
            registry=self.registry,
        )
        self.active_streams = Gauge(
            "blueprint_active_streams",
            "Streams currently in progress",
            registry=self.registry,
        )
        self.uptime = Gauge(
            "blueprint_uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )
        self.start_time = time.time()

    def record_generation(self, status: str, platform: str, duration: float) -> None:
        """Record a finished generation."""
        self.generations_total.labels(status=status).inc()
        self.generation_duration.labels(platform=platform).observe(duration)

    def record_chunk(self) -> None:
        self.chunk_frames.inc()

    def record_upstream_error(self, kind: str) -> None:
        self.upstream_errors.labels(kind=kind).inc()

    def record_disconnect(self) -> None:
        self.client_disconnects.inc()

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        self.uptime.set(time.time() - self.start_time)
        return generate_latest(self.registry)


# Global metrics collector instance
metrics_collector = MetricsCollector()
