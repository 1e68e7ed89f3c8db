"""
Prometheus metrics collection for mqpusher

This module provides metrics instrumentation for monitoring
a push run: rows read and published, failures per stage and progress.
"""
import os
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# PIPELINE METRICS
# =======================

rows_read_total = Counter(
    name="pipeline_rows_read_total",
    documentation="Total number of rows yielded by the source",
    labelnames=["source"],  # source: csv, db
    registry=REGISTRY,
)

rows_published_total = Counter(
    name="pipeline_rows_published_total",
    documentation="Total number of rows acknowledged by the broker",
    labelnames=["source"],
    registry=REGISTRY,
)

errors_total = Counter(
    name="pipeline_errors_total",
    documentation="Total number of errors that ended or disturbed a run",
    labelnames=["stage"],  # stage: configuration, read, transform, publish, close
    registry=REGISTRY,
)

publish_latency_seconds = Histogram(
    name="pipeline_publish_latency_seconds",
    documentation="Time from handing a message to the broker until it is confirmed",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)

progress_percent = Gauge(
    name="pipeline_progress_percent",
    documentation="Approximate completion of the current run in percent",
    labelnames=["source"],
    registry=REGISTRY,
)

run_duration_seconds = Gauge(
    name="pipeline_run_duration_seconds",
    documentation="Wall time of the last finished run in seconds",
    labelnames=["state"],  # state: succeeded, failed
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: the HTTP server is only needed when an endpoint is requested
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """
    Set a gauge metric value

    Args:
        gauge: Prometheus Gauge metric
        value: Value to set
        **labels: Label values for the metric
    """
    gauge.labels(**labels).set(value)


def get_sample_value(name: str, labels: Optional[dict] = None) -> Optional[float]:
    """
    Read the current value of a sample from the registry.

    Args:
        name: Sample name (e.g. "pipeline_rows_published_total")
        labels: Label values of the sample

    Returns:
        Sample value, or None if the sample does not exist yet
    """
    return REGISTRY.get_sample_value(name, labels or {})
