"""
Prometheus metrics collection for inventory-export

Tracks export throughput, validation quality, integrity verification,
retry queue depth, scheduled runs and notification delivery.
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
# EXPORT METRICS
# =======================

export_runs_total = Counter(
    name="export_runs_total",
    documentation="Total number of export attempts",
    labelnames=["format", "status"],  # status: success, failure
    registry=REGISTRY,
)

export_duration_seconds = Histogram(
    name="export_duration_seconds",
    documentation="Time spent serializing and writing an export artifact",
    labelnames=["format"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

export_records_total = Counter(
    name="export_records_total",
    documentation="Total number of records written to export artifacts",
    labelnames=["format"],
    registry=REGISTRY,
)

# =======================
# DATA QUALITY METRICS
# =======================

validation_runs_total = Counter(
    name="validation_runs_total",
    documentation="Total number of record-set validations",
    labelnames=["data_type", "status"],  # status: valid, invalid
    registry=REGISTRY,
)

validation_quality_score = Gauge(
    name="validation_quality_score",
    documentation="Most recent quality score (0-100) per dimension",
    labelnames=["data_type", "dimension"],  # completeness, consistency, accuracy, overall
    registry=REGISTRY,
)

validation_issues_total = Counter(
    name="validation_issues_total",
    documentation="Total number of validation errors and warnings reported",
    labelnames=["data_type", "severity"],
    registry=REGISTRY,
)

integrity_checks_total = Counter(
    name="integrity_checks_total",
    documentation="Total number of artifact integrity checks executed",
    labelnames=["format", "check", "status"],  # status: passed, failed
    registry=REGISTRY,
)

# =======================
# RETRY METRICS
# =======================

retry_queue_items = Gauge(
    name="retry_queue_items",
    documentation="Current number of retry items per state",
    labelnames=["status"],
    registry=REGISTRY,
)

retry_attempts_total = Counter(
    name="retry_attempts_total",
    documentation="Total number of export re-attempts",
    labelnames=["status"],  # status: completed, pending, failed
    registry=REGISTRY,
)

# =======================
# SCHEDULER METRICS
# =======================

scheduled_runs_total = Counter(
    name="scheduled_runs_total",
    documentation="Total number of schedule executions",
    labelnames=["trigger", "status"],  # trigger: timer, cron, manual
    registry=REGISTRY,
)

active_schedules = Gauge(
    name="active_schedules",
    documentation="Number of active (armed) schedules",
    registry=REGISTRY,
)

# =======================
# NOTIFICATION METRICS
# =======================

notifications_total = Counter(
    name="notifications_total",
    documentation="Total number of notification channel deliveries",
    labelnames=["channel", "status"],  # status: sent, failed
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
    # Imported lazily so importing this module never binds a port
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
    if labels:
        gauge.labels(**labels).set(value)
    else:
        gauge.set(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    histogram.labels(**labels).observe(value)


# =======================
# DOMAIN HELPERS
# =======================

def record_validation(data_type: str, result) -> None:
    """
    Record the outcome of a record-set validation.

    Args:
        data_type: Data type name the rule set was looked up by
        result: ValidationResult
    """
    status = "valid" if result.is_valid else "invalid"
    increment_counter(validation_runs_total, 1, data_type=data_type, status=status)
    if result.errors:
        increment_counter(validation_issues_total, len(result.errors), data_type=data_type, severity="error")
    if result.warnings:
        increment_counter(validation_issues_total, len(result.warnings), data_type=data_type, severity="warning")

    quality = result.data_quality
    for dimension in ("completeness", "consistency", "accuracy", "overall"):
        set_gauge(validation_quality_score, getattr(quality, dimension), data_type=data_type, dimension=dimension)


def record_export(export_format: str, success: bool, record_count: int, duration_seconds: float) -> None:
    """
    Record an export attempt.

    Args:
        export_format: Target format
        success: Whether the artifact was produced
        record_count: Records written (ignored on failure)
        duration_seconds: Time taken by the attempt
    """
    status = "success" if success else "failure"
    increment_counter(export_runs_total, 1, format=export_format, status=status)
    observe_histogram(export_duration_seconds, duration_seconds, format=export_format)
    if success and record_count > 0:
        increment_counter(export_records_total, record_count, format=export_format)


def record_retry_queue(counts: dict[str, int]) -> None:
    """Publish retry queue depth per state."""
    for status, count in counts.items():
        set_gauge(retry_queue_items, count, status=status)
