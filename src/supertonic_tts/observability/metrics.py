"""
Prometheus metrics for the synthesis pipeline.

Defines and exports metrics for monitoring:
- Per-stage latency (histogram)
- End-to-end synthesis latency (histogram)
- Failure counts by error type (counter)
"""

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

supertonic_stage_duration_seconds = Histogram(
    "supertonic_stage_duration_seconds",
    "Pipeline stage duration in seconds",
    labelnames=["stage"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, float("inf")),
)

supertonic_synthesis_seconds = Histogram(
    "supertonic_synthesis_seconds",
    "End-to-end synthesis latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 8.0, float("inf")),
)

supertonic_synthesis_failures_total = Counter(
    "supertonic_synthesis_failures_total",
    "Total failed synthesis calls",
    labelnames=["error_type"],
)


def record_stage_timing(stage: str, duration_ms: int) -> None:
    """Record the latency of one pipeline stage.

    Args:
        stage: Stage name (tokenize, predict_duration, ...)
        duration_ms: Duration in milliseconds
    """
    supertonic_stage_duration_seconds.labels(stage=stage).observe(duration_ms / 1000.0)


def record_synthesis_success(total_ms: int) -> None:
    """Record a completed synthesis call."""
    supertonic_synthesis_seconds.observe(total_ms / 1000.0)


def record_synthesis_failure(error_type: str) -> None:
    """Record a failed synthesis call by error type."""
    supertonic_synthesis_failures_total.labels(error_type=error_type).inc()
    logger.debug(f"Recorded synthesis failure: {error_type}")
