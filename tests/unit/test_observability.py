"""
Unit tests for structured logging and Prometheus metrics.
"""

import json
import logging

import pytest
import structlog
from prometheus_client import REGISTRY

from supertonic_tts.observability.logger import bind_synthesis_context, get_logger, setup_logging
from supertonic_tts.observability.metrics import (
    record_stage_timing,
    record_synthesis_failure,
    record_synthesis_success,
)


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetrics:
    """Tests for metric helpers."""

    def test_stage_timing_observed(self):
        """Test stage timings land in the labelled histogram."""
        labels = {"stage": "vocode"}
        before = _sample("supertonic_stage_duration_seconds_count", labels)

        record_stage_timing("vocode", 12)

        assert _sample("supertonic_stage_duration_seconds_count", labels) == before + 1

    def test_synthesis_success_observed(self):
        """Test end-to-end latency is observed in seconds."""
        before = _sample("supertonic_synthesis_seconds_sum")

        record_synthesis_success(250)

        assert _sample("supertonic_synthesis_seconds_sum") == pytest.approx(before + 0.25)

    def test_failure_counter(self):
        """Test failures are counted by error type."""
        labels = {"error_type": "cancelled"}
        before = _sample("supertonic_synthesis_failures_total", labels)

        record_synthesis_failure("cancelled")

        assert _sample("supertonic_synthesis_failures_total", labels) == before + 1

    def test_orchestrator_records_metrics(self, orchestrator, style_profile):
        """Test a synthesis run records every stage."""
        labels = {"stage": "denoise"}
        before = _sample("supertonic_stage_duration_seconds_count", labels)

        orchestrator.run("hi", style_profile, total_steps=1)

        assert _sample("supertonic_stage_duration_seconds_count", labels) == before + 1


class TestLogging:
    """Tests for structlog configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_logs_include_context(self, caplog):
        """Test JSON output carries the event and bound request context."""
        setup_logging("INFO", json_format=True)
        caplog.set_level(logging.INFO)
        logger = bind_synthesis_context(get_logger("test.json"), request_id="req-1", voice="F1")

        logger.info("synthesis_started", batch_size=1)

        record = json.loads(caplog.records[-1].getMessage())
        assert record["event"] == "synthesis_started"
        assert record["request_id"] == "req-1"
        assert record["voice"] == "F1"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_quiets_runtime_loggers(self):
        """Test onnxruntime and hub loggers are raised to WARNING outside DEBUG."""
        setup_logging("INFO")
        assert logging.getLogger("onnxruntime").level == logging.WARNING
        assert logging.getLogger("huggingface_hub").level == logging.WARNING

        setup_logging("DEBUG")
        assert logging.getLogger("onnxruntime").level == logging.DEBUG

    def test_unknown_level_raises(self):
        """Test an unknown level name raises ValueError."""
        with pytest.raises(ValueError):
            setup_logging("LOUD")

    def test_bind_without_voice(self):
        """Test voice is optional when binding context."""
        logger = bind_synthesis_context(structlog.get_logger("test"), request_id="req-2")
        assert logger is not None

