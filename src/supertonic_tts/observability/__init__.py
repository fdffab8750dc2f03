"""Logging and metrics for the synthesis pipeline."""

from .logger import bind_synthesis_context, get_logger, setup_logging
from .metrics import (
    record_stage_timing,
    record_synthesis_failure,
    record_synthesis_success,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_synthesis_context",
    "record_stage_timing",
    "record_synthesis_success",
    "record_synthesis_failure",
]
