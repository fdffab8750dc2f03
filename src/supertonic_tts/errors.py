"""
Synthesis Error Types and Classification.

This module defines the error hierarchy raised by the synthesis pipeline.
Every error carries a SynthesisErrorType so callers can log and route
failures uniformly. The core pipeline never retries; the classification
only tells the asset downloader which failures are worth another attempt.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SynthesisErrorType(str, Enum):
    """Classification of synthesis errors."""

    # Retryable by the asset retrieval layer only
    ASSET_MISSING = "asset_missing"  # Model, config, vocabulary or voice file absent

    # Non-retryable errors
    EMPTY_BATCH = "empty_batch"  # No input text or items
    STYLE_BATCH_MISMATCH = "style_batch_mismatch"  # Style batch size != text batch size
    INVALID_LENGTH = "invalid_length"  # Negative length in mask construction
    INFERENCE_FAILURE = "inference_failure"  # An inference stage did not complete
    ASSET_MALFORMED = "asset_malformed"  # Asset fails schema or shape invariants
    CANCELLED = "cancelled"  # Cancellation requested between stages
    NOT_READY = "not_ready"  # Service used before initialization


_DEFAULT_RETRYABLE: dict[SynthesisErrorType, bool] = {
    SynthesisErrorType.ASSET_MISSING: True,
    SynthesisErrorType.EMPTY_BATCH: False,
    SynthesisErrorType.STYLE_BATCH_MISMATCH: False,
    SynthesisErrorType.INVALID_LENGTH: False,
    SynthesisErrorType.INFERENCE_FAILURE: False,
    SynthesisErrorType.ASSET_MALFORMED: False,
    SynthesisErrorType.CANCELLED: False,
    SynthesisErrorType.NOT_READY: False,
}


class ErrorInfo(BaseModel):
    """Structured error information for logs and API responses."""

    error_type: SynthesisErrorType = Field(..., description="Error classification")
    message: str = Field(
        ..., min_length=1, description="Human-readable error message (safe for logs)"
    )
    retryable: bool = Field(..., description="Whether the asset layer may retry")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context (debug info)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error_type": "style_batch_mismatch",
                "message": "Number of texts (1) must match number of style vectors (2)",
                "retryable": False,
                "details": {"text_batch": 1, "style_batch": 2},
            }
        }
    }


class SynthesisError(Exception):
    """Base class for every error raised by the synthesis pipeline."""

    error_type: SynthesisErrorType = SynthesisErrorType.INFERENCE_FAILURE

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return is_retryable_error_type(self.error_type)

    def to_error_info(self) -> ErrorInfo:
        """Convert the exception into a structured ErrorInfo record."""
        return ErrorInfo(
            error_type=self.error_type,
            message=self.message or self.error_type.value,
            retryable=self.retryable,
            details=self.details or None,
        )


class EmptyBatchError(SynthesisError):
    """Raised when a batch contains no items."""

    error_type = SynthesisErrorType.EMPTY_BATCH


class StyleBatchMismatchError(SynthesisError):
    """Raised when the style batch size differs from the text batch size."""

    error_type = SynthesisErrorType.STYLE_BATCH_MISMATCH


class InvalidLengthError(SynthesisError):
    """Raised when a mask is requested for a negative length."""

    error_type = SynthesisErrorType.INVALID_LENGTH


class InferenceFailureError(SynthesisError):
    """Raised when an inference stage fails. The cause is chained."""

    error_type = SynthesisErrorType.INFERENCE_FAILURE

    def __init__(
        self,
        stage: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, {"stage": stage, **(details or {})})
        self.stage = stage


class AssetMissingError(SynthesisError):
    """Raised when a required model or asset file is absent."""

    error_type = SynthesisErrorType.ASSET_MISSING


class AssetMalformedError(SynthesisError):
    """Raised when an asset cannot be parsed or violates shape invariants."""

    error_type = SynthesisErrorType.ASSET_MALFORMED


class SynthesisCancelledError(SynthesisError):
    """Raised when a cancellation request is honored between stages."""

    error_type = SynthesisErrorType.CANCELLED


class ServiceNotReadyError(SynthesisError):
    """Raised when the service is used before initialize()."""

    error_type = SynthesisErrorType.NOT_READY


def is_retryable_error_type(error_type: SynthesisErrorType) -> bool:
    """Check if an error type is retryable by the asset retrieval layer.

    Args:
        error_type: The error type to check

    Returns:
        True if the error type is retryable by default
    """
    return _DEFAULT_RETRYABLE.get(error_type, False)
