"""
Inference Engine Interface Contract.

This module defines the contract every inference backend follows. The four
networks (duration predictor, text encoder, vector estimator, vocoder) are
opaque functions described only by their tensor inputs and outputs. Both the
ONNX Runtime engine and the mock engines conform to this contract.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol, TypeVar, runtime_checkable

import numpy as np
from numpy.typing import NDArray

T = TypeVar("T")


@runtime_checkable
class InferenceEngine(Protocol):
    """Protocol defining the four-stage inference contract."""

    @property
    def engine_name(self) -> str:
        """Return the backend identifier (e.g., 'onnxruntime-cpu')."""
        ...

    @property
    def is_ready(self) -> bool:
        """Check if all four stages are loaded and callable."""
        ...

    def predict_duration(
        self,
        text_ids: NDArray[np.int64],
        style_dp: NDArray[np.float32],
        text_mask: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        """Predict utterance duration in seconds.

        Args:
            text_ids: Token ids (B, L)
            style_dp: Duration style tensor (B, ...)
            text_mask: Text validity mask (B, 1, L)

        Returns:
            Durations (B,)
        """
        ...

    def encode_text(
        self,
        text_ids: NDArray[np.int64],
        style_ttl: NDArray[np.float32],
        text_mask: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        """Encode tokens into a text embedding (opaque shape)."""
        ...

    def estimate_vector(
        self,
        noisy_latent: NDArray[np.float32],
        text_emb: NDArray[np.float32],
        style_ttl: NDArray[np.float32],
        text_mask: NDArray[np.float32],
        latent_mask: NDArray[np.float32],
        total_step: NDArray[np.float32],
        current_step: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        """Run one denoising step; returns the denoised latent (B, D, T)."""
        ...

    def vocode(self, latent: NDArray[np.float32]) -> NDArray[np.float32]:
        """Convert the final latent into waveform samples per batch item."""
        ...

    def close(self) -> None:
        """Release model handles."""
        ...


class BaseInferenceEngine(ABC):
    """Abstract base class for inference engine implementations.

    Provides scoped-resource handling (context manager, idempotent close)
    and serializes stage calls on one instance with a lock, since the
    underlying runtimes are not assumed to be thread-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Subclasses must provide their backend identifier."""
        pass

    @property
    def is_ready(self) -> bool:
        return not self._closed

    def predict_duration(
        self,
        text_ids: NDArray[np.int64],
        style_dp: NDArray[np.float32],
        text_mask: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        return self._serialized(
            self._predict_duration, text_ids=text_ids, style_dp=style_dp, text_mask=text_mask
        )

    def encode_text(
        self,
        text_ids: NDArray[np.int64],
        style_ttl: NDArray[np.float32],
        text_mask: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        return self._serialized(
            self._encode_text, text_ids=text_ids, style_ttl=style_ttl, text_mask=text_mask
        )

    def estimate_vector(
        self,
        noisy_latent: NDArray[np.float32],
        text_emb: NDArray[np.float32],
        style_ttl: NDArray[np.float32],
        text_mask: NDArray[np.float32],
        latent_mask: NDArray[np.float32],
        total_step: NDArray[np.float32],
        current_step: NDArray[np.float32],
    ) -> NDArray[np.float32]:
        return self._serialized(
            self._estimate_vector,
            noisy_latent=noisy_latent,
            text_emb=text_emb,
            style_ttl=style_ttl,
            text_mask=text_mask,
            latent_mask=latent_mask,
            total_step=total_step,
            current_step=current_step,
        )

    def vocode(self, latent: NDArray[np.float32]) -> NDArray[np.float32]:
        return self._serialized(self._vocode, latent=latent)

    def _serialized(self, fn: Callable[..., T], **inputs: Any) -> T:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Inference engine '{self.engine_name}' is closed")
            return fn(**inputs)

    @abstractmethod
    def _predict_duration(self, **inputs: Any) -> NDArray[np.float32]:
        pass

    @abstractmethod
    def _encode_text(self, **inputs: Any) -> NDArray[np.float32]:
        pass

    @abstractmethod
    def _estimate_vector(self, **inputs: Any) -> NDArray[np.float32]:
        pass

    @abstractmethod
    def _vocode(self, **inputs: Any) -> NDArray[np.float32]:
        pass

    def _release(self) -> None:
        """Release backend handles. Override if cleanup needed."""
        return  # noqa: B027 - intentionally empty default implementation

    def close(self) -> None:
        """Release resources. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._release()

    def __enter__(self) -> "BaseInferenceEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
