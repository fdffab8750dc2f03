"""
Mock Inference Engine Implementations.

Provides deterministic stand-ins for the four networks so the pipeline can
be exercised without model files.

Mock Implementations:
- MockInferenceEngine: Fixed durations, shape-preserving stages, fixed-length vocoder
- FailingInferenceEngine: Raises from a chosen stage
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .interface import BaseInferenceEngine

STAGES = ("duration_predictor", "text_encoder", "vector_estimator", "vocoder")


@dataclass
class StageCall:
    """One recorded stage invocation."""

    stage: str
    inputs: dict[str, Any] = field(default_factory=dict)


class MockInferenceEngine(BaseInferenceEngine):
    """Deterministic stub engine.

    - duration predictor returns ``duration_seconds`` for every item
    - text encoder returns the text mask broadcast to ``embedding_dim`` channels
    - vector estimator returns the noisy latent unchanged
    - vocoder returns ``wav_length`` samples of a 440Hz tone per item

    Every call is recorded in ``calls`` with copies of its inputs.
    """

    def __init__(
        self,
        duration_seconds: float = 1.0,
        wav_length: int = 4410,
        embedding_dim: int = 8,
        sample_rate: int = 44100,
        amplitude: float = 0.5,
    ):
        super().__init__()
        self._duration_seconds = duration_seconds
        self._wav_length = wav_length
        self._embedding_dim = embedding_dim
        self._sample_rate = sample_rate
        self._amplitude = amplitude
        self.calls: list[StageCall] = []

    @property
    def engine_name(self) -> str:
        return "mock-identity-v1"

    @property
    def wav_length(self) -> int:
        return self._wav_length

    def calls_for(self, stage: str) -> list[StageCall]:
        """Return the recorded calls of one stage, in order."""
        return [call for call in self.calls if call.stage == stage]

    def _record(self, stage: str, inputs: dict[str, Any]) -> None:
        self.calls.append(
            StageCall(stage=stage, inputs={k: np.array(v, copy=True) for k, v in inputs.items()})
        )

    def _predict_duration(self, **inputs: Any) -> NDArray[np.float32]:
        self._record("duration_predictor", inputs)
        batch_size = inputs["text_ids"].shape[0]
        return np.full(batch_size, self._duration_seconds, dtype=np.float32)

    def _encode_text(self, **inputs: Any) -> NDArray[np.float32]:
        self._record("text_encoder", inputs)
        mask = inputs["text_mask"]
        return np.repeat(mask, self._embedding_dim, axis=1).astype(np.float32)

    def _estimate_vector(self, **inputs: Any) -> NDArray[np.float32]:
        self._record("vector_estimator", inputs)
        return np.array(inputs["noisy_latent"], dtype=np.float32, copy=True)

    def _vocode(self, **inputs: Any) -> NDArray[np.float32]:
        self._record("vocoder", inputs)
        batch_size = inputs["latent"].shape[0]
        t = np.arange(self._wav_length, dtype=np.float32) / self._sample_rate
        tone = (self._amplitude * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
        return np.tile(tone, (batch_size, 1))


class FailingInferenceEngine(MockInferenceEngine):
    """Mock engine whose ``fail_stage`` raises RuntimeError.

    Useful for testing failure propagation: no partial audio may be
    returned when a stage fails.
    """

    def __init__(self, fail_stage: str = "vector_estimator", **kwargs: Any):
        if fail_stage not in STAGES:
            raise ValueError(f"Unknown stage: {fail_stage}. Supported stages: {', '.join(STAGES)}")
        super().__init__(**kwargs)
        self._fail_stage = fail_stage

    @property
    def engine_name(self) -> str:
        return f"mock-fail-{self._fail_stage}-v1"

    def _maybe_fail(self, stage: str) -> None:
        if stage == self._fail_stage:
            raise RuntimeError(f"Simulated {stage} failure")

    def _predict_duration(self, **inputs: Any) -> NDArray[np.float32]:
        self._maybe_fail("duration_predictor")
        return super()._predict_duration(**inputs)

    def _encode_text(self, **inputs: Any) -> NDArray[np.float32]:
        self._maybe_fail("text_encoder")
        return super()._encode_text(**inputs)

    def _estimate_vector(self, **inputs: Any) -> NDArray[np.float32]:
        self._maybe_fail("vector_estimator")
        return super()._estimate_vector(**inputs)

    def _vocode(self, **inputs: Any) -> NDArray[np.float32]:
        self._maybe_fail("vocoder")
        return super()._vocode(**inputs)
