"""
ONNX Runtime Inference Engine.

Implements the InferenceEngine contract with four onnxruntime sessions,
one per network, loaded once from an ``onnx`` model directory and shared
by every synthesis call.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort
from numpy.typing import NDArray

from .assets import MODEL_FILES
from .errors import AssetMissingError
from .interface import BaseInferenceEngine

logger = logging.getLogger(__name__)

# Named output consumed from each stage
OUTPUT_NAMES: dict[str, str] = {
    "duration_predictor": "duration",
    "text_encoder": "text_emb",
    "vector_estimator": "denoised_latent",
    "vocoder": "wav_tts",
}

DEFAULT_PROVIDERS: tuple[str, ...] = ("CPUExecutionProvider",)


class OnnxInferenceEngine(BaseInferenceEngine):
    """Inference engine backed by onnxruntime InferenceSessions."""

    def __init__(
        self,
        sessions: dict[str, Any],
        providers: Sequence[str] = DEFAULT_PROVIDERS,
    ):
        """Initialize from already created sessions.

        Args:
            sessions: Mapping of stage name to onnxruntime.InferenceSession
            providers: Execution providers the sessions were created with
        """
        super().__init__()
        missing = sorted(set(MODEL_FILES) - set(sessions))
        if missing:
            raise ValueError(f"Missing inference sessions for stages: {', '.join(missing)}")
        self._sessions = dict(sessions)
        self._providers = tuple(providers)

    @classmethod
    def from_directory(
        cls,
        onnx_dir: str | Path,
        providers: Sequence[str] | None = None,
        intra_op_threads: int | None = None,
    ) -> "OnnxInferenceEngine":
        """Load all four models from a directory.

        Args:
            onnx_dir: Directory containing the four ``.onnx`` files
            providers: onnxruntime execution providers (default: CPU)
            intra_op_threads: Optional intra-op thread count

        Returns:
            OnnxInferenceEngine owning the loaded sessions

        Raises:
            AssetMissingError: If any model file is absent
        """
        onnx_dir = Path(onnx_dir)
        missing = [name for name in MODEL_FILES.values() if not (onnx_dir / name).is_file()]
        if missing:
            raise AssetMissingError(
                f"ONNX models not found in {onnx_dir}: {', '.join(missing)}",
                {"onnx_dir": str(onnx_dir), "missing": missing},
            )

        options = ort.SessionOptions()
        if intra_op_threads:
            options.intra_op_num_threads = intra_op_threads
        providers = tuple(providers or DEFAULT_PROVIDERS)

        sessions: dict[str, Any] = {}
        for stage, file_name in MODEL_FILES.items():
            model_path = onnx_dir / file_name
            logger.info(f"Loading {stage} model: {model_path}")
            sessions[stage] = ort.InferenceSession(
                str(model_path), sess_options=options, providers=list(providers)
            )

        return cls(sessions, providers=providers)

    @property
    def engine_name(self) -> str:
        device = "gpu" if any("CUDA" in p or "DirectML" in p for p in self._providers) else "cpu"
        return f"onnxruntime-{device}"

    def _run(self, stage: str, feed: dict[str, NDArray[Any]]) -> NDArray[np.float32]:
        session = self._sessions[stage]
        inputs = {name: np.ascontiguousarray(value) for name, value in feed.items()}
        outputs = session.run([OUTPUT_NAMES[stage]], inputs)
        return np.asarray(outputs[0], dtype=np.float32)

    def _predict_duration(self, **inputs: Any) -> NDArray[np.float32]:
        return self._run("duration_predictor", inputs).reshape(-1)

    def _encode_text(self, **inputs: Any) -> NDArray[np.float32]:
        return self._run("text_encoder", inputs)

    def _estimate_vector(self, **inputs: Any) -> NDArray[np.float32]:
        return self._run("vector_estimator", inputs)

    def _vocode(self, **inputs: Any) -> NDArray[np.float32]:
        return self._run("vocoder", inputs)

    def _release(self) -> None:
        self._sessions.clear()
        logger.info("OnnxInferenceEngine sessions released")
