"""
Inference Engine Factory.

Creates inference engine instances based on provider configuration.
Supports the ONNX Runtime engine for real synthesis and mock engines for
testing.

The default provider is controlled by the SUPERTONIC_ENGINE environment
variable. Default: "onnx".
"""

import os
from typing import Any, Literal

from .interface import BaseInferenceEngine

ProviderType = Literal["onnx", "mock", "mock_fail"]

# Default provider (can be overridden by SUPERTONIC_ENGINE env var)
DEFAULT_PROVIDER: ProviderType = "onnx"


def create_inference_engine(
    provider: ProviderType | None = None,
    **kwargs: Any,
) -> BaseInferenceEngine:
    """Create an inference engine instance.

    Args:
        provider: The engine to use. If None, uses SUPERTONIC_ENGINE env var
                  or defaults to "onnx".
            - "onnx": onnxruntime sessions loaded from a model directory
            - "mock": Deterministic shape-preserving stub
            - "mock_fail": Stub that raises from one stage
        **kwargs: Additional provider-specific arguments:
            For onnx:
                - onnx_dir: Directory with the four .onnx files (required)
                - providers: onnxruntime execution providers
                - intra_op_threads: Intra-op thread count
            For mock / mock_fail:
                - duration_seconds, wav_length, embedding_dim, sample_rate
                - fail_stage (mock_fail only)

    Returns:
        Inference engine instance

    Raises:
        ValueError: If provider is not supported
    """
    if provider is None:
        provider = os.environ.get("SUPERTONIC_ENGINE", DEFAULT_PROVIDER)  # type: ignore

    if provider == "onnx":
        from .onnx_engine import OnnxInferenceEngine

        return OnnxInferenceEngine.from_directory(**kwargs)

    elif provider == "mock":
        from .mock import MockInferenceEngine

        return MockInferenceEngine(**kwargs)

    elif provider == "mock_fail":
        from .mock import FailingInferenceEngine

        return FailingInferenceEngine(**kwargs)

    else:
        raise ValueError(
            f"Unknown inference engine: {provider}. Supported engines: onnx, mock, mock_fail"
        )
