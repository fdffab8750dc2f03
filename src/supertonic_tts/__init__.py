"""
Supertonic TTS - on-device text-to-speech synthesis.

Turns text into a speech waveform by driving four neural networks (duration
predictor, text encoder, vector estimator, vocoder) through onnxruntime,
with a fixed-step denoising loop over a masked latent.

Key Components:
- SynthesisOrchestrator: Runs the pipeline for one text or batch
- TTSService: Facade that owns assets, engine and the current voice
- InferenceEngine: Protocol for the four inference stages
- create_inference_engine: Factory for onnx and mock engines
- SynthesisResult: Waveform, durations and stage timings

Usage:
    from supertonic_tts import TTSService

    with TTSService() as tts:
        tts.initialize()
        tts.synthesize_to_file("Hello world", "hello.wav")
"""

from .errors import (
    AssetMalformedError,
    AssetMissingError,
    EmptyBatchError,
    InferenceFailureError,
    InvalidLengthError,
    ServiceNotReadyError,
    StyleBatchMismatchError,
    SynthesisCancelledError,
    SynthesisError,
    SynthesisErrorType,
)
from .factory import create_inference_engine
from .interface import BaseInferenceEngine, InferenceEngine
from .models import (
    ModelConfig,
    StyleProfile,
    StyleTensor,
    SynthesisOptions,
    SynthesisResult,
    VoiceStyle,
)
from .orchestrator import PipelineStage, StageEvent, SynthesisOrchestrator
from .service import TTSService

__version__ = "0.1.0"

__all__ = [
    # Service
    "TTSService",
    "SynthesisOrchestrator",
    "PipelineStage",
    "StageEvent",
    # Interface
    "InferenceEngine",
    "BaseInferenceEngine",
    "create_inference_engine",
    # Models
    "ModelConfig",
    "StyleProfile",
    "StyleTensor",
    "SynthesisOptions",
    "SynthesisResult",
    "VoiceStyle",
    # Errors
    "SynthesisError",
    "SynthesisErrorType",
    "EmptyBatchError",
    "StyleBatchMismatchError",
    "InvalidLengthError",
    "InferenceFailureError",
    "AssetMissingError",
    "AssetMalformedError",
    "SynthesisCancelledError",
    "ServiceNotReadyError",
]
