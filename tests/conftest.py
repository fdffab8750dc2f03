"""Shared test fixtures for Supertonic TTS tests.

Provides a small model configuration, an identity vocabulary, style
profiles, mock engines and an on-disk model directory with fixture assets.
"""

import json
from pathlib import Path

import numpy as np
import pytest

from supertonic_tts.latent import NumpyNoiseGenerator
from supertonic_tts.mock import MockInferenceEngine
from supertonic_tts.models import ModelConfig, StyleProfile, StyleTensor
from supertonic_tts.orchestrator import SynthesisOrchestrator
from supertonic_tts.tokenizer import UnicodeTokenizer, UnicodeVocabulary

# =============================================================================
# Model Fixtures
# =============================================================================

# chunk_size = 10 * 2 = 20 samples, latent_channels = 3 * 2 = 6
TEST_MODEL_CONFIG = {
    "ae": {"sample_rate": 1000, "base_chunk_size": 10},
    "ttl": {"chunk_compress_factor": 2, "latent_dim": 3},
}

STYLE_TTL_DIMS = (4, 8)
STYLE_DP_DIMS = (2, 4)


def make_style(batch_size: int = 1, seed: int = 0, name: str | None = "M1") -> StyleProfile:
    """Build a StyleProfile with deterministic values."""
    rng = np.random.default_rng(seed)
    ttl_shape = (batch_size, *STYLE_TTL_DIMS)
    dp_shape = (batch_size, *STYLE_DP_DIMS)
    return StyleProfile(
        ttl=StyleTensor(rng.standard_normal(ttl_shape).astype(np.float32).ravel(), ttl_shape),
        dp=StyleTensor(rng.standard_normal(dp_shape).astype(np.float32).ravel(), dp_shape),
        name=name,
    )


def style_json(seed: int = 0) -> dict:
    """Voice style file content in the on-disk {dims, data} layout."""
    style = make_style(seed=seed)
    return {
        "style_ttl": {"dims": list(style.ttl.shape), "data": style.ttl.as_array().tolist()},
        "style_dp": {"dims": list(style.dp.shape), "data": style.dp.as_array().tolist()},
    }


@pytest.fixture
def model_config() -> ModelConfig:
    """Small model configuration for fast tests."""
    return ModelConfig.model_validate(TEST_MODEL_CONFIG)


@pytest.fixture
def vocabulary() -> UnicodeVocabulary:
    """Identity vocabulary for the first 256 codepoints."""
    return UnicodeVocabulary(np.arange(256, dtype=np.int64))


@pytest.fixture
def tokenizer(vocabulary) -> UnicodeTokenizer:
    return UnicodeTokenizer(vocabulary)


@pytest.fixture
def style_profile() -> StyleProfile:
    """Single-voice style profile (batch size 1)."""
    return make_style(batch_size=1)


@pytest.fixture
def mock_engine() -> MockInferenceEngine:
    """Mock engine with 1s durations and a 100-sample vocoder output."""
    return MockInferenceEngine(duration_seconds=1.0, wav_length=100, sample_rate=1000)


@pytest.fixture
def orchestrator(mock_engine, model_config, tokenizer) -> SynthesisOrchestrator:
    """Orchestrator over the mock engine with seeded noise."""
    return SynthesisOrchestrator(
        mock_engine,
        model_config,
        tokenizer,
        noise_generator=NumpyNoiseGenerator(seed=1234),
    )


# =============================================================================
# On-disk Asset Fixtures
# =============================================================================


def write_model_dir(root: Path, include_onnx: bool = True) -> Path:
    """Write a complete fixture model directory under ``root``.

    The .onnx files are empty placeholders; tests that load them patch
    onnxruntime or use a mock engine.
    """
    onnx_dir = root / "onnx"
    styles_dir = root / "voice_styles"
    onnx_dir.mkdir(parents=True, exist_ok=True)
    styles_dir.mkdir(parents=True, exist_ok=True)

    if include_onnx:
        for name in ("duration_predictor", "text_encoder", "vector_estimator", "vocoder"):
            (onnx_dir / f"{name}.onnx").write_bytes(b"")

    (onnx_dir / "tts.json").write_text(json.dumps(TEST_MODEL_CONFIG))
    (onnx_dir / "unicode_indexer.json").write_text(json.dumps(list(range(256))))
    for seed, voice in enumerate(("M1", "M2", "F1", "F2")):
        (styles_dir / f"{voice}.json").write_text(json.dumps(style_json(seed=seed)))
    return root


@pytest.fixture
def models_dir(tmp_path) -> Path:
    """Complete fixture model directory."""
    return write_model_dir(tmp_path / "models")


@pytest.fixture
def style_factory():
    """Factory for style profiles with a chosen batch size."""
    return make_style
