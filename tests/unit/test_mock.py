"""
Unit tests for mock inference engines.
"""

import numpy as np
import pytest

from supertonic_tts.interface import BaseInferenceEngine, InferenceEngine
from supertonic_tts.mock import FailingInferenceEngine, MockInferenceEngine


@pytest.fixture
def text_inputs():
    """Token ids and mask for a batch of two texts."""
    ids = np.array([[1, 2, 3], [4, 5, 0]], dtype=np.int64)
    mask = np.array([[[1, 1, 1]], [[1, 1, 0]]], dtype=np.float32)
    return ids, mask


class TestMockInferenceEngine:
    """Tests for MockInferenceEngine."""

    def test_conforms_to_protocol(self):
        """Test the mock satisfies the InferenceEngine protocol."""
        engine = MockInferenceEngine()
        assert isinstance(engine, InferenceEngine)
        assert isinstance(engine, BaseInferenceEngine)
        assert engine.engine_name == "mock-identity-v1"
        assert engine.is_ready is True

    def test_duration_per_batch_item(self, text_inputs):
        """Test the duration predictor returns one value per item."""
        ids, mask = text_inputs
        engine = MockInferenceEngine(duration_seconds=0.75)

        durations = engine.predict_duration(ids, np.zeros((2, 1)), mask)

        np.testing.assert_array_equal(durations, [0.75, 0.75])

    def test_text_encoder_broadcasts_mask(self, text_inputs):
        """Test the text embedding has embedding_dim channels."""
        ids, mask = text_inputs
        engine = MockInferenceEngine(embedding_dim=4)

        emb = engine.encode_text(ids, np.zeros((2, 1)), mask)

        assert emb.shape == (2, 4, 3)

    def test_vector_estimator_is_identity(self):
        """Test the vector estimator returns its input unchanged."""
        engine = MockInferenceEngine()
        latent = np.random.default_rng(0).standard_normal((1, 6, 5)).astype(np.float32)
        step = np.zeros(1, dtype=np.float32)

        out = engine.estimate_vector(
            latent, np.zeros(1), np.zeros(1), np.zeros(1), np.ones((1, 1, 5)), step + 2, step
        )

        np.testing.assert_array_equal(out, latent)
        assert out is not latent

    def test_vocoder_fixed_length_tone(self):
        """Test the vocoder returns wav_length samples per item."""
        engine = MockInferenceEngine(wav_length=64, amplitude=0.25)

        wav = engine.vocode(np.zeros((2, 6, 5), dtype=np.float32))

        assert wav.shape == (2, 64)
        assert np.max(np.abs(wav)) <= 0.25
        np.testing.assert_array_equal(wav[0], wav[1])

    def test_calls_record_input_copies(self, text_inputs):
        """Test recorded inputs are not affected by later mutation."""
        ids, mask = text_inputs
        engine = MockInferenceEngine()

        engine.predict_duration(ids, np.zeros((2, 1)), mask)
        ids[0, 0] = 99

        recorded = engine.calls_for("duration_predictor")[0].inputs["text_ids"]
        assert recorded[0, 0] == 1

    def test_closed_engine_rejects_calls(self):
        """Test calls after close raise RuntimeError."""
        engine = MockInferenceEngine()
        engine.close()
        engine.close()

        assert engine.is_ready is False
        with pytest.raises(RuntimeError, match="closed"):
            engine.vocode(np.zeros((1, 6, 5), dtype=np.float32))

    def test_context_manager_closes(self):
        """Test the engine closes on context exit."""
        with MockInferenceEngine() as engine:
            assert engine.is_ready
        assert not engine.is_ready


class TestFailingInferenceEngine:
    """Tests for FailingInferenceEngine."""

    def test_fails_chosen_stage(self):
        """Test the chosen stage raises RuntimeError."""
        engine = FailingInferenceEngine(fail_stage="vocoder")

        with pytest.raises(RuntimeError, match="Simulated vocoder failure"):
            engine.vocode(np.zeros((1, 6, 5), dtype=np.float32))

    def test_other_stages_succeed(self, text_inputs):
        """Test stages other than the chosen one still work."""
        ids, mask = text_inputs
        engine = FailingInferenceEngine(fail_stage="vocoder")

        assert engine.predict_duration(ids, np.zeros((2, 1)), mask).shape == (2,)
        assert engine.engine_name == "mock-fail-vocoder-v1"

    def test_unknown_stage_rejected(self):
        """Test an unknown stage name raises ValueError."""
        with pytest.raises(ValueError):
            FailingInferenceEngine(fail_stage="mixer")
