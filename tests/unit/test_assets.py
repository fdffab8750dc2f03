"""
Unit tests for model asset loading.
"""

import json

import numpy as np
import pytest

from supertonic_tts.assets import (
    ModelAssetPaths,
    load_model_config,
    load_vocabulary,
    load_voice_style,
)
from supertonic_tts.errors import AssetMalformedError, AssetMissingError
from supertonic_tts.models import VoiceStyle


def _write_json(path, data):
    path.write_text(json.dumps(data))
    return path


def _style(ttl_dims, dp_dims, fill=0.5):
    return {
        "style_ttl": {
            "dims": list(ttl_dims),
            "data": np.full(ttl_dims, fill).tolist(),
        },
        "style_dp": {
            "dims": list(dp_dims),
            "data": np.full(dp_dims, fill).tolist(),
        },
    }


class TestLoadModelConfig:
    """Tests for load_model_config."""

    def test_loads_config(self, models_dir):
        """Test the fixture config loads."""
        config = load_model_config(models_dir / "onnx" / "tts.json")
        assert config.sample_rate == 1000
        assert config.chunk_size == 20

    def test_missing_file_raises(self, tmp_path):
        """Test a missing config raises AssetMissingError."""
        with pytest.raises(AssetMissingError):
            load_model_config(tmp_path / "tts.json")

    def test_invalid_json_raises(self, tmp_path):
        """Test broken JSON raises AssetMalformedError."""
        path = tmp_path / "tts.json"
        path.write_text("{not json")
        with pytest.raises(AssetMalformedError):
            load_model_config(path)

    def test_missing_field_raises(self, tmp_path):
        """Test a config without ttl raises AssetMalformedError."""
        path = _write_json(tmp_path / "tts.json", {"ae": {"sample_rate": 1, "base_chunk_size": 1}})
        with pytest.raises(AssetMalformedError):
            load_model_config(path)


class TestLoadVocabulary:
    """Tests for load_vocabulary."""

    def test_loads_integer_array(self, tmp_path):
        """Test a JSON integer array loads as a vocabulary."""
        vocab = load_vocabulary(_write_json(tmp_path / "idx.json", [-1, 4, 7]))
        assert len(vocab) == 3
        assert vocab.lookup(0) == -1
        assert vocab.lookup(2) == 7

    @pytest.mark.parametrize("data", [{"a": 1}, [1, "x"], [1.5, 2.0], [True, False]])
    def test_rejects_non_integer_content(self, tmp_path, data):
        """Test non-integer content raises AssetMalformedError."""
        with pytest.raises(AssetMalformedError):
            load_vocabulary(_write_json(tmp_path / "idx.json", data))


class TestLoadVoiceStyle:
    """Tests for load_voice_style."""

    def test_loads_single_file(self, tmp_path):
        """Test one voice file loads with batch size 1."""
        path = _write_json(tmp_path / "F1.json", _style((1, 3, 4), (1, 2, 2)))

        profile = load_voice_style(path)

        assert profile.name == "F1"
        assert profile.batch_size == 1
        assert profile.ttl.shape == (1, 3, 4)
        assert profile.dp.shape == (1, 2, 2)
        assert np.all(profile.ttl.values == 0.5)

    def test_stacks_multiple_files(self, tmp_path):
        """Test several files stack along the batch axis in order."""
        first = _write_json(tmp_path / "a.json", _style((1, 3, 4), (1, 2, 2), fill=1.0))
        second = _write_json(tmp_path / "b.json", _style((1, 3, 4), (1, 2, 2), fill=2.0))

        profile = load_voice_style([first, second], name="pair")

        assert profile.name == "pair"
        assert profile.batch_size == 2
        assert profile.ttl.shape == (2, 3, 4)
        np.testing.assert_array_equal(profile.ttl.as_array()[0], np.full((3, 4), 1.0))
        np.testing.assert_array_equal(profile.ttl.as_array()[1], np.full((3, 4), 2.0))

    def test_mismatched_trailing_dims_raise(self, tmp_path):
        """Test files with different trailing dims cannot be stacked."""
        first = _write_json(tmp_path / "a.json", _style((1, 3, 4), (1, 2, 2)))
        second = _write_json(tmp_path / "b.json", _style((1, 3, 5), (1, 2, 2)))

        with pytest.raises(AssetMalformedError):
            load_voice_style([first, second])

    def test_dims_data_mismatch_raises(self, tmp_path):
        """Test declared dims must match the data element count."""
        data = _style((1, 3, 4), (1, 2, 2))
        data["style_ttl"]["dims"] = [1, 3, 5]

        with pytest.raises(AssetMalformedError):
            load_voice_style(_write_json(tmp_path / "bad.json", data))

    def test_missing_key_raises(self, tmp_path):
        """Test a file without style_dp raises AssetMalformedError."""
        data = _style((1, 3, 4), (1, 2, 2))
        del data["style_dp"]

        with pytest.raises(AssetMalformedError, match="style_dp"):
            load_voice_style(_write_json(tmp_path / "bad.json", data))

    def test_ragged_data_raises(self, tmp_path):
        """Test ragged nested data raises AssetMalformedError."""
        data = _style((1, 3, 4), (1, 2, 2))
        data["style_dp"]["data"] = [[[0.1, 0.2], [0.3]]]

        with pytest.raises(AssetMalformedError):
            load_voice_style(_write_json(tmp_path / "bad.json", data))

    def test_missing_file_raises(self, tmp_path):
        """Test a missing voice file raises AssetMissingError."""
        with pytest.raises(AssetMissingError):
            load_voice_style(tmp_path / "nope.json")


class TestModelAssetPaths:
    """Tests for ModelAssetPaths."""

    def test_layout(self, tmp_path):
        """Test standard asset locations."""
        paths = ModelAssetPaths(tmp_path)

        assert paths.config_path == tmp_path / "onnx" / "tts.json"
        assert paths.vocabulary_path == tmp_path / "onnx" / "unicode_indexer.json"
        assert paths.voice_style_path("female2") == tmp_path / "voice_styles" / "F2.json"
        assert paths.voice_style_path(VoiceStyle.M1) == tmp_path / "voice_styles" / "M1.json"

    def test_lists_all_required_files(self, tmp_path):
        """Test ten files are required."""
        files = ModelAssetPaths(tmp_path).relative_files()

        assert len(files) == 10
        assert "onnx/vector_estimator.onnx" in files
        assert "voice_styles/F1.json" in files

    def test_missing_files(self, models_dir):
        """Test missing files are reported relative to the models dir."""
        paths = ModelAssetPaths(models_dir)
        assert paths.missing_files() == []

        (models_dir / "onnx" / "vocoder.onnx").unlink()
        assert paths.missing_files() == ["onnx/vocoder.onnx"]
