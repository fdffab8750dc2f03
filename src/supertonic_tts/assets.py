"""
Model asset loading.

Loads the model config (``tts.json``), the unicode vocabulary
(``unicode_indexer.json``) and voice style files, and resolves the standard
on-disk layout of a model directory:

    <models_dir>/onnx/{duration_predictor,text_encoder,vector_estimator,vocoder}.onnx
    <models_dir>/onnx/tts.json
    <models_dir>/onnx/unicode_indexer.json
    <models_dir>/voice_styles/{M1,M2,F1,F2}.json
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from .errors import AssetMalformedError, AssetMissingError
from .models import ModelConfig, StyleProfile, StyleTensor, VoiceStyle
from .tensors import flatten_nested, shape_size
from .tokenizer import UnicodeVocabulary

logger = logging.getLogger(__name__)

CONFIG_FILE = "tts.json"
VOCABULARY_FILE = "unicode_indexer.json"
STYLE_KEYS = ("style_ttl", "style_dp")

# Model file per inference stage, under onnx/
MODEL_FILES: dict[str, str] = {
    "duration_predictor": "duration_predictor.onnx",
    "text_encoder": "text_encoder.onnx",
    "vector_estimator": "vector_estimator.onnx",
    "vocoder": "vocoder.onnx",
}


@dataclass(frozen=True)
class ModelAssetPaths:
    """Paths of every asset under a models directory."""

    models_dir: Path

    @property
    def onnx_dir(self) -> Path:
        return self.models_dir / "onnx"

    @property
    def voice_styles_dir(self) -> Path:
        return self.models_dir / "voice_styles"

    @property
    def config_path(self) -> Path:
        return self.onnx_dir / CONFIG_FILE

    @property
    def vocabulary_path(self) -> Path:
        return self.onnx_dir / VOCABULARY_FILE

    def voice_style_path(self, voice: VoiceStyle | str) -> Path:
        return self.voice_styles_dir / VoiceStyle.parse(voice).file_name

    def relative_files(self) -> list[str]:
        """Every required file, relative to ``models_dir``."""
        files = [f"onnx/{name}" for name in MODEL_FILES.values()]
        files += [f"onnx/{CONFIG_FILE}", f"onnx/{VOCABULARY_FILE}"]
        files += [f"voice_styles/{voice.file_name}" for voice in VoiceStyle]
        return files

    def missing_files(self) -> list[str]:
        return [f for f in self.relative_files() if not (self.models_dir / f).is_file()]


def _read_json(path: str | Path, what: str) -> Any:
    path = Path(path)
    if not path.is_file():
        raise AssetMissingError(f"{what} not found: {path}", {"path": str(path)})
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise AssetMalformedError(f"Invalid JSON in {what}: {e}", {"path": str(path)}) from e


def load_model_config(path: str | Path) -> ModelConfig:
    """Load the model configuration asset.

    Raises:
        AssetMissingError: If the file does not exist
        AssetMalformedError: If required fields are missing or invalid
    """
    data = _read_json(path, "Model config")
    try:
        config = ModelConfig.model_validate(data)
    except ValidationError as e:
        raise AssetMalformedError(
            f"Invalid model config {path}: {e.error_count()} validation error(s)",
            {"path": str(path), "errors": e.errors(include_url=False)},
        ) from e

    logger.info(
        f"Loaded model config: sample_rate={config.sample_rate}, "
        f"chunk_size={config.chunk_size}, latent_channels={config.latent_channels}"
    )
    return config


def load_vocabulary(path: str | Path) -> UnicodeVocabulary:
    """Load the unicode indexer (JSON integer array, index = codepoint).

    Raises:
        AssetMissingError: If the file does not exist
        AssetMalformedError: If the content is not an integer array
    """
    data = _read_json(path, "Vocabulary")
    if not isinstance(data, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in data
    ):
        raise AssetMalformedError(f"Vocabulary {path} must be a JSON array of integers")
    return UnicodeVocabulary(np.asarray(data, dtype=np.int64))


def _parse_style_tensor(entry: Any, key: str, path: Path) -> StyleTensor:
    if not isinstance(entry, dict) or "dims" not in entry or "data" not in entry:
        raise AssetMalformedError(
            f"Voice style {path}: '{key}' must be an object with 'dims' and 'data'"
        )
    dims = entry["dims"]
    if not isinstance(dims, list) or not all(isinstance(d, int) and d >= 0 for d in dims):
        raise AssetMalformedError(f"Voice style {path}: '{key}.dims' must be non-negative ints")

    values, _ = flatten_nested(entry["data"])
    if shape_size(dims) != values.size:
        raise AssetMalformedError(
            f"Voice style {path}: '{key}' dims {dims} do not match {values.size} values",
            {"path": str(path), "key": key, "dims": dims, "num_values": int(values.size)},
        )
    return StyleTensor(values=values, shape=tuple(dims))


def _load_style_file(path: Path) -> tuple[StyleTensor, StyleTensor]:
    data = _read_json(path, "Voice style")
    if not isinstance(data, dict):
        raise AssetMalformedError(f"Voice style {path} must be a JSON object")
    missing = [key for key in STYLE_KEYS if key not in data]
    if missing:
        raise AssetMalformedError(f"Voice style {path} missing: {', '.join(missing)}")
    ttl = _parse_style_tensor(data["style_ttl"], "style_ttl", path)
    dp = _parse_style_tensor(data["style_dp"], "style_dp", path)
    return ttl, dp


def _stack(tensors: Sequence[StyleTensor], key: str) -> StyleTensor:
    trailing = tensors[0].shape[1:]
    for tensor in tensors[1:]:
        if tensor.shape[1:] != trailing:
            raise AssetMalformedError(
                f"Cannot stack '{key}' tensors with shapes "
                f"{[list(t.shape) for t in tensors]}"
            )
    values = np.concatenate([t.as_array() for t in tensors], axis=0)
    return StyleTensor(values=values.reshape(-1), shape=values.shape)


def load_voice_style(
    paths: str | Path | Sequence[str | Path],
    name: str | None = None,
) -> StyleProfile:
    """Load one or more voice style files into a StyleProfile.

    Multiple files are stacked along the batch axis, one batch row block
    per file, so a batch of N texts can use N voices.

    Args:
        paths: One path or a list of paths to voice style JSON files
        name: Optional profile name (defaults to the first file's stem)

    Returns:
        StyleProfile with ttl and dp tensors

    Raises:
        AssetMissingError: If a file does not exist
        AssetMalformedError: If a file fails schema or shape checks
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    style_paths = [Path(p) for p in paths]
    if not style_paths:
        raise ValueError("At least one style path is required")

    loaded = [_load_style_file(path) for path in style_paths]
    ttl = _stack([ttl for ttl, _ in loaded], "style_ttl")
    dp = _stack([dp for _, dp in loaded], "style_dp")

    logger.info(
        f"Loaded voice style from {', '.join(str(p) for p in style_paths)}: "
        f"ttl={list(ttl.shape)}, dp={list(dp.shape)}"
    )
    return StyleProfile(ttl=ttl, dp=dp, name=name or style_paths[0].stem)
