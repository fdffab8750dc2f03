"""
Audio Encoding Module for synthesis output.

Converts float waveforms to 16-bit PCM and writes mono RIFF/WAVE files or
in-memory WAV buffers with the stdlib ``wave`` module.
"""

import io
import logging
import wave
from pathlib import Path
from typing import BinaryIO

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

PCM16_SCALE = 32767


class EncodingError(Exception):
    """Raised when audio encoding fails."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def float_to_pcm16(wav: ArrayLike) -> NDArray[np.int16]:
    """Convert a float waveform to 16-bit PCM samples.

    Samples are clamped to [-1, 1] and scaled by 32767; the fractional
    part is truncated toward zero.

    Args:
        wav: Float samples (any shape, flattened row-major)

    Returns:
        1-D int16 array

    Raises:
        EncodingError: If the waveform is empty
    """
    samples = np.asarray(wav, dtype=np.float32).reshape(-1)
    if samples.size == 0:
        raise EncodingError("Empty waveform provided")
    clipped = np.clip(samples, -1.0, 1.0)
    return (clipped * PCM16_SCALE).astype(np.int16)


def _write(target: str | Path | BinaryIO, wav: ArrayLike, sample_rate: int) -> int:
    if sample_rate <= 0:
        raise EncodingError(f"Invalid sample rate: {sample_rate}")
    pcm = float_to_pcm16(wav)
    if isinstance(target, Path):
        target = str(target)

    with wave.open(target, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.astype("<i2").tobytes())
    return int(pcm.size)


def write_wav(path: str | Path, wav: ArrayLike, sample_rate: int) -> Path:
    """Write a mono 16-bit WAV file.

    Args:
        path: Output file path (parent directories are created)
        wav: Float waveform
        sample_rate: Sample rate in Hz

    Returns:
        The written path

    Raises:
        EncodingError: If the waveform is empty, the sample rate is invalid
            or the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        num_samples = _write(path, wav, sample_rate)
    except OSError as e:
        raise EncodingError(f"Failed to write WAV file {path}: {e}", {"path": str(path)}) from e

    logger.info(
        f"Wrote {path}: {num_samples} samples, {num_samples / sample_rate:.2f}s at {sample_rate}Hz"
    )
    return path


def wav_to_bytes(wav: ArrayLike, sample_rate: int) -> bytes:
    """Encode a float waveform as an in-memory mono 16-bit WAV file."""
    buffer = io.BytesIO()
    _write(buffer, wav, sample_rate)
    return buffer.getvalue()
