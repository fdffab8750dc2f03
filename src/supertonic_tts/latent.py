"""
Latent noise sampling.

Computes the padded latent grid for a batch from the predicted durations,
fills it with standard normal noise and zeroes every frame past each item's
real length.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import EmptyBatchError, InvalidLengthError
from .models import LatentState, ModelConfig
from .tensors import lengths_to_mask


@runtime_checkable
class NoiseGenerator(Protocol):
    """Source of independent standard normal samples."""

    def standard_normal(self, shape: Sequence[int]) -> NDArray[np.float32]:
        """Return float32 samples with mean 0 and variance 1."""
        ...


class NumpyNoiseGenerator:
    """NoiseGenerator backed by numpy's PCG64 bit generator.

    A single generator is shared by concurrent calls, so draws are
    serialized with a lock.
    """

    def __init__(self, seed: int | None = None):
        self._rng = np.random.default_rng(seed)
        self._lock = threading.Lock()

    def standard_normal(self, shape: Sequence[int]) -> NDArray[np.float32]:
        with self._lock:
            return self._rng.standard_normal(tuple(shape), dtype=np.float32)


class LatentNoiseSampler:
    """Builds the initial noisy latent and latent mask for a batch."""

    def __init__(self, config: ModelConfig, generator: NoiseGenerator | None = None):
        self._config = config
        self._generator = generator or NumpyNoiseGenerator()

    def latent_lengths(self, durations: ArrayLike) -> tuple[NDArray[np.int64], int]:
        """Return per-item latent lengths and the padded latent length.

        Args:
            durations: Per-item durations in seconds

        Returns:
            Tuple of (latent_lengths, latent_len)
        """
        durations_arr = np.asarray(durations, dtype=np.float64).reshape(-1)
        if durations_arr.size == 0:
            raise EmptyBatchError("Duration array is empty")
        if (durations_arr < 0).any():
            raise InvalidLengthError(
                "Durations must be non-negative", {"durations": durations_arr.tolist()}
            )

        sample_rate = self._config.sample_rate
        chunk_size = self._config.chunk_size

        wav_len_max = float(durations_arr.max()) * sample_rate
        wav_lengths = np.floor(durations_arr * sample_rate).astype(np.int64)

        latent_len = int(math.ceil(wav_len_max / chunk_size))
        latent_lengths = (wav_lengths + chunk_size - 1) // chunk_size
        return latent_lengths, latent_len

    def sample(self, durations: ArrayLike) -> LatentState:
        """Sample a masked noisy latent for the given durations.

        Args:
            durations: Per-item durations in seconds (after speed scaling)

        Returns:
            LatentState with values (B, latent_dim * compress, T) and mask (B, 1, T)

        Raises:
            EmptyBatchError: If durations is empty
            InvalidLengthError: If a duration is negative
        """
        latent_lengths, latent_len = self.latent_lengths(durations)
        batch_size = int(latent_lengths.shape[0])

        noise = self._generator.standard_normal(
            (batch_size, self._config.latent_channels, latent_len)
        )
        noise = np.ascontiguousarray(noise, dtype=np.float32)

        latent_mask = lengths_to_mask(latent_lengths, latent_len)
        noise *= latent_mask
        return LatentState(values=noise, mask=latent_mask)
