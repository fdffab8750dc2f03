"""
Data models for the synthesis pipeline.

Pydantic models cover validated configuration and request options; frozen
dataclasses hold the numpy tensors that flow between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from .errors import AssetMalformedError
from .tensors import shape_size

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class VoiceStyle(str, Enum):
    """Voice styles shipped with the model repository."""

    M1 = "M1"
    M2 = "M2"
    F1 = "F1"
    F2 = "F2"

    @property
    def file_name(self) -> str:
        return f"{self.value}.json"

    @classmethod
    def parse(cls, value: "VoiceStyle | str") -> "VoiceStyle":
        """Parse a voice from its code ("F1") or long name ("female1").

        Raises:
            ValueError: If the value names no known voice
        """
        if isinstance(value, VoiceStyle):
            return value
        key = value.strip().lower()
        for voice in cls:
            if key == voice.value.lower() or key == _LONG_VOICE_NAMES[voice]:
                return voice
        supported = ", ".join(v.value for v in cls)
        raise ValueError(f"Unknown voice style: {value}. Supported voices: {supported}")


_LONG_VOICE_NAMES: dict[VoiceStyle, str] = {
    VoiceStyle.M1: "male1",
    VoiceStyle.M2: "male2",
    VoiceStyle.F1: "female1",
    VoiceStyle.F2: "female2",
}


# -----------------------------------------------------------------------------
# Configuration Models
# -----------------------------------------------------------------------------


class AutoencoderConfig(BaseModel):
    """Waveform autoencoder section of the model config asset (``ae``)."""

    sample_rate: int = Field(..., gt=0, description="Output sample rate in Hz")
    base_chunk_size: int = Field(..., gt=0, description="Samples per base latent frame")

    model_config = ConfigDict(frozen=True, extra="ignore")


class TextToLatentConfig(BaseModel):
    """Text-to-latent section of the model config asset (``ttl``)."""

    chunk_compress_factor: int = Field(..., gt=0, description="Latent frames folded per step")
    latent_dim: int = Field(..., gt=0, description="Latent channels before folding")

    model_config = ConfigDict(frozen=True, extra="ignore")


class ModelConfig(BaseModel):
    """Immutable model configuration, loaded once per model set (``tts.json``)."""

    ae: AutoencoderConfig
    ttl: TextToLatentConfig

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "ae": {"sample_rate": 44100, "base_chunk_size": 512},
                "ttl": {"chunk_compress_factor": 6, "latent_dim": 24},
            }
        },
    )

    @property
    def sample_rate(self) -> int:
        return self.ae.sample_rate

    @property
    def base_chunk_size(self) -> int:
        return self.ae.base_chunk_size

    @property
    def chunk_compress_factor(self) -> int:
        return self.ttl.chunk_compress_factor

    @property
    def latent_dim(self) -> int:
        return self.ttl.latent_dim

    @property
    def chunk_size(self) -> int:
        """Waveform samples represented by one latent time step."""
        return self.ae.base_chunk_size * self.ttl.chunk_compress_factor

    @property
    def latent_channels(self) -> int:
        """Channel count of the folded latent tensor."""
        return self.ttl.latent_dim * self.ttl.chunk_compress_factor


class SynthesisOptions(BaseModel):
    """Per-call synthesis parameters."""

    total_steps: int = Field(default=5, ge=1, description="Number of denoising steps")
    speed: float = Field(default=1.05, gt=0, description="Speech rate; higher is faster")
    silence_duration: float = Field(
        default=0.3, ge=0, description="Trailing silence appended to the waveform (s)"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"total_steps": 5, "speed": 1.05, "silence_duration": 0.3}
        },
    )


# -----------------------------------------------------------------------------
# Tensor Entities
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class StyleTensor:
    """Flat float buffer paired with its shape."""

    values: NDArray[np.float32]
    shape: tuple[int, ...]

    def __post_init__(self) -> None:
        values = np.ascontiguousarray(np.asarray(self.values, dtype=np.float32).reshape(-1))
        shape = tuple(int(d) for d in self.shape)
        if not shape:
            raise AssetMalformedError("Style tensor shape must have at least one dimension")
        if shape_size(shape) != values.size:
            raise AssetMalformedError(
                f"Style tensor shape {list(shape)} does not match {values.size} values",
                {"shape": list(shape), "num_values": int(values.size)},
            )
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "shape", shape)

    @property
    def batch_size(self) -> int:
        return self.shape[0]

    def as_array(self) -> NDArray[np.float32]:
        """Return the values reshaped to ``shape`` (read-only view)."""
        return self.values.reshape(self.shape)


@dataclass(frozen=True)
class StyleProfile:
    """Voice style: one tensor for the text encoder path, one for duration."""

    ttl: StyleTensor
    dp: StyleTensor
    name: str | None = None

    @property
    def batch_size(self) -> int:
        return self.ttl.batch_size


@dataclass(frozen=True)
class TokenBatch:
    """Padded token ids and validity mask for a batch of texts."""

    ids: NDArray[np.int64]
    mask: NDArray[np.float32]
    lengths: NDArray[np.int64]
    texts: tuple[str, ...] = ()

    @property
    def batch_size(self) -> int:
        return int(self.ids.shape[0])

    @property
    def max_length(self) -> int:
        return int(self.ids.shape[1])


@dataclass
class LatentState:
    """Latent tensor refined by the denoising loop, plus its mask.

    ``values`` is a single buffer reused across steps; ``update`` overwrites
    it in place.
    """

    values: NDArray[np.float32]
    mask: NDArray[np.float32]

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.values.shape)

    def update(self, denoised: NDArray[np.floating]) -> None:
        """Overwrite the latent with a denoised tensor of equal size.

        Raises:
            ValueError: If the element count differs
        """
        denoised = np.asarray(denoised, dtype=np.float32)
        if denoised.size != self.values.size:
            raise ValueError(
                f"Denoised latent has {denoised.size} values, expected {self.values.size}"
            )
        np.copyto(self.values, denoised.reshape(self.values.shape))


@dataclass(frozen=True)
class SynthesisResult:
    """Final audio of one synthesis call."""

    waveform: NDArray[np.float32]
    durations: NDArray[np.float32]
    sample_rate: int
    text: str
    stage_timings_ms: dict[str, int] = field(default_factory=dict)

    @property
    def num_samples(self) -> int:
        return int(self.waveform.shape[0])

    @property
    def duration_seconds(self) -> float:
        """Length of the waveform in seconds, trailing silence included."""
        return self.num_samples / self.sample_rate
