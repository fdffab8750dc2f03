"""Environment-based configuration for the Supertonic TTS service.

All settings are loaded from environment variables with sensible defaults.
An optional YAML file (``SUPERTONIC_CONFIG``) can override them.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import SynthesisOptions, VoiceStyle

logger = logging.getLogger(__name__)

DEFAULT_MODELS_DIR = "~/.cache/supertonic/models"
DEFAULT_REPO_ID = "Supertone/supertonic"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


def _split_providers(value: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration for TTSService and the command line."""

    # Model assets
    models_dir: str = field(
        default_factory=lambda: os.getenv("SUPERTONIC_MODELS_DIR", DEFAULT_MODELS_DIR)
    )
    repo_id: str = field(default_factory=lambda: os.getenv("SUPERTONIC_REPO_ID", DEFAULT_REPO_ID))
    auto_download: bool = field(
        default_factory=lambda: _env_bool("SUPERTONIC_AUTO_DOWNLOAD", "true")
    )

    # Synthesis defaults
    default_voice: str = field(default_factory=lambda: os.getenv("SUPERTONIC_VOICE", "M1"))
    total_steps: int = field(
        default_factory=lambda: int(os.getenv("SUPERTONIC_TOTAL_STEPS", "5"))
    )
    speed: float = field(default_factory=lambda: float(os.getenv("SUPERTONIC_SPEED", "1.05")))
    silence_duration: float = field(
        default_factory=lambda: float(os.getenv("SUPERTONIC_SILENCE_DURATION", "0.3"))
    )
    noise_seed: int | None = field(
        default_factory=lambda: _env_optional_int("SUPERTONIC_NOISE_SEED")
    )

    # Inference engine
    engine: str = field(default_factory=lambda: os.getenv("SUPERTONIC_ENGINE", "onnx"))
    execution_providers: tuple[str, ...] = field(
        default_factory=lambda: _split_providers(
            os.getenv("SUPERTONIC_ONNX_PROVIDERS", "CPUExecutionProvider")
        )
    )
    intra_op_threads: int | None = field(
        default_factory=lambda: _env_optional_int("SUPERTONIC_INTRA_OP_THREADS")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def models_path(self) -> Path:
        return Path(self.models_dir).expanduser()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a value is out of range or unknown.
        """
        if self.total_steps < 1:
            raise ValueError(f"SUPERTONIC_TOTAL_STEPS must be >= 1, got {self.total_steps}")
        if self.speed <= 0:
            raise ValueError(f"SUPERTONIC_SPEED must be > 0, got {self.speed}")
        if self.silence_duration < 0:
            raise ValueError(
                f"SUPERTONIC_SILENCE_DURATION must be >= 0, got {self.silence_duration}"
            )
        if self.intra_op_threads is not None and self.intra_op_threads < 1:
            raise ValueError(
                f"SUPERTONIC_INTRA_OP_THREADS must be >= 1, got {self.intra_op_threads}"
            )
        if not self.execution_providers:
            raise ValueError("SUPERTONIC_ONNX_PROVIDERS must name at least one provider")
        if self.engine not in ("onnx", "mock", "mock_fail"):
            raise ValueError(f"Unknown SUPERTONIC_ENGINE: {self.engine}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {self.log_level}")

        # Raises ValueError for unknown voices
        VoiceStyle.parse(self.default_voice)

    def default_options(self) -> SynthesisOptions:
        return SynthesisOptions(
            total_steps=self.total_steps,
            speed=self.speed,
            silence_duration=self.silence_duration,
        )


def load_service_config(config_path: str | Path | None = None) -> ServiceConfig:
    """Load configuration from the environment, overlaid with a YAML file.

    Args:
        config_path: Path to a YAML file. If None, uses the SUPERTONIC_CONFIG
                     environment variable, or environment defaults only.

    Returns:
        Validated ServiceConfig

    Raises:
        ValueError: If the file is missing, not valid YAML, contains unknown
                    keys, or a value fails validation.
    """
    if config_path is None:
        config_path = os.environ.get("SUPERTONIC_CONFIG")

    config = ServiceConfig()

    if config_path is not None:
        overrides = _read_yaml(Path(config_path))
        known = {f.name for f in dataclasses.fields(ServiceConfig)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {config_path}: {', '.join(unknown)}")

        if "execution_providers" in overrides:
            providers = overrides["execution_providers"]
            if isinstance(providers, str):
                providers = _split_providers(providers)
            overrides["execution_providers"] = tuple(providers)

        config = dataclasses.replace(config, **overrides)
        logger.info(f"Loaded configuration overrides from {config_path}: {sorted(overrides)}")

    config.validate()
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ValueError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data
