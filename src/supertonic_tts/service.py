"""
Supertonic TTS Service.

High-level facade that owns the model assets, the inference engine and the
current voice, and exposes synthesis to WAV files or bytes.

Usage:
    with TTSService() as tts:
        tts.initialize()
        tts.synthesize_to_file("Hello world", "hello.wav")
"""

import asyncio
import logging
import threading
from pathlib import Path
from types import TracebackType

from .assets import ModelAssetPaths, load_model_config, load_vocabulary, load_voice_style
from .config import ServiceConfig
from .downloader import ModelDownloader
from .encoding import wav_to_bytes, write_wav
from .errors import AssetMissingError, ServiceNotReadyError
from .factory import create_inference_engine
from .interface import InferenceEngine
from .latent import NumpyNoiseGenerator
from .models import ModelConfig, StyleProfile, SynthesisOptions, SynthesisResult, VoiceStyle
from .orchestrator import StageHook, SynthesisOrchestrator
from .tokenizer import UnicodeTokenizer

logger = logging.getLogger(__name__)


class TTSService:
    """Text-to-speech service backed by the Supertonic ONNX models.

    The service takes ownership of the engine (injected or created) and
    releases it on ``shutdown()``.
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        engine: InferenceEngine | None = None,
        downloader: ModelDownloader | None = None,
        stage_hook: StageHook | None = None,
    ):
        """Initialize TTSService.

        Args:
            config: Service configuration (defaults to environment values)
            engine: Optional pre-built inference engine
            downloader: Optional model downloader (built from config if None)
            stage_hook: Optional callback for pipeline stage events
        """
        self._config = config or ServiceConfig()
        self._config.validate()
        self._paths = ModelAssetPaths(self._config.models_path)
        self._downloader = downloader or ModelDownloader(
            self._config.models_path, repo_id=self._config.repo_id
        )
        self._engine = engine
        self._owns_engine = engine is None
        self._stage_hook = stage_hook

        self._model_config: ModelConfig | None = None
        self._tokenizer: UnicodeTokenizer | None = None
        self._orchestrator: SynthesisOrchestrator | None = None
        self._style: StyleProfile | None = None
        self._voice: VoiceStyle | None = None
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._orchestrator is not None

    def initialize(self) -> None:
        """Load assets and inference sessions. Safe to call more than once.

        Raises:
            AssetMissingError: If assets are missing and cannot be downloaded
            AssetMalformedError: If an asset fails validation
        """
        with self._lock:
            if self._orchestrator is not None:
                return

            created_engine: InferenceEngine | None = None
            try:
                self._ensure_assets()

                model_config = load_model_config(self._paths.config_path)
                vocabulary = load_vocabulary(self._paths.vocabulary_path)
                voice = VoiceStyle.parse(self._config.default_voice)
                style = load_voice_style(self._paths.voice_style_path(voice), name=voice.value)

                if self._engine is None:
                    created_engine = self._create_engine()
                    self._engine = created_engine

                tokenizer = UnicodeTokenizer(vocabulary)
                noise = NumpyNoiseGenerator(self._config.noise_seed)
                orchestrator = SynthesisOrchestrator(
                    self._engine,
                    model_config,
                    tokenizer,
                    noise_generator=noise,
                    stage_hook=self._stage_hook,
                )
            except Exception:
                if created_engine is not None:
                    created_engine.close()
                    self._engine = None
                raise

            self._model_config = model_config
            self._tokenizer = tokenizer
            self._style = style
            self._voice = voice
            self._orchestrator = orchestrator

        logger.info(
            f"TTS service initialized: engine={self._engine.engine_name}, "
            f"voice={voice.value}, sample_rate={model_config.sample_rate}"
        )

    def _ensure_assets(self) -> None:
        if self._config.auto_download:
            self._downloader.ensure_models_downloaded()
            return

        missing = self._paths.missing_files()
        if missing:
            raise AssetMissingError(
                f"Model files missing in {self._paths.models_dir} and auto download is "
                f"disabled: {', '.join(missing)}",
                {"missing": missing},
            )

    def _create_engine(self) -> InferenceEngine:
        if self._config.engine == "onnx":
            return create_inference_engine(
                "onnx",
                onnx_dir=self._paths.onnx_dir,
                providers=self._config.execution_providers,
                intra_op_threads=self._config.intra_op_threads,
            )
        return create_inference_engine(self._config.engine)  # type: ignore[arg-type]

    def shutdown(self) -> None:
        """Release the inference engine."""
        with self._lock:
            if self._engine is not None:
                self._engine.close()
                logger.info("TTS service shut down")
            self._engine = None
            self._orchestrator = None

    def __enter__(self) -> "TTSService":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # -------------------------------------------------------------------------
    # Voice selection
    # -------------------------------------------------------------------------

    @property
    def current_voice(self) -> VoiceStyle | None:
        return self._voice

    @property
    def sample_rate(self) -> int:
        if self._model_config is None:
            raise ServiceNotReadyError("TTS service not initialized")
        return self._model_config.sample_rate

    def load_voice_style(self, voice: VoiceStyle | str) -> None:
        """Switch the voice used by subsequent synthesis calls.

        Raises:
            ServiceNotReadyError: If the service is not initialized
            ValueError: If the voice name is unknown
        """
        self._require_ready()
        voice = VoiceStyle.parse(voice)
        style = load_voice_style(self._paths.voice_style_path(voice), name=voice.value)
        self._style = style
        self._voice = voice
        logger.info(f"Voice style changed to {voice.value}")

    # -------------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------------

    def _require_ready(self) -> SynthesisOrchestrator:
        orchestrator = self._orchestrator
        if orchestrator is None:
            raise ServiceNotReadyError("TTS service not initialized; call initialize() first")
        return orchestrator

    def synthesize(
        self,
        text: str,
        options: SynthesisOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SynthesisResult:
        """Synthesize text with the current voice.

        Args:
            text: Text to synthesize
            options: Synthesis options (defaults from configuration)
            cancel_event: Optional event checked between pipeline stages

        Returns:
            SynthesisResult

        Raises:
            ServiceNotReadyError: If the service is not initialized
            SynthesisError: If synthesis fails
        """
        orchestrator = self._require_ready()
        style = self._style
        if style is None:
            raise ServiceNotReadyError("No voice style loaded; call initialize() first")
        return orchestrator.run_with_options(
            text,
            style,
            options or self._config.default_options(),
            cancel_event=cancel_event,
        )

    async def synthesize_async(
        self,
        text: str,
        options: SynthesisOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SynthesisResult:
        """Run synthesize() in a worker thread."""
        return await asyncio.to_thread(self.synthesize, text, options, cancel_event)

    def synthesize_to_file(
        self,
        text: str,
        output_path: str | Path,
        options: SynthesisOptions | None = None,
    ) -> Path:
        result = self.synthesize(text, options)
        return write_wav(output_path, result.waveform, result.sample_rate)

    def synthesize_to_wav_bytes(self, text: str, options: SynthesisOptions | None = None) -> bytes:
        result = self.synthesize(text, options)
        return wav_to_bytes(result.waveform, result.sample_rate)
