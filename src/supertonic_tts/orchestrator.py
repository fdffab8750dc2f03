"""
Synthesis Orchestrator.

Drives text -> waveform synthesis through the four inference stages with
mask consistency, speed scaling, the fixed-step denoising loop and stage
timing.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import (
    EmptyBatchError,
    InferenceFailureError,
    StyleBatchMismatchError,
    SynthesisCancelledError,
    SynthesisError,
)
from .interface import InferenceEngine
from .latent import LatentNoiseSampler, NoiseGenerator
from .models import ModelConfig, StyleProfile, SynthesisOptions, SynthesisResult
from .observability.logger import bind_synthesis_context, get_logger
from .observability.metrics import (
    record_stage_timing,
    record_synthesis_failure,
    record_synthesis_success,
)
from .tokenizer import UnicodeTokenizer

T = TypeVar("T")


class PipelineStage(str, Enum):
    """Pipeline stages, in execution order."""

    TOKENIZE = "tokenize"
    PREDICT_DURATION = "predict_duration"
    ENCODE_TEXT = "encode_text"
    INIT_LATENT = "init_latent"
    DENOISE = "denoise"
    VOCODE = "vocode"
    ASSEMBLE = "assemble"


@dataclass(frozen=True)
class StageEvent:
    """Emitted to the stage hook when a stage completes."""

    request_id: str
    stage: PipelineStage
    latency_ms: int
    details: dict[str, Any] = field(default_factory=dict)


StageHook = Callable[[StageEvent], None]


class WaveformAssembler:
    """Appends the trailing silence to the vocoder output."""

    def __init__(self, sample_rate: int):
        self._sample_rate = sample_rate

    def silence_samples(self, silence_duration: float) -> int:
        return int(silence_duration * self._sample_rate)

    def assemble(self, wav: ArrayLike, silence_duration: float) -> NDArray[np.float32]:
        """Flatten the vocoder output (batch order kept) and append silence.

        Args:
            wav: Vocoder output, one row per batch item
            silence_duration: Seconds of zero samples to append

        Returns:
            1-D float32 waveform
        """
        samples = np.asarray(wav, dtype=np.float32).reshape(-1)
        silence = np.zeros(self.silence_samples(silence_duration), dtype=np.float32)
        return np.concatenate([samples, silence])


class SynthesisOrchestrator:
    """Runs the synthesis pipeline for one text (or one batch) per call.

    Stages (strictly sequential):
    1. Tokenize
    2. Predict duration, then divide by speed
    3. Encode text
    4. Sample the initial noisy latent
    5. Denoise for ``total_steps`` steps, overwriting the latent in place
    6. Vocode
    7. Append trailing silence

    The config, tokenizer and engine are shared read-only; every call owns
    its own latent state, so calls may run concurrently.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        config: ModelConfig,
        tokenizer: UnicodeTokenizer,
        noise_generator: NoiseGenerator | None = None,
        stage_hook: StageHook | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            engine: Inference engine providing the four stages
            config: Model configuration
            tokenizer: Tokenizer built from the vocabulary asset
            noise_generator: Optional seedable noise source
            stage_hook: Optional callback invoked at every stage boundary
        """
        self._engine = engine
        self._config = config
        self._tokenizer = tokenizer
        self._sampler = LatentNoiseSampler(config, noise_generator)
        self._assembler = WaveformAssembler(config.sample_rate)
        self._stage_hook = stage_hook
        self.logger = get_logger(__name__)

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def sample_rate(self) -> int:
        return self._config.sample_rate

    def run(
        self,
        text: str,
        style: StyleProfile,
        total_steps: int = 5,
        speed: float = 1.05,
        silence_duration: float = 0.3,
        cancel_event: threading.Event | None = None,
    ) -> SynthesisResult:
        """Synthesize one text.

        Args:
            text: Raw input text
            style: Voice style with batch size 1
            total_steps: Number of denoising steps (>= 1)
            speed: Speech rate (> 0); durations are divided by it
            silence_duration: Seconds of silence appended (>= 0)
            cancel_event: Optional event checked between stages

        Returns:
            SynthesisResult with waveform and predicted duration

        Raises:
            EmptyBatchError: If the text is blank
            StyleBatchMismatchError: If the style batch size is not 1
            InferenceFailureError: If an inference stage fails
            SynthesisCancelledError: If cancel_event is set between stages
        """
        return self.run_batch(
            [text],
            style,
            total_steps=total_steps,
            speed=speed,
            silence_duration=silence_duration,
            cancel_event=cancel_event,
        )

    def run_with_options(
        self,
        text: str,
        style: StyleProfile,
        options: SynthesisOptions,
        cancel_event: threading.Event | None = None,
    ) -> SynthesisResult:
        return self.run(
            text,
            style,
            total_steps=options.total_steps,
            speed=options.speed,
            silence_duration=options.silence_duration,
            cancel_event=cancel_event,
        )

    def run_batch(
        self,
        texts: Sequence[str],
        style: StyleProfile,
        total_steps: int = 5,
        speed: float = 1.05,
        silence_duration: float = 0.3,
        cancel_event: threading.Event | None = None,
    ) -> SynthesisResult:
        """Synthesize a batch of texts in one pass.

        The vocoder rows are concatenated in batch order before the silence
        is appended. ``style`` must carry one row per text.
        """
        # Validates ranges (raises pydantic ValidationError, a ValueError)
        options = SynthesisOptions(
            total_steps=total_steps, speed=speed, silence_duration=silence_duration
        )
        request_id = f"synth-{uuid.uuid4().hex[:12]}"
        logger = bind_synthesis_context(self.logger, request_id=request_id, voice=style.name)

        start_time = time.perf_counter()
        try:
            self._validate_batch(texts, style)
            logger.info(
                "synthesis_started",
                batch_size=len(texts),
                total_steps=options.total_steps,
                speed=options.speed,
            )
            result = self._run_pipeline(texts, style, options, request_id, cancel_event, logger)
        except SynthesisError as e:
            record_synthesis_failure(e.error_type.value)
            logger.warning("synthesis_failed", **e.to_error_info().model_dump(mode="json"))
            raise

        total_ms = self._elapsed_ms(start_time)
        record_synthesis_success(total_ms)
        logger.info(
            "synthesis_completed",
            latency_ms=total_ms,
            num_samples=result.num_samples,
            durations=result.durations.tolist(),
        )
        return result

    def _validate_batch(self, texts: Sequence[str], style: StyleProfile) -> None:
        if len(texts) == 0:
            raise EmptyBatchError("No input texts")
        if any(not text or not text.strip() for text in texts):
            raise EmptyBatchError("Empty text input - cannot synthesize empty text")
        if len(texts) != style.batch_size:
            raise StyleBatchMismatchError(
                f"Number of texts ({len(texts)}) must match number of style vectors "
                f"({style.batch_size})",
                {"text_batch": len(texts), "style_batch": style.batch_size},
            )

    def _run_pipeline(
        self,
        texts: Sequence[str],
        style: StyleProfile,
        options: SynthesisOptions,
        request_id: str,
        cancel_event: threading.Event | None,
        logger: Any,
    ) -> SynthesisResult:
        timings: dict[str, int] = {}
        batch_size = len(texts)
        style_ttl = style.ttl.as_array()
        style_dp = style.dp.as_array()

        # Step 1: Tokenize
        self._check_cancelled(cancel_event, PipelineStage.TOKENIZE)
        stage_start = time.perf_counter()
        tokens = self._tokenizer.tokenize(texts)
        self._stage_done(
            request_id, PipelineStage.TOKENIZE, stage_start, timings, logger,
            max_length=tokens.max_length,
        )

        # Step 2: Predict duration; speed is applied here and nowhere else
        self._check_cancelled(cancel_event, PipelineStage.PREDICT_DURATION)
        stage_start = time.perf_counter()
        raw_durations = self._invoke(
            PipelineStage.PREDICT_DURATION,
            self._engine.predict_duration,
            text_ids=tokens.ids,
            style_dp=style_dp,
            text_mask=tokens.mask,
        )
        durations = np.asarray(raw_durations, dtype=np.float32).reshape(-1) / np.float32(
            options.speed
        )
        self._stage_done(
            request_id, PipelineStage.PREDICT_DURATION, stage_start, timings, logger,
            durations=durations.tolist(),
        )

        # Step 3: Encode text
        self._check_cancelled(cancel_event, PipelineStage.ENCODE_TEXT)
        stage_start = time.perf_counter()
        text_emb = self._invoke(
            PipelineStage.ENCODE_TEXT,
            self._engine.encode_text,
            text_ids=tokens.ids,
            style_ttl=style_ttl,
            text_mask=tokens.mask,
        )
        self._stage_done(request_id, PipelineStage.ENCODE_TEXT, stage_start, timings, logger)

        # Step 4: Initial noisy latent from speed-adjusted durations
        self._check_cancelled(cancel_event, PipelineStage.INIT_LATENT)
        stage_start = time.perf_counter()
        latent = self._sampler.sample(durations)
        self._stage_done(
            request_id, PipelineStage.INIT_LATENT, stage_start, timings, logger,
            latent_shape=list(latent.shape),
        )

        # Step 5: Denoising loop; step k+1 consumes the output of step k
        self._check_cancelled(cancel_event, PipelineStage.DENOISE)
        stage_start = time.perf_counter()
        total_step = np.full(batch_size, options.total_steps, dtype=np.float32)
        for step in range(options.total_steps):
            current_step = np.full(batch_size, step, dtype=np.float32)
            denoised = self._invoke(
                PipelineStage.DENOISE,
                self._engine.estimate_vector,
                noisy_latent=latent.values,
                text_emb=text_emb,
                style_ttl=style_ttl,
                text_mask=tokens.mask,
                latent_mask=latent.mask,
                total_step=total_step,
                current_step=current_step,
            )
            try:
                latent.update(denoised)
            except ValueError as e:
                raise InferenceFailureError(
                    PipelineStage.DENOISE.value, f"Vector estimator returned bad shape: {e}"
                ) from e
            logger.debug("denoise_step", step=step, total_steps=options.total_steps)
        self._stage_done(
            request_id, PipelineStage.DENOISE, stage_start, timings, logger,
            total_steps=options.total_steps,
        )

        # Step 6: Vocode
        self._check_cancelled(cancel_event, PipelineStage.VOCODE)
        stage_start = time.perf_counter()
        wav = self._invoke(PipelineStage.VOCODE, self._engine.vocode, latent=latent.values)
        self._stage_done(request_id, PipelineStage.VOCODE, stage_start, timings, logger)

        # Step 7: Append silence
        stage_start = time.perf_counter()
        waveform = self._assembler.assemble(wav, options.silence_duration)
        self._stage_done(
            request_id, PipelineStage.ASSEMBLE, stage_start, timings, logger,
            num_samples=int(waveform.shape[0]),
        )

        return SynthesisResult(
            waveform=waveform,
            durations=durations,
            sample_rate=self._config.sample_rate,
            text=" ".join(texts),
            stage_timings_ms=timings,
        )

    def _invoke(self, stage: PipelineStage, fn: Callable[..., T], **inputs: Any) -> T:
        """Call an inference stage; any failure becomes InferenceFailureError."""
        try:
            return fn(**inputs)
        except SynthesisError:
            raise
        except Exception as e:
            raise InferenceFailureError(
                stage.value,
                f"Inference stage '{stage.value}' failed: {e}",
                {"exception_type": type(e).__name__},
            ) from e

    def _check_cancelled(
        self, cancel_event: threading.Event | None, next_stage: PipelineStage
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SynthesisCancelledError(
                f"Synthesis cancelled before stage '{next_stage.value}'",
                {"stage": next_stage.value},
            )

    def _stage_done(
        self,
        request_id: str,
        stage: PipelineStage,
        stage_start: float,
        timings: dict[str, int],
        logger: Any,
        **details: Any,
    ) -> None:
        latency_ms = self._elapsed_ms(stage_start)
        timings[stage.value] = latency_ms
        record_stage_timing(stage.value, latency_ms)
        logger.info("stage_completed", stage=stage.value, latency_ms=latency_ms, **details)
        if self._stage_hook is not None:
            self._stage_hook(
                StageEvent(request_id=request_id, stage=stage, latency_ms=latency_ms, details=details)
            )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
