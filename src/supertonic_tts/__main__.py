"""Command line entrypoint for Supertonic TTS.

Usage:
    python -m supertonic_tts "Hello world" -o hello.wav
    python -m supertonic_tts --text-file story.txt --voice F1 --steps 10
    supertonic-tts "Hello world" --speed 1.2 --engine mock
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from .config import load_service_config
from .encoding import EncodingError, write_wav
from .errors import SynthesisError
from .observability.logger import setup_logging
from .service import TTSService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="supertonic-tts",
        description="Supertonic TTS - synthesize speech from text to a WAV file",
    )
    parser.add_argument("text", nargs="?", help="Text to synthesize")
    parser.add_argument("--text-file", type=Path, help="Read the text from a UTF-8 file")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output.wav"),
        help="Output WAV path (default: output.wav)",
    )
    parser.add_argument("--voice", help="Voice style: M1, M2, F1, F2 (or male1, female2, ...)")
    parser.add_argument("--steps", type=int, help="Number of denoising steps")
    parser.add_argument("--speed", type=float, help="Speech rate multiplier")
    parser.add_argument("--silence", type=float, help="Seconds of trailing silence")
    parser.add_argument("--models-dir", help="Directory holding the model assets")
    parser.add_argument(
        "--engine",
        choices=["onnx", "mock", "mock_fail"],
        help="Inference engine (default: onnx)",
    )
    parser.add_argument("--seed", type=int, help="Seed for the latent noise")
    parser.add_argument(
        "--no-download",
        action="store_true",
        help="Fail instead of downloading missing model files",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines instead of console format",
    )

    args = parser.parse_args(argv)
    if (args.text is None) == (args.text_file is None):
        parser.error("provide exactly one of TEXT or --text-file")
    return args


def _read_text(args: argparse.Namespace) -> str:
    if args.text_file is not None:
        return args.text_file.read_text(encoding="utf-8")
    return args.text


def main(argv: list[str] | None = None) -> int:
    """Main entrypoint. Returns the process exit code."""
    args = parse_args(argv)

    overrides = {
        "default_voice": args.voice,
        "total_steps": args.steps,
        "speed": args.speed,
        "silence_duration": args.silence,
        "models_dir": args.models_dir,
        "engine": args.engine,
        "noise_seed": args.seed,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.no_download:
        overrides["auto_download"] = False
    try:
        config = dataclasses.replace(load_service_config(), **overrides)
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, json_format=args.json_logs)
    logger = logging.getLogger(__name__)

    try:
        text = _read_text(args)
        options = config.default_options()
        with TTSService(config) as tts:
            tts.initialize()
            result = tts.synthesize(text, options)
            path = write_wav(args.output, result.waveform, result.sample_rate)
    except (SynthesisError, EncodingError) as e:
        logger.error(f"Synthesis failed: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Invalid input: {e}")
        return 1

    logger.info(
        f"Saved {result.duration_seconds:.2f}s of audio to {path} "
        f"(predicted duration {float(result.durations[0]):.2f}s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
