"""
Structured logging for synthesis.

The orchestrator emits structlog events (``synthesis_started``,
``stage_completed``, ``synthesis_completed``, ``synthesis_failed``) carrying
the request id and voice of the call. Other modules log through the stdlib
``logging`` module and end up on the same handler.
"""

import logging
import sys

import structlog

# Runtime libraries that log per-session or per-request chatter at INFO
NOISY_LOGGERS = ("onnxruntime", "huggingface_hub", "filelock", "urllib3")


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level}")
    return number


def setup_logging(level: str | int = "INFO", json_format: bool = True) -> None:
    """Configure stdlib logging and structlog for the process.

    Args:
        level: Level name or number. Default: INFO
        json_format: JSON lines when True, key=value console output otherwise

    Raises:
        ValueError: If the level name is unknown
    """
    level_number = _level_number(level)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level_number)

    # Keep third-party loggers quiet unless debugging
    third_party_level = level_number if level_number <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_synthesis_context(
    logger: structlog.BoundLogger,
    request_id: str,
    voice: str | None = None,
) -> structlog.BoundLogger:
    """Return ``logger`` with the synthesis request id (and voice) bound.

    Example:
        >>> logger = bind_synthesis_context(get_logger(__name__), "synth-1a2b", voice="F1")
        >>> logger.info("synthesis_started", batch_size=1)
    """
    if voice:
        return logger.bind(request_id=request_id, voice=voice)
    return logger.bind(request_id=request_id)
