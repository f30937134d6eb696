# ABOUTME: Structured logging setup built on structlog.
# ABOUTME: Renders key/value events for terminals and JSON lines everywhere else.

import logging
import sys

import structlog


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Resolve sys.stderr per call so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str = "INFO", json_output: bool | None = None) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum log level name (e.g. "DEBUG", "INFO").
        json_output: Force JSON rendering. Defaults to JSON unless stderr is a TTY.
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
