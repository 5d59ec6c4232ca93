"""structlog setup shared by the CLI and the API server."""

import logging
import sys

import structlog

from observation_store.config import get_settings


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Looked up per call so a redirected sys.stderr is honoured.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structured logging once at process startup."""
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    if level_name not in _LEVELS:
        raise ValueError(f"unknown log level: {level_name}")
    use_json = settings.log_json if json is None else json

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS[level_name]),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
