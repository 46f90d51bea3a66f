"""Structured logging configuration.

Console output goes through a rich handler on stderr; records are produced
by structlog and rendered by the stdlib logging machinery.
"""

from __future__ import annotations

import logging

import structlog
from rich.console import Console
from rich.logging import RichHandler

_configured = False

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(level: str | int = "INFO") -> None:
    """Configure structlog and the root logger.

    Args:
        level: Level name (``"DEBUG"``, ``"INFO"``, ...) or numeric level.
    """
    global _configured

    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level!r}")
        level = numeric

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=level <= logging.INFO,
        show_path=level <= logging.DEBUG,
        markup=False,
        level=level,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring logging on first use."""
    if not _configured:
        from stitch.config import Settings

        configure_logging(Settings().log_level)
    return structlog.get_logger(name)
