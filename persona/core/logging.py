"""structlog configuration for applications embedding Persona.

The library only emits events through ``structlog.get_logger()``; calling
:func:`configure_logging` is left to the host application.
"""

import logging
import sys

import structlog

from persona.core.config import settings


def configure_logging(level: str | None = None, *, json_logs: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Log level name (e.g., "INFO", "DEBUG"). Defaults to
            PERSONA_LOG_LEVEL.
        json_logs: Render JSON lines (production) instead of console output.
    """
    level = level or settings.log_level
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        msg = f"Unknown log level: {level}"
        raise ValueError(msg)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
