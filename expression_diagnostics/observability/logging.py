"""Structured logging setup for diagnostics entry points.

Engine modules log through ``logging.getLogger(__name__)`` or an injected
``logging.Logger``; entry points call :func:`configure_logging` once.
"""

import logging
import sys

import structlog

from expression_diagnostics.config.settings import Settings, get_settings

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(settings: Settings | None = None) -> structlog.stdlib.BoundLogger:
    """Configure structlog and the stdlib root level from *settings*.

    Console rendering in dev, JSON elsewhere (or when ``LOG_JSON`` is set).
    Returns a bound logger for the caller.
    """
    settings = settings or get_settings()
    level = _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value]

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.render_json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Engine modules use stdlib loggers; route them through the same level.
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("expression_diagnostics").setLevel(level)

    return structlog.get_logger("expression_diagnostics")
