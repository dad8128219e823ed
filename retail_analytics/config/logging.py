"""
Logging Configuration for the Retail Sales Reporting Engine

Every module logs through structlog. This module wires those events, the
stdlib records of uvicorn and the ``EmptyInputWarning`` raised by report runs
into one handler chain, rendered as JSON in production or as console text.
Request ids bound by the API middleware are merged into every event.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from retail_analytics.config.settings import get_settings

# Stdlib loggers that are routed through the structlog formatter
_FOREIGN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "py.warnings")


def _build_handlers(formatter: logging.Formatter, level: int, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structured logging for the reporting engine.

    Safe to call more than once; handlers installed by an earlier call are
    replaced.

    Args:
        log_level: Override the configured level (DEBUG, INFO, WARNING, ERROR)
        log_format: Override the configured renderer ("json" or "text")
    """
    settings = get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    fmt = log_format or settings.monitoring.log_format
    numeric_level = getattr(logging, level, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    formatter = ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    handlers = _build_handlers(formatter, numeric_level, settings.monitoring.log_file)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root_logger.addHandler(handler)

    # EmptyInputWarning and friends become log records on "py.warnings"
    logging.captureWarnings(True)

    for logger_name in _FOREIGN_LOGGERS:
        foreign = logging.getLogger(logger_name)
        foreign.handlers = []
        foreign.propagate = True
        foreign.setLevel(numeric_level)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=fmt,
        environment=settings.app_env,
        log_file=settings.monitoring.log_file,
    )
