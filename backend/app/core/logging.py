"""
Structured logging setup.

Application code logs events through structlog:

    logger = get_logger(__name__)
    logger.info("search_completed", user_id=user_id, results=3)

Modules that use the standard library directly (logging.getLogger(__name__))
are rendered by the same formatter, so worker and API output share one format.
LOG_FORMAT=json emits one JSON object per line; LOG_FORMAT=text is readable
console output for local development.
"""

import logging
import sys
from typing import Any

import structlog

from app.core.config import settings

# Third-party loggers that are noisy at INFO level
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sentence_transformers", "urllib3")


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Safe to call more than once (the API process and Celery workers both call it).
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if (log_format or settings.LOG_FORMAT) == "json":
        render_chain: list[Any] = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_chain = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=render_chain,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger backed by the stdlib logger of the given name."""
    return structlog.get_logger(name)
