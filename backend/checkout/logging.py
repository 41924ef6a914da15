"""Logging configuration: structlog rendering for app and library loggers alike."""

import logging
import sys

import structlog
from structlog.typing import Processor

from checkout.config import settings

# Third-party loggers that are too chatty at the root level.
QUIET_LOGGERS: dict[str, int] = {
    # one line per request; route handlers log the interesting part
    "uvicorn.access": logging.WARNING,
    # DEBUG line for every cursor operation in the test database driver
    "aiosqlite": logging.WARNING,
    "asyncpg": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "httpcore": logging.WARNING,
    "httpx": logging.INFO,
}


def _root_level() -> int:
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def configure_logging() -> None:
    """Route structlog and stdlib logging through one console renderer on stdout.

    Order numbers are attached as key/value pairs by the services, so the
    renderer keeps them as separate fields instead of folding them into the
    message. With `debug` enabled SQL statements are logged as well.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_root_level())

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    if settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


_configured = False


def setup_logging() -> None:
    """Configure logging on first call only."""
    global _configured
    if not _configured:
        configure_logging()
        _configured = True
