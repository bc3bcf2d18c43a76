"""
Structured Logging Configuration

Uses structlog for structured, JSON-formatted logging.
Following official structlog documentation:
https://www.structlog.org/en/stable/
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

from fetchnews.config.settings import Settings, get_settings


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Sets up:
    - Structured log formatting (JSON in production, colored console in dev)
    - Caller info on every event
    - Standard library logging integration
    """
    config = config or get_settings()
    level = logging.DEBUG if config.debug else logging.INFO

    # Shared processors for all environments
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.is_development:
        # Development: Pretty console output with colors
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.rich_traceback,
            )
        ]
    else:
        # Production: JSON output for log aggregation
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    # Quiet the chatty libraries
    for logger_name in ["apscheduler", "sqlalchemy.engine", "asyncio", "celery"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Optional logger name. If not provided, uses the calling module name.

    Returns:
        A structlog BoundLogger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("Execution acquired", execution_id=execution_id)
    """
    return structlog.get_logger(name)
