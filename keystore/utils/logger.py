"""
Structured logging configuration using structlog.

JSON lines in production, console lines in development, plus the
per-operation log record the facade writes after every get, set and delete.
"""
import logging
import os
import sys
from typing import Any, TextIO
from urllib.parse import urlsplit, urlunsplit

import structlog


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """
    Configure structlog for the keystore.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Where rendered lines go (default: stdout). The CLI passes
            stderr so that command output on stdout stays clean.

    Output is one JSON object per line, or colored console lines when
    ENVIRONMENT=development. The SQLAlchemy and aiosqlite loggers are held
    at WARNING whatever the level.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream if stream is not None else sys.stdout

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
    )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    is_dev = os.getenv("ENVIRONMENT", "production") == "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("store_upsert", key="user:1")
    """
    return structlog.get_logger(name)


def redact_url(url: str) -> str:
    """
    Strip credentials from a connection URL before it is logged.

    Example:
        >>> redact_url("mysql+aiomysql://root:secret@db:3306/app")
        'mysql+aiomysql://db:3306/app'
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid url>"

    if parts.username is None and parts.password is None:
        return url

    netloc = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit(parts._replace(netloc=netloc))


def log_operation(
    operation: str,
    key: str | None,
    tier: str,
    duration_ms: float,
    error: str | None = None,
    **extra: Any,
) -> None:
    """
    Log a keystore operation in structured format.

    Args:
        operation: Facade operation (get, set, delete, flush)
        key: Key involved, if any
        tier: Tier that answered ("durable", "volatile") or "none"
        duration_ms: Execution time in milliseconds
        error: Error message if the operation failed
        **extra: Additional context to log

    Example:
        >>> log_operation("get", "user:1", "volatile", 0.42, hit=True)
    """
    logger = get_logger("keystore.operation")

    log_data = {
        "operation": operation,
        "key": key,
        "tier": tier,
        "duration_ms": round(duration_ms, 2),
        "error": error,
        **extra,
    }

    if error:
        logger.error("operation_failed", **log_data)
    else:
        logger.debug("operation_complete", **log_data)
