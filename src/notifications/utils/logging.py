"""Logging configuration for the notifications context.

Standard library handlers carry the output (console plus rotating files);
structlog renders events on top of them so call sites can log with keyword
context, e.g. ``logger.info("Push sent", tokens=3, attempt=1)``.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_PREFIX = "restaurant_push"

# Event keys that may carry raw device push tokens
PUSH_TOKEN_KEYS = frozenset({"push_token", "token", "tokens"})
VISIBLE_TOKEN_CHARS = 4


def get_environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """Get log level based on environment."""
    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return os.getenv("LOG_LEVEL", level_map.get(get_environment(), "INFO"))


def setup_stdlib_logging() -> None:
    """Configure standard library logging."""
    log_level = get_log_level()

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / f"{LOG_FILE_PREFIX}.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)

    error_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / f"{LOG_FILE_PREFIX}_error.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(error_handler)

    # Request-level chatter from the HTTP stack and the framework
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("protean").setLevel(logging.WARNING)


def mask_token(token: Any) -> Any:
    """Shorten a push token to its prefix and first few characters.

    ``ExponentPushToken[abcdefgh123]`` becomes ``ExponentPushToken[abcd***]``.
    Non-string values pass through untouched.
    """
    if not isinstance(token, str) or not token:
        return token

    prefix, bracket, rest = token.partition("[")
    if not bracket:
        return token[:VISIBLE_TOKEN_CHARS] + "***"
    return f"{prefix}[{rest.rstrip(']')[:VISIBLE_TOKEN_CHARS]}***]"


def mask_push_tokens(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor: never write a full device token to the logs."""
    for key in PUSH_TOKEN_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, list | tuple | set):
            event_dict[key] = [mask_token(item) for item in value]
        else:
            event_dict[key] = mask_token(value)
    return event_dict


def setup_structlog() -> None:
    """Configure structlog for structured logging."""
    env = get_environment()

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
        mask_push_tokens,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
    ]

    if env in ["production", "staging"]:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=env != "test",
                exception_formatter=structlog.dev.RichTracebackFormatter(
                    show_locals=True,
                    max_frames=2,
                ),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging()
    setup_structlog()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def delivery_context(**kwargs: Any) -> Iterator[None]:
    """Bind delivery identifiers to every log line inside the block.

    Context bound by the caller is restored on exit, so nested deliveries
    (the scheduled-notification sweep) keep their outer fields.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
