"""Structured logging configuration using structlog.

Declarations carry birth numbers and tax IDs. Log events never hold them
in clear: the declaration is identified by a digest of its DIČ, and any
birth-number-shaped value bound to an event is masked before rendering.
"""

import hashlib
import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from priznanie.core.config import settings

# Correlation of log lines with the HTTP request and the declaration
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
declaration_id_ctx: ContextVar[str | None] = ContextVar("declaration_id", default=None)

BIRTH_NUMBER_RE = re.compile(r"\b(\d{6})/?(\d{3,4})\b")


def declaration_fingerprint(dic: str) -> str | None:
    """Stable, non-reversible identifier of a taxpayer for log correlation."""
    dic = dic.strip()
    if not dic:
        return None
    return hashlib.sha256(dic.encode("utf-8")).hexdigest()[:12]


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add request and declaration correlation IDs to log events."""
    if request_id := request_id_ctx.get():
        event_dict["request_id"] = request_id
    if declaration_id := declaration_id_ctx.get():
        event_dict["declaration_id"] = declaration_id
    return event_dict


def _mask_birth_numbers(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace the serial part of birth numbers in string values with ****."""
    for key, value in event_dict.items():
        if isinstance(value, str) and BIRTH_NUMBER_RE.search(value):
            event_dict[key] = BIRTH_NUMBER_RE.sub(r"\1/****", value)
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    """Render a log event as JSON; Decimal amounts become strings."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def configure_logging() -> None:
    """Configure structlog for the application.

    Development mode: ConsoleRenderer with colors for readability.
    Production mode: JSONRenderer with orjson for structured logging.
    ``settings.log_format`` forces either one.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
        _mask_birth_numbers,
    ]

    log_format = settings.log_format.lower() if settings.log_format else None
    use_json = log_format == "json" or (
        log_format is None and settings.environment != "development"
    )

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)
