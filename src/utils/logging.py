# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Logs are formatted as JSON in production and as colored console output
in development. Structured log calls that carry a ``student_ref`` key are
masked before rendering, so opaque student references do not end up in
log aggregation.

Example:
    >>> from src.utils.logging import setup_logging, get_logger
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("Event applied", event_id="ab12", objective_id="algebra-1")
"""

import hashlib
import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from src.core.config.settings import Settings

MASKED_KEYS = ("student_ref", "studentRef")


def mask_student_refs(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace student references with a short one-way digest.

    The digest keeps log lines for one student correlatable within a
    deployment without exposing the reference itself.
    """
    for key in MASKED_KEYS:
        value: Any = event_dict.get(key)
        if value is not None:
            digest = hashlib.sha256(str(value).encode("utf-8")).hexdigest()[:10]
            event_dict[key] = f"sr_{digest}"
    return event_dict


def setup_logging(settings: "Settings") -> None:
    """Configure logging for the progress engine.

    Development and debug runs render colored console lines; every other
    environment renders one JSON object per line. Student references are
    masked in both.

    Args:
        settings: Settings providing log_level, environment and debug.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        mask_student_refs,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.debug:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Ledger, aggregator and collaborator modules use logging.getLogger
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    for logger_name in ["sqlalchemy", "aiosqlite", "asyncio", "redis"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger tagged with the calling module's name.

    Args:
        name: Module name, normally __name__.

    Returns:
        A bound structlog logger whose lines carry ``logger=name``.
    """
    return structlog.get_logger().bind(logger=name)


def bind_context(**kwargs: object) -> None:
    """Attach fields such as a batch id to every log line of the current task.

    Args:
        **kwargs: Fields to bind.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop fields bound with bind_context, e.g. after a batch finished."""
    structlog.contextvars.clear_contextvars()
