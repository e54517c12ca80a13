"""Logging setup using structlog.

Logs go to stderr as JSON lines so stdout stays reserved for the result
document the host reads. Every event carries ``component``; events emitted
while an invocation is running also carry the fields bound by
``invocation_context`` (command, input source).
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


def configure_logging(log_level: str = "INFO") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **kwargs: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(component=component, **kwargs)


@contextmanager
def invocation_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every event logged inside the block, then unbind them."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
