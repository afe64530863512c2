"""Structured logging configuration using structlog.

``configure_logging`` sets up structlog processors and routes everything
through the stdlib root logger as JSON (production) or console output
(development).  ``bind_push_context`` tags every log line emitted while a
single push is being processed with the repository, ref and pusher.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


def _add_service_name(service: str) -> structlog.types.Processor:
    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(
    *, json_logs: bool = True, log_level: str = "INFO", service: str = "push-activity-engine"
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: Render logs as JSON when *True*, otherwise use the
            console renderer.
        log_level: Root log level name (e.g. ``"INFO"``, ``"DEBUG"``).
        service: Value of the ``service`` key added to every event.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service_name(service),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())


@contextmanager
def bind_push_context(*, repo: str, ref: str, pusher: str) -> Iterator[None]:
    """Bind push identifiers to the structlog context for the enclosed block."""
    with structlog.contextvars.bound_contextvars(repo=repo, ref=ref, pusher=pusher):
        yield
