"""
Structured logging for Mosaic.

Every log line emitted while a request is in flight carries the request id,
the caller (identity and role) and, inside the dispatcher, the operation
being executed. These are kept in structlog's context variables so they
follow the request across ``await`` points and concurrent tasks.
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.contextvars import (
    bind_contextvars,
    bound_contextvars,
    clear_contextvars,
    get_contextvars,
    merge_contextvars,
)

ANONYMOUS_ROLE = "anonymous"


def configure_logging(debug: bool = False, level: str | None = None) -> None:
    """Route structlog through stdlib logging on stdout.

    Args:
        debug: Console rendering when True, JSON lines otherwise.
        level: Explicit level name; overrides the level implied by ``debug``.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    if level:
        named = logging.getLevelName(level.upper())
        if isinstance(named, int):
            log_level = named

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s", force=True)

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def begin_request(request_id: str | None = None) -> str:
    """Start a fresh logging context for one HTTP request.

    Returns the request id in effect; one is generated when the client sent none.
    """
    clear_contextvars()
    request_id = request_id or uuid.uuid4().hex
    bind_contextvars(request_id=request_id)
    return request_id


def end_request() -> None:
    clear_contextvars()


def bind_caller(identity: str | None, role: str | None) -> None:
    """Attach the resolved caller to the current request's log lines."""
    bind_contextvars(caller_id=identity, caller_role=role or ANONYMOUS_ROLE)


@contextmanager
def operation_context(operation: str, role: str | None) -> Iterator[None]:
    """Bind the operation name and caller role for the duration of one dispatch.

    The previous bindings are restored on exit, so sequential dispatches in one
    task do not leak their operation into each other's log lines.
    """
    with bound_contextvars(operation=operation, caller_role=role or ANONYMOUS_ROLE):
        yield


def get_request_id() -> str | None:
    return get_contextvars().get("request_id")
