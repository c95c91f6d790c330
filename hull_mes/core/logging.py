"""
Request-scoped logging context.

Every record carries the correlation id of the HTTP request and the id of the
authenticated actor. Both live in contextvars that are bound for the duration
of a request (or dependency) and restored afterwards, so nothing set by one
request is visible to the next one served by the same worker.
"""
from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional, Union

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
actor_id_var: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | actor=%(actor_id)s | %(message)s"

# Chatty third-party loggers kept at WARNING unless the service runs at DEBUG.
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


# PUBLIC_INTERFACE
@contextmanager
def bind_correlation_id(correlation_id: str) -> Iterator[str]:
    """Bind a correlation id for the enclosed block and clear any actor left in the context."""
    cid_token = correlation_id_var.set(correlation_id)
    actor_token = actor_id_var.set(None)
    try:
        yield correlation_id
    finally:
        actor_id_var.reset(actor_token)
        correlation_id_var.reset(cid_token)


# PUBLIC_INTERFACE
@contextmanager
def bind_actor(actor_id: str) -> Iterator[str]:
    """Bind the authenticated actor for the enclosed block."""
    token = actor_id_var.set(actor_id)
    try:
        yield actor_id
    finally:
        actor_id_var.reset(token)


def current_log_context() -> Dict[str, str]:
    cid = correlation_id_var.get()
    aid = actor_id_var.get()
    return {"correlation_id": cid or "-", "actor_id": aid or "-"}


class LoggingContextFilter(logging.Filter):
    """Copy the bound correlation id and actor onto each record ("-" when unbound)."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        for key, value in current_log_context().items():
            setattr(record, key, value)
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install a single stdout handler on the root logger with the context filter."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)

    noisy_level = level if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
