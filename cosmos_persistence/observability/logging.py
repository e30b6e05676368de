"""
Contextual logging.

A correlation id and the container being worked on are kept in context
variables, so they follow an asyncio task across awaits without being
passed around. ``get_logger`` returns an adapter that copies them into the
``extra`` of every record. Handlers and formatting are left to the host
application.
"""

import contextlib
import contextvars
import logging
import uuid
from collections.abc import Iterator, Mapping, MutableMapping
from datetime import datetime
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cosmos_persistence_correlation_id", default=None
)
_container_context: contextvars.ContextVar[Mapping[str, Any] | None] = contextvars.ContextVar(
    "cosmos_persistence_container_context", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (a new uuid4 when None) to the current context and return it."""
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_container_context(container_key: str | None = None, **fields: Any) -> None:
    """
    Describe the container the current task works on.

    Args:
        container_key: Configured container key
        **fields: Further fields, e.g. ``database_id`` or ``operation``
    """
    _container_context.set({"container_key": container_key, **fields})


def clear_container_context() -> None:
    _container_context.set(None)


@contextlib.contextmanager
def container_context(container_key: str, **fields: Any) -> Iterator[None]:
    """Scope ``set_container_context`` to a block, restoring the previous value after."""
    token = _container_context.set({"container_key": container_key, **fields})
    try:
        yield
    finally:
        _container_context.reset(token)


def get_logging_context() -> dict[str, Any]:
    """Fields the adapter adds to each record: timestamp, correlation id, container context."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    context.update(_container_context.get() or {})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Adds ``get_logging_context()`` to ``extra``; explicit ``extra`` keys win."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """Contextual logger for module ``name`` (pass ``__name__``)."""
    return ContextualLoggerAdapter(logging.getLogger(name), {})
