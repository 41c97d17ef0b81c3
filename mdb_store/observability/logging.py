"""
Contextual logging utilities for MDB_STORE.

Log records emitted through get_logger() carry the caller's correlation ID and,
while a TypedCollection operation runs, the model name, storage collection and
operation name.
"""

import contextvars
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_operation_scope: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "operation_scope", default=None
)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Tag subsequent log records in this context with a correlation ID.

    Args:
        correlation_id: Optional correlation ID (a UUID4 is generated if None)

    Returns:
        The correlation ID that was set
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


@contextmanager
def collection_context(model_name: str, **fields: Any) -> Iterator[None]:
    """
    Scope log records to one collection operation.

    The previous scope is restored on exit, so nested operations (find_one
    calling find) and concurrent tasks do not leak into each other.

    Args:
        model_name: Registered model name
        **fields: Extra fields such as collection_name and operation
    """
    token = _operation_scope.set({"model_name": model_name, **fields})
    try:
        yield
    finally:
        _operation_scope.reset(token)


def get_logging_context() -> dict[str, Any]:
    """Fields merged into every record logged through a ContextualLoggerAdapter."""
    context: dict[str, Any] = {}
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    context.update(_operation_scope.get() or {})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that merges the logging context into ``extra``.

    Explicit ``extra`` values win over context fields of the same name.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """
    Get a contextual logger for a module.

    Args:
        name: Logger name (typically __name__)
    """
    return ContextualLoggerAdapter(logging.getLogger(name), {})
