"""Per-event context attached to every log line a worker emits."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Iterator


@dataclass(frozen=True)
class EventScope:
    correlation_id: str
    event_type: str = ""
    resource: str = ""


_scope: contextvars.ContextVar[EventScope | None] = contextvars.ContextVar("event_scope", default=None)


def new_correlation_id() -> str:
    """Short random id attached to one queued event."""
    return uuid.uuid4().hex[:8]


def current_scope() -> EventScope | None:
    return _scope.get()


def get_correlation_id() -> str | None:
    scope = _scope.get()
    return scope.correlation_id if scope else None


@contextmanager
def event_scope(correlation_id: str, event_type: str = "", resource: str = "") -> Iterator[EventScope]:
    """Bind an event to the current thread of work for the duration of a block.

    Args:
        correlation_id: Id of the queued event
        event_type: Observe, Create, Update or Delete
        resource: Printable reference of the resource being reconciled

    Yields:
        The active scope
    """
    scope = EventScope(correlation_id, event_type, resource)
    token = _scope.set(scope)
    try:
        yield scope
    finally:
        _scope.reset(token)


def scope_fields(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Non-empty scope fields merged with ``additional``; additional keys win."""
    fields: dict[str, Any] = {}
    scope = _scope.get()
    if scope is not None:
        fields.update({k: v for k, v in asdict(scope).items() if v})
    if additional:
        fields.update(additional)
    return fields
