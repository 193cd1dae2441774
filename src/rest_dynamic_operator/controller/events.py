"""Queue payloads produced by watch classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..utils.context import new_correlation_id
from ..utils.unstructured import ObjectRef


class EventType(str, Enum):
    OBSERVE = "Observe"
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass(frozen=True)
class Event:
    """One unit of work: an action for a resource.

    Events carry no resource body; the worker re-fetches the resource. The
    correlation id is excluded from equality so identical work deduplicates.
    """

    event_type: EventType
    ref: ObjectRef
    id: str = field(default_factory=new_correlation_id, compare=False)

    @property
    def key(self) -> ObjectRef:
        return self.ref

    def __str__(self) -> str:
        return f"{self.event_type.value} {self.ref}"
