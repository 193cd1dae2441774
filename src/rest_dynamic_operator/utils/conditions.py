"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_READY,
    REASON_AVAILABLE,
    REASON_CREATING,
    REASON_DELETING,
    REASON_UNAVAILABLE,
)
from ..errors import NotAvailableError
from .unstructured import ObjectRef, ResourceDocument

FAILED_OBJECT_REF_FIELD = "failedObjectRef"

# Condition types containing one of these words gate availability
READINESS_KEYWORDS = ("ready", "complete", "healthy", "active", "able")


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()

    new_condition: dict[str, Any] = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }
    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    for idx, cond in enumerate(conditions):
        if cond.get("type") != condition_type:
            continue
        # lastTransitionTime only moves on a status change
        if cond.get("status") == status:
            new_condition["lastTransitionTime"] = cond.get("lastTransitionTime", now)
        conditions[idx] = new_condition
        return conditions

    conditions.append(new_condition)
    return conditions


def available() -> tuple[str, str, str]:
    return "True", REASON_AVAILABLE, ""


def unavailable() -> tuple[str, str, str]:
    return "False", REASON_UNAVAILABLE, ""


def creating() -> tuple[str, str, str]:
    return "False", REASON_CREATING, ""


def deleting() -> tuple[str, str, str]:
    return "False", REASON_DELETING, ""


def fail_with_reason(reason: str, message: str) -> tuple[str, str, str]:
    return "False", reason, message


def get_conditions(doc: ResourceDocument) -> list[dict[str, Any]]:
    """Return the status conditions of a document, empty when absent."""
    conditions = doc.object.get("status", {}).get("conditions")
    if not isinstance(conditions, list):
        return []
    return [c for c in conditions if isinstance(c, dict)]


def set_condition(
    doc: ResourceDocument,
    condition_type: str,
    status: str,
    reason: str,
    message: str,
) -> None:
    """Upsert a condition directly on the document's status."""
    conditions = update_condition(get_conditions(doc), condition_type, status, reason, message)
    doc.set_field("status", "conditions", conditions)


def set_ready_condition(
    doc: ResourceDocument,
    status: str,
    reason: str,
    message: str = "",
) -> None:
    """Set the Ready condition.

    Usage: ``set_ready_condition(doc, *creating())``.
    """
    set_condition(doc, COND_READY, status, reason, message)


def set_failed_object_ref(doc: ResourceDocument, ref: ObjectRef) -> None:
    doc.set_field("status", FAILED_OBJECT_REF_FIELD, ref.to_dict())


def extract_failed_object_ref(doc: ResourceDocument) -> ObjectRef | None:
    value = doc.object.get("status", {}).get(FAILED_OBJECT_REF_FIELD)
    if not isinstance(value, dict):
        return None
    return ObjectRef.from_dict(value)


def unset_failed_object_ref(doc: ResourceDocument) -> None:
    doc.remove_field("status", FAILED_OBJECT_REF_FIELD)


def is_available(doc: ResourceDocument) -> bool:
    """Check the readiness-like conditions of an arbitrary object.

    Objects without such conditions count as available.

    Raises:
        NotAvailableError: If a readiness-like condition is not "True"
    """
    for cond in get_conditions(doc):
        cond_type = str(cond.get("type", "")).lower()
        if not any(word in cond_type for word in READINESS_KEYWORDS):
            continue
        if cond.get("status") != "True":
            reason = str(cond.get("reason") or cond.get("message") or cond_type)
            raise NotAvailableError(extract_failed_object_ref(doc), reason)
    return True
