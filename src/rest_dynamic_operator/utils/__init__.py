"""Utility functions for the REST Dynamic Operator."""

from .cache import TTLCache
from .conditions import (
    extract_failed_object_ref,
    is_available,
    set_failed_object_ref,
    set_ready_condition,
    unset_failed_object_ref,
    update_condition,
)
from .context import (
    EventScope,
    current_scope,
    event_scope,
    get_correlation_id,
    new_correlation_id,
    scope_fields,
)
from .secrets import get_secret_value
from .unstructured import (
    GroupVersionKind,
    GroupVersionResource,
    ObjectRef,
    ResourceDocument,
    generic_to_string,
    guess_gvr,
    parse_api_version,
)

__all__ = [
    "TTLCache",
    "update_condition",
    "set_ready_condition",
    "set_failed_object_ref",
    "extract_failed_object_ref",
    "unset_failed_object_ref",
    "is_available",
    "get_secret_value",
    "EventScope",
    "current_scope",
    "event_scope",
    "get_correlation_id",
    "new_correlation_id",
    "scope_fields",
    "GroupVersionKind",
    "GroupVersionResource",
    "ObjectRef",
    "ResourceDocument",
    "generic_to_string",
    "guess_gvr",
    "parse_api_version",
]
