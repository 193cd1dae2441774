"""Resolve which backend call serves an action and bind resource fields into it."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from ..errors import UnresolvedActionError
from ..utils.unstructured import generic_to_string
from .actions import BODY_METHODS, Action, CallType

if TYPE_CHECKING:
    from ..services.definitions import ResourceDescriptor
    from .client import UnstructuredClient


@dataclass
class CallInfo:
    """Everything resolved about one call before field values are bound."""

    action: Action
    call_type: CallType
    method: str
    path: str
    path_params: set[str] = field(default_factory=set)
    query_params: set[str] = field(default_factory=set)
    body_fields: set[str] = field(default_factory=set)
    identifier_fields: list[str] = field(default_factory=list)
    alt_field_mapping: dict[str, str] = field(default_factory=dict)


@dataclass
class RequestConfiguration:
    path_params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


def resolve_call(
    client: UnstructuredClient,
    descriptor: ResourceDescriptor,
    action: Action | str,
) -> tuple[CallInfo, Callable[[str, RequestConfiguration], Any]]:
    """Find the call serving an action.

    The first verb description whose action matches wins. Parameters and
    body fields come from the client's API description; body fields are
    only resolved for methods that carry a body.

    Args:
        client: Backend client holding the API description
        descriptor: Resource descriptor listing the verb descriptions
        action: Action to resolve

    Returns:
        The call info and the bound client function performing the call

    Raises:
        UnresolvedActionError: If no verb description matches the action
        OperationNotFoundError: If the verb points at an undeclared operation
    """
    action = Action.parse(action)
    for verb in descriptor.verbs_description:
        if verb.action.strip().lower() != action.value:
            continue

        method = verb.method.upper()
        call_type = CallType.for_action(action, method)
        path_params, query_params = client.description.required_parameters(method, verb.path)
        body_fields: set[str] = set()
        if method in BODY_METHODS:
            body_fields = client.description.required_body_fields(method, verb.path)

        info = CallInfo(
            action=action,
            call_type=call_type,
            method=method,
            path=verb.path,
            path_params=path_params,
            query_params=query_params,
            body_fields=body_fields,
            identifier_fields=list(descriptor.identifiers),
            alt_field_mapping=dict(verb.alt_field_mapping),
        )
        return info, _bind(client, info)

    raise UnresolvedActionError(action.value, descriptor.kind)


def _bind(client: UnstructuredClient, info: CallInfo) -> Callable[[str, RequestConfiguration], Any]:
    if info.call_type is CallType.LIST:
        return functools.partial(client.list, method=info.method)
    if info.call_type is CallType.FIND_BY:
        return functools.partial(client.find_by, method=info.method)
    return {
        CallType.GET: client.get,
        CallType.POST: client.post,
        CallType.PUT: client.put,
        CallType.PATCH: client.patch,
        CallType.DELETE: client.delete,
    }[info.call_type]


def build_request(
    call_info: CallInfo,
    status_fields: dict[str, Any] | None,
    spec_fields: dict[str, Any] | None,
) -> RequestConfiguration:
    """Bind resource field values into a request.

    Spec values are applied first and status values second, so status wins
    on a name collision. Each field is renamed through the alternate field
    mapping and then classified as path parameter, query parameter or body
    field, in that order. Unclassified fields are dropped.
    """
    merged: dict[str, Any] = {}
    merged.update(spec_fields or {})
    merged.update(status_fields or {})

    conf = RequestConfiguration()
    for name, value in merged.items():
        name = call_info.alt_field_mapping.get(name, name)
        if name in call_info.path_params:
            conf.path_params[name] = generic_to_string(value)
        elif name in call_info.query_params:
            conf.query[name] = generic_to_string(value)
        elif name in call_info.body_fields:
            conf.body[name] = value
    return conf
