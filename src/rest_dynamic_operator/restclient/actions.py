"""Reconcile actions and the call types they map to."""

from __future__ import annotations

from enum import Enum

from ..errors import ConfigurationError

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class Action(str, Enum):
    """Lifecycle action a verb description is declared for."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GET = "get"
    LIST = "list"
    FINDBY = "findby"

    @classmethod
    def parse(cls, value: str | Action) -> Action:
        """Parse an action name case-insensitively.

        Raises:
            ConfigurationError: If the name is not a known action
        """
        if isinstance(value, Action):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ConfigurationError(f"unknown action: {value}") from e


class CallType(str, Enum):
    """How a resolved call is performed against the backend."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    LIST = "LIST"
    FIND_BY = "FIND_BY"

    @classmethod
    def for_action(cls, action: Action, method: str) -> CallType:
        """Pick the call type for an action declared with an HTTP method.

        Raises:
            ConfigurationError: If the HTTP method is not supported
        """
        if action is Action.FINDBY:
            return cls.FIND_BY
        if action is Action.LIST:
            return cls.LIST
        method = method.upper()
        if method in (cls.GET.value, cls.POST.value, cls.PUT.value, cls.PATCH.value, cls.DELETE.value):
            return cls(method)
        raise ConfigurationError(f"unsupported http method {method} for action {action.value}")
