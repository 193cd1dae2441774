"""Dynamic REST calls resolved from an API description."""

from .actions import Action, CallType
from .auth import BasicAuth, BearerAuth
from .builder import CallInfo, RequestConfiguration, build_request, resolve_call
from .client import UnstructuredClient

__all__ = [
    "Action",
    "CallType",
    "BasicAuth",
    "BearerAuth",
    "CallInfo",
    "RequestConfiguration",
    "build_request",
    "resolve_call",
    "UnstructuredClient",
]
