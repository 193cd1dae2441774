"""Error types for the REST Dynamic Operator."""

from __future__ import annotations

from typing import Any


class OperatorError(Exception):
    """Base exception for operator errors."""


class ConfigurationError(OperatorError):
    """Raised when a definition or API description does not declare what is needed.

    Configuration errors are not fixed by retrying; the queue still applies its
    generic retry cap before dropping the event.
    """


class UnresolvedActionError(ConfigurationError):
    """Raised when no verb description matches the requested action."""

    def __init__(self, action: str, kind: str | None = None) -> None:
        msg = f"impossible to build api call for action {action}"
        if kind:
            msg += f" on kind {kind}"
        super().__init__(msg)
        self.action = action
        self.kind = kind


class OperationNotFoundError(ConfigurationError):
    """Raised when a path or operation is not declared in the API description."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"operation not found: {method.upper()} {path}")
        self.method = method
        self.path = path


class NoSuccessCodeError(ConfigurationError):
    """Raised when an operation declares no 2xx response."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"no valid response code found for {method.upper()} {path}")
        self.method = method
        self.path = path


class NoReferenceFoundError(ConfigurationError):
    """Raised when a referenced object cannot be found or is ambiguous."""


class DefinitionNotFoundError(ConfigurationError):
    """Raised when no definition describes the resource kind."""


class MissingFieldError(ConfigurationError):
    """Raised when a required field is absent from a referenced object."""

    def __init__(self, field: str, where: str) -> None:
        super().__init__(f"missing {field} in {where}")
        self.field = field
        self.where = where


class LoadError(OperatorError):
    """Raised when an API description cannot be read or parsed."""


class ValidationError(OperatorError):
    """Raised when an API description or a request fails validation."""


class TransportError(OperatorError):
    """Raised when a backend call fails at the network or protocol level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class APIError(TransportError):
    """Structured error body returned by a backend."""

    def __init__(
        self,
        status_code: int,
        message: str,
        type_key: str = "",
        error_code: int = 0,
        event_id: int = 0,
    ) -> None:
        super().__init__(f"error: {message} ({type_key}, {event_id})", status_code)
        self.message = message
        self.type_key = type_key
        self.error_code = error_code
        self.event_id = event_id

    @classmethod
    def from_body(cls, status_code: int, body: Any) -> APIError | None:
        """Build an APIError when the body has the structured error shape."""
        if not isinstance(body, dict) or not isinstance(body.get("message"), str):
            return None
        try:
            error_code = int(body.get("errorCode") or 0)
            event_id = int(body.get("eventId") or 0)
        except (TypeError, ValueError):
            return None
        return cls(
            status_code,
            body["message"],
            type_key=str(body.get("typeKey") or ""),
            error_code=error_code,
            event_id=event_id,
        )


class NotFoundError(OperatorError):
    """Raised when the external resource does not exist."""


class DriftError(NotFoundError):
    """Raised when the external resource differs from the desired spec.

    It is NotFound-shaped so the controller routes it to an Update event.
    """

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"external resource is not up to date: {', '.join(fields) or 'unknown'}")
        self.fields = fields


class ReleaseNotFoundError(NotFoundError):
    """Raised when a chart release does not exist."""


class FieldNotFoundError(OperatorError, KeyError):
    """Raised when a nested field is absent from a resource document."""

    def __init__(self, path: tuple[str, ...]) -> None:
        super().__init__(f"{'.'.join(path)} not found")
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class FieldTypeError(OperatorError, TypeError):
    """Raised when a nested field has an unexpected type."""

    def __init__(self, path: tuple[str, ...], expected: str, got: Any) -> None:
        super().__init__(
            f"{'.'.join(path)} accessor error: {got!r} is of type {type(got).__name__}, expected {expected}"
        )
        self.path = path


class NotAvailableError(OperatorError):
    """Raised when an object reports a non-True readiness condition."""

    def __init__(self, failed_object_ref: Any, reason: str) -> None:
        if failed_object_ref is None:
            super().__init__(f"err {reason}")
        else:
            super().__init__(f"failedObjectRef {failed_object_ref}: err {reason}")
        self.failed_object_ref = failed_object_ref
        self.reason = reason


def is_not_found(error: BaseException) -> bool:
    """Return True when the error means the external resource is absent."""
    return isinstance(error, NotFoundError)
