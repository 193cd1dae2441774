"""Base handler class with common functionality for external resource backends."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol, TypeVar

import requests

from .. import metrics
from ..constants import (
    CONTROLLER_NAME,
    DEFAULT_DESCRIPTION_CACHE_TTL,
    DEFAULT_REQUEST_TIMEOUT,
    FINALIZER,
)
from ..logging import log_resource_event
from ..utils.errors import sanitize_exception
from ..utils.unstructured import ResourceDocument

if TYPE_CHECKING:
    from ..services.definitions import DefinitionGetter
    from ..services.events import EventRecorder
    from ..services.kube import KubeClient

_T = TypeVar("_T")


class ExternalResourceBackend(Protocol):
    """Observe/Create/Update/Delete contract the controller drives."""

    def observe(self, doc: ResourceDocument) -> bool:
        """Return True when the external resource exists and is up to date.

        Raises:
            NotFoundError: If the external resource exists but has drifted
        """
        ...

    def create(self, doc: ResourceDocument) -> None:
        ...

    def update(self, doc: ResourceDocument) -> None:
        ...

    def delete(self, doc: ResourceDocument) -> None:
        ...


@dataclass
class HandlerOptions:
    kube: KubeClient
    recorder: EventRecorder
    definitions: DefinitionGetter | None = None
    session: requests.Session | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    description_ttl: float = DEFAULT_DESCRIPTION_CACHE_TTL
    debug: bool = False


def ensure_finalizer(doc: ResourceDocument) -> bool:
    """Add the controller finalizer, returning True when the document changed."""
    finalizers = doc.finalizers
    if FINALIZER in finalizers:
        return False
    finalizers.append(FINALIZER)
    doc.finalizers = finalizers
    return True


def remove_finalizer(doc: ResourceDocument) -> bool:
    """Remove the controller finalizer, returning True when the document changed."""
    finalizers = doc.finalizers
    if FINALIZER not in finalizers:
        return False
    finalizers.remove(FINALIZER)
    doc.finalizers = finalizers
    return True


def adopt_resource_version(doc: ResourceDocument, updated: Any) -> None:
    """Carry the server's new resourceVersion over so later writes do not conflict."""
    if not isinstance(updated, ResourceDocument):
        return
    version = updated.object.get("metadata", {}).get("resourceVersion")
    if isinstance(version, str) and version:
        doc.set_field("metadata", "resourceVersion", version)


class BaseHandler:
    """Base class for backends with common logging, finalizer and status handling."""

    def __init__(self, kind: str, options: HandlerOptions):
        """Initialize base handler.

        Args:
            kind: Backend name used in logs and metrics when a document has no kind
            options: Shared clients and settings
        """
        self.kind = kind
        self.options = options
        self.kube = options.kube
        self.recorder = options.recorder
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, doc: ResourceDocument) -> dict[str, Any]:
        return {
            "kind": doc.kind or self.kind,
            "name": doc.name or "unknown",
            "namespace": doc.namespace or "default",
        }

    def _log(
        self,
        level: int,
        doc: ResourceDocument,
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(doc)
        log_resource_event(
            self.logger,
            level,
            controller=CONTROLLER_NAME,
            resource_kind=ctx["kind"],
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            event=event,
            reason=reason,
            message=message,
            **kwargs,
        )

    def log_debug(self, doc: ResourceDocument, message: str, event: str = "debug", reason: str = "Debug", **kwargs: Any) -> None:
        self._log(logging.DEBUG, doc, message, event, reason, **kwargs)

    def log_info(self, doc: ResourceDocument, message: str, event: str = "info", reason: str = "Info", **kwargs: Any) -> None:
        """Log an info-level structured log message.

        Args:
            doc: Resource the message is about
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, doc, message, event, reason, **kwargs)

    def log_warning(
        self,
        doc: ResourceDocument,
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        self._log(logging.WARNING, doc, message, event, reason, **kwargs)

    def log_error(
        self,
        doc: ResourceDocument,
        message: str,
        error: BaseException | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            doc: Resource the message is about
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, doc, message, event, reason, **kwargs)

    def ensure_finalizer(self, doc: ResourceDocument) -> bool:
        return ensure_finalizer(doc)

    def remove_finalizer(self, doc: ResourceDocument) -> bool:
        return remove_finalizer(doc)

    def persist_status(self, doc: ResourceDocument, before: dict[str, Any] | None) -> bool:
        """Write the document's status when it differs from ``before``.

        Skipping unchanged writes keeps status updates from feeding the watch.

        Returns:
            True when a write happened
        """
        if before is not None and doc.status_fields() == before:
            return False
        updated = self.kube.update_status(doc)
        adopt_resource_version(doc, updated)
        return True

    def persist_resource(self, doc: ResourceDocument) -> None:
        updated = self.kube.update(doc)
        adopt_resource_version(doc, updated)

    def reconcile_with_metrics(
        self,
        doc: ResourceDocument,
        action: str,
        reconcile_fn: Callable[[], _T],
    ) -> _T:
        """Execute one backend action with metrics and error logging.

        Args:
            doc: Resource being reconciled
            action: Action name for metrics and events
            reconcile_fn: Function performing the action

        Returns:
            Whatever reconcile_fn returns
        """
        kind = doc.kind or self.kind
        if action != "observe":
            self.recorder.reconcile_started(doc, action)
        metrics.reconcile_total.labels(kind=kind, action=action, result="started").inc()

        start_time = time.time()
        try:
            result = reconcile_fn()
            metrics.reconcile_total.labels(kind=kind, action=action, result="success").inc()
            return result
        except Exception as e:
            metrics.error_total.labels(kind=kind, error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(kind=kind, action=action, result="error").inc()
            self.log_debug(doc, f"{action} failed", error=sanitize_exception(e), error_type=type(e).__name__)
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=kind, action=action).observe(duration)
