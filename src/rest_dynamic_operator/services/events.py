"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from kubernetes import client

from ..constants import (
    CONTROLLER_NAME,
    EVENT_REASON_CREATED,
    EVENT_REASON_DELETED,
    EVENT_REASON_DRIFT_DETECTED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_UPDATED,
)
from ..utils.errors import redact_text
from ..utils.unstructured import ResourceDocument

logger = logging.getLogger(__name__)


class EventRecorder:
    """Best-effort Kubernetes events attached to reconciled resources.

    Posting failures are logged and never raised.
    """

    def __init__(self, core_api: client.CoreV1Api | None, component: str = CONTROLLER_NAME) -> None:
        self.core_api = core_api
        self.component = component

    def emit(self, doc: ResourceDocument, reason: str, message: str, type_: str = "Normal") -> None:
        """Emit a Kubernetes event.

        Args:
            doc: Resource the event is about
            reason: Event reason
            message: Event message
            type_: Event type (Normal or Warning)
        """
        if self.core_api is None:
            return
        now = datetime.now(timezone.utc)
        namespace = doc.namespace or "default"
        event = client.CoreV1Event(
            metadata=client.V1ObjectMeta(generate_name=f"{doc.name}.", namespace=namespace),
            involved_object=client.V1ObjectReference(
                api_version=doc.api_version,
                kind=doc.kind,
                name=doc.name,
                namespace=doc.namespace or None,
                uid=doc.uid or doc.origin_uid or None,
            ),
            reason=reason,
            message=redact_text(message)[:1024],
            type=type_,
            source=client.V1EventSource(component=self.component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            self.core_api.create_namespaced_event(namespace=namespace, body=event)
        except client.exceptions.ApiException as e:
            logger.warning(f"Failed to record event {reason} for {doc.ref()}: {e.status} {e.reason}")

    def reconcile_started(self, doc: ResourceDocument, action: str) -> None:
        self.emit(doc, EVENT_REASON_RECONCILE_STARTED, f"Reconciliation started: {action}")

    def reconcile_failed(self, doc: ResourceDocument, message: str) -> None:
        self.emit(doc, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")

    def created(self, doc: ResourceDocument) -> None:
        self.emit(doc, EVENT_REASON_CREATED, f"External resource for {doc.name} created")

    def updated(self, doc: ResourceDocument) -> None:
        self.emit(doc, EVENT_REASON_UPDATED, f"External resource for {doc.name} updated")

    def deleted(self, doc: ResourceDocument) -> None:
        self.emit(doc, EVENT_REASON_DELETED, f"External resource for {doc.name} deleted")

    def drift_detected(self, doc: ResourceDocument, fields: list[str]) -> None:
        self.emit(
            doc,
            EVENT_REASON_DRIFT_DETECTED,
            f"External resource differs in: {', '.join(fields)}",
            type_="Warning",
        )
