"""Watch classification, worker pool and retry policy."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any

from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..constants import (
    DEFAULT_CREATE_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RESYNC_INTERVAL,
    DEFAULT_WORKERS,
)
from ..errors import NotFoundError
from ..handlers.base import ExternalResourceBackend, adopt_resource_version, ensure_finalizer
from ..services.events import EventRecorder
from ..services.kube import KubeClient
from ..tracing import add_span_attribute, set_span_status, trace_span
from ..utils.conditions import fail_with_reason, set_ready_condition
from ..utils.context import event_scope
from ..utils.errors import sanitize_exception
from ..utils.unstructured import GroupVersionResource, ObjectRef, ResourceDocument
from .events import Event, EventType
from .queue import RateLimitingQueue

logger = logging.getLogger(__name__)


@dataclass
class ControllerOptions:
    workers: int = DEFAULT_WORKERS
    resync_interval: float = DEFAULT_RESYNC_INTERVAL
    max_retries: int = DEFAULT_MAX_RETRIES
    create_delay: float = DEFAULT_CREATE_DELAY


@dataclass(frozen=True)
class _Seen:
    generation: int | None
    spec: Any


class Controller:
    """Turns watch notifications into queued events and reconciles them.

    Watch callbacks only classify and enqueue. Workers re-fetch the live
    resource for every event and call the backend.
    """

    def __init__(
        self,
        kube: KubeClient,
        backend: ExternalResourceBackend,
        gvr: GroupVersionResource,
        namespace: str,
        options: ControllerOptions | None = None,
        recorder: EventRecorder | None = None,
        queue: RateLimitingQueue | None = None,
    ) -> None:
        self.kube = kube
        self.backend = backend
        self.gvr = gvr
        self.namespace = namespace
        self.options = options if options is not None else ControllerOptions()
        self.recorder = recorder if recorder is not None else EventRecorder(None)
        # An empty queue is falsy
        self.queue = queue if queue is not None else RateLimitingQueue()
        self._seen: dict[ObjectRef, _Seen] = {}
        self._seen_lock = threading.Lock()
        self._stop = threading.Event()
        self._accepting = True
        self._threads: list[threading.Thread] = []

    # Watch callbacks

    @staticmethod
    def _snapshot(doc: ResourceDocument) -> _Seen:
        return _Seen(doc.generation, copy.deepcopy(doc.object.get("spec")))

    def on_add(self, body: dict[str, Any]) -> None:
        doc = ResourceDocument(body)
        with self._seen_lock:
            self._seen[doc.ref()] = self._snapshot(doc)
        self.enqueue(EventType.OBSERVE, doc.ref())

    def on_update(self, body: dict[str, Any]) -> None:
        doc = ResourceDocument(body)
        ref = doc.ref()
        current = self._snapshot(doc)
        with self._seen_lock:
            previous = self._seen.get(ref)
            self._seen[ref] = current

        if doc.deletion_timestamp:
            self.enqueue(EventType.DELETE, ref)
        elif previous is not None and previous != current:
            self.enqueue(EventType.UPDATE, ref)
        else:
            self.enqueue(EventType.OBSERVE, ref)

    def on_delete(self, body: dict[str, Any]) -> None:
        ref = ResourceDocument(body).ref()
        with self._seen_lock:
            self._seen.pop(ref, None)

    def handle_watch_event(self, event_type: str | None, body: dict[str, Any]) -> None:
        """Route a raw watch notification; the initial listing has no type."""
        if event_type in (None, "ADDED"):
            self.on_add(body)
        elif event_type == "MODIFIED":
            self.on_update(body)
        elif event_type == "DELETED":
            self.on_delete(body)
        else:
            logger.debug(f"Ignoring watch event of type {event_type}")

    def known_refs(self) -> list[ObjectRef]:
        with self._seen_lock:
            return list(self._seen)

    def enqueue(self, event_type: EventType, ref: ObjectRef) -> None:
        if not self._accepting:
            return
        event = Event(event_type, ref)
        logger.debug(f"Enqueued {event} ({event.id})")
        self.queue.add(event)

    # Lifecycle

    def run(self, workers: int | None = None) -> None:
        """Start worker threads and the resync thread; returns immediately."""
        count = workers or self.options.workers
        for idx in range(count):
            thread = threading.Thread(target=self._worker, name=f"worker-{idx}", daemon=True)
            thread.start()
            self._threads.append(thread)
        resync = threading.Thread(target=self._resync_loop, name="resync", daemon=True)
        resync.start()
        self._threads.append(resync)
        logger.info(f"Controller for {self.gvr.resource} started with {count} workers")

    def stop(self, timeout: float | None = None) -> None:
        """Stop accepting events, drain the queue and join the workers."""
        self._accepting = False
        self._stop.set()
        self.queue.shut_down_with_drain(timeout)
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()
        logger.info(f"Controller for {self.gvr.resource} stopped")

    def _resync_loop(self) -> None:
        while not self._stop.wait(self.options.resync_interval):
            for ref in self.known_refs():
                self.enqueue(EventType.OBSERVE, ref)

    def _worker(self) -> None:
        while True:
            event, shutdown = self.queue.get()
            if shutdown:
                return
            try:
                self.process(event)
            except Exception:
                logger.exception(f"Unexpected error processing {event} ({event.id})")
            finally:
                self.queue.done(event)

    # Processing

    def process(self, event: Event) -> None:
        """Dispatch one event and apply the retry policy to its outcome."""
        with event_scope(event.id, event.event_type.value, str(event.ref)), trace_span(
            f"reconcile.{event.event_type.value.lower()}",
            kind=event.ref.kind,
            attributes={"resource.name": event.ref.name, "resource.namespace": event.ref.namespace},
        ):
            add_span_attribute("correlation_id", event.id)
            error: Exception | None = None
            try:
                self.dispatch(event)
            except Exception as e:
                error = e
            set_span_status(error is None, None if error is None else sanitize_exception(error))
            self.handle_err(event, error)

    def fetch(self, ref: ObjectRef) -> ResourceDocument | None:
        """Read the live resource, None when it is gone."""
        try:
            return self.kube.get(self.gvr, ref.namespace, ref.name)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def dispatch(self, event: Event) -> None:
        doc = self.fetch(event.ref)
        if doc is None:
            logger.debug(f"Resource {event.ref} no longer exists, dropping {event.event_type.value}")
            return

        event_type = event.event_type
        if doc.deletion_timestamp:
            event_type = EventType.DELETE
        elif ensure_finalizer(doc):
            adopt_resource_version(doc, self.kube.update(doc))

        doc.strip_transient_metadata()

        if event_type is EventType.OBSERVE:
            try:
                exists = self.backend.observe(doc)
            except NotFoundError as e:
                logger.debug(f"{event.ref} needs update: {sanitize_exception(e)}")
                self.queue.add(Event(EventType.UPDATE, event.ref))
                return
            if not exists:
                self.queue.add_after(Event(EventType.CREATE, event.ref), self.options.create_delay)
        elif event_type is EventType.CREATE:
            self.backend.create(doc)
        elif event_type is EventType.UPDATE:
            self.backend.update(doc)
        elif event_type is EventType.DELETE:
            self.backend.delete(doc)

    def handle_err(self, event: Event, error: Exception | None) -> None:
        """Forget on success, retry with backoff, or give up after max_retries."""
        if error is None:
            self.queue.forget(event)
            return

        message = sanitize_exception(error)
        retries = self.queue.num_requeues(event)
        if retries < self.options.max_retries:
            logger.warning(
                f"Error processing {event} ({event.id}), retry {retries + 1}/{self.options.max_retries}: "
                f"{type(error).__name__}: {message}"
            )
            metrics.requeues_total.labels(kind=event.ref.kind).inc()
            self.queue.add_rate_limited(event)
            return

        logger.error(f"Dropping {event} ({event.id}) after {retries} retries: {type(error).__name__}: {message}")
        self.queue.forget(event)
        metrics.events_dropped_total.labels(kind=event.ref.kind, event_type=event.event_type.value).inc()
        self.mark_failed(event.ref, error)

    def mark_failed(self, ref: ObjectRef, error: Exception) -> None:
        """Set Ready=False on the live resource and record a failure event."""
        message = sanitize_exception(error)
        try:
            doc = self.fetch(ref)
            if doc is None:
                return
            set_ready_condition(doc, *fail_with_reason(type(error).__name__, message))
            self.kube.update_status(doc)
        except ApiException as e:
            logger.warning(f"Unable to mark {ref} as failed: {e.status} {e.reason}")
            return
        except Exception as e:
            logger.warning(f"Unable to mark {ref} as failed: {type(e).__name__}: {sanitize_exception(e)}")
            return
        self.recorder.reconcile_failed(doc, f"Reconciliation failed: {message}")
