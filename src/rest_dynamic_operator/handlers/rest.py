"""Reconciliation of resources backed by a REST API."""

from __future__ import annotations

from typing import Any

from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..errors import (
    ConfigurationError,
    DriftError,
    NotFoundError,
    OperatorError,
    UnresolvedActionError,
)
from ..openapi import APIDescription, load_description
from ..restclient import Action, UnstructuredClient, build_request, resolve_call
from ..restclient.builder import CallInfo
from ..services.definitions import ClientInfo
from ..utils.cache import TTLCache
from ..utils.conditions import (
    available,
    creating,
    set_ready_condition,
    unset_failed_object_ref,
)
from ..utils.unstructured import ResourceDocument, generic_to_string
from .base import BaseHandler, HandlerOptions
from .references import resolve_owner_references


def find_drift(
    spec: dict[str, Any],
    response: dict[str, Any],
    compare_list: list[str],
    alt_field_mapping: dict[str, str] | None = None,
) -> list[str]:
    """Names of spec fields whose value differs from the backend response.

    With a compare list only the listed fields are compared and each must
    be present in the response. Without one, every spec field the response
    also contains is compared; spec fields absent from the response are
    skipped.

    Raises:
        ConfigurationError: If a listed field is missing from the response
    """
    mapping = alt_field_mapping or {}
    drifted = []
    if compare_list:
        for name in compare_list:
            remote = mapping.get(name, name)
            if remote not in response:
                raise ConfigurationError(f"compare field {name} not found in response")
            if name in spec and spec[name] != response[remote]:
                drifted.append(name)
        return drifted

    for name, value in spec.items():
        remote = mapping.get(name, name)
        if remote in response and value != response[remote]:
            drifted.append(name)
    return drifted


class RestHandler(BaseHandler):
    """Drives an external REST resource through its declared verbs."""

    def __init__(self, options: HandlerOptions):
        super().__init__("RestResource", options)
        if options.definitions is None:
            raise ConfigurationError("the REST backend requires a definition getter")
        self.definitions = options.definitions
        self.descriptions = TTLCache(options.description_ttl)

    def load_description(self, url: str) -> APIDescription:
        return self.descriptions.get_or_load(
            url,
            lambda: load_description(url, session=self.options.session, timeout=self.options.request_timeout),
        )

    def connect(self, doc: ResourceDocument) -> tuple[ClientInfo, UnstructuredClient]:
        """Resolve definition, owners and description, and build a backend client."""
        info = self.definitions.get(doc)
        if info.owner_references:
            resolve_owner_references(self.kube, doc, info.owner_references)
        client = UnstructuredClient(
            self.load_description(info.url),
            auth=info.auth,
            session=self.options.session,
            timeout=self.options.request_timeout,
            verbose=info.verbose or self.options.debug,
        )
        return info, client

    @staticmethod
    def write_identifiers(doc: ResourceDocument, call_info: CallInfo, body: Any) -> None:
        if not isinstance(body, dict):
            return
        for name in call_info.identifier_fields:
            if name in body and body[name] is not None:
                doc.set_field("status", name, generic_to_string(body[name]))

    @staticmethod
    def has_identifier(doc: ResourceDocument, identifiers: list[str]) -> bool:
        status = doc.status_fields()
        return any(status.get(name) not in (None, "") for name in identifiers)

    def observe(self, doc: ResourceDocument) -> bool:
        return self.reconcile_with_metrics(doc, "observe", lambda: self._observe(doc))

    def _observe(self, doc: ResourceDocument) -> bool:
        info, client = self.connect(doc)
        descriptor = info.resource
        before = doc.status_fields()

        action = Action.GET if self.has_identifier(doc, descriptor.identifiers) else Action.FINDBY
        try:
            call_info, call = resolve_call(client, descriptor, action)
        except UnresolvedActionError:
            if action is Action.FINDBY:
                self.log_debug(doc, "No findby action declared, external resource not created yet")
                return False
            raise

        conf = build_request(call_info, doc.status_fields(), doc.spec_fields())
        try:
            body = call(call_info.path, conf)
        except NotFoundError:
            self.log_debug(doc, "External resource not found", action=action.value)
            return False

        self.write_identifiers(doc, call_info, body)
        self.persist_status(doc, before)

        response = body if isinstance(body, dict) else {}
        drifted = find_drift(doc.spec_fields(), response, descriptor.compare_list, call_info.alt_field_mapping)
        if drifted:
            metrics.drift_detected_total.labels(kind=doc.kind).inc()
            self.recorder.drift_detected(doc, drifted)
            self.log_info(doc, "External resource is not up to date", event="drift", reason="DriftDetected", fields=drifted)
            raise DriftError(drifted)

        before = doc.status_fields()
        set_ready_condition(doc, *available())
        unset_failed_object_ref(doc)
        self.persist_status(doc, before)
        self.log_debug(doc, "External resource up to date")
        return True

    def create(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "create", lambda: self._create(doc))

    def _create(self, doc: ResourceDocument) -> None:
        info, client = self.connect(doc)
        before = doc.status_fields()
        call_info, call = resolve_call(client, info.resource, Action.CREATE)
        body = call(call_info.path, build_request(call_info, None, doc.spec_fields()))

        self.write_identifiers(doc, call_info, body)
        set_ready_condition(doc, *creating())
        self.persist_status(doc, before)
        self.recorder.created(doc)
        self.log_info(doc, "External resource created", event="create", reason="Created")

    def update(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "update", lambda: self._update(doc))

    def _update(self, doc: ResourceDocument) -> None:
        info, client = self.connect(doc)
        before = doc.status_fields()
        call_info, call = resolve_call(client, info.resource, Action.UPDATE)
        body = call(call_info.path, build_request(call_info, doc.status_fields(), doc.spec_fields()))

        self.write_identifiers(doc, call_info, body)
        self.persist_status(doc, before)
        self.recorder.updated(doc)
        self.log_info(doc, "External resource updated", event="update", reason="Updated")

    def delete(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "delete", lambda: self._delete(doc))

    def _delete(self, doc: ResourceDocument) -> None:
        # Backend failures never block finalizer release
        try:
            info, client = self.connect(doc)
            call_info, call = resolve_call(client, info.resource, Action.DELETE)
            call(call_info.path, build_request(call_info, doc.status_fields(), doc.spec_fields()))
            self.recorder.deleted(doc)
            self.log_info(doc, "External resource deleted", event="delete", reason="Deleted")
        except (OperatorError, ApiException) as e:
            self.log_error(doc, "Deleting external resource failed, releasing finalizer", error=e, event="delete")

        if self.remove_finalizer(doc):
            self.persist_resource(doc)
