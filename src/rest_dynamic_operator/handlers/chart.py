"""Reconciliation of resources deployed as chart releases."""

from __future__ import annotations

import yaml
from kubernetes.client.exceptions import ApiException

from ..errors import NotAvailableError, OperatorError, ReleaseNotFoundError
from ..services.chart.base import ChartBackend, ChartInfoGetter, ReleaseSpec
from ..utils.conditions import (
    available,
    is_available,
    set_failed_object_ref,
    set_ready_condition,
    unavailable,
    unset_failed_object_ref,
)
from ..utils.unstructured import GroupVersionKind, ObjectRef, ResourceDocument, parse_api_version
from .base import BaseHandler, HandlerOptions

HOOK_ANNOTATION = "helm.sh/hook"


def parse_manifest_refs(rendered: bytes | str) -> list[ObjectRef]:
    """Object references of every non-hook document in a multi-document manifest."""
    refs = []
    for obj in yaml.safe_load_all(rendered):
        if not isinstance(obj, dict) or not obj.get("kind") or not obj.get("apiVersion"):
            continue
        metadata = obj.get("metadata") or {}
        if HOOK_ANNOTATION in (metadata.get("annotations") or {}):
            continue
        refs.append(
            ObjectRef(
                api_version=str(obj["apiVersion"]),
                kind=str(obj["kind"]),
                name=str(metadata.get("name", "")),
                namespace=str(metadata.get("namespace", "")),
            )
        )
    return refs


class ChartHandler(BaseHandler):
    """Drives a chart release whose values are the resource's spec."""

    def __init__(self, options: HandlerOptions, backend: ChartBackend, charts: ChartInfoGetter):
        super().__init__("ChartResource", options)
        self.backend = backend
        self.charts = charts

    def release_spec(self, doc: ResourceDocument) -> ReleaseSpec:
        return ReleaseSpec(chart=self.charts.get(doc), release_name=doc.name, namespace=doc.namespace)

    def observe(self, doc: ResourceDocument) -> bool:
        return self.reconcile_with_metrics(doc, "observe", lambda: self._observe(doc))

    def _observe(self, doc: ResourceDocument) -> bool:
        spec = self.release_spec(doc)
        try:
            self.backend.find_release(spec.release_name, spec.namespace)
        except ReleaseNotFoundError:
            self.log_debug(doc, "Release not found")
            return False

        before = doc.status_fields()
        rendered = self.backend.template_render(spec, doc.spec_fields())
        for ref in parse_manifest_refs(rendered):
            if not ref.namespace:
                ref = ObjectRef(ref.api_version, ref.kind, ref.name, spec.namespace)
            try:
                self.check_object(ref)
            except NotAvailableError as e:
                set_failed_object_ref(doc, ref)
                status, reason, _ = unavailable()
                set_ready_condition(doc, status, reason, str(e))
                self.persist_status(doc, before)
                self.log_info(doc, f"Object {ref} not available", reason="Unavailable")
                return True

        set_ready_condition(doc, *available())
        unset_failed_object_ref(doc)
        self.persist_status(doc, before)
        return True

    def check_object(self, ref: ObjectRef) -> None:
        """Raise NotAvailableError when a rendered object is missing or not ready."""
        group, version = parse_api_version(ref.api_version)
        gvr = self.kube.gvk_to_gvr(GroupVersionKind(group, version, ref.kind))
        try:
            obj = self.kube.get(gvr, ref.namespace, ref.name)
        except ApiException as e:
            if e.status == 404:
                raise NotAvailableError(ref, "object not found") from e
            raise
        try:
            is_available(obj)
        except NotAvailableError as e:
            raise NotAvailableError(ref, e.reason) from e

    def _install(self, doc: ResourceDocument) -> None:
        self.backend.install_or_upgrade(self.release_spec(doc), doc.spec_fields())

    def create(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "create", lambda: self._install(doc))
        self.recorder.created(doc)

    def update(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "update", lambda: self._install(doc))
        self.recorder.updated(doc)

    def delete(self, doc: ResourceDocument) -> None:
        self.reconcile_with_metrics(doc, "delete", lambda: self._delete(doc))

    def _delete(self, doc: ResourceDocument) -> None:
        try:
            self.backend.uninstall(self.release_spec(doc))
            self.recorder.deleted(doc)
        except (OperatorError, ApiException) as e:
            self.log_error(doc, "Uninstalling release failed, releasing finalizer", error=e, event="delete")

        if self.remove_finalizer(doc):
            self.persist_resource(doc)
