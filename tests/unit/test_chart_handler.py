"""Tests for the chart release handler."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from rest_dynamic_operator.constants import FINALIZER, REASON_UNAVAILABLE
from rest_dynamic_operator.errors import ReleaseNotFoundError, TransportError
from rest_dynamic_operator.handlers import ChartHandler, HandlerOptions
from rest_dynamic_operator.handlers.chart import parse_manifest_refs
from rest_dynamic_operator.services.chart.base import ChartInfo, ReleaseSpec
from rest_dynamic_operator.utils.conditions import extract_failed_object_ref, get_conditions
from rest_dynamic_operator.utils.unstructured import GroupVersionResource, ObjectRef, ResourceDocument

MANIFEST = b"""
apiVersion: v1
kind: ConfigMap
metadata:
  name: demo-config
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: demo
  namespace: apps
---
apiVersion: batch/v1
kind: Job
metadata:
  name: demo-migrate
  annotations:
    helm.sh/hook: pre-install
---
# empty document
"""


class FakeChartBackend:
    """In-memory chart backend."""

    def __init__(self) -> None:
        self.releases: dict[tuple[str, str], dict[str, Any]] = {}
        self.manifest = MANIFEST
        self.uninstall_error: Exception | None = None

    def find_release(self, name: str, namespace: str) -> dict[str, Any]:
        try:
            return self.releases[(name, namespace)]
        except KeyError:
            raise ReleaseNotFoundError(f"release {name} not found") from None

    def install_or_upgrade(self, spec: ReleaseSpec, values: dict[str, Any]) -> None:
        self.releases[(spec.release_name, spec.namespace)] = {"chart": spec.chart, "values": values}

    def template_render(self, spec: ReleaseSpec, values: dict[str, Any]) -> bytes:
        return self.manifest

    def uninstall(self, spec: ReleaseSpec) -> None:
        if self.uninstall_error is not None:
            raise self.uninstall_error
        self.releases.pop((spec.release_name, spec.namespace), None)


@pytest.fixture
def backend():
    return FakeChartBackend()


@pytest.fixture
def charts():
    getter = MagicMock()
    getter.get.return_value = ChartInfo(url="oci://charts.example.org/demo", version="1.2.3")
    return getter


@pytest.fixture
def handler(kube, backend, charts):
    kube.gvk_to_gvr.side_effect = lambda gvk: GroupVersionResource(gvk.group, gvk.version, gvk.kind.lower() + "s")
    kube.get.return_value = ResourceDocument({"status": {}})
    return ChartHandler(HandlerOptions(kube=kube, recorder=MagicMock()), backend, charts)


@pytest.fixture
def chart_doc():
    return ResourceDocument(
        {
            "apiVersion": "apps.example.org/v1",
            "kind": "DemoApp",
            "metadata": {"name": "demo", "namespace": "default", "finalizers": [FINALIZER]},
            "spec": {"replicas": 2},
        }
    )


class TestParseManifestRefs:
    """Test cases for parse_manifest_refs."""

    def test_hooks_and_empty_documents_skipped(self):
        refs = parse_manifest_refs(MANIFEST)
        assert refs == [
            ObjectRef("v1", "ConfigMap", "demo-config", ""),
            ObjectRef("apps/v1", "Deployment", "demo", "apps"),
        ]


class TestChartObserve:
    """Test cases for ChartHandler.observe."""

    def test_missing_release(self, handler, chart_doc):
        assert handler.observe(chart_doc) is False

    def test_all_objects_available(self, handler, backend, kube, chart_doc):
        backend.releases[("demo", "default")] = {}

        assert handler.observe(chart_doc) is True

        ready = get_conditions(chart_doc)[0]
        assert ready["status"] == "True"
        # Objects without a namespace are looked up in the release namespace
        kube.get.assert_any_call(GroupVersionResource("", "v1", "configmaps"), "default", "demo-config")
        kube.get.assert_any_call(GroupVersionResource("apps", "v1", "deployments"), "apps", "demo")

    def test_unavailable_object_recorded(self, handler, backend, kube, chart_doc):
        backend.releases[("demo", "default")] = {}
        kube.get.side_effect = [
            ResourceDocument({"status": {}}),
            ResourceDocument({"status": {"conditions": [{"type": "Available", "status": "False", "reason": "MinReplicas"}]}}),
        ]

        assert handler.observe(chart_doc) is True

        ready = get_conditions(chart_doc)[0]
        assert ready["status"] == "False"
        assert ready["reason"] == REASON_UNAVAILABLE
        assert "MinReplicas" in ready["message"]
        assert extract_failed_object_ref(chart_doc) == ObjectRef("apps/v1", "Deployment", "demo", "apps")

    def test_missing_object_is_unavailable(self, handler, backend, kube, chart_doc):
        backend.releases[("demo", "default")] = {}
        kube.get.side_effect = ApiException(status=404)

        assert handler.observe(chart_doc) is True
        assert "object not found" in get_conditions(chart_doc)[0]["message"]

    def test_recovery_clears_failed_ref(self, handler, backend, chart_doc):
        backend.releases[("demo", "default")] = {}
        chart_doc.set_field("status", "failedObjectRef", ObjectRef("v1", "ConfigMap", "x").to_dict())

        handler.observe(chart_doc)

        assert extract_failed_object_ref(chart_doc) is None


class TestChartActions:
    """Test cases for install and uninstall."""

    def test_create_installs_with_spec_values(self, handler, backend, chart_doc):
        handler.create(chart_doc)

        release = backend.releases[("demo", "default")]
        assert release["values"] == {"replicas": 2}
        assert release["chart"].version == "1.2.3"

    def test_update_upgrades(self, handler, backend, chart_doc):
        handler.create(chart_doc)
        chart_doc.set_field("spec", "replicas", 3)

        handler.update(chart_doc)

        assert backend.releases[("demo", "default")]["values"] == {"replicas": 3}

    def test_delete(self, handler, backend, kube, chart_doc):
        backend.releases[("demo", "default")] = {}

        handler.delete(chart_doc)

        assert backend.releases == {}
        assert FINALIZER not in chart_doc.finalizers
        kube.update.assert_called_once()

    def test_delete_failure_releases_finalizer(self, handler, backend, kube, chart_doc):
        backend.uninstall_error = TransportError("registry unreachable")

        handler.delete(chart_doc)

        assert FINALIZER not in chart_doc.finalizers
        kube.update.assert_called_once()

    def test_cluster_error_during_delete_releases_finalizer(self, handler, charts, kube, chart_doc):
        charts.get.side_effect = ApiException(status=500, reason="Internal")

        handler.delete(chart_doc)

        assert FINALIZER not in chart_doc.finalizers
        kube.update.assert_called_once()
