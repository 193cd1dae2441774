"""Tests for Kubernetes event recording."""

from __future__ import annotations

from unittest.mock import MagicMock

from kubernetes import client

from rest_dynamic_operator.constants import (
    EVENT_REASON_DRIFT_DETECTED,
    EVENT_REASON_RECONCILE_FAILED,
)
from rest_dynamic_operator.services.events import EventRecorder
from rest_dynamic_operator.utils.unstructured import ResourceDocument


def make_doc() -> ResourceDocument:
    return ResourceDocument(
        {
            "apiVersion": "sample.example.org/v1alpha1",
            "kind": "Repo",
            "metadata": {"name": "demo", "namespace": "team-a", "uid": "u-1"},
        }
    )


class TestEventRecorder:
    """Test cases for EventRecorder."""

    def test_emit_creates_event(self):
        """Test that events reference the involved object."""
        core = MagicMock()
        recorder = EventRecorder(core)

        recorder.created(make_doc())

        kwargs = core.create_namespaced_event.call_args.kwargs
        assert kwargs["namespace"] == "team-a"
        body = kwargs["body"]
        assert body.involved_object.kind == "Repo"
        assert body.involved_object.name == "demo"
        assert body.type == "Normal"

    def test_failure_is_warning_and_sanitized(self):
        core = MagicMock()
        recorder = EventRecorder(core)

        recorder.reconcile_failed(make_doc(), "call failed with Authorization: Bearer s3cr3t")

        body = core.create_namespaced_event.call_args.kwargs["body"]
        assert body.reason == EVENT_REASON_RECONCILE_FAILED
        assert body.type == "Warning"
        assert "s3cr3t" not in body.message

    def test_drift_lists_fields(self):
        core = MagicMock()
        EventRecorder(core).drift_detected(make_doc(), ["name", "private"])

        body = core.create_namespaced_event.call_args.kwargs["body"]
        assert body.reason == EVENT_REASON_DRIFT_DETECTED
        assert "name, private" in body.message

    def test_api_errors_are_not_raised(self):
        """Test that event posting is best effort."""
        core = MagicMock()
        core.create_namespaced_event.side_effect = client.exceptions.ApiException(status=403)

        EventRecorder(core).deleted(make_doc())

    def test_no_api_is_noop(self):
        EventRecorder(None).updated(make_doc())

    def test_uid_kept_after_metadata_stripped(self):
        core = MagicMock()
        doc = make_doc()
        doc.strip_transient_metadata()

        EventRecorder(core).updated(doc)

        assert core.create_namespaced_event.call_args.kwargs["body"].involved_object.uid == "u-1"
