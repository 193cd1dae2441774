"""Thin wrapper around the Kubernetes API used by handlers and the controller."""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

from kubernetes import client
from kubernetes.dynamic import DynamicClient

from .. import metrics
from ..constants import FIELD_MANAGER
from ..utils.secrets import get_secret_value
from ..utils.unstructured import (
    GroupVersionKind,
    GroupVersionResource,
    ResourceDocument,
)

_T = TypeVar("_T")


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class KubeClient:
    """Resource access by group/version/resource coordinates."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        dynamic_client: DynamicClient | None = None,
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        self.custom_api = custom_api
        self.dynamic_client = dynamic_client
        self.core_api = core_api

    @classmethod
    def from_config(cls) -> KubeClient:
        load_kube_config()
        api_client = client.ApiClient()
        return cls(
            client.CustomObjectsApi(api_client),
            DynamicClient(api_client),
            client.CoreV1Api(api_client),
        )

    def _call(self, operation: str, fn: Callable[[], _T]) -> _T:
        start_time = time.time()
        try:
            result = fn()
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except Exception:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def gvk_to_gvr(self, gvk: GroupVersionKind) -> GroupVersionResource:
        """Map kind coordinates to resource coordinates through discovery.

        Discovery is queried on every call so newly installed kinds resolve.
        """
        if self.dynamic_client is None:
            raise RuntimeError("discovery requires a dynamic client")
        resource = self._call(
            "discover",
            lambda: self.dynamic_client.resources.get(api_version=gvk.api_version, kind=gvk.kind),
        )
        return GroupVersionResource(gvk.group, gvk.version, resource.name)

    def get(self, gvr: GroupVersionResource, namespace: str, name: str) -> ResourceDocument:
        if not gvr.group:
            return self._get_core(gvr, namespace, name)
        if namespace:
            obj = self._call(
                "get",
                lambda: self.custom_api.get_namespaced_custom_object(
                    group=gvr.group,
                    version=gvr.version,
                    namespace=namespace,
                    plural=gvr.resource,
                    name=name,
                ),
            )
        else:
            obj = self._call(
                "get",
                lambda: self.custom_api.get_cluster_custom_object(
                    group=gvr.group,
                    version=gvr.version,
                    plural=gvr.resource,
                    name=name,
                ),
            )
        return ResourceDocument(obj)

    def _get_core(self, gvr: GroupVersionResource, namespace: str, name: str) -> ResourceDocument:
        # Core group objects are only reachable through the dynamic client
        if self.dynamic_client is None:
            raise RuntimeError("core resources require a dynamic client")
        resource = self.dynamic_client.resources.get(api_version=gvr.version, name=gvr.resource)
        obj = self._call("get", lambda: resource.get(name=name, namespace=namespace or None))
        return ResourceDocument(obj.to_dict())

    def list(self, gvr: GroupVersionResource, namespace: str | None = None) -> list[ResourceDocument]:
        """List resources in a namespace, or cluster wide when namespace is None."""
        if namespace:
            result = self._call(
                "list",
                lambda: self.custom_api.list_namespaced_custom_object(
                    group=gvr.group,
                    version=gvr.version,
                    namespace=namespace,
                    plural=gvr.resource,
                ),
            )
        else:
            result = self._call(
                "list",
                lambda: self.custom_api.list_cluster_custom_object(
                    group=gvr.group,
                    version=gvr.version,
                    plural=gvr.resource,
                ),
            )
        items: list[dict[str, Any]] = result.get("items") or []
        api_version = f"{gvr.group}/{gvr.version}" if gvr.group else gvr.version
        # List items omit apiVersion and kind; restore them from the list
        kind = str(result.get("kind", "")).removesuffix("List")
        docs = []
        for item in items:
            item.setdefault("apiVersion", api_version)
            if kind:
                item.setdefault("kind", kind)
            docs.append(ResourceDocument(item))
        return docs

    def _plural(self, doc: ResourceDocument) -> str:
        return self.gvk_to_gvr(doc.group_version_kind()).resource

    def update(self, doc: ResourceDocument) -> ResourceDocument:
        """Replace the resource, used for metadata changes such as finalizers."""
        gvk = doc.group_version_kind()
        plural = self._plural(doc)
        obj = self._call(
            "update",
            lambda: self.custom_api.replace_namespaced_custom_object(
                group=gvk.group,
                version=gvk.version,
                namespace=doc.namespace,
                plural=plural,
                name=doc.name,
                body=doc.object,
                field_manager=FIELD_MANAGER,
            ),
        )
        return ResourceDocument(obj)

    def update_status(self, doc: ResourceDocument) -> ResourceDocument:
        gvk = doc.group_version_kind()
        plural = self._plural(doc)
        obj = self._call(
            "update_status",
            lambda: self.custom_api.replace_namespaced_custom_object_status(
                group=gvk.group,
                version=gvk.version,
                namespace=doc.namespace,
                plural=plural,
                name=doc.name,
                body=doc.object,
                field_manager=FIELD_MANAGER,
            ),
        )
        return ResourceDocument(obj)

    def read_secret(self, namespace: str, name: str, key: str) -> str:
        if self.core_api is None:
            raise RuntimeError("reading secrets requires a core api client")
        return self._call("read_secret", lambda: get_secret_value(self.core_api, namespace, name, key))
