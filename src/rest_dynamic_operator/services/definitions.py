"""Resource definitions: how a managed kind maps onto a REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import yaml
from requests.auth import AuthBase

from ..constants import ANNOTATION_VERBOSE, API_GROUP, API_VERSION, DEFINITION_PLURAL
from ..errors import (
    ConfigurationError,
    DefinitionNotFoundError,
    FieldNotFoundError,
    FieldTypeError,
    MissingFieldError,
    NoReferenceFoundError,
)
from ..utils.unstructured import GroupVersionKind, GroupVersionResource, ResourceDocument

if TYPE_CHECKING:
    from .auth import AuthResolver
    from .kube import KubeClient

logger = logging.getLogger(__name__)

DEFINITIONS_GVR = GroupVersionResource(API_GROUP, API_VERSION, DEFINITION_PLURAL)


@dataclass(frozen=True)
class VerbDescription:
    action: str
    method: str
    path: str
    alt_field_mapping: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VerbDescription:
        try:
            return cls(
                action=str(data["action"]),
                method=str(data["method"]),
                path=str(data["path"]),
                alt_field_mapping={str(k): str(v) for k, v in (data.get("altFieldMapping") or {}).items()},
            )
        except KeyError as e:
            raise MissingFieldError(str(e.args[0]), "verbsDescription") from e


@dataclass(frozen=True)
class ReferenceInfo:
    """Declares that ``spec.<field>`` identifies an owner of kind ``group/version/kind``."""

    field: str
    group: str
    version: str
    kind: str

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, self.kind)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceInfo:
        gvk = data.get("groupVersionKind") or {}
        return cls(
            field=str(data.get("field", "")),
            group=str(gvk.get("group", "")),
            version=str(gvk.get("version", "")),
            kind=str(gvk.get("kind", "")),
        )


@dataclass
class ResourceDescriptor:
    kind: str
    identifiers: list[str] = field(default_factory=list)
    verbs_description: list[VerbDescription] = field(default_factory=list)
    compare_list: list[str] = field(default_factory=list)
    owner_refs: list[ReferenceInfo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceDescriptor:
        if not isinstance(data, dict) or not data.get("kind"):
            raise MissingFieldError("kind", "resource descriptor")
        return cls(
            kind=str(data["kind"]),
            identifiers=[str(i) for i in data.get("identifiers") or []],
            verbs_description=[VerbDescription.from_dict(v) for v in data.get("verbsDescription") or []],
            compare_list=[str(c) for c in data.get("compareList") or []],
            owner_refs=[ReferenceInfo.from_dict(r) for r in data.get("ownerRefs") or []],
        )


@dataclass
class ClientInfo:
    """Everything a handler needs to talk to the backend for one resource."""

    url: str
    resource: ResourceDescriptor
    auth: AuthBase | None = None
    owner_references: list[ReferenceInfo] = field(default_factory=list)
    verbose: bool = False


def is_verbose(doc: ResourceDocument) -> bool:
    return doc.annotations.get(ANNOTATION_VERBOSE, "").lower() == "true"


class DefinitionGetter(Protocol):
    def get(self, doc: ResourceDocument) -> ClientInfo:
        """Return the client info for a resource document."""
        ...


class StaticDefinitionGetter:
    """Serves one configured API description and descriptor file."""

    def __init__(
        self,
        url: str,
        descriptor_path: str,
        auth_resolver: AuthResolver | None = None,
    ) -> None:
        self.url = url
        self.descriptor_path = descriptor_path
        self.auth_resolver = auth_resolver
        self._descriptor: ResourceDescriptor | None = None

    @property
    def descriptor(self) -> ResourceDescriptor:
        if self._descriptor is None:
            try:
                with open(self.descriptor_path, "rb") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"unable to read resource descriptor {self.descriptor_path}: {e}") from e
            self._descriptor = ResourceDescriptor.from_dict(data)
        return self._descriptor

    def get(self, doc: ResourceDocument) -> ClientInfo:
        descriptor = self.descriptor
        if descriptor.kind != doc.kind:
            raise DefinitionNotFoundError(f"resource descriptor describes {descriptor.kind}, not {doc.kind}")
        auth = self.auth_resolver.resolve(doc) if self.auth_resolver else None
        return ClientInfo(
            url=self.url,
            resource=descriptor,
            auth=auth,
            owner_references=list(descriptor.owner_refs),
            verbose=is_verbose(doc),
        )


class DynamicDefinitionGetter:
    """Looks up Definition resources in the namespace of the reconciled document."""

    def __init__(self, kube: KubeClient, auth_resolver: AuthResolver) -> None:
        self.kube = kube
        self.auth_resolver = auth_resolver

    def get(self, doc: ResourceDocument) -> ClientInfo:
        """Find the single definition for the document's group and kind.

        Raises:
            DefinitionNotFoundError: If no definition matches
            NoReferenceFoundError: If more than one definition matches
            MissingFieldError: If the matching definition is incomplete
        """
        group = doc.group_version_kind().group
        matches = [
            definition
            for definition in self.kube.list(DEFINITIONS_GVR, doc.namespace or None)
            if self._describes(definition, group, doc.kind)
        ]
        if not matches:
            raise DefinitionNotFoundError(
                f"no definition found for {group}/{doc.kind} in namespace {doc.namespace}"
            )
        if len(matches) > 1:
            names = ", ".join(sorted(m.name for m in matches))
            raise NoReferenceFoundError(f"ambiguous definitions for {group}/{doc.kind}: {names}")

        definition = matches[0]
        try:
            url = definition.get_string("spec", "swaggerPath")
            resource = definition.get_map("spec", "resource")
        except (FieldNotFoundError, FieldTypeError) as e:
            raise MissingFieldError(str(e), f"definition {definition.name}") from e

        descriptor = ResourceDescriptor.from_dict(resource)
        return ClientInfo(
            url=url,
            resource=descriptor,
            auth=self.auth_resolver.resolve(doc),
            owner_references=list(descriptor.owner_refs),
            verbose=is_verbose(doc),
        )

    @staticmethod
    def _describes(definition: ResourceDocument, group: str, kind: str) -> bool:
        spec = definition.spec_fields()
        resource = spec.get("resource")
        if not isinstance(resource, dict):
            return False
        return spec.get("resourceGroup") == group and resource.get("kind") == kind
