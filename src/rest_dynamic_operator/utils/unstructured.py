"""Typed access to untyped Kubernetes resource documents."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from ..constants import ANNOTATION_LAST_APPLIED
from ..errors import FieldNotFoundError, FieldTypeError

_MISSING = object()


@dataclass(frozen=True)
class ObjectRef:
    """Stable pointer to a resource document."""

    api_version: str
    kind: str
    name: str
    namespace: str = ""

    def __str__(self) -> str:
        return f"{self.api_version}.{self.kind} as {self.name}@{self.namespace}"

    def to_dict(self) -> dict[str, str]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectRef:
        return cls(
            api_version=str(data.get("apiVersion", "")),
            kind=str(data.get("kind", "")),
            name=str(data.get("name", "")),
            namespace=str(data.get("namespace", "")),
        )


@dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


@dataclass(frozen=True)
class GroupVersionResource:
    group: str
    version: str
    resource: str


def parse_api_version(api_version: str) -> tuple[str, str]:
    """Split an apiVersion into (group, version).

    Core resources such as "v1" have an empty group.
    """
    if not api_version:
        raise ValueError("empty apiVersion")
    parts = api_version.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected apiVersion: {api_version!r}")


def pluralize(word: str) -> str:
    """Lowercased English plural of a kind name, as used for resource names."""
    lower = word.lower()
    if not lower:
        return lower
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return lower + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return lower[:-1] + "ies"
    return lower + "s"


def guess_gvr(gvk: GroupVersionKind) -> GroupVersionResource:
    """Compute resource coordinates from kind coordinates without discovery."""
    return GroupVersionResource(gvk.group, gvk.version, pluralize(gvk.kind))


def generic_to_string(value: Any) -> str:
    """Convert a scalar field value to its request parameter form.

    Floats are truncated to their integer form because JSON decoding turns
    every number into a float. Unsupported types give an empty string.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value))
    return ""


class ResourceDocument:
    """An untyped resource tree with fail-closed accessors."""

    def __init__(self, obj: dict[str, Any] | None = None) -> None:
        self.object: dict[str, Any] = obj if obj is not None else {}
        # Survives strip_transient_metadata so events still link to the object
        self.origin_uid = ""

    def __repr__(self) -> str:
        return f"ResourceDocument({self.api_version!r}, {self.kind!r}, {self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceDocument):
            return NotImplemented
        return self.object == other.object

    def deepcopy(self) -> ResourceDocument:
        doc = ResourceDocument(copy.deepcopy(self.object))
        doc.origin_uid = self.origin_uid
        return doc

    def to_dict(self) -> dict[str, Any]:
        return self.object

    # Nested access

    def _lookup(self, path: tuple[str, ...]) -> Any:
        current: Any = self.object
        for idx, key in enumerate(path):
            if not isinstance(current, dict):
                raise FieldTypeError(path[:idx], "map", current)
            current = current.get(key, _MISSING)
            if current is _MISSING:
                raise FieldNotFoundError(path)
        return current

    def has_field(self, *path: str) -> bool:
        try:
            self._lookup(path)
        except (FieldNotFoundError, FieldTypeError):
            return False
        return True

    def get_field(self, *path: str) -> Any:
        return self._lookup(path)

    def get_string(self, *path: str) -> str:
        value = self._lookup(path)
        if not isinstance(value, str):
            raise FieldTypeError(path, "string", value)
        return value

    def get_map(self, *path: str) -> dict[str, Any]:
        value = self._lookup(path)
        if not isinstance(value, dict):
            raise FieldTypeError(path, "map", value)
        return value

    def get_list(self, *path: str) -> list[Any]:
        value = self._lookup(path)
        if not isinstance(value, list):
            raise FieldTypeError(path, "list", value)
        return value

    def set_field(self, *path_and_value: Any) -> None:
        """Set a nested field, creating intermediate maps.

        Usage: ``doc.set_field("status", "id", "42")``.
        """
        if len(path_and_value) < 2:
            raise ValueError("set_field needs a path and a value")
        *path, value = path_and_value
        current = self.object
        for idx, key in enumerate(path[:-1]):
            nxt = current.get(key, _MISSING)
            if nxt is _MISSING:
                nxt = {}
                current[key] = nxt
            elif not isinstance(nxt, dict):
                raise FieldTypeError(tuple(path[: idx + 1]), "map", nxt)
            current = nxt
        current[path[-1]] = value

    def remove_field(self, *path: str) -> None:
        current: Any = self.object
        for key in path[:-1]:
            current = current.get(key) if isinstance(current, dict) else None
            if current is None:
                return
        if isinstance(current, dict):
            current.pop(path[-1], None)

    def _optional_string(self, *path: str) -> str:
        try:
            return self.get_string(*path)
        except (FieldNotFoundError, FieldTypeError):
            return ""

    # Well known fields

    @property
    def api_version(self) -> str:
        return self._optional_string("apiVersion")

    @property
    def kind(self) -> str:
        return self._optional_string("kind")

    @property
    def name(self) -> str:
        return self._optional_string("metadata", "name")

    @property
    def namespace(self) -> str:
        return self._optional_string("metadata", "namespace")

    @property
    def uid(self) -> str:
        return self._optional_string("metadata", "uid")

    @property
    def generation(self) -> int | None:
        value = self.object.get("metadata", {}).get("generation")
        return value if isinstance(value, int) else None

    @property
    def deletion_timestamp(self) -> str | None:
        return self.object.get("metadata", {}).get("deletionTimestamp")

    @property
    def annotations(self) -> dict[str, str]:
        return self.object.get("metadata", {}).get("annotations") or {}

    @property
    def finalizers(self) -> list[str]:
        return list(self.object.get("metadata", {}).get("finalizers") or [])

    @finalizers.setter
    def finalizers(self, value: list[str]) -> None:
        self.set_field("metadata", "finalizers", list(value))

    @property
    def owner_references(self) -> list[dict[str, Any]]:
        return list(self.object.get("metadata", {}).get("ownerReferences") or [])

    @owner_references.setter
    def owner_references(self, value: list[dict[str, Any]]) -> None:
        self.set_field("metadata", "ownerReferences", list(value))

    def group_version_kind(self) -> GroupVersionKind:
        group, version = parse_api_version(self.api_version)
        return GroupVersionKind(group, version, self.kind)

    def ref(self) -> ObjectRef:
        return ObjectRef(self.api_version, self.kind, self.name, self.namespace)

    def spec_fields(self) -> dict[str, Any]:
        """Shallow copy of spec; empty when absent."""
        return self._top_level_fields("spec")

    def status_fields(self) -> dict[str, Any]:
        """Shallow copy of status; empty when absent."""
        return self._top_level_fields("status")

    def _top_level_fields(self, field: str) -> dict[str, Any]:
        try:
            return dict(self.get_map(field))
        except FieldNotFoundError:
            return {}

    def strip_transient_metadata(self) -> None:
        """Drop metadata that must not leak into handler decisions."""
        self.remove_field("metadata", "annotations", ANNOTATION_LAST_APPLIED)
        self.remove_field("metadata", "creationTimestamp")
        self.remove_field("metadata", "generation")
        self.origin_uid = self.uid or self.origin_uid
        self.remove_field("metadata", "uid")
