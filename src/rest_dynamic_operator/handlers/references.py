"""Owner reference resolution for resources that point at other resources."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from ..errors import NoReferenceFoundError
from ..utils.unstructured import ResourceDocument
from .base import adopt_resource_version

if TYPE_CHECKING:
    from ..services.definitions import ReferenceInfo
    from ..services.kube import KubeClient

logger = logging.getLogger(__name__)


def _string_values(fields: dict[str, Any]) -> Iterable[str]:
    return (value for value in fields.values() if isinstance(value, str))


def _matches(candidate: ResourceDocument, wanted: str) -> bool:
    if wanted in _string_values(candidate.status_fields()):
        return True
    return wanted in _string_values(candidate.spec_fields())


def _owner_reference(owner: ResourceDocument) -> dict[str, Any]:
    return {
        "apiVersion": owner.api_version,
        "kind": owner.kind,
        "name": owner.name,
        "uid": owner.uid,
    }


def resolve_owner_references(
    kube: KubeClient,
    doc: ResourceDocument,
    references: list[ReferenceInfo],
) -> bool:
    """Adopt the owners declared by ``references`` on ``doc``.

    For each reference, every instance of the referenced kind is listed
    cluster wide and the first one whose status, then spec, holds the
    document's ``spec.<field>`` string value becomes an owner. The document
    is written once when anything changed.

    Returns:
        True when owner references were added and persisted

    Raises:
        NoReferenceFoundError: If a reference has no candidates or no match
    """
    owner_refs = doc.owner_references
    changed = False
    spec = doc.spec_fields()

    for ref in references:
        wanted = spec.get(ref.field)
        if not isinstance(wanted, str) or not wanted:
            raise NoReferenceFoundError(f"spec.{ref.field} is not set on {doc.kind} {doc.name}")

        gvr = kube.gvk_to_gvr(ref.gvk)
        candidates = kube.list(gvr)
        if not candidates:
            raise NoReferenceFoundError(f"no {ref.kind} instances found for reference spec.{ref.field}")

        owner = next((c for c in candidates if _matches(c, wanted)), None)
        if owner is None:
            raise NoReferenceFoundError(f"no {ref.kind} matches spec.{ref.field}={wanted}")

        entry = _owner_reference(owner)
        if any(existing.get("uid") == entry["uid"] for existing in owner_refs):
            continue
        owner_refs.append(entry)
        changed = True
        logger.debug(f"Adopting {ref.kind} {owner.name} as owner of {doc.kind} {doc.name}")

    if changed:
        doc.owner_references = owner_refs
        adopt_resource_version(doc, kube.update(doc))
    return changed
