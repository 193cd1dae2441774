"""Resolve backend credentials referenced from a resource document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from requests.auth import AuthBase

from ..constants import AUTH_REFS_FIELD, AUTH_TYPE_BASIC, AUTH_TYPE_BEARER, AUTH_VERSION
from ..errors import ConfigurationError, MissingFieldError
from ..restclient.auth import BasicAuth, BearerAuth
from ..utils.unstructured import GroupVersionResource, ResourceDocument, pluralize

if TYPE_CHECKING:
    from .kube import KubeClient

logger = logging.getLogger(__name__)

AUTH_REF_SUFFIX = "AuthRef"


def auth_type_from_key(key: str) -> str:
    """Map ``basicAuthRef`` to ``basic`` and ``bearerAuthRef`` to ``bearer``.

    Raises:
        ConfigurationError: If the key names an unknown authentication type
    """
    auth_type = key.split(AUTH_REF_SUFFIX)[0].lower()
    if auth_type not in (AUTH_TYPE_BASIC, AUTH_TYPE_BEARER):
        raise ConfigurationError(f"unknown auth type: {auth_type or key}")
    return auth_type


class AuthResolver:
    """Reads ``spec.authenticationRefs`` and loads the referenced credentials."""

    def __init__(self, kube: KubeClient) -> None:
        self.kube = kube

    def resolve(self, doc: ResourceDocument) -> AuthBase | None:
        """Return the request auth for the document, None when it references none.

        The first populated reference wins.
        """
        refs = doc.spec_fields().get(AUTH_REFS_FIELD)
        if not isinstance(refs, dict):
            return None

        for key, name in refs.items():
            if not isinstance(name, str) or not name:
                continue
            auth_type = auth_type_from_key(key)
            auth_doc = self._fetch(doc, auth_type, name)
            return self._parse(auth_doc, auth_type)
        return None

    def _fetch(self, doc: ResourceDocument, auth_type: str, name: str) -> ResourceDocument:
        gvr = GroupVersionResource(
            group=doc.group_version_kind().group,
            version=AUTH_VERSION,
            resource=pluralize(f"{auth_type}auth"),
        )
        return self.kube.get(gvr, doc.namespace, name)

    def _secret_or_field(self, auth_doc: ResourceDocument, field: str, ref_field: str) -> str:
        spec = auth_doc.spec_fields()
        value = spec.get(field)
        if isinstance(value, str) and value:
            return value
        ref: Any = spec.get(ref_field)
        if isinstance(ref, dict) and ref.get("name") and ref.get("key"):
            return self.kube.read_secret(
                str(ref.get("namespace") or auth_doc.namespace),
                str(ref["name"]),
                str(ref["key"]),
            )
        raise MissingFieldError(f"spec.{field}", f"{auth_doc.kind} {auth_doc.name}")

    def _parse(self, auth_doc: ResourceDocument, auth_type: str) -> AuthBase:
        if auth_type == AUTH_TYPE_BASIC:
            username = auth_doc.spec_fields().get("username")
            if not isinstance(username, str) or not username:
                raise MissingFieldError("spec.username", f"{auth_doc.kind} {auth_doc.name}")
            password = self._secret_or_field(auth_doc, "password", "passwordRef")
            return BasicAuth(username, password)
        token = self._secret_or_field(auth_doc, "token", "tokenRef")
        return BearerAuth(token)
