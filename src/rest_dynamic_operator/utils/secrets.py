"""Utilities for reading Kubernetes secrets."""

from __future__ import annotations

import base64
import binascii

from kubernetes import client

from ..errors import MissingFieldError


def decode_secret_value(value: str | bytes) -> str:
    """Decode a secret data value.

    The kubernetes client returns base64 strings; some versions hand out bytes.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8")
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


def get_secret_value(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    key: str,
) -> str:
    """Get a value from a Kubernetes secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret
        key: Key in the secret

    Returns:
        Secret value

    Raises:
        MissingFieldError: If secret or key not found
    """
    try:
        secret = api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status == 404:
            raise MissingFieldError("secret", f"{namespace}/{secret_name}") from e
        raise

    data = secret.data or {}
    if key not in data:
        raise MissingFieldError(key, f"secret {namespace}/{secret_name}")
    return decode_secret_value(data[key])
