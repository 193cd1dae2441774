"""Redaction of credentials from messages and payloads before they leave the process.

Backend errors often echo the request: an Authorization header, a URL
with userinfo or an API key in the query string, or a JSON body holding a
password. Everything written to logs, Kubernetes events and status
conditions passes through here.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

CREDENTIAL_KEYS = ("password", "secret", "token", "credential", "apikey", "api_key", "authorization")

_HEADER = re.compile(r"(authorization[\"']?\s*[:=]\s*[\"']?)(basic|bearer)\s+[^\s,;\)\"']+", re.IGNORECASE)
_USERINFO = re.compile(r"(https?://)[^\s/:@]+:[^\s/@]+@", re.IGNORECASE)
_QUERY = re.compile(rf"([?&](?:{'|'.join(CREDENTIAL_KEYS)})=)[^&\s#]+", re.IGNORECASE)
_ASSIGNMENT = re.compile(
    rf"(\"?(?:{'|'.join(CREDENTIAL_KEYS)})\"?\s*[:=]\s*)(\"[^\"]*\"|[^\s,;\)\}}]+)",
    re.IGNORECASE,
)


def is_credential_key(key: str) -> bool:
    lowered = key.lower().replace("-", "_")
    return any(name in lowered for name in CREDENTIAL_KEYS)


def redact_text(message: str) -> str:
    """Mask credentials embedded in free text."""
    message = _HEADER.sub(rf"\1\2 {REDACTED}", message)
    message = _USERINFO.sub(rf"\1{REDACTED}@", message)
    message = _QUERY.sub(rf"\1{REDACTED}", message)
    return _ASSIGNMENT.sub(rf"\1{REDACTED}", message)


def sanitize_exception(error: BaseException) -> str:
    return redact_text(str(error))


def redact_mapping(data: Any) -> Any:
    """Copy of a decoded JSON value with credential-named keys masked.

    Lists and nested maps are walked; strings are passed through redact_text.
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if isinstance(key, str) and is_credential_key(key) else redact_mapping(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_mapping(item) for item in data]
    if isinstance(data, str):
        return redact_text(data)
    return data
