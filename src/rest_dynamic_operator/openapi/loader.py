"""Load OpenAPI 3 documents from content, files or URLs."""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import unquote, urlparse

import requests
import yaml

from ..constants import DEFAULT_REQUEST_TIMEOUT
from ..errors import LoadError
from .description import APIDescription

logger = logging.getLogger(__name__)


def _read_location(location: str, session: requests.Session | None, timeout: float) -> bytes:
    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        http = session or requests.Session()
        try:
            response = http.get(location, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(f"unable to fetch api description from {location}: {e}") from e
        return response.content
    if parsed.scheme == "file":
        path = unquote(parsed.path)
    elif not parsed.scheme or os.path.exists(location):
        path = location
    else:
        raise LoadError(f"unsupported api description location: {location}")
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise LoadError(f"unable to read api description {path}: {e}") from e


def parse_document(content: bytes | str, location: str = "") -> APIDescription:
    """Parse JSON or YAML content into a validated APIDescription.

    Raises:
        LoadError: If the content is not an OpenAPI 3 document
        ValidationError: If references are unresolved or no server is declared
    """
    try:
        document: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise LoadError(f"unable to parse api description {location}: {e}") from e

    if not isinstance(document, dict):
        raise LoadError(f"api description {location} is not a mapping")
    if not str(document.get("openapi", "")).startswith("3."):
        raise LoadError(f"api description {location} is not an OpenAPI 3 document")
    if not isinstance(document.get("paths"), dict):
        raise LoadError(f"api description {location} declares no paths")

    description = APIDescription(document, location)
    description.validate_refs()
    # Fails with ValidationError when no server is declared
    _ = description.server_url
    return description


def load_description(
    source: bytes | str,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> APIDescription:
    """Load an API description.

    Args:
        source: Raw document bytes, a local path, a file:// URL or an http(s):// URL
        session: Optional requests session used for remote documents
        timeout: Timeout in seconds for remote documents

    Returns:
        The loaded description
    """
    if isinstance(source, bytes):
        return parse_document(source)
    if "\n" in source:
        return parse_document(source)
    logger.debug(f"Loading api description from {source}")
    return parse_document(_read_location(source, session, timeout), source)
