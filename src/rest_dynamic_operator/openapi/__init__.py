"""OpenAPI description loading and queries."""

from .description import APIDescription
from .loader import load_description, parse_document

__all__ = ["APIDescription", "load_description", "parse_document"]
