"""Structured logging configuration for the REST Dynamic Operator."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .utils.context import scope_fields
from .utils.errors import redact_mapping

# Client libraries log every request at DEBUG, which drowns the reconcile log
NOISY_LOGGERS = ("urllib3", "kubernetes.client.rest", "kopf.objects")


def setup_structured_logging(debug: bool = False) -> None:
    """Send JSON lines to stdout, at DEBUG when debug is set."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    level: int,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    event: str,
    reason: str,
    message: str,
    **kwargs: Any,
) -> None:
    """Log one reconcile step of a resource as a JSON line.

    The active event scope (correlation id, event type, resource) is merged
    in, and credential-named fields are masked at any depth.
    """
    if not logger.isEnabledFor(level):
        return
    record = {
        "controller": controller,
        "kind": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "event": event,
        "reason": reason,
        "message": message,
    }
    record.update(scope_fields(kwargs))
    logger.log(level, json.dumps(redact_mapping(record), default=str))
