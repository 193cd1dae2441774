"""Environment driven configuration for the REST Dynamic Operator."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping

from .constants import (
    DEFAULT_CREATE_DELAY,
    DEFAULT_DESCRIPTION_CACHE_TTL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESYNC_INTERVAL,
    DEFAULT_WORKERS,
)
from .errors import ConfigurationError
from .utils.unstructured import GroupVersionResource

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def env_string(name: str, default: str = "", env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    value = env.get(name, "").strip()
    return value or default


def env_int(name: str, default: int, env: Mapping[str, str] | None = None) -> int:
    raw = env_string(name, env=env)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


def env_bool(name: str, default: bool = False, env: Mapping[str, str] | None = None) -> bool:
    raw = env_string(name, env=env).lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    logger.warning(f"Invalid boolean for {name}: {raw!r}, using {default}")
    return default


def env_duration(name: str, default: float, env: Mapping[str, str] | None = None) -> float:
    """Parse a duration in seconds.

    Accepts a bare number of seconds or a number with one of the
    ``ms``, ``s``, ``m``, ``h`` suffixes.
    """
    raw = env_string(name, env=env).lower()
    if not raw:
        return default
    match = _DURATION_RE.match(raw)
    if match is None:
        logger.warning(f"Invalid duration for {name}: {raw!r}, using {default}s")
        return default
    return float(match.group(1)) * _DURATION_UNITS[match.group(2) or "s"]


@dataclass
class OperatorConfig:
    """Settings for one controller process, which watches a single resource type."""

    group: str
    version: str
    resource: str
    namespace: str = "default"
    workers: int = DEFAULT_WORKERS
    resync_interval: float = DEFAULT_RESYNC_INTERVAL
    max_retries: int = DEFAULT_MAX_RETRIES
    create_delay: float = DEFAULT_CREATE_DELAY
    debug: bool = False
    api_description: str = ""
    resource_descriptor: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    description_cache_ttl: float = DEFAULT_DESCRIPTION_CACHE_TTL
    metrics_port: int = 8080

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build the configuration from CONTROLLER_* environment variables.

        Raises:
            ConfigurationError: If the watched resource is not fully specified
        """
        config = cls(
            group=env_string("CONTROLLER_GROUP", env=env),
            # Versions arrive with underscores when they come from env-safe names
            version=env_string("CONTROLLER_VERSION", env=env).replace("_", "-"),
            resource=env_string("CONTROLLER_RESOURCE", env=env),
            namespace=env_string("CONTROLLER_NAMESPACE", "default", env=env),
            workers=max(1, env_int("CONTROLLER_WORKERS", DEFAULT_WORKERS, env=env)),
            resync_interval=env_duration("CONTROLLER_RESYNC_INTERVAL", DEFAULT_RESYNC_INTERVAL, env=env),
            max_retries=max(0, env_int("CONTROLLER_MAX_RETRIES", DEFAULT_MAX_RETRIES, env=env)),
            create_delay=env_duration("CONTROLLER_CREATE_DELAY", DEFAULT_CREATE_DELAY, env=env),
            debug=env_bool("CONTROLLER_DEBUG", False, env=env),
            api_description=env_string("CONTROLLER_API_DESCRIPTION", env=env),
            resource_descriptor=env_string("CONTROLLER_RESOURCE_DESCRIPTOR", env=env),
            request_timeout=env_duration("CONTROLLER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, env=env),
            description_cache_ttl=env_duration(
                "CONTROLLER_DESCRIPTION_CACHE_TTL", DEFAULT_DESCRIPTION_CACHE_TTL, env=env
            ),
            metrics_port=env_int("METRICS_PORT", 8080, env=env),
        )
        config.validate()
        return config

    def validate(self) -> None:
        missing = [
            name
            for name, value in (
                ("CONTROLLER_VERSION", self.version),
                ("CONTROLLER_RESOURCE", self.resource),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing required environment variables: {', '.join(missing)}")
        if bool(self.api_description) != bool(self.resource_descriptor):
            raise ConfigurationError(
                "CONTROLLER_API_DESCRIPTION and CONTROLLER_RESOURCE_DESCRIPTOR must be set together"
            )

    @property
    def static_definition(self) -> bool:
        return bool(self.api_description and self.resource_descriptor)

    @property
    def gvr(self) -> GroupVersionResource:
        return GroupVersionResource(self.group, self.version, self.resource)
