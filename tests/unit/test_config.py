"""Tests for environment driven configuration."""

from __future__ import annotations

import pytest

from rest_dynamic_operator.config import (
    OperatorConfig,
    env_bool,
    env_duration,
    env_int,
)
from rest_dynamic_operator.constants import DEFAULT_MAX_RETRIES, DEFAULT_RESYNC_INTERVAL
from rest_dynamic_operator.errors import ConfigurationError
from rest_dynamic_operator.utils.unstructured import GroupVersionResource

BASE_ENV = {
    "CONTROLLER_GROUP": "sample.example.org",
    "CONTROLLER_VERSION": "v1alpha1",
    "CONTROLLER_RESOURCE": "repos",
}


class TestEnvHelpers:
    """Test cases for environment parsing helpers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("10", 10.0), ("250ms", 0.25), ("3s", 3.0), ("2m", 120.0), ("1h", 3600.0), ("1.5s", 1.5)],
    )
    def test_env_duration(self, raw, expected):
        assert env_duration("D", 5.0, env={"D": raw}) == expected

    def test_env_duration_invalid_uses_default(self):
        assert env_duration("D", 5.0, env={"D": "soon"}) == 5.0

    def test_env_int_invalid_uses_default(self):
        assert env_int("N", 3, env={"N": "three"}) == 3

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("off", False), ("", False)])
    def test_env_bool(self, raw, expected):
        assert env_bool("B", False, env={"B": raw}) is expected


class TestOperatorConfig:
    """Test cases for OperatorConfig.from_env."""

    def test_defaults(self):
        config = OperatorConfig.from_env(BASE_ENV)

        assert config.namespace == "default"
        assert config.workers == 1
        assert config.max_retries == DEFAULT_MAX_RETRIES
        assert config.resync_interval == DEFAULT_RESYNC_INTERVAL
        assert config.static_definition is False
        assert config.gvr == GroupVersionResource("sample.example.org", "v1alpha1", "repos")

    def test_overrides(self):
        env = dict(
            BASE_ENV,
            CONTROLLER_NAMESPACE="team-a",
            CONTROLLER_WORKERS="4",
            CONTROLLER_RESYNC_INTERVAL="1m",
            CONTROLLER_MAX_RETRIES="2",
            CONTROLLER_DEBUG="true",
        )
        config = OperatorConfig.from_env(env)

        assert config.namespace == "team-a"
        assert config.workers == 4
        assert config.resync_interval == 60.0
        assert config.max_retries == 2
        assert config.debug is True

    def test_version_underscores_become_dashes(self):
        config = OperatorConfig.from_env(dict(BASE_ENV, CONTROLLER_VERSION="v1_0_0"))
        assert config.version == "v1-0-0"

    def test_workers_at_least_one(self):
        assert OperatorConfig.from_env(dict(BASE_ENV, CONTROLLER_WORKERS="0")).workers == 1

    def test_missing_resource_fails(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OperatorConfig.from_env({"CONTROLLER_VERSION": "v1"})
        assert "CONTROLLER_RESOURCE" in str(exc_info.value)

    def test_static_definition_needs_both_files(self):
        with pytest.raises(ConfigurationError):
            OperatorConfig.from_env(dict(BASE_ENV, CONTROLLER_API_DESCRIPTION="/tmp/openapi.yaml"))

    def test_static_definition(self):
        config = OperatorConfig.from_env(
            dict(
                BASE_ENV,
                CONTROLLER_API_DESCRIPTION="/tmp/openapi.yaml",
                CONTROLLER_RESOURCE_DESCRIPTOR="/tmp/descriptor.yaml",
            )
        )
        assert config.static_definition is True
