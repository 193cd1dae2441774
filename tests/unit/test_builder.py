"""Tests for call resolution and request binding."""

from __future__ import annotations

import dataclasses
import functools
import json

import pytest

from rest_dynamic_operator.errors import ConfigurationError, OperationNotFoundError, UnresolvedActionError
from rest_dynamic_operator.restclient import (
    Action,
    CallInfo,
    CallType,
    UnstructuredClient,
    build_request,
    resolve_call,
)
from rest_dynamic_operator.services.definitions import ResourceDescriptor


@pytest.fixture
def client(description):
    return UnstructuredClient(description)


class TestAction:
    """Test cases for action parsing."""

    def test_parse_case_insensitive(self):
        assert Action.parse("FindBy") is Action.FINDBY
        assert Action.parse(" Create ") is Action.CREATE

    def test_parse_unknown(self):
        with pytest.raises(ConfigurationError):
            Action.parse("patchall")

    def test_call_type_for_action(self):
        assert CallType.for_action(Action.FINDBY, "GET") is CallType.FIND_BY
        assert CallType.for_action(Action.LIST, "POST") is CallType.LIST
        assert CallType.for_action(Action.UPDATE, "patch") is CallType.PATCH

    def test_call_type_unsupported_method(self):
        with pytest.raises(ConfigurationError):
            CallType.for_action(Action.GET, "TRACE")


class TestResolveCall:
    """Test cases for resolve_call."""

    def test_create_resolves_body_fields(self, client, descriptor):
        info, call = resolve_call(client, descriptor, "create")

        assert info.call_type is CallType.POST
        assert info.path == "/repos"
        assert info.body_fields == {"name", "owner", "private"}
        assert info.identifier_fields == ["id"]
        assert call == client.post

    def test_get_resolves_path_params(self, client, descriptor):
        info, call = resolve_call(client, descriptor, Action.GET)

        assert info.path_params == {"id"}
        assert info.body_fields == set()
        assert call == client.get

    def test_findby_is_bound_with_method(self, client, descriptor):
        info, call = resolve_call(client, descriptor, Action.FINDBY)

        assert info.call_type is CallType.FIND_BY
        assert info.query_params == {"name", "owner"}
        assert isinstance(call, functools.partial)
        assert call.func == client.find_by
        assert call.keywords == {"method": "GET"}

    def test_first_matching_verb_wins(self, client):
        descriptor = ResourceDescriptor.from_dict(
            {
                "kind": "Repo",
                "verbsDescription": [
                    {"action": "update", "method": "PUT", "path": "/repos/{id}"},
                    {"action": "update", "method": "POST", "path": "/repos"},
                ],
            }
        )
        info, _ = resolve_call(client, descriptor, "update")
        assert info.method == "PUT"

    def test_unresolved_action(self, client, descriptor):
        with pytest.raises(UnresolvedActionError):
            resolve_call(client, descriptor, Action.LIST)

    def test_undeclared_operation(self, client):
        descriptor = ResourceDescriptor.from_dict(
            {"kind": "Repo", "verbsDescription": [{"action": "get", "method": "GET", "path": "/nowhere"}]}
        )
        with pytest.raises(OperationNotFoundError):
            resolve_call(client, descriptor, "get")

    def test_alt_field_mapping_copied(self, client):
        descriptor = ResourceDescriptor.from_dict(
            {
                "kind": "Repo",
                "verbsDescription": [
                    {"action": "get", "method": "GET", "path": "/repos/{id}", "altFieldMapping": {"repoId": "id"}}
                ],
            }
        )
        info, _ = resolve_call(client, descriptor, "get")
        assert info.alt_field_mapping == {"repoId": "id"}


class TestBuildRequest:
    """Test cases for build_request."""

    def make_info(self, **kwargs) -> CallInfo:
        defaults = dict(action=Action.UPDATE, call_type=CallType.PUT, method="PUT", path="/repos/{id}")
        defaults.update(kwargs)
        return CallInfo(**defaults)

    def test_classification(self):
        info = self.make_info(path_params={"id"}, query_params={"force"}, body_fields={"name", "private"})

        conf = build_request(info, {"id": 7.0}, {"name": "demo", "private": True, "force": True, "extra": "x"})

        assert conf.path_params == {"id": "7"}
        assert conf.query == {"force": "true"}
        assert conf.body == {"name": "demo", "private": True}

    def test_status_wins_over_spec(self):
        info = self.make_info(path_params={"id"})
        conf = build_request(info, {"id": "from-status"}, {"id": "from-spec"})
        assert conf.path_params == {"id": "from-status"}

    def test_alternate_field_names(self):
        info = self.make_info(path_params={"id"}, alt_field_mapping={"repoId": "id"})
        conf = build_request(info, {"repoId": "42"}, None)
        assert conf.path_params == {"id": "42"}

    def test_body_keeps_native_types(self):
        info = self.make_info(body_fields={"tags"})
        conf = build_request(info, None, {"tags": ["a", "b"]})
        assert conf.body == {"tags": ["a", "b"]}

    def test_nothing_declared(self):
        conf = build_request(self.make_info(), {"id": "1"}, {"name": "demo"})
        assert conf.path_params == {}
        assert conf.query == {}
        assert conf.body == {}

    def test_same_inputs_give_identical_requests(self):
        info = self.make_info(path_params={"id"}, query_params={"force"}, body_fields={"name", "tags", "private"})
        status = {"id": 7.0}
        spec = {"name": "demo", "tags": ["a", "b"], "private": False, "force": True}

        first = build_request(info, status, spec)
        second = build_request(info, status, spec)

        assert first == second
        assert json.dumps(dataclasses.asdict(first)) == json.dumps(dataclasses.asdict(second))
        assert spec == {"name": "demo", "tags": ["a", "b"], "private": False, "force": True}
