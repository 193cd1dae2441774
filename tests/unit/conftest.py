"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import json
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest
import requests

from rest_dynamic_operator.openapi import parse_document
from rest_dynamic_operator.services.definitions import ClientInfo, ResourceDescriptor
from rest_dynamic_operator.utils.unstructured import ResourceDocument

SAMPLE_API = """
openapi: 3.0.1
info:
  title: Repos
  version: "1.0"
servers:
  - url: https://api.example.org/v1/
paths:
  /repos:
    get:
      parameters:
        - name: name
          in: query
          schema: {type: string}
        - name: owner
          in: query
          required: true
          schema: {type: string}
      responses:
        "200":
          description: ok
    post:
      requestBody:
        content:
          application/json:
            schema:
              $ref: "#/components/schemas/RepoBody"
      responses:
        "201":
          description: created
        default:
          description: error
  /repos/{id}:
    parameters:
      - name: id
        in: path
        required: true
        schema: {type: string}
    get:
      responses:
        "200":
          description: ok
    put:
      requestBody:
        $ref: "#/components/requestBodies/RepoUpdate"
      responses:
        "200":
          description: ok
        "204":
          description: no content
    delete:
      responses:
        "204":
          description: deleted
  /health:
    get:
      responses:
        default:
          description: anything
components:
  schemas:
    RepoBase:
      type: object
      properties:
        name: {type: string}
        private: {type: boolean}
    RepoBody:
      allOf:
        - $ref: "#/components/schemas/RepoBase"
        - type: object
          properties:
            owner: {type: string}
  requestBodies:
    RepoUpdate:
      content:
        application/json:
          schema:
            $ref: "#/components/schemas/RepoBase"
"""

SAMPLE_DESCRIPTOR: dict[str, Any] = {
    "kind": "Repo",
    "identifiers": ["id"],
    "verbsDescription": [
        {"action": "create", "method": "POST", "path": "/repos"},
        {"action": "get", "method": "GET", "path": "/repos/{id}"},
        {"action": "update", "method": "PUT", "path": "/repos/{id}"},
        {"action": "delete", "method": "DELETE", "path": "/repos/{id}"},
        {"action": "findby", "method": "GET", "path": "/repos"},
    ],
}


@pytest.fixture
def description():
    return parse_document(SAMPLE_API, "https://api.example.org/openapi.yaml")


@pytest.fixture
def descriptor():
    return ResourceDescriptor.from_dict(SAMPLE_DESCRIPTOR)


@pytest.fixture
def client_info(descriptor):
    return ClientInfo(url="https://api.example.org/openapi.yaml", resource=descriptor)


@pytest.fixture
def repo_doc() -> ResourceDocument:
    return ResourceDocument(
        {
            "apiVersion": "sample.example.org/v1alpha1",
            "kind": "Repo",
            "metadata": {
                "name": "demo",
                "namespace": "default",
                "resourceVersion": "10",
                "finalizers": [],
            },
            "spec": {"name": "demo", "owner": "acme", "private": False},
        }
    )


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Factory for real requests.Response objects with a JSON body."""

    def factory(status: int, body: Any = None, url: str = "https://api.example.org/v1/repos") -> requests.Response:
        response = requests.Response()
        response.status_code = status
        if isinstance(body, (bytes, str)):
            response._content = body.encode() if isinstance(body, str) else body
        else:
            response._content = b"" if body is None else json.dumps(body).encode()
        response.headers["Content-Type"] = "application/json"
        response.url = url
        return response

    return factory


@pytest.fixture
def kube():
    """KubeClient double whose writes echo the document back."""
    mock = MagicMock()
    mock.update.side_effect = lambda doc: doc.deepcopy()
    mock.update_status.side_effect = lambda doc: doc.deepcopy()
    return mock


@pytest.fixture
def sample_api() -> str:
    return SAMPLE_API


@pytest.fixture
def sample_descriptor() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_DESCRIPTOR)
