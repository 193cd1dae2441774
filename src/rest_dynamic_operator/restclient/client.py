"""HTTP client driven by an OpenAPI description."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

import requests
from requests.auth import AuthBase

from .. import metrics
from ..constants import DEFAULT_REQUEST_TIMEOUT
from ..errors import APIError, NoSuccessCodeError, NotFoundError, TransportError
from ..openapi.description import APIDescription
from ..tracing import add_span_attribute, trace_span
from ..utils.errors import redact_mapping, redact_text
from .actions import BODY_METHODS, CallType
from .builder import CallInfo, RequestConfiguration

logger = logging.getLogger(__name__)


def _first_array(payload: Any) -> list[Any]:
    """Items of a list response.

    Either the payload itself is an array or the first array-valued field
    of the payload object holds the items.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for value in payload.values():
            if isinstance(value, list):
                return value
    return []


class UnstructuredClient:
    """Performs backend calls described by an APIDescription.

    Responses are plain decoded JSON; nothing is typed beyond that.
    """

    def __init__(
        self,
        description: APIDescription,
        auth: AuthBase | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        verbose: bool = False,
        base_url: str | None = None,
    ) -> None:
        self.description = description
        self.auth = auth
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verbose = verbose
        self.base_url = (base_url or description.server_url).rstrip("/")

    def build_url(self, path: str, path_params: dict[str, str]) -> str:
        for name, value in path_params.items():
            path = path.replace(f"{{{name}}}", quote(value, safe=""))
        return f"{self.base_url}{path}"

    def request(self, method: str, path: str, conf: RequestConfiguration) -> Any:
        """Validate, send and decode one call.

        Raises:
            ValidationError: If a required parameter is missing
            NotFoundError: If the backend answers 404
            APIError: If the backend answers with a structured error body
            TransportError: For any other failure
        """
        method = method.upper()
        self.description.validate_request(method, path, conf.path_params, conf.query)
        success_codes = self.description.success_status_codes(method, path)
        if not success_codes:
            raise NoSuccessCodeError(method, path)

        url = self.build_url(path, conf.path_params)
        kwargs: dict[str, Any] = {"params": conf.query or None, "timeout": self.timeout, "auth": self.auth}
        if method in BODY_METHODS:
            kwargs["json"] = conf.body

        operation = f"{method} {path}"
        start_time = time.time()
        try:
            with trace_span(
                f"backend.{method.lower()}",
                attributes={"http.method": method, "http.route": path, "http.url": redact_text(url)},
            ):
                response = self.session.request(method, url, **kwargs)
                add_span_attribute("http.status_code", response.status_code)
        except requests.RequestException as e:
            metrics.api_call_total.labels(api_type="rest", operation=operation, result="error").inc()
            raise TransportError(f"{operation} failed: {e}") from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="rest", operation=operation).observe(duration)

        if self.verbose:
            body = redact_mapping(kwargs.get("json"))
            logger.info(
                f"{method} {redact_text(response.url or url)} -> {response.status_code} "
                f"request={body} response={redact_text(response.text)}"
            )

        if response.status_code in success_codes:
            metrics.api_call_total.labels(api_type="rest", operation=operation, result="success").inc()
            return self._decode(response)

        metrics.api_call_total.labels(api_type="rest", operation=operation, result="error").inc()
        if response.status_code == 404:
            raise NotFoundError(f"{operation}: not found")
        try:
            error_body = response.json()
        except ValueError:
            error_body = None
        api_error = APIError.from_body(response.status_code, error_body)
        if api_error is not None:
            raise api_error
        raise TransportError(
            f"{operation}: unexpected status {response.status_code}: {response.text}",
            response.status_code,
        )

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content or not response.content.strip():
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"undecodable response body: {e}", response.status_code) from e

    def get(self, path: str, conf: RequestConfiguration) -> Any:
        return self.request("GET", path, conf)

    def post(self, path: str, conf: RequestConfiguration) -> Any:
        return self.request("POST", path, conf)

    def put(self, path: str, conf: RequestConfiguration) -> Any:
        return self.request("PUT", path, conf)

    def patch(self, path: str, conf: RequestConfiguration) -> Any:
        return self.request("PATCH", path, conf)

    def delete(self, path: str, conf: RequestConfiguration) -> Any:
        return self.request("DELETE", path, conf)

    def list(self, path: str, conf: RequestConfiguration, method: str = "GET") -> Any:
        return self.request(method, path, conf)

    def find_by(self, path: str, conf: RequestConfiguration, method: str = "GET") -> dict[str, Any]:
        """List and return the first item matching a configured parameter value.

        An item matches when one of its string fields has the same name and
        value as a path or query parameter of the request.

        Raises:
            NotFoundError: If no item matches
        """
        wanted = {**conf.path_params, **conf.query}
        for item in _first_array(self.list(path, conf, method=method)):
            if not isinstance(item, dict):
                continue
            for name, value in wanted.items():
                candidate = item.get(name)
                if isinstance(candidate, str) and candidate == value:
                    return item
        raise NotFoundError(f"no item found by {sorted(wanted)} in {path}")

    def call(self, call_info: CallInfo, conf: RequestConfiguration) -> Any:
        """Perform a resolved call."""
        if call_info.call_type is CallType.FIND_BY:
            return self.find_by(call_info.path, conf, method=call_info.method)
        if call_info.call_type is CallType.LIST:
            return self.list(call_info.path, conf, method=call_info.method)
        return self.request(call_info.method, call_info.path, conf)
