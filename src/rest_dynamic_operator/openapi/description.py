"""Queries over a loaded OpenAPI 3 document."""

from __future__ import annotations

from typing import Any, Iterator

from ..errors import (
    NoSuccessCodeError,
    OperationNotFoundError,
    ValidationError,
)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
JSON_MEDIA_TYPE = "application/json"


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


class APIDescription:
    """An OpenAPI 3 document that answers what each operation requires.

    Instances are treated as immutable once loaded and may be shared
    between threads.
    """

    def __init__(self, document: dict[str, Any], location: str = "") -> None:
        self.document = document
        self.location = location

    def __repr__(self) -> str:
        return f"APIDescription({self.location or '<inline>'!r})"

    @property
    def server_url(self) -> str:
        """URL of the first declared server, without a trailing slash."""
        servers = self.document.get("servers") or []
        for server in servers:
            if isinstance(server, dict) and isinstance(server.get("url"), str) and server["url"]:
                return server["url"].rstrip("/")
        raise ValidationError("no server url declared in api description")

    # References

    def resolve_ref(self, ref: str) -> Any:
        """Resolve a local JSON pointer such as ``#/components/schemas/Pet``.

        Raises:
            ValidationError: If the reference is remote or points nowhere
        """
        if not isinstance(ref, str) or not ref.startswith("#"):
            raise ValidationError(f"unsupported non-local reference: {ref!r}")
        node: Any = self.document
        pointer = ref[1:]
        if not pointer:
            return node
        for token in pointer.lstrip("/").split("/"):
            key = _unescape(token)
            if isinstance(node, dict) and key in node:
                node = node[key]
            elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
                node = node[int(key)]
            else:
                raise ValidationError(f"unresolved reference: {ref}")
        return node

    def deref(self, node: Any) -> Any:
        """Follow ``$ref`` chains until a concrete node is reached."""
        seen: set[str] = set()
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                raise ValidationError(f"circular reference: {ref}")
            seen.add(ref)
            node = self.resolve_ref(ref)
        return node

    def iter_refs(self) -> Iterator[str]:
        """Yield every ``$ref`` value in the document."""
        stack: list[Any] = [self.document]
        while stack:
            node = stack.pop()
            if isinstance(node, dict):
                ref = node.get("$ref")
                if isinstance(ref, str):
                    yield ref
                stack.extend(node.values())
            elif isinstance(node, list):
                stack.extend(node)

    def validate_refs(self) -> None:
        for ref in self.iter_refs():
            self.resolve_ref(ref)

    # Operations

    def operations(self) -> Iterator[tuple[str, str]]:
        """Yield (METHOD, path) for every declared operation."""
        for path, item in (self.document.get("paths") or {}).items():
            item = self.deref(item)
            if not isinstance(item, dict):
                continue
            for method in HTTP_METHODS:
                if isinstance(item.get(method), dict):
                    yield method.upper(), path

    def _path_item(self, method: str, path: str) -> dict[str, Any]:
        item = self.deref((self.document.get("paths") or {}).get(path))
        if not isinstance(item, dict):
            raise OperationNotFoundError(method, path)
        return item

    def _operation(self, method: str, path: str) -> dict[str, Any]:
        operation = self._path_item(method, path).get(method.lower())
        if not isinstance(operation, dict):
            raise OperationNotFoundError(method, path)
        return operation

    def operation_exists(self, method: str, path: str) -> bool:
        try:
            self._operation(method, path)
        except OperationNotFoundError:
            return False
        return True

    def parameters(self, method: str, path: str) -> list[dict[str, Any]]:
        """Resolved parameters of an operation.

        Path item parameters are merged with operation parameters; the
        operation wins on a (name, in) collision.
        """
        item = self._path_item(method, path)
        operation = self._operation(method, path)
        merged: dict[tuple[str, str], dict[str, Any]] = {}
        for raw in list(item.get("parameters") or []) + list(operation.get("parameters") or []):
            param = self.deref(raw)
            if not isinstance(param, dict) or "name" not in param:
                continue
            merged[(str(param["name"]), str(param.get("in", "")))] = param
        return list(merged.values())

    def required_parameters(self, method: str, path: str) -> tuple[set[str], set[str]]:
        """Names of the path and query parameters an operation declares.

        Returns:
            Tuple of (path parameter names, query parameter names)
        """
        path_names: set[str] = set()
        query_names: set[str] = set()
        for param in self.parameters(method, path):
            location = param.get("in")
            if location == "path":
                path_names.add(str(param["name"]))
            elif location == "query":
                query_names.add(str(param["name"]))
        return path_names, query_names

    def validate_request(
        self,
        method: str,
        path: str,
        path_params: dict[str, str],
        query: dict[str, str],
    ) -> None:
        """Raise ValidationError naming the first missing required parameter."""
        for param in self.parameters(method, path):
            name = str(param["name"])
            location = param.get("in")
            if location == "path" and name not in path_params:
                raise ValidationError(f"missing required path parameter {name!r} for {method.upper()} {path}")
            if location == "query" and param.get("required") and name not in query:
                raise ValidationError(f"missing required query parameter {name!r} for {method.upper()} {path}")

    def _schema_properties(self, schema: Any) -> set[str]:
        schema = self.deref(schema)
        if not isinstance(schema, dict):
            return set()
        names = set((schema.get("properties") or {}).keys())
        for sub in schema.get("allOf") or []:
            names |= self._schema_properties(sub)
        return names

    def required_body_fields(self, method: str, path: str) -> set[str]:
        """Property names of the JSON request body schema, empty when none."""
        body = self.deref(self._operation(method, path).get("requestBody"))
        if not isinstance(body, dict):
            return set()
        media = (body.get("content") or {}).get(JSON_MEDIA_TYPE)
        if not isinstance(media, dict):
            return set()
        return self._schema_properties(media.get("schema"))

    def success_status_codes(self, method: str, path: str) -> list[int]:
        """All declared 2xx response codes in document order."""
        codes = []
        for code in (self._operation(method, path).get("responses") or {}).keys():
            try:
                value = int(str(code))
            except ValueError:
                continue
            if 200 <= value < 300:
                codes.append(value)
        return codes

    def success_status_code(self, method: str, path: str) -> int:
        codes = self.success_status_codes(method, path)
        if not codes:
            raise NoSuccessCodeError(method, path)
        return codes[0]
