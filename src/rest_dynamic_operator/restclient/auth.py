"""Authentication methods attached to backend requests."""

from __future__ import annotations

import requests
from requests.auth import AuthBase, HTTPBasicAuth


class BasicAuth(HTTPBasicAuth):
    """HTTP basic authentication."""

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r})"


class BearerAuth(AuthBase):
    """Sends ``Authorization: Bearer <token>``."""

    def __init__(self, token: str) -> None:
        self.token = token

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BearerAuth) and self.token == other.token

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __repr__(self) -> str:
        return "BearerAuth(token=***)"

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self.token}"
        return r
