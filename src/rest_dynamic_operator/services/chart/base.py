"""Chart backend interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from ...utils.unstructured import ResourceDocument


@dataclass(frozen=True)
class ChartInfo:
    """Location and version of the chart deployed for a resource."""

    url: str
    version: str = ""
    repo: str = ""


@dataclass(frozen=True)
class ReleaseSpec:
    """What to install: the chart plus the release identity."""

    chart: ChartInfo
    release_name: str
    namespace: str


class ChartInfoGetter(Protocol):
    def get(self, doc: ResourceDocument) -> ChartInfo:
        """Return the chart to deploy for a resource document."""
        ...


class ChartBackend(Protocol):
    """Protocol defining chart release operations."""

    def find_release(self, name: str, namespace: str) -> dict[str, Any]:
        """Return the release.

        Raises:
            ReleaseNotFoundError: If no release with that name exists
        """
        ...

    def install_or_upgrade(self, spec: ReleaseSpec, values: dict[str, Any]) -> None:
        """Install the release, or upgrade it when it already exists."""
        ...

    def template_render(self, spec: ReleaseSpec, values: dict[str, Any]) -> bytes:
        """Render the chart manifests as multi-document YAML."""
        ...

    def uninstall(self, spec: ReleaseSpec) -> None:
        """Uninstall the release."""
        ...
