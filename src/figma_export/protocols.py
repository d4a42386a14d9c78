"""Protocols for dependency injection in the exporter."""

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from figma_export.models.node import ExportOptions, NodesResponse


@runtime_checkable
class ApiProtocol(Protocol):
    """Protocol for Figma API clients."""

    def fetch_nodes(
        self, file_id: str, node_ids: Iterable[str], *, use_cache: bool = True
    ) -> NodesResponse:
        """Fetch node metadata for a batch of node ids."""
        ...

    def fetch_image_urls(
        self, file_id: str, node_ids: Iterable[str], options: ExportOptions
    ) -> dict[str, str | None]:
        """Return render URLs for a batch of node ids."""
        ...

    def download_image(self, url: str) -> bytes:
        """Download one rendered image."""
        ...


@runtime_checkable
class WriterProtocol(Protocol):
    """Protocol for file writers used by the exporter."""

    output_dir: Path

    def write_image(self, fname_rel: str, data: bytes) -> Path:
        """Write image bytes to the output directory."""
        ...

    def write_json(self, fname_rel: str, data: Any) -> Path:
        """Write JSON data to the output directory."""
        ...
