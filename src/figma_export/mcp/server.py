"""MCP server exposing Figma export and node inspection tools."""

import asyncio
import os
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from figma_export.api import FigmaApi
from figma_export.cache import ResponseCache
from figma_export.config import DEFAULT_OUTPUT_DIR, TOKEN_ENV_VAR, resolve_cache_dir
from figma_export.core.export.exporter import ImageExporter
from figma_export.core.export.listing import list_exports
from figma_export.core.tree.hierarchy import DEFAULT_MAX_DEPTH, build_view
from figma_export.core.urls import resolve_node_ref
from figma_export.errors import ExportCancelledError, FigmaExportError
from figma_export.models.node import ExportOptions
from figma_export.protocols import ApiProtocol
from figma_export.writer import ImageWriter

T = TypeVar("T")

MAX_TREE_DEPTH = 50


def _error(e: Exception) -> dict[str, Any]:
    return {"success": False, "error": str(e)}


# --- Core functions (testable without MCP context) ---


def figma_export_image(
    api: ApiProtocol,
    *,
    figma_url: str,
    node_ids: list[str] | None = None,
    scale: float = 2.0,
    image_format: str = "png",
    output_dir: str | Path = DEFAULT_OUTPUT_DIR,
    with_metadata: bool = True,
    use_cache: bool = True,
) -> dict[str, Any]:
    """Export node images from a Figma file and report the written files.

    Args:
        figma_url: Figma file URL.
        node_ids: Node ids to export (optional if the URL has node-id).
        scale: Scale factor, 1-4.
        image_format: "png", "jpg", "svg" or "pdf".
        output_dir: Directory to write into.
        with_metadata: Save a metadata JSON next to each image.
        use_cache: Reuse cached node metadata.
    """
    try:
        ref = resolve_node_ref(figma_url, node_ids)
        options = ExportOptions(
            scale=scale, format=image_format, use_cache=use_cache, with_metadata=with_metadata
        )
        writer = ImageWriter(output_dir)
        result = ImageExporter(api, writer).export_images(ref, options)
    except ExportCancelledError:
        raise
    except (FigmaExportError, OSError, ValueError) as e:
        return _error(e)

    exported_files = []
    for f in result.exported:
        entry: dict[str, Any] = {"node_id": f.node_id, "image": str(f.image)}
        if f.metadata is not None:
            entry["metadata"] = str(f.metadata)
        exported_files.append(entry)

    return {
        "success": True,
        "file_id": ref.file_id,
        "node_ids": list(ref.node_ids),
        "output_dir": str(result.output_dir),
        "exported_files": exported_files,
        "skipped": [{"node_id": node_id, "reason": reason} for node_id, reason in result.skipped],
        "message": f"Exported {len(result.exported)} of {len(ref.node_ids)} image(s)",
    }


def figma_get_node_info(
    api: ApiProtocol,
    *,
    figma_url: str,
    node_ids: list[str] | None = None,
    use_cache: bool = True,
    include_children: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """Return the node hierarchy with names, types, and root-relative bounds.

    Args:
        figma_url: Figma file URL.
        node_ids: Node ids to describe (optional if the URL has node-id).
        use_cache: Reuse cached node metadata.
        include_children: Include child nodes.
        max_depth: Max tree depth (1-50, default 10).
    """
    max_depth = max(1, min(max_depth, MAX_TREE_DEPTH))
    try:
        ref = resolve_node_ref(figma_url, node_ids)
        response = api.fetch_nodes(ref.file_id, ref.node_ids, use_cache=use_cache)
    except ExportCancelledError:
        raise
    except FigmaExportError as e:
        return _error(e)

    nodes = []
    missing = []
    for node_id in ref.node_ids:
        node_data = response.nodes.get(node_id)
        if node_data is None:
            missing.append(node_id)
            continue
        view = build_view(
            node_data.document, max_depth=max_depth, include_children=include_children
        )
        nodes.append({"node_id": node_id, "hierarchy": view.to_dict()})

    output: dict[str, Any] = {
        "success": True,
        "file_id": ref.file_id,
        "file_name": response.name,
        "last_modified": response.last_modified,
        "nodes": nodes,
        "message": f"Retrieved information for {len(nodes)} node(s)",
    }
    if missing:
        output["missing_node_ids"] = missing
    return output


def figma_list_exports(
    *, output_dir: str | Path = DEFAULT_OUTPUT_DIR, file_id: str | None = None
) -> dict[str, Any]:
    """List previously exported images and their metadata.

    Args:
        output_dir: Output directory to list.
        file_id: Only list exports of this Figma file.
    """
    if not Path(output_dir).is_dir():
        return {
            "success": True,
            "output_dir": str(output_dir),
            "exports": [],
            "count": 0,
            "message": "Output directory does not exist",
        }
    exports = list_exports(output_dir, file_id=file_id)
    return {
        "success": True,
        "output_dir": str(output_dir),
        "exports": exports,
        "count": len(exports),
        "message": f"Found {len(exports)} exported image(s)",
    }


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    token: str
    cache: ResponseCache

    def make_api(self, cancel_event: threading.Event) -> FigmaApi:
        return FigmaApi(self.token, cache=self.cache, cancel_event=cancel_event)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Read configuration from the environment on startup."""
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if not token:
        msg = f"{TOKEN_ENV_VAR} environment variable is required to start the MCP server"
        raise RuntimeError(msg)
    cache = ResponseCache(resolve_cache_dir())
    logger.debug("MCP server ready, cache dir {}", cache.cache_dir)
    yield ServerContext(token=token, cache=cache)


mcp_server = FastMCP(
    "figma-node-export",
    instructions="""\
Figma designs are trees of nodes. Node ids look like "12:34" (URLs write them
as "12-34"; both forms are accepted).

1. Call figma_get_node_info_tool first to see the structure of a design.
   Bounds are relative to the requested root node.
2. Call figma_export_image_tool to render and save images.
3. Call figma_list_exports_tool to see what has already been exported.

Node metadata is cached for a day to respect Figma's rate limits; pass
use_cache=false to force a fresh fetch.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


async def _run_cancellable(fn: Callable[[threading.Event], T]) -> T:
    """Run blocking work in a thread; cancelling the call interrupts retry waits."""
    cancel_event = threading.Event()
    try:
        return await asyncio.to_thread(fn, cancel_event)
    except asyncio.CancelledError:
        cancel_event.set()
        raise


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def figma_export_image_tool(
    ctx: Context,
    figma_url: str,
    node_ids: list[str] | None = None,
    scale: float = 2.0,
    format: str = "png",
    output_dir: str = str(DEFAULT_OUTPUT_DIR),
    with_metadata: bool = True,
    use_cache: bool = True,
) -> dict[str, Any]:
    """Export images from Figma and save them as files.

    Returns the exported file paths. Nodes that cannot be rendered are listed
    under "skipped" instead of failing the whole export.

    Args:
        figma_url: Figma file URL (e.g. https://www.figma.com/design/...).
        node_ids: Node ids to export (optional if the URL contains node-id).
        scale: Scale factor (1-4, default 2).
        format: Image format: png, jpg, svg or pdf.
        output_dir: Output directory path.
        with_metadata: Save metadata JSON alongside images.
        use_cache: Use cached API responses to avoid rate limits.
    """
    server_ctx = _ctx(ctx)
    return await _run_cancellable(
        lambda cancel_event: figma_export_image(
            server_ctx.make_api(cancel_event),
            figma_url=figma_url,
            node_ids=node_ids,
            scale=scale,
            image_format=format,
            output_dir=output_dir,
            with_metadata=with_metadata,
            use_cache=use_cache,
        )
    )


@mcp_server.tool()
async def figma_get_node_info_tool(
    ctx: Context,
    figma_url: str,
    node_ids: list[str] | None = None,
    use_cache: bool = True,
    include_children: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """Get node information and hierarchy from Figma.

    Returns names, types, visibility, positions and sizes (relative to each
    requested root node) and child elements. Useful before exporting.

    Args:
        figma_url: Figma file URL.
        node_ids: Node ids to describe (optional if the URL contains node-id).
        use_cache: Use cached API responses.
        include_children: Include child nodes in the hierarchy.
        max_depth: Maximum depth of the returned tree (1-50, default 10).
    """
    server_ctx = _ctx(ctx)
    return await _run_cancellable(
        lambda cancel_event: figma_get_node_info(
            server_ctx.make_api(cancel_event),
            figma_url=figma_url,
            node_ids=node_ids,
            use_cache=use_cache,
            include_children=include_children,
            max_depth=max_depth,
        )
    )


@mcp_server.tool()
async def figma_list_exports_tool(
    output_dir: str = str(DEFAULT_OUTPUT_DIR),
    file_id: str | None = None,
) -> dict[str, Any]:
    """List previously exported images and their metadata.

    Args:
        output_dir: Output directory to list.
        file_id: Filter by Figma file id.
    """
    return figma_list_exports(output_dir=output_dir, file_id=file_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from figma_export.logging_config import configure_logging

    configure_logging(quiet=True)
    mcp_server.run(transport="stdio")
