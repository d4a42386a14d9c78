"""CLI for figma-node-export (export, inspect, list, MCP server)."""

import json
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from figma_export.api import FigmaApi
from figma_export.cache import ResponseCache
from figma_export.config import DEFAULT_OUTPUT_DIR, resolve_cache_dir, resolve_token
from figma_export.core.export.exporter import ImageExporter
from figma_export.core.export.listing import list_exports
from figma_export.core.tree.hierarchy import DEFAULT_MAX_DEPTH, build_view, render_display_lines
from figma_export.core.urls import resolve_node_ref
from figma_export.errors import FigmaExportError
from figma_export.logging_config import configure_logging
from figma_export.models.node import IMAGE_FORMATS, ExportOptions, NodeRef
from figma_export.protocols import ApiProtocol
from figma_export.writer import ImageWriter

app = typer.Typer(help="Export images and node hierarchies from Figma, with caching.")

TokenOption = Annotated[
    str | None,
    typer.Option("--token", "-t", help="Figma personal access token (or FIGMA_PERSONAL_TOKEN)"),
]
NodesOption = Annotated[
    str | None,
    typer.Option("--nodes", "-n", help="Comma-separated node ids (default: node-id in URL)"),
]
CacheDirOption = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="Directory for cached API responses"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def make_api(token: str | None, cache_dir: Path | None) -> ApiProtocol:
    """Build the API client from command-line options and the environment."""
    return FigmaApi(resolve_token(token), cache=ResponseCache(resolve_cache_dir(cache_dir)))


def _resolve_ref(figma_url: str, nodes: str | None) -> NodeRef:
    try:
        return resolve_node_ref(figma_url, nodes.split(",") if nodes else None)
    except FigmaExportError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


def _api_or_exit(token: str | None, cache_dir: Path | None) -> ApiProtocol:
    try:
        return make_api(token, cache_dir)
    except RuntimeError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


@app.command()
def export(
    figma_url: str = typer.Argument(..., help="Figma file URL"),
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Output directory")
    ] = DEFAULT_OUTPUT_DIR,
    token: TokenOption = None,
    nodes: NodesOption = None,
    scale: float = typer.Option(2.0, "--scale", "-s", help="Scale factor (1-4)"),
    image_format: str = typer.Option(
        "png", "--format", help=f"Image format ({', '.join(IMAGE_FORMATS)})"
    ),
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Use cached node metadata"),
    with_metadata: bool = typer.Option(
        False, "--with-metadata", help="Save metadata JSON alongside images"
    ),
    cache_dir: CacheDirOption = None,
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write anything"),
    verbose: bool = typer.Option(False, "--verbose", help="Print the node hierarchy"),
) -> None:
    """Export node images from a Figma file."""
    ref = _resolve_ref(figma_url, nodes)
    try:
        options = ExportOptions(
            scale=scale, format=image_format, use_cache=cache, with_metadata=with_metadata
        )
    except ValueError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    if verbose:
        typer.echo("Configuration:")
        typer.echo(f"  File ID: {ref.file_id}")
        typer.echo(f"  Node IDs: {', '.join(ref.node_ids)}")
        typer.echo(f"  Scale: {options.scale:g}")
        typer.echo(f"  Format: {options.format}")
        typer.echo(f"  Output: {output}")
        typer.echo(f"  Cache: {'enabled' if options.use_cache else 'disabled'}")
        typer.echo(f"  Metadata: {'yes' if options.with_metadata else 'no'}")
        typer.echo()

    api = _api_or_exit(token, cache_dir)
    try:
        writer = ImageWriter(output, dry_run=dry_run)
        exporter = ImageExporter(api, writer, echo=typer.echo)
        result = exporter.export_images(ref, options, verbose=verbose)
    except (FigmaExportError, OSError) as e:
        logger.error("Export failed: {}", e)
        raise typer.Exit(1) from e

    typer.echo(f"Exported {len(result.exported)} image(s) to {result.output_dir}")
    for f in result.exported:
        typer.echo(f"  {f.image}")
    if result.skipped:
        typer.echo(f"Skipped {len(result.skipped)} node(s):")
        for node_id, reason in result.skipped:
            typer.echo(f"  {node_id}: {reason}")


@app.command()
def info(
    figma_url: str = typer.Argument(..., help="Figma file URL"),
    token: TokenOption = None,
    nodes: NodesOption = None,
    max_depth: int = typer.Option(DEFAULT_MAX_DEPTH, "--max-depth", "-m", help="Max tree depth"),
    children: bool = typer.Option(
        True, "--children/--no-children", help="Include child nodes"
    ),
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Use cached node metadata"),
    cache_dir: CacheDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output structured JSON"),
) -> None:
    """Show the node hierarchy, with bounds relative to each root."""
    ref = _resolve_ref(figma_url, nodes)
    api = _api_or_exit(token, cache_dir)
    try:
        response = api.fetch_nodes(ref.file_id, ref.node_ids, use_cache=cache)
    except FigmaExportError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    views = []
    for node_id in ref.node_ids:
        node_data = response.nodes.get(node_id)
        if node_data is None:
            logger.warning("No node data for {}", node_id)
            continue
        root = node_data.document
        if output_json:
            view = build_view(root, max_depth=max_depth, include_children=children)
            views.append({"node_id": node_id, "hierarchy": view.to_dict()})
        else:
            typer.echo(f"Root Node: {root.name or '[unnamed]'} (id: {root.id})")
            for line in render_display_lines(root):
                typer.echo(line)

    if output_json:
        data = {
            "file_id": ref.file_id,
            "file_name": response.name,
            "last_modified": response.last_modified,
            "nodes": views,
        }
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.command()
def exports(
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Output directory")
    ] = DEFAULT_OUTPUT_DIR,
    file_id: Annotated[
        str | None, typer.Option("--file-id", "-f", help="Only list this Figma file")
    ] = None,
) -> None:
    """List previously exported images."""
    found = list_exports(output, file_id=file_id)
    typer.echo(f"Found {len(found)} exported image(s):\n")
    for entry in found:
        typer.echo(f"  {entry['node_name']}  [{entry['node_id']}]  {entry['size']} bytes")
        typer.echo(f"    {entry['image']}")
        if entry.get("exported_at"):
            typer.echo(f"    exported at {entry['exported_at']}")


@app.command(name="clear-cache")
def clear_cache(cache_dir: CacheDirOption = None) -> None:
    """Delete all cached API responses."""
    cache = ResponseCache(resolve_cache_dir(cache_dir))
    removed = cache.clear()
    typer.echo(f"Removed {removed} cached response(s) from {cache.cache_dir}")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from figma_export.mcp.server import run_mcp_server

    run_mcp_server()
