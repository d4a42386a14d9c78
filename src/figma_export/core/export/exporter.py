"""Export rendered node images, and optionally their metadata, to disk."""

from collections.abc import Callable
from datetime import UTC, datetime

from loguru import logger

from figma_export.core.export.naming import export_file_name, strip_extension
from figma_export.core.tree.hierarchy import render_display_lines
from figma_export.errors import DownloadError
from figma_export.models.node import ExportedFile, ExportOptions, ExportResult, NodeRef
from figma_export.protocols import ApiProtocol, WriterProtocol


class ImageExporter:
    """Fetch nodes, render them, and hand the images to a writer.

    Batch steps (node metadata, render URLs) fail the whole export. Per-node
    problems (no URL, no metadata, failed download) skip that node with a
    warning and are reported in ``ExportResult.skipped``.
    """

    def __init__(
        self,
        api: ApiProtocol,
        writer: WriterProtocol,
        *,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._api = api
        self._writer = writer
        self._echo = echo or logger.info

    def export_images(
        self, ref: NodeRef, options: ExportOptions, *, verbose: bool = False
    ) -> ExportResult:
        """Export every node in ``ref``.

        Args:
            ref: File and node ids to export.
            options: Scale, format, cache and metadata settings.
            verbose: Print the node hierarchy before downloading.
        """
        result = ExportResult(
            file_id=ref.file_id, node_ids=ref.node_ids, output_dir=self._writer.output_dir
        )
        logger.info("Exporting {} node(s) from Figma...", len(ref.node_ids))

        nodes_response = self._api.fetch_nodes(
            ref.file_id, ref.node_ids, use_cache=options.use_cache
        )

        if verbose:
            self._echo("Node Hierarchy:")
            for node_id in ref.node_ids:
                node_data = nodes_response.nodes.get(node_id)
                if node_data is None:
                    continue
                root = node_data.document
                self._echo(f"Root Node: {root.name or '[unnamed]'} (id: {root.id})")
                for line in render_display_lines(root):
                    self._echo(line)
            self._echo("")

        image_urls = self._api.fetch_image_urls(ref.file_id, ref.node_ids, options)

        for node_id in ref.node_ids:
            image_url = image_urls.get(node_id)
            if not image_url:
                self._skip(result, node_id, f"No image URL for node {node_id}")
                continue

            node_data = nodes_response.nodes.get(node_id)
            if node_data is None:
                self._skip(result, node_id, f"No node data for {node_id}")
                continue

            node_name = node_data.document.name
            file_name = export_file_name(ref.file_id, node_id, node_name, options.format)
            logger.info("Downloading: {}", file_name)

            try:
                image = self._api.download_image(image_url)
            except DownloadError as e:
                self._skip(result, node_id, f"Download failed for node {node_id}: {e}")
                continue

            image_path = self._writer.write_image(file_name, image)
            logger.info("Saved: {}", image_path)

            metadata_path = None
            if options.with_metadata:
                metadata = {
                    "file_id": ref.file_id,
                    "node_id": node_id,
                    "node_name": node_name,
                    "exported_at": datetime.now(UTC).isoformat(),
                    "scale": options.scale,
                    "format": options.format,
                    "node_data": node_data.raw,
                }
                metadata_path = self._writer.write_json(
                    f"{strip_extension(file_name)}.json", metadata
                )
                logger.info("Saved metadata: {}", metadata_path)

            result.exported.append(
                ExportedFile(
                    node_id=node_id,
                    node_name=node_name,
                    image=image_path,
                    metadata=metadata_path,
                )
            )

        logger.info(
            "Exported {} image(s) to {}, skipped {}",
            len(result.exported),
            result.output_dir,
            len(result.skipped),
        )
        return result

    @staticmethod
    def _skip(result: ExportResult, node_id: str, reason: str) -> None:
        logger.warning(reason)
        result.skipped.append((node_id, reason))
