"""List images exported earlier, with whatever metadata sits next to them."""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from figma_export.core.export.naming import parse_export_file_name, strip_extension


def list_exports(output_dir: str | Path, *, file_id: str | None = None) -> list[dict[str, Any]]:
    """Describe exported images in ``output_dir``, sorted by file name.

    Files that do not follow the export naming scheme are ignored.

    Args:
        output_dir: Directory to scan. A missing directory yields no exports.
        file_id: Only include exports of this Figma file.
    """
    out_dir = Path(output_dir)
    if not out_dir.is_dir():
        return []

    exports: list[dict[str, Any]] = []
    for path in sorted(out_dir.iterdir()):
        if not path.is_file() or path.suffix == ".json":
            continue
        parsed = parse_export_file_name(path.name)
        if parsed is None:
            continue
        if file_id and parsed["file_id"] != file_id:
            continue

        entry: dict[str, Any] = {
            "image": str(path),
            "file_id": parsed["file_id"],
            "node_id": parsed["node_id"],
            "node_name": parsed["node_name"],
            "size": path.stat().st_size,
        }

        metadata_path = out_dir / f"{strip_extension(path.name)}.json"
        if metadata_path.is_file():
            entry["metadata"] = str(metadata_path)
            try:
                metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
                entry["exported_at"] = metadata.get("exported_at")
            except (OSError, ValueError, AttributeError) as e:
                logger.debug("Unreadable metadata {}: {}", metadata_path, e)

        exports.append(entry)
    return exports
