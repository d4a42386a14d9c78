"""File names for exported images and their metadata."""

import re

from figma_export.models.node import IMAGE_FORMATS

MAX_NAME_LENGTH = 50

_EXPORT_NAME = re.compile(
    r"^(?P<file_id>[^_]+)_(?P<node_id>\d+-\d+)_(?P<name>.+)\.(?P<ext>"
    + "|".join(IMAGE_FORMATS)
    + r")$"
)


def sanitize_file_name(name: str) -> str:
    """Make a node name safe to use as part of a file name."""
    safe = re.sub(r'[<>:"/\\|?*]', "_", name)
    safe = re.sub(r"\s+", "_", safe)
    safe = re.sub(r"_{2,}", "_", safe)
    safe = re.sub(r"^_|_$", "", safe)
    return safe.lower()[:MAX_NAME_LENGTH] or "unnamed"


def export_file_name(file_id: str, node_id: str, node_name: str, fmt: str) -> str:
    """Return ``{file_id}_{node-id}_{name}.{fmt}``."""
    safe_node_id = node_id.replace(":", "-")
    return f"{file_id}_{safe_node_id}_{sanitize_file_name(node_name)}.{fmt}"


def strip_extension(file_name: str) -> str:
    return re.sub(r"\.[^.]+$", "", file_name)


def parse_export_file_name(file_name: str) -> dict[str, str] | None:
    """Reverse ``export_file_name``. Returns None for files it did not produce."""
    match = _EXPORT_NAME.match(file_name)
    if not match:
        return None
    return {
        "file_id": match["file_id"],
        "node_id": match["node_id"].replace("-", ":"),
        "node_name": match["name"],
        "format": match["ext"],
    }
