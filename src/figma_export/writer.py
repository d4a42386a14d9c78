"""Write exported images and metadata into an output directory."""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from figma_export.models.node import IMAGE_FORMATS

_OUTPUT_SUFFIXES = frozenset({".json", *(f".{fmt}" for fmt in IMAGE_FORMATS)})


class ImageWriter:
    """Write export outputs below a single directory.

    - Refuses names that would escape the output directory.
    - Only writes image and JSON files.
    - In dry-run mode, logs what would be written and touches nothing.
    """

    def __init__(self, output_dir: str | Path, *, dry_run: bool = False) -> None:
        self.output_dir = Path(output_dir).resolve()
        self.dry_run = dry_run
        if not dry_run:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Writer ready, output_dir {!r}, dry_run {!r}", str(self.output_dir), dry_run)

        # Absolute paths written this session, in order.
        self.files_written: list[Path] = []

    def is_possible_output(self, fname: str) -> bool:
        """Check if a file name is something this writer may produce."""
        return Path(fname).suffix.lower() in _OUTPUT_SUFFIXES

    def write_image(self, fname_rel: str, data: bytes) -> Path:
        """Write raw image bytes, returning the absolute path."""
        path = self._resolve(fname_rel)
        self._write(path, data)
        return path

    def write_json(self, fname_rel: str, data: Any) -> Path:
        """Serialize data as indented JSON, returning the absolute path."""
        path = self._resolve(fname_rel)
        contents = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        self._write(path, contents.encode("utf-8"))
        return path

    def _resolve(self, fname_rel: str) -> Path:
        if Path(fname_rel).is_absolute():
            msg = f"must be relative: {fname_rel!r}"
            raise ValueError(msg)
        path = (self.output_dir / fname_rel).resolve()
        if self.output_dir not in path.parents:
            msg = f"Path escapes output dir: {str(path)!r}"
            raise ValueError(msg)
        if not self.is_possible_output(path.name):
            msg = f"Wanted to write {str(path)!r} but is_possible_output() returns False"
            raise ValueError(msg)
        return path

    def _write(self, path: Path, data: bytes) -> None:
        action = "update" if path.exists() else "create"
        self.files_written.append(path)
        if self.dry_run:
            logger.info("dry-run: would {} {!r} ({} bytes)", action, str(path), len(data))
            return
        logger.debug("Writing ({}) {!r}", action, str(path))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
