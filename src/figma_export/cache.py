"""On-disk cache for Figma node responses."""

import hashlib
import json
import os
import tempfile
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from loguru import logger

from figma_export.config import DEFAULT_CACHE_DIR, DEFAULT_CACHE_TTL
from figma_export.core.urls import normalize_node_id
from figma_export.errors import CacheIOError


def cache_key(file_id: str, node_ids: Iterable[str]) -> str:
    """Return the cache key for a query. Node id order does not matter."""
    sorted_ids = sorted({normalize_node_id(x) for x in node_ids})
    content = f"{file_id}:{','.join(sorted_ids)}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ResponseCache:
    """TTL-bound, content-addressed store of raw API responses.

    One JSON file per key::

        {"metadata": {"fileId", "nodeIds", "timestamp", "ttl"}, "data": <response>}

    ``timestamp`` and ``ttl`` are in milliseconds. Expired records are ignored,
    not deleted. Cache failures never propagate: a failed read is a miss and a
    failed write is dropped.
    """

    def __init__(
        self,
        cache_dir: str | Path = DEFAULT_CACHE_DIR,
        *,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._clock = clock

    def path_for(self, file_id: str, node_ids: Iterable[str]) -> Path:
        return self.cache_dir / f"{cache_key(file_id, node_ids)}.json"

    def lookup(self, file_id: str, node_ids: Iterable[str]) -> dict[str, Any] | None:
        """Return the cached response, or None on miss, corruption or expiry."""
        path = self.path_for(file_id, node_ids)
        try:
            record = self._read_record(path)
        except CacheIOError as e:
            logger.warning("Ignoring unreadable cache record: {}", e)
            return None
        if record is None:
            return None

        metadata = record["metadata"]
        age_ms = self._now_ms() - metadata["timestamp"]
        if age_ms > metadata["ttl"]:
            logger.debug("Cache record {} expired ({} ms old)", path.name, age_ms)
            return None

        logger.debug("Filled from cache: {}", path.name)
        return record["data"]  # type: ignore[no-any-return]

    def store(self, file_id: str, node_ids: Iterable[str], response: dict[str, Any]) -> None:
        """Persist a response, replacing any previous record for the same key."""
        node_ids = list(node_ids)
        path = self.path_for(file_id, node_ids)
        record = {
            "metadata": {
                "fileId": file_id,
                "nodeIds": node_ids,
                "timestamp": self._now_ms(),
                "ttl": int(self.ttl * 1000),
            },
            "data": response,
        }
        try:
            self._write_record(path, record)
        except CacheIOError as e:
            logger.warning("Failed to write cache: {}", e)

    def clear(self) -> int:
        """Delete every cache record. Returns the number of files removed."""
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for path in sorted(self.cache_dir.glob("*.json")):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            removed += 1
        logger.debug("Removed {} cache record(s) from {}", removed, self.cache_dir)
        return removed

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _read_record(self, path: Path) -> dict[str, Any] | None:
        try:
            with open(path, encoding="utf-8") as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            msg = f"{path}: {e}"
            raise CacheIOError(msg) from e

        try:
            metadata = record["metadata"]
            if not isinstance(metadata["timestamp"], int | float):
                raise TypeError("timestamp is not a number")
            if not isinstance(metadata["ttl"], int | float):
                raise TypeError("ttl is not a number")
            record["data"]
        except (KeyError, TypeError) as e:
            msg = f"{path}: malformed record ({e})"
            raise CacheIOError(msg) from e
        return record  # type: ignore[no-any-return]

    def _write_record(self, path: Path, record: dict[str, Any]) -> None:
        # Write to a temp file in the same directory, then rename over the target,
        # so readers never see a partial record.
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=path.stem, suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(record, f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            msg = f"{path}: {e}"
            raise CacheIOError(msg) from e
        except (TypeError, ValueError) as e:
            msg = f"{path}: response is not JSON serializable ({e})"
            raise CacheIOError(msg) from e
