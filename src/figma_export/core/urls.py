"""Extract file and node identifiers from Figma URLs."""

import re
from collections.abc import Iterable
from urllib.parse import parse_qs, urlparse

from figma_export.errors import InvalidUrlError
from figma_export.models.node import NodeRef

_FILE_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/(?:file|design)/([A-Za-z0-9]+)"),
    re.compile(r"/proto/([A-Za-z0-9]+)"),
)

# "763-6581" as written in browser URLs; the API wants "763:6581".
_HYPHENATED_NODE_ID = re.compile(r"^(\d+)-(\d+)")

NODE_ID_PARAM = "node-id"


def parse_file_id(url: str) -> str:
    """Return the file id of a ``/file/``, ``/design/`` or ``/proto/`` URL."""
    for pattern in _FILE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    msg = f"Invalid Figma URL: {url!r}"
    raise InvalidUrlError(msg)


def parse_node_id(url: str) -> str | None:
    """Return the raw ``node-id`` query parameter, or None."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    values = parse_qs(parsed.query).get(NODE_ID_PARAM)
    return values[0] if values else None


def normalize_node_id(raw: str) -> str:
    """Convert ``"12-34"`` to ``"12:34"``. Anything else is returned unchanged."""
    return _HYPHENATED_NODE_ID.sub(r"\1:\2", raw, count=1)


def is_valid_url(url: str) -> bool:
    try:
        parse_file_id(url)
    except InvalidUrlError:
        return False
    return True


def make_node_ref(file_id: str, node_ids: Iterable[str]) -> NodeRef:
    """Build a NodeRef with canonical, de-duplicated ids in first-seen order."""
    seen: dict[str, None] = {}
    for raw in node_ids:
        raw = raw.strip()
        if raw:
            seen.setdefault(normalize_node_id(raw), None)
    return NodeRef(file_id=file_id, node_ids=tuple(seen))


def resolve_node_ref(url: str, node_ids: Iterable[str] | None = None) -> NodeRef:
    """Work out what to fetch from a URL and optional explicit node ids.

    Explicit ids win; otherwise the URL's ``node-id`` parameter is used.

    Raises:
        InvalidUrlError: The URL is not a Figma file URL, or no node id is available.
    """
    file_id = parse_file_id(url)
    ref = make_node_ref(file_id, node_ids or ())
    if ref.node_ids:
        return ref

    url_node_id = parse_node_id(url)
    if url_node_id:
        ref = make_node_ref(file_id, [url_node_id])
    if not ref.node_ids:
        msg = "Node IDs are required: pass node ids explicitly or include node-id in the URL"
        raise InvalidUrlError(msg)
    return ref
