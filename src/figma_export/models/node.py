"""Domain models for Figma nodes and exports."""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

IMAGE_FORMATS: tuple[str, ...] = ("png", "jpg", "svg", "pdf")
MIN_SCALE = 1.0
MAX_SCALE = 4.0


@dataclass(frozen=True)
class NodeRef:
    """A file and an ordered set of canonical node ids within it."""

    file_id: str
    node_ids: tuple[str, ...]


@dataclass(frozen=True)
class BoundingBox:
    """Absolute on-canvas rectangle of a node."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "BoundingBox":
        return cls(
            x=float(raw.get("x", 0)),
            y=float(raw.get("y", 0)),
            width=float(raw.get("width", 0)),
            height=float(raw.get("height", 0)),
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Node:
    """A single node of a Figma document tree.

    Only the fields the exporter reads are typed. Everything else the API sends
    is kept verbatim in ``extra`` so ``to_dict()`` gives back what came in.
    ``children`` is None when the source had no ``children`` key at all.
    """

    id: str
    name: str
    type: str
    visible: bool | None = None
    absolute_bounding_box: BoundingBox | None = None
    children: tuple["Node", ...] | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Node":
        extra = copy.deepcopy(raw)
        node_id = extra.pop("id", "")
        name = extra.pop("name", "")
        node_type = extra.pop("type", "")

        visible: bool | None = None
        if isinstance(extra.get("visible"), bool):
            visible = extra.pop("visible")

        bbox: BoundingBox | None = None
        if isinstance(extra.get("absoluteBoundingBox"), dict):
            bbox = BoundingBox.from_dict(extra.pop("absoluteBoundingBox"))

        children: tuple[Node, ...] | None = None
        if isinstance(extra.get("children"), list):
            children = tuple(cls.from_dict(c) for c in extra.pop("children"))

        return cls(
            id=node_id,
            name=name,
            type=node_type,
            visible=visible,
            absolute_bounding_box=bbox,
            children=children,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.visible is not None:
            out["visible"] = self.visible
        if self.absolute_bounding_box is not None:
            out["absoluteBoundingBox"] = self.absolute_bounding_box.to_dict()
        if self.children is not None:
            out["children"] = [c.to_dict() for c in self.children]
        out.update(copy.deepcopy(self.extra))
        return out


@dataclass(frozen=True)
class NodeData:
    """One entry of the ``nodes`` map in a nodes response."""

    document: Node
    raw: dict[str, Any] = field(compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "NodeData":
        return cls(document=Node.from_dict(raw.get("document", {})), raw=raw)


@dataclass(frozen=True)
class NodesResponse:
    """Parsed ``GET /files/{id}/nodes`` response.

    ``raw`` is the verbatim JSON body; that is what gets cached.
    """

    name: str
    last_modified: str
    thumbnail_url: str
    nodes: dict[str, NodeData | None]
    raw: dict[str, Any] = field(compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "NodesResponse":
        nodes = {
            node_id: NodeData.from_dict(data) if data else None
            for node_id, data in (raw.get("nodes") or {}).items()
        }
        return cls(
            name=raw.get("name", ""),
            last_modified=raw.get("lastModified", ""),
            thumbnail_url=raw.get("thumbnailUrl", ""),
            nodes=nodes,
            raw=raw,
        )


@dataclass(frozen=True)
class ExportOptions:
    """Options for an image export."""

    scale: float = 2.0
    format: str = "png"
    use_cache: bool = True
    with_metadata: bool = False

    def __post_init__(self) -> None:
        if not MIN_SCALE <= self.scale <= MAX_SCALE:
            msg = f"scale must be between {MIN_SCALE:g} and {MAX_SCALE:g}, got {self.scale!r}"
            raise ValueError(msg)
        if self.format not in IMAGE_FORMATS:
            msg = f"format must be one of {IMAGE_FORMATS!r}, got {self.format!r}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ViewNode:
    """A node in the structured hierarchy view, bounds relative to the root."""

    id: str
    name: str
    type: str
    visible: bool
    bounds: dict[str, int] | None = None
    children: tuple["ViewNode", ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "visible": self.visible,
        }
        if self.bounds is not None:
            out["bounds"] = dict(self.bounds)
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@dataclass(frozen=True)
class ExportedFile:
    """Files written for one exported node."""

    node_id: str
    node_name: str
    image: Path
    metadata: Path | None = None


@dataclass
class ExportResult:
    """Outcome of one export call."""

    file_id: str
    node_ids: tuple[str, ...]
    output_dir: Path
    exported: list[ExportedFile] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
