"""Build filtered, root-relative views of a Figma node tree.

There is one traversal, ``walk``. What it produces depends on the visitor:

- ``ViewBuilder`` keeps every node and truncates at ``max_depth``, giving the
  structured ``ViewNode`` tree returned to tools.
- ``DisplayPrinter`` hides shape primitives and unnamed nodes and yields one
  text line per shown node, for verbose console output.

All bounds are translated relative to the root node's origin, so every node in
one view shares a single reference frame.
"""

import math
from typing import Protocol, TypeVar

from figma_export.models.node import Node, ViewNode

T = TypeVar("T")

# Shape primitives are too granular to be useful in a printed hierarchy.
EXCLUDED_SHAPE_TYPES: frozenset[str] = frozenset(
    {
        "VECTOR",
        "RECTANGLE",
        "ELLIPSE",
        "LINE",
        "STAR",
        "BOOLEAN_OPERATION",
        "REGULAR_POLYGON",
    }
)

# Unnamed frames are still printed while they are this shallow.
FRAME_DEPTH_LIMIT = 3

DEFAULT_MAX_DEPTH = 10


class NodeVisitor(Protocol[T]):
    """Strategy consulted by ``walk`` at every node."""

    def accepts(self, node: Node, depth: int) -> bool:
        """Whether the node itself appears in the output."""
        ...

    def descends(self, node: Node, depth: int) -> bool:
        """Whether the node's children are visited at all."""
        ...

    def visit(
        self, node: Node, depth: int, bounds: dict[str, int] | None, children: list[T]
    ) -> list[T]:
        """Produce output for an accepted node, given its children's output."""
        ...


def _round(value: float) -> int:
    # Half-up, not Python's round-half-even.
    return math.floor(value + 0.5)


def origin_of(node: Node) -> tuple[float, float]:
    bbox = node.absolute_bounding_box
    return (bbox.x, bbox.y) if bbox else (0.0, 0.0)


def relative_bounds(node: Node, origin: tuple[float, float]) -> dict[str, int] | None:
    bbox = node.absolute_bounding_box
    if bbox is None:
        return None
    return {
        "x": _round(bbox.x - origin[0]),
        "y": _round(bbox.y - origin[1]),
        "width": _round(bbox.width),
        "height": _round(bbox.height),
    }


def walk(
    node: Node, origin: tuple[float, float], visitor: NodeVisitor[T], depth: int = 0
) -> list[T]:
    """Fold a node tree through a visitor, in document order.

    A node the visitor does not accept contributes its children's output
    directly to its parent, and its children stay at the same depth.
    """
    shown = visitor.accepts(node, depth)
    child_depth = depth + 1 if shown else depth

    children: list[T] = []
    if node.children and visitor.descends(node, depth):
        for child in node.children:
            children.extend(walk(child, origin, visitor, child_depth))

    if not shown:
        return children
    return visitor.visit(node, depth, relative_bounds(node, origin), children)


class ViewBuilder:
    """Visitor producing the structured ``ViewNode`` tree."""

    def __init__(
        self, *, max_depth: int = DEFAULT_MAX_DEPTH, include_children: bool = True
    ) -> None:
        self.max_depth = max_depth
        self.include_children = include_children

    def accepts(self, node: Node, depth: int) -> bool:
        return True

    def descends(self, node: Node, depth: int) -> bool:
        return self.include_children and depth < self.max_depth

    def visit(
        self,
        node: Node,
        depth: int,
        bounds: dict[str, int] | None,
        children: list[ViewNode],
    ) -> list[ViewNode]:
        view = ViewNode(
            id=node.id,
            name=node.name,
            type=node.type,
            # Figma omits "visible" for visible nodes.
            visible=node.visible if node.visible is not None else True,
            bounds=bounds,
            children=tuple(children) if children else None,
        )
        return [view]


def build_view(
    node: Node,
    origin: tuple[float, float] | None = None,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    include_children: bool = True,
) -> ViewNode:
    """Return the structured view of ``node``.

    Args:
        node: Root of the tree to view.
        origin: Reference point for bounds; defaults to the root's own origin.
        depth: Depth of ``node`` itself.
        max_depth: Children are only included while ``depth < max_depth``.
        include_children: If False, only the root is returned.
    """
    if origin is None:
        origin = origin_of(node)
    builder = ViewBuilder(max_depth=max_depth, include_children=include_children)
    (view,) = walk(node, origin, builder, depth)
    return view


class DisplayPrinter:
    """Visitor producing indented text lines for "interesting" nodes."""

    def __init__(
        self,
        *,
        frame_depth_limit: int = FRAME_DEPTH_LIMIT,
        excluded_types: frozenset[str] = EXCLUDED_SHAPE_TYPES,
    ) -> None:
        self.frame_depth_limit = frame_depth_limit
        self.excluded_types = excluded_types

    def accepts(self, node: Node, depth: int) -> bool:
        if node.type in self.excluded_types:
            return False
        return bool(node.name) or (node.type == "FRAME" and depth < self.frame_depth_limit)

    def descends(self, node: Node, depth: int) -> bool:
        return True

    def visit(
        self,
        node: Node,
        depth: int,
        bounds: dict[str, int] | None,
        children: list[str],
    ) -> list[str]:
        indent = "  " * depth
        prefix = "└─" if depth == 0 else "├─"
        line = f"{indent}{prefix} {node.name or '[unnamed]'} [{node.type}] (id: {node.id})"
        if bounds is not None:
            line += " {" + ",".join(f"{k}={v}" for k, v in bounds.items()) + "}"
        return [line, *children]


def render_display_lines(node: Node, printer: DisplayPrinter | None = None) -> list[str]:
    """Printable hierarchy lines for one root node."""
    return walk(node, origin_of(node), printer or DisplayPrinter())
