"""Shared test fixtures."""

import copy
from typing import Any

import pytest

from figma_export.models.node import Node

FILE_ID = "ABC123"

# A frame at (100, 200) with a named text child, an unnamed rectangle, and a
# group holding an icon vector and a nested button frame.
ROOT_NODE: dict[str, Any] = {
    "id": "1:2",
    "name": "Login Screen",
    "type": "FRAME",
    "absoluteBoundingBox": {"x": 100, "y": 200, "width": 375, "height": 812},
    "fills": [{"type": "SOLID", "color": {"r": 1, "g": 1, "b": 1, "a": 1}}],
    "children": [
        {
            "id": "1:3",
            "name": "Title",
            "type": "TEXT",
            "absoluteBoundingBox": {"x": 124.4, "y": 260.5, "width": 200.6, "height": 32},
            "characters": "Welcome back",
        },
        {
            "id": "1:4",
            "name": "",
            "type": "RECTANGLE",
            "absoluteBoundingBox": {"x": 100, "y": 200, "width": 375, "height": 1},
        },
        {
            "id": "1:5",
            "name": "",
            "type": "GROUP",
            "visible": False,
            "absoluteBoundingBox": {"x": 120, "y": 400, "width": 335, "height": 48},
            "children": [
                {
                    "id": "1:6",
                    "name": "Icon",
                    "type": "VECTOR",
                    "absoluteBoundingBox": {"x": 130, "y": 412, "width": 24, "height": 24},
                },
                {
                    "id": "1:7",
                    "name": "Button",
                    "type": "FRAME",
                    "absoluteBoundingBox": {"x": 160, "y": 400, "width": 295, "height": 48},
                    "children": [
                        {
                            "id": "1:8",
                            "name": "Label",
                            "type": "TEXT",
                            "absoluteBoundingBox": {
                                "x": 180,
                                "y": 412,
                                "width": 80,
                                "height": 24,
                            },
                        }
                    ],
                },
            ],
        },
    ],
}


def make_nodes_response(
    documents: dict[str, dict[str, Any] | None] | None = None,
    *,
    name: str = "Design System",
) -> dict[str, Any]:
    """Build a ``GET /files/{id}/nodes`` body."""
    if documents is None:
        documents = {"1:2": ROOT_NODE}
    return {
        "name": name,
        "lastModified": "2025-01-15T10:00:00Z",
        "thumbnailUrl": "https://example.com/thumb.png",
        "nodes": {
            node_id: (
                {"document": copy.deepcopy(doc), "components": {}, "schemaVersion": 0}
                if doc is not None
                else None
            )
            for node_id, doc in documents.items()
        },
    }


@pytest.fixture
def root_node() -> Node:
    return Node.from_dict(copy.deepcopy(ROOT_NODE))


@pytest.fixture
def nodes_response() -> dict[str, Any]:
    return make_nodes_response()
