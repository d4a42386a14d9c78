"""Tests for the MCP tool core functions (no MCP context needed)."""

from pathlib import Path

import pytest

from figma_export.errors import ExportCancelledError
from figma_export.mcp.server import (
    figma_export_image,
    figma_get_node_info,
    figma_list_exports,
)
from tests.unit.conftest import FILE_ID, ROOT_NODE, make_nodes_response
from tests.unit.fakes import FakeApi

URL = f"https://www.figma.com/design/{FILE_ID}/Login?node-id=1-2"


@pytest.fixture
def api() -> FakeApi:
    return FakeApi(make_nodes_response(), {"1:2": "https://cdn/1-2"})


class TestExportImage:
    def test_exports_node_from_url(self, api: FakeApi, tmp_path: Path) -> None:
        result = figma_export_image(api, figma_url=URL, output_dir=tmp_path)

        assert result["success"] is True
        assert result["file_id"] == FILE_ID
        assert result["node_ids"] == ["1:2"]
        assert result["skipped"] == []
        assert result["message"] == "Exported 1 of 1 image(s)"
        [entry] = result["exported_files"]
        assert Path(entry["image"]).read_bytes() == b"\x89PNG fake"
        # Metadata is on by default for MCP callers.
        assert Path(entry["metadata"]).is_file()

    def test_explicit_node_ids_win(self, tmp_path: Path) -> None:
        api = FakeApi(
            make_nodes_response({"3:4": {"id": "3:4", "name": "Card", "type": "FRAME"}}),
            {"3:4": "https://cdn/3-4"},
        )

        result = figma_export_image(
            api, figma_url=URL, node_ids=["3-4"], output_dir=tmp_path, with_metadata=False
        )

        assert result["node_ids"] == ["3:4"]
        assert "metadata" not in result["exported_files"][0]

    def test_reports_skipped_nodes(self, tmp_path: Path) -> None:
        api = FakeApi(make_nodes_response(), {"1:2": None})

        result = figma_export_image(api, figma_url=URL, output_dir=tmp_path)

        assert result["success"] is True
        assert result["exported_files"] == []
        assert result["skipped"] == [{"node_id": "1:2", "reason": "No image URL for node 1:2"}]

    def test_invalid_url_is_an_error_result(self, api: FakeApi, tmp_path: Path) -> None:
        result = figma_export_image(api, figma_url="not a url", output_dir=tmp_path)

        assert result["success"] is False
        assert "error" in result
        assert api.calls == []

    def test_missing_node_ids_is_an_error_result(self, api: FakeApi, tmp_path: Path) -> None:
        result = figma_export_image(
            api, figma_url=f"https://www.figma.com/file/{FILE_ID}/X", output_dir=tmp_path
        )

        assert result == {"success": False, "error": result["error"]}
        assert "Node IDs are required" in result["error"]

    def test_invalid_options_are_an_error_result(self, api: FakeApi, tmp_path: Path) -> None:
        result = figma_export_image(api, figma_url=URL, scale=10, output_dir=tmp_path)

        assert result["success"] is False
        assert "scale" in result["error"]

    def test_unwritable_output_dir_is_an_error_result(
        self, api: FakeApi, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "output"
        blocker.write_text("a file where the output dir should be")

        result = figma_export_image(api, figma_url=URL, output_dir=blocker)

        assert result["success"] is False
        assert api.calls == []

    def test_cancellation_propagates(self, tmp_path: Path) -> None:
        class CancelledApi(FakeApi):
            def fetch_nodes(self, file_id, node_ids, *, use_cache=True):  # type: ignore[no-untyped-def]
                raise ExportCancelledError("Export cancelled while waiting to retry")

        with pytest.raises(ExportCancelledError):
            figma_export_image(CancelledApi(), figma_url=URL, output_dir=tmp_path)


class TestGetNodeInfo:
    def test_returns_hierarchy(self, api: FakeApi) -> None:
        result = figma_get_node_info(api, figma_url=URL)

        assert result["success"] is True
        assert result["file_name"] == "Design System"
        assert result["last_modified"] == "2025-01-15T10:00:00Z"
        assert result["message"] == "Retrieved information for 1 node(s)"
        hierarchy = result["nodes"][0]["hierarchy"]
        assert hierarchy["id"] == "1:2"
        assert hierarchy["bounds"] == {"x": 0, "y": 0, "width": 375, "height": 812}
        assert "missing_node_ids" not in result

    def test_max_depth_is_clamped(self, api: FakeApi) -> None:
        result = figma_get_node_info(api, figma_url=URL, max_depth=0)

        hierarchy = result["nodes"][0]["hierarchy"]
        assert len(hierarchy["children"]) == len(ROOT_NODE["children"])
        assert all("children" not in c for c in hierarchy["children"])

    def test_without_children(self, api: FakeApi) -> None:
        result = figma_get_node_info(api, figma_url=URL, include_children=False)

        assert "children" not in result["nodes"][0]["hierarchy"]

    def test_reports_missing_nodes(self) -> None:
        api = FakeApi(make_nodes_response({"1:2": ROOT_NODE, "9:9": None}))

        result = figma_get_node_info(api, figma_url=URL, node_ids=["1:2", "9:9"])

        assert [n["node_id"] for n in result["nodes"]] == ["1:2"]
        assert result["missing_node_ids"] == ["9:9"]

    def test_passes_cache_flag(self, api: FakeApi) -> None:
        figma_get_node_info(api, figma_url=URL, use_cache=False)

        assert api.calls == [("fetch_nodes", (FILE_ID, ["1:2"], False))]

    def test_invalid_url_is_an_error_result(self, api: FakeApi) -> None:
        result = figma_get_node_info(api, figma_url="https://example.com/nothing")

        assert result["success"] is False


class TestListExports:
    def test_missing_dir(self, tmp_path: Path) -> None:
        result = figma_list_exports(output_dir=tmp_path / "missing")

        assert result["success"] is True
        assert result["count"] == 0
        assert result["message"] == "Output directory does not exist"

    def test_lists_exports_after_export(self, api: FakeApi, tmp_path: Path) -> None:
        figma_export_image(api, figma_url=URL, output_dir=tmp_path)

        result = figma_list_exports(output_dir=tmp_path, file_id=FILE_ID)

        assert result["count"] == 1
        assert result["exports"][0]["node_name"] == "login_screen"
        assert result["exports"][0]["exported_at"]
        assert figma_list_exports(output_dir=tmp_path, file_id="OTHER")["count"] == 0
