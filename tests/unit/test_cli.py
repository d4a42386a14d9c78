"""Tests for the typer CLI, with the API replaced by FakeApi."""

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from figma_export import cli, config
from figma_export.cache import ResponseCache
from tests.unit.conftest import FILE_ID, make_nodes_response
from tests.unit.fakes import FakeApi

URL = f"https://www.figma.com/design/{FILE_ID}/Login?node-id=1-2"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    # The CLI points loguru at the runner's stderr, which is gone after invoke.
    logger.remove()


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    api = FakeApi(make_nodes_response(), {"1:2": "https://cdn/1-2"})
    monkeypatch.setattr(cli, "make_api", lambda token, cache_dir: api)
    return api


def test_export_writes_images(api: FakeApi, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["export", URL, "-o", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "ABC123_1-2_login_screen.png").read_bytes() == b"\x89PNG fake"
    assert not (tmp_path / "ABC123_1-2_login_screen.json").exists()
    assert "Exported 1 image(s)" in result.stdout


def test_export_with_metadata_and_options(api: FakeApi, tmp_path: Path) -> None:
    result = runner.invoke(
        cli.app,
        [
            "export",
            URL,
            "-o",
            str(tmp_path),
            "--nodes",
            "1-2",
            "--scale",
            "1",
            "--format",
            "jpg",
            "--no-cache",
            "--with-metadata",
        ],
    )

    assert result.exit_code == 0, result.output
    metadata = json.loads((tmp_path / "ABC123_1-2_login_screen.json").read_text())
    assert metadata["format"] == "jpg"
    assert metadata["scale"] == 1
    assert api.calls[0] == ("fetch_nodes", (FILE_ID, ["1:2"], False))


def test_export_reports_skipped_nodes(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    api = FakeApi(make_nodes_response(), {"1:2": None})
    monkeypatch.setattr(cli, "make_api", lambda token, cache_dir: api)

    result = runner.invoke(cli.app, ["export", URL, "-o", str(tmp_path)])

    assert result.exit_code == 0
    assert "Skipped 1 node(s):" in result.stdout
    assert "1:2: No image URL for node 1:2" in result.stdout


def test_export_dry_run_writes_nothing(api: FakeApi, tmp_path: Path) -> None:
    out = tmp_path / "out"

    result = runner.invoke(cli.app, ["export", URL, "-o", str(out), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert not out.exists()


def test_export_verbose_prints_configuration_and_hierarchy(
    api: FakeApi, tmp_path: Path
) -> None:
    result = runner.invoke(cli.app, ["export", URL, "-o", str(tmp_path), "--verbose"])

    assert result.exit_code == 0, result.output
    assert "Configuration:" in result.stdout
    assert "  Node IDs: 1:2" in result.stdout
    assert "Node Hierarchy:" in result.stdout
    assert "└─ Login Screen [FRAME] (id: 1:2)" in result.stdout


def test_export_invalid_url_fails(api: FakeApi, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["export", "https://example.com/x", "-o", str(tmp_path)])

    assert result.exit_code == 1
    assert api.calls == []


def test_export_invalid_scale_fails(api: FakeApi, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["export", URL, "-o", str(tmp_path), "--scale", "9"])

    assert result.exit_code == 1
    assert api.calls == []


def test_export_without_token_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv(config.TOKEN_ENV_VAR, raising=False)
    monkeypatch.setattr(config, "TOKEN_FILES", [tmp_path / "missing.txt"])

    result = runner.invoke(
        cli.app, ["export", URL, "-o", str(tmp_path), "--cache-dir", str(tmp_path / "c")]
    )

    assert result.exit_code == 1


def test_info_prints_display_tree(api: FakeApi) -> None:
    result = runner.invoke(cli.app, ["info", URL])

    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert lines[0] == "Root Node: Login Screen (id: 1:2)"
    assert lines[1] == "└─ Login Screen [FRAME] (id: 1:2) {x=0,y=0,width=375,height=812}"
    assert "Icon" not in result.stdout


def test_info_json(api: FakeApi) -> None:
    result = runner.invoke(cli.app, ["info", URL, "--json", "--max-depth", "1"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["file_id"] == FILE_ID
    assert data["file_name"] == "Design System"
    hierarchy = data["nodes"][0]["hierarchy"]
    assert [c["id"] for c in hierarchy["children"]] == ["1:3", "1:4", "1:5"]
    assert "children" not in hierarchy["children"][2]


def test_exports_lists_files(tmp_path: Path) -> None:
    (tmp_path / "ABC_1-2_card.png").write_bytes(b"1234")

    result = runner.invoke(cli.app, ["exports", "-o", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Found 1 exported image(s):" in result.stdout
    assert "card  [1:2]  4 bytes" in result.stdout


def test_clear_cache(tmp_path: Path) -> None:
    cache = ResponseCache(tmp_path)
    cache.store(FILE_ID, ["1:2"], {})

    result = runner.invoke(cli.app, ["clear-cache", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert f"Removed 1 cached response(s) from {tmp_path}" in result.stdout
    assert cache.lookup(FILE_ID, ["1:2"]) is None


def test_export_unwritable_output_fails(api: FakeApi, tmp_path: Path) -> None:
    blocker = tmp_path / "output"
    blocker.write_text("a file where the output dir should be")

    result = runner.invoke(cli.app, ["export", URL, "-o", str(blocker)])

    assert result.exit_code == 1
    assert not isinstance(result.exception, OSError)
