"""Tests for the analysis CLI commands."""

from __future__ import annotations

import io
import json
import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner
from PIL import Image

from forensight.cli import cli
from forensight.records import RecordStore


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("FORENSIGHT__")}
    env["HOME"] = str(tmp_path)
    env["COLUMNS"] = "200"
    return env


def _write_png(path: Path) -> Path:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), "green").save(buffer, "PNG")
    path.write_bytes(buffer.getvalue())
    return path


def _records_dir(tmp_path: Path) -> Path:
    return tmp_path / ".forensight" / "records"


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Forensight hashes files" in result.output
    for command in ("analyze", "show", "list", "delete", "config"):
        assert command in result.output


def test_analyze_json_output(tmp_path: Path) -> None:
    runner = CliRunner()
    image = _write_png(tmp_path / "green.png")

    result = runner.invoke(cli, ["analyze", str(image), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["errors"] == []
    (record,) = payload["records"]
    assert record["file_attributes"]["name"] == "green.png"
    assert record["signature"]["reason"] == "matched"
    assert record["metadata"]["category"] == "image"
    assert len(record["hash"]["sha256"]) == 64


def test_analyze_table_output_reports_mismatch(tmp_path: Path) -> None:
    runner = CliRunner()
    image = _write_png(tmp_path / "green.png")

    result = runner.invoke(
        cli,
        ["analyze", str(image), "--type", "image/jpeg", "--chunk-size", "8"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert "MISMATCHED" in result.output
    assert "green.png" in result.output


def test_analyze_save_then_show_list_and_delete(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image = _write_png(tmp_path / "green.png")

    result = runner.invoke(cli, ["analyze", str(image), "--save", "--quiet"], env=env)
    assert result.exit_code == 0, result.output

    store = RecordStore(_records_dir(tmp_path))
    (record_id,) = store.list_ids()

    shown = runner.invoke(cli, ["show", record_id, "--json"], env=env)
    assert shown.exit_code == 0, shown.output
    assert json.loads(shown.output)["id"] == record_id

    listed = runner.invoke(cli, ["list"], env=env)
    assert listed.exit_code == 0
    assert "green.png" in listed.output

    deleted = runner.invoke(cli, ["delete", record_id], env=env)
    assert deleted.exit_code == 0
    assert store.list_ids() == []


def test_show_missing_record_json_error(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["show", "8d1f2d4e-0c1b-4a8a-9a55-0a4b2bb0d6f1", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "not_found"


def test_list_without_records(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["list"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "No stored analysis records" in result.output
