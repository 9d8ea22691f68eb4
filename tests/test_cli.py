"""Tests for tilelink CLI commands.

This module tests the CLI commands (infer, compare, validate)
implemented in src/tilelink/cli.py.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from tile_factory import CHROMA, RED, bordered_tile, save_grid

from tilelink.cli import main


@pytest.fixture
def cli_runner() -> CliRunner:
    """Fixture providing a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def seam_config(tmp_path: Path, seam_image: Path) -> Path:
    """A run config pointing at the seam tileset."""
    cfg = tmp_path / "seam.yaml"
    cfg.write_text(
        f"image_path: {seam_image.name}\ntile_size: 8\n", encoding="utf-8"
    )
    return cfg


# ---------------------------------------------------------------------------
# CLI Entry Point Tests
# ---------------------------------------------------------------------------


def test_cli_help_flag(cli_runner: CliRunner) -> None:
    """Test that --help flag displays usage information."""
    result = cli_runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "TileLink" in result.output
    assert "infer" in result.output
    assert "compare" in result.output
    assert "validate" in result.output


def test_cli_version_flag(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output.lower() or "0.1.0" in result.output


# ---------------------------------------------------------------------------
# infer
# ---------------------------------------------------------------------------


def test_infer_seam_image(cli_runner: CliRunner, seam_image: Path) -> None:
    """infer slices the image and reports the two seam matches."""
    result = cli_runner.invoke(main, ["infer", str(seam_image), "-t", "8"])
    assert result.exit_code == 0, result.output
    assert "Sliced 2 tiles" in result.output
    assert "Compared 2 pairs, found 2 matches" in result.output
    assert "left: 1" in result.output
    assert "right: 1" in result.output


def test_infer_writes_report(
    cli_runner: CliRunner, seam_image: Path, tmp_path: Path
) -> None:
    out = tmp_path / "report" / "adjacency.json"
    result = cli_runner.invoke(
        main,
        ["infer", str(seam_image), "-t", "8", "-o", str(out), "--no-table"],
    )
    assert result.exit_code == 0, result.output
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["tiles"]["0"]["right"] == [1]
    assert report["tiles"]["1"]["left"] == [0]
    assert report["columns"] == 2
    assert report["stats"]["pairs_compared"] == 2


def test_infer_from_config(cli_runner: CliRunner, seam_config: Path) -> None:
    """IMAGE and tile size can come from the config file."""
    result = cli_runner.invoke(main, ["infer", "-c", str(seam_config), "-w", "2"])
    assert result.exit_code == 0, result.output
    assert "found 2 matches" in result.output


def test_infer_option_overrides(
    cli_runner: CliRunner, tmp_path: Path
) -> None:
    """Chroma-bordered tiles only connect when chroma is no longer excluded."""
    tile = bordered_tile(4, RED, top=CHROMA, bottom=CHROMA, left=CHROMA, right=CHROMA)
    image = save_grid(tmp_path / "chroma.png", [[tile, tile]], 4)

    default = cli_runner.invoke(main, ["infer", str(image), "-t", "4"])
    assert default.exit_code == 0, default.output
    assert "found 0 matches" in default.output

    alpha_only = cli_runner.invoke(
        main, ["infer", str(image), "-t", "4", "--exclusion", "alpha-only"]
    )
    assert alpha_only.exit_code == 0, alpha_only.output
    assert "found 8 matches" in alpha_only.output


def test_infer_without_image(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["infer"])
    assert result.exit_code == 1
    assert "Inference failed" in result.output
    assert "No tileset image" in result.output


def test_infer_image_smaller_than_tile(
    cli_runner: CliRunner, seam_image: Path
) -> None:
    result = cli_runner.invoke(main, ["infer", str(seam_image), "-t", "32"])
    assert result.exit_code == 1
    assert "Inference failed" in result.output


def test_infer_rejects_bad_threshold(
    cli_runner: CliRunner, seam_image: Path
) -> None:
    result = cli_runner.invoke(main, ["infer", str(seam_image), "--threshold", "2"])
    assert result.exit_code == 2


def test_infer_undecodable_image(cli_runner: CliRunner, tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"nope")
    result = cli_runner.invoke(main, ["infer", str(bogus), "-t", "8"])
    assert result.exit_code == 1
    assert "Cannot decode" in result.output


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


def test_compare_matching_edges(cli_runner: CliRunner, seam_image: Path) -> None:
    result = cli_runner.invoke(
        main, ["compare", str(seam_image), "0", "1", "-t", "8", "-d", "right"]
    )
    assert result.exit_code == 0, result.output
    assert "match (matched)" in result.output
    assert "valid pixels: 8 / 8 of 8" in result.output


def test_compare_mismatching_edges(cli_runner: CliRunner, seam_image: Path) -> None:
    result = cli_runner.invoke(
        main, ["compare", str(seam_image), "0", "1", "-t", "8", "-d", "left"]
    )
    assert result.exit_code == 0, result.output
    assert "no match (below-threshold)" in result.output
    assert "mismatched at: 0, 1, 2" in result.output


def test_compare_unknown_tile(cli_runner: CliRunner, seam_image: Path) -> None:
    result = cli_runner.invoke(
        main, ["compare", str(seam_image), "0", "5", "-t", "8", "-d", "up"]
    )
    assert result.exit_code == 1
    assert "No tile with id 5" in result.output


def test_compare_requires_direction(cli_runner: CliRunner, seam_image: Path) -> None:
    result = cli_runner.invoke(main, ["compare", str(seam_image), "0", "1", "-t", "8"])
    assert result.exit_code == 2


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


def test_validate_ok(cli_runner: CliRunner, seam_config: Path) -> None:
    result = cli_runner.invoke(main, ["validate", str(seam_config)])
    assert result.exit_code == 0, result.output
    assert "Configuration is valid" in result.output
    assert "Tile size: 8" in result.output
    assert "symmetric-ratio" in result.output


def test_validate_reports_warnings(cli_runner: CliRunner, tmp_path: Path) -> None:
    cfg = tmp_path / "loose.yaml"
    cfg.write_text("match:\n  match_threshold: 0\n", encoding="utf-8")
    result = cli_runner.invoke(main, ["validate", str(cfg), "--no-check-image"])
    assert result.exit_code == 0, result.output
    assert "1 warning(s)" in result.output


def test_validate_missing_image(cli_runner: CliRunner, tmp_path: Path) -> None:
    cfg = tmp_path / "missing.yaml"
    cfg.write_text("image_path: nowhere.png\n", encoding="utf-8")
    result = cli_runner.invoke(main, ["validate", str(cfg)])
    assert result.exit_code == 1
    assert "Validation failed" in result.output


def test_validate_invalid_config(cli_runner: CliRunner, tmp_path: Path) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("tile_size: -3\n", encoding="utf-8")
    result = cli_runner.invoke(main, ["validate", str(cfg), "--no-check-image"])
    assert result.exit_code == 1
    assert "Validation failed" in result.output


def test_validate_nonexistent_path(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["validate", "/no/such/config.yaml"])
    assert result.exit_code == 2




def test_validate_loads_config_once(
    cli_runner: CliRunner, seam_config: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """validate parses the YAML a single time."""
    import tilelink.cli as cli_module

    calls: list[Path] = []
    original = cli_module.load_config

    def counting_load(path: Path):  # type: ignore[no-untyped-def]
        calls.append(path)
        return original(path)

    monkeypatch.setattr(cli_module, "load_config", counting_load)
    result = cli_runner.invoke(main, ["validate", str(seam_config)])
    assert result.exit_code == 0, result.output
    assert calls == [seam_config]


# ---------------------------------------------------------------------------
# Unexpected errors
# ---------------------------------------------------------------------------


def test_infer_unwritable_output_exits_cleanly(
    cli_runner: CliRunner, seam_image: Path, tmp_path: Path
) -> None:
    """An OS error while writing the report is reported, not raised."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    out = blocker / "out.json"

    result = cli_runner.invoke(
        main, ["infer", str(seam_image), "-t", "8", "-o", str(out), "--no-table"]
    )
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Unexpected error" in result.output
    assert not out.exists()


def test_compare_unexpected_error_exits_cleanly(
    cli_runner: CliRunner, seam_image: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import tilelink.cli as cli_module

    def broken_compare(*args, **kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("edge comparison blew up")

    monkeypatch.setattr(cli_module, "compare_edges", broken_compare)
    result = cli_runner.invoke(
        main, ["compare", str(seam_image), "0", "1", "-t", "8", "-d", "right"]
    )
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Unexpected error: edge comparison blew up" in result.output


def test_validate_unexpected_error_exits_cleanly(
    cli_runner: CliRunner, seam_config: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import tilelink.cli as cli_module

    def broken_check(*args, **kwargs):  # type: ignore[no-untyped-def]
        raise PermissionError("image unreadable")

    monkeypatch.setattr(cli_module, "check_spec", broken_check)
    result = cli_runner.invoke(main, ["validate", str(seam_config)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Unexpected error" in result.output
