"""Tests for CLI commands."""

import pytest
import yaml
from click.testing import CliRunner
from pathlib import Path
from PIL import Image

from ppi_render.cli.main import cli

from conftest import full_sweep_rows, write_sweep_csv


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


def test_cli_help(runner: CliRunner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Render radar PPI sweep CSVs" in result.output


def test_cli_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_render_help(runner: CliRunner):
    result = runner.invoke(cli, ["render", "--help"])

    assert result.exit_code == 0
    assert "--alpha-mode" in result.output


def test_render_single_file(runner: CliRunner, full_sweep_csv: Path, tmp_path: Path):
    out = tmp_path / "out.png"

    result = runner.invoke(
        cli, ["render", str(full_sweep_csv), "-o", str(out), "--size", "64", "--no-progress"]
    )

    assert result.exit_code == 0, result.output
    assert f"Saved {out}" in result.output
    with Image.open(out) as img:
        assert img.mode == "RGBA"
        assert img.size == (64, 64)


def test_render_batch_reports_failures(runner: CliRunner, tmp_path: Path):
    inputs = tmp_path / "capture"
    inputs.mkdir()
    write_sweep_csv(inputs / "a.csv", full_sweep_rows(num_bins=4))
    write_sweep_csv(inputs / "b.csv", [[1, 496, 3, 60, 0, "x", 2]])
    out = tmp_path / "images"

    result = runner.invoke(
        cli, ["render", str(inputs), "-o", str(out), "--size", "32", "-j", "2", "--no-progress"]
    )

    assert result.exit_code == 1
    assert "1 succeeded, 1 failed" in result.output
    assert "b.csv" in result.output
    assert (out / "capture" / "3_60_a.png").is_file()


def test_render_progress_lines(runner: CliRunner, tmp_path: Path):
    a = write_sweep_csv(tmp_path / "a.csv", full_sweep_rows(num_pulses=90, num_bins=4))
    b = write_sweep_csv(tmp_path / "b.csv", full_sweep_rows(num_pulses=90, num_bins=4))

    result = runner.invoke(
        cli, ["render", str(a), str(b), "-o", str(tmp_path / "out"), "--size", "16"]
    )

    assert result.exit_code == 0, result.output
    assert "2 succeeded, 0 failed" in result.output
    assert "files/s" in result.output


def test_render_multiple_inputs_to_png_is_usage_error(runner: CliRunner, tmp_path: Path):
    a = write_sweep_csv(tmp_path / "a.csv", full_sweep_rows(num_bins=2))
    b = write_sweep_csv(tmp_path / "b.csv", full_sweep_rows(num_bins=2))

    result = runner.invoke(cli, ["render", str(a), str(b), "-o", str(tmp_path / "x.png")])

    assert result.exit_code == 2
    assert "must be a directory" in result.output


def test_render_unknown_colormap(runner: CliRunner, full_sweep_csv: Path):
    result = runner.invoke(cli, ["render", str(full_sweep_csv), "--cmap", "jet"])

    assert result.exit_code == 2
    assert "Unknown colormap" in result.output


def test_render_single_malformed_file(runner: CliRunner, tmp_path: Path):
    bad = write_sweep_csv(tmp_path / "bad.csv", [[1, 496, 3, 60, 9000, 1, 2]])

    result = runner.invoke(
        cli, ["render", str(bad), "-o", str(tmp_path / "bad.png"), "--no-progress"]
    )

    assert result.exit_code == 1
    assert "Error" in result.output
    assert not (tmp_path / "bad.png").exists()


def test_render_save_settings(runner: CliRunner, settings_file: Path, full_sweep_csv: Path, tmp_path: Path):
    result = runner.invoke(
        cli,
        [
            "render", str(full_sweep_csv), "-o", str(tmp_path / "o.png"),
            "--size", "48", "--cmap", "magma", "--save-settings", "--no-progress",
        ],
    )

    assert result.exit_code == 0, result.output
    saved = yaml.safe_load(settings_file.read_text())
    assert saved["render"]["size"] == 48
    assert saved["render"]["cmap"] == "magma"

    shown = runner.invoke(cli, ["config"])
    assert "size: 48" in shown.output


def test_config_command_defaults(runner: CliRunner):
    result = runner.invoke(cli, ["config"])

    assert result.exit_code == 0
    data = yaml.safe_load(result.output)
    assert data["render"]["pulses_per_rev"] == 720
    assert data["batch"]["worker_count"] == 0


def test_config_file_option(runner: CliRunner, settings_file: Path, tmp_path: Path):
    conf = tmp_path / "pipeline.yaml"
    conf.write_text("render:\n  cmap: turbo\n")

    result = runner.invoke(cli, ["-c", str(conf), "config", "--save"])

    assert result.exit_code == 0, result.output
    assert "cmap: turbo" in result.output
    assert settings_file.is_file()


def test_invalid_config_file(runner: CliRunner, tmp_path: Path):
    conf = tmp_path / "pipeline.yaml"
    conf.write_text("render:\n  size: -1\n")

    result = runner.invoke(cli, ["-c", str(conf), "config"])

    assert result.exit_code == 2


def test_colormaps_command(runner: CliRunner):
    result = runner.invoke(cli, ["colormaps"])

    assert result.exit_code == 0
    assert result.output.split() == ["viridis", "turbo", "magma", "gray"]


def test_settings_isolated_from_user_directory(settings_file: Path, tmp_path: Path):
    assert settings_file.parent.parent == tmp_path
    assert not settings_file.exists()


@pytest.mark.parametrize("text", ["render:\n  size: -5\n", "render: [1, 2\n"])
def test_broken_saved_settings_fall_back_to_defaults(
    runner: CliRunner, settings_file: Path, full_sweep_csv: Path, tmp_path: Path, text
):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(text)

    listed = runner.invoke(cli, ["colormaps"])
    assert listed.exit_code == 0, listed.output
    assert "viridis" in listed.output

    out = tmp_path / "out.png"
    rendered = runner.invoke(
        cli, ["render", str(full_sweep_csv), "-o", str(out), "--size", "32", "--no-progress"]
    )
    assert rendered.exit_code == 0, rendered.output
    assert out.is_file()

    repaired = runner.invoke(cli, ["config", "--save"])
    assert repaired.exit_code == 0, repaired.output
    assert yaml.safe_load(settings_file.read_text())["render"]["size"] == 1024
