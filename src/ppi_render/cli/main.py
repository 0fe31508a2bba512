"""Main CLI entry point for the PPI renderer."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml

from .. import __version__
from ..config import PipelineConfig, load_config, load_settings, save_settings, settings_path
from ..errors import ConfigurationError
from ..visualization.colormaps import Colormap

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: int) -> None:
    """Map -v count to a log level: WARNING, INFO, DEBUG."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("ppi_render").setLevel(level)


@click.group()
@click.option(
    "-c", "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to YAML config file.",
)
@click.option(
    "--settings-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="PPI_RENDER_SETTINGS",
    help="Saved settings file (defaults to the user config directory).",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity.")
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    settings_file: Optional[Path],
    verbose: int,
) -> None:
    """Render radar PPI sweep CSVs as transparent PNG images."""
    setup_logging(verbose)
    ctx.ensure_object(dict)

    if settings_file is None:
        settings_file = settings_path()

    if config:
        try:
            ctx.obj["config"] = load_config(config)
        except ConfigurationError as exc:
            raise click.UsageError(str(exc)) from exc
    else:
        try:
            ctx.obj["config"] = load_settings(settings_file) or PipelineConfig()
        except ConfigurationError as exc:
            # unreadable saved settings fall back to defaults
            logger.warning("Ignoring saved settings: %s", exc)
            ctx.obj["config"] = PipelineConfig()

    ctx.obj["settings_file"] = settings_file
    ctx.obj["verbose"] = verbose


@cli.command("render")
@click.argument(
    "inputs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    help="Output PNG (single input) or directory.",
)
@click.option("--pulses", "pulses_per_rev", type=int, help="Angular slots per revolution.")
@click.option("--gap-deg", type=float, help="Empty sectors wider than this render transparent.")
@click.option("--size", type=int, help="Output image side length in pixels.")
@click.option("--cmap", type=str, help="Colormap: viridis, turbo, magma or gray.")
@click.option(
    "--alpha-mode",
    type=click.Choice(["scaled", "binary"]),
    help="Opacity follows intensity (scaled) or is fully opaque (binary).",
)
@click.option("--jobs", "-j", "worker_count", type=int, help="Worker threads (0 = 90% of cores).")
@click.option("--save-settings", "remember", is_flag=True, help="Remember these options as defaults.")
@click.option("--progress/--no-progress", default=True, help="Report each finished file.")
@click.pass_context
def render(
    ctx: click.Context,
    inputs: Tuple[Path, ...],
    output: Optional[Path],
    pulses_per_rev: Optional[int],
    gap_deg: Optional[float],
    size: Optional[int],
    cmap: Optional[str],
    alpha_mode: Optional[str],
    worker_count: Optional[int],
    remember: bool,
    progress: bool,
) -> None:
    """Convert radar sweep CSV files (or folders of them) to PPI images."""
    from ..processors.batch import plan_jobs, resolve_worker_count, run_jobs

    base: PipelineConfig = ctx.obj["config"]

    try:
        config = base.with_overrides(
            pulses_per_rev=pulses_per_rev,
            gap_deg=gap_deg,
            size=size,
            cmap=cmap,
            alpha_mode=alpha_mode,
            worker_count=worker_count,
        )
        jobs = plan_jobs(list(inputs), output, config.render)
        workers = resolve_worker_count(config.batch.worker_count)
    except ConfigurationError as exc:
        raise click.UsageError(str(exc)) from exc

    if remember:
        path = _save(config, ctx.obj["settings_file"])
        click.echo(f"Settings saved to {path}")

    def report_progress(update) -> None:
        status = "ok" if update.ok else "FAILED"
        click.echo(
            f"[{update.done}/{update.total}] {update.input_path.name} {status} "
            f"({update.files_per_second:.1f} files/s)",
            err=True,
        )

    report = run_jobs(jobs, workers, progress=report_progress if progress else None)

    if len(jobs) == 1:
        if not report.ok:
            raise click.ClickException(report.failures[0].reason)
        click.echo(f"Saved {report.successes[0].output_path}")
        return

    click.echo(report.summary())
    if not report.ok:
        ctx.exit(1)


@cli.command("config")
@click.option("--save", is_flag=True, help="Persist the effective configuration as defaults.")
@click.pass_context
def show_config(ctx: click.Context, save: bool) -> None:
    """Print the effective configuration as YAML."""
    config: PipelineConfig = ctx.obj["config"]
    click.echo(yaml.dump(config.model_dump(), default_flow_style=False).rstrip())
    if save:
        path = _save(config, ctx.obj["settings_file"])
        click.echo(f"Settings saved to {path}")


@cli.command("colormaps")
def list_colormaps() -> None:
    """List supported colormaps."""
    for cmap in Colormap:
        click.echo(cmap.value)


def _save(config: PipelineConfig, path: Path) -> Path:
    try:
        return save_settings(config, path)
    except OSError as exc:
        raise click.ClickException(f"Cannot save settings to {path}: {exc}") from exc


if __name__ == "__main__":
    cli()
