"""Batch conversion of sweep CSVs to PNG images."""

from __future__ import annotations

import logging
import math
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from ..config import RenderConfig
from ..core.loaders import load_sweep_csv
from ..core.writers import default_output_name, write_png
from ..errors import ConfigurationError, RenderError
from .normalize import compute_scale
from .rasterize import rasterize
from .regularize import check_grid_options, regularize

logger = logging.getLogger(__name__)

CPU_FRACTION = 0.9


@dataclass(frozen=True)
class ConversionJob:
    """One input file and where its image goes."""

    input_path: Path
    output_path: Path
    output_is_dir: bool
    config: RenderConfig = field(default_factory=RenderConfig)

    def resolve_output(self, range_setting: int, gain_code: int) -> Path:
        """Final PNG path once the sweep's range and gain are known."""
        if not self.output_is_dir:
            return self.output_path
        name = default_output_name(range_setting, gain_code, self.input_path.stem)
        return self.output_path / name


@dataclass(frozen=True)
class JobSuccess:
    input_path: Path
    output_path: Path

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class JobFailure:
    input_path: Path
    reason: str
    error_type: str = "RenderError"

    @property
    def ok(self) -> bool:
        return False


JobOutcome = Union[JobSuccess, JobFailure]


@dataclass(frozen=True)
class ProgressUpdate:
    """Emitted after each finished job."""

    done: int
    total: int
    input_path: Path
    ok: bool
    files_per_second: float


@dataclass
class BatchReport:
    """Outcomes of a batch, in job order."""

    outcomes: List[JobOutcome] = field(default_factory=list)

    @property
    def successes(self) -> List[JobSuccess]:
        return [o for o in self.outcomes if isinstance(o, JobSuccess)]

    @property
    def failures(self) -> List[JobFailure]:
        return [o for o in self.outcomes if isinstance(o, JobFailure)]

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        lines = [f"{len(self.successes)} succeeded, {len(self.failures)} failed"]
        for failure in self.failures:
            lines.append(f"  FAILED {failure.input_path}: {failure.reason}")
        return "\n".join(lines)


def default_worker_count(cpu_count: Optional[int] = None) -> int:
    """
    Number of workers used when none is requested.

    Parameters
    ----------
    cpu_count : int, optional
        Hardware parallelism. Defaults to ``os.cpu_count()``.

    Returns
    -------
    int
        90% of the cores, rounded up, at least 1.
    """
    if cpu_count is None:
        cpu_count = os.cpu_count() or 1
    return max(1, math.ceil(cpu_count * CPU_FRACTION))


def resolve_worker_count(requested: int, cpu_count: Optional[int] = None) -> int:
    """Map a requested worker count (0 = default) to the pool size."""
    if requested < 0:
        raise ConfigurationError(f"worker_count must be >= 0, got {requested}")
    if requested == 0:
        return default_worker_count(cpu_count)
    return requested


def find_csv_files(directory: Path) -> List[Path]:
    """Sorted CSV files directly inside a directory (extension case-insensitive)."""
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".csv")


def collect_inputs(paths: Sequence[Path]) -> List[Tuple[Path, Optional[str]]]:
    """
    Expand input paths into CSV files.

    Parameters
    ----------
    paths : sequence of Path
        CSV files and/or directories of CSV files.

    Returns
    -------
    list
        ``(csv_path, group)`` pairs where ``group`` is the source directory
        name for files found by expanding a directory, else None.
    """
    inputs: List[Tuple[Path, Optional[str]]] = []
    for path in paths:
        if path.is_dir():
            files = find_csv_files(path)
            if not files:
                logger.warning("No CSV files found in %s", path)
            inputs.extend((f, path.name) for f in files)
        else:
            inputs.append((path, None))
    return inputs


def default_output_dir(input_path: Path, pulses_per_rev: int) -> Path:
    """Sibling ``<folder>_img_<pulses>`` directory next to the input's folder."""
    folder = input_path.parent
    return folder.parent / f"{folder.name or 'output'}_img_{pulses_per_rev}"


def plan_jobs(
    paths: Sequence[Path],
    output: Optional[Path],
    config: Optional[RenderConfig] = None,
) -> List[ConversionJob]:
    """
    Build conversion jobs and decide where each image is written.

    Parameters
    ----------
    paths : sequence of Path
        Input CSV files and/or directories.
    output : Path, optional
        PNG file (single input only) or directory. Without it, images go
        to a ``<folder>_img_<pulses>`` directory beside each input folder.
    config : RenderConfig, optional
        Rendering options snapshotted into every job.

    Returns
    -------
    list of ConversionJob

    Raises
    ------
    ConfigurationError
        If there are no inputs, several inputs share a single-file
        destination, or two inputs would produce the same image path.
    """
    if config is None:
        config = RenderConfig()
    check_grid_options(config.pulses_per_rev, config.gap_deg)

    inputs = collect_inputs(paths)
    if not inputs:
        raise ConfigurationError("No CSV inputs to convert")
    multiple = len(inputs) > 1 or any(group is not None for _, group in inputs)

    jobs = []
    if output is None:
        for csv_path, _ in inputs:
            out_dir = default_output_dir(csv_path, config.pulses_per_rev)
            jobs.append(ConversionJob(csv_path, out_dir, True, config))
        _check_distinct_outputs(jobs)
        return jobs

    if output.exists():
        output_is_dir = output.is_dir()
    else:
        output_is_dir = output.suffix.lower() != ".png"

    if multiple and not output_is_dir:
        raise ConfigurationError(
            f"Output {output} must be a directory when converting {len(inputs)} inputs"
        )

    for csv_path, group in inputs:
        if not output_is_dir:
            jobs.append(ConversionJob(csv_path, output, False, config))
            continue
        out_dir = output / group if group is not None else output
        jobs.append(ConversionJob(csv_path, out_dir, True, config))
    _check_distinct_outputs(jobs)
    return jobs


def _check_distinct_outputs(jobs: Sequence[ConversionJob]) -> None:
    # output names only add range and gain to the input stem
    seen = {}
    for job in jobs:
        key = (job.output_path, job.input_path.stem)
        if key in seen:
            raise ConfigurationError(
                f"Inputs {seen[key]} and {job.input_path} would write to the same image "
                f"in {job.output_path}"
            )
        seen[key] = job.input_path


def convert_file(job: ConversionJob) -> Path:
    """
    Run the full pipeline for one job.

    Parameters
    ----------
    job : ConversionJob
        Input, destination and rendering options.

    Returns
    -------
    Path
        Written PNG path.
    """
    config = job.config
    sweep = load_sweep_csv(job.input_path)
    grid = regularize(sweep, config.pulses_per_rev, config.gap_deg)
    scale = compute_scale(sweep)
    buffer = rasterize(grid, scale, config.colormap, config.size, config.alpha_mode)
    return write_png(job.resolve_output(sweep.range_setting, sweep.gain_code), buffer)


def _run_job(job: ConversionJob, stop_event: Optional[threading.Event]) -> JobOutcome:
    if stop_event is not None and stop_event.is_set():
        return JobFailure(job.input_path, "cancelled before start", "Cancelled")
    try:
        out_path = convert_file(job)
    except (RenderError, OSError) as exc:
        logger.warning("Failed %s: %s", job.input_path, exc)
        return JobFailure(job.input_path, str(exc), type(exc).__name__)
    except Exception as exc:
        logger.exception("Unexpected error converting %s", job.input_path)
        return JobFailure(job.input_path, f"unexpected error: {exc}", type(exc).__name__)

    logger.info("%s -> %s", job.input_path.name, out_path)
    return JobSuccess(job.input_path, out_path)


def run_jobs(
    jobs: Sequence[ConversionJob],
    worker_count: int,
    progress: Optional[Callable[[ProgressUpdate], None]] = None,
    stop_event: Optional[threading.Event] = None,
) -> BatchReport:
    """
    Convert every job on a fixed-size thread pool.

    Parameters
    ----------
    jobs : sequence of ConversionJob
        Independent jobs.
    worker_count : int
        Pool size, at least 1 (see ``resolve_worker_count``).
    progress : callable, optional
        Called on the calling thread after each job finishes.
    stop_event : threading.Event, optional
        When set, jobs that have not started yet are reported as cancelled.
        Running jobs always finish.

    Returns
    -------
    BatchReport
        One outcome per job, in job order. A failing job never stops the
        others.
    """
    if worker_count < 1:
        raise ConfigurationError(f"worker_count must be >= 1, got {worker_count}")

    total = len(jobs)
    outcomes: List[Optional[JobOutcome]] = [None] * total
    if total == 0:
        return BatchReport()

    logger.info("Converting %d files with %d workers", total, worker_count)
    start = time.perf_counter()
    done = 0

    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="ppi-render") as executor:
        future_to_idx = {
            executor.submit(_run_job, job, stop_event): idx
            for idx, job in enumerate(jobs)
        }
        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            outcome = future.result()
            outcomes[idx] = outcome
            done += 1

            if progress is not None:
                elapsed = time.perf_counter() - start
                rate = done / elapsed if elapsed > 0 else 0.0
                progress(ProgressUpdate(done, total, jobs[idx].input_path, outcome.ok, rate))

    report = BatchReport(outcomes=[o for o in outcomes if o is not None])
    logger.info(
        "Batch finished in %.2fs: %d succeeded, %d failed",
        time.perf_counter() - start, len(report.successes), len(report.failures),
    )
    return report
