"""Processing stages of the PPI rendering pipeline."""

from .regularize import AngularGrid, regularize, empty_runs
from .normalize import compute_scale, max_echo
from .rasterize import PixelBuffer, rasterize, resolve_slots
from .batch import (
    ConversionJob,
    JobSuccess,
    JobFailure,
    ProgressUpdate,
    BatchReport,
    default_worker_count,
    resolve_worker_count,
    plan_jobs,
    convert_file,
    run_jobs,
)

__all__ = [
    "AngularGrid",
    "regularize",
    "empty_runs",
    "compute_scale",
    "max_echo",
    "PixelBuffer",
    "rasterize",
    "resolve_slots",
    "ConversionJob",
    "JobSuccess",
    "JobFailure",
    "ProgressUpdate",
    "BatchReport",
    "default_worker_count",
    "resolve_worker_count",
    "plan_jobs",
    "convert_file",
    "run_jobs",
]
