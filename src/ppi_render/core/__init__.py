"""Core data loading, writing, and transformation functions."""

from .loaders import (
    Pulse,
    SweepRecord,
    load_sweep_csv,
)
from .writers import default_output_name, write_png
from .transforms import (
    PixelGeometry,
    ticks_to_slots,
    pixel_offsets,
    pixel_geometry,
)

__all__ = [
    "Pulse",
    "SweepRecord",
    "load_sweep_csv",
    "default_output_name",
    "write_png",
    "PixelGeometry",
    "ticks_to_slots",
    "pixel_offsets",
    "pixel_geometry",
]
