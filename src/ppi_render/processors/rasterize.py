"""Polar-to-Cartesian rasterization of a regularized sweep."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

import numpy as np

from ..core.transforms import pixel_geometry
from ..errors import ConfigurationError
from ..visualization.colormaps import Colormap
from .regularize import AngularGrid

logger = logging.getLogger(__name__)

ALPHA_MODES = ("scaled", "binary")


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Row-major RGBA image, ``pixels`` shaped (height, width, 4) uint8."""

    width: int
    height: int
    pixels: np.ndarray

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()


def resolve_slots(grid: AngularGrid) -> np.ndarray:
    """
    Choose the slot whose echoes are drawn for each slot of the grid.

    Parameters
    ----------
    grid : AngularGrid
        Regularized sweep.

    Returns
    -------
    np.ndarray
        Source slot per slot: itself when filled, -1 inside a flagged gap,
        otherwise the nearest filled slot. Equal distances prefer the
        clockwise neighbour (higher index).
    """
    n = grid.pulses_per_rev
    filled = grid.filled
    resolved = np.where(filled, np.arange(n), -1).astype(np.intp)

    for i in np.flatnonzero(~filled & ~grid.gap_mask):
        for d in range(1, n):
            cw = (i + d) % n
            if filled[cw]:
                resolved[i] = cw
                break
            ccw = (i - d) % n
            if filled[ccw]:
                resolved[i] = ccw
                break
    return resolved


def rasterize(
    grid: AngularGrid,
    scale: float,
    colormap: Union[Colormap, str],
    size: int,
    alpha_mode: str = "scaled",
) -> PixelBuffer:
    """
    Render a regularized sweep as a square north-up RGBA image.

    Parameters
    ----------
    grid : AngularGrid
        Regularized sweep.
    scale : float
        Factor mapping echo values to [0, 1], see ``compute_scale``.
    colormap : Colormap or str
        Palette for echo intensity.
    size : int
        Output side length in pixels. The outermost range bin touches the
        inscribed circle.
    alpha_mode : {"scaled", "binary"}
        ``scaled`` makes opacity follow intensity; ``binary`` draws every
        non-zero echo fully opaque.

    Returns
    -------
    PixelBuffer
        Pixels outside the circle, beyond the last bin, inside a flagged gap
        or with a zero echo are fully transparent.
    """
    if size <= 0:
        raise ConfigurationError(f"size must be positive, got {size}")
    if alpha_mode not in ALPHA_MODES:
        raise ConfigurationError(f"alpha_mode must be one of {ALPHA_MODES}, got {alpha_mode!r}")
    if isinstance(colormap, str) and not isinstance(colormap, Colormap):
        colormap = Colormap.from_name(colormap)

    geometry = pixel_geometry(size, grid.pulses_per_rev, grid.bin_count)
    source = resolve_slots(grid)

    pixel_source = source[geometry.slots]
    covered = geometry.inside & (pixel_source >= 0)

    echo = grid.echoes[pixel_source[covered], geometry.bins[covered]]
    intensity = np.clip(echo.astype(np.float64) * scale, 0.0, 1.0)

    if alpha_mode == "binary":
        alpha = np.full(echo.shape, 255, dtype=np.uint8)
    else:
        alpha = np.rint(intensity * 255.0).astype(np.uint8)

    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    rgba = np.empty((echo.size, 4), dtype=np.uint8)
    rgba[:, :3] = colormap.lookup(intensity)
    rgba[:, 3] = alpha
    # zero echoes stay fully transparent black
    rgba[echo == 0] = 0
    pixels[covered] = rgba

    logger.debug(
        "Rasterized %dx%d image: %d covered pixels, %d opaque",
        size, size, int(covered.sum()), int(np.count_nonzero(rgba[:, 3])),
    )
    return PixelBuffer(width=size, height=size, pixels=pixels)
