"""Angle and pixel coordinate transformations."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from .loaders import TICKS_PER_REV

TWO_PI = 2.0 * np.pi


def ticks_to_slots(angles: np.ndarray, pulses_per_rev: int) -> np.ndarray:
    """
    Map encoder ticks to the nearest angular slot.

    Parameters
    ----------
    angles : np.ndarray
        Encoder angles in ticks, 0..8191.
    pulses_per_rev : int
        Number of slots in a full revolution.

    Returns
    -------
    np.ndarray
        Slot indices in ``[0, pulses_per_rev)``; ties round half to even.
    """
    scaled = np.asarray(angles, dtype=np.float64) / TICKS_PER_REV * pulses_per_rev
    return np.rint(scaled).astype(np.intp) % pulses_per_rev


@dataclass(frozen=True)
class PixelGeometry:
    """Per-pixel sweep coordinates of a square output image."""

    size: int
    slots: np.ndarray
    bins: np.ndarray
    inside: np.ndarray


def pixel_offsets(size: int) -> tuple:
    """
    Return (east, north) offsets of each pixel from the image centre.

    Both arrays have shape (size, size), indexed ``[y, x]``.
    """
    half = size / 2.0
    coords = np.arange(size, dtype=np.float64)
    dx = coords[None, :] - half
    # equals -dy but keeps the centre row at +0.0 so it points north
    up = half - coords[:, None]
    return np.broadcast_arrays(dx, up)


@lru_cache(maxsize=8)
def pixel_geometry(size: int, pulses_per_rev: int, bin_count: int) -> PixelGeometry:
    """
    Inverse polar mapping for every pixel of a ``size`` x ``size`` image.

    Parameters
    ----------
    size : int
        Output image side length in pixels.
    pulses_per_rev : int
        Angular slots per revolution.
    bin_count : int
        Range bins per pulse; the outermost bin reaches the image edge.

    Returns
    -------
    PixelGeometry
        Read-only slot and bin index per pixel, plus the mask of pixels that
        fall inside the inscribed circle and a valid range bin. Index arrays
        hold 0 where ``inside`` is False.
    """
    half = size / 2.0
    dx, up = pixel_offsets(size)

    dist2 = dx * dx + up * up
    inside = dist2 <= half * half
    distance = np.sqrt(dist2)
    # 0 at north, increasing clockwise
    angle = np.mod(np.arctan2(dx, up), TWO_PI)

    bins = np.rint(distance / half * bin_count).astype(np.intp)
    inside &= bins < bin_count

    slots = np.floor(angle / TWO_PI * pulses_per_rev).astype(np.intp) % pulses_per_rev

    bins = np.where(inside, bins, 0)
    slots = np.where(inside, slots, 0)
    for arr in (slots, bins, inside):
        arr.setflags(write=False)
    return PixelGeometry(size=size, slots=slots, bins=bins, inside=inside)
