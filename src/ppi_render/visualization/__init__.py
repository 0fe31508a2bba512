"""Colormaps for rendered sweeps."""

from .colormaps import Colormap

__all__ = [
    "Colormap",
]
