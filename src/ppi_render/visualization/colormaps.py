"""Fixed colormap lookup tables used for rendering echo intensity."""

from __future__ import annotations

from enum import Enum
from typing import Dict

import matplotlib
import numpy as np

from ..errors import ConfigurationError

TABLE_SIZE = 256

_ALIASES = {
    "grey": "gray",
    "grayscale": "gray",
    "greyscale": "gray",
}


class Colormap(str, Enum):
    """Supported palettes."""

    VIRIDIS = "viridis"
    TURBO = "turbo"
    MAGMA = "magma"
    GRAY = "gray"

    @classmethod
    def from_name(cls, name: str) -> "Colormap":
        """
        Look up a palette by (case-insensitive) name.

        Raises
        ------
        ConfigurationError
            If the name is not a supported palette.
        """
        key = name.strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(c.value for c in cls)
            raise ConfigurationError(f"Unknown colormap: {name!r} (choose from {choices})") from None

    @property
    def table(self) -> np.ndarray:
        """Read-only (256, 3) uint8 RGB table."""
        return _TABLES[self]

    def lookup(self, values: np.ndarray) -> np.ndarray:
        """
        Map normalized values to RGB.

        Parameters
        ----------
        values : np.ndarray
            Scalars, clipped to [0, 1].

        Returns
        -------
        np.ndarray
            uint8 array of shape ``values.shape + (3,)``.
        """
        v = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
        idx = np.rint(v * (TABLE_SIZE - 1)).astype(np.intp)
        return self.table[idx]

    def __call__(self, value: float) -> tuple:
        r, g, b = self.lookup(np.array(value))
        return int(r), int(g), int(b)


def _build_table(cmap: Colormap) -> np.ndarray:
    if cmap is Colormap.GRAY:
        ramp = np.arange(TABLE_SIZE, dtype=np.uint8)
        table = np.stack([ramp, ramp, ramp], axis=1)
    else:
        rgba = matplotlib.colormaps[cmap.value](np.linspace(0.0, 1.0, TABLE_SIZE))
        table = np.rint(rgba[:, :3] * 255.0).astype(np.uint8)
    table.setflags(write=False)
    return table


_TABLES: Dict[Colormap, np.ndarray] = {cmap: _build_table(cmap) for cmap in Colormap}
