"""Per-sweep intensity normalization."""

from __future__ import annotations

from ..core.loaders import SweepRecord


def max_echo(sweep: SweepRecord) -> int:
    """Return the largest echo value over every pulse of the sweep."""
    return int(sweep.echoes.max())


def compute_scale(sweep: SweepRecord) -> float:
    """
    Scale factor mapping echo values onto the colormap's [0, 1] domain.

    Parameters
    ----------
    sweep : SweepRecord
        Parsed sweep. All pulses are scanned, including ones that a
        regularized grid would later drop.

    Returns
    -------
    float
        ``1 / max(1, max echo)``; exactly 1.0 for an all-zero sweep.
    """
    return 1.0 / max(1, max_echo(sweep))
