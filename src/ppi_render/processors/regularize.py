"""Regularize raw pulses onto a fixed angular grid."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

import numpy as np

from ..core.loaders import SweepRecord
from ..core.transforms import ticks_to_slots
from ..errors import ConfigurationError, MalformedSweep

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AngularGrid:
    """
    Sweep resampled onto ``pulses_per_rev`` equal slots.

    Slot ``i`` covers ``[i, i + 1) / pulses_per_rev`` of a revolution,
    clockwise from north. ``echoes`` rows of empty slots are zero.
    """

    pulses_per_rev: int
    echoes: np.ndarray
    filled: np.ndarray
    gap_mask: np.ndarray

    @property
    def bin_count(self) -> int:
        return int(self.echoes.shape[1])

    @property
    def gap_slots(self) -> FrozenSet[int]:
        return frozenset(int(i) for i in np.flatnonzero(self.gap_mask))

    @property
    def filled_count(self) -> int:
        return int(self.filled.sum())


def check_grid_options(pulses_per_rev: int, gap_deg: float) -> None:
    """Raise ConfigurationError for options no sweep can be rendered with."""
    if pulses_per_rev <= 0:
        raise ConfigurationError(f"pulses_per_rev must be positive, got {pulses_per_rev}")
    if gap_deg < 0:
        raise ConfigurationError(f"gap_deg must be non-negative, got {gap_deg}")


def empty_runs(filled: np.ndarray) -> List[Tuple[int, int]]:
    """
    Find maximal runs of empty slots on the circular grid.

    Parameters
    ----------
    filled : np.ndarray
        Boolean occupancy per slot.

    Returns
    -------
    list
        ``(start, length)`` per run; a run may wrap past the last slot.
    """
    n = filled.size
    occupied = np.flatnonzero(filled)
    if occupied.size == 0:
        return [(0, n)] if n else []

    runs = []
    # start scanning just after a filled slot so no run is split by the wrap
    origin = int(occupied[0])
    run_start = None
    for step in range(1, n + 1):
        i = (origin + step) % n
        if not filled[i]:
            if run_start is None:
                run_start = i
        elif run_start is not None:
            runs.append((run_start, (i - run_start) % n))
            run_start = None
    return runs


def regularize(sweep: SweepRecord, pulses_per_rev: int, gap_deg: float) -> AngularGrid:
    """
    Map pulses onto a fixed angular grid and flag wide gaps.

    Parameters
    ----------
    sweep : SweepRecord
        Parsed sweep.
    pulses_per_rev : int
        Number of slots per revolution.
    gap_deg : float
        Empty runs wider than this many degrees are marked as gaps.

    Returns
    -------
    AngularGrid
        Regular grid; when several pulses share a slot the last one in file
        order is kept.

    Raises
    ------
    ConfigurationError
        If ``pulses_per_rev`` or ``gap_deg`` is invalid.
    MalformedSweep
        If the sweep has no pulses.
    """
    check_grid_options(pulses_per_rev, gap_deg)
    if len(sweep) == 0:
        raise MalformedSweep("sweep has no pulses")

    slots = ticks_to_slots(sweep.angles, pulses_per_rev)

    # last occurrence of each slot, in file order
    reversed_slots = slots[::-1]
    unique_slots, first_in_reversed = np.unique(reversed_slots, return_index=True)
    source_rows = slots.size - 1 - first_in_reversed

    echoes = np.zeros((pulses_per_rev, sweep.bin_count), dtype=np.uint8)
    echoes[unique_slots] = sweep.echoes[source_rows]
    filled = np.zeros(pulses_per_rev, dtype=bool)
    filled[unique_slots] = True

    gap_mask = np.zeros(pulses_per_rev, dtype=bool)
    for start, length in empty_runs(filled):
        width_deg = length / pulses_per_rev * 360.0
        if width_deg > gap_deg:
            idx = (start + np.arange(length)) % pulses_per_rev
            gap_mask[idx] = True

    collisions = slots.size - unique_slots.size
    logger.debug(
        "Regularized %d pulses onto %d slots: %d filled, %d collisions, %d gap slots",
        slots.size, pulses_per_rev, unique_slots.size, collisions, int(gap_mask.sum()),
    )

    for arr in (echoes, filled, gap_mask):
        arr.setflags(write=False)
    return AngularGrid(
        pulses_per_rev=pulses_per_rev,
        echoes=echoes,
        filled=filled,
        gap_mask=gap_mask,
    )
