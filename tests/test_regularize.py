"""Tests for angular regularization and gap detection."""

import pytest
import numpy as np

from ppi_render.core.loaders import Pulse, SweepRecord
from ppi_render.errors import ConfigurationError
from ppi_render.processors.regularize import empty_runs, regularize

from conftest import make_sweep


def slot_ticks(slots, pulses_per_rev):
    """Encoder ticks at the centre of each slot."""
    return [int(round(s * 8192 / pulses_per_rev)) % 8192 for s in slots]


def test_quadrants_fill_every_slot(quadrant_sweep):
    grid = regularize(quadrant_sweep, 4, 1.0)

    assert grid.pulses_per_rev == 4
    assert grid.bin_count == 1
    assert grid.filled.all()
    assert grid.gap_slots == frozenset()
    np.testing.assert_array_equal(grid.echoes[:, 0], [100, 0, 200, 50])


def test_last_pulse_wins_on_collision():
    sweep = SweepRecord.from_pulses(1, 50, [
        Pulse(0, (10, 10)),
        Pulse(4096, (30, 30)),
        Pulse(3, (99, 98)),
    ])

    grid = regularize(sweep, 4, 360.0)

    np.testing.assert_array_equal(grid.echoes[0], [99, 98])
    np.testing.assert_array_equal(grid.echoes[2], [30, 30])
    assert grid.filled_count == 2


def test_wide_gap_is_flagged():
    missing = set(range(100, 110))
    sweep = make_sweep(slot_ticks([s for s in range(360) if s not in missing], 360))

    grid = regularize(sweep, 360, 1.0)

    assert grid.gap_slots == frozenset(missing)


def test_gap_at_threshold_is_not_flagged():
    """A 10 degree hole is only a gap when wider than gap_deg."""
    missing = set(range(100, 110))
    sweep = make_sweep(slot_ticks([s for s in range(360) if s not in missing], 360))

    grid = regularize(sweep, 360, 10.0)

    assert grid.gap_slots == frozenset()
    assert not grid.filled[100]


def test_gap_across_north_is_one_run():
    missing = set(range(355, 360)) | set(range(0, 5))
    sweep = make_sweep(slot_ticks([s for s in range(360) if s not in missing], 360))

    grid = regularize(sweep, 360, 9.5)

    assert grid.gap_slots == frozenset(missing)


def test_single_pulse_leaves_one_big_gap():
    sweep = make_sweep([0])

    grid = regularize(sweep, 8, 1.0)

    assert grid.gap_slots == frozenset(range(1, 8))


def test_empty_runs_wrap():
    filled = np.array([True, False, False, True, False])

    assert empty_runs(filled) == [(1, 2), (4, 1)]


def test_empty_runs_none_missing():
    assert empty_runs(np.ones(6, dtype=bool)) == []


@pytest.mark.parametrize("pulses_per_rev", [0, -4])
def test_non_positive_pulses_rejected(quadrant_sweep, pulses_per_rev):
    with pytest.raises(ConfigurationError):
        regularize(quadrant_sweep, pulses_per_rev, 1.0)


def test_negative_gap_rejected(quadrant_sweep):
    with pytest.raises(ConfigurationError):
        regularize(quadrant_sweep, 4, -1.0)


def test_grid_is_read_only(quadrant_sweep):
    grid = regularize(quadrant_sweep, 4, 1.0)

    with pytest.raises(ValueError):
        grid.echoes[0, 0] = 1
