"""Pytest fixtures for PPI renderer tests."""

from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pytest

from ppi_render.core.loaders import Pulse, SweepRecord


def write_sweep_csv(path: Path, rows: Iterable[Sequence[object]], num_bins: int = None) -> Path:
    """Write rows (status, scale, range, gain, angle, echoes...) under a header line."""
    rows = [list(r) for r in rows]
    if num_bins is None:
        num_bins = max((len(r) - 5 for r in rows), default=0)
    header = "Status,Scale,Range,Gain,Angle," + ",".join(f"Echo_{i}" for i in range(num_bins))
    lines = [header] + [",".join(str(v) for v in r) for r in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


def full_sweep_rows(num_pulses: int = 360, num_bins: int = 16, range_setting: int = 3, gain: int = 60):
    """Evenly spaced pulses covering the whole revolution."""
    rows = []
    for i in range(num_pulses):
        angle = int(round(i * 8192 / num_pulses)) % 8192
        echoes = [(i + b) % 200 + 1 for b in range(num_bins)]
        rows.append([1, 496, range_setting, gain, angle] + echoes)
    return rows


@pytest.fixture
def sample_radar_csv(tmp_path: Path) -> Path:
    """Create a minimal valid radar CSV file."""
    row1 = [1, 496, 3, 75, 10] + [128] * 64
    row2 = [1, 496, 3, 75, 20] + [64] * 64
    return write_sweep_csv(tmp_path / "test_radar.csv", [row1, row2])


@pytest.fixture
def full_sweep_csv(tmp_path: Path) -> Path:
    """A complete sweep named like a real capture."""
    return write_sweep_csv(tmp_path / "20250915_134512_925.csv", full_sweep_rows())


@pytest.fixture
def quadrant_sweep() -> SweepRecord:
    """Four pulses on the quadrant boundaries with one bin each."""
    return SweepRecord.from_pulses(
        range_setting=3,
        gain_code=60,
        pulses=[
            Pulse(0, (100,)),
            Pulse(2048, (0,)),
            Pulse(4096, (200,)),
            Pulse(6144, (50,)),
        ],
    )


@pytest.fixture(autouse=True)
def settings_file(tmp_path: Path, monkeypatch) -> Path:
    """Isolate saved settings from the real user config directory."""
    path = tmp_path / "settings" / "settings.yaml"
    monkeypatch.setenv("PPI_RENDER_SETTINGS", str(path))
    return path


def make_sweep(angles: Sequence[int], num_bins: int = 8, value: int = 100) -> SweepRecord:
    """Sweep with a constant echo value on every given angle."""
    return SweepRecord(
        range_setting=1,
        gain_code=50,
        angles=np.asarray(angles),
        echoes=np.full((len(angles), num_bins), value),
    )
