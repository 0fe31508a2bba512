"""Sweep data model and radar CSV loading."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import IOFailure, MalformedSweep

logger = logging.getLogger(__name__)

TICKS_PER_REV = 8192
MAX_ECHO = 255
# float64 magnitude at which int64 conversion overflows
INT64_LIMIT = 2.0 ** 63

# Status, Scale, Range, Gain, Angle precede the echo columns
HEADER_COLUMNS = ("Status", "Scale", "Range", "Gain", "Angle")
RANGE_COL = 2
GAIN_COL = 3
ANGLE_COL = 4
ECHO_START = len(HEADER_COLUMNS)


class Pulse(NamedTuple):
    """One radar ping: encoder angle and its range-bin echoes."""

    angle_ticks: int
    echoes: tuple


@dataclass(frozen=True, eq=False)
class SweepRecord:
    """
    Container for one parsed sweep file.

    ``angles`` holds the encoder angle of each pulse in file order and
    ``echoes`` the matching (pulses, bin_count) intensity matrix.
    """

    range_setting: int
    gain_code: int
    angles: np.ndarray
    echoes: np.ndarray
    source_path: Optional[Path] = None

    def __post_init__(self) -> None:
        angles = np.asarray(self.angles)
        echoes = np.asarray(self.echoes)
        if angles.ndim != 1 or angles.size == 0:
            raise MalformedSweep(f"{self._label()}: sweep has no pulses")
        if echoes.ndim != 2 or echoes.shape[0] != angles.size:
            raise MalformedSweep(
                f"{self._label()}: expected {angles.size} echo rows, got shape {echoes.shape}"
            )
        if echoes.shape[1] == 0:
            raise MalformedSweep(f"{self._label()}: pulses have no echo bins")
        _check_range(angles, 0, TICKS_PER_REV - 1, "angle", self._label())
        _check_range(echoes, 0, MAX_ECHO, "echo", self._label())

        angles = angles.astype(np.int32)
        echoes = echoes.astype(np.uint8)
        angles.setflags(write=False)
        echoes.setflags(write=False)
        object.__setattr__(self, "angles", angles)
        object.__setattr__(self, "echoes", echoes)

    def _label(self) -> str:
        return str(self.source_path) if self.source_path is not None else "sweep"

    @property
    def bin_count(self) -> int:
        return int(self.echoes.shape[1])

    @property
    def pulses(self) -> List[Pulse]:
        return [
            Pulse(int(a), tuple(int(v) for v in row))
            for a, row in zip(self.angles, self.echoes)
        ]

    def __len__(self) -> int:
        return int(self.angles.size)

    @classmethod
    def from_pulses(
        cls,
        range_setting: int,
        gain_code: int,
        pulses: Iterable[Pulse],
        source_path: Optional[Path] = None,
    ) -> "SweepRecord":
        """
        Build a sweep from individual pulses.

        Raises
        ------
        MalformedSweep
            If there are no pulses or their echo lengths differ.
        """
        pulses = [Pulse(int(p[0]), tuple(p[1])) for p in pulses]
        label = str(source_path) if source_path is not None else "sweep"
        if not pulses:
            raise MalformedSweep(f"{label}: sweep has no pulses")

        bin_count = len(pulses[0].echoes)
        for i, pulse in enumerate(pulses):
            if len(pulse.echoes) != bin_count:
                raise MalformedSweep(
                    f"{label}: pulse {i} has {len(pulse.echoes)} bins, expected {bin_count}"
                )

        return cls(
            range_setting=int(range_setting),
            gain_code=int(gain_code),
            angles=np.array([p.angle_ticks for p in pulses], dtype=np.int64),
            echoes=np.array([p.echoes for p in pulses], dtype=np.int64).reshape(len(pulses), bin_count),
            source_path=source_path,
        )

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[int]],
        source_path: Optional[Path] = None,
    ) -> "SweepRecord":
        """
        Build a sweep from parsed CSV rows.

        Parameters
        ----------
        rows : sequence
            Each row is ``status, scale, range, gain, angle, echo_1..echo_N``.
        source_path : Path, optional
            File the rows came from, used in error messages.

        Returns
        -------
        SweepRecord
            Validated sweep; the first row's range and gain are canonical.
        """
        label = str(source_path) if source_path is not None else "sweep"
        if len(rows) == 0:
            raise MalformedSweep(f"{label}: no data rows")

        width = len(rows[0])
        for i, row in enumerate(rows):
            if len(row) != width:
                raise MalformedSweep(
                    f"{label}: row {i + 1} has {len(row) - ECHO_START} bins, "
                    f"expected {width - ECHO_START}"
                )
        try:
            table = np.array(rows, dtype=np.int64)
        except (TypeError, ValueError) as exc:
            raise MalformedSweep(f"{label}: non-integer field ({exc})") from exc
        return cls.from_table(table, source_path)

    @classmethod
    def from_table(cls, table: np.ndarray, source_path: Optional[Path] = None) -> "SweepRecord":
        """Build a sweep from a rectangular (rows, 5 + bins) integer table."""
        label = str(source_path) if source_path is not None else "sweep"
        if table.ndim != 2 or table.shape[0] == 0:
            raise MalformedSweep(f"{label}: no data rows")
        if table.shape[1] <= ECHO_START:
            raise MalformedSweep(
                f"{label}: expected at least {ECHO_START + 1} columns, got {table.shape[1]}"
            )

        range_setting = int(table[0, RANGE_COL])
        gain_code = int(table[0, GAIN_COL])
        bad_range = np.flatnonzero(table[:, RANGE_COL] != range_setting)
        if bad_range.size:
            row = int(bad_range[0])
            raise MalformedSweep(
                f"{label}: row {row + 1} has range {int(table[row, RANGE_COL])}, "
                f"expected {range_setting}"
            )
        bad_gain = np.flatnonzero(table[:, GAIN_COL] != gain_code)
        if bad_gain.size:
            row = int(bad_gain[0])
            raise MalformedSweep(
                f"{label}: row {row + 1} has gain {int(table[row, GAIN_COL])}, "
                f"expected {gain_code}"
            )

        return cls(
            range_setting=range_setting,
            gain_code=gain_code,
            angles=table[:, ANGLE_COL],
            echoes=table[:, ECHO_START:],
            source_path=source_path,
        )


def _check_range(values: np.ndarray, low: int, high: int, name: str, label: str) -> None:
    bad = (values < low) | (values > high)
    if bad.any():
        first = values[bad].flat[0]
        raise MalformedSweep(f"{label}: {name} value {first} outside [{low}, {high}]")


def load_sweep_csv(path: Path) -> SweepRecord:
    """
    Load a radar sweep CSV file.

    Parameters
    ----------
    path : Path
        CSV with one header line, then one row per pulse:
        ``Status, Scale, Range, Gain, Angle, Echo_1..Echo_N``.

    Returns
    -------
    SweepRecord
        Validated sweep.

    Raises
    ------
    IOFailure
        If the file cannot be read.
    MalformedSweep
        If the file is empty, ragged, non-numeric or out of range.
    """
    try:
        df = pd.read_csv(path, header=None, skiprows=1, dtype=str, engine="c")
    except pd.errors.EmptyDataError as exc:
        raise MalformedSweep(f"{path}: no data rows") from exc
    except pd.errors.ParserError as exc:
        # C parser rejects rows longer than the first
        raise MalformedSweep(f"{path}: inconsistent bin counts ({exc})") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise IOFailure(f"Cannot read {path}: {exc}") from exc

    if df.empty:
        raise MalformedSweep(f"{path}: no data rows")

    missing = df.isna()
    if missing.to_numpy().any():
        # Shorter rows are padded with NaN by pandas
        row = int(np.flatnonzero(missing.any(axis=1).to_numpy())[0])
        present = int(df.iloc[row].notna().sum())
        raise MalformedSweep(
            f"{path}: row {row + 1} has {present} fields, expected {df.shape[1]}"
        )

    numeric = df.apply(lambda col: pd.to_numeric(col.str.strip(), errors="coerce"))
    bad = numeric.isna().to_numpy()
    if bad.any():
        r, c = np.argwhere(bad)[0]
        raise MalformedSweep(
            f"{path}: row {r + 1}, column {c + 1}: non-numeric value {df.iat[r, c]!r}"
        )

    values = numeric.to_numpy(dtype=np.float64, copy=True)
    # status and scale are not used and may be fractional
    used = values[:, RANGE_COL:]
    fractional = ~np.isfinite(used) | (used != np.floor(used))
    if fractional.any():
        r, c = np.argwhere(fractional)[0]
        c += RANGE_COL
        raise MalformedSweep(
            f"{path}: row {r + 1}, column {c + 1}: non-integer value {df.iat[r, c]!r}"
        )

    too_large = np.abs(used) >= INT64_LIMIT
    if too_large.any():
        r, c = np.argwhere(too_large)[0]
        c += RANGE_COL
        raise MalformedSweep(
            f"{path}: row {r + 1}, column {c + 1}: value {df.iat[r, c]!r} out of range"
        )

    values[:, :RANGE_COL] = 0
    sweep = SweepRecord.from_table(values.astype(np.int64), source_path=path)
    logger.debug(
        "Loaded %s: %d pulses, %d bins, range=%d gain=%d",
        path.name, len(sweep), sweep.bin_count, sweep.range_setting, sweep.gain_code,
    )
    return sweep
