"""Optional per-day grid state recording.

Keeps copies of the (N, N) state matrix on selected days so the spread of
an outbreak across the torus can be replayed or animated afterwards.

Usage:
    recorder = GridSnapshotRecorder(enabled=True, interval_days=1)
    result = run_simulation(config, snapshot_recorder=recorder)
    recorder.save("results/snapshots.npz")
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import numpy as np


class GridSnapshotRecorder:
    """State matrices keyed by simulation day.

    A disabled recorder ignores every capture, so the driver can call it
    unconditionally.

    Args:
        enabled: Record anything at all.
        interval_days: Keep every N-th day (day 0 included).
        first_day: Earliest day kept.
        last_day: Latest day kept; None means no limit.
    """

    def __init__(
        self,
        enabled: bool = False,
        interval_days: int = 1,
        first_day: int = 0,
        last_day: Optional[int] = None,
    ):
        self.enabled = enabled
        self.interval_days = max(1, interval_days)
        self.first_day = first_day
        self.last_day = last_day
        self.snapshots: Dict[int, np.ndarray] = {}

    def should_capture(self, sim_day: int) -> bool:
        if not self.enabled or sim_day < self.first_day:
            return False
        if self.last_day is not None and sim_day > self.last_day:
            return False
        return sim_day % self.interval_days == 0

    def capture(self, sim_day: int, grid: np.ndarray) -> None:
        """Copy the grid's state matrix if ``sim_day`` is due."""
        if self.should_capture(sim_day):
            self.snapshots[sim_day] = grid['state'].copy()

    def get_days(self) -> List[int]:
        return sorted(self.snapshots)

    def get_snapshot(self, sim_day: int) -> Optional[np.ndarray]:
        return self.snapshots.get(sim_day)

    def save(self, path: str) -> None:
        """Write captured matrices to a compressed npz archive.

        Each matrix is stored as ``d{day}``; ``meta_days`` lists the days.
        Nothing is written when no day was captured.
        """
        days = self.get_days()
        if not days:
            return
        arrays = {f"d{day}": self.snapshots[day] for day in days}
        arrays['meta_days'] = np.asarray(days, dtype=np.int32)
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(out, **arrays)

    @classmethod
    def load(cls, path: str) -> 'GridSnapshotRecorder':
        """Read an archive written by save(); the result records nothing new."""
        recorder = cls(enabled=False)
        with np.load(path) as archive:
            for day in archive['meta_days'].tolist():
                recorder.snapshots[day] = archive[f"d{day}"]
        return recorder
