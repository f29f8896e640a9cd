"""CSV persistence of simulation results.

Two files per run:
  - daily progress (one row per simulated day, day 0 first)
  - final population snapshot (one row per citizen)

Failure to create an output file is fatal: raised as OutputError.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, Iterable, Union

import numpy as np

from gridepi.config import OutputSection
from gridepi.population import population_records
from gridepi.types import DailyRecord

DAILY_HEADER = [
    "Day", "Dead", "Ill", "Infected", "Recovered", "Hospitalized", "On ICU",
    "Healthcare capacity", "Current mortality rate", "Self-isolated",
]

POPULATION_HEADER = [
    "ID", "Age", "Days", "Hospitality", "Self-Isolated", "Sickness severity",
    "State",
]


class OutputError(OSError):
    """An output file could not be created or written."""


def prepare_output_dir(directory: Union[str, Path]) -> Path:
    """Create the output directory up front so a run never starts unsaveable.

    Raises:
        OutputError: If the directory cannot be created.
    """
    directory = Path(directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputError(f"Cannot create output directory {directory}: {exc}") from exc
    if not directory.is_dir():
        raise OutputError(f"Output path {directory} is not a directory")
    return directory


def _write_csv(path: Union[str, Path], header: list, rows: Iterable[list]) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
    except OSError as exc:
        raise OutputError(f"Cannot create file {path}: {exc}") from exc
    return path


def write_daily_csv(records: Iterable[DailyRecord], path: Union[str, Path]) -> Path:
    """Write day-by-day aggregate counters."""
    return _write_csv(path, DAILY_HEADER, (rec.as_row() for rec in records))


def write_population_csv(grid: np.ndarray, path: Union[str, Path]) -> Path:
    """Write the per-citizen snapshot of ``grid``."""
    return _write_csv(path, POPULATION_HEADER, population_records(grid))


def write_results(
    result,
    out_cfg: OutputSection,
    directory: Union[str, Path, None] = None,
) -> Dict[str, Path]:
    """Write both CSV files for a SimulationResult.

    Args:
        result: SimulationResult.
        out_cfg: Output configuration (file names).
        directory: Overrides ``out_cfg.directory``.

    Returns:
        {'daily': path, 'population': path}

    Raises:
        OutputError: If a file cannot be created.
    """
    out_dir = Path(directory if directory is not None else out_cfg.directory)
    return {
        'daily': write_daily_csv(result.daily, out_dir / out_cfg.daily_file),
        'population': write_population_csv(
            result.grid, out_dir / out_cfg.population_file
        ),
    }
