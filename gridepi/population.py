"""Population grid: initialization, daily/annual bookkeeping, snapshots.

The grid is a square (N, N) structured array of CITIZEN_DTYPE. Citizens
are never removed; death only changes their state.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np

from gridepi.config import ContactSection, DemographicsSection
from gridepi.types import CitizenState, allocate_grid


# ═══════════════════════════════════════════════════════════════════════
# AGE SAMPLING
# ═══════════════════════════════════════════════════════════════════════

def sample_age(
    percentile: int,
    age_bands: Sequence[Sequence[int]],
    rng: np.random.Generator,
) -> int:
    """Map a percentile draw to an age via a cumulative age pyramid.

    The first band whose cumulative density is >= ``percentile`` is
    chosen and an age is drawn uniformly in [previous upper bound, upper
    bound). Percentiles beyond the last density fall in the last band.

    Args:
        percentile: Draw in 1..100.
        age_bands: Ascending (upper_age, cumulative_density_percent) pairs.
        rng: Random generator.

    Returns:
        Age in years.
    """
    lower = 0
    last = len(age_bands) - 1
    for k, (upper, density) in enumerate(age_bands):
        if percentile <= density or k == last:
            return int(rng.integers(lower, upper))
        lower = upper
    raise ValueError("age_bands must not be empty")


# ═══════════════════════════════════════════════════════════════════════
# INITIALIZATION
# ═══════════════════════════════════════════════════════════════════════

def initialize_population(
    grid_size: int,
    contacts_cfg: ContactSection,
    demographics_cfg: DemographicsSection,
    rng: np.random.Generator,
) -> np.ndarray:
    """Create a grid of HEALTHY citizens with drawn attributes.

    hospitality = uniform [0, 100) + base_hospitality
    severity    = uniform [0, 4)
    age         = age-pyramid sample (see sample_age)
    """
    grid = allocate_grid(grid_size)
    n = grid_size * grid_size

    grid['state'] = CitizenState.HEALTHY
    grid['days_in_state'] = 0
    grid['self_isolated'] = False
    grid['hospitality'] = (
        rng.integers(0, 100, size=n) + contacts_cfg.base_hospitality
    ).reshape(grid_size, grid_size)
    grid['sickness_severity'] = rng.integers(0, 4, size=n).reshape(grid_size, grid_size)

    percentiles = rng.integers(1, 101, size=n)
    ages = [sample_age(int(p), demographics_cfg.age_bands, rng) for p in percentiles]
    grid['age'] = np.asarray(ages).reshape(grid_size, grid_size)

    return grid


# ═══════════════════════════════════════════════════════════════════════
# DAILY / ANNUAL TICKS
# ═══════════════════════════════════════════════════════════════════════

def tick_day(grid: np.ndarray) -> None:
    """Advance days_in_state by one for every citizen not DEAD."""
    grid['days_in_state'][grid['state'] != CitizenState.DEAD] += 1


def tick_year(grid: np.ndarray) -> None:
    """Advance age by one year for every citizen not DEAD."""
    grid['age'][grid['state'] != CitizenState.DEAD] += 1


# ═══════════════════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════════════════

def count_states(grid: np.ndarray) -> Dict[CitizenState, int]:
    """Number of citizens in each state (all states present as keys)."""
    counts = np.bincount(grid['state'].ravel(), minlength=len(CitizenState))
    return {state: int(counts[state]) for state in CitizenState}


def population_records(grid: np.ndarray) -> List[list]:
    """Per-citizen snapshot rows in row-major order.

    Columns: ID, Age, Days, Hospitality, Self-Isolated, Sickness severity,
    State.
    """
    rows = []
    n_rows, n_cols = grid.shape
    for i in range(n_rows):
        for j in range(n_cols):
            c = grid[i, j]
            rows.append([
                f"[{i}, {j}]",
                int(c['age']),
                int(c['days_in_state']),
                int(c['hospitality']),
                'true' if c['self_isolated'] else 'false',
                int(c['sickness_severity']),
                CitizenState(int(c['state'])).label,
            ])
    return rows
