"""Simulation driver: the day/year loop.

Daily loop (until no citizen is SUSCEPTIBLE or ILL):
  1. Year rollover every 365 days: notice + age every living citizen
  2. Advance the day counter; days_in_state += 1 for the living
  3. Compute today's mortality from healthcare-capacity overrun
  4. Engine pass over the active-case set (contacts, exposure, progression)
  5. Quarantine controller update (notice on each flip)
  6. Record the day's aggregate counters

The grid, tracker and SimulationState are owned by the driver and passed
explicitly to every component; all randomness comes from one seeded
stream hierarchy (see gridepi.rng).
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from gridepi.active import ActiveCaseTracker
from gridepi.config import SimulationConfig, default_config
from gridepi.disease import (
    current_mortality,
    daily_transmission_update,
    outbreak_can_end,
)
from gridepi.population import (
    initialize_population,
    population_records,
    tick_day,
    tick_year,
)
from gridepi.quarantine import QuarantineController, quarantine_notice
from gridepi.rng import create_rng_streams
from gridepi.types import CitizenID, CitizenState, DailyRecord, SimulationState


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

DAYS_PER_YEAR = 365

# Day limit applied to an unbounded run whose active cases can never resolve
STALLED_RUN_DAYS = 10 * DAYS_PER_YEAR


# ═══════════════════════════════════════════════════════════════════════
# OUTBREAK SEEDING
# ═══════════════════════════════════════════════════════════════════════

def seed_index_case(
    grid: np.ndarray,
    tracker: ActiveCaseTracker,
    state: SimulationState,
    cid: CitizenID,
) -> None:
    """Make ``cid`` the first ILL citizen and start tracking it.

    Raises:
        ValueError: If ``cid`` is outside the grid or not HEALTHY.
    """
    n_rows, n_cols = grid.shape
    i, j = cid
    if not (0 <= i < n_rows and 0 <= j < n_cols):
        raise ValueError(f"Index case {cid} lies outside the {n_rows}x{n_cols} grid")
    if grid['state'][cid] != CitizenState.HEALTHY:
        raise ValueError(f"Index case {cid} is not healthy")

    grid['state'][cid] = CitizenState.ILL
    grid['days_in_state'][cid] = 1
    tracker.add(cid)
    state.total_ill += 1
    state.total_intact -= 1


# ═══════════════════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Outcome of one simulation run."""
    config: SimulationConfig
    seed: int
    grid: np.ndarray
    state: SimulationState
    index_case: CitizenID
    # Day 0 (initial conditions) followed by one record per simulated day
    daily: List[DailyRecord] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)
    # (day, "engaged" | "lifted")
    quarantine_events: List[Tuple[int, str]] = field(default_factory=list)
    truncated: bool = False
    snapshot_recorder: Optional[object] = None

    @property
    def n_days(self) -> int:
        return self.state.days_count

    def series(self, name: str) -> np.ndarray:
        """Daily timeseries of one DailyRecord field (day 0 included)."""
        return np.array([getattr(rec, name) for rec in self.daily])

    def population_records(self) -> List[list]:
        return population_records(self.grid)


# ═══════════════════════════════════════════════════════════════════════
# MAIN LOOP
# ═══════════════════════════════════════════════════════════════════════

def run_simulation(
    config: Optional[SimulationConfig] = None,
    seed: Optional[int] = None,
    index_case: Optional[Sequence[int]] = None,
    progress_callback: Optional[Callable[[int, SimulationState], None]] = None,
    notice_callback: Optional[Callable[[str], None]] = None,
    snapshot_recorder=None,
) -> SimulationResult:
    """Run one outbreak from a single ILL index case to extinction.

    Args:
        config: SimulationConfig; uses default if None.
        seed: RNG seed; defaults to config.simulation.seed.
        index_case: (row, col) of the first ILL citizen; defaults to
            config.simulation.index_case, else a random cell.
        progress_callback: Optional callable(day, state) after each day.
        notice_callback: Optional callable(message) for year rollover and
            quarantine notices.
        snapshot_recorder: Optional GridSnapshotRecorder.

    Returns:
        SimulationResult with daily records and the final grid.
    """
    if config is None:
        config = default_config()
    if seed is None:
        seed = config.simulation.seed

    sim_cfg = config.simulation
    dis_cfg = config.disease
    rngs = create_rng_streams(seed)
    n = sim_cfg.grid_size

    grid = initialize_population(
        n, config.contacts, config.demographics, rngs['population'],
    )
    state = SimulationState.for_population(n * n)
    tracker = ActiveCaseTracker()

    if index_case is None:
        index_case = sim_cfg.index_case
    if index_case is None:
        cid = (int(rngs['outbreak'].integers(0, n)),
               int(rngs['outbreak'].integers(0, n)))
    else:
        cid = (int(index_case[0]), int(index_case[1]))
    seed_index_case(grid, tracker, state, cid)

    result = SimulationResult(
        config=config, seed=seed, grid=grid, state=state, index_case=cid,
        snapshot_recorder=snapshot_recorder,
    )

    def notify(message: str) -> None:
        result.notices.append(message)
        if notice_callback is not None:
            notice_callback(message)

    max_days = sim_cfg.max_days
    if not max_days and not outbreak_can_end(dis_cfg):
        warnings.warn(
            "Disease parameters leave active cases with no way to resolve "
            "(mortality_rate and self_recovery_rate // 2 are both 0, or "
            "exposed citizens may never fall ill); stopping after "
            f"{STALLED_RUN_DAYS} days. Set simulation.max_days to choose "
            "the limit.",
            UserWarning,
            stacklevel=2,
        )
        max_days = STALLED_RUN_DAYS

    quarantine = QuarantineController(config.intervention.quarantine_threshold)
    daily_rng = rngs['daily']

    result.daily.append(state.daily_record(dis_cfg.healthcare_capacity))
    if snapshot_recorder is not None:
        snapshot_recorder.capture(0, grid)

    while len(tracker) > 0:
        if max_days and state.days_count >= max_days:
            result.truncated = True
            break

        if state.days_count // DAYS_PER_YEAR > state.years_passed:
            state.years_passed += 1
            notify(f"Year {state.years_passed} passed")
            tick_year(grid)

        state.days_count += 1
        tick_day(grid)

        state.current_mortality = current_mortality(state, dis_cfg)

        daily_transmission_update(grid, tracker, state, config, daily_rng)

        change = quarantine.update(state)
        if change is not None:
            result.quarantine_events.append((state.days_count, change))
            notify(quarantine_notice(state.days_count, change))

        result.daily.append(state.daily_record(dis_cfg.healthcare_capacity))
        if snapshot_recorder is not None:
            snapshot_recorder.capture(state.days_count, grid)
        if progress_callback is not None:
            progress_callback(state.days_count, state)

    return result
