"""Core data types for GridEpi.

This module is the SINGLE SOURCE OF TRUTH for:
  - CITIZEN_DTYPE: NumPy structured array dtype for the citizen grid
  - CitizenState, SicknessSeverity enumerations
  - Default per-state contact multipliers
  - SimulationState: aggregate counters owned by the simulation driver
  - DailyRecord: one row of day-by-day output

All modules import these types from here. No other module defines citizen
fields.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Dict, Tuple

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class CitizenState(IntEnum):
    """Health states of a citizen.

    Reachable transitions:
      HEALTHY     → SUSCEPTIBLE  (contact with a spreading citizen)
      SUSCEPTIBLE → ILL          (after the gray period)
      SUSCEPTIBLE → RECOVERED    (self-recovery)
      ILL         → DEAD | RECOVERED

    INFECTED, UNDER_TREATMENT and ICU are reserved for a future
    healthcare pathway and are never assigned by the engine.
    """
    HEALTHY         = 0
    SUSCEPTIBLE     = 1   # exposed
    INFECTED        = 2   # asymptomatic (reserved)
    ILL             = 3   # symptomatic
    UNDER_TREATMENT = 4   # hospitalised (reserved)
    ICU             = 5   # ventilation / ICU (reserved)
    RECOVERED       = 6
    DEAD            = 7

    @property
    def label(self) -> str:
        """Wire name used in config keys and output files."""
        return _STATE_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> 'CitizenState':
        try:
            return _LABEL_TO_STATE[label]
        except KeyError:
            raise ValueError(f"Unknown citizen state label '{label}'") from None


_STATE_LABELS = {
    CitizenState.HEALTHY: 'healthy',
    CitizenState.SUSCEPTIBLE: 'susceptible',
    CitizenState.INFECTED: 'infected',
    CitizenState.ILL: 'ill',
    CitizenState.UNDER_TREATMENT: 'underTreatment',
    CitizenState.ICU: 'icu',
    CitizenState.RECOVERED: 'recovered',
    CitizenState.DEAD: 'dead',
}
_LABEL_TO_STATE = {label: state for state, label in _STATE_LABELS.items()}


class SicknessSeverity(IntEnum):
    """Severity class drawn once per citizen (reserved for care pathways)."""
    LOW      = 0   # asymptomatic, self-recovery
    MILD     = 1   # symptomatic, self-recovery
    SEVERE   = 2   # hospitalisation
    CRITICAL = 3   # ICU


# States that can expose a healthy contact
SPREADING_STATES = frozenset({CitizenState.SUSCEPTIBLE, CitizenState.ILL})

# Absorbing states: no transitions, no contacts
TERMINAL_STATES = frozenset({CitizenState.RECOVERED, CitizenState.DEAD})


# Contact budget multiplier per state, keyed by wire label
DEFAULT_CONTACT_MULTIPLIERS: Dict[str, float] = {
    'healthy':        1.0,
    'recovered':      1.0,
    'susceptible':    0.5,
    'ill':            0.5,
    'infected':       0.5,
    'underTreatment': 0.06,
    'icu':            0.01,
    'dead':           0.0,
}


# ═══════════════════════════════════════════════════════════════════════
# CITIZEN_DTYPE — canonical structured array for the grid
# ═══════════════════════════════════════════════════════════════════════

CITIZEN_DTYPE = np.dtype([
    ('state',             np.int8),    # CitizenState
    ('days_in_state',     np.int32),   # reset to 1 on every transition
    ('self_isolated',     np.bool_),   # set once at illness onset, never reset
    ('hospitality',       np.int16),   # contact acceptance score (percent)
    ('sickness_severity', np.int8),    # SicknessSeverity (reserved)
    ('age',               np.int16),   # years
])

# A citizen is identified by its (row, col) grid coordinate
CitizenID = Tuple[int, int]


def allocate_grid(grid_size: int) -> np.ndarray:
    """Allocate a zeroed square citizen grid.

    Args:
        grid_size: Side length N of the toroidal grid.

    Returns:
        Structured array of shape (N, N) with CITIZEN_DTYPE; every
        citizen starts HEALTHY with zeroed attributes.
    """
    return np.zeros((grid_size, grid_size), dtype=CITIZEN_DTYPE)


# ═══════════════════════════════════════════════════════════════════════
# AGGREGATE STATE & OUTPUT RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DailyRecord:
    """One row of day-by-day progress output."""
    day: int
    dead: int
    ill: int
    infected: int
    recovered: int
    hospitalized: int
    icu: int
    healthcare_capacity: int
    current_mortality: int
    self_isolated: int

    def as_row(self) -> list:
        return list(asdict(self).values())


@dataclass
class SimulationState:
    """Population-wide counters, maintained incrementally by the engine.

    ``total_infected`` counts SUSCEPTIBLE citizens and ``total_ill`` counts
    ILL citizens; together they equal the size of the active-case set.
    """
    total_population: int = 0
    total_intact: int = 0
    total_infected: int = 0
    total_ill: int = 0
    total_recovered: int = 0
    total_dead: int = 0
    total_self_isolated: int = 0
    total_hospitalized: int = 0
    total_icu: int = 0
    days_count: int = 0
    years_passed: int = 0
    current_mortality: int = 0
    quarantine_active: bool = False

    @classmethod
    def for_population(cls, total_population: int) -> 'SimulationState':
        return cls(total_population=total_population,
                   total_intact=total_population)

    @property
    def active_cases(self) -> int:
        return self.total_infected + self.total_ill

    def is_conserved(self) -> bool:
        """Every citizen is counted in exactly one compartment."""
        return (self.total_intact + self.total_infected + self.total_ill
                + self.total_recovered + self.total_dead
                == self.total_population)

    def daily_record(self, healthcare_capacity: int) -> DailyRecord:
        return DailyRecord(
            day=self.days_count,
            dead=self.total_dead,
            ill=self.total_ill,
            infected=self.total_infected,
            recovered=self.total_recovered,
            hospitalized=self.total_hospitalized,
            icu=self.total_icu,
            healthcare_capacity=healthcare_capacity,
            current_mortality=self.current_mortality,
            self_isolated=self.total_self_isolated,
        )

    def summary(self) -> str:
        return (
            f"Day: {self.days_count}\n"
            f"Dead: {self.total_dead}\n"
            f"Ill: {self.total_ill}\n"
            f"Infected: {self.total_infected}\n"
            f"Self-isolated: {self.total_self_isolated}\n"
            f"Recovered: {self.total_recovered}\n"
            f"Intact: {self.total_intact}\n"
            f"Current mortality: {self.current_mortality}"
        )
