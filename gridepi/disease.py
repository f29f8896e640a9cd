"""Transmission & progression engine.

Implements one simulated day for every active citizen:
  1. Contact gating (quarantine, self-isolation)
  2. Contact sampling and pairwise exposure:
       HEALTHY ↔ {SUSCEPTIBLE, ILL}  →  HEALTHY side becomes SUSCEPTIBLE
       with probability transition_rate%
  3. Own-state progression, first matching guard wins:
       ILL                                → DEAD       (current mortality%)
       SUSCEPTIBLE, days >= gray_period   → ILL        (infection_rate%)
       ILL, days >= days_before_recovery  → RECOVERED  (self_recovery_rate/2 %)
       SUSCEPTIBLE, days >= days_before_recovery
                                          → RECOVERED  (self_recovery_rate%)
     A failed roll ends the chain for that citizen that day.
  4. Illness onset rolls self-isolation once (self_isolation_rate%).

Mortality is uniform across ILL citizens for the day: twice the base
rate when the SUSCEPTIBLE count reaches healthcare capacity.

All percentages are rolled as ``integers(0, 100) < percent``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import numpy as np

from gridepi.active import ActiveCaseTracker
from gridepi.config import DiseaseSection, InterventionSection, SimulationConfig
from gridepi.spatial import sample_contacts
from gridepi.types import (
    SPREADING_STATES,
    TERMINAL_STATES,
    CitizenID,
    CitizenState,
    SicknessSeverity,
    SimulationState,
)


# ═══════════════════════════════════════════════════════════════════════
# CARE PATHWAYS (reserved extension point)
# ═══════════════════════════════════════════════════════════════════════

# Course of illness by severity. Not consulted by the engine yet; a
# hospitalisation pathway would walk these instead of ILL → DEAD/RECOVERED.
CARE_PATHWAYS = {
    SicknessSeverity.LOW: (CitizenState.INFECTED, CitizenState.RECOVERED),
    SicknessSeverity.MILD: (CitizenState.INFECTED, CitizenState.ILL,
                            CitizenState.RECOVERED),
    SicknessSeverity.SEVERE: (CitizenState.INFECTED, CitizenState.ILL,
                              CitizenState.UNDER_TREATMENT,
                              CitizenState.RECOVERED),
    SicknessSeverity.CRITICAL: (CitizenState.INFECTED, CitizenState.ILL,
                                CitizenState.UNDER_TREATMENT, CitizenState.ICU,
                                CitizenState.DEAD),
}


def care_pathway(severity: int) -> Tuple[CitizenState, ...]:
    """States a citizen of the given severity would pass through."""
    return CARE_PATHWAYS[SicknessSeverity(int(severity))]


def age_mortality_rate(age: int, table: Mapping[int, float]) -> float:
    """Mortality percent for ``age`` from an {upper_age: percent} table.

    Ages above the last bound use the last band.
    """
    bounds = sorted(int(k) for k in table)
    for upper in bounds:
        if age <= upper:
            return float(table[upper])
    return float(table[bounds[-1]])


# ═══════════════════════════════════════════════════════════════════════
# ROLLS & GLOBAL MORTALITY
# ═══════════════════════════════════════════════════════════════════════

def roll(rng: np.random.Generator, percent: float) -> bool:
    """True with probability percent/100 (0 never, >= 100 always)."""
    return int(rng.integers(0, 100)) < percent


def current_mortality(state: SimulationState, cfg: DiseaseSection) -> int:
    """Today's death chance (%) for every ILL citizen."""
    if state.total_infected >= cfg.healthcare_capacity:
        return cfg.mortality_rate * 2
    return cfg.mortality_rate


def outbreak_can_end(cfg: DiseaseSection) -> bool:
    """Whether every active citizen eventually has a way out.

    An ILL citizen leaves only by dying (mortality_rate > 0) or by
    recovering at self_recovery_rate // 2 > 0. A SUSCEPTIBLE citizen
    leaves by falling ill (then needs the ILL exit) or by self-recovery
    inside the gray period. Without onset, a failed recovery roll leaves
    it stuck once the gray period ends, so only a certain roll on a
    reachable gray day counts. Exposed citizens are first evaluated at
    days_in_state 2.
    """
    ill_exits = cfg.mortality_rate > 0 or cfg.self_recovery_rate // 2 > 0
    if not ill_exits:
        return False
    if cfg.transition_rate <= 0 or cfg.infection_rate > 0:
        return True
    return (cfg.self_recovery_rate >= 100
            and max(cfg.days_before_self_recovery, 2) < cfg.gray_period)


def _set_state(grid: np.ndarray, cid: CitizenID, new_state: CitizenState) -> None:
    grid['state'][cid] = new_state
    grid['days_in_state'][cid] = 1


# ═══════════════════════════════════════════════════════════════════════
# EXPOSURE
# ═══════════════════════════════════════════════════════════════════════

def expose_pair(
    grid: np.ndarray,
    a: CitizenID,
    b: CitizenID,
    state: SimulationState,
    cfg: DiseaseSection,
    rng: np.random.Generator,
) -> Optional[CitizenID]:
    """Apply the pairwise transmission rule to one contact.

    If exactly one side is spreading (SUSCEPTIBLE/ILL) and the other is
    HEALTHY, the healthy side becomes SUSCEPTIBLE with probability
    transition_rate%. Any other pairing is left untouched.

    Returns:
        The newly exposed citizen, or None.
    """
    state_a = CitizenState(int(grid['state'][a]))
    state_b = CitizenState(int(grid['state'][b]))

    if state_a in SPREADING_STATES and state_b == CitizenState.HEALTHY:
        target = b
    elif state_b in SPREADING_STATES and state_a == CitizenState.HEALTHY:
        target = a
    else:
        return None

    if not roll(rng, cfg.transition_rate):
        return None

    _set_state(grid, target, CitizenState.SUSCEPTIBLE)
    state.total_infected += 1
    state.total_intact -= 1
    return target


# ═══════════════════════════════════════════════════════════════════════
# PROGRESSION
# ═══════════════════════════════════════════════════════════════════════

def progress_citizen(
    grid: np.ndarray,
    cid: CitizenID,
    state: SimulationState,
    dis_cfg: DiseaseSection,
    iv_cfg: InterventionSection,
    rng: np.random.Generator,
) -> Optional[CitizenState]:
    """Evaluate one citizen's own transition for the day.

    Returns:
        The new state if a transition happened, else None.
    """
    current = CitizenState(int(grid['state'][cid]))
    days = int(grid['days_in_state'][cid])

    if current == CitizenState.ILL and roll(rng, state.current_mortality):
        _set_state(grid, cid, CitizenState.DEAD)
        state.total_ill -= 1
        state.total_dead += 1
        return CitizenState.DEAD

    if current == CitizenState.SUSCEPTIBLE and days >= dis_cfg.gray_period:
        if not roll(rng, dis_cfg.infection_rate):
            return None
        _set_state(grid, cid, CitizenState.ILL)
        state.total_infected -= 1
        state.total_ill += 1
        if roll(rng, iv_cfg.self_isolation_rate):
            grid['self_isolated'][cid] = True
            state.total_self_isolated += 1
        return CitizenState.ILL

    if (current == CitizenState.ILL
            and days >= dis_cfg.days_before_self_recovery):
        if not roll(rng, dis_cfg.self_recovery_rate // 2):
            return None
        _set_state(grid, cid, CitizenState.RECOVERED)
        state.total_ill -= 1
        state.total_recovered += 1
        return CitizenState.RECOVERED

    # Only reachable while still inside the gray period
    if (current == CitizenState.SUSCEPTIBLE
            and days >= dis_cfg.days_before_self_recovery):
        if not roll(rng, dis_cfg.self_recovery_rate):
            return None
        _set_state(grid, cid, CitizenState.RECOVERED)
        state.total_infected -= 1
        state.total_recovered += 1
        return CitizenState.RECOVERED

    return None


# ═══════════════════════════════════════════════════════════════════════
# CONTACT GATING
# ═══════════════════════════════════════════════════════════════════════

def contacts_allowed(
    grid: np.ndarray,
    cid: CitizenID,
    state: SimulationState,
    iv_cfg: InterventionSection,
    rng: np.random.Generator,
) -> bool:
    """Whether ``cid`` samples contacts today.

    "suppress": no contacts under quarantine; a self-isolated citizen skips
    the day with probability self_isolation_strictness%.
    "legacy": contacts are always sampled.
    """
    if iv_cfg.gating == "legacy":
        return True
    if state.quarantine_active:
        return False
    if grid['self_isolated'][cid] and roll(rng, iv_cfg.self_isolation_strictness):
        return False
    return True


def contact_declined(
    grid: np.ndarray,
    contact: CitizenID,
    iv_cfg: InterventionSection,
    rng: np.random.Generator,
) -> bool:
    """A self-isolated contact refuses with probability strictness%."""
    return bool(grid['self_isolated'][contact]) and roll(
        rng, iv_cfg.self_isolation_strictness
    )


# ═══════════════════════════════════════════════════════════════════════
# DAILY UPDATE — CORE ENGINE
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DayEvents:
    """Transitions that happened during one daily update."""
    exposures: int = 0
    onsets: int = 0
    recoveries: int = 0
    deaths: int = 0
    contacts: int = 0


def daily_transmission_update(
    grid: np.ndarray,
    tracker: ActiveCaseTracker,
    state: SimulationState,
    config: SimulationConfig,
    rng: np.random.Generator,
) -> DayEvents:
    """One daily pass over the active-case set.

    ``state.current_mortality`` and ``state.quarantine_active`` must already
    hold today's values. Counters in ``state`` are updated incrementally;
    citizens exposed today join the tracker for tomorrow, resolved ones
    (RECOVERED/DEAD) leave it at the end of the pass.

    Args:
        grid: Citizen grid (mutated).
        tracker: Active-case tracker (mutated).
        state: Aggregate counters (mutated).
        config: Simulation configuration.
        rng: Random generator for all of today's rolls.

    Returns:
        DayEvents tally.
    """
    dis_cfg = config.disease
    con_cfg = config.contacts
    iv_cfg = config.intervention
    events = DayEvents()

    for index, cid in tracker.begin_day():
        if CitizenState(int(grid['state'][cid])) in TERMINAL_STATES:
            tracker.mark_resolved(index)
            continue

        if contacts_allowed(grid, cid, state, iv_cfg, rng):
            contacts = sample_contacts(
                grid, cid,
                con_cfg.max_travel_range,
                con_cfg.max_contacts_per_day,
                con_cfg.multipliers,
                rng,
            )
            events.contacts += len(contacts)
            for contact in contacts:
                if contact_declined(grid, contact, iv_cfg, rng):
                    continue
                if CitizenState(int(grid['state'][contact])) in TERMINAL_STATES:
                    continue
                exposed = expose_pair(grid, cid, contact, state, dis_cfg, rng)
                if exposed is not None:
                    tracker.add(exposed)
                    events.exposures += 1

        new_state = progress_citizen(grid, cid, state, dis_cfg, iv_cfg, rng)
        if new_state == CitizenState.ILL:
            events.onsets += 1
        elif new_state == CitizenState.RECOVERED:
            events.recoveries += 1
            tracker.mark_resolved(index)
        elif new_state == CitizenState.DEAD:
            events.deaths += 1
            tracker.mark_resolved(index)

    tracker.end_day()
    return events
