"""Tests for gridepi.disease — exposure, progression, gating, daily pass."""

import numpy as np
import pytest

from gridepi.active import ActiveCaseTracker
from gridepi.config import (
    DiseaseSection,
    InterventionSection,
    config_from_dict,
)
from gridepi.disease import (
    CARE_PATHWAYS,
    age_mortality_rate,
    care_pathway,
    contact_declined,
    contacts_allowed,
    current_mortality,
    daily_transmission_update,
    expose_pair,
    outbreak_can_end,
    progress_citizen,
    roll,
)
from gridepi.types import CitizenState, SicknessSeverity, SimulationState, allocate_grid


def _rng(seed=0):
    return np.random.default_rng(seed)


def _setup(n=5, cells=None):
    """Grid plus consistent counters; ``cells`` maps (i, j) → (state, days)."""
    grid = allocate_grid(n)
    state = SimulationState.for_population(n * n)
    for cid, (st, days) in (cells or {}).items():
        grid['state'][cid] = st
        grid['days_in_state'][cid] = days
        state.total_intact -= 1
        if st == CitizenState.SUSCEPTIBLE:
            state.total_infected += 1
        elif st == CitizenState.ILL:
            state.total_ill += 1
        elif st == CitizenState.RECOVERED:
            state.total_recovered += 1
        elif st == CitizenState.DEAD:
            state.total_dead += 1
    return grid, state


# ═══════════════════════════════════════════════════════════════════════
# ROLLS & MORTALITY
# ═══════════════════════════════════════════════════════════════════════

class TestRoll:
    def test_zero_never_fires(self):
        rng = _rng()
        assert not any(roll(rng, 0) for _ in range(2000))

    def test_hundred_always_fires(self):
        rng = _rng()
        assert all(roll(rng, 100) for _ in range(2000))

    def test_rate_approximate(self):
        rng = _rng(9)
        hits = sum(roll(rng, 30) for _ in range(20_000))
        assert hits / 20_000 == pytest.approx(0.30, abs=0.015)


class TestCurrentMortality:
    def test_below_capacity(self):
        state = SimulationState(total_infected=9)
        cfg = DiseaseSection(mortality_rate=3, healthcare_capacity=10)
        assert current_mortality(state, cfg) == 3

    def test_at_capacity_doubles(self):
        state = SimulationState(total_infected=10)
        cfg = DiseaseSection(mortality_rate=3, healthcare_capacity=10)
        assert current_mortality(state, cfg) == 6

    def test_zero_capacity_always_doubles(self):
        state = SimulationState()
        assert current_mortality(state, DiseaseSection(mortality_rate=5)) == 10


class TestOutbreakCanEnd:
    def test_all_zero_rates_never_end(self):
        assert not outbreak_can_end(DiseaseSection())

    @pytest.mark.parametrize("rates, expected", [
        ({'mortality_rate': 1}, True),
        ({'self_recovery_rate': 2}, True),
        ({'self_recovery_rate': 1}, False),
        ({'mortality_rate': 3, 'transition_rate': 50}, False),
        ({'mortality_rate': 3, 'transition_rate': 50, 'infection_rate': 10}, True),
        ({'mortality_rate': 3, 'transition_rate': 50, 'self_recovery_rate': 100,
          'gray_period': 4, 'days_before_self_recovery': 2}, True),
        ({'mortality_rate': 3, 'transition_rate': 50, 'self_recovery_rate': 10,
          'gray_period': 4, 'days_before_self_recovery': 2}, False),
        ({'mortality_rate': 3, 'transition_rate': 50, 'self_recovery_rate': 100,
          'gray_period': 2, 'days_before_self_recovery': 0}, False),
    ])
    def test_exit_paths(self, rates, expected):
        assert outbreak_can_end(DiseaseSection(**rates)) is expected


class TestReservedTables:
    def test_care_pathway_endpoints(self):
        assert care_pathway(SicknessSeverity.LOW)[-1] == CitizenState.RECOVERED
        assert care_pathway(3)[-1] == CitizenState.DEAD
        assert set(CARE_PATHWAYS) == set(SicknessSeverity)

    def test_age_mortality_lookup(self):
        table = {9: 0.0, 39: 0.2, 99: 14.8}
        assert age_mortality_rate(5, table) == 0.0
        assert age_mortality_rate(39, table) == 0.2
        assert age_mortality_rate(40, table) == 14.8
        assert age_mortality_rate(120, table) == 14.8


# ═══════════════════════════════════════════════════════════════════════
# EXPOSURE
# ═══════════════════════════════════════════════════════════════════════

class TestExposePair:
    def test_spreader_exposes_healthy(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 3)})
        exposed = expose_pair(grid, (0, 0), (0, 1), state,
                              DiseaseSection(transition_rate=100), _rng())
        assert exposed == (0, 1)
        assert grid['state'][0, 1] == CitizenState.SUSCEPTIBLE
        assert grid['days_in_state'][0, 1] == 1
        assert state.total_infected == 1
        assert state.is_conserved()

    def test_symmetric(self):
        grid, state = _setup(cells={(0, 1): (CitizenState.SUSCEPTIBLE, 2)})
        exposed = expose_pair(grid, (0, 0), (0, 1), state,
                              DiseaseSection(transition_rate=100), _rng())
        assert exposed == (0, 0)
        assert grid['state'][0, 0] == CitizenState.SUSCEPTIBLE

    def test_zero_rate_never_exposes(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1)})
        for _ in range(200):
            assert expose_pair(grid, (0, 0), (0, 1), state,
                               DiseaseSection(transition_rate=0), _rng()) is None
        assert grid['state'][0, 1] == CitizenState.HEALTHY

    @pytest.mark.parametrize("other", [
        CitizenState.SUSCEPTIBLE, CitizenState.ILL,
        CitizenState.RECOVERED, CitizenState.DEAD,
    ])
    def test_non_healthy_pairs_untouched(self, other):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1),
                                    (0, 1): (other, 4)})
        assert expose_pair(grid, (0, 0), (0, 1), state,
                           DiseaseSection(transition_rate=100), _rng()) is None
        assert grid['state'][0, 1] == other
        assert grid['days_in_state'][0, 1] == 4

    def test_healthy_pair_untouched(self):
        grid, state = _setup()
        assert expose_pair(grid, (0, 0), (0, 1), state,
                           DiseaseSection(transition_rate=100), _rng()) is None


# ═══════════════════════════════════════════════════════════════════════
# PROGRESSION
# ═══════════════════════════════════════════════════════════════════════

class TestProgressCitizen:
    def test_ill_dies(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.ILL, 2)})
        state.current_mortality = 100
        new = progress_citizen(grid, (1, 1), state, DiseaseSection(),
                               InterventionSection(), _rng())
        assert new == CitizenState.DEAD
        assert grid['days_in_state'][1, 1] == 1
        assert state.total_dead == 1 and state.total_ill == 0
        assert state.is_conserved()

    def test_susceptible_onset_after_gray_period(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.SUSCEPTIBLE, 3)})
        cfg = DiseaseSection(gray_period=3, infection_rate=100)
        new = progress_citizen(grid, (1, 1), state, cfg,
                               InterventionSection(), _rng())
        assert new == CitizenState.ILL
        assert state.total_ill == 1 and state.total_infected == 0
        assert grid['days_in_state'][1, 1] == 1

    def test_susceptible_waits_out_gray_period(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.SUSCEPTIBLE, 2)})
        cfg = DiseaseSection(gray_period=3, infection_rate=100,
                             days_before_self_recovery=10)
        assert progress_citizen(grid, (1, 1), state, cfg,
                                InterventionSection(), _rng()) is None
        assert grid['state'][1, 1] == CitizenState.SUSCEPTIBLE

    def test_onset_rolls_self_isolation(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.SUSCEPTIBLE, 1)})
        cfg = DiseaseSection(infection_rate=100)
        progress_citizen(grid, (1, 1), state, cfg,
                         InterventionSection(self_isolation_rate=100), _rng())
        assert grid['self_isolated'][1, 1]
        assert state.total_self_isolated == 1

    def test_ill_recovers_at_half_rate(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.ILL, 5)})
        cfg = DiseaseSection(self_recovery_rate=200, days_before_self_recovery=5)
        new = progress_citizen(grid, (1, 1), state, cfg,
                               InterventionSection(), _rng())
        assert new == CitizenState.RECOVERED
        assert state.total_recovered == 1

    def test_ill_half_rate_rounds_down(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.ILL, 9)})
        cfg = DiseaseSection(self_recovery_rate=1, days_before_self_recovery=1)
        for _ in range(500):
            assert progress_citizen(grid, (1, 1), state, cfg,
                                    InterventionSection(), _rng()) is None

    def test_susceptible_self_recovery_within_gray_period(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.SUSCEPTIBLE, 4)})
        cfg = DiseaseSection(gray_period=10, infection_rate=100,
                             self_recovery_rate=100, days_before_self_recovery=4)
        new = progress_citizen(grid, (1, 1), state, cfg,
                               InterventionSection(), _rng())
        assert new == CitizenState.RECOVERED
        assert state.total_infected == 0 and state.total_recovered == 1

    def test_failed_onset_roll_ends_chain(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.SUSCEPTIBLE, 9)})
        cfg = DiseaseSection(gray_period=1, infection_rate=0,
                             self_recovery_rate=100, days_before_self_recovery=1)
        assert progress_citizen(grid, (1, 1), state, cfg,
                                InterventionSection(), _rng()) is None
        assert grid['state'][1, 1] == CitizenState.SUSCEPTIBLE

    def test_death_checked_before_recovery(self):
        grid, state = _setup(cells={(1, 1): (CitizenState.ILL, 9)})
        state.current_mortality = 100
        cfg = DiseaseSection(self_recovery_rate=200, days_before_self_recovery=1)
        assert progress_citizen(grid, (1, 1), state, cfg,
                                InterventionSection(), _rng()) == CitizenState.DEAD


# ═══════════════════════════════════════════════════════════════════════
# GATING
# ═══════════════════════════════════════════════════════════════════════

class TestGating:
    def test_suppress_quarantine_blocks(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1)})
        state.quarantine_active = True
        assert not contacts_allowed(grid, (0, 0), state,
                                    InterventionSection(gating="suppress"), _rng())

    def test_suppress_strict_isolation_blocks(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1)})
        grid['self_isolated'][(0, 0)] = True
        iv = InterventionSection(self_isolation_strictness=100)
        assert not contacts_allowed(grid, (0, 0), state, iv, _rng())

    def test_suppress_not_isolated_allowed(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1)})
        iv = InterventionSection(self_isolation_strictness=100)
        assert contacts_allowed(grid, (0, 0), state, iv, _rng())

    def test_legacy_never_blocks(self):
        grid, state = _setup(cells={(0, 0): (CitizenState.ILL, 1)})
        grid['self_isolated'][(0, 0)] = True
        state.quarantine_active = True
        iv = InterventionSection(self_isolation_strictness=100, gating="legacy")
        assert contacts_allowed(grid, (0, 0), state, iv, _rng())

    def test_isolated_contact_declines(self):
        grid, _ = _setup()
        grid['self_isolated'][(0, 1)] = True
        iv = InterventionSection(self_isolation_strictness=100)
        assert contact_declined(grid, (0, 1), iv, _rng())
        assert not contact_declined(grid, (0, 2), iv, _rng())


# ═══════════════════════════════════════════════════════════════════════
# DAILY UPDATE
# ═══════════════════════════════════════════════════════════════════════

def _spread_config(**disease):
    base = {
        'simulation': {'grid_size': 5},
        'disease': {'transition_rate': 100, 'infection_rate': 100,
                    'days_before_self_recovery': 50},
        'contacts': {'max_contacts_per_day': 4, 'max_travel_range': 1},
        'intervention': {'quarantine_threshold': 100},
    }
    base['disease'].update(disease)
    return config_from_dict(base)


class TestDailyTransmissionUpdate:
    def _seeded(self):
        grid, state = _setup(cells={(2, 2): (CitizenState.ILL, 1)})
        grid['hospitality'] = 100
        tracker = ActiveCaseTracker()
        tracker.add((2, 2))
        return grid, state, tracker

    def test_exposes_first_two_offsets(self):
        grid, state, tracker = self._seeded()
        events = daily_transmission_update(grid, tracker, state,
                                           _spread_config(), _rng())
        assert events.exposures == 2
        assert events.contacts == 2
        assert grid['state'][1, 1] == CitizenState.SUSCEPTIBLE
        assert grid['state'][1, 2] == CitizenState.SUSCEPTIBLE
        assert tracker.ids() == [(2, 2), (1, 1), (1, 2)]
        assert state.is_conserved()

    def test_new_cases_not_visited_same_day(self):
        grid, state, tracker = self._seeded()
        daily_transmission_update(grid, tracker, state, _spread_config(), _rng())
        # Exposed today, so no onset until tomorrow's pass
        assert state.total_ill == 1
        daily_transmission_update(grid, tracker, state, _spread_config(), _rng())
        assert grid['state'][1, 1] == CitizenState.ILL
        assert grid['state'][1, 2] == CitizenState.ILL

    def test_death_leaves_tracker(self):
        grid, state, tracker = self._seeded()
        state.current_mortality = 100
        events = daily_transmission_update(grid, tracker, state,
                                           _spread_config(transition_rate=0), _rng())
        assert events.deaths == 1
        assert len(tracker) == 0
        assert state.total_dead == 1

    def test_terminal_entry_dropped_without_rolls(self):
        grid, state, tracker = self._seeded()
        grid['state'][(2, 2)] = CitizenState.RECOVERED
        state.total_ill -= 1
        state.total_recovered += 1
        events = daily_transmission_update(grid, tracker, state,
                                           _spread_config(), _rng())
        assert events.contacts == 0
        assert len(tracker) == 0

    def test_quarantine_suppresses_spread(self):
        grid, state, tracker = self._seeded()
        state.quarantine_active = True
        events = daily_transmission_update(grid, tracker, state,
                                           _spread_config(), _rng())
        assert events.exposures == 0
        assert events.contacts == 0

    def test_isolated_contact_skipped_loop_continues(self):
        grid, state, tracker = self._seeded()
        grid['self_isolated'][(1, 1)] = True
        config = _spread_config()
        config.intervention.self_isolation_strictness = 100
        daily_transmission_update(grid, tracker, state, config, _rng())
        assert grid['state'][1, 1] == CitizenState.HEALTHY
        assert grid['state'][1, 2] == CitizenState.SUSCEPTIBLE

    def test_tracker_holds_only_active(self):
        grid, state, tracker = self._seeded()
        config = _spread_config()
        rng = _rng(4)
        for _ in range(6):
            daily_transmission_update(grid, tracker, state, config, rng)
            for cid in tracker:
                assert grid['state'][cid] in (CitizenState.SUSCEPTIBLE,
                                              CitizenState.ILL)
            assert len(tracker) == state.active_cases
            assert state.is_conserved()
