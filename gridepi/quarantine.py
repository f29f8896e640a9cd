"""Population-wide quarantine controller.

Lockdown is active while (ill + dead) × 100 // population exceeds the
threshold. The flag is recomputed once per day after every citizen has
been processed and takes effect from the next day's contact sampling.
"""

from __future__ import annotations

from typing import Optional

from gridepi.types import SimulationState

ENGAGED = "engaged"
LIFTED = "lifted"


def quarantine_ratio(state: SimulationState) -> int:
    """Integer percentage of the population that is ill or dead."""
    if state.total_population <= 0:
        return 0
    return (state.total_ill + state.total_dead) * 100 // state.total_population


class QuarantineController:
    """Tracks the quarantine flag and reports flips."""

    def __init__(self, threshold: int):
        self.threshold = threshold
        self.active = False

    def update(self, state: SimulationState) -> Optional[str]:
        """Recompute the flag and store it on ``state``.

        Returns:
            ENGAGED or LIFTED on the day the flag flips, else None.
        """
        active = quarantine_ratio(state) > self.threshold
        state.quarantine_active = active
        if active == self.active:
            return None
        self.active = active
        return ENGAGED if active else LIFTED


def quarantine_notice(day: int, change: str) -> str:
    """Console message for a quarantine flip."""
    if change == ENGAGED:
        return f"Day {day}. Total quarantine applied"
    return f"Day {day}. Total quarantine dismissed"
