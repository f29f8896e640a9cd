"""Contact sampling on the toroidal grid.

Each active citizen samples its daily contacts from the square
neighbourhood of side 2r+1 around it, wrapping both axes modulo the grid
side length. Offsets are walked in a fixed order (horizontal offset
ascending, then vertical) and each one is accepted with probability
hospitality/100 until the state-scaled contact budget is spent.

The fixed walk order biases contacts toward the first offsets; runs with
the same seed therefore reproduce exactly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Mapping

import numpy as np

from gridepi.types import CitizenID, CitizenState


@lru_cache(maxsize=16)
def neighbor_offsets(radius: int) -> np.ndarray:
    """All (dh, dv) with |dh|, |dv| <= radius except (0, 0).

    Returns:
        (k, 2) int array, k = (2r+1)^2 - 1, ordered by dh then dv.
        Read-only (cached).
    """
    span = np.arange(-radius, radius + 1)
    dh, dv = np.meshgrid(span, span, indexing='ij')
    offsets = np.stack([dh.ravel(), dv.ravel()], axis=1)
    offsets = offsets[(offsets[:, 0] != 0) | (offsets[:, 1] != 0)]
    offsets.setflags(write=False)
    return offsets


def toroidal_neighbors(cid: CitizenID, radius: int, grid_size: int) -> np.ndarray:
    """Wrapped coordinates of every neighbour of ``cid`` within ``radius``.

    Args:
        cid: (row, col) of the reference citizen.
        radius: Neighbourhood radius (Chebyshev distance).
        grid_size: Side length of the torus.

    Returns:
        (k, 2) int array in neighbor_offsets() order.
    """
    return (np.asarray(cid) + neighbor_offsets(radius)) % grid_size


def contact_budget(
    max_contacts: int,
    state: CitizenState,
    multipliers: Mapping[str, float],
) -> int:
    """floor(max_contacts × multiplier[state]); unknown states get 0."""
    factor = multipliers.get(CitizenState(int(state)).label, 0.0)
    return int(np.floor(max_contacts * factor))


def sample_contacts(
    grid: np.ndarray,
    cid: CitizenID,
    radius: int,
    max_contacts: int,
    multipliers: Dict[str, float],
    rng: np.random.Generator,
) -> List[CitizenID]:
    """Draw a citizen's contacts for one day.

    Every neighbour gets an acceptance roll ``integers(0, 100) <
    hospitality``; accepted neighbours are kept in enumeration order up to
    the contact budget. Hospitality >= 100 accepts every neighbour.

    Args:
        grid: Citizen grid.
        cid: Reference citizen.
        radius: Maximum travel range.
        max_contacts: Maximum contacts per day before state scaling.
        multipliers: Contact multiplier per state label.
        rng: Random generator.

    Returns:
        Accepted contact ids; may be empty or shorter than the budget.
    """
    citizen = grid[cid]
    budget = contact_budget(max_contacts, citizen['state'], multipliers)
    if budget <= 0 or radius <= 0:
        return []

    neighbours = toroidal_neighbors(cid, radius, grid.shape[0])
    rolls = rng.integers(0, 100, size=len(neighbours))
    accepted = neighbours[rolls < int(citizen['hospitality'])][:budget]
    return [(int(i), int(j)) for i, j in accepted]
