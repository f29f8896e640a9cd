"""Outbreak visualizations.

Every function:
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared palette from ``gridepi.viz.style``
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import ListedColormap

from gridepi.types import CitizenState
from gridepi.viz.style import (
    FOREGROUND,
    STATE_COLORS,
    legend_style,
    new_figure,
    save_figure,
)

if TYPE_CHECKING:
    from gridepi.model import SimulationResult


# (DailyRecord field, legend label, colour key)
_CURVES = (
    ('infected', 'Susceptible', CitizenState.SUSCEPTIBLE),
    ('ill', 'Ill', CitizenState.ILL),
    ('recovered', 'Recovered', CitizenState.RECOVERED),
    ('dead', 'Dead', CitizenState.DEAD),
)


def plot_daily_curves(
    result: 'SimulationResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Daily Susceptible / Ill / Recovered / Dead counts.

    The healthcare capacity is drawn as a dashed line since mortality
    doubles once the Susceptible count reaches it. Quarantine flips are
    marked with dotted vertical lines.
    """
    fig, ax = new_figure(figsize=(12, 6))
    days = result.series('day')

    for name, label, state in _CURVES:
        ax.plot(days, result.series(name), color=STATE_COLORS[state],
                linewidth=2, label=label)

    capacity = result.config.disease.healthcare_capacity
    if capacity > 0:
        ax.axhline(capacity, color=FOREGROUND, linestyle='--', linewidth=1,
                   alpha=0.6, label='Healthcare capacity')

    for day, _ in result.quarantine_events:
        ax.axvline(day, color=STATE_COLORS[CitizenState.ILL], linestyle=':',
                   alpha=0.7)

    n_rows, n_cols = result.grid.shape
    ax.set_xlabel('Day')
    ax.set_ylabel('Citizens')
    ax.set_title(f'Outbreak on {n_rows}×{n_cols} torus (seed {result.seed})')
    ax.set_xlim(0, max(int(days[-1]), 1))
    ax.legend(loc='upper right', **legend_style())

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_state_grid(
    grid: np.ndarray,
    title: str = 'Final population state',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Map of citizen states over the grid, one cell per citizen."""
    fig, ax = new_figure(figsize=(8, 8), gridlines=False)
    cmap = ListedColormap([STATE_COLORS[s] for s in CitizenState])
    ax.imshow(grid['state'], cmap=cmap, vmin=-0.5,
              vmax=len(CitizenState) - 0.5, interpolation='nearest')
    ax.set_title(title)
    ax.set_xticks([])
    ax.set_yticks([])

    present = np.unique(grid['state'])
    handles = [
        mpatches.Patch(color=STATE_COLORS[CitizenState(int(s))],
                       label=CitizenState(int(s)).label)
        for s in present
    ]
    ax.legend(handles=handles, loc='upper left', bbox_to_anchor=(1.01, 1.0),
              **legend_style())

    if save_path:
        save_figure(fig, save_path)
    return fig
