"""Shared look for GridEpi plots.

Dark background, one colour per citizen state, and helpers that create,
decorate and save single-panel figures. Importing this module selects
the non-interactive Agg backend.
"""

from pathlib import Path

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt

from gridepi.types import CitizenState

# ═══════════════════════════════════════════════════════════════════════
# PALETTE
# ═══════════════════════════════════════════════════════════════════════

BACKGROUND = '#14141f'
PANEL = '#1c2333'
FOREGROUND = '#dcdcdc'
GRIDLINE = '#323a4e'

STATE_COLORS = {
    CitizenState.HEALTHY:         '#48c9b0',   # teal
    CitizenState.SUSCEPTIBLE:     '#f39c12',   # amber
    CitizenState.INFECTED:        '#f1c40f',   # yellow (reserved)
    CitizenState.ILL:             '#e74c3c',   # red
    CitizenState.UNDER_TREATMENT: '#9b59b6',   # purple (reserved)
    CitizenState.ICU:             '#533483',   # deep purple (reserved)
    CitizenState.RECOVERED:       '#2ecc71',   # green
    CitizenState.DEAD:            '#7f8c8d',   # grey
}


# ═══════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════

def style_axes(ax, gridlines: bool = True) -> None:
    ax.set_facecolor(PANEL)
    ax.tick_params(colors=FOREGROUND, labelsize=9)
    for text in (ax.title, ax.xaxis.label, ax.yaxis.label):
        text.set_color(FOREGROUND)
    for spine in ax.spines.values():
        spine.set_color(GRIDLINE)
    if gridlines:
        ax.grid(True, color=GRIDLINE, alpha=0.4, linewidth=0.6)
    else:
        ax.grid(False)


def new_figure(figsize=(10, 6), gridlines: bool = True):
    """Single-panel figure with the GridEpi style applied. Returns (fig, ax)."""
    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(BACKGROUND)
    style_axes(ax, gridlines=gridlines)
    return fig, ax


def legend_style() -> dict:
    """Keyword arguments for ``ax.legend`` matching the palette."""
    return {'fontsize': 9, 'facecolor': PANEL, 'edgecolor': GRIDLINE,
            'labelcolor': FOREGROUND}


def save_figure(fig, save_path, dpi: int = 150) -> None:
    """Write ``fig`` to ``save_path`` (parents created) and close it."""
    path = Path(save_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=dpi, facecolor=BACKGROUND, bbox_inches='tight')
    plt.close(fig)
