"""GridEpi visualization library.

Modules:
  - style: Palette and figure helpers
  - epidemic: Daily outbreak curves and grid state maps
"""

from gridepi.viz.style import (  # noqa: F401
    STATE_COLORS,
    new_figure,
    save_figure,
)

from gridepi.viz.epidemic import (  # noqa: F401
    plot_daily_curves,
    plot_state_grid,
)
