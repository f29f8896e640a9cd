"""Command-line runner for GridEpi.

Usage:
    gridepi --config configs/baseline.yaml --output-dir results/run_01
    gridepi --config config.json --seed 7 --plots

Configuration problems are not fatal: a warning is issued and the run
continues with the defaults (plus any command-line overrides). Failing to
write results is fatal.
"""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from gridepi.config import SimulationConfig, config_from_dict, load_config
from gridepi.model import run_simulation
from gridepi.output import OutputError, prepare_output_dir, write_results
from gridepi.snapshots import GridSnapshotRecorder


def _cli_overrides(args: argparse.Namespace) -> Dict:
    overrides: Dict = {}
    sim = {}
    if args.seed is not None:
        sim['seed'] = args.seed
    if args.grid_size is not None:
        sim['grid_size'] = args.grid_size
    if args.max_days is not None:
        sim['max_days'] = args.max_days
    if sim:
        overrides['simulation'] = sim
    out = {}
    if args.snapshot_interval is not None:
        out['snapshot_interval'] = args.snapshot_interval
    if args.plots:
        out['plots'] = True
    if out:
        overrides['output'] = out
    return overrides


def build_config(paths: List[str], overrides: Optional[Dict] = None) -> SimulationConfig:
    """Load config files, falling back to defaults with a warning.

    Raises:
        ValueError: If the command-line overrides themselves are invalid.
    """
    if paths:
        try:
            return load_config(paths[0], *paths[1:], sweep_overrides=overrides)
        except (OSError, yaml.YAMLError, ValueError, TypeError) as exc:
            warnings.warn(
                f"Could not load configuration {paths}: {exc}. "
                f"Continuing with default parameters.",
                UserWarning,
                stacklevel=2,
            )
    return config_from_dict(overrides)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run an agent-based epidemic on a toroidal citizen grid.",
        epilog="Example: gridepi --config configs/baseline.yaml --plots",
    )
    parser.add_argument(
        "--config", action="append", default=[],
        help="YAML/JSON config file; repeat to layer scenario overrides",
    )
    parser.add_argument("--seed", type=int, default=None,
                        help="Master RNG seed (default: from config)")
    parser.add_argument("--grid-size", type=int, default=None,
                        help="Side length of the grid (default: from config)")
    parser.add_argument("--max-days", type=int, default=None,
                        help="Stop after this many days (0 = until extinction)")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Override output directory (default: from config)")
    parser.add_argument("--snapshot-interval", type=int, default=None,
                        help="Record the grid every N days to snapshots.npz")
    parser.add_argument("--plots", action="store_true",
                        help="Save outbreak curve and final grid PNGs")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress notices and the final summary")
    args = parser.parse_args(argv)

    try:
        config = build_config(args.config, _cli_overrides(args))
    except ValueError as exc:
        parser.error(str(exc))

    out_cfg = config.output
    out_dir = Path(args.output_dir if args.output_dir is not None else out_cfg.directory)

    try:
        prepare_output_dir(out_dir)
    except OutputError as exc:
        print(exc, file=sys.stderr)
        return 1

    recorder = GridSnapshotRecorder(
        enabled=out_cfg.snapshot_interval > 0,
        interval_days=out_cfg.snapshot_interval,
    )

    notice = None if args.quiet else print
    if not args.quiet:
        n = config.simulation.grid_size
        print("=" * 60)
        print(f"GridEpi: {n}x{n} torus, seed {config.simulation.seed}")
        print("=" * 60)

    result = run_simulation(
        config,
        notice_callback=notice,
        snapshot_recorder=recorder,
    )

    try:
        write_results(result, out_cfg, out_dir)
        if recorder.enabled:
            recorder.save(str(out_dir / "snapshots.npz"))
        if out_cfg.plots:
            from gridepi.viz import plot_daily_curves, plot_state_grid
            plot_daily_curves(result, save_path=str(out_dir / "daily_curves.png"))
            plot_state_grid(result.grid, save_path=str(out_dir / "final_grid.png"))
    except OSError as exc:
        print(f"Cannot write results to {out_dir}: {exc}", file=sys.stderr)
        return 1

    if not args.quiet:
        if result.truncated:
            print(f"Stopped at day {result.n_days} "
                  f"with {result.state.active_cases} active cases")
        print(result.state.summary())
        print("End of simulation")
    return 0


if __name__ == "__main__":
    sys.exit(main())
