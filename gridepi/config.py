"""Configuration system for GridEpi.

Hierarchical YAML configuration with deep-merge support:
  defaults → base file → scenario overrides → sweep overrides

Only keys present in a layer replace the layer below; scalar parameters
left unset keep their zero defaults, while the lookup tables (contact
multipliers, age bands, severity distribution, age mortality) start
pre-populated.

Flat CamelCase keys of the legacy JSON parameter file (``InfectionRate``,
``GrayPeriod``, ...) are accepted at the top level and routed to their
section fields. JSON is valid YAML, so such files load unchanged.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml

from gridepi.types import CITIZEN_DTYPE, DEFAULT_CONTACT_MULTIPLIERS, CitizenState


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Grid size, seeding and run control."""
    grid_size: int = 50                     # side length N of the torus
    seed: int = 42
    max_days: int = 0                       # 0 = run until no active cases
    index_case: Optional[List[int]] = None  # [row, col]; None = random cell


@dataclass
class DiseaseSection:
    """Transmission and progression rates (all percentages / days)."""
    infection_rate: int = 0              # Susceptible → Ill chance per day
    transition_rate: int = 0             # Healthy → Susceptible chance per contact
    mortality_rate: int = 0              # Ill → Dead chance per day
    gray_period: int = 0                 # days before a Susceptible may progress
    self_recovery_rate: int = 0          # Susceptible → Recovered (Ill uses half)
    days_before_self_recovery: int = 0
    healthcare_capacity: int = 0         # mortality doubles at/above this many Susceptible


@dataclass
class ContactSection:
    """Contact sampling parameters."""
    max_contacts_per_day: int = 0
    max_travel_range: int = 0            # neighbourhood radius (cells)
    base_hospitality: int = 0            # added to uniform [0, 100) draw
    multipliers: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_CONTACT_MULTIPLIERS)
    )


@dataclass
class InterventionSection:
    """Self-isolation and population-wide quarantine.

    gating: "suppress" — quarantine and self-isolation stop a citizen's own
                         contact sampling
            "legacy"   — sampling always happens; gating has no effect
    """
    self_isolation_rate: int = 0         # chance of isolating at illness onset
    self_isolation_strictness: int = 0   # chance an isolated citizen avoids contact
    quarantine_threshold: int = 0        # (ill + dead) percent that triggers lockdown
    gating: str = "suppress"


@dataclass
class DemographicsSection:
    """Age pyramid and reserved severity / mortality tables."""
    # (upper age bound, cumulative density percent), ascending
    age_bands: List[List[int]] = field(
        default_factory=lambda: [[10, 3], [25, 16], [40, 48], [75, 87], [100, 100]]
    )
    severity_distribution: Dict[str, int] = field(
        default_factory=lambda: {'Critical': 4, 'Severe': 10, 'Mild': 56, 'Low': 30}
    )
    # upper age of band → mortality percent
    mortality_by_age: Dict[int, float] = field(
        default_factory=lambda: {9: 0.0, 39: 0.2, 49: 0.4, 59: 1.3,
                                 69: 3.6, 79: 8.0, 99: 14.8}
    )


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    daily_file: str = "result.csv"
    population_file: str = "population.csv"
    snapshot_interval: int = 0           # days between grid snapshots; 0 = off
    plots: bool = False


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    disease: DiseaseSection = field(default_factory=DiseaseSection)
    contacts: ContactSection = field(default_factory=ContactSection)
    intervention: InterventionSection = field(default_factory=InterventionSection)
    demographics: DemographicsSection = field(default_factory=DemographicsSection)
    output: OutputSection = field(default_factory=OutputSection)


_SECTION_MAP = {
    'simulation': SimulationSection,
    'disease': DiseaseSection,
    'contacts': ContactSection,
    'intervention': InterventionSection,
    'demographics': DemographicsSection,
    'output': OutputSection,
}

# Legacy flat parameter names → (section, field)
LEGACY_KEYS = {
    'InfectionRate': ('disease', 'infection_rate'),
    'TransitionRate': ('disease', 'transition_rate'),
    'MortalityRate': ('disease', 'mortality_rate'),
    'GrayPeriod': ('disease', 'gray_period'),
    'SelfRecoveryRate': ('disease', 'self_recovery_rate'),
    'DaysBeforeSelfRecovery': ('disease', 'days_before_self_recovery'),
    'HealthcareCapacity': ('disease', 'healthcare_capacity'),
    'MaximumContactsPerDay': ('contacts', 'max_contacts_per_day'),
    'MaximumTravelRange': ('contacts', 'max_travel_range'),
    'BaseHospitality': ('contacts', 'base_hospitality'),
    'SelfIsolationRate': ('intervention', 'self_isolation_rate'),
    'SelfIsolationStrictness': ('intervention', 'self_isolation_strictness'),
    'TotalQuarantineAppliedTreshold': ('intervention', 'quarantine_threshold'),
}

VALID_GATING = {"suppress", "legacy"}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def translate_legacy_keys(data: Dict) -> Dict:
    """Move flat legacy keys into their sections. Returns a new dict.

    Keys already nested under a section win over legacy flat keys.
    ``demographics.mortality_by_age`` keys are coerced to int: JSON keys
    arrive as strings and would otherwise sit beside the default bounds.
    """
    nested: Dict[str, Any] = {}
    flat: Dict[str, Dict[str, Any]] = {}
    for key, value in data.items():
        if key in LEGACY_KEYS:
            section, name = LEGACY_KEYS[key]
            flat.setdefault(section, {})[name] = value
        else:
            nested[key] = copy.deepcopy(value)
    merged = deep_merge(flat, nested)

    demographics = merged.get('demographics')
    if isinstance(demographics, dict) and isinstance(
            demographics.get('mortality_by_age'), dict):
        demographics['mortality_by_age'] = {
            int(age): rate
            for age, rate in demographics['mortality_by_age'].items()
        }
    return merged


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def config_to_dict(config: SimulationConfig) -> Dict:
    """Plain nested dict of a config (the merge base for overrides)."""
    return dataclasses.asdict(config)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks structure only; out-of-range percentages are legal and simply
    make the corresponding rolls always or never fire.
    """
    sim = config.simulation
    if sim.grid_size < 1:
        raise ValueError(f"simulation.grid_size must be >= 1, got {sim.grid_size}")
    if sim.max_days < 0:
        raise ValueError(f"simulation.max_days must be >= 0, got {sim.max_days}")
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.index_case is not None:
        if len(sim.index_case) != 2:
            raise ValueError(
                f"simulation.index_case must be [row, col], got {sim.index_case}"
            )
        if not all(0 <= c < sim.grid_size for c in sim.index_case):
            raise ValueError(
                f"simulation.index_case {sim.index_case} lies outside the "
                f"{sim.grid_size}x{sim.grid_size} grid"
            )

    con = config.contacts
    if con.max_travel_range < 0:
        raise ValueError(
            f"contacts.max_travel_range must be >= 0, got {con.max_travel_range}"
        )
    if con.max_contacts_per_day < 0:
        raise ValueError(
            f"contacts.max_contacts_per_day must be >= 0, "
            f"got {con.max_contacts_per_day}"
        )
    # hospitality = base + draw in [0, 100) must fit the grid field
    limits = np.iinfo(CITIZEN_DTYPE['hospitality'])
    if not limits.min <= con.base_hospitality <= limits.max - 99:
        raise ValueError(
            f"contacts.base_hospitality must be in "
            f"[{limits.min}, {limits.max - 99}], got {con.base_hospitality}"
        )
    for label in con.multipliers:
        CitizenState.from_label(label)

    if config.intervention.gating not in VALID_GATING:
        raise ValueError(
            f"intervention.gating must be one of {VALID_GATING}, "
            f"got '{config.intervention.gating}'"
        )

    bands = config.demographics.age_bands
    if not bands:
        raise ValueError("demographics.age_bands must not be empty")
    prev_upper, prev_density = 0, 0
    for i, band in enumerate(bands):
        if len(band) != 2:
            raise ValueError(
                f"demographics.age_bands[{i}] must be [upper_age, density], got {band}"
            )
        upper, density = band
        if upper <= prev_upper or density < prev_density:
            raise ValueError(
                f"demographics.age_bands must be ascending, "
                f"band {i} = {band} follows [{prev_upper}, {prev_density}]"
            )
        prev_upper, prev_density = upper, density
    if prev_density != 100:
        raise ValueError(
            f"demographics.age_bands must end at cumulative density 100, "
            f"got {prev_density}"
        )

    if config.output.snapshot_interval < 0:
        raise ValueError("output.snapshot_interval must be >= 0")


def _read_yaml(path: Path) -> Dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return translate_legacy_keys(data)


def load_config(
    base_path: Union[str, Path],
    *override_paths: Union[str, Path],
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: defaults → base → each override path → sweep overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML (or legacy JSON).
        *override_paths: Optional scenario override files; missing files
            are skipped.
        sweep_overrides: Optional dict of parameter sweep overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        yaml.YAMLError: If a file cannot be parsed.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    config_dict = _read_yaml(base_path)

    for path in override_paths:
        path = Path(path)
        if path.exists():
            deep_merge(config_dict, _read_yaml(path))

    if sweep_overrides is not None:
        deep_merge(config_dict, translate_legacy_keys(sweep_overrides))

    return config_from_dict(config_dict)


def config_from_dict(data: Optional[Dict] = None) -> SimulationConfig:
    """Build a validated config from a (possibly partial) nested dict.

    Keys present in ``data`` replace the defaults; everything else keeps
    its default value.
    """
    config_dict = config_to_dict(SimulationConfig())
    if data:
        deep_merge(config_dict, translate_legacy_keys(data))
    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
