"""GridEpi: agent-based epidemic simulation on a toroidal grid.

A discrete-time, individual-based model where every grid cell holds one
citizen:
  - Hospitality-weighted contact sampling within a travel radius
  - Healthy → Susceptible → Ill → Recovered/Dead state machine
  - Self-isolation and population-wide quarantine gating
  - Healthcare-capacity-driven mortality feedback
  - Runs until no citizen remains infectious
"""

__version__ = "0.1.0"
