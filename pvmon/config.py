"""
pvmon/config.py
===============
Solar Plant Monitor — Simulation Constants

Tuning values for the panel-string health simulation.

Rules:
    - No calculations or derived quantities here.
    - Health is a synthetic percentage in [0, 100], not a physical unit.
    - Random bands are half-open intervals (low, high).
    - No simulation logic or conditional expressions.
"""


# ---------------------------------------------------------------------------
# Health state thresholds
# ---------------------------------------------------------------------------

FAULT_THRESHOLD: float = 20.0
"""Health below this value is a hard fault (%)."""

GOOD_THRESHOLD: float = 50.0
"""Health at or above this value is good; between the two is repairing (%)."""

HEALTH_MIN: float = 0.0
HEALTH_MAX: float = 100.0


# ---------------------------------------------------------------------------
# Fresh panels
# ---------------------------------------------------------------------------

FRESH_HEALTH_BAND: tuple[float, float] = (50.0, 100.0)
"""Uniform health band for a newly installed panel (%)."""


# ---------------------------------------------------------------------------
# Repair progression (root-cause panel only)
# ---------------------------------------------------------------------------

FAULT_REPAIR_BAND: tuple[float, float] = (2.0, 5.0)
"""Health gained per tick while in fault (%)."""

REPAIRING_REPAIR_BAND: tuple[float, float] = (3.0, 7.0)
"""Health gained per tick while repairing (%)."""

GOOD_JITTER: float = 1.0
"""Max symmetric drift per tick for healthy panels (±%)."""


# ---------------------------------------------------------------------------
# Fault injection
# ---------------------------------------------------------------------------

FAULT_INJECTION_PROBABILITY: float = 0.8
"""Chance per tick that a fully healthy string develops a new fault."""

HARD_FAULT_PROBABILITY: float = 0.4
"""Share of injected faults that are hard faults (dust, damage)."""

HARD_FAULT_HEALTH_BAND: tuple[float, float] = (0.0, 19.0)
SOFT_FAULT_HEALTH_BAND: tuple[float, float] = (20.0, 49.0)


# ---------------------------------------------------------------------------
# Electrical derivation
# ---------------------------------------------------------------------------

VOLTAGE_TOLERANCE_BAND: tuple[float, float] = (0.98, 1.02)
"""Per-panel voltage spread around nominal (manufacturing tolerance)."""

GOOD_CURRENT_BAND: tuple[float, float] = (0.95, 1.00)
"""Current multiplier of a healthy string."""

REPAIRING_CURRENT_BASE: float = 0.2
REPAIRING_CURRENT_SPAN: float = 0.6
FAULT_CURRENT_BASE: float = 0.05
FAULT_CURRENT_SPAN: float = 0.15


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

STATE_COLORS: dict[str, str] = {
    "good":      "blue",
    "repairing": "orange",
    "fault":     "red",
}


# ---------------------------------------------------------------------------
# Scheduling hint for callers (the package itself never sleeps)
# ---------------------------------------------------------------------------

TICK_INTERVAL_S: float = 10.0
