"""
pvmon/health_model.py
=====================
Solar Plant Monitor — Panel Health and Electrical Functions

Rules:
    - Every function is a pure mapping of its arguments and the random
      generator passed in; no module-level state.
    - Randomness always comes from an injected ``numpy.random.Generator`` so
      a seeded generator reproduces a run exactly.
    - No string-level bookkeeping here; see string_simulator.py.
"""

from __future__ import annotations

import numpy as np

from pvmon.config import (
    FAULT_THRESHOLD,
    GOOD_THRESHOLD,
    HEALTH_MIN,
    HEALTH_MAX,
    FRESH_HEALTH_BAND,
    FAULT_REPAIR_BAND,
    REPAIRING_REPAIR_BAND,
    GOOD_JITTER,
    VOLTAGE_TOLERANCE_BAND,
    GOOD_CURRENT_BAND,
    REPAIRING_CURRENT_BASE,
    REPAIRING_CURRENT_SPAN,
    FAULT_CURRENT_BASE,
    FAULT_CURRENT_SPAN,
)
from pvmon.panel_string import PanelState


def round1(value: float) -> float:
    """Round to one decimal place."""
    return round(float(value), 1)


# ---------------------------------------------------------------------------
# Health classification
# ---------------------------------------------------------------------------

def classify_health(health: float) -> PanelState:
    """Map a health percentage onto its categorical state.

        health < 20        → fault
        20 ≤ health < 50   → repairing
        health ≥ 50        → good

    Example:
        >>> classify_health(19.9)
        <PanelState.FAULT: 'fault'>
    """
    if health < FAULT_THRESHOLD:
        return PanelState.FAULT
    if health < GOOD_THRESHOLD:
        return PanelState.REPAIRING
    return PanelState.GOOD


def round_health(health: float) -> float:
    """Round health to one decimal without crossing into the next state band.

    A repair landing on 19.96 stays a fault at 19.9 rather than rounding up
    to a repairing 20.0.

    Example:
        >>> round_health(19.96)
        19.9
    """
    rounded = round1(health)
    if classify_health(rounded) is not classify_health(health):
        rounded = round1(rounded - 0.1)
    return rounded


def fresh_health(rng: np.random.Generator) -> float:
    """Health of a newly installed panel, uniform in [50, 100)."""
    low, high = FRESH_HEALTH_BAND
    return min(round1(rng.uniform(low, high)), round1(high - 0.1))


# ---------------------------------------------------------------------------
# Per-tick health evolution
# ---------------------------------------------------------------------------

def repair_increment(state: PanelState, health: float, rng: np.random.Generator) -> float:
    """Health gained this tick by the root-cause panel.

    A panel in fault below 20 % gains U[2, 5); a repairing panel in
    [20, 50) gains U[3, 7).  A state/health pair that disagrees with the
    thresholds gains nothing.
    """
    if state is PanelState.FAULT and health < FAULT_THRESHOLD:
        return rng.uniform(*FAULT_REPAIR_BAND)
    if state is PanelState.REPAIRING and FAULT_THRESHOLD <= health < GOOD_THRESHOLD:
        return rng.uniform(*REPAIRING_REPAIR_BAND)
    return 0.0


def jitter_health(health: float, rng: np.random.Generator) -> float:
    """Drift a healthy panel by up to ±1 %, never leaving [50, 100]."""
    drifted = health + rng.uniform(-GOOD_JITTER, GOOD_JITTER)
    return max(GOOD_THRESHOLD, min(HEALTH_MAX, drifted))


# ---------------------------------------------------------------------------
# Electrical derivation
# ---------------------------------------------------------------------------

def current_multiplier(series_health: float, rng: np.random.Generator) -> float:
    """Fraction of nominal current a string carries given its weakest panel.

        series_health ≥ 50        → U[0.95, 1.00)
        20 ≤ series_health < 50   → 0.2  + (h / 50) · 0.6
        series_health < 20        → 0.05 + (h / 20) · 0.15

    Only the healthy branch draws from ``rng``.
    """
    if series_health >= GOOD_THRESHOLD:
        return rng.uniform(*GOOD_CURRENT_BAND)
    if series_health >= FAULT_THRESHOLD:
        return REPAIRING_CURRENT_BASE + (series_health / GOOD_THRESHOLD) * REPAIRING_CURRENT_SPAN
    clamped = max(HEALTH_MIN, series_health)
    return FAULT_CURRENT_BASE + (clamped / FAULT_THRESHOLD) * FAULT_CURRENT_SPAN


def derive_electrical(
    count: int,
    voltage_nominal: float,
    current_nominal: float,
    series_health: float,
    rng: np.random.Generator,
) -> tuple[list[float], list[float], list[float]]:
    """Compute per-panel voltage, current and power for one string.

    Current for every panel follows ``series_health`` (the weakest link),
    regardless of the panel's own health; voltage varies per panel by ±2 %.

    Returns:
        (voltage, current, power) lists, each of length ``count``, rounded
        to one decimal place.
    """
    voltage: list[float] = []
    current: list[float] = []
    power: list[float] = []
    for _ in range(count):
        v = round1(voltage_nominal * rng.uniform(*VOLTAGE_TOLERANCE_BAND))
        i = round1(current_nominal * current_multiplier(series_health, rng))
        voltage.append(v)
        current.append(i)
        power.append(round1(v * i))
    return voltage, current, power
