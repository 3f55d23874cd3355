"""
pvmon/string_simulator.py
=========================
Solar Plant Monitor — Series String Health Simulator

Advances one panel string (one side of one table) by a single tick.

Tick sequence:
    1. Progress the repair of the root-cause panel (lowest health < 50 %),
       jitter healthy panels, initialise panels with no prior data.
    2. Initialise every panel fresh when no prior state exists.
    3. If the whole string is good, inject one new fault with p = 0.8.
    4. Resolve the series: the weakest panel sets the string state.
    5. Derive voltage/current/power; current is limited by the weakest panel.
    6. Propagate the weakest panel's health/state to every panel at or
       after it; only the weakest panel itself is flagged as the culprit.

Scope:
    - One string per call; strings are independent of each other.
    - The input state is never mutated; every tick builds new tuples.
    - Callers serialise ticks of the same string (last write wins).
"""

from __future__ import annotations

import math

import numpy as np

from pvmon.config import (
    GOOD_THRESHOLD,
    HEALTH_MAX,
    FAULT_INJECTION_PROBABILITY,
    HARD_FAULT_PROBABILITY,
    HARD_FAULT_HEALTH_BAND,
    SOFT_FAULT_HEALTH_BAND,
)
from pvmon.health_model import (
    classify_health,
    derive_electrical,
    fresh_health,
    jitter_health,
    repair_increment,
    round1,
    round_health,
)
from pvmon.panel_string import PanelState, PanelString, PreviousState


def _as_generator(rng) -> np.random.Generator:
    """Accept a Generator, a seed, or None."""
    if rng is None or isinstance(rng, (int, np.integer)):
        return np.random.default_rng(rng)
    return rng


def _check_count(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise ValueError(
            f"{name} must be a positive integer; received {name}={value!r}"
        )


class StringSimulator:
    """Tick-by-tick health simulator for series panel strings.

    Args:
        voltage_nominal:  Rated per-panel voltage [V]. Must be finite, > 0.
        current_nominal:  Rated per-panel current [A]. Must be finite, > 0.
        rng:              ``numpy.random.Generator``, an integer seed, or
                          None for an unseeded generator.

    Raises:
        ValueError: If a nominal value is non-finite or not positive.
    """

    def __init__(
        self,
        voltage_nominal: float,
        current_nominal: float,
        rng: np.random.Generator | int | None = None,
    ) -> None:
        for name, value in (("voltage_nominal", voltage_nominal),
                            ("current_nominal", current_nominal)):
            if not math.isfinite(value) or value <= 0.0:
                raise ValueError(
                    f"{name} must be finite and positive; received {name}={value!r}"
                )
        self._voltage_nominal: float = float(voltage_nominal)
        self._current_nominal: float = float(current_nominal)
        self._rng: np.random.Generator = _as_generator(rng)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def simulate(self, count: int, previous: PreviousState | None = None) -> PanelString:
        """Advance a string by one tick, or create it when ``previous`` is None.

        Args:
            count:     Number of panels in the string this tick. Prior data
                       beyond ``count`` is dropped; indices past the prior
                       data are initialised fresh.
            previous:  ``{health, states}`` persisted from the last tick.

        Returns:
            A fully populated :class:`PanelString`.

        Raises:
            ValueError: If ``count`` is not a positive integer.

        Example:
            >>> sim = StringSimulator(20.0, 10.0, rng=7)
            >>> s = sim.simulate(5)
            >>> s.count, len(s.health)
            (5, 5)
        """
        _check_count("count", count)

        if previous is None:
            health = [fresh_health(self._rng) for _ in range(count)]
            states = [PanelState.GOOD] * count
        else:
            health, states = self._advance(count, previous)

        self._inject_fault(health, states)
        return self._resolve(health, states)

    def extend(self, string: PanelString, added: int) -> PanelString:
        """Append ``added`` fresh panels to the end of a string.

        No repair progresses and no fault is injected; the series is
        re-resolved over the longer string, so panels appended behind a
        live culprit inherit its health and state.

        Raises:
            ValueError: If ``added`` is not a positive integer.
        """
        _check_count("added", added)
        health = list(string.health) + [fresh_health(self._rng) for _ in range(added)]
        states = list(string.states) + [PanelState.GOOD] * added
        return self._resolve(health, states)

    def remove_panel(self, string: PanelString, index: int) -> PanelString:
        """Drop panel ``index`` from a string and re-resolve the series.

        Raises:
            IndexError: If ``index`` is outside the string.
            ValueError: If the string has a single panel; callers remove the
                        whole side instead.
        """
        if not 0 <= index < string.count:
            raise IndexError(
                f"Panel index out of range for a string of {string.count}; "
                f"received index={index!r}"
            )
        if string.count == 1:
            raise ValueError("Cannot remove the only panel of a string")
        health = [h for i, h in enumerate(string.health) if i != index]
        states = [s for i, s in enumerate(string.states) if i != index]
        return self._resolve(health, states)

    # ------------------------------------------------------------------
    # Tick phases
    # ------------------------------------------------------------------

    def _advance(
        self, count: int, previous: PreviousState
    ) -> tuple[list[float], list[PanelState]]:
        """Step 1: evolve each panel from its persisted health/state."""
        known = min(len(previous), count)

        root_idx: int | None = None
        for i in range(known):
            if previous.health[i] < GOOD_THRESHOLD and (
                root_idx is None or previous.health[i] < previous.health[root_idx]
            ):
                root_idx = i

        health: list[float] = []
        states: list[PanelState] = []
        for i in range(count):
            if i >= known:
                h = fresh_health(self._rng)
            else:
                h = previous.health[i]
                state = previous.states[i]
                if i == root_idx:
                    h = min(HEALTH_MAX, h + repair_increment(state, h, self._rng))
                elif state is PanelState.GOOD and h >= GOOD_THRESHOLD:
                    h = jitter_health(h, self._rng)
                h = round_health(h)
            health.append(h)
            states.append(classify_health(h))
        return health, states

    def _inject_fault(self, health: list[float], states: list[PanelState]) -> None:
        """Step 3: maybe break one panel of an all-good string, in place."""
        if any(s is not PanelState.GOOD for s in states):
            return
        if self._rng.random() >= FAULT_INJECTION_PROBABILITY:
            return

        idx = int(self._rng.integers(len(health)))
        if self._rng.random() < HARD_FAULT_PROBABILITY:
            health[idx] = round1(self._rng.uniform(*HARD_FAULT_HEALTH_BAND))
        else:
            health[idx] = round1(self._rng.uniform(*SOFT_FAULT_HEALTH_BAND))
        states[idx] = classify_health(health[idx])

    def _resolve(self, health: list[float], states: list[PanelState]) -> PanelString:
        """Steps 4–6: series resolution, electrical derivation, propagation."""
        count = len(health)
        health = list(health)
        states = list(states)

        weakest_health = min(health)
        weakest_idx = health.index(weakest_health)
        series_state = classify_health(weakest_health)

        # Current for every panel is limited by the weakest one, including
        # panels ahead of it whose own health/state is left untouched below.
        voltage, current, power = derive_electrical(
            count,
            self._voltage_nominal,
            self._current_nominal,
            weakest_health,
            self._rng,
        )

        faulty_idx: int | None = None
        if weakest_health < GOOD_THRESHOLD:
            faulty_idx = weakest_idx
            for i in range(weakest_idx, count):
                health[i] = weakest_health
                states[i] = series_state

        return PanelString(
            count=count,
            voltage_nominal=self._voltage_nominal,
            current_nominal=self._current_nominal,
            voltage=tuple(voltage),
            current=tuple(current),
            power=tuple(power),
            health=tuple(health),
            states=tuple(states),
            actual_fault_status=tuple(i == faulty_idx for i in range(count)),
            series_state=series_state,
            series_health=round1(weakest_health),
            actual_faulty_index=faulty_idx,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def voltage_nominal(self) -> float:
        """Rated per-panel voltage [V]."""
        return self._voltage_nominal

    @property
    def current_nominal(self) -> float:
        """Rated per-panel current [A]."""
        return self._current_nominal


def simulate(
    count: int,
    voltage_nominal: float,
    current_nominal: float,
    previous: PreviousState | None = None,
    rng: np.random.Generator | int | None = None,
) -> PanelString:
    """One-shot tick of a single string; see :meth:`StringSimulator.simulate`."""
    return StringSimulator(voltage_nominal, current_nominal, rng=rng).simulate(count, previous)
