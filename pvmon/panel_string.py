"""
pvmon/panel_string.py
=====================
Solar Plant Monitor — Panel String Data Containers

A panel string is every panel wired in series on one side (top or bottom)
of one mounting table.  Current is common to the whole string and limited
by its weakest panel.

Only ``health`` and ``states`` carry state from one tick to the next; all
other per-panel fields are recomputed by the simulator every tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PanelState(str, Enum):
    """Categorical panel status, derived from health thresholds."""
    GOOD = "good"
    REPAIRING = "repairing"
    FAULT = "fault"


# ---------------------------------------------------------------------------
# Persisted state fed back between ticks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreviousState:
    """The part of a string the caller persists and hands back next tick.

    Attributes:
        health:  Per-panel health percentage [0, 100].
        states:  Per-panel :class:`PanelState`.
    """
    health: tuple[float, ...]
    states: tuple[PanelState, ...]

    def __len__(self) -> int:
        return min(len(self.health), len(self.states))

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PreviousState:
        """Read ``health``/``states`` from a persisted string record.

        Raises:
            ValueError: If a state string is not one of good/repairing/fault.
        """
        health = tuple(float(h) for h in record.get("health") or ())
        states = []
        for raw in record.get("states") or ():
            try:
                states.append(PanelState(raw))
            except ValueError:
                raise ValueError(
                    f"Unknown panel state in record; received state={raw!r}"
                ) from None
        return cls(health=health, states=tuple(states))


# ---------------------------------------------------------------------------
# Full simulation output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PanelString:
    """Simulation state of one series string for a single tick.

    Attributes:
        count:                Number of panels in the string.
        voltage_nominal:      Rated per-panel voltage [V].
        current_nominal:      Rated per-panel current [A].
        voltage:              Per-panel voltage reading [V].
        current:              Per-panel current reading [A]; series-limited.
        power:                Per-panel power reading [W].
        health:               Per-panel health [%].
        states:               Per-panel :class:`PanelState`.
        actual_fault_status:  True only for the root-cause panel.
        series_state:         State of the weakest panel.
        series_health:        Health of the weakest panel [%].
        actual_faulty_index:  Index of the root-cause panel, or None when the
                              whole string is good.
    """
    count:               int
    voltage_nominal:     float
    current_nominal:     float
    voltage:             tuple[float, ...] = field(default_factory=tuple)
    current:             tuple[float, ...] = field(default_factory=tuple)
    power:               tuple[float, ...] = field(default_factory=tuple)
    health:              tuple[float, ...] = field(default_factory=tuple)
    states:              tuple[PanelState, ...] = field(default_factory=tuple)
    actual_fault_status: tuple[bool, ...] = field(default_factory=tuple)
    series_state:        PanelState = PanelState.GOOD
    series_health:       float = 100.0
    actual_faulty_index: int | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        voltage_nominal: float,
        current_nominal: float,
    ) -> PanelString:
        """Rebuild a string from :meth:`to_record` output.

        Nominal values are not part of the record; they belong to the plant.

        Raises:
            ValueError: If a state string is unknown or the per-panel arrays
                        differ in length.
        """
        persisted = PreviousState.from_record(record)
        try:
            series_state = PanelState(record.get("seriesState", PanelState.GOOD.value))
        except ValueError:
            raise ValueError(
                f"Unknown series state in record; received "
                f"seriesState={record.get('seriesState')!r}"
            ) from None

        arrays = {
            "voltage":           tuple(float(x) for x in record.get("voltage") or ()),
            "current":           tuple(float(x) for x in record.get("current") or ()),
            "power":             tuple(float(x) for x in record.get("power") or ()),
            "actualFaultStatus": tuple(bool(x) for x in record.get("actualFaultStatus") or ()),
        }
        count = len(persisted.health)
        lengths = {len(persisted.states)} | {len(a) for a in arrays.values()}
        if lengths != {count}:
            raise ValueError(
                f"Per-panel arrays differ in length; received lengths={sorted(lengths | {count})!r}"
            )

        faulty = record.get("actualFaultyIndex")
        health = persisted.health
        return cls(
            count=count,
            voltage_nominal=float(voltage_nominal),
            current_nominal=float(current_nominal),
            voltage=arrays["voltage"],
            current=arrays["current"],
            power=arrays["power"],
            health=health,
            states=persisted.states,
            actual_fault_status=arrays["actualFaultStatus"],
            series_state=series_state,
            series_health=float(record.get("seriesHealth", min(health, default=100.0))),
            actual_faulty_index=int(faulty) if faulty is not None else None,
        )

    def previous_state(self) -> PreviousState:
        """State to persist and pass back to the simulator next tick."""
        return PreviousState(health=self.health, states=self.states)

    def culprit(self) -> tuple[int, PanelState, float] | None:
        """(index, state, health) of the root-cause panel, if any."""
        if self.actual_faulty_index is None:
            return None
        i = self.actual_faulty_index
        return i, self.states[i], self.health[i]

    def total_power(self) -> float:
        """Sum of per-panel power readings [W]."""
        return round(sum(self.power), 1)

    def to_record(self) -> dict[str, Any]:
        """Plain dict in the persisted record layout (JSON-serialisable)."""
        return {
            "voltage":           list(self.voltage),
            "current":           list(self.current),
            "power":             list(self.power),
            "health":            list(self.health),
            "states":            [s.value for s in self.states],
            "actualFaultStatus": list(self.actual_fault_status),
            "seriesState":       self.series_state.value,
            "seriesHealth":      self.series_health,
            "actualFaultyIndex": self.actual_faulty_index,
        }
