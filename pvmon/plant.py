"""
pvmon/plant.py
==============
Solar Plant Monitor — Plant and Table Bookkeeping

A plant holds mounting tables; each table carries up to two series strings
(top and bottom side).  :class:`PlantMonitor` owns one plant and drives the
string simulator for table creation, refresh ticks, and panel add/delete.

Scope:
    - In-memory only; storing ``Plant.to_record()`` and loading it back with
      ``Plant.from_record()`` is the caller's job.
    - No timer: ``refresh()`` is one tick, called by whatever schedules it.
    - No locking; callers serialise operations on the same plant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from pvmon.panel_string import PanelState, PanelString
from pvmon.string_simulator import StringSimulator

logger = logging.getLogger(__name__)

POSITIONS: tuple[str, str] = ("top", "bottom")


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass
class Table:
    """One mounting table with a top and a bottom string.

    A side with no panels carries ``None`` instead of a string.
    """
    id:            str
    serial_number: str
    top:           PanelString | None = None
    bottom:        PanelString | None = None

    def side(self, position: str) -> PanelString | None:
        return self.top if position == "top" else self.bottom

    def set_side(self, position: str, string: PanelString | None) -> None:
        if position == "top":
            self.top = string
        else:
            self.bottom = string

    @property
    def panels_top(self) -> int:
        return self.top.count if self.top is not None else 0

    @property
    def panels_bottom(self) -> int:
        return self.bottom.count if self.bottom is not None else 0


@dataclass
class Plant:
    """A solar plant: rated per-panel values plus its tables."""
    name:              str
    voltage_per_panel: float
    current_per_panel: float
    tables:            list[Table] = field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        """The plant as a JSON-serialisable dict."""
        return {
            "name":            self.name,
            "voltagePerPanel": self.voltage_per_panel,
            "currentPerPanel": self.current_per_panel,
            "tables": [
                {
                    "id":           t.id,
                    "serialNumber": t.serial_number,
                    "panelsTop":    t.panels_top,
                    "panelsBottom": t.panels_bottom,
                    "topPanels":    t.top.to_record() if t.top is not None else None,
                    "bottomPanels": t.bottom.to_record() if t.bottom is not None else None,
                }
                for t in self.tables
            ],
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Plant:
        """Rebuild a plant from :meth:`to_record` output.

        Raises:
            KeyError:   If a required plant or table key is missing.
            ValueError: If a string record is malformed.
        """
        voltage = float(record["voltagePerPanel"])
        current = float(record["currentPerPanel"])
        tables = []
        for entry in record.get("tables") or ():
            sides = {}
            for position, key in (("top", "topPanels"), ("bottom", "bottomPanels")):
                side = entry.get(key)
                sides[position] = (
                    PanelString.from_record(side, voltage, current) if side else None
                )
            tables.append(Table(
                id=entry["id"],
                serial_number=entry["serialNumber"],
                top=sides["top"],
                bottom=sides["bottom"],
            ))
        return cls(
            name=record["name"],
            voltage_per_panel=voltage,
            current_per_panel=current,
            tables=tables,
        )


@dataclass(frozen=True)
class Culprit:
    """Root-cause panel of one string, for fault-localisation displays."""
    table_id:      str
    serial_number: str
    position:      str
    index:         int
    state:         PanelState
    health:        float


# ---------------------------------------------------------------------------
# Plant monitor
# ---------------------------------------------------------------------------

class PlantMonitor:
    """Drives the panel-string simulation for every table of a plant.

    Args:
        plant:  The plant to manage. Mutated in place by every operation.
        rng:    ``numpy.random.Generator``, an integer seed, or None.
    """

    def __init__(self, plant: Plant, rng: np.random.Generator | int | None = None) -> None:
        self._plant = plant
        self._simulator = StringSimulator(
            plant.voltage_per_panel,
            plant.current_per_panel,
            rng=rng,
        )
        self._next_serial = len(plant.tables) + 1
        self._next_id = _next_table_number(plant.tables)

    @property
    def plant(self) -> Plant:
        return self._plant

    # ------------------------------------------------------------------
    # Table lifecycle
    # ------------------------------------------------------------------

    def create_table(self, panels_top: int, panels_bottom: int) -> Table:
        """Add a table with freshly initialised strings on each side.

        Raises:
            ValueError: If a panel count is negative or both are zero.
        """
        for name, value in (("panels_top", panels_top), ("panels_bottom", panels_bottom)):
            if value < 0:
                raise ValueError(
                    f"{name} must be zero or positive; received {name}={value!r}"
                )
        if panels_top == 0 and panels_bottom == 0:
            raise ValueError("A table needs at least one panel")

        table = Table(
            id=f"table-{self._next_id}",
            serial_number=f"TBL-{self._next_serial:04d}",
            top=self._simulator.simulate(panels_top) if panels_top else None,
            bottom=self._simulator.simulate(panels_bottom) if panels_bottom else None,
        )
        self._next_id += 1
        self._next_serial += 1
        self._plant.tables.append(table)
        logger.info(
            "Created %s (%s) with %d top / %d bottom panels",
            table.id, table.serial_number, panels_top, panels_bottom,
        )
        return table

    def delete_table(self, table_id: str) -> Table:
        table = self.get_table(table_id)
        self._plant.tables.remove(table)
        logger.info("Deleted %s", table_id)
        return table

    def get_table(self, table_id: str) -> Table:
        """Look up a table by id.

        Raises:
            KeyError: If no table has ``table_id``.
        """
        for table in self._plant.tables:
            if table.id == table_id:
                return table
        raise KeyError(f"Table not found; received table_id={table_id!r}")

    # ------------------------------------------------------------------
    # Simulation ticks
    # ------------------------------------------------------------------

    def refresh(self) -> int:
        """Advance every string of every table by one tick.

        Returns:
            Number of strings updated.
        """
        updated = 0
        for table in self._plant.tables:
            for position in POSITIONS:
                string = table.side(position)
                if string is None:
                    continue
                new = self._simulator.simulate(string.count, string.previous_state())
                table.set_side(position, new)
                updated += 1
                logger.debug(
                    "%s/%s: series=%s health=%.1f culprit=%s",
                    table.id, position, new.series_state.value,
                    new.series_health, new.actual_faulty_index,
                )
        logger.info("Refreshed %d strings for plant %s", updated, self._plant.name)
        return updated

    # ------------------------------------------------------------------
    # Panel add / delete
    # ------------------------------------------------------------------

    def add_panels(self, table_id: str, position: str, count: int) -> Table:
        """Append ``count`` fresh panels to one side of a table.

        Raises:
            KeyError:   If the table does not exist.
            ValueError: If ``position`` is not top/bottom or ``count`` < 1.
        """
        _check_position(position)
        if count < 1:
            raise ValueError(
                f"count must be a positive integer; received count={count!r}"
            )
        table = self.get_table(table_id)
        string = table.side(position)
        if string is None:
            table.set_side(position, self._simulator.simulate(count))
        else:
            table.set_side(position, self._simulator.extend(string, count))
        logger.info("Added %d panel(s) to %s/%s", count, table_id, position)
        return table

    def delete_panel(self, table_id: str, position: str, index: int) -> Table:
        """Remove one panel from a side; removing the last one empties the side.

        Raises:
            KeyError:   If the table does not exist.
            ValueError: If ``position`` is not top/bottom.
            IndexError: If the side has no panel at ``index``.
        """
        _check_position(position)
        table = self.get_table(table_id)
        string = table.side(position)
        if string is None:
            raise IndexError(
                f"{table_id}/{position} has no panels; received index={index!r}"
            )
        if string.count == 1 and index == 0:
            table.set_side(position, None)
        else:
            table.set_side(position, self._simulator.remove_panel(string, index))
        logger.info("Deleted panel %d from %s/%s", index, table_id, position)
        return table

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def culprits(self) -> list[Culprit]:
        """One entry per string that currently has a root-cause panel."""
        found: list[Culprit] = []
        for table in self._plant.tables:
            for position in POSITIONS:
                string = table.side(position)
                if string is None:
                    continue
                culprit = string.culprit()
                if culprit is None:
                    continue
                index, state, health = culprit
                found.append(Culprit(
                    table_id=table.id,
                    serial_number=table.serial_number,
                    position=position,
                    index=index,
                    state=state,
                    health=health,
                ))
        return found

    def status_counts(self) -> dict[str, int]:
        """Panel count per displayed state across the whole plant."""
        counts = {state.value: 0 for state in PanelState}
        for table in self._plant.tables:
            for position in POSITIONS:
                string = table.side(position)
                if string is not None:
                    for state in string.states:
                        counts[state.value] += 1
        return counts

    def to_record(self) -> dict[str, Any]:
        """The managed plant as a JSON-serialisable dict."""
        return self._plant.to_record()


def _next_table_number(tables: list[Table]) -> int:
    """One past the largest ``table-<n>`` suffix in use, so ids never repeat."""
    largest = 0
    for table in tables:
        prefix, _, suffix = table.id.rpartition("-")
        if prefix == "table" and suffix.isdigit():
            largest = max(largest, int(suffix))
    return largest + 1


def _check_position(position: str) -> None:
    if position not in POSITIONS:
        raise ValueError(
            f"Position must be 'top' or 'bottom'; received position={position!r}"
        )
