"""
simulation_runner.py
====================
Solar Plant Monitor — Simulation Runner

Builds a demo plant and runs the panel-string health simulation for a fixed
number of ticks, the way the monitoring backend would on its refresh timer.

Execution sequence:
    1. Create the demo plant and its tables     (plant.PlantMonitor.create_table)
    2. Tick every string N times                (plant.PlantMonitor.refresh)
    3. Print a per-tick console summary
    4. Print the culprit report for the final tick
    5. Plot per-panel health of one string vs tick

Usage:
    python simulation_runner.py
"""

from __future__ import annotations

import logging

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from pvmon.config import FAULT_THRESHOLD, GOOD_THRESHOLD, STATE_COLORS, TICK_INTERVAL_S
from pvmon.panel_string import PanelString
from pvmon.plant import Plant, PlantMonitor


# ---------------------------------------------------------------------------
# Run parameters (execution configuration only)
# ---------------------------------------------------------------------------

SEED: int = 42
N_TICKS: int = 40
VOLTAGE_PER_PANEL: float = 20.0     # V
CURRENT_PER_PANEL: float = 10.0     # A
TABLE_LAYOUT: list[tuple[int, int]] = [(5, 5), (8, 0), (6, 4)]

PLOT_OUTPUT_FILE: str = "panel_health_vs_tick.png"


# ---------------------------------------------------------------------------
# Steps 1–2: build and run
# ---------------------------------------------------------------------------

def build_monitor() -> PlantMonitor:
    plant = Plant(
        name="Demo Plant",
        voltage_per_panel=VOLTAGE_PER_PANEL,
        current_per_panel=CURRENT_PER_PANEL,
    )
    monitor = PlantMonitor(plant, rng=SEED)
    for panels_top, panels_bottom in TABLE_LAYOUT:
        monitor.create_table(panels_top, panels_bottom)
    return monitor


def run_ticks(monitor: PlantMonitor, n_ticks: int) -> list[PanelString]:
    """Tick the plant and record the first table's top string each tick."""
    history = [monitor.plant.tables[0].top]
    for tick in range(1, n_ticks + 1):
        monitor.refresh()
        history.append(monitor.plant.tables[0].top)
        print_tick_summary(tick, monitor)
    return history


# ---------------------------------------------------------------------------
# Steps 3–4: console output
# ---------------------------------------------------------------------------

def print_tick_summary(tick: int, monitor: PlantMonitor) -> None:
    counts = monitor.status_counts()
    culprits = monitor.culprits()
    print(
        f"  tick {tick:3d}  (t = {tick * TICK_INTERVAL_S:5.0f} s)  "
        f"good {counts['good']:3d}  repairing {counts['repairing']:3d}  "
        f"fault {counts['fault']:3d}  culprits {len(culprits)}"
    )


def print_culprit_report(monitor: PlantMonitor) -> None:
    sep = "─" * 60
    print(f"\n{'═' * 60}")
    print("  CULPRIT PANELS — FINAL TICK")
    print(f"{'═' * 60}")
    print(f"  {'Table':<10} {'Side':<7} {'Panel':>5}  {'State':<10} {'Health':>7}")
    print(sep)
    culprits = monitor.culprits()
    for c in culprits:
        print(f"  {c.serial_number:<10} {c.position:<7} {c.index:>5}  "
              f"{c.state.value:<10} {c.health:6.1f}%")
    if not culprits:
        print("  All strings healthy.")
    print(sep)

    for table in monitor.plant.tables:
        for position, string in (("top", table.top), ("bottom", table.bottom)):
            if string is None:
                continue
            print(f"  {table.serial_number} {position:<6}  "
                  f"series {string.series_state.value:<9}  "
                  f"I = {string.current[0]:4.1f} A  "
                  f"P = {string.total_power():7.1f} W")
    print(f"{'═' * 60}\n")


# ---------------------------------------------------------------------------
# Step 5: plot
# ---------------------------------------------------------------------------

def plot_string_health(history: list[PanelString]) -> None:
    """Render and save per-panel health of one string vs tick."""
    ticks = list(range(len(history)))
    count = history[0].count

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    fig.suptitle(
        "Solar Plant Monitor — Series String Health\n"
        f"{count} panels  |  seed = {SEED}  |  tick = {TICK_INTERVAL_S:.0f} s",
        fontsize=12, fontweight="bold",
    )

    # ── Health subplot ───────────────────────────────────────────────────
    for i in range(count):
        ax1.plot(ticks, [s.health[i] for s in history], linewidth=1.5, label=f"Panel {i}")
    ax1.axhline(GOOD_THRESHOLD, color=STATE_COLORS["repairing"], linewidth=1.2,
                linestyle="--", label=f"Good threshold ({GOOD_THRESHOLD:.0f}%)")
    ax1.axhline(FAULT_THRESHOLD, color=STATE_COLORS["fault"], linewidth=1.2,
                linestyle="--", label=f"Fault threshold ({FAULT_THRESHOLD:.0f}%)")
    ax1.set_ylabel("Health [%]", fontsize=11)
    ax1.set_ylim(0, 105)
    ax1.yaxis.set_major_formatter(mticker.PercentFormatter(xmax=100))
    ax1.legend(fontsize=8, loc="lower right", ncol=2)
    ax1.grid(True, linestyle="--", alpha=0.5)

    # ── String current subplot ───────────────────────────────────────────
    ax2.plot(ticks, [s.current[0] for s in history], color="#2196F3", linewidth=2,
             label="String current (weakest-panel limited)")
    ax2.axhline(CURRENT_PER_PANEL, color="#9E9E9E", linewidth=1.0, linestyle=":",
                label=f"Nominal ({CURRENT_PER_PANEL:.0f} A)")
    ax2.set_xlabel("Tick", fontsize=11)
    ax2.set_ylabel("Current [A]", fontsize=11)
    ax2.set_ylim(0, CURRENT_PER_PANEL * 1.1)
    ax2.legend(fontsize=9, loc="lower right")
    ax2.grid(True, linestyle="--", alpha=0.5)

    plt.tight_layout()
    plt.savefig(PLOT_OUTPUT_FILE, dpi=150, bbox_inches="tight")
    print(f"  [plot] Saved → {PLOT_OUTPUT_FILE}")
    plt.show()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    print("\nInitialising plant simulation...", flush=True)

    monitor = build_monitor()
    history = run_ticks(monitor, N_TICKS)

    print_culprit_report(monitor)
    plot_string_health(history)


if __name__ == "__main__":
    main()
