"""
tests/test_plant.py
===================
Solar Plant Monitor — Unit Tests for Plant and Table Bookkeeping
"""

import json
import logging

import pytest

from pvmon.panel_string import PanelState
from pvmon.plant import Plant, PlantMonitor


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def plant():
    return Plant(name="Test Plant", voltage_per_panel=20.0, current_per_panel=10.0)


@pytest.fixture
def monitor(plant):
    return PlantMonitor(plant, rng=2024)


@pytest.fixture
def healthy_monitor(plant, scripted):
    """Scripted draws never inject a fault."""
    return PlantMonitor(plant, rng=scripted())


# ---------------------------------------------------------------------------
# Table lifecycle
# ---------------------------------------------------------------------------

class TestTables:

    def test_create_assigns_serial_numbers(self, monitor):
        first = monitor.create_table(4, 4)
        second = monitor.create_table(3, 2)
        assert first.serial_number == "TBL-0001"
        assert second.serial_number == "TBL-0002"
        assert first.id != second.id
        assert monitor.plant.tables == [first, second]

    def test_panel_counts(self, monitor):
        table = monitor.create_table(5, 3)
        assert table.panels_top == 5
        assert table.panels_bottom == 3
        assert table.top.voltage_nominal == 20.0
        assert table.top.current_nominal == 10.0

    def test_empty_side_has_no_string(self, monitor):
        table = monitor.create_table(6, 0)
        assert table.bottom is None
        assert table.panels_bottom == 0

    def test_table_needs_panels(self, monitor):
        with pytest.raises(ValueError, match="at least one panel"):
            monitor.create_table(0, 0)

    def test_negative_count_rejected(self, monitor):
        with pytest.raises(ValueError, match="panels_top"):
            monitor.create_table(-1, 2)

    def test_delete_table(self, monitor):
        table = monitor.create_table(2, 2)
        monitor.delete_table(table.id)
        assert monitor.plant.tables == []

    def test_unknown_table(self, monitor):
        with pytest.raises(KeyError, match="table-99"):
            monitor.get_table("table-99")

    def test_serials_continue_after_existing_tables(self, plant):
        PlantMonitor(plant, rng=1).create_table(2, 2)
        again = PlantMonitor(plant, rng=1).create_table(2, 2)
        assert again.serial_number == "TBL-0002"

    def test_ids_stay_unique_after_delete(self, plant):
        """A new monitor over a plant with a deleted table must not reuse a live id."""
        first = PlantMonitor(plant, rng=1)
        gone = first.create_table(2, 2)
        kept = first.create_table(2, 2)
        first.delete_table(gone.id)

        added = PlantMonitor(plant, rng=1).create_table(2, 2)
        ids = [t.id for t in plant.tables]
        assert len(ids) == len(set(ids))
        assert added.id != kept.id
        assert added.serial_number == "TBL-0002"


# ---------------------------------------------------------------------------
# Refresh ticks
# ---------------------------------------------------------------------------

class TestRefresh:

    def test_counts_updated_strings(self, monitor):
        monitor.create_table(4, 4)
        monitor.create_table(5, 0)
        assert monitor.refresh() == 3

    def test_refresh_keeps_sizes(self, monitor):
        table = monitor.create_table(4, 7)
        for _ in range(10):
            monitor.refresh()
        assert table.panels_top == 4
        assert table.panels_bottom == 7

    def test_refresh_replaces_strings(self, monitor):
        table = monitor.create_table(4, 4)
        before = table.top
        monitor.refresh()
        assert table.top is not before

    def test_at_most_one_culprit_per_string(self, monitor):
        monitor.create_table(6, 6)
        monitor.create_table(3, 8)
        for _ in range(100):
            monitor.refresh()
            culprits = monitor.culprits()
            keys = [(c.table_id, c.position) for c in culprits]
            assert len(keys) == len(set(keys))

    def test_refresh_logs(self, monitor, caplog):
        monitor.create_table(2, 2)
        with caplog.at_level(logging.INFO, logger="pvmon.plant"):
            monitor.refresh()
        assert "Refreshed 2 strings" in caplog.text


# ---------------------------------------------------------------------------
# Panel add / delete
# ---------------------------------------------------------------------------

class TestPanelEdits:

    def test_add_panels(self, monitor):
        table = monitor.create_table(3, 3)
        monitor.add_panels(table.id, "top", 2)
        assert table.panels_top == 5
        assert table.panels_bottom == 3

    def test_add_panels_to_empty_side(self, monitor):
        table = monitor.create_table(3, 0)
        monitor.add_panels(table.id, "bottom", 4)
        assert table.panels_bottom == 4

    def test_added_panels_survive_refresh(self, monitor):
        table = monitor.create_table(3, 3)
        monitor.add_panels(table.id, "bottom", 3)
        monitor.refresh()
        assert table.panels_bottom == 6

    def test_add_bad_position(self, monitor):
        table = monitor.create_table(3, 3)
        with pytest.raises(ValueError, match="Position"):
            monitor.add_panels(table.id, "left", 1)

    def test_add_bad_count(self, monitor):
        table = monitor.create_table(3, 0)
        with pytest.raises(ValueError, match="count"):
            monitor.add_panels(table.id, "top", 0)
        with pytest.raises(ValueError, match="count"):
            monitor.add_panels(table.id, "bottom", 0)

    def test_delete_panel(self, monitor):
        table = monitor.create_table(4, 2)
        monitor.delete_panel(table.id, "top", 1)
        assert table.panels_top == 3

    def test_delete_last_panel_empties_side(self, monitor):
        table = monitor.create_table(2, 1)
        monitor.delete_panel(table.id, "bottom", 0)
        assert table.bottom is None
        assert monitor.refresh() == 1

    def test_delete_from_empty_side(self, monitor):
        table = monitor.create_table(2, 0)
        with pytest.raises(IndexError, match="no panels"):
            monitor.delete_panel(table.id, "bottom", 0)

    def test_delete_out_of_range(self, monitor):
        table = monitor.create_table(2, 2)
        with pytest.raises(IndexError):
            monitor.delete_panel(table.id, "top", 5)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

class TestReporting:

    def test_no_culprits_when_healthy(self, healthy_monitor):
        healthy_monitor.create_table(4, 4)
        assert healthy_monitor.culprits() == []
        assert healthy_monitor.status_counts() == {"good": 8, "repairing": 0, "fault": 0}

    def test_culprits_match_strings(self, monitor):
        for _ in range(3):
            monitor.create_table(5, 5)
        for _ in range(5):
            monitor.refresh()
        for c in monitor.culprits():
            string = monitor.get_table(c.table_id).side(c.position)
            assert string.actual_faulty_index == c.index
            assert c.state is not PanelState.GOOD
            assert c.health == string.series_health

    def test_status_counts_cover_all_panels(self, monitor):
        monitor.create_table(5, 3)
        monitor.create_table(2, 0)
        monitor.refresh()
        assert sum(monitor.status_counts().values()) == 10

    def test_plant_reloads_from_record(self, monitor):
        monitor.create_table(4, 2)
        monitor.create_table(3, 0)
        monitor.refresh()
        record = json.loads(json.dumps(monitor.to_record()))
        assert Plant.from_record(record) == monitor.plant

    def test_reloaded_plant_keeps_ticking(self, monitor):
        table = monitor.create_table(4, 4)
        reloaded = PlantMonitor(Plant.from_record(monitor.to_record()), rng=5)
        assert reloaded.refresh() == 2
        assert reloaded.get_table(table.id).panels_top == 4

    def test_record_is_json_serialisable(self, monitor):
        monitor.create_table(3, 0)
        monitor.refresh()
        record = json.loads(json.dumps(monitor.to_record()))
        table = record["tables"][0]
        assert record["voltagePerPanel"] == 20.0
        assert table["serialNumber"] == "TBL-0001"
        assert table["panelsTop"] == 3
        assert table["bottomPanels"] is None
        assert len(table["topPanels"]["health"]) == 3
