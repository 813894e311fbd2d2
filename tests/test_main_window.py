"""Tests for the operator console wiring."""
import os

import pytest

from fxvol.gui.main_window import MainWindow


@pytest.fixture
def window(coordinator_factory):
    coordinator = coordinator_factory()
    window = MainWindow(coordinator)
    yield window
    window.close()


def test_pairs_shown_on_start(window):
    table = window.pairs_table
    assert table.rowCount() == 2
    assert [table.item(row, 0).text() for row in range(2)] == ["CNHSEK", "EURSEK"]


def test_loaded_grid_enables_exports(window):
    assert not window.export_atm_btn.isEnabled()

    window.coordinator.load_data()

    assert window.vol_table.rowCount() == len(window.coordinator.volatility_data)
    assert window.export_atm_btn.isEnabled()
    assert window.export_smile_btn.isEnabled()
    assert window.load_btn.isEnabled()


def test_import_indicator_follows_handshake(window):
    coordinator = window.coordinator
    coordinator.load_data()

    coordinator.export_atm()
    assert window.import_label.text() == "Importing to MX3..."

    os.remove(coordinator.formatter.atm_path)
    coordinator.observer.poll_exports()
    assert window.import_label.text() == "Import completed"

    coordinator._on_completion_timeout()
    assert window.import_label.text() == ""


def test_import_indicator_cleared_after_failed_export(window, tmp_path):
    coordinator = window.coordinator
    coordinator.load_data()
    coordinator.formatter.atm_path = str(tmp_path / "missing" / "update_fxvols_ps.xml")

    coordinator.export_atm()

    assert window.import_label.text() == ""
    assert window.statusBar.currentMessage().startswith("ATM export error: ")


def test_source_edit_updates_registry(window):
    window.pairs_table.item(1, 1).setText("cmpn")

    assert window.coordinator.registry.get("EURSEK").atm_source == "CMPN"
    assert window.pairs_table.rowCount() == 2
