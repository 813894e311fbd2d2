"""Test fixtures for the FX volatility import tests."""
import os
from datetime import datetime
from typing import Dict, List

import pytest

from fxvol.core.coordinator import ImportExportCoordinator
from fxvol.core.market_data_gateway import MarketDataGateway
from fxvol.core.mx3_export import ExportFormatter
from fxvol.core.pair_registry import CurrencyPairRegistry
from fxvol.core.positions_feed import PositionsFeed
from fxvol.core.settings_store import SettingsStore
from fxvol.core.models import VolatilityPoint
from fxvol.core.ticker_mapper import TickerMapper
from fxvol.utils.config_loader import ConfigLoader

NOW = datetime(2024, 5, 6, 10, 15, 30)


class FakeGateway(MarketDataGateway):
    """In-memory gateway recording every batched request."""

    def __init__(self, values: Dict[str, Dict[str, str]] = None, connect_ok: bool = True):
        self.values = values or {}
        self.connect_ok = connect_ok
        self.connected = False
        self.requests: List[Dict] = []
        self.disconnect_calls = 0

    def connect(self) -> bool:
        self.connected = self.connect_ok
        return self.connected

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def fetch_reference_data(self, identifiers, fields):
        self.requests.append({"identifiers": list(identifiers), "fields": list(fields)})
        return {i: dict(self.values[i]) for i in identifiers if i in self.values}


@pytest.fixture(scope="session")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PyQt6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def mapper():
    return TickerMapper({"CNHSEK": "SEKCNH"})


@pytest.fixture
def config_file(tmp_path):
    """Point the ConfigLoader singleton at a scratch config, restoring it afterwards."""
    def _write(text: str) -> ConfigLoader:
        path = tmp_path / "config.yaml"
        path.write_text(text)
        config = ConfigLoader()
        config.load_config(str(path))
        return config

    yield _write
    ConfigLoader().load_config()


@pytest.fixture
def sample_points():
    return [
        VolatilityPoint("EURSEK", "ON", atm_bid=1.2344, atm_ask=1.567, rr_25d=0.25, rr_10d=0.5,
                        bf_25d=0.1, bf_10d=0.3),
        VolatilityPoint("EURSEK", "1W", atm_bid=5.0, atm_ask=5.5, rr_25d=-0.2, rr_10d=-0.4,
                        bf_25d=0.15, bf_10d=0.35),
        VolatilityPoint("CNHSEK", "ON", atm_bid=7.0, atm_ask=7.5, rr_25d=-1.0, rr_10d=-2.0,
                        bf_25d=0.2, bf_10d=0.6),
    ]


def write_positions(path, rows: List[str], header: str = "CURR_PAIR;TYPOLOGY") -> str:
    with open(path, "w") as f:
        f.write(header + "\n")
        for row in rows:
            f.write(row + "\n")
    return os.fspath(path)


@pytest.fixture
def coordinator_factory(qapp, tmp_path, mapper, monkeypatch):
    """Coordinators over scratch files; workers run inline unless asked otherwise."""
    created = []

    def _build(gateway=None, rows=("EUR/SEK;FX Option", "SEK/CNH;FX Option"), inline=True):
        export_dir = tmp_path / "mx3"
        export_dir.mkdir(exist_ok=True)
        positions = write_positions(tmp_path / "live.csv", list(rows))
        coordinator = ImportExportCoordinator(
            gateway=gateway if gateway is not None else FakeGateway(),
            mapper=mapper,
            registry=CurrencyPairRegistry(),
            positions_feed=PositionsFeed(mapper, positions),
            settings_store=SettingsStore(str(tmp_path / "settings.yaml")),
            formatter=ExportFormatter(mapper, str(export_dir / "update_fxvols_ps.xml"),
                                      str(export_dir / "update_fxvols_smile.xml")),
            clock=lambda: NOW,
        )
        if inline:
            monkeypatch.setattr(coordinator, "_submit", lambda worker: worker.run())
        created.append(coordinator)
        return coordinator

    yield _build
    for coordinator in created:
        coordinator.shutdown()
