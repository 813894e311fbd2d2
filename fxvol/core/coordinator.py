"""Orchestration of Bloomberg loads, MX3 exports and the file-drop handshake."""

from datetime import datetime
from typing import Callable, List, Set
import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..utils.config_loader import ConfigLoader
from .file_observer import FileChange, FileEvent, FileObserver
from .import_state import ImportExportState, Schedule
from .market_data_gateway import MarketDataGateway
from .models import AppSettings, CurrencyPairEntry, ExportKind, VolatilityPoint
from .mx3_export import ExportFormatter
from .pair_registry import CurrencyPairRegistry
from .positions_feed import PositionsFeed
from .settings_store import SettingsStore
from .ticker_mapper import TickerMapper, get_ticker_mapper
from .volatility_surface import VolatilitySurfaceBuilder
from .workers import TaskWorker

logger = logging.getLogger(__name__)


class NotConnectedError(Exception):
    """Raised by a load when no Bloomberg session can be established."""


class ImportExportCoordinator(QObject):
    """
    Drives the MX3 volatility import.

    Lives on the owner (GUI) thread and is the only place the registry, the
    loaded grid and the handshake state are changed. Bloomberg fetches and
    file writes run on TaskWorker threads and report back through queued
    signals; file observations arrive through FileObserver.file_event from
    both the watcher and the poll.
    """

    status_changed = pyqtSignal(str)
    importing_changed = pyqtSignal(bool)
    import_completed_changed = pyqtSignal(bool)
    data_loaded = pyqtSignal(list)
    pairs_changed = pyqtSignal(list)
    connection_changed = pyqtSignal(bool)
    loading_changed = pyqtSignal(bool)

    def __init__(self, config: ConfigLoader = None, gateway: MarketDataGateway = None,
                 mapper: TickerMapper = None, registry: CurrencyPairRegistry = None,
                 positions_feed: PositionsFeed = None, settings_store: SettingsStore = None,
                 formatter: ExportFormatter = None, observer: FileObserver = None,
                 clock: Callable[[], datetime] = datetime.now, parent=None):
        super().__init__(parent)

        self.config = config if config is not None else ConfigLoader()
        self.mapper = mapper if mapper is not None else get_ticker_mapper()

        if gateway is None:
            from .bloomberg_client import BloombergGateway
            gateway = BloombergGateway()
        self.gateway = gateway

        if registry is None:
            registry = CurrencyPairRegistry(self.config.default_atm_source,
                                            self.config.default_smile_source)
        self.registry = registry

        if positions_feed is None:
            positions_feed = PositionsFeed(self.mapper, self.config.positions_file)
        self.positions_feed = positions_feed

        if settings_store is None:
            settings_store = SettingsStore(self.config.settings_file)
        self.settings_store = settings_store

        if formatter is None:
            formatter = ExportFormatter(self.mapper, self.config.atm_file, self.config.smile_file)
        self.formatter = formatter
        self.builder = VolatilitySurfaceBuilder(self.gateway, self.mapper)

        if observer is None:
            observer = FileObserver(
                {ExportKind.ATM: self.formatter.atm_path, ExportKind.SMILE: self.formatter.smile_path},
                self.positions_feed.filepath,
                settle_push_ms=self.config.positions_settle_push_ms,
                settle_poll_ms=self.config.positions_settle_poll_ms,
                parent=self,
            )
        self.observer = observer
        self.observer.file_event.connect(self._on_file_event)
        self.observer.positions_changed.connect(self.refresh_currency_pairs)

        self.clock = clock
        self.state = ImportExportState()
        self.schedule = Schedule(self.config.schedule_minute,
                                 self.config.schedule_first_hour,
                                 self.config.schedule_last_hour)
        self.auto_import_enabled = self.config.auto_import
        self.volatility_data: List[VolatilityPoint] = []

        self._status_text = "Ready"
        self._loading = False
        self._tick_count = 0
        self._shut_down = False
        self._workers: Set[TaskWorker] = set()

        # Timer every second for the schedule and file polling
        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(self.config.tick_ms)
        self._tick_timer.timeout.connect(self._on_tick)

        # Timer that clears the "just completed" indicator
        self._completion_timer = QTimer(self)
        self._completion_timer.setSingleShot(True)
        self._completion_timer.setInterval(self.config.completion_display_ms)
        self._completion_timer.timeout.connect(self._on_completion_timeout)

    # ------------------------------------------------------------------ status

    @property
    def status_text(self) -> str:
        return self._status_text

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_importing(self) -> bool:
        return self.state.importing

    @property
    def import_just_completed(self) -> bool:
        return self.state.just_completed

    def _set_status(self, text: str) -> None:
        self._status_text = text
        logger.info(f"Status: {text}")
        self.status_changed.emit(text)

    def _set_loading(self, loading: bool) -> None:
        self._loading = loading
        self.loading_changed.emit(loading)

    # --------------------------------------------------------------- lifecycle

    def start(self) -> None:
        """Restore pairs, inspect the drop directory and start the tick."""
        settings = self.settings_store.load()
        self.registry.load(settings.currency_pairs)
        self.pairs_changed.emit(self.registry.entries)

        self.refresh_currency_pairs()

        # Files already in the drop directory count as awaiting import
        for event in self.observer.start():
            self._on_file_event(event)

        self._tick_timer.start()
        logger.info("Coordinator: Started")

    def shutdown(self) -> None:
        """Stop timers and watchers and release the Bloomberg session once."""
        if self._shut_down:
            return
        self._shut_down = True
        self._tick_timer.stop()
        self._completion_timer.stop()
        self.observer.stop()
        self.gateway.disconnect()

        # Running workers are not cancelled, their late results are dropped
        for worker in list(self._workers):
            worker.result_signal.disconnect()
            worker.error_signal.disconnect()
        logger.info("Coordinator: Shut down")

    def _submit(self, worker: TaskWorker) -> None:
        self._workers.add(worker)
        worker.finished.connect(self._release_worker)
        worker.finished.connect(worker.deleteLater)
        worker.start()

    def _release_worker(self) -> None:
        self._workers.discard(self.sender())

    # ------------------------------------------------------------------- pairs

    def refresh_currency_pairs(self) -> None:
        """Re-read the live positions file and merge with persisted settings."""
        live_pairs = self.positions_feed.read_live_pairs()
        settings = self.settings_store.load()

        if self.registry.refresh(live_pairs, settings.currency_pairs):
            self.pairs_changed.emit(self.registry.entries)

        file_date = self.positions_feed.last_modified()
        file_text = f"{file_date:%Y-%m-%d %H:%M}" if file_date else "n/a"
        self._set_status(f"Found {len(live_pairs)} pairs (file: {file_text})")
        self.save_settings()

    def update_pair(self, symbol: str, atm_source: str = None, smile_source: str = None,
                    is_live: bool = None) -> bool:
        if not self.registry.update(symbol, atm_source, smile_source, is_live):
            return False
        self.pairs_changed.emit(self.registry.entries)
        self.save_settings()
        return True

    def save_settings(self) -> bool:
        return self.settings_store.save(AppSettings(currency_pairs=self.registry.snapshot()))

    # --------------------------------------------------------------- Bloomberg

    def connect_gateway(self) -> bool:
        if self._loading:
            logger.info("Coordinator: Load in progress, connect ignored")
            return self.gateway.is_connected()

        self._set_status("Connecting to Bloomberg...")
        connected = self.gateway.connect()
        self.connection_changed.emit(connected)
        self._set_status("Connected to Bloomberg" if connected else "Failed to connect to Bloomberg")
        return connected

    def load_data(self, scheduled: bool = False) -> bool:
        """
        Fetch the grid for the live pairs on a worker thread.

        Returns False if a load is already running.
        """
        if self._loading:
            logger.warning("Coordinator: Load already in progress")
            return False

        self._set_loading(True)
        self._set_status("Loading volatility data from Bloomberg...")

        worker = TaskWorker(scheduled, self._fetch, self.registry.snapshot(), parent=self)
        worker.result_signal.connect(self._on_fetch_finished)
        worker.error_signal.connect(self._on_fetch_failed)
        self._submit(worker)
        return True

    def _fetch(self, entries: List[CurrencyPairEntry]) -> List[VolatilityPoint]:
        # Worker thread: touches only the gateway and the entry copies
        if not self.gateway.is_connected() and not self.gateway.connect():
            raise NotConnectedError("not connected to Bloomberg")
        return self.builder.build(entries)

    def _on_fetch_finished(self, scheduled: bool, points: List[VolatilityPoint]) -> None:
        self._set_loading(False)
        self.connection_changed.emit(self.gateway.is_connected())

        self.volatility_data = list(points)
        self.data_loaded.emit(self.volatility_data)
        self._set_status(f"Loaded {len(points)} tenor points at {self.clock():%H:%M:%S}")
        self.save_settings()

        if scheduled:
            if self.volatility_data:
                self.export_atm()
                self.export_smile()
            else:
                self._set_status("Scheduled import failed - no data loaded")

    def _on_fetch_failed(self, scheduled: bool, error: Exception) -> None:
        self._set_loading(False)
        if isinstance(error, NotConnectedError):
            self.connection_changed.emit(False)

        if scheduled:
            self._set_status("Scheduled import failed - no data loaded")
        elif isinstance(error, NotConnectedError):
            self._set_status("Cannot load data - not connected to Bloomberg")
        else:
            self._set_status(f"Error loading data: {error}")

    # ------------------------------------------------------------------ export

    def export_atm(self) -> bool:
        return self._export(ExportKind.ATM)

    def export_smile(self) -> bool:
        return self._export(ExportKind.SMILE)

    def _export(self, kind: ExportKind) -> bool:
        if not self.volatility_data:
            self._set_status(f"No data to export for {kind.label}")
            return False

        self.state.export_started(kind)
        self._after_state_change()

        worker = TaskWorker(kind, self.formatter.export, kind, list(self.volatility_data), parent=self)
        worker.result_signal.connect(self._on_export_finished)
        worker.error_signal.connect(self._on_export_failed)
        self._submit(worker)
        return True

    def _on_export_finished(self, kind: ExportKind, path: str) -> None:
        # A consumer quicker than the next scan must still show up as a deletion
        self.observer.mark_present(kind)
        self.state.export_finished(kind)
        self._after_state_change()

    def _on_export_failed(self, kind: ExportKind, error: Exception) -> None:
        self.state.export_failed(kind)
        self._sync_importing(announce_completion=False)
        self._set_status(f"{kind.label} export error: {error}")

    # --------------------------------------------------------------- handshake

    def _on_file_event(self, event: FileEvent) -> None:
        if event.change is FileChange.APPEARED:
            changed = self.state.file_appeared(event.kind)
        else:
            changed = self.state.file_disappeared(event.kind, self.clock())

        if changed:
            self._after_state_change()

    def _after_state_change(self) -> None:
        self._sync_importing()
        self._set_status(self.state.render_status())

    def _sync_importing(self, announce_completion: bool = True) -> None:
        was_importing = self.state.importing
        completed = self.state.sync_importing()

        if completed and not announce_completion and not self.state.any_recently_completed:
            # A failed write with nothing consumed is not a completed import
            self.state.just_completed = False
            completed = False

        if self.state.importing != was_importing:
            self.importing_changed.emit(self.state.importing)
        if completed:
            self.import_completed_changed.emit(True)
            self._completion_timer.start()

    def _on_completion_timeout(self) -> None:
        self.state.completion_timeout()
        self.import_completed_changed.emit(False)

    # ---------------------------------------------------------------- schedule

    def set_auto_import(self, enabled: bool) -> None:
        self.auto_import_enabled = enabled
        logger.info(f"Coordinator: Auto import {'enabled' if enabled else 'disabled'}")

    def _on_tick(self) -> None:
        self._tick_count += 1

        if self.state.any_non_idle:
            self.observer.poll_exports()

        # Backup for a watcher that missed a positions update
        if self._tick_count % self.config.positions_poll_every == 0:
            self.observer.poll_positions()

        if self.auto_import_enabled and self.state.due_for_scheduled_run(self.clock(), self.schedule):
            self.run_scheduled_import()

    def run_scheduled_import(self) -> None:
        self._set_status(f"Scheduled import at {self.clock():%H:%M}...")
        if not self.load_data(scheduled=True):
            self._set_status("Scheduled import skipped - load already in progress")
