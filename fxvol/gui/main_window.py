"""Main window for the FX volatility import."""

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QTableWidget,
    QTableWidgetItem, QPushButton, QLabel, QStatusBar, QHeaderView,
    QSplitter, QCheckBox
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from typing import List
import logging

from .styles import MAIN_STYLESHEET, COLORS, get_rr_color, format_vol
from ..core.coordinator import ImportExportCoordinator
from ..core.models import CurrencyPairEntry, VolatilityPoint, display_tenor

logger = logging.getLogger(__name__)

PAIR_COLUMNS = ["Pair", "ATM Source", "Smile Source", "Live"]
VOL_COLUMNS = ["Pair", "Tenor", "ATM Bid", "ATM Ask", "RR 25D", "RR 10D", "BF 25D", "BF 10D"]


class MainWindow(QMainWindow):
    """Operator console over the import coordinator."""

    def __init__(self, coordinator: ImportExportCoordinator = None):
        super().__init__()

        self.coordinator = coordinator or ImportExportCoordinator(parent=self)
        self._populating_pairs = False
        self._applying_edit = False

        self._setup_ui()
        self._setup_connections()

        self.coordinator.start()

    def _setup_ui(self):
        """Set up the user interface."""
        self.setWindowTitle("FX Volatility Import")
        self.setMinimumSize(1100, 700)
        self.setStyleSheet(MAIN_STYLESHEET)

        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setSpacing(10)
        main_layout.setContentsMargins(15, 15, 15, 15)

        # Header
        header_layout = QHBoxLayout()

        title_label = QLabel("FX Volatility Import")
        title_label.setObjectName("header")
        header_layout.addWidget(title_label)

        header_layout.addStretch()

        self.import_label = QLabel("")
        header_layout.addWidget(self.import_label)

        self.connection_label = QLabel("Disconnected")
        self.connection_label.setStyleSheet(f"color: {COLORS['negative']};")
        header_layout.addWidget(self.connection_label)

        main_layout.addLayout(header_layout)

        # Buttons
        button_layout = QHBoxLayout()

        self.connect_btn = QPushButton("Connect")
        button_layout.addWidget(self.connect_btn)

        self.refresh_pairs_btn = QPushButton("Refresh Pairs")
        button_layout.addWidget(self.refresh_pairs_btn)

        self.load_btn = QPushButton("Load Data")
        self.load_btn.setObjectName("loadButton")
        button_layout.addWidget(self.load_btn)

        self.export_atm_btn = QPushButton("Export ATM")
        self.export_atm_btn.setObjectName("exportButton")
        self.export_atm_btn.setEnabled(False)
        button_layout.addWidget(self.export_atm_btn)

        self.export_smile_btn = QPushButton("Export Smile")
        self.export_smile_btn.setObjectName("exportButton")
        self.export_smile_btn.setEnabled(False)
        button_layout.addWidget(self.export_smile_btn)

        button_layout.addStretch()

        self.auto_import_check = QCheckBox("Auto import")
        self.auto_import_check.setChecked(self.coordinator.auto_import_enabled)
        button_layout.addWidget(self.auto_import_check)

        main_layout.addLayout(button_layout)

        # Tables
        splitter = QSplitter(Qt.Orientation.Horizontal)

        pairs_panel = QWidget()
        pairs_layout = QVBoxLayout(pairs_panel)
        pairs_label = QLabel("Currency Pairs")
        pairs_label.setObjectName("sectionHeader")
        pairs_layout.addWidget(pairs_label)
        self.pairs_table = QTableWidget()
        self._setup_table(self.pairs_table, PAIR_COLUMNS)
        pairs_layout.addWidget(self.pairs_table)
        splitter.addWidget(pairs_panel)

        vol_panel = QWidget()
        vol_layout = QVBoxLayout(vol_panel)
        vol_label = QLabel("Volatility Data")
        vol_label.setObjectName("sectionHeader")
        vol_layout.addWidget(vol_label)
        self.vol_table = QTableWidget()
        self._setup_table(self.vol_table, VOL_COLUMNS)
        self.vol_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        vol_layout.addWidget(self.vol_table)
        splitter.addWidget(vol_panel)

        splitter.setSizes([350, 750])
        main_layout.addWidget(splitter)

        # Status bar
        self.statusBar = QStatusBar()
        self.setStatusBar(self.statusBar)
        self.statusBar.showMessage(self.coordinator.status_text)

    def _setup_table(self, table: QTableWidget, columns: List[str]):
        table.setColumnCount(len(columns))
        table.setHorizontalHeaderLabels(columns)
        table.setAlternatingRowColors(True)
        table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        table.verticalHeader().setVisible(False)
        table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)

    def _setup_connections(self):
        """Set up signal connections."""
        self.connect_btn.clicked.connect(self.coordinator.connect_gateway)
        self.refresh_pairs_btn.clicked.connect(self.coordinator.refresh_currency_pairs)
        self.load_btn.clicked.connect(lambda: self.coordinator.load_data())
        self.export_atm_btn.clicked.connect(self.coordinator.export_atm)
        self.export_smile_btn.clicked.connect(self.coordinator.export_smile)
        self.auto_import_check.toggled.connect(self.coordinator.set_auto_import)
        self.pairs_table.itemChanged.connect(self._on_pair_item_changed)

        self.coordinator.status_changed.connect(self.statusBar.showMessage)
        self.coordinator.pairs_changed.connect(self._update_pairs_table)
        self.coordinator.data_loaded.connect(self._update_vol_table)
        self.coordinator.connection_changed.connect(self._on_connection_changed)
        self.coordinator.loading_changed.connect(self._on_loading_changed)
        self.coordinator.importing_changed.connect(self._on_importing_changed)
        self.coordinator.import_completed_changed.connect(self._on_import_completed_changed)

    def _update_pairs_table(self, entries: List[CurrencyPairEntry]):
        # The edited row already shows the change
        if self._applying_edit:
            return

        self._populating_pairs = True
        try:
            self.pairs_table.setRowCount(0)
            for entry in entries:
                row = self.pairs_table.rowCount()
                self.pairs_table.insertRow(row)

                symbol_item = QTableWidgetItem(entry.symbol)
                symbol_item.setFlags(symbol_item.flags() & ~Qt.ItemFlag.ItemIsEditable)
                self.pairs_table.setItem(row, 0, symbol_item)
                self.pairs_table.setItem(row, 1, QTableWidgetItem(entry.atm_source))
                self.pairs_table.setItem(row, 2, QTableWidgetItem(entry.smile_source))

                live_item = QTableWidgetItem()
                live_item.setFlags(Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsEnabled)
                live_item.setCheckState(Qt.CheckState.Checked if entry.is_live else Qt.CheckState.Unchecked)
                self.pairs_table.setItem(row, 3, live_item)
        finally:
            self._populating_pairs = False

    def _on_pair_item_changed(self, item: QTableWidgetItem):
        if self._populating_pairs:
            return

        symbol_item = self.pairs_table.item(item.row(), 0)
        if symbol_item is None:
            return
        symbol = symbol_item.text()

        column = item.column()
        self._applying_edit = True
        try:
            if column == 1:
                self.coordinator.update_pair(symbol, atm_source=item.text())
            elif column == 2:
                self.coordinator.update_pair(symbol, smile_source=item.text())
            elif column == 3:
                self.coordinator.update_pair(symbol, is_live=item.checkState() == Qt.CheckState.Checked)
        finally:
            self._applying_edit = False

    def _update_vol_table(self, points: List[VolatilityPoint]):
        self.vol_table.setRowCount(0)

        for point in points:
            row = self.vol_table.rowCount()
            self.vol_table.insertRow(row)

            items = [
                (point.pair, None),
                (display_tenor(point.tenor), None),
                (format_vol(point.atm_bid), None),
                (format_vol(point.atm_ask), None),
                (format_vol(point.rr_25d), get_rr_color(point.rr_25d)),
                (format_vol(point.rr_10d), get_rr_color(point.rr_10d)),
                (format_vol(point.bf_25d), None),
                (format_vol(point.bf_10d), None),
            ]

            for col, (text, color) in enumerate(items):
                item = QTableWidgetItem(text)
                item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)
                if color:
                    item.setForeground(QColor(color))
                self.vol_table.setItem(row, col, item)

        has_data = bool(points)
        self.export_atm_btn.setEnabled(has_data)
        self.export_smile_btn.setEnabled(has_data)

    def _on_connection_changed(self, connected: bool):
        if connected:
            self.connection_label.setText("Connected")
            self.connection_label.setStyleSheet(f"color: {COLORS['positive']};")
        else:
            self.connection_label.setText("Disconnected")
            self.connection_label.setStyleSheet(f"color: {COLORS['negative']};")

    def _on_loading_changed(self, loading: bool):
        self.load_btn.setEnabled(not loading)
        self.connect_btn.setEnabled(not loading)

    def _on_importing_changed(self, importing: bool):
        if importing:
            self.import_label.setText("Importing to MX3...")
            self.import_label.setStyleSheet(f"color: {COLORS['warning']};")
        elif not self.coordinator.import_just_completed:
            self.import_label.setText("")

    def _on_import_completed_changed(self, completed: bool):
        if completed:
            self.import_label.setText("Import completed")
            self.import_label.setStyleSheet(f"color: {COLORS['positive']};")
        elif not self.coordinator.is_importing:
            self.import_label.setText("")

    def closeEvent(self, event):
        """Handle window close."""
        self.coordinator.shutdown()
        event.accept()
