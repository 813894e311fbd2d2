"""Watches the MX3 drop directory and the live positions file."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging
import os

from PyQt6.QtCore import QFileSystemWatcher, QObject, QTimer, pyqtSignal

from .models import ExportKind

logger = logging.getLogger(__name__)


class FileChange(Enum):
    APPEARED = "appeared"
    DISAPPEARED = "disappeared"


@dataclass(frozen=True)
class FileEvent:
    kind: ExportKind
    change: FileChange


class ExportFileTracker:
    """
    Turns existence checks of the export files into appear/disappear events.

    Remembers what was last seen per kind, so repeated scans of an unchanged
    directory report nothing. A rename away is just a disappearance.
    """

    def __init__(self, paths: Dict[ExportKind, str],
                 exists: Callable[[str], bool] = os.path.exists):
        self.paths = dict(paths)
        self._exists = exists
        self._last_seen = {kind: False for kind in self.paths}

    def was_present(self, kind: ExportKind) -> bool:
        return self._last_seen[kind]

    def mark_present(self, kind: ExportKind) -> None:
        """Record a file we just wrote ourselves."""
        self._last_seen[kind] = True

    def scan(self) -> List[FileEvent]:
        events = []
        for kind, path in self.paths.items():
            try:
                exists = self._exists(path)
            except OSError as e:
                logger.warning(f"Observer: Cannot check {path}: {e}")
                continue

            if exists and not self._last_seen[kind]:
                events.append(FileEvent(kind, FileChange.APPEARED))
            elif not exists and self._last_seen[kind]:
                events.append(FileEvent(kind, FileChange.DISAPPEARED))
            self._last_seen[kind] = exists
        return events


class FileObserver(QObject):
    """
    Dual-source file monitoring for network shares that drop notifications.

    Push: QFileSystemWatcher on the export directory and on the positions
    file. Poll: the coordinator's tick calls poll_exports() and
    poll_positions(). Both sources feed the same tracker and emit through the
    same signals, always on the owner thread.
    """

    file_event = pyqtSignal(object)      # FileEvent
    positions_changed = pyqtSignal()

    def __init__(self, export_paths: Dict[ExportKind, str], positions_path: str,
                 settle_push_ms: int = 1000, settle_poll_ms: int = 500, parent=None):
        super().__init__(parent)
        self.tracker = ExportFileTracker(export_paths)
        self.export_directory = os.path.dirname(next(iter(export_paths.values())))
        self.positions_path = positions_path
        self.settle_push_ms = settle_push_ms
        self.settle_poll_ms = settle_poll_ms
        self._positions_mtime: Optional[datetime] = None

        self._watcher = QFileSystemWatcher(self)
        self._watcher.directoryChanged.connect(self._on_directory_changed)
        self._watcher.fileChanged.connect(self._on_positions_file_changed)

        self._positions_settle = QTimer(self)
        self._positions_settle.setSingleShot(True)
        self._positions_settle.timeout.connect(self.positions_changed.emit)

    def start(self) -> List[FileEvent]:
        """Start watching. Returns the files already present at startup."""
        self._positions_mtime = self._read_positions_mtime()
        self._watch(self.export_directory)
        self._watch(os.path.dirname(self.positions_path))
        self._watch(self.positions_path)
        return self.tracker.scan()

    def stop(self) -> None:
        self._positions_settle.stop()
        paths = self._watcher.files() + self._watcher.directories()
        if paths:
            self._watcher.removePaths(paths)

    def _watch(self, path: str) -> None:
        if not path or not os.path.exists(path):
            logger.warning(f"Observer: Cannot watch missing path {path}, relying on polling")
            return
        if path in self._watcher.files() or path in self._watcher.directories():
            return
        if not self._watcher.addPath(path):
            logger.warning(f"Observer: Watch failed for {path}, relying on polling")

    def mark_present(self, kind: ExportKind) -> None:
        self.tracker.mark_present(kind)

    def poll_exports(self) -> None:
        self._emit_events(self.tracker.scan(), "poll")

    def poll_positions(self) -> None:
        current = self._read_positions_mtime()
        if current is not None and (self._positions_mtime is None or current > self._positions_mtime):
            logger.info(f"Observer: Positions file modified at {current:%H:%M:%S} (poll)")
            self._positions_mtime = current
            if not self._positions_settle.isActive():
                self._positions_settle.start(self.settle_poll_ms)

    def _emit_events(self, events: List[FileEvent], source: str) -> None:
        for event in events:
            logger.info(f"Observer: {event.kind.label} file {event.change.value} ({source})")
            self.file_event.emit(event)

    def _on_directory_changed(self, path: str) -> None:
        if os.path.normcase(path) == os.path.normcase(self.export_directory):
            self._emit_events(self.tracker.scan(), "watcher")

        if os.path.normcase(path) == os.path.normcase(os.path.dirname(self.positions_path)):
            # A replaced positions file drops out of the watch list
            if os.path.exists(self.positions_path) and self.positions_path not in self._watcher.files():
                self._watch(self.positions_path)
                self._on_positions_file_changed(self.positions_path)

    def _on_positions_file_changed(self, path: str) -> None:
        if not os.path.exists(path):
            return
        logger.info("Observer: Positions file changed (watcher)")
        self._positions_mtime = self._read_positions_mtime()
        self._positions_settle.start(self.settle_push_ms)

    def _read_positions_mtime(self) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(os.path.getmtime(self.positions_path))
        except OSError:
            return None
