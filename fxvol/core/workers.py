"""Worker threads for blocking Bloomberg fetches and MX3 writes."""

import logging
from typing import Any, Callable

from PyQt6.QtCore import QThread, pyqtSignal

logger = logging.getLogger(__name__)


class TaskWorker(QThread):
    """
    Runs one blocking call off the owner thread.

    Results travel back through signals; receivers living on the owner thread
    get them as queued calls, so no shared state is touched from here.
    """

    result_signal = pyqtSignal(object, object)  # tag, result
    error_signal = pyqtSignal(object, object)   # tag, exception

    def __init__(self, tag: Any, fn: Callable, *args, parent=None):
        super().__init__(parent)
        self.tag = tag
        self.fn = fn
        self.args = args

    def run(self):
        try:
            result = self.fn(*self.args)
        except Exception as e:
            logger.error(f"Worker: Task {self.tag!r} failed - {type(e).__name__}: {e}")
            self.error_signal.emit(self.tag, e)
        else:
            self.result_signal.emit(self.tag, result)
