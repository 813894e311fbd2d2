"""Import/export handshake state for the MX3 file drop."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional
import logging

from .models import ExportKind, PendingState

logger = logging.getLogger(__name__)

IDLE_STATUS = "Ready"


@dataclass
class Schedule:
    """Hourly auto-import window: fires at `minute` past each hour in [first_hour, last_hour]."""
    minute: int = 15
    first_hour: int = 8
    last_hour: int = 16


@dataclass
class KindState:
    """Handshake state of one MX3 file."""
    phase: PendingState = PendingState.IDLE
    writes_in_flight: int = 0
    completed_at: Optional[datetime] = None  # unrendered completion time


def _both(kinds: Dict[ExportKind, bool]) -> Optional[str]:
    atm, smile = kinds[ExportKind.ATM], kinds[ExportKind.SMILE]
    if atm and smile:
        return "ATM and Smile"
    if atm:
        return ExportKind.ATM.label
    if smile:
        return ExportKind.SMILE.label
    return None


@dataclass
class ImportExportState:
    """
    All mutable handshake state, owned by the coordinator's thread.

    Each kind moves IDLE -> AWAITING_CONSUMPTION (file written or found on
    start) -> RECENTLY_COMPLETED (file gone) -> IDLE (completion display timed
    out). Transitions are idempotent: the watcher and the poll may both report
    the same change, the second report is a no-op. Every transition method
    returns whether anything changed.
    """
    kinds: Dict[ExportKind, KindState] = field(
        default_factory=lambda: {kind: KindState() for kind in ExportKind})
    importing: bool = False
    just_completed: bool = False
    last_scheduled_hour: Optional[datetime] = None

    def phase(self, kind: ExportKind) -> PendingState:
        return self.kinds[kind].phase

    @property
    def any_recently_completed(self) -> bool:
        return any(k.phase is PendingState.RECENTLY_COMPLETED for k in self.kinds.values())

    @property
    def any_non_idle(self) -> bool:
        return any(k.phase is not PendingState.IDLE or k.writes_in_flight
                   for k in self.kinds.values())

    def export_started(self, kind: ExportKind) -> bool:
        self.kinds[kind].writes_in_flight += 1
        return True

    def export_finished(self, kind: ExportKind) -> bool:
        state = self.kinds[kind]
        state.writes_in_flight = max(0, state.writes_in_flight - 1)
        state.phase = PendingState.AWAITING_CONSUMPTION
        return True

    def export_failed(self, kind: ExportKind) -> bool:
        state = self.kinds[kind]
        state.writes_in_flight = max(0, state.writes_in_flight - 1)
        return True

    def file_appeared(self, kind: ExportKind) -> bool:
        state = self.kinds[kind]
        if state.phase is PendingState.AWAITING_CONSUMPTION:
            return False
        state.phase = PendingState.AWAITING_CONSUMPTION
        logger.info(f"State: {kind.label} file present, awaiting MX3 import")
        return True

    def file_disappeared(self, kind: ExportKind, now: datetime) -> bool:
        state = self.kinds[kind]
        if state.phase is not PendingState.AWAITING_CONSUMPTION:
            return False
        state.phase = PendingState.RECENTLY_COMPLETED
        state.completed_at = now
        logger.info(f"State: {kind.label} consumed by MX3 at {now:%H:%M:%S}")
        return True

    def sync_importing(self) -> bool:
        """
        Recompute the composite importing flag.

        Returns True on a true -> false edge, when the completion indicator
        should be shown and its timeout armed.
        """
        was_importing = self.importing
        self.importing = any(k.phase is PendingState.AWAITING_CONSUMPTION or k.writes_in_flight
                             for k in self.kinds.values())
        if was_importing and not self.importing:
            self.just_completed = True
            return True
        return False

    def completion_timeout(self) -> bool:
        changed = self.just_completed
        self.just_completed = False
        for state in self.kinds.values():
            if state.phase is PendingState.RECENTLY_COMPLETED:
                state.phase = PendingState.IDLE
                changed = True
        return changed

    def consume_completed_at(self, kind: ExportKind) -> Optional[datetime]:
        """One-shot read of a kind's completion time."""
        state = self.kinds[kind]
        value, state.completed_at = state.completed_at, None
        return value

    def render_status(self) -> str:
        """
        Status line for the current state.

        Completion times are consumed by the render that shows them, except
        when quoted next to the other kind still importing.
        """
        in_flight = _both({k: bool(s.writes_in_flight) for k, s in self.kinds.items()})
        if in_flight:
            return f"{in_flight} exported, waiting for MX3 import..."

        atm, smile = self.kinds[ExportKind.ATM], self.kinds[ExportKind.SMILE]
        awaiting = PendingState.AWAITING_CONSUMPTION

        if atm.phase is awaiting and smile.phase is awaiting:
            return "ATM and Smile importing to MX3..."

        for pending, other in ((ExportKind.ATM, ExportKind.SMILE), (ExportKind.SMILE, ExportKind.ATM)):
            if self.kinds[pending].phase is awaiting:
                done_at = self.kinds[other].completed_at
                if done_at is not None:
                    return f"{other.label} done at {done_at:%H:%M:%S}, {pending.label} importing..."
                return f"{pending.label} importing to MX3..."

        if atm.completed_at is not None and smile.completed_at is not None:
            done_at = self.consume_completed_at(ExportKind.ATM)
            self.consume_completed_at(ExportKind.SMILE)
            return f"ATM and Smile completed at {done_at:%H:%M:%S}"

        for kind in ExportKind:
            done_at = self.consume_completed_at(kind)
            if done_at is not None:
                return f"{kind.label} completed at {done_at:%H:%M:%S}"

        return IDLE_STATUS

    def due_for_scheduled_run(self, now: datetime, schedule: Schedule) -> bool:
        """True once per qualifying hour, at the scheduled minute."""
        if now.minute != schedule.minute:
            return False
        if not schedule.first_hour <= now.hour <= schedule.last_hour:
            return False

        hour = now.replace(minute=0, second=0, microsecond=0)
        if self.last_scheduled_hour == hour:
            return False

        self.last_scheduled_hour = hour
        return True
