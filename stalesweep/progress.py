"""Progress and ETA tracking for long-running batch operations.

A single ProgressTracker owns the per-operation state map. Independent
operations (nested or sequential batches) use different operation ids and
never interfere with each other.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY = "Processing"


def format_elapsed(seconds: float) -> str:
    """Render a duration as H:MM:SS."""
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


@dataclass
class ProgressState:
    start_time: float
    current_index: int
    total: int


@dataclass(frozen=True)
class ProgressSnapshot:
    """Display payload for one progress update."""

    operation_id: str
    activity: str
    status: str
    elapsed: str
    elapsed_seconds: float
    percent: Optional[float]
    eta_seconds: Optional[int]
    current_operation: Optional[str]
    index: int
    total: int
    completed: bool = False


class ProgressTracker:
    """Tracks progress and estimated time remaining per operation id."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        on_snapshot: Optional[Callable[[ProgressSnapshot], None]] = None,
    ) -> None:
        self._clock = clock
        self._on_snapshot = on_snapshot
        self._states: Dict[str, ProgressState] = {}

    def active_operations(self) -> List[str]:
        return list(self._states)

    def state_for(self, operation_id: str) -> Optional[ProgressState]:
        return self._states.get(operation_id)

    def update(
        self,
        operation_id: str,
        total: int,
        index: Optional[int] = None,
        label: Optional[str] = None,
        activity: Optional[str] = None,
    ) -> ProgressSnapshot:
        """Record progress for an operation and return a display snapshot.

        When ``index`` is None the stored index advances by one. A total that
        differs from the stored one starts a new logical operation under the
        same id.
        """
        if total < 0:
            raise ValueError(f"total must be non-negative, got {total}")

        now = self._clock()
        state = self._states.get(operation_id)
        if state is None:
            state = ProgressState(start_time=now, current_index=0, total=total)
            self._states[operation_id] = state
        elif state.total != total:
            logger.debug(
                "Total for %s changed from %d to %d; restarting progress",
                operation_id,
                state.total,
                total,
            )
            state.start_time = now
            state.current_index = 0
            state.total = total

        if index is None:
            index = state.current_index + 1
        index = max(0, min(index, total))

        elapsed = now - state.start_time
        percent = None
        if total > 0:
            percent = round(max(0.0, min(index / total * 100, 100.0)), 2)
        eta = None
        if index > 0 and total >= index:
            eta = round(max(0.0, elapsed / index * (total - index)))

        state.current_index = index

        snapshot = ProgressSnapshot(
            operation_id=operation_id,
            activity=activity or DEFAULT_ACTIVITY,
            status=f"{index} of {total}",
            elapsed=format_elapsed(elapsed),
            elapsed_seconds=elapsed,
            percent=percent,
            eta_seconds=eta,
            current_operation=label,
            index=index,
            total=total,
        )
        self._emit(snapshot)
        return snapshot

    def advance(
        self,
        operation_id: str,
        total: int,
        label: Optional[str] = None,
        activity: Optional[str] = None,
    ) -> ProgressSnapshot:
        """Move an operation forward by one item."""
        return self.update(operation_id, total, None, label, activity)

    def set_index(
        self,
        operation_id: str,
        total: int,
        index: int,
        label: Optional[str] = None,
        activity: Optional[str] = None,
    ) -> ProgressSnapshot:
        """Record an absolute position for an operation."""
        return self.update(operation_id, total, index, label, activity)

    def reset(self, operation_id: str) -> None:
        """Restart the clock and index for an operation, keeping its total."""
        state = self._states.get(operation_id)
        if state is None:
            return
        state.start_time = self._clock()
        state.current_index = 0

    def complete(
        self,
        operation_id: str,
        total: int,
        label: Optional[str] = None,
        activity: Optional[str] = None,
    ) -> ProgressSnapshot:
        """Emit a final snapshot and forget all state for the operation."""
        state = self._states.pop(operation_id, None)
        elapsed = self._clock() - state.start_time if state is not None else 0.0
        total = max(0, total)

        snapshot = ProgressSnapshot(
            operation_id=operation_id,
            activity=activity or DEFAULT_ACTIVITY,
            status=f"{total} of {total}",
            elapsed=format_elapsed(elapsed),
            elapsed_seconds=elapsed,
            percent=100.0,
            eta_seconds=0,
            current_operation=label,
            index=total,
            total=total,
            completed=True,
        )
        self._emit(snapshot)
        return snapshot

    def _emit(self, snapshot: ProgressSnapshot) -> None:
        logger.debug(
            "%s [%s] %s %s%% eta=%s",
            snapshot.operation_id,
            snapshot.activity,
            snapshot.status,
            snapshot.percent,
            snapshot.eta_seconds,
        )
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
