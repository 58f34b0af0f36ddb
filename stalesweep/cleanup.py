"""
Stalesweep Cleanup Workflow

File Purpose: Discover and delete stale directory devices under a safety policy
Primary Functions/Classes: CleanupWorkflow, compute_cutoff, threshold_exceeded
Inputs and Outputs (I/O): DirectoryClient listing and delete calls, RunSummary result

A run moves through START -> CUTOFF_COMPUTED -> CANDIDATES_FETCHED and then
either stops at the threshold gate or deletes candidates one at a time.
Per-item failures are counted, never raised. Listing failures propagate.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from .exceptions import NotFoundError, ValidationError
from .models import (
    CleanupPolicy,
    DeleteOutcome,
    DeviceRecord,
    RunState,
    RunSummary,
    format_timestamp,
)
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

DEFAULT_OPERATION_ID = "stale-device-cleanup"
DELETE_ACTIVITY = "Deleting stale devices"


def compute_cutoff(now: datetime, window: timedelta) -> str:
    """Return ``now - window`` in UTC, truncated to whole seconds."""
    return format_timestamp(now - window)


def threshold_exceeded(candidate_count: int, policy: CleanupPolicy) -> bool:
    """True when the gate is active and the count reaches the threshold."""
    if not policy.gate_enabled:
        return False
    return candidate_count >= policy.threshold


class CleanupWorkflow:
    """Runs one stale-device cleanup against a directory client."""

    def __init__(
        self,
        client,
        policy: CleanupPolicy,
        tracker: Optional[ProgressTracker] = None,
        confirm: Optional[Callable[[DeviceRecord], bool]] = None,
        ui=None,
        clock: Optional[Callable[[], datetime]] = None,
        timer: Callable[[], float] = time.monotonic,
        operation_id: str = DEFAULT_OPERATION_ID,
    ):
        self.client = client
        self.policy = policy
        self.tracker = tracker or ProgressTracker()
        self.ui = ui
        self.confirm = confirm
        if self.confirm is None and ui is not None:
            self.confirm = ui.confirm_delete
        if policy.confirm_each and not policy.dry_run and self.confirm is None:
            raise ValidationError("Confirmation mode needs a confirm callback")
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._timer = timer
        self.operation_id = operation_id
        self.state = RunState.START
        self._failures: List[Tuple[str, str]] = []

    def run(self) -> RunSummary:
        """Execute the workflow and return its summary."""
        started = self._timer()
        self.state = RunState.START
        self._failures = []
        summary = RunSummary(dry_run=self.policy.dry_run, failures=self._failures)

        cutoff = compute_cutoff(self._clock(), self.policy.inactivity_window)
        summary.cutoff = cutoff
        self.state = RunState.CUTOFF_COMPUTED
        logger.info("Looking for devices with no sign-in since %s", cutoff)

        candidates = list(self.client.list_stale(cutoff))
        self.state = RunState.CANDIDATES_FETCHED
        total = len(candidates)
        summary.considered_total = total

        if not candidates:
            logger.info("No stale devices found")
            return self._finish(summary, RunState.COMPLETED, started)

        if threshold_exceeded(total, self.policy):
            logger.warning(
                "Found %d stale devices, at or above the safety threshold of %d; "
                "nothing deleted",
                total,
                self.policy.threshold,
            )
            if self.ui is not None:
                self.ui.show_threshold_warning(total, self.policy.threshold)
            return self._finish(summary, RunState.ABORTED_THRESHOLD, started)

        self.state = RunState.PROCEEDING
        final_state = RunState.INTERRUPTED
        try:
            for record in candidates:
                self.tracker.advance(
                    self.operation_id,
                    total,
                    label=record.label,
                    activity=DELETE_ACTIVITY,
                )
                summary.record(self.process_candidate(record))
            final_state = RunState.COMPLETED
        finally:
            self.tracker.complete(self.operation_id, total, activity=DELETE_ACTIVITY)
            if final_state is RunState.INTERRUPTED:
                logger.warning(
                    "Cleanup interrupted after %d of %d devices", summary.processed, total
                )
            self._finish(summary, final_state, started)

        return summary

    def process_candidate(self, record: DeviceRecord) -> DeleteOutcome:
        """Handle a single device and classify the result."""
        if self.policy.dry_run:
            logger.info("[dry run] Would delete %s (%s)", record.label, record.id)
            return DeleteOutcome.DRY_RUN

        if self.policy.confirm_each and not self.confirm(record):
            logger.info("Declined deletion of %s (%s)", record.label, record.id)
            return DeleteOutcome.DECLINED

        try:
            self.client.delete(record.id)
        except NotFoundError:
            logger.info("Device %s (%s) already removed; skipping", record.label, record.id)
            return DeleteOutcome.NOT_FOUND
        except Exception as e:
            logger.warning("Failed to delete %s (%s): %s", record.label, record.id, e)
            self._failures.append((record.id, str(e)))
            return DeleteOutcome.FAILED

        logger.info("Deleted %s (%s)", record.label, record.id)
        return DeleteOutcome.DELETED

    def _finish(self, summary: RunSummary, state: RunState, started: float) -> RunSummary:
        self.state = state
        summary.state = state
        summary.elapsed = self._timer() - started
        logger.info(
            "Summary: succeeded=%d failed=%d skipped=%d considered=%d elapsed=%.1fs",
            summary.succeeded,
            summary.failed,
            summary.skipped,
            summary.considered_total,
            summary.elapsed,
        )
        if self.ui is not None:
            self.ui.show_summary(summary)
        return summary
