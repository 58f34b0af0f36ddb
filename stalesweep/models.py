"""
Stalesweep Data Models and Enums

File Purpose: Core data structures and enumerations for stale device cleanup
Primary Functions/Classes: DeviceRecord, CleanupPolicy, RunSummary, RunState, DeleteOutcome
Inputs and Outputs (I/O): Data structure definitions, no direct I/O operations

This module defines the fundamental data structures used throughout the application
for representing directory devices, the cleanup policy for one run, and the run summary.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console

from .exceptions import ValidationError

# Shared console instance for all Stalesweep modules
console = Console()

DEFAULT_INACTIVITY_DAYS = 90
DEFAULT_THRESHOLD = 20

_FRACTION_RE = re.compile(r"\.(\d+)")


class RunState(Enum):
    """States of a cleanup run."""

    START = "start"
    CUTOFF_COMPUTED = "cutoff_computed"
    CANDIDATES_FETCHED = "candidates_fetched"
    ABORTED_THRESHOLD = "aborted_threshold"
    PROCEEDING = "proceeding"
    INTERRUPTED = "interrupted"
    COMPLETED = "completed"


class DeleteOutcome(Enum):
    """Result of processing a single candidate."""

    DELETED = "deleted"
    DRY_RUN = "dry_run"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    DECLINED = "declined"


def _microseconds(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_datetime(
    date_str: Optional[str], default_on_error: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Parse a directory timestamp into an aware UTC datetime.

    Handles:
    - YYYY-MM-DD (date only, midnight UTC)
    - YYYY-MM-DDTHH:MM:SSZ (with Z timezone)
    - YYYY-MM-DDTHH:MM:SS.sss+00:00 (with timezone offset)
    - YYYY-MM-DDTHH:MM:SS.fffffffZ (7-digit fractions are cut to microseconds)

    Naive values are assumed to be UTC.

    Args:
        date_str: Date string to parse, can be None
        default_on_error: Value to return on parse error (None by default)

    Returns:
        Parsed datetime, default_on_error on failure, or None if date_str is empty
    """
    if not date_str:
        return None

    try:
        if len(date_str) == 10 and date_str[4] == "-" and date_str[7] == "-":
            parsed = datetime.fromisoformat(date_str)
        else:
            normalized = _FRACTION_RE.sub(_microseconds, date_str.replace("Z", "+00:00"))
            parsed = datetime.fromisoformat(normalized)
    except (AttributeError, TypeError, ValueError):
        return default_on_error

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a sortable UTC string with whole-second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(microsecond=0)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class DeviceRecord:
    """A directory device that is a candidate for deletion."""

    id: str
    display_name: str = ""
    approximate_last_sign_in: Optional[datetime] = None
    operating_system: Optional[str] = None
    raw_data: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DeviceRecord":
        """Build a record from a directory device JSON object."""
        device_id = data.get("id")
        if not device_id:
            raise ValidationError("Device record without id", details=str(data))
        raw_sign_in = data.get("approximateLastSignInDateTime")
        last_sign_in = parse_datetime(raw_sign_in)
        if raw_sign_in and last_sign_in is None:
            # Unreadable is not the same as never signed in
            raise ValidationError(
                f"Device {device_id} has an unreadable last sign-in timestamp",
                details=repr(raw_sign_in),
            )
        return cls(
            id=device_id,
            display_name=data.get("displayName") or "",
            approximate_last_sign_in=last_sign_in,
            operating_system=data.get("operatingSystem"),
            raw_data=data,
        )

    @property
    def label(self) -> str:
        return self.display_name or self.id

    def is_stale(self, cutoff: datetime) -> bool:
        """True when the device never signed in or last signed in at or before cutoff."""
        if self.approximate_last_sign_in is None:
            return True
        return self.approximate_last_sign_in <= cutoff


@dataclass(frozen=True)
class CleanupPolicy:
    """Settings for a single cleanup run."""

    inactivity_window: timedelta = timedelta(days=DEFAULT_INACTIVITY_DAYS)
    threshold: int = DEFAULT_THRESHOLD
    threshold_disabled: bool = False
    dry_run: bool = False
    confirm_each: bool = False

    @classmethod
    def from_days(cls, days: int, **kwargs) -> "CleanupPolicy":
        if days is None or int(days) <= 0:
            raise ValidationError(
                "Inactivity window must be a positive number of days",
                details=f"got {days!r}",
            )
        return cls(inactivity_window=timedelta(days=int(days)), **kwargs)

    @property
    def gate_enabled(self) -> bool:
        # A negative threshold disables the gate just like the explicit flag.
        return not self.threshold_disabled and self.threshold >= 0


@dataclass
class UserSettings:
    """User-adjustable defaults for cleanup runs and API access."""

    base_url: str = "https://graph.microsoft.com/v1.0"
    inactivity_days: int = DEFAULT_INACTIVITY_DAYS
    threshold: int = DEFAULT_THRESHOLD
    page_size: int = 100
    request_timeout: int = 30
    max_retries: int = 3
    include_never_signed_in: bool = False
    log_level: str = "INFO"


@dataclass
class RunSummary:
    """Outcome counts for one cleanup run."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    considered_total: int = 0
    elapsed: float = 0.0
    state: RunState = RunState.START
    cutoff: Optional[str] = None
    dry_run: bool = False
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @property
    def counts(self) -> Tuple[int, int, int, int]:
        """(succeeded, failed, skipped, considered_total)"""
        return (self.succeeded, self.failed, self.skipped, self.considered_total)

    def record(self, outcome: DeleteOutcome) -> None:
        if outcome in (DeleteOutcome.DELETED, DeleteOutcome.DRY_RUN):
            self.succeeded += 1
        elif outcome is DeleteOutcome.NOT_FOUND:
            self.skipped += 1
        elif outcome is DeleteOutcome.FAILED:
            self.failed += 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "considered_total": self.considered_total,
            "elapsed": round(self.elapsed, 3),
            "state": self.state.value,
            "cutoff": self.cutoff,
            "dry_run": self.dry_run,
        }
