"""Stalesweep: policy-gated cleanup of stale directory devices.

Provides:
- CleanupWorkflow: cutoff, listing, threshold gate and delete loop
- ProgressTracker: per-operation progress and ETA tracking
- DirectoryClient: requests-based client for the directory devices API
"""

from stalesweep.cleanup import CleanupWorkflow, compute_cutoff, threshold_exceeded
from stalesweep.client import DirectoryClient
from stalesweep.models import CleanupPolicy, DeviceRecord, RunState, RunSummary
from stalesweep.progress import ProgressSnapshot, ProgressTracker

__all__ = [
    "CleanupWorkflow",
    "CleanupPolicy",
    "DeviceRecord",
    "DirectoryClient",
    "ProgressSnapshot",
    "ProgressTracker",
    "RunState",
    "RunSummary",
    "compute_cutoff",
    "threshold_exceeded",
]
