"""
Layer 3: Drift Tracking

Versioned snapshots of classified entities and the diff between the
previous and the current run.
"""

from tracking.models import (
    DiffPartition,
    DiffResult,
    ExtractionSnapshot,
    FunctionSnapshot,
    ModifiedPair,
    Reclassification,
    SQLBlockSnapshot,
    SnapshotFormatError,
)
from tracking.snapshot import create_snapshot
from tracking.store import SnapshotStore, SnapshotStoreError
from tracking.diff import compute_diff

__all__ = [
    "DiffPartition",
    "DiffResult",
    "ExtractionSnapshot",
    "FunctionSnapshot",
    "ModifiedPair",
    "Reclassification",
    "SQLBlockSnapshot",
    "SnapshotFormatError",
    "create_snapshot",
    "SnapshotStore",
    "SnapshotStoreError",
    "compute_diff",
]
