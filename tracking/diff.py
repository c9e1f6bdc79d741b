"""
Snapshot diff algorithm.

Entities are matched across two snapshots by their ``filePath:name``
identity key, separately per entity kind. The diff is a pure function of
its two inputs.

Duplicate keys inside one snapshot (for example several ``unnamed_query``
blocks in one file) collapse in the key map: the last occurrence wins. This
is a known limitation of keying by name.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from tracking.models import (
    DiffPartition,
    DiffResult,
    ExtractionSnapshot,
    ModifiedPair,
    Reclassification,
)

logger = logging.getLogger(__name__)


def _key_map(records: Sequence[Any]) -> Dict[str, Any]:
    mapping: Dict[str, Any] = {}
    for record in records:
        key = record.identity_key
        if key in mapping:
            logger.debug("Duplicate identity key %s; keeping the last occurrence", key)
        mapping[key] = record
    return mapping


def _diff_kind(
    previous: Sequence[Any],
    current: Sequence[Any],
) -> Tuple[list, list, list, list]:
    """Diff one entity kind. Returns (added, removed, modified, reclassified)."""
    previous_map = _key_map(previous)
    current_map = _key_map(current)
    added, removed, modified, reclassified = [], [], [], []

    for key, curr in current_map.items():
        prev = previous_map.get(key)
        if prev is None:
            added.append(curr)
            continue
        if prev.hash != curr.hash:
            modified.append(ModifiedPair(previous=prev, current=curr))
        if prev.classification != curr.classification:
            reclassified.append(
                Reclassification(
                    name=curr.name,
                    file_path=curr.file_path,
                    from_classification=prev.classification,
                    to_classification=curr.classification,
                )
            )

    for key, prev in previous_map.items():
        if key not in current_map:
            removed.append(prev)

    return added, removed, modified, reclassified


def compute_diff(
    previous: Optional[ExtractionSnapshot],
    current: ExtractionSnapshot,
) -> DiffResult:
    """Compute the structured diff between two snapshots.

    With no previous snapshot every current entity is ``added`` and the
    other partitions are empty.

    Args:
        previous: The preceding snapshot, or None on a first run.
        current: The snapshot of this run.

    Returns:
        A ``DiffResult`` with added / removed / modified / reclassified
        partitions per entity kind.
    """
    if previous is None:
        return DiffResult(
            added=DiffPartition(
                functions=list(current.functions),
                sql_blocks=list(current.sql_blocks),
            )
        )

    fn_added, fn_removed, fn_modified, fn_reclassified = _diff_kind(
        previous.functions, current.functions
    )
    sql_added, sql_removed, sql_modified, sql_reclassified = _diff_kind(
        previous.sql_blocks, current.sql_blocks
    )

    diff = DiffResult(
        added=DiffPartition(fn_added, sql_added),
        removed=DiffPartition(fn_removed, sql_removed),
        modified=DiffPartition(fn_modified, sql_modified),
        reclassified=DiffPartition(fn_reclassified, sql_reclassified),
    )
    logger.debug("Computed diff: %s", diff.summary())
    return diff
