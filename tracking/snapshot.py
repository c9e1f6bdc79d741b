"""Reduce classified entities to a snapshot."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from classification.models import ClassifiedFunction, ClassifiedSQLBlock
from core.identity import content_hash, normalize_file_path
from tracking.models import ExtractionSnapshot, FunctionSnapshot, SQLBlockSnapshot


def create_snapshot(
    functions: Sequence[ClassifiedFunction],
    sql_blocks: Sequence[ClassifiedSQLBlock],
    commit: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> ExtractionSnapshot:
    """Build the snapshot of one run.

    Each entity keeps its name, path, kind-specific discriminant,
    classification label and the SHA-256 digest of its source slice.

    Args:
        functions: Classified functions.
        sql_blocks: Classified SQL blocks.
        commit: Source commit identifier, if known.
        timestamp: Snapshot time; defaults to now (UTC).
    """
    return ExtractionSnapshot(
        timestamp=timestamp or datetime.now(timezone.utc),
        commit=commit or None,
        functions=[
            FunctionSnapshot(
                name=f.function.name,
                file_path=normalize_file_path(f.function.file_path),
                signature=f.function.signature,
                classification=f.result.classification,
                hash=content_hash(f.function.source_code),
            )
            for f in functions
        ],
        sql_blocks=[
            SQLBlockSnapshot(
                name=b.block.name,
                file_path=normalize_file_path(b.block.file_path),
                sql_type=b.block.sql_type,
                classification=b.result.classification,
                hash=content_hash(b.block.source_code),
            )
            for b in sql_blocks
        ],
    )
