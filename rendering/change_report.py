"""Markdown change report for one snapshot diff."""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from tracking.models import DiffResult

logger = logging.getLogger(__name__)

CHANGE_REPORT_FILENAME = "CHANGES.md"


def render_change_report(diff: DiffResult, generated_at: Optional[datetime] = None) -> str:
    """Render the four diff partitions as a markdown report.

    Args:
        diff: Diff between the previous and current snapshot.
        generated_at: Report time; defaults to now (UTC).

    Returns:
        Markdown text. Empty partitions get no section.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines: List[str] = [
        "# Documentation Changes Report",
        "",
        f"**Generated:** {generated_at.isoformat()}",
        "",
        "## Summary",
        "",
        f"- Added: {diff.total('added')}",
        f"- Removed: {diff.total('removed')}",
        f"- Modified: {diff.total('modified')}",
        f"- Reclassified: {diff.total('reclassified')}",
        "",
    ]

    def section(title: str, entries: List[str]) -> None:
        if entries:
            lines.extend([f"## {title}", "", *entries, ""])

    section(
        "Added Functions",
        [f"- `{f.name}` in `{f.file_path}` ({f.classification})" for f in diff.added.functions],
    )
    section(
        "Added SQL Blocks",
        [f"- `{b.name}` in `{b.file_path}` ({b.classification})" for b in diff.added.sql_blocks],
    )
    section(
        "Removed Functions",
        [f"- `{f.name}` from `{f.file_path}`" for f in diff.removed.functions],
    )
    section(
        "Removed SQL Blocks",
        [f"- `{b.name}` from `{b.file_path}`" for b in diff.removed.sql_blocks],
    )
    section(
        "Modified Functions",
        [f"- `{p.current.name}` in `{p.current.file_path}`" for p in diff.modified.functions],
    )
    section(
        "Modified SQL Blocks",
        [f"- `{p.current.name}` in `{p.current.file_path}`" for p in diff.modified.sql_blocks],
    )
    section(
        "Reclassified Items",
        [
            f"- `{item.name}` in `{item.file_path}`: "
            f"{item.from_classification} -> {item.to_classification}"
            for item in [*diff.reclassified.functions, *diff.reclassified.sql_blocks]
        ],
    )
    return "\n".join(lines)


def write_change_report(
    diff: DiffResult,
    path: str,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the change report and write it to ``path``."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_change_report(diff, generated_at))
    logger.info("Wrote change report to %s", path)
    return path
