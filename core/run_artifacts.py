"""Run artifact helpers for operational reporting."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any


def write_run_report(
    report: dict[str, Any],
    run_id: str,
    output_dir: str = "output/run_reports",
) -> str:
    """Write a JSON run report and return its path.

    The report is best-effort audit output; the snapshot store, not this
    file, is the source of truth for the next run's diff.
    """
    os.makedirs(output_dir, exist_ok=True)
    payload = dict(report)
    payload.setdefault("run_id", run_id)
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    path = os.path.join(output_dir, f"{run_id}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)
    return path


def summarize_counts(
    functions: int,
    sql_blocks: int,
    business_logic: int,
) -> dict[str, int]:
    """Build the entity-count block shared by run reports and log summaries."""
    total = functions + sql_blocks
    return {
        "functions": functions,
        "sql_blocks": sql_blocks,
        "business_logic": business_logic,
        "pipeline_code": total - business_logic,
    }
