"""
Unit tests for change_report.py

Tests the summary counts and the per-partition sections.
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone

from tracking.diff import compute_diff
from tracking.models import ExtractionSnapshot, FunctionSnapshot, SQLBlockSnapshot
from rendering.change_report import render_change_report, write_change_report

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, tzinfo=timezone.utc)


def fn(name, digest="h", label="pipeline_code"):
    return FunctionSnapshot(name, "pkg/mod.py", f"def {name}()", label, digest)


def sql(name, digest="h", label="pipeline_code"):
    return SQLBlockSnapshot(name, "sql/q.sql", "query", label, digest)


class TestChangeReport(unittest.TestCase):
    """Test rendering of a diff."""

    def setUp(self):
        previous = ExtractionSnapshot(
            timestamp=T0,
            functions=[fn("kept"), fn("edited", "v1"), fn("gone")],
            sql_blocks=[sql("flipped"), sql("dropped")],
        )
        current = ExtractionSnapshot(
            timestamp=T1,
            functions=[fn("kept"), fn("edited", "v2"), fn("fresh", label="business_logic")],
            sql_blocks=[sql("flipped", label="business_logic"), sql("new_q")],
        )
        self.diff = compute_diff(previous, current)

    def test_summary(self):
        report = render_change_report(self.diff, generated_at=T1)
        self.assertTrue(report.startswith("# Documentation Changes Report"))
        self.assertIn(f"**Generated:** {T1.isoformat()}", report)
        self.assertIn("- Added: 2\n- Removed: 2\n- Modified: 1\n- Reclassified: 1", report)

    def test_sections(self):
        report = render_change_report(self.diff, generated_at=T1)
        self.assertIn("## Added Functions\n\n- `fresh` in `pkg/mod.py` (business_logic)", report)
        self.assertIn("## Added SQL Blocks\n\n- `new_q` in `sql/q.sql` (pipeline_code)", report)
        self.assertIn("## Removed Functions\n\n- `gone` from `pkg/mod.py`", report)
        self.assertIn("## Removed SQL Blocks\n\n- `dropped` from `sql/q.sql`", report)
        self.assertIn("## Modified Functions\n\n- `edited` in `pkg/mod.py`", report)
        self.assertIn(
            "## Reclassified Items\n\n- `flipped` in `sql/q.sql`: pipeline_code -> business_logic",
            report,
        )
        self.assertNotIn("## Modified SQL Blocks", report)

    def test_empty_diff_has_only_summary(self):
        snapshot = ExtractionSnapshot(timestamp=T0, functions=[fn("a")])
        report = render_change_report(compute_diff(snapshot, snapshot), generated_at=T1)
        self.assertIn("- Added: 0", report)
        self.assertEqual(report.count("## "), 1)

    def test_write_change_report(self):
        tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp, True)
        path = write_change_report(self.diff, os.path.join(tmp, "docs", "CHANGES.md"), generated_at=T1)
        with open(path, encoding="utf-8") as f:
            self.assertEqual(f.read(), render_change_report(self.diff, generated_at=T1))


if __name__ == "__main__":
    unittest.main()
