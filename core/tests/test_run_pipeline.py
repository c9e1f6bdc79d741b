"""Tests for the end-to-end extraction run in run_pipeline.py."""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from core.run_config import RunConfig
from run_pipeline import run_extraction
from tracking.store import SnapshotStore, SnapshotStoreError

FIXTURE_REPO = (
    Path(__file__).resolve().parents[2] / "extraction" / "tests" / "fixtures" / "sample_repo"
)


class TestRunExtraction(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp.name)
        self.config = RunConfig(
            source_code_path=str(FIXTURE_REPO),
            output_dir=str(tmp / "docs"),
            snapshot_dir=str(tmp / "snapshots"),
            report_dir=str(tmp / "reports"),
            use_assistant=False,
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_first_run(self) -> None:
        report = run_extraction(ref="refs/heads/main", commit="abc123", config=self.config, run_id="run-1")

        self.assertEqual(report["status"], "success")
        self.assertEqual(report["commit"], "abc123")
        self.assertEqual(report["counts"]["functions"], 9)
        self.assertEqual(report["counts"]["sql_blocks"], 5)
        self.assertEqual(report["diff"], {"added": 14, "removed": 0, "modified": 0, "reclassified": 0})

        docs = Path(self.config.output_dir)
        self.assertTrue((docs / "index.md").is_file())
        self.assertTrue((docs / "CHANGES.md").is_file())
        self.assertTrue((docs / "business-logic" / "pipeline-rules.md").is_file())
        self.assertTrue((docs / "pipeline-code" / "README.md").is_file())

        latest = SnapshotStore(self.config.snapshot_dir).load_latest()
        self.assertEqual(latest.commit, "abc123")
        self.assertEqual(len(latest.functions), 9)

        run_report = json.loads((Path(self.config.report_dir) / "run-1.json").read_text(encoding="utf-8"))
        self.assertEqual(run_report["run_id"], "run-1")
        self.assertEqual(run_report["extraction"]["files_processed"], 3)

    def test_second_run_is_unchanged(self) -> None:
        run_extraction(commit="abc123", config=self.config)
        report = run_extraction(commit="def456", config=self.config)

        self.assertEqual(report["diff"], {"added": 0, "removed": 0, "modified": 0, "reclassified": 0})
        self.assertEqual(len(SnapshotStore(self.config.snapshot_dir).list_history()), 1)

    def test_commit_falls_back_to_git_head(self) -> None:
        with patch("run_pipeline.resolve_head_commit", return_value="deadbeef") as head:
            report = run_extraction(config=self.config)
        head.assert_called_once_with(str(FIXTURE_REPO))
        self.assertEqual(report["commit"], "deadbeef")

    def test_assistant_without_key_is_disabled(self) -> None:
        with patch("run_pipeline.OPENROUTER_API_KEY", ""):
            report = run_extraction(commit="abc123", use_assistant=True, config=self.config)
        self.assertFalse(report["use_assistant"])

    def test_missing_source_directory(self) -> None:
        config = RunConfig(
            source_code_path=os.path.join(self._tmp.name, "missing"),
            snapshot_dir=self.config.snapshot_dir,
            use_assistant=False,
        )
        with self.assertRaises(FileNotFoundError):
            run_extraction(commit="abc123", config=config)

    def test_snapshot_write_failure_propagates(self) -> None:
        with patch("tracking.store.SnapshotStore.save", side_effect=SnapshotStoreError("disk full")):
            with self.assertRaises(SnapshotStoreError):
                run_extraction(commit="abc123", config=self.config)


if __name__ == "__main__":
    unittest.main()
