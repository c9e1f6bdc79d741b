"""
Unit tests for store.py and snapshot serialization

Tests latest/history persistence, tolerant loading and fatal writes.
"""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from tracking.models import (
    ExtractionSnapshot,
    FunctionSnapshot,
    SQLBlockSnapshot,
    SnapshotFormatError,
    format_timestamp,
)
from tracking.store import SnapshotStore, SnapshotStoreError

T0 = datetime(2024, 1, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 3, tzinfo=timezone.utc)


def make_snapshot(timestamp=T0, commit="abc"):
    return ExtractionSnapshot(
        timestamp=timestamp,
        commit=commit,
        functions=[FunctionSnapshot("rag", "pkg/rules.py", "def rag()", "business_logic", "h1")],
        sql_blocks=[SQLBlockSnapshot("q", "sql/q.sql", "query", "pipeline_code", "h2")],
    )


class TestSnapshotSerialization(unittest.TestCase):
    """Test JSON shape of snapshots."""

    def test_round_trip(self):
        snapshot = make_snapshot()
        self.assertEqual(ExtractionSnapshot.from_dict(snapshot.to_dict()), snapshot)

    def test_json_shape(self):
        data = make_snapshot().to_dict()
        self.assertEqual(data["timestamp"], "2024-01-01T12:00:00.250Z")
        self.assertEqual(data["commit"], "abc")
        self.assertEqual(data["sqlBlocks"][0]["sqlType"], "query")
        self.assertEqual(data["functions"][0]["filePath"], "pkg/rules.py")

    def test_commit_omitted_when_unknown(self):
        self.assertNotIn("commit", make_snapshot(commit=None).to_dict())

    def test_naive_timestamp_is_utc(self):
        self.assertEqual(format_timestamp(datetime(2024, 5, 1)), "2024-05-01T00:00:00.000Z")

    def test_malformed_payloads(self):
        for payload in (
            [],
            {"functions": []},
            {"timestamp": "yesterday"},
            {"timestamp": "2024-01-01T00:00:00Z", "functions": [{"name": "x"}]},
            {"timestamp": "2024-01-01T00:00:00Z", "sqlBlocks": "none"},
        ):
            with self.assertRaises(SnapshotFormatError):
                ExtractionSnapshot.from_dict(payload)


class TestSnapshotStore(unittest.TestCase):
    """Test the on-disk store."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.store = SnapshotStore(os.path.join(self.tmp, "snapshots"))

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_creates_directories(self):
        self.assertTrue(os.path.isdir(self.store.history_dir))

    def test_load_missing_returns_none(self):
        self.assertIsNone(self.store.load_latest())

    def test_save_then_load(self):
        snapshot = make_snapshot()
        self.store.save(snapshot)
        self.assertEqual(self.store.load_latest(), snapshot)
        self.assertEqual(self.store.list_history(), [])

    def test_history_grows_by_one_per_save(self):
        self.store.save(make_snapshot(T0))
        self.store.save(make_snapshot(T1))
        self.store.save(make_snapshot(T2))

        history = self.store.list_history()
        self.assertEqual(
            [os.path.basename(p) for p in history],
            [f"snapshot-{int(T0.timestamp() * 1000)}.json",
             f"snapshot-{int(T1.timestamp() * 1000)}.json"],
        )
        self.assertEqual(self.store.load_latest().timestamp, T2)
        with open(history[0], encoding="utf-8") as f:
            self.assertEqual(ExtractionSnapshot.from_dict(json.load(f)).timestamp, T0)

    def test_history_is_never_overwritten(self):
        self.store.save(make_snapshot(T0, commit="one"))
        self.store.save(make_snapshot(T0, commit="two"))
        self.store.save(make_snapshot(T0, commit="three"))
        self.assertEqual(len(self.store.list_history()), 2)

    def test_invalid_json_is_no_previous_snapshot(self):
        with open(self.store.latest_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertLogs("tracking.store", level="WARNING"):
            self.assertIsNone(self.store.load_latest())

    def test_undecodable_bytes_are_no_previous_snapshot(self):
        with open(self.store.latest_path, "wb") as f:
            f.write(b'{"timestamp": "\xff\xfe broken"}')
        with self.assertLogs("tracking.store", level="WARNING"):
            self.assertIsNone(self.store.load_latest())

    def test_save_over_undecodable_latest_archives_raw_bytes(self):
        raw = b'{"timestamp": "\xff\xfe broken"}'
        with open(self.store.latest_path, "wb") as f:
            f.write(raw)

        self.store.save(make_snapshot())

        history = self.store.list_history()
        self.assertEqual(len(history), 1)
        with open(history[0], "rb") as f:
            self.assertEqual(f.read(), raw)
        self.assertEqual(self.store.load_latest(), make_snapshot())

    def test_history_named_after_superseded_snapshot(self):
        first = make_snapshot(T0)
        self.store.save(first)
        self.store.save(make_snapshot(T1))
        self.assertEqual(
            os.path.basename(self.store.list_history()[0]),
            f"snapshot-{first.epoch_ms}.json",
        )

    def test_malformed_snapshot_is_no_previous_snapshot(self):
        with open(self.store.latest_path, "w", encoding="utf-8") as f:
            json.dump({"functions": "oops"}, f)
        with self.assertLogs("tracking.store", level="WARNING"):
            self.assertIsNone(self.store.load_latest())

    def test_save_over_corrupt_latest_archives_it(self):
        with open(self.store.latest_path, "w", encoding="utf-8") as f:
            f.write("garbage")
        self.store.save(make_snapshot())
        history = self.store.list_history()
        self.assertEqual(len(history), 1)
        with open(history[0], encoding="utf-8") as f:
            self.assertEqual(f.read(), "garbage")

    def test_write_failure_is_fatal(self):
        with patch("builtins.open", side_effect=PermissionError("read-only")):
            with self.assertRaises(SnapshotStoreError):
                self.store.save(make_snapshot())

    def test_directory_creation_failure(self):
        blocker = os.path.join(self.tmp, "file")
        with open(blocker, "w") as f:
            f.write("x")
        with self.assertRaises(SnapshotStoreError):
            SnapshotStore(os.path.join(blocker, "snapshots"))


if __name__ == "__main__":
    unittest.main()
