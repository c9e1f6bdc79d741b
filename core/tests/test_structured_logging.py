"""Tests for run correlation logging helpers."""

import logging
import unittest

from core.structured_logging import (
    _RunContextFilter,
    get_run_id,
    phase_scope,
    set_commit,
    set_run_id,
)


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.addFilter(_RunContextFilter())
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class TestStructuredLogging(unittest.TestCase):
    def setUp(self) -> None:
        self.handler = _Capture()
        self.logger = logging.getLogger("core.tests.structured")
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.INFO)
        self.addCleanup(self.logger.removeHandler, self.handler)
        self.addCleanup(set_commit, None)

    def test_records_carry_run_commit_and_phase(self) -> None:
        set_run_id("run-42")
        set_commit("0123456789abcdef")
        with phase_scope("extract"):
            self.logger.info("inside")
        self.logger.info("outside")

        inside, outside = self.handler.records
        self.assertEqual(get_run_id(), "run-42")
        self.assertEqual((inside.run_id, inside.commit, inside.phase), ("run-42", "0123456789ab", "extract"))
        self.assertEqual(outside.phase, "-")

    def test_generated_run_id(self) -> None:
        self.assertEqual(len(set_run_id()), 36)

    def test_phase_scope_logs_outcome(self) -> None:
        with self.assertLogs("core.structured_logging", level="INFO") as logs:
            with phase_scope("render"):
                pass
        self.assertIn("Phase finished", logs.output[0])

        with self.assertLogs("core.structured_logging", level="WARNING") as logs:
            with self.assertRaises(OSError):
                with phase_scope("save_snapshot"):
                    raise OSError("disk full")
        self.assertIn("Phase failed", logs.output[0])


if __name__ == "__main__":
    unittest.main()
