"""Tests for run configuration resolution."""

import tempfile
import unittest
from pathlib import Path

from core.run_config import (
    ConfigValidationError,
    RunConfig,
    load_config_overlay,
    resolve_run_config,
    resolve_strict_config_validation,
)


class TestRunConfig(unittest.TestCase):
    def _write_yaml(self, content: str) -> str:
        handle = tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False)
        handle.write(content)
        handle.flush()
        handle.close()
        self.addCleanup(Path(handle.name).unlink, missing_ok=True)
        return handle.name

    def test_defaults_without_environment(self) -> None:
        config = resolve_run_config(environ={})
        self.assertEqual(config, RunConfig())
        self.assertFalse(config.use_assistant)

    def test_api_key_enables_assistant_by_default(self) -> None:
        config = resolve_run_config(environ={"OPENROUTER_API_KEY": "sk-test"})
        self.assertTrue(config.use_assistant)

    def test_explicit_flag_overrides_api_key(self) -> None:
        config = resolve_run_config(
            environ={
                "OPENROUTER_API_KEY": "sk-test",
                "USE_ASSISTANT_CLASSIFICATION": "false",
            }
        )
        self.assertFalse(config.use_assistant)

    def test_environment_overrides_yaml_overlay(self) -> None:
        path = self._write_yaml(
            "output_dir: yaml-docs\nsnapshot_dir: yaml-snapshots\nmax_workers: 3\n"
        )
        config = resolve_run_config(
            config_path=path,
            environ={"OUTPUT_DIR": "env-docs", "SOURCE_COMMIT_SHA": "abc123"},
        )
        self.assertEqual(config.output_dir, "env-docs")
        self.assertEqual(config.snapshot_dir, "yaml-snapshots")
        self.assertEqual(config.max_workers, 3)
        self.assertEqual(config.commit, "abc123")

    def test_invalid_int_non_strict_keeps_default(self) -> None:
        config = resolve_run_config(
            environ={"EXTRACTION_MAX_WORKERS": "many"},
            strict=False,
        )
        self.assertEqual(config.max_workers, 1)

    def test_invalid_int_strict_raises(self) -> None:
        with self.assertRaises(ConfigValidationError):
            resolve_run_config(environ={"EXTRACTION_MAX_WORKERS": "0"}, strict=True)

    def test_strict_mode_resolved_from_environment(self) -> None:
        self.assertTrue(resolve_strict_config_validation(environ={"STRICT_CONFIG_VALIDATION": "yes"}))
        self.assertFalse(resolve_strict_config_validation(environ={}))

    def test_load_overlay_missing_non_strict_returns_empty(self) -> None:
        self.assertEqual(load_config_overlay("/definitely/missing.yml", strict=False), {})

    def test_load_overlay_missing_strict_raises(self) -> None:
        with self.assertRaises(ConfigValidationError):
            load_config_overlay("/definitely/missing.yml", strict=True)

    def test_unknown_keys_rejected_in_strict_mode(self) -> None:
        path = self._write_yaml("output_dir: docs\ndocs_theme: dark\n")
        self.assertEqual(load_config_overlay(path, strict=False), {"output_dir": "docs"})
        with self.assertRaises(ConfigValidationError):
            load_config_overlay(path, strict=True)


if __name__ == "__main__":
    unittest.main()
