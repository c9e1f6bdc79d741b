"""Core shared contracts and utilities."""

from core.identity import (
    IDENTITY_SEPARATOR,
    build_identity_key,
    content_hash,
    normalize_file_path,
)
from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    phase_scope,
    set_commit,
    set_run_id,
)
from core.run_config import (
    ConfigValidationError,
    RunConfig,
    load_config_overlay,
    resolve_run_config,
    resolve_strict_config_validation,
)
from core.run_artifacts import summarize_counts, write_run_report
from core.git_source import is_git_checkout, resolve_head_commit

__all__ = [
    "IDENTITY_SEPARATOR",
    "build_identity_key",
    "content_hash",
    "normalize_file_path",
    "configure_structured_logging",
    "get_run_id",
    "phase_scope",
    "set_commit",
    "set_run_id",
    "ConfigValidationError",
    "RunConfig",
    "load_config_overlay",
    "resolve_run_config",
    "resolve_strict_config_validation",
    "summarize_counts",
    "write_run_report",
    "is_git_checkout",
    "resolve_head_commit",
]
