"""Run configuration resolution.

An extraction run is configured from three layers, lowest precedence first:
built-in defaults, an optional YAML overlay file, and environment variables.
Command-line flags in ``run_pipeline.py`` are applied on top by the caller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

ASSISTANT_API_KEY_ENV = "OPENROUTER_API_KEY"


class ConfigValidationError(RuntimeError):
    """Raised when strict configuration validation fails."""


@dataclass(frozen=True)
class RunConfig:
    """Resolved settings for one extraction run."""

    source_code_path: str = "../source-code"
    output_dir: str = "./docs"
    snapshot_dir: str = "./.snapshots"
    source_repo_url: Optional[str] = None
    commit: Optional[str] = None
    ref: Optional[str] = None
    commit_message: Optional[str] = None
    use_assistant: bool = False
    max_workers: int = 1
    report_dir: str = "output/run_reports"


# RunConfig field -> environment variable
ENV_VARIABLES: dict[str, str] = {
    "source_code_path": "SOURCE_CODE_PATH",
    "output_dir": "OUTPUT_DIR",
    "snapshot_dir": "SNAPSHOT_DIR",
    "source_repo_url": "SOURCE_REPO_URL",
    "commit": "SOURCE_COMMIT_SHA",
    "ref": "SOURCE_REF",
    "commit_message": "SOURCE_COMMIT_MESSAGE",
    "use_assistant": "USE_ASSISTANT_CLASSIFICATION",
    "max_workers": "EXTRACTION_MAX_WORKERS",
    "report_dir": "RUN_REPORT_DIR",
}

_BOOL_FIELDS = {"use_assistant"}
_INT_FIELDS = {"max_workers"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool = False, environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def resolve_strict_config_validation(
    default: bool = False,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default, environ=environ)


def _reject(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; keeping previous value", msg)


def _coerce(field_name: str, raw: Any, source: str, strict: bool) -> Any:
    """Coerce a raw config value to the field's type, or return ``None`` if rejected."""
    if field_name in _BOOL_FIELDS:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        _reject(f"{source}: '{field_name}' expects a boolean, got {raw!r}", strict)
        return None

    if field_name in _INT_FIELDS:
        try:
            value = int(str(raw).strip())
        except ValueError:
            _reject(f"{source}: '{field_name}' expects an integer, got {raw!r}", strict)
            return None
        if value < 1:
            _reject(f"{source}: '{field_name}' must be >= 1, got {value}", strict)
            return None
        return value

    text = str(raw).strip()
    return text or None


def load_config_overlay(config_path: str, strict: bool = False) -> dict[str, Any]:
    """Load a YAML overlay of ``RunConfig`` fields.

    In non-strict mode this returns an empty dict on read/parse failures.
    In strict mode this raises ``ConfigValidationError``.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except FileNotFoundError as exc:
        msg = f"Config file not found: {config_path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}
    except yaml.YAMLError as exc:
        msg = f"Failed to parse config YAML at {config_path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    if payload is None:
        return {}

    if not isinstance(payload, dict):
        msg = f"Unexpected config payload type: {type(payload).__name__}"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; continuing with defaults", msg)
        return {}

    known = {f.name for f in fields(RunConfig)}
    unknown = sorted(str(k) for k in payload if k not in known)
    if unknown:
        msg = f"Unknown keys in {config_path}: {', '.join(unknown)}"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; ignoring them", msg)

    return {k: v for k, v in payload.items() if k in known and v is not None}


def resolve_run_config(
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
    strict: bool | None = None,
) -> RunConfig:
    """Resolve a ``RunConfig`` from defaults, YAML overlay and environment.

    When neither the overlay nor the environment sets ``use_assistant``,
    assistant classification is enabled exactly when an API key is present.

    Args:
        config_path: Optional YAML overlay path.
        environ: Environment mapping (defaults to ``os.environ``).
        strict: Strict validation; resolved from the environment when None.

    Returns:
        The resolved configuration.

    Raises:
        ConfigValidationError: On invalid values in strict mode.
    """
    env = os.environ if environ is None else environ
    if strict is None:
        strict = resolve_strict_config_validation(environ=env)

    values: dict[str, Any] = {}

    if config_path:
        for key, raw in load_config_overlay(config_path, strict=strict).items():
            coerced = _coerce(key, raw, config_path, strict)
            if coerced is not None:
                values[key] = coerced

    for field_name, env_name in ENV_VARIABLES.items():
        raw = env.get(env_name)
        if raw is None or not raw.strip():
            continue
        coerced = _coerce(field_name, raw, env_name, strict)
        if coerced is not None:
            values[field_name] = coerced

    if "use_assistant" not in values:
        values["use_assistant"] = bool(env.get(ASSISTANT_API_KEY_ENV, "").strip())

    config = replace(RunConfig(), **values)
    logger.debug("Resolved run config: %s", config)
    return config
