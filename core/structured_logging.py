"""Structured logging helpers with run correlation context."""

from __future__ import annotations

import contextvars
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

_RUN_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default="-"
)
_PHASE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "phase", default="-"
)
_COMMIT_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "commit", default="-"
)

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | run_id=%(run_id)s | commit=%(commit)s | "
    "phase=%(phase)s | %(name)s | %(message)s"
)


class _RunContextFilter(logging.Filter):
    """Inject run, commit and phase fields into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID_VAR.get("-")
        record.phase = _PHASE_VAR.get("-")
        record.commit = _COMMIT_VAR.get("-")
        return True


def _ensure_filter_on_root_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        has_filter = any(isinstance(f, _RunContextFilter) for f in handler.filters)
        if not has_filter:
            handler.addFilter(_RunContextFilter())


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure root logging format with run/commit/phase context."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root_logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    _ensure_filter_on_root_handlers()


def set_run_id(run_id: str | None = None) -> str:
    """Set or generate the run correlation ID."""
    value = run_id or str(uuid.uuid4())
    _RUN_ID_VAR.set(value)
    return value


def get_run_id() -> str:
    """Get the current run correlation ID."""
    return _RUN_ID_VAR.get("-")


def set_commit(commit: str | None) -> None:
    """Tag subsequent log records with a (shortened) commit identifier."""
    _COMMIT_VAR.set(commit[:12] if commit else "-")


@contextmanager
def phase_scope(phase: str) -> Iterator[None]:
    """Set the phase context for emitted logs and log the phase's duration.

    A phase that raises is logged as failed; the exception propagates.
    """
    token = _PHASE_VAR.set(phase)
    started = time.monotonic()
    logger.debug("Phase started")
    try:
        yield
    except BaseException:
        logger.warning("Phase failed after %.2fs", time.monotonic() - started)
        raise
    else:
        logger.info("Phase finished in %.2fs", time.monotonic() - started)
    finally:
        _PHASE_VAR.reset(token)
