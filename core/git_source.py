"""Git helpers for tagging extraction runs with the source commit."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _git_run(
    *,
    args: list[str],
    cwd: str | None = None,
    timeout_s: int = 30,
) -> subprocess.CompletedProcess[str]:
    """Run a read-only git command, raising ``RuntimeError`` on failure."""
    cmd = ["git", *args]
    logger.debug("Running git command: %s", " ".join(args))
    try:
        env = dict(os.environ)
        # Never block on interactive credential prompts.
        env.setdefault("GIT_TERMINAL_PROMPT", "0")
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout_s,
            env=env,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.CalledProcessError as exc:
        raise RuntimeError(
            f"git command failed (exit={exc.returncode}) for args={args}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(
            f"git command timed out after {timeout_s}s for args={args}"
        ) from exc
    except FileNotFoundError as exc:
        raise RuntimeError("git executable not found on PATH") from exc


def is_git_checkout(repo_dir: str) -> bool:
    """Return True when ``repo_dir`` is the root of (or inside) a git work tree."""
    path = Path(repo_dir).resolve()
    return any((candidate / ".git").exists() for candidate in (path, *path.parents))


def resolve_head_commit(repo_dir: str) -> Optional[str]:
    """Return the HEAD commit SHA of ``repo_dir``, or None if it cannot be resolved.

    Commit tagging is informational only, so every failure is logged and
    swallowed rather than aborting the run.
    """
    if not is_git_checkout(repo_dir):
        logger.debug("%s is not a git checkout; no commit to resolve", repo_dir)
        return None

    try:
        result = _git_run(args=["-C", repo_dir, "rev-parse", "HEAD"])
    except RuntimeError as exc:
        logger.warning("Could not resolve HEAD commit for %s: %s", repo_dir, exc)
        return None

    commit = result.stdout.strip()
    return commit or None
