"""
On-disk snapshot store.

Layout under the configured snapshot directory::

    latest.json                         newest snapshot
    history/snapshot-<epoch-ms>.json    superseded snapshots, append-only

A history file is named after the timestamp of the snapshot it holds, i.e.
the snapshot that was superseded when it was archived.
"""

import json
import logging
import os
import re
import time
from typing import List, Optional

from tracking.models import ExtractionSnapshot

logger = logging.getLogger(__name__)

LATEST_FILENAME = "latest.json"
HISTORY_DIRNAME = "history"
_HISTORY_RE = re.compile(r"^snapshot-(\d+)(?:-(\d+))?\.json$")


class SnapshotStoreError(RuntimeError):
    """Raised when the snapshot store cannot be written. Always fatal for a run."""


class SnapshotStore:
    """Persist snapshots as one mutable latest file plus append-only history.

    Args:
        snapshot_dir: Directory holding the store; created if missing.

    Raises:
        SnapshotStoreError: If the directory cannot be created.
    """

    def __init__(self, snapshot_dir: str):
        self.snapshot_dir = os.path.abspath(snapshot_dir)
        self.latest_path = os.path.join(self.snapshot_dir, LATEST_FILENAME)
        self.history_dir = os.path.join(self.snapshot_dir, HISTORY_DIRNAME)
        try:
            os.makedirs(self.history_dir, exist_ok=True)
        except OSError as e:
            raise SnapshotStoreError(
                f"Cannot create snapshot directory {self.snapshot_dir}: {e}"
            ) from e

    def load_latest(self) -> Optional[ExtractionSnapshot]:
        """Load the newest snapshot.

        Returns:
            The snapshot, or None when there is none or it cannot be decoded.
            A None result means the run proceeds as a first-time extraction.
        """
        if not os.path.exists(self.latest_path):
            logger.info("No previous snapshot at %s", self.latest_path)
            return None

        try:
            with open(self.latest_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            snapshot = ExtractionSnapshot.from_dict(payload)
        except (OSError, ValueError) as e:
            # JSONDecodeError, UnicodeDecodeError and SnapshotFormatError are ValueErrors.
            logger.warning("Failed to load previous snapshot %s: %s", self.latest_path, e)
            return None

        logger.info(
            "Loaded previous snapshot (%d functions, %d SQL blocks, commit=%s)",
            len(snapshot.functions),
            len(snapshot.sql_blocks),
            snapshot.commit,
        )
        return snapshot

    def _superseded_epoch_ms(self, raw: bytes) -> int:
        """Epoch milliseconds of the snapshot held in ``raw``, or now if it is unreadable."""
        try:
            return ExtractionSnapshot.from_dict(json.loads(raw.decode("utf-8"))).epoch_ms
        except ValueError:
            return int(time.time() * 1000)

    def _history_path(self, epoch_ms: int) -> str:
        path = os.path.join(self.history_dir, f"snapshot-{epoch_ms}.json")
        suffix = 1
        while os.path.exists(path):
            path = os.path.join(self.history_dir, f"snapshot-{epoch_ms}-{suffix}.json")
            suffix += 1
        return path

    def save(self, snapshot: ExtractionSnapshot) -> str:
        """Archive the current latest snapshot, then write ``snapshot`` as latest.

        The archived copy is byte-for-byte the previous latest file; history
        files are never rewritten or removed.

        Returns:
            Path of the written latest file.

        Raises:
            SnapshotStoreError: If any read or write fails.
        """
        try:
            if os.path.exists(self.latest_path):
                with open(self.latest_path, "rb") as f:
                    previous_raw = f.read()
                archive_path = self._history_path(self._superseded_epoch_ms(previous_raw))
                with open(archive_path, "wb") as f:
                    f.write(previous_raw)
                logger.info("Archived previous snapshot to %s", archive_path)

            with open(self.latest_path, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2)
        except OSError as e:
            raise SnapshotStoreError(f"Failed to save snapshot to {self.snapshot_dir}: {e}") from e

        logger.info(
            "Saved snapshot (%d functions, %d SQL blocks) to %s",
            len(snapshot.functions),
            len(snapshot.sql_blocks),
            self.latest_path,
        )
        return self.latest_path

    def list_history(self) -> List[str]:
        """Archived snapshot paths, oldest first."""
        entries = []
        for filename in os.listdir(self.history_dir):
            match = _HISTORY_RE.match(filename)
            if match:
                entries.append(
                    (int(match.group(1)), int(match.group(2) or 0), os.path.join(self.history_dir, filename))
                )
        return [path for _, _, path in sorted(entries)]
