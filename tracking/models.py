"""
Snapshot and diff data models.

Snapshots are persisted as JSON with camelCase field names (``filePath``,
``sqlType``, ``sqlBlocks``). Python attributes stay snake_case; the
``to_dict`` / ``from_dict`` pair is the only place the two meet.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.identity import build_identity_key


class SnapshotFormatError(ValueError):
    """Raised when a snapshot payload is not shaped like a snapshot."""


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(text, str):
        raise SnapshotFormatError(f"Timestamp must be a string, got {type(text).__name__}")
    try:
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise SnapshotFormatError(f"Invalid timestamp: {text}") from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise SnapshotFormatError(f"Snapshot record field '{key}' must be a string")
    return value


@dataclass(frozen=True)
class FunctionSnapshot:
    """Reduced function record stored in a snapshot."""

    name: str
    file_path: str
    signature: str
    classification: str
    hash: str

    @property
    def identity_key(self) -> str:
        return build_identity_key(self.file_path, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "filePath": self.file_path,
            "signature": self.signature,
            "classification": self.classification,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionSnapshot":
        if not isinstance(data, dict):
            raise SnapshotFormatError("Function record must be an object")
        return cls(
            name=_require_str(data, "name"),
            file_path=_require_str(data, "filePath"),
            signature=_require_str(data, "signature"),
            classification=_require_str(data, "classification"),
            hash=_require_str(data, "hash"),
        )


@dataclass(frozen=True)
class SQLBlockSnapshot:
    """Reduced SQL block record stored in a snapshot."""

    name: str
    file_path: str
    sql_type: str
    classification: str
    hash: str

    @property
    def identity_key(self) -> str:
        return build_identity_key(self.file_path, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "filePath": self.file_path,
            "sqlType": self.sql_type,
            "classification": self.classification,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SQLBlockSnapshot":
        if not isinstance(data, dict):
            raise SnapshotFormatError("SQL block record must be an object")
        return cls(
            name=_require_str(data, "name"),
            file_path=_require_str(data, "filePath"),
            sql_type=_require_str(data, "sqlType"),
            classification=_require_str(data, "classification"),
            hash=_require_str(data, "hash"),
        )


@dataclass(frozen=True)
class ExtractionSnapshot:
    """All reduced entity records of one extraction run.

    Attributes:
        timestamp: Timezone-aware UTC creation time.
        commit: Source commit identifier, if known.
        functions: Function records in extraction order.
        sql_blocks: SQL block records in extraction order.
    """

    timestamp: datetime
    commit: Optional[str] = None
    functions: List[FunctionSnapshot] = field(default_factory=list)
    sql_blocks: List[SQLBlockSnapshot] = field(default_factory=list)

    @property
    def epoch_ms(self) -> int:
        """Timestamp as integer milliseconds since the Unix epoch."""
        return int(self.timestamp.timestamp() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"timestamp": format_timestamp(self.timestamp)}
        if self.commit is not None:
            data["commit"] = self.commit
        data["functions"] = [f.to_dict() for f in self.functions]
        data["sqlBlocks"] = [b.to_dict() for b in self.sql_blocks]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionSnapshot":
        """Rebuild a snapshot from its JSON payload.

        Raises:
            SnapshotFormatError: If any required field is missing or mistyped.
        """
        if not isinstance(data, dict):
            raise SnapshotFormatError("Snapshot payload must be an object")

        functions = data.get("functions", [])
        sql_blocks = data.get("sqlBlocks", [])
        if not isinstance(functions, list) or not isinstance(sql_blocks, list):
            raise SnapshotFormatError("Snapshot 'functions' and 'sqlBlocks' must be lists")

        commit = data.get("commit")
        if commit is not None and not isinstance(commit, str):
            raise SnapshotFormatError("Snapshot 'commit' must be a string")

        return cls(
            timestamp=parse_timestamp(data.get("timestamp")),
            commit=commit,
            functions=[FunctionSnapshot.from_dict(f) for f in functions],
            sql_blocks=[SQLBlockSnapshot.from_dict(b) for b in sql_blocks],
        )


@dataclass(frozen=True)
class ModifiedPair:
    """Previous and current record of an entity whose source hash changed."""

    previous: Any
    current: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"previous": self.previous.to_dict(), "current": self.current.to_dict()}


@dataclass(frozen=True)
class Reclassification:
    """An entity whose classification label changed between snapshots."""

    name: str
    file_path: str
    from_classification: str
    to_classification: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "filePath": self.file_path,
            "from": self.from_classification,
            "to": self.to_classification,
        }


@dataclass
class DiffPartition:
    """One diff partition, split by entity kind."""

    functions: List[Any] = field(default_factory=list)
    sql_blocks: List[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.functions) + len(self.sql_blocks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "functions": [item.to_dict() for item in self.functions],
            "sqlBlocks": [item.to_dict() for item in self.sql_blocks],
        }


PARTITIONS = ("added", "removed", "modified", "reclassified")


@dataclass
class DiffResult:
    """Structured difference between two snapshots.

    ``added`` / ``removed`` hold snapshot records, ``modified`` holds
    ``ModifiedPair`` items and ``reclassified`` holds ``Reclassification``
    items.
    """

    added: DiffPartition = field(default_factory=DiffPartition)
    removed: DiffPartition = field(default_factory=DiffPartition)
    modified: DiffPartition = field(default_factory=DiffPartition)
    reclassified: DiffPartition = field(default_factory=DiffPartition)

    def total(self, partition: str) -> int:
        """Number of items in one partition across both entity kinds."""
        if partition not in PARTITIONS:
            raise ValueError(f"Unknown diff partition: {partition}")
        return len(getattr(self, partition))

    def is_empty(self) -> bool:
        return all(self.total(name) == 0 for name in PARTITIONS)

    def summary(self) -> Dict[str, int]:
        return {name: self.total(name) for name in PARTITIONS}

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name).to_dict() for name in PARTITIONS}
