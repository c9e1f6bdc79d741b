"""
Data models for extracted Python functions and SQL blocks.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional

from core.identity import build_identity_key


@dataclass(frozen=True)
class ParameterInfo:
    """A single declared function parameter.

    Attributes:
        name: Parameter name (``*args`` / ``**kwargs`` keep their stars).
        type: Declared type annotation text, or None.
        default: Default value expression text, or None.
    """

    name: str
    type: Optional[str] = None
    default: Optional[str] = None

    def render(self) -> str:
        """Render the parameter the way it appears in a signature."""
        text = self.name
        if self.type:
            text += f": {self.type}"
        if self.default:
            text += f" = {self.default}"
        return text


@dataclass(frozen=True)
class ExtractedFunction:
    """Represents a single extracted Python function or method.

    Attributes:
        name: Function name (unqualified; methods are not prefixed by class).
        file_path: Path relative to the source root, POSIX separators.
        start_line: 1-indexed first line (``def`` line, decorators excluded).
        end_line: 1-indexed last line, inclusive.
        signature: Canonical ``def name(params) -> type`` text.
        parameters: Declared parameters without ``self`` / ``cls``.
        return_type: Return annotation text, or None.
        docstring: Leading docstring without quote delimiters, or None.
        business_rule_markers: Marker texts in source order.
        source_code: Verbatim source of the line span.
        decorators: Decorator texts in source order.
        is_async: Whether the function is declared ``async def``.
    """

    name: str
    file_path: str
    start_line: int
    end_line: int
    signature: str
    parameters: List[ParameterInfo]
    return_type: Optional[str]
    docstring: Optional[str]
    business_rule_markers: List[str]
    source_code: str
    decorators: List[str] = field(default_factory=list)
    is_async: bool = False

    @property
    def identity_key(self) -> str:
        return build_identity_key(self.file_path, self.name)

    @property
    def description(self) -> Optional[str]:
        """Free-text description used by classification and rendering."""
        return self.docstring

    def to_dict(self) -> Dict[str, Any]:
        """Convert the function to a dictionary suitable for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class ExtractedSQLBlock:
    """Represents a single SQL statement from a .sql file or embedded in Python.

    Attributes:
        name: Derived statement name (may repeat within a file).
        file_path: Path relative to the source root, POSIX separators.
        start_line: 1-indexed first code line of the statement.
        end_line: 1-indexed last line of the statement, inclusive.
        sql_type: One of query, procedure, function, view, trigger.
        description: Joined leading ``--`` comments, or None.
        business_rule_markers: Marker texts from ``--`` lines, in order.
        source_code: Statement text including its leading comments.
        tables: Referenced table identifiers, first-seen order.
        columns: Best-effort selected column names, first-seen order.
    """

    name: str
    file_path: str
    start_line: int
    end_line: int
    sql_type: str
    description: Optional[str]
    business_rule_markers: List[str]
    source_code: str
    tables: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)

    @property
    def identity_key(self) -> str:
        return build_identity_key(self.file_path, self.name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the block to a dictionary suitable for JSON serialization."""
        return asdict(self)
