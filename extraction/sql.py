"""
SQL statement extraction.

SQL is not parsed into a syntax tree. Statements are recovered with a
line-based splitter and described with regular-expression heuristics
(type, name, description, markers, tables, columns). Table and column
extraction are approximations: nested selects and expressions inside the
select list can produce false positives or misses.
"""

import logging
import re
from dataclasses import replace
from typing import List, NamedTuple, Optional

from extraction.config import (
    CTE_NAME_PREFIX,
    EMBEDDED_SQL_NAME_PREFIX,
    EMBEDDED_SQL_PATTERN,
    SQL_DDL_KINDS,
    SQL_KEYWORD_PATTERN,
    SQL_TYPE_QUERY,
    UNNAMED_QUERY,
)
from extraction.markers import extract_sql_markers, is_marker_comment
from extraction.models import ExtractedSQLBlock

logger = logging.getLogger(__name__)

_DOLLAR_QUOTE_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")

_DDL_TYPE_RE = re.compile(
    r"^CREATE\s+(?:OR\s+REPLACE\s+)?(PROCEDURE|FUNCTION|VIEW|TRIGGER)\b",
    re.IGNORECASE,
)
_DDL_NAME_RES = {
    kind: re.compile(
        r"CREATE\s+(?:OR\s+REPLACE\s+)?" + kind + r"\s+(\w+(?:\.\w+)?)",
        re.IGNORECASE,
    )
    for kind in SQL_DDL_KINDS
}
_NAME_COMMENT_RE = re.compile(r"--[ \t]*name:[ \t]*(\w+)", re.IGNORECASE)
_CTE_RE = re.compile(r"^WITH\s+(\w+)\s+AS\b", re.IGNORECASE)
_TABLE_RE = re.compile(r"\b(?:FROM|JOIN|INTO|UPDATE)\s+(\w+(?:\.\w+)?)", re.IGNORECASE)
_SELECT_LIST_RE = re.compile(r"SELECT\s+([\s\S]*?)\s+FROM\b", re.IGNORECASE)
_ALIASED_COLUMN_RE = re.compile(r"(?:\w+\.)?\w+\s+(?:AS\s+)?(\w+)$", re.IGNORECASE)
_TRAILING_IDENT_RE = re.compile(r"(\w+)$")
_COMMENT_PREFIX_RE = re.compile(r"^--\s*")
_LINE_COMMENT_RE = re.compile(r"--[^\n]*")


class SQLStatement(NamedTuple):
    """One statement recovered by the splitter.

    ``start_line`` is the first code line; ``text`` still carries the
    leading comment lines.
    """

    text: str
    start_line: int
    end_line: int


def _scan_dollar_quotes(line: str, open_tag: Optional[str]) -> Optional[str]:
    """Track the currently open dollar-quote tag across one line."""
    for match in _DOLLAR_QUOTE_RE.finditer(line):
        tag = match.group(0)
        if open_tag is None:
            open_tag = tag
        elif tag == open_tag:
            open_tag = None
    return open_tag


def split_sql_statements(source: str) -> List[SQLStatement]:
    """Split SQL source into statements.

    Lines accumulate into the current statement, which closes when a code
    line ends with ``;`` outside a dollar-quoted body. Blank and ``--`` lines
    join whichever statement is open or pending. Leftover text at the end
    of the file becomes a final statement when non-empty.

    Args:
        source: Full file content.

    Returns:
        Statements in file order.
    """
    statements: List[SQLStatement] = []
    buffer: List[str] = []
    first_code_line: Optional[int] = None
    first_text_line: Optional[int] = None
    last_text_line = 0
    dollar_tag: Optional[str] = None

    def flush(end_line: int) -> None:
        text = "\n".join(buffer).strip()
        if text:
            start_line = first_code_line or first_text_line or end_line
            statements.append(SQLStatement(text, start_line, end_line))

    for line_number, raw_line in enumerate(source.split("\n"), start=1):
        line = raw_line.rstrip("\r")
        stripped = line.strip()
        buffer.append(line)

        if not stripped:
            continue
        if first_text_line is None:
            first_text_line = line_number
        last_text_line = line_number
        if stripped.startswith("--") and dollar_tag is None:
            continue

        if first_code_line is None:
            first_code_line = line_number
        dollar_tag = _scan_dollar_quotes(stripped, dollar_tag)

        if dollar_tag is None and stripped.endswith(";"):
            flush(line_number)
            buffer = []
            first_code_line = None
            first_text_line = None

    flush(last_text_line)
    return statements


def strip_leading_comments(sql: str) -> str:
    """Drop leading blank and ``--`` lines, returning the statement code."""
    lines = sql.split("\n")
    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped and not stripped.startswith("--"):
            return "\n".join(lines[index:]).strip()
    return ""


def strip_line_comments(sql: str) -> str:
    """Remove every ``--`` comment, leaving only statement code."""
    return _LINE_COMMENT_RE.sub("", sql)


def determine_sql_type(sql: str) -> str:
    """Classify a statement by its leading ``CREATE [OR REPLACE] <KIND>``."""
    match = _DDL_TYPE_RE.match(strip_leading_comments(sql))
    if match:
        return match.group(1).lower()
    return SQL_TYPE_QUERY


def extract_name(sql: str, sql_type: str) -> str:
    """Derive a statement name.

    DDL statements use the identifier after the ``CREATE`` clause. Queries
    use an explicit ``-- name:`` comment, then a leading CTE name prefixed
    ``cte_``, then the ``unnamed_query`` placeholder.
    """
    if sql_type == SQL_TYPE_QUERY:
        comment_match = _NAME_COMMENT_RE.search(sql)
        if comment_match:
            return comment_match.group(1)
        cte_match = _CTE_RE.match(strip_leading_comments(sql))
        if cte_match:
            return f"{CTE_NAME_PREFIX}{cte_match.group(1)}"
        return UNNAMED_QUERY

    pattern = _DDL_NAME_RES.get(sql_type)
    if pattern is not None:
        match = pattern.search(sql)
        if match:
            return match.group(1)
    return f"unnamed_{sql_type}"


def extract_description(sql: str) -> Optional[str]:
    """Join the leading non-marker ``--`` comments into a description."""
    comments: List[str] = []
    for line in sql.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith("--"):
            # A /* */ block or the first code line ends the leading comments.
            break
        comment = _COMMENT_PREFIX_RE.sub("", stripped)
        if comment and not is_marker_comment(comment):
            comments.append(comment)
    return " ".join(comments) if comments else None


def extract_tables(sql: str) -> List[str]:
    """Collect identifiers following FROM / JOIN / INTO / UPDATE."""
    tables: List[str] = []
    for match in _TABLE_RE.finditer(strip_line_comments(sql)):
        table = match.group(1)
        if table not in tables:
            tables.append(table)
    return tables


def extract_columns(sql: str) -> List[str]:
    """Best-effort column names from the first ``SELECT ... FROM`` list."""
    match = _SELECT_LIST_RE.search(strip_line_comments(sql))
    if not match:
        return []

    columns: List[str] = []
    for part in match.group(1).split(","):
        item = part.strip()
        if not item or item == "*":
            continue
        alias = _ALIASED_COLUMN_RE.search(item)
        column_match = alias or _TRAILING_IDENT_RE.search(item)
        if column_match and column_match.group(1) not in columns:
            columns.append(column_match.group(1))
    return columns


def looks_like_sql(text: str) -> bool:
    """Sniff test: the text contains at least one top-level clause keyword."""
    return SQL_KEYWORD_PATTERN.search(text) is not None


def parse_statement(
    sql: str,
    start_line: int,
    end_line: int,
    file_path: str,
) -> ExtractedSQLBlock:
    """Describe one statement as an ``ExtractedSQLBlock``."""
    sql_type = determine_sql_type(sql)
    return ExtractedSQLBlock(
        name=extract_name(sql, sql_type),
        file_path=file_path,
        start_line=start_line,
        end_line=end_line,
        sql_type=sql_type,
        description=extract_description(sql),
        business_rule_markers=extract_sql_markers(sql),
        source_code=sql,
        tables=extract_tables(sql),
        columns=extract_columns(sql),
    )


def extract_sql_statements(source: str, file_path: str) -> List[ExtractedSQLBlock]:
    """Extract every statement of a SQL file's content."""
    blocks = [
        parse_statement(statement.text, statement.start_line, statement.end_line, file_path)
        for statement in split_sql_statements(source)
    ]
    logger.debug("Extracted %d SQL statements from %s", len(blocks), file_path)
    return blocks


def extract_embedded_sql(source: str, file_path: str) -> List[ExtractedSQLBlock]:
    """Extract SQL passed as a string literal to ``spark.sql`` / ``execute`` / ``sql``.

    Each literal that passes the keyword sniff test becomes a block named
    ``embedded_sql_<n>`` (n counts from 1 within the file). The start line
    is the line of the call; the end line is the line that closes it.

    Args:
        source: Python file content.
        file_path: File path relative to the source root.

    Returns:
        Embedded SQL blocks in file order.
    """
    blocks: List[ExtractedSQLBlock] = []
    for match in EMBEDDED_SQL_PATTERN.finditer(source):
        content = next((group for group in match.groups() if group), None)
        if not content or not looks_like_sql(content):
            continue

        sql = content.strip()
        start_line = source.count("\n", 0, match.start()) + 1
        end_line = source.count("\n", 0, match.end()) + 1
        block = parse_statement(sql, start_line, end_line, file_path)
        blocks.append(replace(block, name=f"{EMBEDDED_SQL_NAME_PREFIX}{len(blocks) + 1}"))

    if blocks:
        logger.debug("Extracted %d embedded SQL blocks from %s", len(blocks), file_path)
    return blocks
