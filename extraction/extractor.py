"""
High-level orchestrator for Python function and SQL block extraction.

This module provides the main entry points for extracting entities from
single files or entire directory trees.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from core.identity import normalize_file_path
from extraction.config import (
    DEFAULT_MAX_WORKERS,
    PYTHON_EXTENSIONS,
    SKIP_DIRS,
    SQL_EXTENSIONS,
)
from extraction.models import ExtractedFunction, ExtractedSQLBlock
from extraction.parser import count_error_nodes, parse_file
from extraction.sql import extract_embedded_sql, extract_sql_statements
from extraction.traversal import extract_functions_from_tree

logger = logging.getLogger(__name__)


@dataclass
class FileExtractionDiagnostics:
    """Per-file extraction output with parse diagnostics."""

    functions: List[ExtractedFunction] = field(default_factory=list)
    sql_blocks: List[ExtractedSQLBlock] = field(default_factory=list)
    embedded_sql_blocks: List[ExtractedSQLBlock] = field(default_factory=list)
    parse_error_count: int = 0


class ExtractionStats:
    """Statistics for an extraction operation."""

    def __init__(self):
        self.files_processed = 0
        self.files_failed = 0
        self.functions_extracted = 0
        self.sql_blocks_extracted = 0
        self.parse_errors = 0

    def record(self, diagnostics: FileExtractionDiagnostics) -> None:
        """Fold one successfully processed file into the totals."""
        self.files_processed += 1
        self.functions_extracted += len(diagnostics.functions)
        self.sql_blocks_extracted += len(diagnostics.sql_blocks) + len(
            diagnostics.embedded_sql_blocks
        )
        self.parse_errors += diagnostics.parse_error_count

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "functions_extracted": self.functions_extracted,
            "sql_blocks_extracted": self.sql_blocks_extracted,
            "parse_errors": self.parse_errors,
        }

    def __str__(self) -> str:
        """String representation of stats."""
        return (
            f"ExtractionStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, functions={self.functions_extracted}, "
            f"sql_blocks={self.sql_blocks_extracted}, "
            f"parse_errors={self.parse_errors})"
        )


def _relative_path(file_path: str, repo_root: Optional[str]) -> str:
    """Compute the POSIX path of ``file_path`` relative to the source root."""
    resolved_root = os.path.abspath(repo_root) if repo_root else os.path.dirname(file_path)
    try:
        relative_path = os.path.relpath(file_path, resolved_root)
    except ValueError:
        logger.warning(
            "Cannot compute relative path for %s from %s. Using absolute path.",
            file_path,
            resolved_root,
        )
        relative_path = file_path
    return normalize_file_path(relative_path)


def _read_text(file_path: str) -> str:
    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _check_extension(file_path: str, extensions: Iterable[str], kind: str) -> None:
    ext = os.path.splitext(file_path)[1].lower()
    if ext not in extensions:
        raise ValueError(
            f"File {file_path} is not a {kind} file. Expected one of: {sorted(extensions)}"
        )


def _extract_python_with_diagnostics(
    file_path: str,
    repo_root: Optional[str],
) -> FileExtractionDiagnostics:
    """Extract functions and embedded SQL from one Python file."""
    file_path = os.path.abspath(file_path)
    _check_extension(file_path, PYTHON_EXTENSIONS, "Python source")
    relative_path = _relative_path(file_path, repo_root)

    logger.debug("Extracting functions from %s", relative_path)
    tree, source_bytes = parse_file(file_path)
    parse_error_count = count_error_nodes(tree)

    if tree.root_node.has_error:
        logger.warning(
            "File %s contains syntax errors (%d error nodes)",
            relative_path,
            parse_error_count,
        )

    functions = extract_functions_from_tree(tree, source_bytes, relative_path)
    embedded = extract_embedded_sql(
        source_bytes.decode("utf-8", errors="replace"),
        relative_path,
    )
    logger.info(
        "Extracted %d functions and %d embedded SQL blocks from %s",
        len(functions),
        len(embedded),
        relative_path,
    )
    return FileExtractionDiagnostics(
        functions=functions,
        embedded_sql_blocks=embedded,
        parse_error_count=parse_error_count,
    )


def _extract_sql_with_diagnostics(
    file_path: str,
    repo_root: Optional[str],
) -> FileExtractionDiagnostics:
    """Extract statements from one SQL file."""
    file_path = os.path.abspath(file_path)
    _check_extension(file_path, SQL_EXTENSIONS, "SQL")
    relative_path = _relative_path(file_path, repo_root)

    source = _read_text(file_path)
    blocks = extract_sql_statements(source, relative_path)
    logger.info("Extracted %d SQL blocks from %s", len(blocks), relative_path)
    return FileExtractionDiagnostics(sql_blocks=blocks)


def extract_python_file(file_path: str, repo_root: Optional[str] = None) -> List[ExtractedFunction]:
    """Extract all functions and methods from a single Python file.

    Args:
        file_path: Absolute or relative path to the .py file.
        repo_root: Source root for relative paths. If None, uses the file's
            parent directory.

    Returns:
        Functions in source order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a Python source file.

    Example:
        >>> functions = extract_python_file("pkg/rules.py", "/path/to/repo")
        >>> [f.identity_key for f in functions]
        ['pkg/rules.py:calculate_rag_status']
    """
    try:
        return _extract_python_with_diagnostics(file_path, repo_root).functions
    except Exception as e:
        logger.error("Error extracting functions from %s: %s", file_path, e)
        raise


def extract_embedded_sql_file(
    file_path: str,
    repo_root: Optional[str] = None,
) -> List[ExtractedSQLBlock]:
    """Extract SQL embedded in string literals of a single Python file."""
    file_path = os.path.abspath(file_path)
    _check_extension(file_path, PYTHON_EXTENSIONS, "Python source")
    source = _read_text(file_path)
    return extract_embedded_sql(source, _relative_path(file_path, repo_root))


def extract_sql_file(file_path: str, repo_root: Optional[str] = None) -> List[ExtractedSQLBlock]:
    """Extract all statements from a single .sql file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a SQL file.
    """
    try:
        return _extract_sql_with_diagnostics(file_path, repo_root).sql_blocks
    except Exception as e:
        logger.error("Error extracting SQL from %s: %s", file_path, e)
        raise


def discover_files(directory: str, extensions: Iterable[str]) -> List[str]:
    """Recursively discover files with the given extensions.

    Hidden directories and dependency, virtual-environment and build
    directories are skipped.

    Args:
        directory: Root directory to search.
        extensions: Extensions to keep, including the dot.

    Returns:
        Sorted list of absolute paths.
    """
    wanted = {ext.lower() for ext in extensions}
    found = []
    directory = os.path.abspath(directory)

    for root, dirs, files in os.walk(directory):
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in SKIP_DIRS]
        for file in files:
            if os.path.splitext(file)[1].lower() in wanted:
                found.append(os.path.join(root, file))

    logger.debug("Found %d files with extensions %s in %s", len(found), sorted(wanted), directory)
    return sorted(found)


def _extract_any(file_path: str, repo_root: str) -> FileExtractionDiagnostics:
    ext = os.path.splitext(file_path)[1].lower()
    if ext in SQL_EXTENSIONS:
        return _extract_sql_with_diagnostics(file_path, repo_root)
    return _extract_python_with_diagnostics(file_path, repo_root)


def extract_directory(
    directory: str,
    continue_on_error: bool = True,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Tuple[List[ExtractedFunction], List[ExtractedSQLBlock], ExtractionStats]:
    """Extract functions and SQL blocks from every source file in a tree.

    Files are independent, so with ``max_workers > 1`` they are processed on
    a thread pool. Results are merged in discovery order regardless: all
    functions by file, then statements from .sql files, then SQL embedded in
    Python files.

    Args:
        directory: Source root to process.
        continue_on_error: If True, a file that cannot be read or parsed is
            logged, counted and skipped. If False, the first error is raised.
        max_workers: Number of worker threads.

    Returns:
        A tuple of (functions, sql_blocks, stats).

    Raises:
        FileNotFoundError: If directory does not exist.

    Example:
        >>> functions, sql_blocks, stats = extract_directory("/path/to/repo")
        >>> print(f"{stats.functions_extracted} functions from {stats.files_processed} files")
    """
    directory = os.path.abspath(directory)
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Directory not found: {directory}")

    stats = ExtractionStats()
    functions: List[ExtractedFunction] = []
    sql_blocks: List[ExtractedSQLBlock] = []
    embedded_blocks: List[ExtractedSQLBlock] = []

    files = discover_files(directory, PYTHON_EXTENSIONS | SQL_EXTENSIONS)
    if not files:
        logger.warning("No Python or SQL files found in %s", directory)
        return functions, sql_blocks, stats

    logger.info("Processing %d files from %s (max_workers=%d)", len(files), directory, max_workers)

    def run_one(file_path: str) -> Optional[FileExtractionDiagnostics]:
        try:
            return _extract_any(file_path, directory)
        except (OSError, ValueError) as e:
            logger.error("Skipping %s: %s", file_path, e)
            if not continue_on_error:
                raise
        except Exception as e:
            logger.error("Unexpected error processing %s: %s", file_path, e, exc_info=True)
            if not continue_on_error:
                raise
        return None

    if max_workers > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_one, file_path) for file_path in files]
            results = [future.result() for future in futures]
    else:
        results = [run_one(file_path) for file_path in files]

    for diagnostics in results:
        if diagnostics is None:
            stats.files_failed += 1
            continue
        stats.record(diagnostics)
        functions.extend(diagnostics.functions)
        sql_blocks.extend(diagnostics.sql_blocks)
        embedded_blocks.extend(diagnostics.embedded_sql_blocks)

    sql_blocks.extend(embedded_blocks)
    logger.info("Extraction complete: %s", stats)
    return functions, sql_blocks, stats
