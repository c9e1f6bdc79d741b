"""
Tree-sitter parser initialization and file parsing utilities.

This module provides functions to initialize the Python parser and parse source files.
"""

import logging
from typing import Tuple

import tree_sitter_python as tspython
from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)

# Module-level language constant
PYTHON_LANGUAGE = Language(tspython.language())


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for Python.

    Returns:
        A Parser instance configured with the Python language.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"def main():\\n    return 0\\n")
    """
    parser = Parser(PYTHON_LANGUAGE)
    logger.debug("Created tree-sitter Python parser")
    return parser


def parse_bytes(source: bytes) -> Tree:
    """Parse raw bytes of Python source code.

    Args:
        source: UTF-8 encoded bytes of Python source code.

    Returns:
        A Tree object representing the concrete syntax tree.

    Raises:
        TypeError: If source is not bytes.

    Example:
        >>> tree = parse_bytes(b"def foo(): pass")
        >>> tree.root_node.type
        'module'
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    parser = create_parser()
    tree = parser.parse(source)

    if tree.root_node.has_error:
        logger.debug("Parsed tree contains syntax errors")

    logger.debug("Parsed %d bytes of Python code", len(source))
    return tree


def parse_file(file_path: str) -> Tuple[Tree, bytes]:
    """Parse a Python source file from disk.

    Args:
        file_path: Path to the .py file.

    Returns:
        A tuple of (Tree, source_bytes).

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            source_bytes = f.read()
    except FileNotFoundError:
        logger.error("File not found: %s", file_path)
        raise
    except OSError as e:
        logger.error("Error reading file %s: %s", file_path, e)
        raise

    tree = parse_bytes(source_bytes)
    logger.debug("Successfully parsed file: %s", file_path)
    return tree, source_bytes


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and MISSING nodes in a parsed tree."""
    count = 0
    stack: list[Node] = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        stack.extend(node.children)
    return count
