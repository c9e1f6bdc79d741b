"""
Layer 1: Extraction Engine

Tree-sitter-based Python function extractor and regex-based SQL statement
extractor. Produces immutable entity records for classification.
"""

from extraction.models import ExtractedFunction, ExtractedSQLBlock, ParameterInfo
from extraction.parser import create_parser, parse_file, parse_bytes, count_error_nodes
from extraction.traversal import extract_functions_from_tree
from extraction.sql import extract_embedded_sql, extract_sql_statements, split_sql_statements
from extraction.extractor import (
    extract_python_file,
    extract_sql_file,
    extract_embedded_sql_file,
    extract_directory,
    discover_files,
    ExtractionStats,
)

__all__ = [
    # Data models
    "ExtractedFunction",
    "ExtractedSQLBlock",
    "ParameterInfo",
    "ExtractionStats",
    # Low-level parsing
    "create_parser",
    "parse_file",
    "parse_bytes",
    "count_error_nodes",
    # Mid-level extraction
    "extract_functions_from_tree",
    "extract_embedded_sql",
    "extract_sql_statements",
    "split_sql_statements",
    # High-level orchestration
    "extract_python_file",
    "extract_sql_file",
    "extract_embedded_sql_file",
    "extract_directory",
    "discover_files",
]
