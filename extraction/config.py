"""
Configuration constants for Python and SQL entity extraction.

Defines the tree-sitter node type strings, file selection rules and
marker/SQL vocabulary used by the extractors.
"""

import re
from typing import Pattern, Set

# Function definition node type (async functions share this node type and
# carry an ``async`` keyword child in tree-sitter-python)
FUNCTION_NODE: str = "function_definition"

# Class definition node type: walked through, never an entity itself
CLASS_NODE: str = "class_definition"

# Decorator wrapper: holds ``decorator`` children plus the ``definition`` field
DECORATED_NODE: str = "decorated_definition"
DECORATOR_NODE: str = "decorator"

# Body-bearing node types whose ``body`` field is walked for nested definitions.
# Nested functions and methods are hoisted into the flat result list.
HOISTING_CONTAINERS: Set[str] = {
    FUNCTION_NODE,
    CLASS_NODE,
}

# Parameter node types inside a ``parameters`` node
IDENTIFIER_PARAMETER: str = "identifier"
TYPED_PARAMETER: str = "typed_parameter"
DEFAULT_PARAMETER: str = "default_parameter"
TYPED_DEFAULT_PARAMETER: str = "typed_default_parameter"

# Implicit receiver parameters dropped from parameter lists
IMPLICIT_PARAMETERS: Set[str] = {"self", "cls"}

# Docstring node types
EXPRESSION_STATEMENT: str = "expression_statement"
STRING_NODE: str = "string"

# File extensions
PYTHON_EXTENSIONS: Set[str] = {".py"}
SQL_EXTENSIONS: Set[str] = {".sql"}

# Dependency, virtual-environment and build directories never scanned.
# Hidden directories (leading '.') are skipped as well.
SKIP_DIRS: Set[str] = {
    "node_modules",
    "venv",
    "env",
    "__pycache__",
    "site-packages",
    "build",
    "dist",
    "out",
}

# Business-rule marker tag: the standalone word, case-insensitive, optional
# free text up to end of line.
BUSINESS_RULE_TAG: str = "BUSINESS_RULE"
MARKER_PATTERN: Pattern[str] = re.compile(
    r"\b" + BUSINESS_RULE_TAG + r"\b[ \t]*[:=]?[ \t]*([^\s:=].*?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
SQL_MARKER_PATTERN: Pattern[str] = re.compile(
    r"^[ \t]*--[ \t]*" + BUSINESS_RULE_TAG + r"\b[ \t]*[:=]?[ \t]*([^\s:=].*?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

# SQL statement kinds
SQL_TYPE_QUERY: str = "query"
SQL_DDL_KINDS: tuple = ("procedure", "function", "view", "trigger")
SQL_TYPES: tuple = SQL_DDL_KINDS + (SQL_TYPE_QUERY,)

# Call-like patterns whose string-literal argument may hold embedded SQL
EMBEDDED_SQL_PATTERN: Pattern[str] = re.compile(
    r"(?:spark\.sql|execute|sql)\s*\(\s*"
    r"(?:[fF]?\"\"\"([\s\S]*?)\"\"\""
    r"|[fF]?'''([\s\S]*?)'''"
    r"|[fF]?\"([^\"\n]*?)\""
    r"|[fF]?'([^'\n]*?)')"
)

# Sniff test: at least one top-level clause keyword
SQL_KEYWORD_PATTERN: Pattern[str] = re.compile(
    r"\b(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP|WITH|FROM|WHERE|JOIN|GROUP BY|ORDER BY)\b",
    re.IGNORECASE,
)

EMBEDDED_SQL_NAME_PREFIX: str = "embedded_sql_"
UNNAMED_QUERY: str = "unnamed_query"
CTE_NAME_PREFIX: str = "cte_"

# Maximum number of worker threads used when extracting files in parallel
DEFAULT_MAX_WORKERS: int = 1
