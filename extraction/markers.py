"""
Business-rule marker detection.

A marker is an explicit in-source annotation such as::

    # BUSINESS_RULE: orders above 10k need approval
    -- business_rule = RED if increase >= 50%

Each marker contributes the free text after the tag, trimmed. Markers are
shared by the Python and SQL extractors; SQL only honours ``--`` lines.
"""

import re
from collections import Counter
from typing import List, Optional, Pattern

from extraction.config import BUSINESS_RULE_TAG, MARKER_PATTERN, SQL_MARKER_PATTERN

_MARKER_TAG_RE = re.compile(BUSINESS_RULE_TAG + r"\b", re.IGNORECASE)

# One-line docstrings close on the marker line itself
_TRAILING_TRIPLE_QUOTE = re.compile(r"(\"\"\"|''')$")


def find_markers(text: str, pattern: Pattern[str] = MARKER_PATTERN) -> List[str]:
    """Return every marker text in ``text``, in order of appearance."""
    markers = []
    for match in pattern.finditer(text):
        value = _TRAILING_TRIPLE_QUOTE.sub("", match.group(1).strip()).strip()
        if value:
            markers.append(value)
    return markers


def extract_function_markers(docstring: Optional[str], source_code: str) -> List[str]:
    """Collect markers from a function's docstring followed by its source slice.

    The docstring is part of the source slice as well, so each docstring
    marker is counted once: docstring markers come first, then the source
    markers that the docstring did not already account for.

    Args:
        docstring: Cleaned docstring, or None.
        source_code: Verbatim function source.

    Returns:
        Ordered list of marker texts.
    """
    doc_markers = find_markers(docstring) if docstring else []
    pending = Counter(doc_markers)

    markers = list(doc_markers)
    for marker in find_markers(source_code):
        if pending[marker] > 0:
            pending[marker] -= 1
            continue
        markers.append(marker)
    return markers


def extract_sql_markers(sql: str) -> List[str]:
    """Collect markers from ``--`` comment lines of a SQL statement."""
    return find_markers(sql, SQL_MARKER_PATTERN)


def is_marker_comment(comment_body: str) -> bool:
    """Check whether a comment body (delimiter already stripped) is a marker."""
    return _MARKER_TAG_RE.match(comment_body.strip()) is not None
