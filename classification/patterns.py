"""
Fixed pattern sets used by the rule-based classification steps.

Each pattern counts at most once per entity, however many times it matches.
Patterns are searched over ``name + " " + source + " " + description``, so a
``^`` anchor only ever matches the start of the entity name.
"""

import re
from typing import List, Pattern

BUSINESS_LOGIC_PATTERNS: List[Pattern[str]] = [
    re.compile(r"threshold", re.IGNORECASE),
    re.compile(r"limit", re.IGNORECASE),
    re.compile(r"calculate.*(?:rag|status|score)", re.IGNORECASE),
    re.compile(r"validate", re.IGNORECASE),
    re.compile(r"check.*(?:rule|condition|constraint)", re.IGNORECASE),
    re.compile(r"(?:red|amber|green)", re.IGNORECASE),
    re.compile(r"percentage", re.IGNORECASE),
    re.compile(r"rate.*(?:increase|decrease)", re.IGNORECASE),
    re.compile(r"rule", re.IGNORECASE),
    re.compile(r"policy", re.IGNORECASE),
    re.compile(r"eligibility", re.IGNORECASE),
    re.compile(r"compliance", re.IGNORECASE),
    re.compile(r"sla", re.IGNORECASE),
    re.compile(r"kpi", re.IGNORECASE),
    re.compile(r"metric", re.IGNORECASE),
]

PIPELINE_CODE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^(?:load|read|write|save)_", re.IGNORECASE),
    re.compile(r"^(?:extract|transform|ingest)", re.IGNORECASE),
    re.compile(r"^(?:setup|init|configure|connect)", re.IGNORECASE),
    re.compile(r"spark\.read", re.IGNORECASE),
    re.compile(r"\.write\.", re.IGNORECASE),
    re.compile(r"\.save\(", re.IGNORECASE),
    re.compile(r"\.load\(", re.IGNORECASE),
    re.compile(r"pd\.read", re.IGNORECASE),
    re.compile(r"to_(?:csv|parquet|json)", re.IGNORECASE),
    re.compile(r"get_(?:connection|session|client)", re.IGNORECASE),
    re.compile(r"create_(?:table|database|schema)", re.IGNORECASE),
]


def count_pattern_matches(text: str, patterns: List[Pattern[str]]) -> int:
    """Count how many patterns match ``text`` at least once."""
    return sum(1 for pattern in patterns if pattern.search(text))
