"""
Layer 2: Classification

Marker and pattern rules decide whether an entity is business logic or
pipeline code; an optional external assistant settles ambiguous cases.
"""

from classification.models import (
    BUSINESS_LOGIC,
    PIPELINE_CODE,
    ClassificationResult,
    ClassifiedFunction,
    ClassifiedSQLBlock,
    count_business_logic,
)
from classification.assistant import (
    AssistantClient,
    AssistantResponseError,
    OpenAIAssistantClient,
    build_prompt,
    parse_assistant_response,
)
from classification.classifier import LogicClassifier, classify_by_rules

__all__ = [
    "BUSINESS_LOGIC",
    "PIPELINE_CODE",
    "ClassificationResult",
    "ClassifiedFunction",
    "ClassifiedSQLBlock",
    "count_business_logic",
    "AssistantClient",
    "AssistantResponseError",
    "OpenAIAssistantClient",
    "build_prompt",
    "parse_assistant_response",
    "LogicClassifier",
    "classify_by_rules",
]
