"""
Data models for classification results and classified entities.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from extraction.models import ExtractedFunction, ExtractedSQLBlock

BUSINESS_LOGIC: str = "business_logic"
PIPELINE_CODE: str = "pipeline_code"
CLASSIFICATIONS: tuple = (BUSINESS_LOGIC, PIPELINE_CODE)

CONFIDENCE_HIGH: str = "high"
CONFIDENCE_MEDIUM: str = "medium"
CONFIDENCE_LOW: str = "low"

# high > medium > low
CONFIDENCE_RANK: Dict[str, int] = {
    CONFIDENCE_LOW: 0,
    CONFIDENCE_MEDIUM: 1,
    CONFIDENCE_HIGH: 2,
}


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one entity.

    Attributes:
        classification: ``business_logic`` or ``pipeline_code``.
        confidence: ``high``, ``medium`` or ``low``.
        reason: Human-readable audit trail of the deciding step.
    """

    classification: str
    confidence: str
    reason: str

    def __post_init__(self):
        if self.classification not in CLASSIFICATIONS:
            raise ValueError(f"Invalid classification: {self.classification}")
        if self.confidence not in CONFIDENCE_RANK:
            raise ValueError(f"Invalid confidence: {self.confidence}")

    @property
    def is_business_logic(self) -> bool:
        return self.classification == BUSINESS_LOGIC

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ClassifiedFunction:
    """An extracted function paired with its classification result."""

    function: ExtractedFunction
    result: ClassificationResult

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def file_path(self) -> str:
        return self.function.file_path

    @property
    def identity_key(self) -> str:
        return self.function.identity_key

    @property
    def classification(self) -> str:
        return self.result.classification

    @property
    def source_code(self) -> str:
        return self.function.source_code

    @property
    def description(self) -> Optional[str]:
        return self.function.docstring

    def to_dict(self) -> Dict[str, Any]:
        data = self.function.to_dict()
        data["classification_result"] = self.result.to_dict()
        return data


@dataclass(frozen=True)
class ClassifiedSQLBlock:
    """An extracted SQL block paired with its classification result."""

    block: ExtractedSQLBlock
    result: ClassificationResult

    @property
    def name(self) -> str:
        return self.block.name

    @property
    def file_path(self) -> str:
        return self.block.file_path

    @property
    def identity_key(self) -> str:
        return self.block.identity_key

    @property
    def classification(self) -> str:
        return self.result.classification

    @property
    def source_code(self) -> str:
        return self.block.source_code

    @property
    def description(self) -> Optional[str]:
        return self.block.description

    def to_dict(self) -> Dict[str, Any]:
        data = self.block.to_dict()
        data["classification_result"] = self.result.to_dict()
        return data


def count_business_logic(entities: List[Any]) -> int:
    """Count classified entities labelled ``business_logic``."""
    return sum(1 for entity in entities if entity.classification == BUSINESS_LOGIC)
