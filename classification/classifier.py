"""
Layered business-logic / pipeline-code classifier.

Every entity goes through a strict decision procedure; the first step that
produces a result wins:

1. explicit business-rule markers -> business_logic, high;
2. pattern scoring against the two fixed pattern sets;
3. tie-break on the two scores;
4. external assistant, only when enabled and the scores are tied;
5. default -> pipeline_code, low.

Steps 1-3 and 5 are pure functions of the entity text, so with the
assistant disabled the classifier is deterministic.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

import openai

from classification.assistant import (
    AssistantClient,
    AssistantResponseError,
    OpenAIAssistantClient,
    build_prompt,
    parse_assistant_response,
)
from classification.config import CLASSIFIER_MAX_CONCURRENCY
from classification.models import (
    BUSINESS_LOGIC,
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    PIPELINE_CODE,
    ClassificationResult,
    ClassifiedFunction,
    ClassifiedSQLBlock,
)
from classification.patterns import (
    BUSINESS_LOGIC_PATTERNS,
    PIPELINE_CODE_PATTERNS,
    count_pattern_matches,
)
from extraction.models import ExtractedFunction, ExtractedSQLBlock

logger = logging.getLogger(__name__)

DEFAULT_RESULT = ClassificationResult(
    classification=PIPELINE_CODE,
    confidence=CONFIDENCE_LOW,
    reason="No clear patterns matched, defaulting to pipeline_code",
)


def classify_by_markers(markers: Sequence[str]) -> Optional[ClassificationResult]:
    """Step 1: any business-rule marker forces business_logic/high."""
    if not markers:
        return None
    return ClassificationResult(
        classification=BUSINESS_LOGIC,
        confidence=CONFIDENCE_HIGH,
        reason=f"Contains BUSINESS_RULE markers: {', '.join(markers)}",
    )


def score_text(name: str, source_code: str, description: Optional[str]) -> Tuple[int, int]:
    """Step 2: return (business_logic_score, pipeline_code_score)."""
    text = f"{name} {source_code} {description or ''}"
    return (
        count_pattern_matches(text, BUSINESS_LOGIC_PATTERNS),
        count_pattern_matches(text, PIPELINE_CODE_PATTERNS),
    )


def break_tie(business_score: int, pipeline_score: int) -> Optional[ClassificationResult]:
    """Step 3: decide from the two scores, or None when they are equal."""
    if business_score > 0 and pipeline_score == 0:
        return ClassificationResult(
            classification=BUSINESS_LOGIC,
            confidence=CONFIDENCE_HIGH if business_score >= 2 else CONFIDENCE_MEDIUM,
            reason=f"Matches {business_score} business logic patterns",
        )
    if pipeline_score > 0 and business_score == 0:
        return ClassificationResult(
            classification=PIPELINE_CODE,
            confidence=CONFIDENCE_HIGH if pipeline_score >= 2 else CONFIDENCE_MEDIUM,
            reason=f"Matches {pipeline_score} pipeline code patterns",
        )
    if business_score > pipeline_score:
        return ClassificationResult(
            classification=BUSINESS_LOGIC,
            confidence=CONFIDENCE_MEDIUM,
            reason=(
                f"Matches {business_score} business logic patterns "
                f"vs {pipeline_score} pipeline patterns"
            ),
        )
    if pipeline_score > business_score:
        return ClassificationResult(
            classification=PIPELINE_CODE,
            confidence=CONFIDENCE_MEDIUM,
            reason=(
                f"Matches {pipeline_score} pipeline patterns "
                f"vs {business_score} business logic patterns"
            ),
        )
    return None


def classify_by_rules(
    name: str,
    source_code: str,
    description: Optional[str],
    markers: Sequence[str],
) -> Optional[ClassificationResult]:
    """Steps 1-3. None means the entity is ambiguous."""
    result = classify_by_markers(markers)
    if result is not None:
        return result
    return break_tie(*score_text(name, source_code, description))


class LogicClassifier:
    """Classify extracted functions and SQL blocks.

    Args:
        use_assistant: Whether step 4 consults the external assistant.
        assistant: Assistant client; an ``OpenAIAssistantClient`` is created
            on first use when omitted.
        max_concurrency: Maximum assistant requests in flight at once.
    """

    def __init__(
        self,
        use_assistant: bool = False,
        assistant: Optional[AssistantClient] = None,
        max_concurrency: int = CLASSIFIER_MAX_CONCURRENCY,
    ):
        self.use_assistant = use_assistant
        self.max_concurrency = max(1, max_concurrency)
        self._assistant = assistant
        self._owns_assistant = False
        self._slots: Optional[asyncio.Semaphore] = None

    def _get_assistant(self) -> AssistantClient:
        if self._assistant is None:
            self._assistant = OpenAIAssistantClient()
            self._owns_assistant = True
        return self._assistant

    def _get_slots(self) -> asyncio.Semaphore:
        if self._slots is None:
            self._slots = asyncio.Semaphore(self.max_concurrency)
        return self._slots

    async def _classify_with_assistant(
        self,
        name: str,
        source_code: str,
        description: Optional[str],
    ) -> Optional[ClassificationResult]:
        """Step 4. Returns None on any failure so step 5 applies."""
        try:
            assistant = self._get_assistant()
            prompt = build_prompt(name, source_code, description)
            async with self._get_slots():
                response = await assistant.complete(prompt)
            return parse_assistant_response(response)
        except AssistantResponseError as e:
            logger.warning("Assistant response for %s rejected: %s", name, e)
        except (openai.OpenAIError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Assistant classification failed for %s: %s", name, e)
        return None

    async def classify(
        self,
        name: str,
        source_code: str,
        description: Optional[str],
        markers: Sequence[str],
    ) -> ClassificationResult:
        """Run the five-step procedure for one entity."""
        result = classify_by_rules(name, source_code, description, markers)
        if result is not None:
            return result

        if self.use_assistant:
            result = await self._classify_with_assistant(name, source_code, description)
            if result is not None:
                return result

        return DEFAULT_RESULT

    async def classify_function(self, function: ExtractedFunction) -> ClassifiedFunction:
        result = await self.classify(
            function.name,
            function.source_code,
            function.docstring,
            function.business_rule_markers,
        )
        return ClassifiedFunction(function=function, result=result)

    async def classify_sql_block(self, block: ExtractedSQLBlock) -> ClassifiedSQLBlock:
        result = await self.classify(
            block.name,
            block.source_code,
            block.description,
            block.business_rule_markers,
        )
        return ClassifiedSQLBlock(block=block, result=result)

    async def classify_functions(
        self, functions: Sequence[ExtractedFunction]
    ) -> List[ClassifiedFunction]:
        """Classify functions concurrently; output keeps input order."""
        return list(await asyncio.gather(*(self.classify_function(f) for f in functions)))

    async def classify_sql_blocks(
        self, blocks: Sequence[ExtractedSQLBlock]
    ) -> List[ClassifiedSQLBlock]:
        """Classify SQL blocks concurrently; output keeps input order."""
        return list(await asyncio.gather(*(self.classify_sql_block(b) for b in blocks)))

    async def aclassify_all(
        self,
        functions: Sequence[ExtractedFunction],
        blocks: Sequence[ExtractedSQLBlock],
    ) -> Tuple[List[ClassifiedFunction], List[ClassifiedSQLBlock]]:
        """Classify both entity kinds within the current event loop."""
        # The semaphore belongs to the loop it is first awaited on.
        self._slots = asyncio.Semaphore(self.max_concurrency)
        try:
            classified_functions = await self.classify_functions(functions)
            classified_blocks = await self.classify_sql_blocks(blocks)
        finally:
            if self._owns_assistant and isinstance(self._assistant, OpenAIAssistantClient):
                await self._assistant.close()
                self._assistant = None
                self._owns_assistant = False
        return classified_functions, classified_blocks

    def classify_all(
        self,
        functions: Sequence[ExtractedFunction],
        blocks: Sequence[ExtractedSQLBlock],
    ) -> Tuple[List[ClassifiedFunction], List[ClassifiedSQLBlock]]:
        """Synchronous entry point: classify everything on a fresh event loop."""
        classified = asyncio.run(self.aclassify_all(functions, blocks))
        logger.info(
            "Classified %d functions and %d SQL blocks (assistant %s)",
            len(classified[0]),
            len(classified[1]),
            "enabled" if self.use_assistant else "disabled",
        )
        return classified
