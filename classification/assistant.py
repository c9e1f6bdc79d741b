"""
External text-classification assistant used for ambiguous entities.

The assistant is a chat-completion model reached through the OpenAI SDK
pointed at OpenRouter. One request is sent per ambiguous entity and its
terminal response is parsed into a ``ClassificationResult``. Failures are
reported to the caller as exceptions; nothing here retries.
"""

import json
import logging
import re
from typing import Optional, Protocol

from openai import AsyncOpenAI

from classification.config import (
    ASSISTANT_REASON_PREFIX,
    CLASSIFIER_MODEL,
    CLASSIFIER_TIMEOUT_S,
    MAX_SOURCE_CHARS,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    TRUNCATION_MARKER,
)
from classification.models import CLASSIFICATIONS, CONFIDENCE_MEDIUM, ClassificationResult

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """Classify this function as either 'business_logic' or 'pipeline_code'.

Business Logic functions:
- Implement business rules, thresholds, or calculations
- Contain validation logic
- Calculate status indicators (RAG, scores, ratings)
- Implement domain-specific logic

Pipeline Code functions:
- Handle data loading, saving, or transformation
- Setup infrastructure or connections
- Perform ETL operations without business rules

Function: {name}
{description_line}

Source Code:
```python
{source}
```

Respond with ONLY valid JSON in this exact format:
{{"classification": "business_logic" or "pipeline_code", "reason": "brief explanation"}}"""


class AssistantResponseError(ValueError):
    """Raised when an assistant response violates the expected protocol."""


class AssistantClient(Protocol):
    """Anything that turns a prompt into the assistant's terminal text."""

    async def complete(self, prompt: str) -> str:
        ...


def truncate_source(source_code: str, max_chars: int = MAX_SOURCE_CHARS) -> str:
    """Cap the source excerpt sent to the assistant.

    Args:
        source_code: Verbatim entity source.
        max_chars: Maximum number of source characters kept.

    Returns:
        The source unchanged if short enough, otherwise its first
        ``max_chars`` characters followed by a truncation marker.
    """
    if len(source_code) <= max_chars:
        return source_code
    return source_code[:max_chars] + TRUNCATION_MARKER


def build_prompt(name: str, source_code: str, description: Optional[str] = None) -> str:
    """Render the classification prompt for one entity."""
    return PROMPT_TEMPLATE.format(
        name=name,
        description_line=f"Description: {description}" if description else "",
        source=truncate_source(source_code),
    )


def parse_assistant_response(text: str) -> ClassificationResult:
    """Parse the assistant's reply into a ``ClassificationResult``.

    The first ``{`` through the last ``}`` is decoded as JSON. The object
    must carry a valid ``classification`` label and no ``error`` field.

    Args:
        text: Raw assistant reply.

    Returns:
        A medium-confidence result whose reason is prefixed ``AI: ``.

    Raises:
        AssistantResponseError: If no JSON object is found, it does not
            decode, reports an error, or carries an invalid label.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise AssistantResponseError("No JSON found in response")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AssistantResponseError(f"Malformed JSON in response: {e}") from e

    if not isinstance(payload, dict):
        raise AssistantResponseError("Response JSON is not an object")
    if payload.get("error"):
        raise AssistantResponseError(f"Assistant reported an error: {payload['error']}")

    classification = payload.get("classification")
    if classification not in CLASSIFICATIONS:
        raise AssistantResponseError(f"Invalid classification: {classification}")

    reason = str(payload.get("reason") or "").strip()
    return ClassificationResult(
        classification=classification,
        confidence=CONFIDENCE_MEDIUM,
        reason=f"{ASSISTANT_REASON_PREFIX}{reason}",
    )


class OpenAIAssistantClient:
    """Chat-completion assistant over ``openai.AsyncOpenAI``.

    The SDK's automatic retries are disabled so a failed request surfaces
    immediately and the classifier falls through to its default.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = OPENROUTER_BASE_URL,
        model: str = CLASSIFIER_MODEL,
        timeout_s: float = CLASSIFIER_TIMEOUT_S,
    ):
        api_key = api_key or OPENROUTER_API_KEY
        if not api_key:
            raise ValueError(
                "OPENROUTER_API_KEY is not set. "
                "Add it to your .env file or export it as an environment variable."
            )

        self.model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_s,
            max_retries=0,
            default_headers={
                "HTTP-Referer": "https://github.com/logic-docs",
                "X-Title": "Logic Docs Classifier",
            },
        )
        logger.info("Assistant client initialized (base_url=%s, model=%s)", base_url, model)

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the first terminal message text.

        Raises:
            openai.OpenAIError: On transport, auth, rate-limit or timeout failure.
            AssistantResponseError: If the reply carries no text.
        """
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )
        if not response.choices or not response.choices[0].message.content:
            raise AssistantResponseError("Assistant returned an empty response")
        return response.choices[0].message.content

    async def close(self) -> None:
        await self._client.close()
