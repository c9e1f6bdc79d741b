"""
Configuration constants for entity classification and the assistant fallback.

Environment variables are loaded from a .env file at module import time via
python-dotenv.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Load .env file (idempotent; does nothing if already loaded or missing)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# OpenRouter / assistant API configuration
# ---------------------------------------------------------------------------
OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
CLASSIFIER_MODEL: str = os.getenv("CLASSIFIER_MODEL", "openai/gpt-4o-mini")

# Per-request timeout; a timed-out request is a failed request, never retried
CLASSIFIER_TIMEOUT_S: float = float(os.getenv("CLASSIFIER_TIMEOUT_S", "60"))

# Maximum number of assistant requests in flight during batch classification
CLASSIFIER_MAX_CONCURRENCY: int = max(1, int(os.getenv("CLASSIFIER_MAX_CONCURRENCY", "4")))

# ---------------------------------------------------------------------------
# Prompt shaping
# ---------------------------------------------------------------------------
MAX_SOURCE_CHARS: int = 2000
TRUNCATION_MARKER: str = "\n... (truncated)"

# Prefix applied to reasons returned by the assistant
ASSISTANT_REASON_PREFIX: str = "AI: "
