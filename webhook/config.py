"""
Configuration constants for the webhook receiver.

Environment variables are loaded from a .env file at module import time via
python-dotenv.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# HTTP listener
# ---------------------------------------------------------------------------
WEBHOOK_HOST: str = os.getenv("WEBHOOK_HOST", "0.0.0.0")
WEBHOOK_PORT: int = int(os.getenv("WEBHOOK_PORT", "3000"))

# Shared secret for X-Hub-Signature-256; verification is skipped when empty
WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "")

WEBHOOK_PATHS = frozenset({"/", "/webhook"})

# ---------------------------------------------------------------------------
# Event routing
# ---------------------------------------------------------------------------
TRIGGER_REFS = frozenset({"refs/heads/main", "refs/heads/master"})
DEFAULT_PUSH_REF: str = "refs/heads/main"
DEFAULT_DISPATCH_REF: str = "main"
DEFAULT_PUSH_MESSAGE: str = "No message"
DEFAULT_DISPATCH_MESSAGE: str = "Dispatch trigger"
