"""
Webhook receiver

Turns repository push and dispatch events into serialized extraction runs.
"""

from webhook.server import (
    RunDispatcher,
    TriggerRequest,
    create_app,
    compute_signature,
    parse_event,
    serve,
    verify_signature,
)

__all__ = [
    "RunDispatcher",
    "TriggerRequest",
    "create_app",
    "compute_signature",
    "parse_event",
    "serve",
    "verify_signature",
]
