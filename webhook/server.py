"""
HTTP receiver that turns repository events into extraction runs.

Accepts GitHub-style ``push``, ``repository_dispatch`` and ``ping``
deliveries. Accepted runs are queued to a single worker thread, so at most
one run touches the snapshot store at a time and the HTTP reply never waits
for a run to finish.
"""

import hashlib
import hmac
import json
import logging
import queue
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from webhook.config import (
    DEFAULT_DISPATCH_MESSAGE,
    DEFAULT_DISPATCH_REF,
    DEFAULT_PUSH_MESSAGE,
    DEFAULT_PUSH_REF,
    TRIGGER_REFS,
    WEBHOOK_HOST,
    WEBHOOK_PATHS,
    WEBHOOK_PORT,
    WEBHOOK_SECRET,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
SIGNATURE_PREFIX = "sha256="


class TriggerRequest(NamedTuple):
    """Arguments for one extraction run."""

    ref: str
    commit: Optional[str]
    commit_message: str


Runner = Callable[..., Any]


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` HMAC signature of a request body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the body.

    Args:
        body: Raw request body.
        signature: Header value, or None when absent.
        secret: Shared webhook secret.

    Returns:
        True only when the header is present and matches.
    """
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature)


def parse_event(event: str, payload: Dict[str, Any]) -> Optional[TriggerRequest]:
    """Map a webhook delivery to a run request, or None when it triggers nothing."""
    if event == "push":
        ref = payload.get("ref") or DEFAULT_PUSH_REF
        if ref not in TRIGGER_REFS:
            logger.info("Ignoring push to %s", ref)
            return None
        head_commit = payload.get("head_commit") or {}
        return TriggerRequest(
            ref=ref,
            commit=payload.get("after") or None,
            commit_message=head_commit.get("message") or DEFAULT_PUSH_MESSAGE,
        )

    if event == "repository_dispatch":
        client_payload = payload.get("client_payload") or {}
        return TriggerRequest(
            ref=client_payload.get("ref") or DEFAULT_DISPATCH_REF,
            commit=client_payload.get("commit_sha") or None,
            commit_message=client_payload.get("commit_message") or DEFAULT_DISPATCH_MESSAGE,
        )

    if event == "ping":
        logger.info("Received ping: %s", payload.get("zen", ""))
    else:
        logger.info("Ignoring event: %s", event or "<none>")
    return None


class RunDispatcher:
    """Serialize extraction runs onto one background worker thread.

    Args:
        runner: Called as ``runner(ref=..., commit=..., commit_message=...)``.
    """

    _STOP = object()

    def __init__(self, runner: Runner):
        self.runner = runner
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread = threading.Thread(target=self._work, name="extraction-worker", daemon=True)
        self._thread.start()

    def submit(self, trigger: TriggerRequest) -> None:
        logger.info("Queued extraction for %s @ %s", trigger.ref, trigger.commit or "HEAD")
        self._queue.put(trigger)

    def join(self) -> None:
        """Block until every queued run has finished."""
        self._queue.join()

    def close(self) -> None:
        self._queue.put(self._STOP)
        self._thread.join()

    def _work(self) -> None:
        while True:
            trigger = self._queue.get()
            try:
                if trigger is self._STOP:
                    return
                self.runner(
                    ref=trigger.ref,
                    commit=trigger.commit,
                    commit_message=trigger.commit_message,
                )
            except Exception as e:
                # A failed run must not stop the worker.
                logger.error("Extraction run for %s failed: %s", trigger.ref, e, exc_info=True)
            finally:
                self._queue.task_done()


def create_app(dispatcher: RunDispatcher, secret: str = WEBHOOK_SECRET) -> Starlette:
    """Build the receiver app. Only POST to one of ``WEBHOOK_PATHS`` is routed."""

    async def receive(request: Request) -> JSONResponse:
        body = await request.body()

        if secret:
            if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), secret):
                client = request.client.host if request.client else "-"
                logger.warning("Rejected delivery with invalid signature from %s", client)
                return JSONResponse({"error": "Invalid signature"}, status_code=401)
        else:
            logger.warning("WEBHOOK_SECRET not set; skipping signature verification")

        try:
            payload = json.loads(body.decode("utf-8"))
        except ValueError:
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)

        event = request.headers.get(EVENT_HEADER, "")
        logger.info("Received %s event", event or "<none>")

        trigger = parse_event(event, payload)
        if trigger is not None:
            dispatcher.submit(trigger)

        return JSONResponse({"status": "ok", "event": event})

    return Starlette(routes=[Route(path, receive, methods=["POST"]) for path in sorted(WEBHOOK_PATHS)])


def serve(
    runner: Runner,
    host: str = WEBHOOK_HOST,
    port: int = WEBHOOK_PORT,
    secret: str = WEBHOOK_SECRET,
) -> None:
    """Run the receiver with uvicorn until interrupted."""
    dispatcher = RunDispatcher(runner)
    app = create_app(dispatcher, secret=secret)
    logger.info("Webhook server listening on %s:%d", host, port)
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    finally:
        logger.info("Shutting down webhook server")
        dispatcher.close()
