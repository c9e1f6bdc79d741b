#!/usr/bin/env python3
"""
Webhook entry point: start the receiver that triggers extraction runs.

Usage:
    python run_webhook.py
    python run_webhook.py --port 8080 --config run.yaml
"""

import argparse
import functools
import logging
import sys

from core.run_config import ConfigValidationError, resolve_run_config
from core.structured_logging import configure_structured_logging
from run_pipeline import run_extraction
from webhook.config import WEBHOOK_HOST, WEBHOOK_PORT, WEBHOOK_SECRET
from webhook.server import serve

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extraction webhook receiver")
    parser.add_argument("--host", default=WEBHOOK_HOST, help=f"Bind address. Default: {WEBHOOK_HOST}")
    parser.add_argument("--port", type=int, default=WEBHOOK_PORT, help=f"Listen port. Default: {WEBHOOK_PORT}")
    parser.add_argument("--config", default=None, help="Optional YAML file overlaying run configuration.")
    return parser.parse_args()


def main() -> None:
    configure_structured_logging(level=logging.INFO)
    args = parse_args()

    try:
        config = resolve_run_config(args.config)
    except ConfigValidationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    serve(
        functools.partial(run_extraction, config=config),
        host=args.host,
        port=args.port,
        secret=WEBHOOK_SECRET,
    )


if __name__ == "__main__":
    main()
