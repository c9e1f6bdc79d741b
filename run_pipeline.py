#!/usr/bin/env python3
"""
Top-level orchestrator for business-logic extraction and drift tracking.

Runs one extraction over a source tree: extract functions and SQL blocks,
classify them, diff against the previous snapshot, render the markdown
documentation, persist the new snapshot and write the change report.

Usage:
    python run_pipeline.py --source-dir ../source-code --output-dir ./docs
    python run_pipeline.py --config run.yaml --commit 3f2a9c1 --no-assistant
    python run_pipeline.py --source-dir ./repo --ref refs/heads/main --use-assistant
"""

import argparse
import logging
import os
import sys
import time
from dataclasses import replace
from typing import Any, Dict, Optional

from classification.classifier import LogicClassifier
from classification.config import OPENROUTER_API_KEY
from classification.models import count_business_logic
from core.git_source import resolve_head_commit
from core.run_artifacts import summarize_counts, write_run_report
from core.run_config import ConfigValidationError, RunConfig, resolve_run_config
from core.structured_logging import configure_structured_logging, phase_scope, set_commit, set_run_id
from extraction.extractor import extract_directory
from rendering.change_report import CHANGE_REPORT_FILENAME, write_change_report
from rendering.markdown import MarkdownRenderer
from tracking.diff import compute_diff
from tracking.snapshot import create_snapshot
from tracking.store import SnapshotStore, SnapshotStoreError

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Business Logic Extraction & Drift Tracking Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_pipeline.py --source-dir ../source-code --output-dir ./docs\n"
            "  python run_pipeline.py --config run.yaml --commit 3f2a9c1 --no-assistant\n"
        )
    )

    parser.add_argument(
        "--source-dir",
        default=None,
        help="Path to the source tree to extract from. Default: SOURCE_CODE_PATH or ../source-code"
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the generated markdown. Default: OUTPUT_DIR or ./docs"
    )
    parser.add_argument(
        "--snapshot-dir",
        default=None,
        help="Directory holding latest.json and history/. Default: SNAPSHOT_DIR or ./.snapshots"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML file overlaying run configuration."
    )
    parser.add_argument("--ref", default=None, help="Git ref that triggered the run.")
    parser.add_argument("--commit", default=None, help="Source commit SHA. Default: git HEAD of --source-dir")
    parser.add_argument("--commit-message", default=None, help="Commit message, for the run report.")

    assistant = parser.add_mutually_exclusive_group()
    assistant.add_argument(
        "--use-assistant",
        dest="use_assistant",
        action="store_true",
        default=None,
        help="Consult the external assistant for entities the rules cannot decide."
    )
    assistant.add_argument(
        "--no-assistant",
        dest="use_assistant",
        action="store_false",
        help="Never consult the external assistant."
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Number of extraction worker threads. Default: EXTRACTION_MAX_WORKERS or 1"
    )
    parser.add_argument(
        "--strict-config",
        action="store_true",
        default=False,
        help="Fail on invalid configuration values instead of falling back to defaults."
    )

    return parser.parse_args()


def config_from_args(args: argparse.Namespace) -> RunConfig:
    """Resolve the run configuration and apply command-line flags on top."""
    config = resolve_run_config(args.config, strict=True if args.strict_config else None)
    overrides = {
        "source_code_path": args.source_dir,
        "output_dir": args.output_dir,
        "snapshot_dir": args.snapshot_dir,
        "max_workers": args.max_workers,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def run_extraction(
    ref: Optional[str] = None,
    commit: Optional[str] = None,
    commit_message: Optional[str] = None,
    use_assistant: Optional[bool] = None,
    config: Optional[RunConfig] = None,
    run_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Run one extraction and return its run report.

    Arguments that are not None override the matching ``config`` fields.

    Args:
        ref: Git ref that triggered the run.
        commit: Source commit; resolved from the source checkout when empty.
        commit_message: Commit message of the triggering change.
        use_assistant: Whether classification may consult the assistant.
        config: Resolved run configuration (defaults from the environment).
        run_id: Correlation ID for logs and the run report.

    Returns:
        The run report that was written to ``config.report_dir``.

    Raises:
        FileNotFoundError: If the source directory does not exist.
        SnapshotStoreError: If the snapshot store cannot be created or written.
    """
    run_id = set_run_id(run_id)
    config = config or resolve_run_config()
    overrides = {
        "ref": ref,
        "commit": commit or None,
        "commit_message": commit_message,
        "use_assistant": use_assistant,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    if not config.commit:
        config = replace(config, commit=resolve_head_commit(config.source_code_path))
    set_commit(config.commit)

    logger.info("Source directory : %s", os.path.abspath(config.source_code_path))
    logger.info("Output directory : %s", os.path.abspath(config.output_dir))
    logger.info("Ref / commit     : %s / %s", config.ref or "-", config.commit or "unknown")

    use_assistant = config.use_assistant
    if use_assistant and not OPENROUTER_API_KEY:
        logger.warning("Assistant classification requested but OPENROUTER_API_KEY is not set; disabling it")
        use_assistant = False

    t0 = time.time()

    with phase_scope("extract"):
        functions, sql_blocks, stats = extract_directory(
            config.source_code_path,
            max_workers=config.max_workers,
        )

    with phase_scope("classify"):
        classifier = LogicClassifier(use_assistant=use_assistant)
        classified_functions, classified_blocks = classifier.classify_all(functions, sql_blocks)
        business_logic = count_business_logic(classified_functions) + count_business_logic(classified_blocks)
        logger.info("Business logic entities: %d", business_logic)

    with phase_scope("diff"):
        store = SnapshotStore(config.snapshot_dir)
        previous = store.load_latest()
        current = create_snapshot(classified_functions, classified_blocks, commit=config.commit)
        diff = compute_diff(previous, current)
        logger.info("Changes since previous snapshot: %s", diff.summary())

    with phase_scope("render"):
        renderer = MarkdownRenderer(
            config.output_dir,
            source_repo_url=config.source_repo_url,
            source_ref=config.commit or "main",
        )
        written = renderer.render(classified_functions, classified_blocks, generated_at=current.timestamp)

    with phase_scope("save_snapshot"):
        snapshot_path = store.save(current)

    with phase_scope("change_report"):
        change_report_path = write_change_report(
            diff,
            os.path.join(config.output_dir, CHANGE_REPORT_FILENAME),
            generated_at=current.timestamp,
        )

    report: Dict[str, Any] = {
        "pipeline": "extraction",
        "status": "success",
        "ref": config.ref,
        "commit": config.commit,
        "commit_message": config.commit_message,
        "use_assistant": use_assistant,
        "extraction": stats.to_dict(),
        "counts": summarize_counts(len(classified_functions), len(classified_blocks), business_logic),
        "diff": diff.summary(),
        "snapshot_path": snapshot_path,
        "docs_written": len(written),
        "change_report": change_report_path,
        "duration_s": round(time.time() - t0, 3),
    }

    with phase_scope("run_report"):
        report_path = write_run_report(report, run_id, config.report_dir)
        logger.info("Run report written: %s", report_path)

    return report


def main() -> None:
    """Main entry point for the pipeline."""
    configure_structured_logging(level=logging.INFO)
    args = parse_args()
    run_id = set_run_id()

    logger.info("*" * 80)
    logger.info(" Business Logic Extraction & Drift Tracking Pipeline")
    logger.info("*" * 80)

    try:
        config = config_from_args(args)
    except ConfigValidationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    try:
        report = run_extraction(
            ref=args.ref,
            commit=args.commit,
            commit_message=args.commit_message,
            use_assistant=args.use_assistant,
            config=config,
            run_id=run_id,
        )
    except FileNotFoundError as e:
        logger.error("File error: %s", e)
        sys.exit(1)
    except SnapshotStoreError as e:
        logger.error("Snapshot store error: %s", e)
        write_run_report(
            {"pipeline": "extraction", "status": "failed", "error": str(e)},
            run_id,
            config.report_dir,
        )
        sys.exit(1)
    except Exception as e:
        logger.error("Pipeline failed: %s", e, exc_info=True)
        sys.exit(1)

    logger.info("*" * 80)
    logger.info(" Pipeline finished: %s", report["counts"])
    logger.info("*" * 80)


if __name__ == "__main__":
    main()
