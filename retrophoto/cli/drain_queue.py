"""Run one drain cycle of the offline upload queue.

Usage:
    python -m retrophoto.cli.drain_queue
    python -m retrophoto.cli.drain_queue --db-path /data/queue.db --tag upload-queue

Exit status is 0 when the cycle succeeded and 1 when retryable failures
remain, so a scheduler (cron, systemd timer) can retry later.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from retrophoto.config import AppConfig, load_config
from retrophoto.core.logging_utils import setup_json_logging
from retrophoto.di.container import Container
from retrophoto.domain.models.drain import DrainResult

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Deliver queued photo uploads to the restore API",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        help="Override the configured SQLite queue path for this run.",
    )
    parser.add_argument(
        "--tag",
        help="Sync tag to signal (defaults to the configured upload tag).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level for this run.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the drain result as JSON.",
    )
    return parser.parse_args(argv)


def _prepare_config(args: argparse.Namespace) -> AppConfig:
    runtime: dict[str, Any] = {}
    if args.db_path:
        runtime["db_path"] = str(args.db_path)
    if args.log_level:
        runtime["log_level"] = args.log_level
    return load_config(runtime=runtime) if runtime else load_config()


async def run_drain(args: argparse.Namespace, container: Container | None = None) -> DrainResult:
    """Open the queue, run one cycle, and release resources."""
    if container is None:
        config = _prepare_config(args)
        setup_json_logging(
            config.runtime.log_level,
            use_loguru=config.runtime.log_format == "loguru",
            log_file=config.runtime.log_file,
        )
        container = Container(config)

    await container.startup()
    try:
        tag = args.tag or container.config.upload_queue.sync_tag
        return await container.sync_coordinator().on_sync_signal(tag)
    finally:
        await container.shutdown()


def main(argv: list[str] | None = None, container: Container | None = None) -> int:
    """Entry point for ``python -m retrophoto.cli.drain_queue``."""
    args = parse_args(argv)
    try:
        result = asyncio.run(run_drain(args, container))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return 1
    except Exception as exc:
        logger.exception("cli_drain_failed", exc_info=exc)
        return 1

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
