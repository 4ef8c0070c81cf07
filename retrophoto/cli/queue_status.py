"""Print per-status counts of the offline upload queue as JSON.

Usage:
    python -m retrophoto.cli.queue_status [--db-path PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from retrophoto.config import load_config
from retrophoto.db.session import DatabaseSessionManager
from retrophoto.infrastructure.persistence.sqlite.repositories.upload_queue_repository import (
    SqliteUploadQueueRepository,
)

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show upload queue counts", allow_abbrev=False)
    parser.add_argument("--db-path", type=Path, help="Override the configured SQLite queue path.")
    return parser.parse_args(argv)


async def collect_status(db_path: str) -> dict[str, Any]:
    config = load_config(runtime={"db_path": db_path})
    session = DatabaseSessionManager(
        path=config.runtime.db_path,
        operation_timeout=config.database.operation_timeout,
        max_retries=config.database.max_retries,
    )
    try:
        await asyncio.to_thread(session.migrate)
        repository = SqliteUploadQueueRepository(session, config.upload_queue)
        counts = await repository.stats()
        live = await repository.count_live()
    finally:
        session.close()
    return {
        "db_path": DatabaseSessionManager._mask_path(db_path),
        "counts": counts,
        "live": live,
        "retry_ceiling": config.upload_queue.retry_ceiling,
    }


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m retrophoto.cli.queue_status``."""
    args = parse_args(argv)
    db_path = str(args.db_path) if args.db_path else load_config().runtime.db_path
    try:
        status = asyncio.run(collect_status(db_path))
    except Exception as exc:
        logger.exception("cli_queue_status_failed", exc_info=exc)
        return 1
    print(json.dumps(status, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
