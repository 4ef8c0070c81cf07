"""Database session management for the durable upload queue.

This module provides the DatabaseSessionManager class, which owns the SQLite
connection used by the queue repository. It handles:
- Connection management with SQLite (WAL journal)
- Serialised writes from the event loop
- Async operation wrappers with timeout and retry logic
- Table creation and integrity checks
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee

from retrophoto.db.models import ALL_MODELS, database_proxy

DB_OPERATION_TIMEOUT = 30.0
DB_MAX_RETRIES = 3


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Attributes:
        path: Path to the SQLite database file
        operation_timeout: Default timeout for database operations in seconds
        max_retries: Maximum retries when SQLite reports the database locked or busy
    """

    path: str
    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)
    max_retries: int = field(default=DB_MAX_RETRIES)
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _write_lock: asyncio.Lock = field(init=False)

    def __post_init__(self) -> None:
        if self.path == ":memory:":
            # Every operation opens its own connection, so an in-memory
            # database would be empty on the next call.
            msg = "The upload queue needs a file-backed SQLite database"
            raise ValueError(msg)
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = peewee.SqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "busy_timeout": 5000,
            },
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)
        self._write_lock = asyncio.Lock()

    @property
    def database(self) -> peewee.SqliteDatabase:
        """Access the underlying Peewee database instance."""
        return self._database

    def connection_context(self) -> Any:
        """Return a connection context manager."""
        return self._database.connection_context()

    def migrate(self) -> None:
        """Create tables if they do not exist yet."""
        with self._database.connection_context(), self._database.bind_ctx(ALL_MODELS):
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def check_integrity(self) -> tuple[bool, str]:
        """Run ``PRAGMA quick_check`` and report the result."""
        with self._database.connection_context():
            row = self._database.execute_sql("PRAGMA quick_check").fetchone()
        result = str(row[0]) if row else "unknown"
        return result == "ok", result

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    async def _safe_db_operation(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute a database operation with timeout, retry, and write serialisation.

        Args:
            operation: The blocking database callable to execute
            *args: Positional arguments for the operation
            timeout: Timeout in seconds (default: self.operation_timeout)
            operation_name: Name for logging purposes
            read_only: Read operations skip the write lock (WAL allows concurrent readers)
            **kwargs: Keyword arguments for the operation

        Returns:
            Result of the operation

        Raises:
            TimeoutError: If the operation times out
            peewee.OperationalError: If the database stays locked or busy after retries
            peewee.IntegrityError: If a constraint is violated
        """
        if timeout is None:
            timeout = self.operation_timeout

        retries = 0
        while True:
            try:

                async def _run() -> Any:
                    def _op_wrapper() -> Any:
                        with self._database.connection_context():
                            return operation(*args, **kwargs)

                    if read_only:
                        return await asyncio.to_thread(_op_wrapper)

                    async with self._write_lock:
                        return await asyncio.to_thread(_op_wrapper)

                return await asyncio.wait_for(_run(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    "db_operation_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)
                    self._logger.warning(
                        "db_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    "db_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

            except peewee.IntegrityError as e:
                self._logger.exception(
                    "db_integrity_error",
                    extra={"operation": operation_name, "error": str(e)},
                )
                raise

    async def _safe_db_transaction(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_transaction",
        **kwargs: Any,
    ) -> Any:
        """Execute an operation inside ``atomic()`` so it commits or rolls back as a unit."""

        def _execute_in_transaction() -> Any:
            with self._database.atomic():
                return operation(*args, **kwargs)

        return await self._safe_db_operation(
            _execute_in_transaction,
            timeout=timeout,
            operation_name=operation_name,
        )

    @staticmethod
    def _mask_path(path: str) -> str:
        try:
            p = Path(path)
            parent = p.parent.name
            return f".../{parent}/{p.name}" if parent else p.name
        except Exception:
            return "..."
