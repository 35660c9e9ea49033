"""
The timezone store's single aiosqlite connection.

The bot keeps one connection open for its whole life. WAL journaling lets
the hourly DST sweep read while the command layer writes; writers queue on
a semaphore rather than on SQLite's busy timeout.

    await db_connection.open(path)

    async with db_connection.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with db_connection.transaction() as conn:
        await conn.execute("INSERT ...")   # committed on exit, rolled back on error

    await db_connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from timeyzoney.util.logger import get_logger

logger = get_logger("database_connection")

CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
)


class ConnectionManager:
    """Owns the connection shared by every repository."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._writer = asyncio.Semaphore(1)
        self.path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The open connection.

        Raises:
            RuntimeError: Before :meth:`open` or after :meth:`close`.
        """
        if self._conn is None:
            raise RuntimeError("Timezone store is not open; call open(path) at startup.")
        return self._conn

    async def open(self, path: Path) -> None:
        """Connect to ``path``, creating its directory, and apply the pragmas."""
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Already open on %s, ignoring open(%s)", self.path, path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        for pragma in CONNECTION_PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

        self._conn = conn
        self.path = path
        logger.info("[DB CONNECTION] Opened %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file and disconnect. Safe to repeat."""
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await conn.commit()
        except Exception:
            logger.exception("[DB CONNECTION] WAL checkpoint failed while closing %s", self.path)
        finally:
            await conn.close()
            logger.info("[DB CONNECTION] Closed %s", self.path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """One writer at a time; commit on success, roll back and re-raise on error."""
        conn = self.connection
        async with self._writer:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


# Connection used by the running bot
db_connection = ConnectionManager()
