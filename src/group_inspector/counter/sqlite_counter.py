"""
SQLite-backed RateCounter.

One long-lived aiosqlite connection, WAL journal, writes serialised with a
semaphore. Counters kept here survive a bot restart, which keeps duplicate
throttling honest across deploys.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Callable

import aiosqlite

from group_inspector.util.logger import get_logger

logger = get_logger("sqlite_counter")

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS rate_counters (
    counter_key TEXT PRIMARY KEY,
    count INTEGER NOT NULL,
    expires_at REAL NOT NULL
)
"""


class SqliteRateCounter:
    """RateCounter storing entries in a ``rate_counters`` table.

    Call ``open()`` before the first increment and ``close()`` on shutdown.
    Expiry timestamps use wall-clock seconds so they stay meaningful across
    restarts.
    """

    def __init__(self, path: Path, clock: Callable[[], float] = time.time) -> None:
        self._path = path
        self._clock = clock
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)

    async def open(self) -> None:
        if self._conn is not None:
            logger.warning("[COUNTER] open() called but connection already exists, ignoring")
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._path)
        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.execute(_SCHEMA)
        await self._conn.commit()
        logger.info("[COUNTER] Opened counter store at %s", self._path)

    async def close(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.commit()
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[COUNTER] Counter store closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("SqliteRateCounter.open() has not been called")
        return self._conn

    async def increment(self, key: str, window_ms: int) -> int:
        conn = self.connection
        async with self._write_sem:
            now = self._clock()
            async with conn.execute(
                "SELECT count, expires_at FROM rate_counters WHERE counter_key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()

            count = row[0] if row is not None and row[1] > now else 0
            count += 1
            try:
                await conn.execute(
                    "INSERT INTO rate_counters (counter_key, count, expires_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(counter_key) DO UPDATE SET count = excluded.count, expires_at = excluded.expires_at",
                    (key, count, now + window_ms / 1000.0),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
            logger.debug("[COUNTER] %s -> %d", key, count)
            return count

    async def purge_expired(self) -> int:
        """Delete expired rows and return how many went away."""
        conn = self.connection
        async with self._write_sem:
            cursor = await conn.execute("DELETE FROM rate_counters WHERE expires_at <= ?", (self._clock(),))
            await conn.commit()
            return cursor.rowcount
