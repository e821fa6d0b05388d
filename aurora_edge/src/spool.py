"""
Durable store for the pending PVOutput report, backed by async SQLite.

Holds at most one pending daily-energy reading (with the generation token
that set it) and the epoch of the last confirmed delivery, so a restarted
daemon resumes delivery from the most recent consistent state instead of
waiting for the next energy cycle.

Operations:
- save_pending(generation, reading): Upsert the single pending row.
- load_pending(): Return ``(generation, reading)`` or ``None``.
- clear_pending(): Delete the pending row.
- save_last_sent(epoch) / load_last_sent(): Last confirmed delivery.
- close(): Close the underlying database connection.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-16: Replace the FIFO sample spool with single-row pending report storage

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from aurora_edge.src.models import DailyEnergyReading

_CREATE_PENDING_SQL = """\
CREATE TABLE IF NOT EXISTS pending_report (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    generation INTEGER NOT NULL,
    energy_wh INTEGER NOT NULL,
    read_ts INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_DELIVERY_SQL = """\
CREATE TABLE IF NOT EXISTS delivery_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_sent INTEGER NOT NULL
);
"""

_UPSERT_PENDING_SQL = """\
INSERT OR REPLACE INTO pending_report (id, generation, energy_wh, read_ts)
VALUES (1, ?, ?, ?);
"""

_SELECT_PENDING_SQL = "SELECT generation, energy_wh, read_ts FROM pending_report WHERE id = 1;"

_DELETE_PENDING_SQL = "DELETE FROM pending_report WHERE id = 1;"

_UPSERT_LAST_SENT_SQL = "INSERT OR REPLACE INTO delivery_state (id, last_sent) VALUES (1, ?);"

_SELECT_LAST_SENT_SQL = "SELECT last_sent FROM delivery_state WHERE id = 1;"


class ReportSpool:
    """Single-row pending report store backed by a SQLite database.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.

    Usage::

        async with ReportSpool(path="/data/pending.db") as spool:
            await spool.save_pending(3, reading)
            restored = await spool.load_pending()
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the SQLite connection and initialize the schema (WAL mode)."""
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_PENDING_SQL)
        await self._db.execute(_CREATE_DELIVERY_SQL)
        await self._db.commit()

    async def close(self) -> None:
        """Close the underlying SQLite connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> ReportSpool:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save_pending(self, generation: int, reading: DailyEnergyReading) -> None:
        """Store *reading* as the pending report, replacing any older one."""
        assert self._db is not None, "Spool not opened. Call open() or use async with."
        await self._db.execute(
            _UPSERT_PENDING_SQL, (generation, reading.energy_wh, reading.read_ts)
        )
        await self._db.commit()

    async def load_pending(self) -> tuple[int, DailyEnergyReading] | None:
        """Return the stored ``(generation, reading)``, or ``None``."""
        assert self._db is not None, "Spool not opened. Call open() or use async with."
        cursor = await self._db.execute(_SELECT_PENDING_SQL)
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0], DailyEnergyReading(energy_wh=row[1], read_ts=row[2])

    async def clear_pending(self) -> None:
        """Delete the pending report. No-op when there is none."""
        assert self._db is not None, "Spool not opened. Call open() or use async with."
        await self._db.execute(_DELETE_PENDING_SQL)
        await self._db.commit()

    async def save_last_sent(self, epoch: int) -> None:
        assert self._db is not None, "Spool not opened. Call open() or use async with."
        await self._db.execute(_UPSERT_LAST_SENT_SQL, (epoch,))
        await self._db.commit()

    async def load_last_sent(self) -> int:
        """Return the epoch of the last confirmed delivery, 0 if never sent."""
        assert self._db is not None, "Spool not opened. Call open() or use async with."
        cursor = await self._db.execute(_SELECT_LAST_SENT_SQL)
        row = await cursor.fetchone()
        return row[0] if row is not None else 0
