"""Async SQLite connection helper.

Every store opens a short-lived ``aiosqlite`` connection per operation.
Local files run in WAL mode with a busy timeout so the cleanup job and
live requests can share the database without blocking each other for
long.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite

from aguwai.config import settings

if TYPE_CHECKING:
    from pathlib import Path

BUSY_TIMEOUT_MS = 5000


async def get_connection(path_override: Path | None = None) -> aiosqlite.Connection:
    """Return an open connection to the configured database.

    If *path_override* is given (test isolation), it takes priority over
    ``settings.database_path``. Transactions are managed explicitly by
    callers (``isolation_level=None``).
    """
    path = path_override or settings.database_path
    path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(path), isolation_level=None)
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    return db
