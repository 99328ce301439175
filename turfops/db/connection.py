"""
Opening the TurfOps SQLite database.

``get_connection()`` is the only place a connection is created.  It yields a
connection with ``sqlite3.Row`` rows, foreign keys on, a busy timeout, and
optionally WAL journalling (so ``recommend`` can read while an import is
writing).  The block commits on normal exit and rolls back on any exception.

Usage::

    with get_connection(config.database.db_path) as conn:
        apply_schema(conn)
        ReadingRepository(conn).insert_many(readings)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


@contextmanager
def get_connection(
    db_path: Union[str, Path],
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Iterator[sqlite3.Connection]:
    """Yield a configured connection to ``db_path``.

    Args:
        db_path: Database file, created along with its parent directories if
            missing, or ``":memory:"``.
        wal_mode: Switch the file to write-ahead logging.  Ignored for
            in-memory databases.
        busy_timeout_ms: How long a statement waits on a locked database.

    Raises:
        sqlite3.OperationalError: If the file cannot be opened, or stays
            locked past the timeout.
    """
    target = str(db_path)
    in_memory = target == MEMORY
    if not in_memory:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(target, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    logger.debug("Opened database %s", target)
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and not in_memory:
            conn.execute("PRAGMA journal_mode = WAL;")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
