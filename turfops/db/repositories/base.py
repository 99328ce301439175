"""
Shared plumbing for the SQLite repositories.

Repositories wrap a caller-owned ``sqlite3.Connection`` (see
``db.connection.get_connection``), hold hand-written SQL, and hand back
pydantic models.  They never commit; the connection context does.

Instants are stored as text in one fixed-width UTC layout
(``2025-03-10T12:00:00.000000+00:00``) so that ``WHERE timestamp >= ?``
compares chronologically.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Params = Union[Sequence[Any], Mapping[str, Any]]

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def to_db_timestamp(instant: datetime) -> str:
    """Encode an aware datetime in the stored UTC text layout."""
    return instant.astimezone(timezone.utc).strftime(_TS_FORMAT)


def from_db_timestamp(text: str) -> datetime:
    return datetime.fromisoformat(text).astimezone(timezone.utc)


class BaseRepository:
    """Thin SQL helpers shared by every repository.

    Attributes:
        conn: Open connection, owned by the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("%s: %s %s", type(self).__name__, " ".join(sql.split()), params)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, rows: Iterable[Params]) -> sqlite3.Cursor:
        rows = list(rows)
        logger.debug("%s: %s x%d", type(self).__name__, " ".join(sql.split()), len(rows))
        return self.conn.executemany(sql, rows)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def insert_returning_id(self, sql: str, params: Params = ()) -> int:
        """Run an INSERT and return the new row's id."""
        cursor = self.execute(sql, params)
        if cursor.lastrowid is None:
            raise sqlite3.DatabaseError("INSERT did not produce a row id.")
        return int(cursor.lastrowid)
