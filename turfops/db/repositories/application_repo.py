"""
Repository for the treatment application log.

Satisfies ``ApplicationHistoryProvider``: ``get(since)`` returns a tuple of
``Application`` models ordered by date.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from turfops.db.repositories.base import BaseRepository
from turfops.models.application import Application
from turfops.taxonomy.lawn_taxonomy import TreatmentCategory

logger = logging.getLogger(__name__)

_COLUMNS = "application_id, category, applied_at, amount, amount_note, notes"


class ApplicationRepository(BaseRepository):
    """Read/write access to the ``applications`` table."""

    def insert(self, application: Application) -> int:
        """Insert an application and return its auto-assigned ``application_id``."""
        application_id = self.insert_returning_id(
            """
            INSERT INTO applications (category, applied_at, amount, amount_note, notes)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                application.category.value,
                application.applied_at.isoformat(),
                application.amount,
                application.amount_note,
                application.notes,
            ),
        )
        logger.info(
            "Logged %s application on %s (id=%d)",
            application.category, application.applied_at, application_id,
        )
        return application_id

    def get(self, since: date) -> tuple[Application, ...]:
        """Return applications dated on or after ``since``, oldest first."""
        rows = self.fetchall(
            f"""
            SELECT {_COLUMNS} FROM applications
            WHERE applied_at >= ?
            ORDER BY applied_at, application_id;
            """,
            (since.isoformat(),),
        )
        return tuple(_row_to_application(row) for row in rows)

    def get_by_id(self, application_id: int) -> Optional[Application]:
        row = self.fetchone(
            f"SELECT {_COLUMNS} FROM applications WHERE application_id = ?;",
            (application_id,),
        )
        return _row_to_application(row) if row else None

    def list_recent(self, limit: int = 20) -> list[Application]:
        """Return the ``limit`` most recent applications, newest first."""
        rows = self.fetchall(
            f"""
            SELECT {_COLUMNS} FROM applications
            ORDER BY applied_at DESC, application_id DESC
            LIMIT ?;
            """,
            (limit,),
        )
        return [_row_to_application(row) for row in rows]

    def delete(self, application_id: int) -> bool:
        """Delete one application.  Returns ``True`` if a row was removed."""
        cursor = self.execute(
            "DELETE FROM applications WHERE application_id = ?;",
            (application_id,),
        )
        return cursor.rowcount > 0


def _row_to_application(row) -> Application:
    return Application(
        application_id=row["application_id"],
        category=TreatmentCategory(row["category"]),
        applied_at=date.fromisoformat(row["applied_at"]),
        amount=row["amount"],
        amount_note=row["amount_note"],
        notes=row["notes"],
    )
