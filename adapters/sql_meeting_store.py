"""
SQL-backed meeting store adapter.

Implements MeetingStorePort on top of a SQLAlchemy session factory.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from adapters.sql_schema import MeetingRow
from domain.models import Meeting
from shared_utils.constants import LogScope
from shared_utils.error_handler import StorageError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class SqlMeetingStoreAdapter:
    """Relational implementation of MeetingStorePort."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # MeetingStorePort implementation
    # ------------------------------------------------------------------

    def create_meeting(self, name: str, meeting_date: date) -> Meeting:
        try:
            with self._session_factory() as session:
                row = MeetingRow(name=name, date=meeting_date)
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("sql_create_meeting", meeting_id=row.id, date=meeting_date.isoformat())
                return self._to_meeting(row)
        except SQLAlchemyError as exc:
            logger.error("sql_create_meeting_failed", error=str(exc))
            raise StorageError(context={"operation": "create_meeting"}) from exc

    def get_meeting(self, meeting_id: int) -> Optional[Meeting]:
        try:
            with self._session_factory() as session:
                row = session.get(MeetingRow, meeting_id)
                return self._to_meeting(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("sql_get_meeting_failed", meeting_id=meeting_id, error=str(exc))
            raise StorageError(context={"operation": "get_meeting"}) from exc

    def list_meetings(self) -> List[Meeting]:
        stmt = select(MeetingRow).order_by(
            MeetingRow.date.desc(), MeetingRow.created_at.desc(), MeetingRow.id.desc()
        )
        return self._list(stmt, "list_meetings")

    def list_recent_meetings(self, since: date, limit: int) -> List[Meeting]:
        stmt = (
            select(MeetingRow)
            .where(MeetingRow.date >= since)
            .order_by(MeetingRow.date.desc(), MeetingRow.created_at.desc(), MeetingRow.id.desc())
            .limit(limit)
        )
        return self._list(stmt, "list_recent_meetings")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _list(self, stmt, operation: str) -> List[Meeting]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                logger.debug(f"sql_{operation}", results=len(rows))
                return [self._to_meeting(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error(f"sql_{operation}_failed", error=str(exc))
            raise StorageError(context={"operation": operation}) from exc

    @staticmethod
    def _to_meeting(row: MeetingRow) -> Meeting:
        return Meeting(id=row.id, name=row.name, date=row.date, created_at=row.created_at)
