"""
SQL-backed evaluation store adapter.

Tag lists are serialised to JSON text on write and decoded leniently on
read; score columns are NULL for tagged evaluations.
"""

from __future__ import annotations

import json
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from adapters.sql_schema import EvaluationRow, MeetingRow
from domain.models import (
    SCORE_FIELDS,
    Evaluation,
    ScoredEvaluationInput,
    TaggedEvaluationInput,
)
from domain.report_entries import parse_string_list
from shared_utils.constants import EvaluationShape, LogScope
from shared_utils.error_handler import StorageError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class SqlEvaluationStoreAdapter:
    """Relational implementation of EvaluationStorePort."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # EvaluationStorePort implementation
    # ------------------------------------------------------------------

    def create_evaluation(
        self,
        data: Union[TaggedEvaluationInput, ScoredEvaluationInput],
    ) -> Evaluation:
        row = self._to_row(data)
        try:
            with self._session_factory() as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info(
                    "sql_create_evaluation",
                    evaluation_id=row.id,
                    meeting_id=row.meeting_id,
                    shape=row.shape,
                )
                return self._to_evaluation(row)
        except SQLAlchemyError as exc:
            logger.error("sql_create_evaluation_failed", meeting_id=data.meeting_id, error=str(exc))
            raise StorageError(context={"operation": "create_evaluation"}) from exc

    def list_by_meeting(self, meeting_id: int) -> List[Evaluation]:
        stmt = (
            select(EvaluationRow)
            .where(EvaluationRow.meeting_id == meeting_id)
            .order_by(EvaluationRow.created_at.desc(), EvaluationRow.id.desc())
        )
        return self._list(stmt, "list_evaluations_by_meeting")

    def list_by_speaker(self, meeting_id: int, speaker_name: str) -> List[Evaluation]:
        stmt = (
            select(EvaluationRow)
            .where(
                EvaluationRow.meeting_id == meeting_id,
                EvaluationRow.speaker_name == speaker_name,
            )
            .order_by(EvaluationRow.created_at.desc(), EvaluationRow.id.desc())
        )
        return self._list(stmt, "list_evaluations_by_speaker")

    def list_all(self) -> List[Evaluation]:
        stmt = (
            select(EvaluationRow, MeetingRow)
            .join(MeetingRow, EvaluationRow.meeting_id == MeetingRow.id)
            .order_by(
                MeetingRow.date.desc(),
                EvaluationRow.created_at.desc(),
                EvaluationRow.id.desc(),
            )
        )
        try:
            with self._session_factory() as session:
                results = session.execute(stmt).all()
                logger.debug("sql_list_all_evaluations", results=len(results))
                return [self._to_evaluation(row, meeting) for row, meeting in results]
        except SQLAlchemyError as exc:
            logger.error("sql_list_all_evaluations_failed", error=str(exc))
            raise StorageError(context={"operation": "list_all_evaluations"}) from exc

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def _list(self, stmt, operation: str) -> List[Evaluation]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                logger.debug(f"sql_{operation}", results=len(rows))
                return [self._to_evaluation(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error(f"sql_{operation}_failed", error=str(exc))
            raise StorageError(context={"operation": operation}) from exc

    @staticmethod
    def _to_row(data: Union[TaggedEvaluationInput, ScoredEvaluationInput]) -> EvaluationRow:
        """Convert a validated input → ORM row (unused shape fields stay empty)."""
        row = EvaluationRow(
            meeting_id=data.meeting_id,
            shape=data.shape,
            evaluator_name=data.evaluator_name,
            speaker_name=data.speaker_name,
            speech_type=data.speech_type.value,
            comments=data.comments,
            commend_tags_json="[]",
            recommend_tags_json="[]",
            challenge_tags_json="[]",
            strengths="",
            improvements="",
        )
        if isinstance(data, TaggedEvaluationInput):
            row.commend_tags_json = json.dumps(data.commend_tags)
            row.recommend_tags_json = json.dumps(data.recommend_tags)
            row.challenge_tags_json = json.dumps(data.challenge_tags)
        else:
            for field in SCORE_FIELDS:
                setattr(row, field, getattr(data, field))
            row.strengths = data.strengths
            row.improvements = data.improvements
        return row

    @staticmethod
    def _to_evaluation(row: EvaluationRow, meeting: Optional[MeetingRow] = None) -> Evaluation:
        """Convert ORM row → domain Evaluation."""
        return Evaluation(
            id=row.id,
            meeting_id=row.meeting_id,
            shape=EvaluationShape(row.shape or EvaluationShape.TAGGED.value),
            evaluator_name=row.evaluator_name,
            speaker_name=row.speaker_name,
            speech_type=row.speech_type,
            commend_tags=parse_string_list(row.commend_tags_json),
            recommend_tags=parse_string_list(row.recommend_tags_json),
            challenge_tags=parse_string_list(row.challenge_tags_json),
            content_score=row.content_score,
            delivery_score=row.delivery_score,
            language_score=row.language_score,
            time_score=row.time_score,
            overall_score=row.overall_score,
            strengths=row.strengths or "",
            improvements=row.improvements or "",
            comments=row.comments or "",
            created_at=row.created_at,
            meeting_name=meeting.name if meeting is not None else None,
            meeting_date=meeting.date if meeting is not None else None,
        )
