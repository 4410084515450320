"""
SQL-backed functionary report store adapter.

One table per ``ReportKind``. Entry lists are written as received (they must
already be lists) and filtered through the strict entry models on every read,
so a read-back returns exactly the valid subset, in order.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from adapters.sql_schema import (
    AhUmReportRow,
    Base,
    GeneralEvaluatorReportRow,
    GrammarianReportRow,
    TimerReportRow,
    utc_now,
)
from domain.models import (
    AhUmEntry,
    AhUmReport,
    EvaluatorFeedback,
    FunctionaryFeedback,
    GeneralEvaluatorReport,
    GrammarEntry,
    GrammarianReport,
    Report,
    TimerEntry,
    TimerReport,
)
from domain.report_entries import parse_entries
from shared_utils.constants import LogScope, ReportKind
from shared_utils.error_handler import StorageError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


@dataclass(frozen=True)
class ReportTable:
    """How one report kind maps onto its table."""

    row: Type[Base]
    model: Type[BaseModel]
    text_fields: Tuple[str, ...] = ()
    # domain field -> strict entry model; stored in ``<field>_json``
    entry_fields: Dict[str, Type[BaseModel]] = field(default_factory=dict)


REPORT_TABLES: Dict[ReportKind, ReportTable] = {
    ReportKind.AH_UM: ReportTable(
        row=AhUmReportRow,
        model=AhUmReport,
        entry_fields={"entries": AhUmEntry},
    ),
    ReportKind.GRAMMARIAN: ReportTable(
        row=GrammarianReportRow,
        model=GrammarianReport,
        text_fields=("word_of_day", "word_of_day_definition"),
        entry_fields={"entries": GrammarEntry},
    ),
    ReportKind.TIMER: ReportTable(
        row=TimerReportRow,
        model=TimerReport,
        text_fields=("meeting_start", "meeting_end"),
        entry_fields={"entries": TimerEntry},
    ),
    ReportKind.GENERAL_EVALUATOR: ReportTable(
        row=GeneralEvaluatorReportRow,
        model=GeneralEvaluatorReport,
        text_fields=("meeting_highlights", "meeting_improvements", "overall_comments"),
        entry_fields={
            "evaluator_feedbacks": EvaluatorFeedback,
            "functionary_feedbacks": FunctionaryFeedback,
        },
    ),
}


class SqlReportStoreAdapter:
    """Relational implementation of ReportStorePort."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # ReportStorePort implementation
    # ------------------------------------------------------------------

    def create_report(self, kind: ReportKind, meeting_id: int, fields: Dict[str, Any]) -> Report:
        table = REPORT_TABLES[kind]
        row = table.row(meeting_id=meeting_id)
        self._apply_fields(table, row, fields)
        try:
            with self._session_factory() as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("sql_create_report", kind=kind.value, report_id=row.id, meeting_id=meeting_id)
                return self._to_report(table, row)
        except SQLAlchemyError as exc:
            logger.error("sql_create_report_failed", kind=kind.value, meeting_id=meeting_id, error=str(exc))
            raise StorageError(context={"operation": "create_report", "kind": kind.value}) from exc

    def update_report(self, kind: ReportKind, report_id: int, fields: Dict[str, Any]) -> Optional[Report]:
        table = REPORT_TABLES[kind]
        try:
            with self._session_factory() as session:
                row = session.get(table.row, report_id)
                if row is None:
                    return None
                self._apply_fields(table, row, fields)
                row.updated_at = utc_now()
                session.commit()
                session.refresh(row)
                logger.info("sql_update_report", kind=kind.value, report_id=report_id)
                return self._to_report(table, row)
        except SQLAlchemyError as exc:
            logger.error("sql_update_report_failed", kind=kind.value, report_id=report_id, error=str(exc))
            raise StorageError(context={"operation": "update_report", "kind": kind.value}) from exc

    def delete_report(self, kind: ReportKind, report_id: int) -> bool:
        table = REPORT_TABLES[kind]
        try:
            with self._session_factory() as session:
                row = session.get(table.row, report_id)
                if row is None:
                    return False
                session.delete(row)
                session.commit()
                logger.info("sql_delete_report", kind=kind.value, report_id=report_id)
                return True
        except SQLAlchemyError as exc:
            logger.error("sql_delete_report_failed", kind=kind.value, report_id=report_id, error=str(exc))
            raise StorageError(context={"operation": "delete_report", "kind": kind.value}) from exc

    def list_reports(self, kind: ReportKind, meeting_id: int) -> List[Report]:
        table = REPORT_TABLES[kind]
        stmt = (
            select(table.row)
            .where(table.row.meeting_id == meeting_id)
            .order_by(table.row.created_at.desc(), table.row.id.desc())
        )
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                logger.debug("sql_list_reports", kind=kind.value, meeting_id=meeting_id, results=len(rows))
                return [self._to_report(table, row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("sql_list_reports_failed", kind=kind.value, meeting_id=meeting_id, error=str(exc))
            raise StorageError(context={"operation": "list_reports", "kind": kind.value}) from exc

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_fields(table: ReportTable, row: Any, fields: Dict[str, Any]) -> None:
        """Full replace: fields absent from ``fields`` fall back to empty values."""
        row.reporter_name = fields["reporter_name"]
        for name in table.text_fields:
            setattr(row, name, fields.get(name) or "")
        for name in table.entry_fields:
            setattr(row, f"{name}_json", json.dumps(list(fields.get(name) or [])))

    @staticmethod
    def _to_report(table: ReportTable, row: Any) -> Report:
        data: Dict[str, Any] = {
            "id": row.id,
            "meeting_id": row.meeting_id,
            "reporter_name": row.reporter_name,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
        for name in table.text_fields:
            data[name] = getattr(row, name) or ""
        for name, entry_model in table.entry_fields.items():
            data[name] = parse_entries(getattr(row, f"{name}_json"), entry_model)
        return table.model(**data)
