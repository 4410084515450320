"""
ReportService: functionary report intake and the per-meeting fan-out read.

``get_all_reports`` issues the four per-kind queries concurrently. A failed
leg is never replaced by an empty list: the caller gets a PartialFetchError
naming every kind that failed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from domain.models import REPORT_INPUT_MODELS, MeetingReports, Report
from ports.meeting_store import MeetingStorePort
from ports.report_store import ReportStorePort
from shared_utils.constants import LogScope, ReportKind
from shared_utils.error_handler import NotFoundError, PartialFetchError, ValidationError
from shared_utils.logging_utils import ContextualLogger, LogLevel, log_execution
from shared_utils.validation import parse_model


logger = ContextualLogger(scope=LogScope.REPORTS)

_VALID_KINDS = ", ".join(k.value for k in ReportKind)


def resolve_kind(value: Any) -> ReportKind:
    """``ah_um`` / ``ah-um`` → ReportKind, ValidationError otherwise."""
    if isinstance(value, ReportKind):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Report type is required (one of: {_VALID_KINDS})")
    try:
        return ReportKind.from_slug(value)
    except ValueError:
        raise ValidationError(
            f"Unknown report type: {value} (expected one of: {_VALID_KINDS})",
            context={"type": value},
        )


class ReportService:
    """Create, replace, delete and list functionary reports."""

    def __init__(
        self,
        *,
        report_store: ReportStorePort,
        meeting_store: MeetingStorePort,
    ) -> None:
        self._store = report_store
        self._meetings = meeting_store

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @log_execution(scope=LogScope.REPORTS)
    def create_report(self, meeting_id: int, payload: Dict[str, Any]) -> Report:
        """Create a report; the kind comes from ``payload["type"]``.

        Raises:
            ValidationError: Unknown type or invalid fields.
            NotFoundError: If the meeting does not exist.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        kind = resolve_kind(payload.get("type"))
        fields = self._validate_fields(kind, payload)

        if self._meetings.get_meeting(meeting_id) is None:
            raise NotFoundError("Meeting", meeting_id)

        report = self._store.create_report(kind, meeting_id, fields)
        logger.info("report_created", kind=kind.value, report_id=report.id, meeting_id=meeting_id)
        return report

    @log_execution(scope=LogScope.REPORTS)
    def update_report(self, kind: Any, report_id: int, payload: Dict[str, Any]) -> Report:
        """Replace every field of an existing report.

        Raises:
            NotFoundError: If no report of ``kind`` has ``report_id``.
        """
        kind = resolve_kind(kind)
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        fields = self._validate_fields(kind, payload)

        report = self._store.update_report(kind, report_id, fields)
        if report is None:
            raise NotFoundError("Report", report_id, context={"kind": kind.value})
        logger.info("report_updated", kind=kind.value, report_id=report_id)
        return report

    @log_execution(scope=LogScope.REPORTS)
    def delete_report(self, kind: Any, report_id: int) -> None:
        kind = resolve_kind(kind)
        if not self._store.delete_report(kind, report_id):
            raise NotFoundError("Report", report_id, context={"kind": kind.value})
        logger.info("report_deleted", kind=kind.value, report_id=report_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_reports(self, kind: Any, meeting_id: int) -> List[Report]:
        return self._store.list_reports(resolve_kind(kind), meeting_id)

    @log_execution(scope=LogScope.REPORTS, level=LogLevel.DEBUG.value)
    async def get_all_reports(self, meeting_id: int) -> MeetingReports:
        """Fetch all four report kinds for a meeting concurrently.

        Raises:
            PartialFetchError: If any of the four queries failed.
        """
        kinds = list(ReportKind)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.list_reports, kind, meeting_id) for kind in kinds),
            return_exceptions=True,
        )

        log = logger.bind(meeting_id=meeting_id)
        failed = []
        for kind, result in zip(kinds, results):
            if isinstance(result, BaseException):
                log.error(
                    "report_fetch_failed",
                    kind=kind.value,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                failed.append(kind.value)

        if failed:
            raise PartialFetchError(failed, context={"meeting_id": meeting_id})

        by_kind = dict(zip(kinds, results))
        log.debug(
            "reports_fetched",
            counts={kind.value: len(rows) for kind, rows in by_kind.items()},
        )
        return MeetingReports(
            ah_um=by_kind[ReportKind.AH_UM],
            grammarian=by_kind[ReportKind.GRAMMARIAN],
            timer=by_kind[ReportKind.TIMER],
            general_evaluator=by_kind[ReportKind.GENERAL_EVALUATOR],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_fields(kind: ReportKind, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = {k: v for k, v in payload.items() if k not in ("type", "id", "meeting_id")}
        data = parse_model(REPORT_INPUT_MODELS[kind], body, context={"kind": kind.value})
        return data.model_dump()
