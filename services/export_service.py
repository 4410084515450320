"""
ExportService: admin summary, CSV download and mail report for a meeting.

Formatting lives in ``domain.export``; this service only loads the rows.
"""

from __future__ import annotations

from typing import List, Tuple

from domain.export import (
    build_mail_report,
    build_mailto_url,
    csv_filename,
    evaluations_to_csv,
    group_by_speaker,
    mail_subject,
)
from domain.models import MailReport, Meeting, SpeakerSummary
from ports.evaluation_store import EvaluationStorePort
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import LogScope
from shared_utils.error_handler import NotFoundError
from shared_utils.logging_utils import ContextualLogger, log_execution


logger = ContextualLogger(scope=LogScope.EXPORT)


class ExportService:
    def __init__(
        self,
        *,
        meeting_store: MeetingStorePort,
        evaluation_store: EvaluationStorePort,
    ) -> None:
        self._meetings = meeting_store
        self._evaluations = evaluation_store

    def _load(self, meeting_id: int):
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        return meeting, self._evaluations.list_by_meeting(meeting_id)

    def summarize(self, meeting_id: int) -> Tuple[Meeting, List[SpeakerSummary]]:
        meeting, evaluations = self._load(meeting_id)
        return meeting, group_by_speaker(evaluations)

    @log_execution(scope=LogScope.EXPORT)
    def export_csv(self, meeting_id: int) -> Tuple[str, str]:
        """Returns ``(filename, csv_text)``."""
        meeting, evaluations = self._load(meeting_id)
        logger.info("csv_exported", meeting_id=meeting_id, rows=len(evaluations))
        return csv_filename(meeting), evaluations_to_csv(evaluations)

    @log_execution(scope=LogScope.EXPORT)
    def mail_report(self, meeting_id: int, recipient: str = "") -> MailReport:
        """Plain-text report plus a ``mailto:`` link; nothing is sent."""
        meeting, evaluations = self._load(meeting_id)
        subject = mail_subject(meeting)
        body = build_mail_report(meeting, evaluations)
        return MailReport(
            subject=subject,
            body=body,
            mailto=build_mailto_url(subject, body, recipient.strip()),
        )
