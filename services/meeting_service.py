"""
MeetingService: the meeting registry.

Meetings are the root aggregate: created by an admin, immutable afterwards.
Depends only on ports; no framework imports.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, List, Optional, Tuple

from domain.models import Evaluation, Meeting, MeetingCreate
from ports.evaluation_store import EvaluationStorePort
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import NotFoundError
from shared_utils.logging_utils import get_scoped_logger, log_execution
from shared_utils.validation import InputValidator, parse_model, validate_input


logger = get_scoped_logger(LogScope.MEETINGS)


class MeetingService:
    """Create, look up and list meetings."""

    def __init__(
        self,
        *,
        meeting_store: MeetingStorePort,
        evaluation_store: EvaluationStorePort,
        recent_window_days: int = Defaults.RECENT_MEETING_WINDOW_DAYS,
        recent_limit: int = Defaults.RECENT_MEETING_LIMIT,
    ) -> None:
        self._meetings = meeting_store
        self._evaluations = evaluation_store
        self._recent_window_days = recent_window_days
        self._recent_limit = recent_limit

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @log_execution(scope=LogScope.MEETINGS)
    @validate_input({
        "name": lambda v: InputValidator.validate_non_empty_string(v, "name"),
        "date": lambda v: InputValidator.validate_iso_date(v, "date"),
    })
    def create_meeting(self, *, name: Any, date: Any) -> Meeting:
        """Register a meeting.

        Raises:
            ValidationError: If name/date are missing, name is too long or
                date is not ``YYYY-MM-DD``.
            StorageError: If the store rejects the insert.
        """
        data = parse_model(MeetingCreate, {"name": name, "date": date})
        meeting = self._meetings.create_meeting(data.name, data.date)
        logger.info("meeting_created", meeting_id=meeting.id, date=meeting.date.isoformat())
        return meeting

    def get_meeting(self, meeting_id: int) -> Meeting:
        """Raises NotFoundError when the meeting does not exist."""
        meeting = self._meetings.get_meeting(meeting_id)
        if meeting is None:
            logger.info("meeting_not_found", meeting_id=meeting_id)
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    def get_meeting_with_evaluations(self, meeting_id: int) -> Tuple[Meeting, List[Evaluation]]:
        meeting = self.get_meeting(meeting_id)
        return meeting, self._evaluations.list_by_meeting(meeting_id)

    def list_meetings(self) -> List[Meeting]:
        return self._meetings.list_meetings()

    def list_recent(self, today: Optional[date] = None) -> List[Meeting]:
        """Meetings dated within the recent window, newest first.

        The window reaches ``recent_window_days`` back from ``today`` and is
        capped at ``recent_limit`` rows.
        """
        today = today or date.today()
        since = today - timedelta(days=self._recent_window_days)
        meetings = self._meetings.list_recent_meetings(since, self._recent_limit)
        logger.debug("recent_meetings_listed", since=since.isoformat(), results=len(meetings))
        return meetings
