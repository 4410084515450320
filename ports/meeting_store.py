"""
Port interface for meeting storage.

Implementations: SqlMeetingStoreAdapter (adapters/)
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol, runtime_checkable

from domain.models import Meeting


@runtime_checkable
class MeetingStorePort(Protocol):
    """Abstract interface for meeting CRUD operations (no update/delete)."""

    def create_meeting(self, name: str, meeting_date: date) -> Meeting:
        """Insert a meeting and return the persisted row.

        Raises:
            StorageError: If the store is unreachable.
        """
        ...

    def get_meeting(self, meeting_id: int) -> Optional[Meeting]:
        """Retrieve a single meeting by ID.

        Returns:
            Meeting if found, None otherwise.
        """
        ...

    def list_meetings(self) -> List[Meeting]:
        """All meetings, newest date first."""
        ...

    def list_recent_meetings(self, since: date, limit: int) -> List[Meeting]:
        """Meetings dated on or after ``since``, newest first, capped at ``limit``."""
        ...
