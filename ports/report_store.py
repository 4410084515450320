"""
Port interface for functionary report storage.

One logical table per ``ReportKind``; list-valued fields are stored as JSON
documents and filtered on read.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from domain.models import Report
from shared_utils.constants import ReportKind


@runtime_checkable
class ReportStorePort(Protocol):
    """Abstract interface for report CRUD operations."""

    def create_report(self, kind: ReportKind, meeting_id: int, fields: Dict[str, Any]) -> Report:
        """Insert a report of ``kind`` and return the persisted row.

        Args:
            kind: Report kind (selects the table).
            meeting_id: Parent meeting.
            fields: Validated scalar fields plus raw entry lists.
        """
        ...

    def update_report(self, kind: ReportKind, report_id: int, fields: Dict[str, Any]) -> Optional[Report]:
        """Replace all fields of a report; None when the id does not exist."""
        ...

    def delete_report(self, kind: ReportKind, report_id: int) -> bool:
        """Delete a report; False when the id does not exist."""
        ...

    def list_reports(self, kind: ReportKind, meeting_id: int) -> List[Report]:
        """Reports of one kind for a meeting, newest first."""
        ...
