"""Port interface for speaker evaluation storage."""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from domain.models import Evaluation, EvaluationInput


@runtime_checkable
class EvaluationStorePort(Protocol):
    """Append-only store of evaluations (created, never updated)."""

    def create_evaluation(
        self,
        data: EvaluationInput,
    ) -> Evaluation:
        """Persist one already-validated evaluation and return the row."""
        ...

    def list_by_meeting(self, meeting_id: int) -> List[Evaluation]:
        """Evaluations of one meeting, newest first."""
        ...

    def list_by_speaker(self, meeting_id: int, speaker_name: str) -> List[Evaluation]:
        """Evaluations of one speaker (exact name match), newest first."""
        ...

    def list_all(self) -> List[Evaluation]:
        """Every evaluation with ``meeting_name``/``meeting_date`` joined."""
        ...
