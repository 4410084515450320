"""
EvaluationService: server-side intake of speaker evaluations.

Every rule the client form checks is re-checked here; the client copy is a
convenience only. Depends only on ports.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from domain.models import Evaluation, ScoredEvaluationInput, TaggedEvaluationInput
from ports.evaluation_store import EvaluationStorePort
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import EvaluationShape, LogScope
from shared_utils.error_handler import NotFoundError, ValidationError
from shared_utils.logging_utils import ContextualLogger, log_execution
from shared_utils.validation import parse_model


logger = ContextualLogger(scope=LogScope.EVALUATIONS)

_INPUT_MODELS = {
    EvaluationShape.TAGGED: TaggedEvaluationInput,
    EvaluationShape.SCORED: ScoredEvaluationInput,
}

EMPTY_TAGS_MESSAGE = "Please select at least one feedback item"


class EvaluationService:
    """Validates and stores evaluations of the active shape."""

    def __init__(
        self,
        *,
        evaluation_store: EvaluationStorePort,
        meeting_store: MeetingStorePort,
        active_shape: str = EvaluationShape.TAGGED.value,
    ) -> None:
        self._store = evaluation_store
        self._meetings = meeting_store
        self._active_shape = EvaluationShape(active_shape)

    @property
    def active_shape(self) -> EvaluationShape:
        return self._active_shape

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @log_execution(scope=LogScope.EVALUATIONS)
    def submit(self, payload: Dict[str, Any]) -> Evaluation:
        """Validate a raw submission and persist it.

        Args:
            payload: Request body. ``shape`` defaults to the active shape.

        Returns:
            The stored Evaluation (server-assigned id and created_at).

        Raises:
            ValidationError: Bad identity fields, empty tag selection, score
                out of range or an inactive shape.
            NotFoundError: If ``meeting_id`` does not reference a meeting.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        payload = dict(payload)
        if payload.get("shape") in (None, ""):
            payload["shape"] = self._active_shape.value

        if payload["shape"] != self._active_shape.value:
            logger.warning(
                "evaluation_shape_rejected",
                submitted=str(payload["shape"]),
                active=self._active_shape.value,
            )
            raise ValidationError(
                f"Evaluations must use the '{self._active_shape.value}' shape",
                context={"shape": payload["shape"]},
            )

        data = parse_model(_INPUT_MODELS[self._active_shape], payload)

        if isinstance(data, TaggedEvaluationInput) and data.tag_count() == 0:
            raise ValidationError(EMPTY_TAGS_MESSAGE)

        if self._meetings.get_meeting(data.meeting_id) is None:
            raise NotFoundError("Meeting", data.meeting_id)

        evaluation = self._store.create_evaluation(data)
        logger.info(
            "evaluation_submitted",
            evaluation_id=evaluation.id,
            meeting_id=evaluation.meeting_id,
            shape=evaluation.shape.value,
        )
        return evaluation

    def list_evaluations(
        self,
        meeting_id: Optional[int] = None,
        speaker_name: Optional[str] = None,
    ) -> List[Evaluation]:
        """All evaluations (meeting joined), one meeting's, or one speaker's."""
        if meeting_id is None:
            if speaker_name:
                raise ValidationError("speaker_name requires meeting_id")
            return self._store.list_all()
        if speaker_name:
            return self._store.list_by_speaker(meeting_id, speaker_name)
        return self._store.list_by_meeting(meeting_id)
