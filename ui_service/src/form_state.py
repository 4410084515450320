"""
Evaluation form state for the Streamlit client.

Streamlit reruns the script on every interaction, so the form keeps its state
in one explicit object stored in ``st.session_state``:

    editing -> submitting -> submitted | failed
    failed  -> editing      (entered data and error message kept)
    submitted -> editing    (reset: fields cleared)

Validation here only spares the user a round trip; the API re-checks every
rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from domain.models import SCORE_FIELDS
from domain.tag_picker import TagBuckets, toggle
from shared_utils.constants import APIEndpoints, EvaluationShape, FeedbackBucket, LogScope, SpeechType
from shared_utils.logging_utils import ContextualLogger
from shared_utils.validation import InputValidator


logger = ContextualLogger(scope=LogScope.UI)

MSG_EVALUATOR_REQUIRED = "Please enter your name"
MSG_SPEAKER_REQUIRED = "Please enter the speaker name"
MSG_TAGS_REQUIRED = "Please select at least one feedback item"
MSG_SCORES_REQUIRED = "Please rate all five categories"
MSG_SUBMISSION_FAILED = "Submission failed"


class FormStatus(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


def _empty_scores() -> Dict[str, int]:
    # 0 means "not rated yet"
    return {name: 0 for name in SCORE_FIELDS}


@dataclass
class EvaluationFormState:
    """Everything the evaluation form shows, plus its submission status."""

    meeting_id: Optional[int] = None
    shape: EvaluationShape = EvaluationShape.TAGGED
    evaluator_name: str = ""
    speaker_name: str = ""
    speech_type: SpeechType = SpeechType.PREPARED
    tags: TagBuckets = field(default_factory=TagBuckets)
    scores: Dict[str, int] = field(default_factory=_empty_scores)
    strengths: str = ""
    improvements: str = ""
    comments: str = ""
    status: FormStatus = FormStatus.EDITING
    error: Optional[str] = None

    # ------------------------------------------------------------------
    # Field updates
    # ------------------------------------------------------------------

    def toggle_tag(self, item: str, bucket: FeedbackBucket) -> None:
        self.tags = toggle(self.tags, item, bucket)

    def set_score(self, name: str, value: int) -> None:
        if name not in self.scores:
            raise KeyError(name)
        # 0 clears the rating
        self.scores[name] = 0 if value == 0 else InputValidator.validate_score(value, name)

    # ------------------------------------------------------------------
    # Validation & transitions
    # ------------------------------------------------------------------

    def validate(self) -> Optional[str]:
        """First failing client-side check, or None when submittable."""
        if not self.evaluator_name.strip():
            return MSG_EVALUATOR_REQUIRED
        if not self.speaker_name.strip():
            return MSG_SPEAKER_REQUIRED
        if self.shape == EvaluationShape.TAGGED:
            if self.tags.is_empty():
                return MSG_TAGS_REQUIRED
        elif any(not value for value in self.scores.values()):
            return MSG_SCORES_REQUIRED
        return None

    @property
    def can_submit(self) -> bool:
        return self.status in (FormStatus.EDITING, FormStatus.FAILED)

    def begin_submit(self) -> bool:
        """Enter ``submitting``; False when blocked (in flight or invalid)."""
        if not self.can_submit:
            logger.debug("evaluation_submit_ignored", status=self.status.value)
            return False
        message = self.validate()
        if message is not None:
            self.error = message
            return False
        self.status = FormStatus.SUBMITTING
        self.error = None
        return True

    def mark_submitted(self) -> None:
        self.status = FormStatus.SUBMITTED
        self.error = None

    def mark_failed(self, message: str) -> None:
        self.status = FormStatus.FAILED
        self.error = message

    def edit(self) -> None:
        """Back to editing after a failure; data and message are kept."""
        if self.status == FormStatus.FAILED:
            self.status = FormStatus.EDITING

    def reset(self) -> None:
        """Start a fresh evaluation for the same meeting."""
        self.evaluator_name = ""
        self.speaker_name = ""
        self.speech_type = SpeechType.PREPARED
        self.tags = TagBuckets()
        self.scores = _empty_scores()
        self.strengths = ""
        self.improvements = ""
        self.comments = ""
        self.status = FormStatus.EDITING
        self.error = None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "meeting_id": self.meeting_id,
            "shape": self.shape.value,
            "evaluator_name": self.evaluator_name.strip(),
            "speaker_name": self.speaker_name.strip(),
            "speech_type": self.speech_type.value,
            "comments": self.comments.strip(),
        }
        if self.shape == EvaluationShape.TAGGED:
            payload.update(self.tags.as_payload())
        else:
            payload.update(self.scores)
            payload["strengths"] = self.strengths.strip()
            payload["improvements"] = self.improvements.strip()
        return payload

    def submit(self, client: httpx.Client, meeting_id: Optional[int] = None) -> bool:
        """POST the evaluation; True once the server stored it.

        Args:
            client: Client whose ``base_url`` points at the API.
            meeting_id: Overrides the stored meeting id when given.
        """
        if meeting_id is not None:
            self.meeting_id = meeting_id
        if not self.begin_submit():
            return False

        try:
            resp = client.post(APIEndpoints.EVALUATIONS, json=self.to_payload())
        except httpx.HTTPError as e:
            logger.error("evaluation_submit_connection_failed", error=str(e))
            self.mark_failed(MSG_SUBMISSION_FAILED)
            return False

        if resp.status_code == 201:
            logger.info("evaluation_submitted", meeting_id=self.meeting_id)
            self.mark_submitted()
            return True

        message = MSG_SUBMISSION_FAILED
        if "json" in resp.headers.get("content-type", ""):
            body = resp.json()
            if isinstance(body, dict) and body.get("error"):
                message = body["error"]
        logger.warning("evaluation_submit_rejected", status=resp.status_code, error=message)
        self.mark_failed(message)
        return False
