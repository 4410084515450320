"""
Pure domain models for the Toastmasters feedback service.

These models contain NO storage or framework dependencies. They represent the
records that flow through ports and services:

* Meeting: root aggregate every other record references.
* Evaluation: one speaker assessment, ``tagged`` or ``scored`` shape.
* Functionary reports: Ah-Um, Grammarian, Timer, General Evaluator.

Entry models (``AhUmEntry`` etc.) are *strict*: they are used to validate
loosely-typed JSON documents read back from storage, so no coercion is allowed.
"""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

from shared_utils.constants import (
    DatabaseConfig,
    Defaults,
    EvaluationShape,
    FunctionaryRole,
    ReportKind,
    SpeechType,
    TimerStatus,
)


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------


class Meeting(BaseModel):
    """A club meeting (immutable once created)."""

    id: int
    name: str
    date: dt.date
    created_at: datetime


class MeetingCreate(BaseModel):
    """Admin input for a new meeting."""

    name: str = Field(min_length=1, max_length=255)
    date: dt.date

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------------

Score = Annotated[int, Field(strict=True, ge=Defaults.MIN_SCORE, le=Defaults.MAX_SCORE)]

SCORE_FIELDS = (
    "content_score",
    "delivery_score",
    "language_score",
    "time_score",
    "overall_score",
)

RowId = Annotated[int, Field(ge=1, le=DatabaseConfig.MAX_ROW_ID)]

TAG_FIELDS = ("commend_tags", "recommend_tags", "challenge_tags")


class _EvaluationInputBase(BaseModel):
    meeting_id: RowId
    evaluator_name: str
    speaker_name: str
    speech_type: SpeechType
    comments: str = ""

    @field_validator("evaluator_name", "speaker_name")
    @classmethod
    def _required_name(cls, v: str, info) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} cannot be empty")
        return v

    @field_validator("comments", mode="before")
    @classmethod
    def _strip_comments(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


class TaggedEvaluationInput(_EvaluationInputBase):
    """Commend / Recommend / Challenge feedback."""

    shape: Literal["tagged"] = EvaluationShape.TAGGED.value
    commend_tags: List[str] = []
    recommend_tags: List[str] = []
    challenge_tags: List[str] = []

    @field_validator(*TAG_FIELDS, mode="before")
    @classmethod
    def _clean_tags(cls, v: Any) -> Any:
        """Trim each tag, then drop blank and repeated ones (first wins).

        The "at least one feedback item" rule counts what survives here, so
        a selection made only of whitespace is an empty selection.
        """
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        seen: List[Any] = []
        for tag in v:
            tag = tag.strip() if isinstance(tag, str) else tag
            if tag == "" or tag in seen:
                continue
            seen.append(tag)
        return seen

    @model_validator(mode="after")
    def _disjoint_buckets(self) -> "TaggedEvaluationInput":
        overlap = (
            (set(self.commend_tags) & set(self.recommend_tags))
            | (set(self.commend_tags) & set(self.challenge_tags))
            | (set(self.recommend_tags) & set(self.challenge_tags))
        )
        if overlap:
            raise ValueError(
                "A criterion can only appear in one feedback category: "
                + ", ".join(sorted(overlap))
            )
        return self

    def tag_count(self) -> int:
        return len(self.commend_tags) + len(self.recommend_tags) + len(self.challenge_tags)


class ScoredEvaluationInput(_EvaluationInputBase):
    """Five 1..5 dimension scores plus free text."""

    shape: Literal["scored"] = EvaluationShape.SCORED.value
    content_score: Score
    delivery_score: Score
    language_score: Score
    time_score: Score
    overall_score: Score
    strengths: str = ""
    improvements: str = ""

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


EvaluationInput = Annotated[
    Union[TaggedEvaluationInput, ScoredEvaluationInput],
    Field(discriminator="shape"),
]


class Evaluation(BaseModel):
    """Persisted evaluation (either shape, discriminated by ``shape``)."""

    id: int
    meeting_id: int
    shape: EvaluationShape = EvaluationShape.TAGGED
    evaluator_name: str
    speaker_name: str
    speech_type: SpeechType
    commend_tags: List[str] = []
    recommend_tags: List[str] = []
    challenge_tags: List[str] = []
    content_score: Optional[int] = None
    delivery_score: Optional[int] = None
    language_score: Optional[int] = None
    time_score: Optional[int] = None
    overall_score: Optional[int] = None
    strengths: str = ""
    improvements: str = ""
    comments: str = ""
    created_at: datetime
    # Joined from the meeting when listing across meetings
    meeting_name: Optional[str] = None
    meeting_date: Optional[date] = None

    def tag_count(self) -> int:
        return len(self.commend_tags) + len(self.recommend_tags) + len(self.challenge_tags)

    def scores(self) -> List[int]:
        """The five dimension scores, empty for tagged evaluations."""
        values = [getattr(self, f) for f in SCORE_FIELDS]
        if any(v is None for v in values):
            return []
        return values


# ---------------------------------------------------------------------------
# Report entries (strict: validated on every read)
# ---------------------------------------------------------------------------

NonNegativeCount = Annotated[StrictInt, Field(ge=0)]
Rating = Annotated[StrictInt, Field(ge=Defaults.MIN_SCORE, le=Defaults.MAX_SCORE)]


class _StrictEntry(BaseModel):
    # Scalars are strict (no "3" -> 3, no True -> 1); enums accept their values
    model_config = ConfigDict(extra="ignore")


class AhUmEntry(_StrictEntry):
    """Filler-word tally for one speaker."""

    speaker_name: StrictStr
    ah_um: NonNegativeCount
    like: NonNegativeCount
    so: NonNegativeCount
    but: NonNegativeCount
    other: NonNegativeCount


class GrammarEntry(_StrictEntry):
    """Grammarian observation (good usage or a slip)."""

    speaker_name: StrictStr
    phrase: StrictStr
    is_positive: StrictBool
    comment: StrictStr


class TimerEntry(_StrictEntry):
    """One timed segment of the meeting."""

    role: StrictStr
    speaker_name: StrictStr
    title_topic: StrictStr
    duration_seconds: NonNegativeCount
    status: TimerStatus


class EvaluatorFeedback(_StrictEntry):
    """General Evaluator's review of one evaluator."""

    evaluator_name: StrictStr
    speaker_evaluated: StrictStr
    rating: Rating
    strengths: StrictStr
    areas_to_improve: StrictStr
    comments: StrictStr


class FunctionaryFeedback(_StrictEntry):
    """General Evaluator's review of one functionary."""

    role: FunctionaryRole
    person_name: StrictStr
    rating: Rating
    feedback: StrictStr


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class _ReportBase(BaseModel):
    id: int
    meeting_id: int
    reporter_name: str
    created_at: datetime
    updated_at: datetime


class AhUmReport(_ReportBase):
    kind: Literal["ah_um"] = ReportKind.AH_UM.value
    entries: List[AhUmEntry] = []


class GrammarianReport(_ReportBase):
    kind: Literal["grammarian"] = ReportKind.GRAMMARIAN.value
    word_of_day: str = ""
    word_of_day_definition: str = ""
    entries: List[GrammarEntry] = []


class TimerReport(_ReportBase):
    kind: Literal["timer"] = ReportKind.TIMER.value
    meeting_start: str = ""
    meeting_end: str = ""
    entries: List[TimerEntry] = []


class GeneralEvaluatorReport(_ReportBase):
    kind: Literal["general_evaluator"] = ReportKind.GENERAL_EVALUATOR.value
    evaluator_feedbacks: List[EvaluatorFeedback] = []
    functionary_feedbacks: List[FunctionaryFeedback] = []
    meeting_highlights: str = ""
    meeting_improvements: str = ""
    overall_comments: str = ""


Report = Union[AhUmReport, GrammarianReport, TimerReport, GeneralEvaluatorReport]


# Write-side inputs: entry lists are stored as received and validated on read.


class _ReportInputBase(BaseModel):
    reporter_name: str

    @field_validator("reporter_name")
    @classmethod
    def _required_reporter(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reporter_name cannot be empty")
        return v

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Missing optional text or list fields arrive as null from JS clients
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class AhUmReportInput(_ReportInputBase):
    entries: List[Any] = []


class GrammarianReportInput(_ReportInputBase):
    word_of_day: str = ""
    word_of_day_definition: str = ""
    entries: List[Any] = []


class TimerReportInput(_ReportInputBase):
    meeting_start: str = ""
    meeting_end: str = ""
    entries: List[Any] = []


class GeneralEvaluatorReportInput(_ReportInputBase):
    evaluator_feedbacks: List[Any] = []
    functionary_feedbacks: List[Any] = []
    meeting_highlights: str = ""
    meeting_improvements: str = ""
    overall_comments: str = ""


REPORT_INPUT_MODELS: Dict[ReportKind, type] = {
    ReportKind.AH_UM: AhUmReportInput,
    ReportKind.GRAMMARIAN: GrammarianReportInput,
    ReportKind.TIMER: TimerReportInput,
    ReportKind.GENERAL_EVALUATOR: GeneralEvaluatorReportInput,
}


class MeetingReports(BaseModel):
    """All functionary reports of one meeting (``GET /api/reports/{id}``)."""

    model_config = ConfigDict(populate_by_name=True)

    ah_um: List[AhUmReport] = Field(default=[], alias="ahUm")
    grammarian: List[GrammarianReport] = []
    timer: List[TimerReport] = []
    general_evaluator: List[GeneralEvaluatorReport] = Field(default=[], alias="generalEvaluator")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class SpeakerSummary(BaseModel):
    """Per-speaker roll-up shown on the admin dashboard."""

    speaker_name: str
    evaluation_count: int = 0
    commend_count: int = 0
    recommend_count: int = 0
    challenge_count: int = 0
    tag_count: int = 0
    average_score: Optional[float] = None
    evaluations: List[Evaluation] = []


class MailReport(BaseModel):
    subject: str
    body: str
    mailto: str
