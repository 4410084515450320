"""
Constants management.
Centralized configuration for all magic values, enumerations, and defaults.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    # Short aliases accepted by Settings and normalized to the long form
    DEV = "dev"
    STAGE = "stage"
    PROD = "prod"


class EvaluationShape(str, Enum):
    """Schema discriminator for speaker evaluations."""
    TAGGED = "tagged"
    SCORED = "scored"


class SpeechType(str, Enum):
    """Kind of speech being evaluated."""
    PREPARED = "prepared"
    TABLE_TOPICS = "table_topics"


SPEECH_TYPE_LABELS: Final[dict] = {
    SpeechType.PREPARED.value: "Prepared Speech",
    SpeechType.TABLE_TOPICS.value: "Table Topics",
}

SCORE_LABELS: Final[dict] = {
    1: "Poor",
    2: "Fair",
    3: "Good",
    4: "Very Good",
    5: "Excellent",
}


class FeedbackBucket(str, Enum):
    """Commend / Recommend / Challenge buckets of the tag picker."""
    COMMEND = "commend"
    RECOMMEND = "recommend"
    CHALLENGE = "challenge"


class TimerStatus(str, Enum):
    """Timing light reached by a speaker."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    OVER = "over"


class FunctionaryRole(str, Enum):
    """Roles a General Evaluator can give feedback on."""
    TIMER = "Timer"
    GRAMMARIAN = "Grammarian"
    AH_UM_COUNTER = "Ah-Um Counter"
    TABLE_TOPICS_MASTER = "Table Topics Master"
    TOASTMASTER = "Toastmaster"
    OTHER = "Other"


# Roles offered by the Timer form (free text is also accepted)
MEETING_ROLES: Final[tuple] = (
    "Toastmaster",
    "Speaker 1",
    "Speaker 2",
    "Speaker 3",
    "Evaluator 1",
    "Evaluator 2",
    "Evaluator 3",
    "Table Topics Master",
    "Table Topics Speaker",
    "General Evaluator",
    "Grammarian",
    "Ah-Um Counter",
    "Timer",
)


class ReportKind(str, Enum):
    """Functionary report kinds, one storage table each."""
    AH_UM = "ah_um"
    GRAMMARIAN = "grammarian"
    TIMER = "timer"
    GENERAL_EVALUATOR = "general_evaluator"

    @classmethod
    def from_slug(cls, slug: str) -> "ReportKind":
        """Accept both ``ah_um`` and URL-style ``ah-um``."""
        return cls(slug.strip().lower().replace("-", "_"))


# Default values
class Defaults:
    """Service defaults."""
    REQUEST_TIMEOUT: Final[float] = 10.0
    LOG_LEVEL: Final[str] = "INFO"
    RECENT_MEETING_WINDOW_DAYS: Final[int] = 3
    RECENT_MEETING_LIMIT: Final[int] = 5
    SUBMISSION_RATE_LIMIT: Final[str] = "30/minute"
    MIN_SCORE: Final[int] = 1
    MAX_SCORE: Final[int] = 5


# Database settings
class DatabaseConfig:
    """Relational store layout."""
    MEETINGS_TABLE: Final[str] = "meetings"
    EVALUATIONS_TABLE: Final[str] = "evaluations"
    AH_UM_TABLE: Final[str] = "ah_um_reports"
    GRAMMARIAN_TABLE: Final[str] = "grammarian_reports"
    TIMER_TABLE: Final[str] = "timer_reports"
    GENERAL_EVALUATOR_TABLE: Final[str] = "general_evaluator_reports"
    NAME_MAX_LENGTH: Final[int] = 255
    # Largest id a 64-bit INTEGER primary key can hold
    MAX_ROW_ID: Final[int] = 2**63 - 1


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    UI = "ui"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    ADAPTER = "adapter"
    MEETINGS = "meeting_service"
    EVALUATIONS = "evaluation_service"
    REPORTS = "report_service"
    EXPORT = "export_service"
    DOMAIN = "domain"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    MEETINGS = "/api/meetings"
    MEETINGS_TODAY = "/api/meetings/today"
    MEETING = "/api/meetings/{meeting_id}"
    MEETING_SUMMARY = "/api/meetings/{meeting_id}/summary"
    MEETING_EXPORT_CSV = "/api/meetings/{meeting_id}/export.csv"
    MEETING_EXPORT_MAIL = "/api/meetings/{meeting_id}/export/mail"
    EVALUATIONS = "/api/evaluations"
    REPORTS = "/api/reports/{meeting_id}"
    REPORT = "/api/reports/{kind}/{report_id}"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"
    PARTIAL_FETCH_FAILED = "PARTIAL_FETCH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
