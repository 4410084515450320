"""
Root conftest.py: shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • The environment below is set before any project import, because
      ``api_service.src.main`` reads settings at import time.
    • SQLite databases are temp files, not ``:memory:``, since the report
      fan-out reads from worker threads.
"""

import os
import tempfile
from datetime import date
from typing import Any, Dict

_TEST_DB_DIR = tempfile.mkdtemp(prefix="feedback-tests-")
os.environ["DATABASE_URI"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'api.db')}"
os.environ["ENVIRONMENT"] = "development"
os.environ["EVALUATION_SHAPE"] = "tagged"
os.environ["SUBMISSION_RATE_LIMIT"] = "1000/minute"

import pytest

from adapters.sql_evaluation_store import SqlEvaluationStoreAdapter
from adapters.sql_meeting_store import SqlMeetingStoreAdapter
from adapters.sql_report_store import SqlReportStoreAdapter
from adapters.sql_schema import build_engine, build_session_factory, create_schema
from domain.models import Meeting
from services.evaluation_service import EvaluationService
from services.export_service import ExportService
from services.meeting_service import MeetingService
from services.report_service import ReportService


# ---------------------------------------------------------------------------
# Minimal required settings kwargs for Settings(**BASE_SETTINGS_KWARGS)
# ---------------------------------------------------------------------------

BASE_SETTINGS_KWARGS: Dict[str, str] = {
    "database_uri": "sqlite:///./feedback.db",
    "environment": "development",
}


@pytest.fixture()
def base_settings_kwargs() -> Dict[str, str]:
    """Provide the minimal kwargs needed to instantiate ``Settings``."""
    return {**BASE_SETTINGS_KWARGS}


# ---------------------------------------------------------------------------
# Storage fixtures (fresh SQLite file per test)
# ---------------------------------------------------------------------------

@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def meeting_store(session_factory) -> SqlMeetingStoreAdapter:
    return SqlMeetingStoreAdapter(session_factory)


@pytest.fixture()
def evaluation_store(session_factory) -> SqlEvaluationStoreAdapter:
    return SqlEvaluationStoreAdapter(session_factory)


@pytest.fixture()
def report_store(session_factory) -> SqlReportStoreAdapter:
    return SqlReportStoreAdapter(session_factory)


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def meeting_service(meeting_store, evaluation_store) -> MeetingService:
    return MeetingService(meeting_store=meeting_store, evaluation_store=evaluation_store)


@pytest.fixture()
def evaluation_service(meeting_store, evaluation_store) -> EvaluationService:
    return EvaluationService(evaluation_store=evaluation_store, meeting_store=meeting_store)


@pytest.fixture()
def scored_evaluation_service(meeting_store, evaluation_store) -> EvaluationService:
    return EvaluationService(
        evaluation_store=evaluation_store,
        meeting_store=meeting_store,
        active_shape="scored",
    )


@pytest.fixture()
def report_service(meeting_store, report_store) -> ReportService:
    return ReportService(report_store=report_store, meeting_store=meeting_store)


@pytest.fixture()
def export_service(meeting_store, evaluation_store) -> ExportService:
    return ExportService(meeting_store=meeting_store, evaluation_store=evaluation_store)


# ---------------------------------------------------------------------------
# Domain object factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def sample_meeting(meeting_store) -> Meeting:
    """The "Weekly #42" meeting, persisted."""
    return meeting_store.create_meeting("Weekly #42", date(2024, 3, 1))


@pytest.fixture()
def tagged_payload(sample_meeting) -> Dict[str, Any]:
    """A valid tagged submission: Alice evaluates Bob's prepared speech."""
    return {
        "meeting_id": sample_meeting.id,
        "evaluator_name": "Alice",
        "speaker_name": "Bob",
        "speech_type": "prepared",
        "commend_tags": ["Strong opening"],
        "recommend_tags": [],
        "challenge_tags": [],
        "comments": "",
    }


@pytest.fixture()
def scored_payload(sample_meeting) -> Dict[str, Any]:
    return {
        "meeting_id": sample_meeting.id,
        "shape": "scored",
        "evaluator_name": "Carol",
        "speaker_name": "Bob",
        "speech_type": "table_topics",
        "content_score": 4,
        "delivery_score": 3,
        "language_score": 5,
        "time_score": 2,
        "overall_score": 4,
        "strengths": "Good energy",
        "improvements": "Slow down",
    }
