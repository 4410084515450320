"""
Tests for the SQLAlchemy store adapters against a temp-file SQLite database.

Covers round-trips, ordering, cascade delete, invalid-entry filtering on
read and the SQLAlchemyError -> StorageError translation.
"""

import json
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from adapters.sql_meeting_store import SqlMeetingStoreAdapter
from adapters.sql_schema import AhUmReportRow
from domain.models import ScoredEvaluationInput, TaggedEvaluationInput
from ports.evaluation_store import EvaluationStorePort
from ports.meeting_store import MeetingStorePort
from ports.report_store import ReportStorePort
from shared_utils.constants import EvaluationShape, ReportKind
from shared_utils.error_handler import StorageError


def _tagged(meeting_id: int, speaker: str = "Bob", **overrides) -> TaggedEvaluationInput:
    data = {
        "meeting_id": meeting_id,
        "evaluator_name": "Alice",
        "speaker_name": speaker,
        "speech_type": "prepared",
        "commend_tags": ["Strong opening"],
    }
    data.update(overrides)
    return TaggedEvaluationInput(**data)


def _ah_um(name: str) -> dict:
    return {"speaker_name": name, "ah_um": 2, "like": 1, "so": 0, "but": 0, "other": 0}


# ---------------------------------------------------------------------------
# Protocol conformance
# ---------------------------------------------------------------------------

class TestPorts:
    def test_adapters_satisfy_ports(self, meeting_store, evaluation_store, report_store) -> None:
        assert isinstance(meeting_store, MeetingStorePort)
        assert isinstance(evaluation_store, EvaluationStorePort)
        assert isinstance(report_store, ReportStorePort)


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

class TestMeetingStore:
    def test_create_then_get_round_trip(self, meeting_store) -> None:
        created = meeting_store.create_meeting("Weekly #42", date(2024, 3, 1))
        assert created.id > 0
        assert meeting_store.get_meeting(created.id) == created

    def test_get_missing(self, meeting_store) -> None:
        assert meeting_store.get_meeting(999) is None

    def test_list_newest_date_first(self, meeting_store) -> None:
        meeting_store.create_meeting("Old", date(2024, 1, 1))
        meeting_store.create_meeting("New", date(2024, 3, 1))
        meeting_store.create_meeting("Mid", date(2024, 2, 1))
        assert [m.name for m in meeting_store.list_meetings()] == ["New", "Mid", "Old"]

    def test_same_date_newest_created_first(self, meeting_store) -> None:
        meeting_store.create_meeting("First", date(2024, 3, 1))
        meeting_store.create_meeting("Second", date(2024, 3, 1))
        assert [m.name for m in meeting_store.list_meetings()] == ["Second", "First"]

    def test_recent_window_and_limit(self, meeting_store) -> None:
        meeting_store.create_meeting("Too old", date(2024, 2, 20))
        for day in range(1, 5):
            meeting_store.create_meeting(f"Day {day}", date(2024, 3, day))
        recent = meeting_store.list_recent_meetings(since=date(2024, 3, 1), limit=3)
        assert [m.name for m in recent] == ["Day 4", "Day 3", "Day 2"]

    def test_driver_error_becomes_storage_error(self) -> None:
        session = MagicMock()
        session.__enter__.return_value = session
        session.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
        store = SqlMeetingStoreAdapter(MagicMock(return_value=session))

        with pytest.raises(StorageError) as exc_info:
            store.get_meeting(1)
        assert exc_info.value.message == "Storage operation failed"
        assert "disk" not in exc_info.value.message


# ---------------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------------

class TestEvaluationStore:
    def test_tagged_round_trip(self, evaluation_store, sample_meeting) -> None:
        created = evaluation_store.create_evaluation(_tagged(sample_meeting.id, recommend_tags=["Eye contact"]))
        assert created.shape is EvaluationShape.TAGGED
        assert created.commend_tags == ["Strong opening"]
        assert created.recommend_tags == ["Eye contact"]
        assert created.content_score is None
        assert evaluation_store.list_by_meeting(sample_meeting.id) == [created]

    def test_scored_round_trip(self, evaluation_store, sample_meeting, scored_payload) -> None:
        created = evaluation_store.create_evaluation(ScoredEvaluationInput(**scored_payload))
        assert created.shape is EvaluationShape.SCORED
        assert created.scores() == [4, 3, 5, 2, 4]
        assert created.commend_tags == []
        assert created.strengths == "Good energy"

    def test_list_by_meeting_newest_first(self, evaluation_store, sample_meeting) -> None:
        first = evaluation_store.create_evaluation(_tagged(sample_meeting.id, speaker="Ann"))
        second = evaluation_store.create_evaluation(_tagged(sample_meeting.id, speaker="Ben"))
        assert [e.id for e in evaluation_store.list_by_meeting(sample_meeting.id)] == [second.id, first.id]

    def test_list_by_speaker_exact_match(self, evaluation_store, sample_meeting) -> None:
        evaluation_store.create_evaluation(_tagged(sample_meeting.id, speaker="Bob"))
        evaluation_store.create_evaluation(_tagged(sample_meeting.id, speaker="bob"))
        result = evaluation_store.list_by_speaker(sample_meeting.id, "Bob")
        assert [e.speaker_name for e in result] == ["Bob"]

    def test_list_all_joins_meeting(self, evaluation_store, meeting_store, sample_meeting) -> None:
        other = meeting_store.create_meeting("Weekly #43", date(2024, 3, 8))
        evaluation_store.create_evaluation(_tagged(sample_meeting.id))
        evaluation_store.create_evaluation(_tagged(other.id))
        rows = evaluation_store.list_all()
        assert [(e.meeting_name, e.meeting_date) for e in rows] == [
            ("Weekly #43", date(2024, 3, 8)),
            ("Weekly #42", date(2024, 3, 1)),
        ]

    def test_unknown_meeting_violates_foreign_key(self, evaluation_store) -> None:
        with pytest.raises(StorageError):
            evaluation_store.create_evaluation(_tagged(12345))

    def test_corrupt_tag_json_reads_as_empty(self, evaluation_store, sample_meeting, engine) -> None:
        created = evaluation_store.create_evaluation(_tagged(sample_meeting.id))
        with engine.begin() as conn:
            conn.execute(
                text("UPDATE evaluations SET commend_tags_json = :v WHERE id = :id"),
                {"v": "{broken", "id": created.id},
            )
        assert evaluation_store.list_by_meeting(sample_meeting.id)[0].commend_tags == []


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class TestReportStore:
    def test_create_returns_full_row(self, report_store, sample_meeting) -> None:
        report = report_store.create_report(
            ReportKind.GRAMMARIAN,
            sample_meeting.id,
            {"reporter_name": "Gina", "word_of_day": "Serendipity", "entries": []},
        )
        assert report.id > 0
        assert report.kind == "grammarian"
        assert report.word_of_day == "Serendipity"
        assert report.word_of_day_definition == ""
        assert report.created_at is not None
        assert report.updated_at is not None
        assert report_store.list_reports(ReportKind.GRAMMARIAN, sample_meeting.id) == [report]

    def test_round_trip_returns_valid_subset_in_order(self, report_store, sample_meeting) -> None:
        entries = [_ah_um("Ann"), {"speaker_name": "Ben", "ah_um": "lots"}, 7, _ah_um("Cat")]
        report_store.create_report(ReportKind.AH_UM, sample_meeting.id, {"reporter_name": "Al", "entries": entries})
        [report] = report_store.list_reports(ReportKind.AH_UM, sample_meeting.id)
        assert [e.speaker_name for e in report.entries] == ["Ann", "Cat"]

    def test_timer_update_to_empty_entries(self, report_store, sample_meeting) -> None:
        entry = {"role": "Speaker 1", "speaker_name": "Bob", "title_topic": "Intro", "duration_seconds": 420, "status": "green"}
        created = report_store.create_report(
            ReportKind.TIMER, sample_meeting.id, {"reporter_name": "Tim", "entries": [entry]}
        )
        assert len(created.entries) == 1

        updated = report_store.update_report(ReportKind.TIMER, created.id, {"reporter_name": "Tim", "entries": []})
        assert updated.entries == []
        assert updated.updated_at >= created.updated_at
        [stored] = report_store.list_reports(ReportKind.TIMER, sample_meeting.id)
        assert stored.entries == []

    def test_update_is_full_replace(self, report_store, sample_meeting) -> None:
        created = report_store.create_report(
            ReportKind.TIMER,
            sample_meeting.id,
            {"reporter_name": "Tim", "meeting_start": "19:00", "meeting_end": "21:00"},
        )
        updated = report_store.update_report(ReportKind.TIMER, created.id, {"reporter_name": "Tom"})
        assert updated.reporter_name == "Tom"
        assert updated.meeting_start == ""
        assert updated.meeting_end == ""

    def test_update_missing(self, report_store) -> None:
        assert report_store.update_report(ReportKind.TIMER, 999, {"reporter_name": "Tim"}) is None

    def test_delete(self, report_store, sample_meeting) -> None:
        created = report_store.create_report(ReportKind.AH_UM, sample_meeting.id, {"reporter_name": "Al"})
        assert report_store.delete_report(ReportKind.AH_UM, created.id) is True
        assert report_store.delete_report(ReportKind.AH_UM, created.id) is False
        assert report_store.list_reports(ReportKind.AH_UM, sample_meeting.id) == []

    def test_kinds_are_separate_tables(self, report_store, sample_meeting) -> None:
        report_store.create_report(ReportKind.AH_UM, sample_meeting.id, {"reporter_name": "Al"})
        assert report_store.list_reports(ReportKind.TIMER, sample_meeting.id) == []

    def test_general_evaluator_filters_both_lists(self, report_store, sample_meeting) -> None:
        fields = {
            "reporter_name": "Gail",
            "evaluator_feedbacks": [
                {"evaluator_name": "Ann", "speaker_evaluated": "Bob", "rating": 4,
                 "strengths": "", "areas_to_improve": "", "comments": ""},
                {"evaluator_name": "Ann", "rating": 9},
            ],
            "functionary_feedbacks": [
                {"role": "Janitor", "person_name": "X", "rating": 3, "feedback": ""},
                {"role": "Timer", "person_name": "Tim", "rating": 5, "feedback": "Spot on"},
            ],
            "overall_comments": "Lively meeting",
        }
        report = report_store.create_report(ReportKind.GENERAL_EVALUATOR, sample_meeting.id, fields)
        assert [f.evaluator_name for f in report.evaluator_feedbacks] == ["Ann"]
        assert [f.person_name for f in report.functionary_feedbacks] == ["Tim"]
        assert report.overall_comments == "Lively meeting"

    def test_entries_stored_as_received(self, report_store, sample_meeting, session_factory) -> None:
        entries = [_ah_um("Ann"), {"junk": True}]
        created = report_store.create_report(ReportKind.AH_UM, sample_meeting.id, {"reporter_name": "Al", "entries": entries})
        with session_factory() as session:
            row = session.get(AhUmReportRow, created.id)
            assert json.loads(row.entries_json) == entries


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------

class TestCascadeDelete:
    def test_deleting_meeting_removes_children(
        self, engine, meeting_store, evaluation_store, report_store, sample_meeting
    ) -> None:
        evaluation_store.create_evaluation(_tagged(sample_meeting.id))
        report_store.create_report(ReportKind.AH_UM, sample_meeting.id, {"reporter_name": "Al"})

        with engine.begin() as conn:
            conn.execute(text("DELETE FROM meetings WHERE id = :id"), {"id": sample_meeting.id})

        assert meeting_store.get_meeting(sample_meeting.id) is None
        assert evaluation_store.list_by_meeting(sample_meeting.id) == []
        assert report_store.list_reports(ReportKind.AH_UM, sample_meeting.id) == []
