"""
Tests for the FastAPI endpoints.

Runs the real app against the temp SQLite file configured in conftest; the
schema is recreated before every test. Failure paths patch the DI container.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api_service.src.main import app, rate_limit_handler
from shared_utils.constants import APIEndpoints, ErrorCode
from shared_utils.di_container import get_di_container
from shared_utils.error_handler import PartialFetchError, StorageError

pytestmark = pytest.mark.integration

client = TestClient(app)


@pytest.fixture(autouse=True)
def fresh_schema():
    get_di_container().init_storage(reset=True)
    yield


def _create_meeting(name: str = "Weekly #42", date: str = "2024-03-01") -> dict:
    response = client.post(APIEndpoints.MEETINGS, json={"name": name, "date": date})
    assert response.status_code == 201
    return response.json()


def _evaluation_body(meeting_id: int, **overrides) -> dict:
    body = {
        "meeting_id": meeting_id,
        "evaluator_name": "Alice",
        "speaker_name": "Bob",
        "speech_type": "prepared",
        "commend_tags": ["Strong opening"],
        "recommend_tags": [],
        "challenge_tags": [],
        "comments": "",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health_returns_200(self) -> None:
        response = client.get(APIEndpoints.HEALTH)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["environment"] == "development"
        assert body["evaluation_shape"] == "tagged"


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

class TestMeetings:
    def test_create_and_get(self) -> None:
        created = _create_meeting()
        assert created["name"] == "Weekly #42"
        assert created["date"] == "2024-03-01"
        assert created["evaluation_url"].endswith(f"?meeting_id={created['id']}")

        response = client.get(APIEndpoints.MEETING.format(meeting_id=created["id"]))
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == created["id"]
        assert body["created_at"] == created["created_at"]
        assert body["evaluations"] == []

    @pytest.mark.parametrize(
        "body",
        [{"name": "", "date": "2024-03-01"}, {"name": "Weekly"}, {"name": "Weekly", "date": "tomorrow"}],
    )
    def test_create_invalid(self, body) -> None:
        response = client.post(APIEndpoints.MEETINGS, json=body)
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.INVALID_INPUT.value
        assert client.get(APIEndpoints.MEETINGS).json() == []

    def test_non_object_body_is_400(self) -> None:
        response = client.post(APIEndpoints.MEETINGS, json=["Weekly", "2024-03-01"])
        assert response.status_code == 400
        assert "error" in response.json()

    def test_list_newest_first(self) -> None:
        _create_meeting("Old", "2024-01-01")
        _create_meeting("New", "2024-03-01")
        names = [m["name"] for m in client.get(APIEndpoints.MEETINGS).json()]
        assert names == ["New", "Old"]

    def test_today_is_not_an_id(self) -> None:
        response = client.get(APIEndpoints.MEETINGS_TODAY)
        assert response.status_code == 200
        assert isinstance(response.json(), list)

    def test_missing_meeting_404(self) -> None:
        response = client.get(APIEndpoints.MEETING.format(meeting_id=999))
        assert response.status_code == 404
        assert response.json() == {"error": "Meeting not found", "code": ErrorCode.NOT_FOUND.value}

    def test_non_integer_id_is_400(self) -> None:
        response = client.get("/api/meetings/abc")
        assert response.status_code == 400

    @pytest.mark.parametrize("meeting_id", [0, -1, 2**64, 10**20])
    def test_out_of_range_id_is_400(self, meeting_id) -> None:
        response = client.get(APIEndpoints.MEETING.format(meeting_id=meeting_id))
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.INVALID_INPUT.value

    def test_largest_row_id_is_404(self) -> None:
        response = client.get(APIEndpoints.MEETING.format(meeting_id=2**63 - 1))
        assert response.status_code == 404

    @patch("api_service.src.main.get_di_container")
    def test_storage_failure_is_generic_500(self, mock_get_di) -> None:
        service = MagicMock()
        service.list_meetings.side_effect = StorageError(context={"detail": "disk I/O error"})
        mock_get_di.return_value.get_meeting_service.return_value = service

        response = client.get(APIEndpoints.MEETINGS)
        assert response.status_code == 500
        assert response.json() == {"error": "Storage operation failed", "code": ErrorCode.STORAGE_ERROR.value}

    @patch("api_service.src.main.get_di_container")
    def test_unexpected_failure_hides_detail(self, mock_get_di) -> None:
        service = MagicMock()
        service.list_meetings.side_effect = RuntimeError("secret connection string")
        mock_get_di.return_value.get_meeting_service.return_value = service

        response = client.get(APIEndpoints.MEETINGS)
        assert response.status_code == 500
        assert "secret" not in response.text


# ---------------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------------

class TestEvaluations:
    def test_weekly_42_scenario(self) -> None:
        meeting = _create_meeting()
        response = client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"]))
        assert response.status_code == 201

        listed = client.get(APIEndpoints.EVALUATIONS, params={"meeting_id": meeting["id"]}).json()
        assert len(listed) == 1
        record = listed[0]
        assert record["evaluator_name"] == "Alice"
        assert record["speaker_name"] == "Bob"
        assert record["speech_type"] == "prepared"
        assert record["commend_tags"] == ["Strong opening"]
        assert record["shape"] == "tagged"
        assert isinstance(record["id"], int)
        assert record["created_at"]

    def test_empty_tags_rejected_and_nothing_persisted(self) -> None:
        meeting = _create_meeting()
        response = client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"], commend_tags=[]))
        assert response.status_code == 400
        assert response.json()["error"] == "Please select at least one feedback item"
        assert client.get(APIEndpoints.EVALUATIONS, params={"meeting_id": meeting["id"]}).json() == []

    def test_scored_shape_rejected_when_tagged_active(self) -> None:
        meeting = _create_meeting()
        body = _evaluation_body(meeting["id"], shape="scored")
        response = client.post(APIEndpoints.EVALUATIONS, json=body)
        assert response.status_code == 400

    def test_unknown_meeting_404(self) -> None:
        response = client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(999))
        assert response.status_code == 404

    def test_out_of_range_meeting_id_is_400(self) -> None:
        response = client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(10**20))
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.INVALID_INPUT.value

    def test_out_of_range_meeting_filter_is_400(self) -> None:
        response = client.get(APIEndpoints.EVALUATIONS, params={"meeting_id": 10**20})
        assert response.status_code == 400

    def test_filter_by_speaker_and_list_all(self) -> None:
        meeting = _create_meeting()
        client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"]))
        client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"], speaker_name="Dee"))

        dee = client.get(APIEndpoints.EVALUATIONS, params={"meeting_id": meeting["id"], "speaker_name": "Dee"}).json()
        assert [e["speaker_name"] for e in dee] == ["Dee"]

        everything = client.get(APIEndpoints.EVALUATIONS).json()
        assert len(everything) == 2
        assert {e["meeting_name"] for e in everything} == {"Weekly #42"}

    def test_meeting_detail_includes_evaluations(self) -> None:
        meeting = _create_meeting()
        client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"]))
        body = client.get(APIEndpoints.MEETING.format(meeting_id=meeting["id"])).json()
        assert len(body["evaluations"]) == 1


# ---------------------------------------------------------------------------
# Summary & export
# ---------------------------------------------------------------------------

class TestExport:
    def test_summary(self) -> None:
        meeting = _create_meeting()
        client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"]))
        body = client.get(APIEndpoints.MEETING_SUMMARY.format(meeting_id=meeting["id"])).json()
        assert body["meeting"]["id"] == meeting["id"]
        assert body["speakers"][0]["speaker_name"] == "Bob"
        assert body["speakers"][0]["commend_count"] == 1

    def test_csv_download(self) -> None:
        meeting = _create_meeting()
        client.post(APIEndpoints.EVALUATIONS, json=_evaluation_body(meeting["id"], comments='Said "wow"'))
        response = client.get(APIEndpoints.MEETING_EXPORT_CSV.format(meeting_id=meeting["id"]))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert '"Said ""wow"""' in response.text

    def test_mail(self) -> None:
        meeting = _create_meeting()
        response = client.get(
            APIEndpoints.MEETING_EXPORT_MAIL.format(meeting_id=meeting["id"]), params={"to": "club@example.org"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["mailto"].startswith("mailto:club@example.org?subject=")
        assert "No evaluations were submitted." in body["body"]

    def test_export_missing_meeting(self) -> None:
        response = client.get(APIEndpoints.MEETING_EXPORT_CSV.format(meeting_id=999))
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class TestReports:
    def test_timer_update_scenario(self) -> None:
        meeting = _create_meeting()
        entry = {"role": "Speaker 1", "speaker_name": "Bob", "title_topic": "Intro", "duration_seconds": 420, "status": "green"}
        created = client.post(
            APIEndpoints.REPORTS.format(meeting_id=meeting["id"]),
            json={"type": "timer", "reporter_name": "Tim", "entries": [entry]},
        )
        assert created.status_code == 201
        report = created.json()
        assert report["entries"] == [entry]

        updated = client.put(
            APIEndpoints.REPORT.format(kind="timer", report_id=report["id"]),
            json={"reporter_name": "Tim", "entries": []},
        )
        assert updated.status_code == 200

        reports = client.get(APIEndpoints.REPORTS.format(meeting_id=meeting["id"])).json()
        assert reports["timer"][0]["entries"] == []
        assert set(reports) == {"ahUm", "grammarian", "timer", "generalEvaluator"}

    def test_invalid_entries_filtered_on_read(self) -> None:
        meeting = _create_meeting()
        good = {"speaker_name": "Ann", "ah_um": 2, "like": 0, "so": 1, "but": 0, "other": 0}
        client.post(
            APIEndpoints.REPORTS.format(meeting_id=meeting["id"]),
            json={"type": "ah_um", "reporter_name": "Al", "entries": [good, {"speaker_name": "Ben", "ah_um": "2"}]},
        )
        reports = client.get(APIEndpoints.REPORTS.format(meeting_id=meeting["id"])).json()
        assert reports["ahUm"][0]["entries"] == [good]

    def test_unknown_type_400(self) -> None:
        meeting = _create_meeting()
        response = client.post(
            APIEndpoints.REPORTS.format(meeting_id=meeting["id"]), json={"type": "toastmaster", "reporter_name": "T"}
        )
        assert response.status_code == 400

    def test_missing_meeting_404(self) -> None:
        response = client.post(APIEndpoints.REPORTS.format(meeting_id=999), json={"type": "timer", "reporter_name": "T"})
        assert response.status_code == 404

    def test_out_of_range_ids_are_400(self) -> None:
        huge = 10**20
        assert client.get(APIEndpoints.REPORTS.format(meeting_id=huge)).status_code == 400
        created = client.post(APIEndpoints.REPORTS.format(meeting_id=huge), json={"type": "timer", "reporter_name": "T"})
        assert created.status_code == 400
        path = APIEndpoints.REPORT.format(kind="timer", report_id=huge)
        assert client.put(path, json={"reporter_name": "T"}).status_code == 400
        assert client.delete(path).status_code == 400

    def test_hyphenated_kind_and_delete(self) -> None:
        meeting = _create_meeting()
        report = client.post(
            APIEndpoints.REPORTS.format(meeting_id=meeting["id"]), json={"type": "ah_um", "reporter_name": "Al"}
        ).json()

        path = APIEndpoints.REPORT.format(kind="ah-um", report_id=report["id"])
        assert client.delete(path).json() == {"success": True}
        assert client.delete(path).status_code == 404
        assert client.put(path, json={"reporter_name": "Al"}).status_code == 404

    @patch("api_service.src.main.get_di_container")
    def test_partial_failure_500(self, mock_get_di) -> None:
        service = MagicMock()

        async def failing(meeting_id):
            raise PartialFetchError(["timer"])

        service.get_all_reports.side_effect = failing
        mock_get_di.return_value.get_report_service.return_value = service

        response = client.get(APIEndpoints.REPORTS.format(meeting_id=1))
        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to fetch reports: timer",
            "code": ErrorCode.PARTIAL_FETCH_FAILED.value,
        }


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

def _limited_client(limit: str) -> TestClient:
    limited = FastAPI()
    limited.state.limiter = Limiter(key_func=get_remote_address)
    limited.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    @limited.post(APIEndpoints.EVALUATIONS)
    @limited.state.limiter.limit(limit)
    def submit(request: Request) -> dict:
        return {"ok": True}

    return TestClient(limited)


class TestRateLimit:
    def test_over_limit_is_429(self) -> None:
        limited = _limited_client("2/minute")
        assert limited.post(APIEndpoints.EVALUATIONS).status_code == 200
        assert limited.post(APIEndpoints.EVALUATIONS).status_code == 200

        response = limited.post(APIEndpoints.EVALUATIONS)

        assert response.status_code == 429
        body = response.json()
        assert body["code"] == ErrorCode.RATE_LIMITED.value
        assert body["error"].startswith("Rate limit exceeded: 2 per 1 minute")

    def test_submission_routes_are_limited(self) -> None:
        limits = {str(lim.limit) for lims in app.state.limiter._route_limits.values() for lim in lims}
        assert limits == {"1000 per 1 minute"}
        routes = set(app.state.limiter._route_limits)
        assert {r.split(".")[-1] for r in routes} == {"submit_evaluation", "create_report"}
