"""
FastAPI backend for the Toastmasters feedback service.

Endpoints:
    GET    /health                                 Health check
    GET    /api/meetings                           List meetings
    POST   /api/meetings                           Create a meeting
    GET    /api/meetings/today                     Recently dated meetings
    GET    /api/meetings/{meeting_id}              Meeting with its evaluations
    GET    /api/meetings/{meeting_id}/summary      Per-speaker roll-up
    GET    /api/meetings/{meeting_id}/export.csv   CSV download
    GET    /api/meetings/{meeting_id}/export/mail  Mail report + mailto link
    GET    /api/evaluations                        All / per-meeting / per-speaker
    POST   /api/evaluations                        Submit an evaluation
    GET    /api/reports/{meeting_id}               All functionary reports
    POST   /api/reports/{meeting_id}               Create a report
    PUT    /api/reports/{kind}/{report_id}         Replace a report
    DELETE /api/reports/{kind}/{report_id}         Delete a report
"""

from typing import Annotated, Optional
from fastapi import FastAPI, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import APIEndpoints, DatabaseConfig, ErrorCode, LogScope
from shared_utils.error_handler import AppException, ValidationError, handle_error
from shared_utils.validation import format_validation_errors
from shared_utils.di_container import get_di_container


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter

# Ids outside the INTEGER key range are rejected as 400 before they reach storage
RowId = Annotated[int, Path(ge=1, le=DatabaseConfig.MAX_ROW_ID)]
RowIdQuery = Annotated[Optional[int], Query(ge=1, le=DatabaseConfig.MAX_ROW_ID)]

# Create the schema once at startup so we fail fast on a bad DATABASE_URI
try:
    _container = get_di_container()
    _container.init_storage()
    logger.info(
        "api_initialized",
        environment=settings.environment,
        evaluation_shape=settings.evaluation_shape,
    )
except Exception as e:
    logger.error("api_initialization_failed", error=str(e))
    raise


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and path/query params are client errors (400)."""
    error = ValidationError(format_validation_errors(exc))
    logger.warning("request_validation_failed", path=request.url.path, error=error.message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": f"Rate limit exceeded: {exc.detail}", "code": ErrorCode.RATE_LIMITED.value},
    )


def _error_response(e: Exception, event: str) -> JSONResponse:
    if isinstance(e, AppException):
        logger.warning(event, error_code=e.error_code, http_status=e.http_status)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    error_response = handle_error(e, scope=LogScope.API)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "evaluation_shape": settings.evaluation_shape,
    }


# ======================================================================
# Meetings
# ======================================================================

@app.get(APIEndpoints.MEETINGS)
def list_meetings() -> JSONResponse:
    """List meetings, newest date first."""
    try:
        meetings = get_di_container().get_meeting_service().list_meetings()
        return JSONResponse(content=[m.model_dump(mode="json") for m in meetings])
    except Exception as e:
        return _error_response(e, "list_meetings_error")


@app.post(APIEndpoints.MEETINGS)
def create_meeting(body: dict) -> JSONResponse:
    """Create a meeting.

    Body JSON:
        name (str): Display name, e.g. "Weekly #42".
        date (str): ISO date ``YYYY-MM-DD``.
    """
    try:
        meeting = get_di_container().get_meeting_service().create_meeting(
            name=body.get("name"),
            date=body.get("date"),
        )
        content = meeting.model_dump(mode="json")
        content["evaluation_url"] = settings.get_evaluation_url(meeting.id)
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=content)
    except Exception as e:
        return _error_response(e, "create_meeting_error")


# Declared before /{meeting_id} so "today" is not parsed as an id
@app.get(APIEndpoints.MEETINGS_TODAY)
def list_recent_meetings() -> JSONResponse:
    """Meetings dated within the recent window (QR landing page picker)."""
    try:
        meetings = get_di_container().get_meeting_service().list_recent()
        return JSONResponse(content=[m.model_dump(mode="json") for m in meetings])
    except Exception as e:
        return _error_response(e, "list_recent_meetings_error")


@app.get(APIEndpoints.MEETING)
def get_meeting(meeting_id: RowId) -> JSONResponse:
    """A meeting plus its evaluations (newest first) and share link."""
    try:
        meeting, evaluations = get_di_container().get_meeting_service().get_meeting_with_evaluations(meeting_id)
        content = meeting.model_dump(mode="json")
        content["evaluation_url"] = settings.get_evaluation_url(meeting.id)
        content["evaluations"] = [e.model_dump(mode="json") for e in evaluations]
        return JSONResponse(content=content)
    except Exception as e:
        return _error_response(e, "get_meeting_error")


@app.get(APIEndpoints.MEETING_SUMMARY)
def get_meeting_summary(meeting_id: RowId) -> JSONResponse:
    try:
        meeting, speakers = get_di_container().get_export_service().summarize(meeting_id)
        return JSONResponse(
            content={
                "meeting": meeting.model_dump(mode="json"),
                "speakers": [s.model_dump(mode="json") for s in speakers],
            }
        )
    except Exception as e:
        return _error_response(e, "meeting_summary_error")


@app.get(APIEndpoints.MEETING_EXPORT_CSV)
def export_meeting_csv(meeting_id: RowId) -> Response:
    """CSV attachment, one row per evaluation."""
    try:
        filename, text = get_di_container().get_export_service().export_csv(meeting_id)
        return Response(
            content=text,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as e:
        return _error_response(e, "export_csv_error")


@app.get(APIEndpoints.MEETING_EXPORT_MAIL)
def export_meeting_mail(meeting_id: RowId, to: str = "") -> JSONResponse:
    """Plain-text report and a ``mailto:`` link; the server sends nothing."""
    try:
        report = get_di_container().get_export_service().mail_report(meeting_id, recipient=to)
        return JSONResponse(content=report.model_dump(mode="json"))
    except Exception as e:
        return _error_response(e, "export_mail_error")


# ======================================================================
# Evaluations
# ======================================================================

@app.get(APIEndpoints.EVALUATIONS)
def list_evaluations(
    meeting_id: RowIdQuery = None,
    speaker_name: Optional[str] = None,
) -> JSONResponse:
    """All evaluations (meeting joined) or those of one meeting / speaker."""
    try:
        evaluations = get_di_container().get_evaluation_service().list_evaluations(
            meeting_id=meeting_id,
            speaker_name=speaker_name,
        )
        return JSONResponse(content=[e.model_dump(mode="json") for e in evaluations])
    except Exception as e:
        return _error_response(e, "list_evaluations_error")


@app.post(APIEndpoints.EVALUATIONS)
@limiter.limit(settings.submission_rate_limit)
def submit_evaluation(
    request: Request,
    body: dict,
) -> JSONResponse:
    """Submit one evaluation of the active shape.

    Body JSON (tagged):
        meeting_id, evaluator_name, speaker_name, speech_type,
        commend_tags, recommend_tags, challenge_tags, comments
    Body JSON (scored):
        meeting_id, evaluator_name, speaker_name, speech_type,
        content_score .. overall_score, strengths, improvements, comments
    """
    try:
        evaluation = get_di_container().get_evaluation_service().submit(body)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=evaluation.model_dump(mode="json"),
        )
    except Exception as e:
        return _error_response(e, "submit_evaluation_error")


# ======================================================================
# Functionary reports
# ======================================================================

@app.get(APIEndpoints.REPORTS)
async def get_meeting_reports(meeting_id: RowId) -> JSONResponse:
    """All four report kinds, fetched concurrently.

    Fails as a whole (500) when any kind could not be read.
    """
    try:
        reports = await get_di_container().get_report_service().get_all_reports(meeting_id)
        return JSONResponse(content=reports.model_dump(mode="json", by_alias=True))
    except Exception as e:
        return _error_response(e, "get_reports_error")


@app.post(APIEndpoints.REPORTS)
@limiter.limit(settings.submission_rate_limit)
def create_report(
    request: Request,
    meeting_id: RowId,
    body: dict,
) -> JSONResponse:
    """Create a report; ``type`` selects ah_um / grammarian / timer / general_evaluator."""
    try:
        report = get_di_container().get_report_service().create_report(meeting_id, body)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=report.model_dump(mode="json"),
        )
    except Exception as e:
        return _error_response(e, "create_report_error")


@app.put(APIEndpoints.REPORT)
def update_report(kind: str, report_id: RowId, body: dict) -> JSONResponse:
    try:
        report = get_di_container().get_report_service().update_report(kind, report_id, body)
        return JSONResponse(content=report.model_dump(mode="json"))
    except Exception as e:
        return _error_response(e, "update_report_error")


@app.delete(APIEndpoints.REPORT)
def delete_report(kind: str, report_id: RowId) -> JSONResponse:
    try:
        get_di_container().get_report_service().delete_report(kind, report_id)
        return JSONResponse(content={"success": True})
    except Exception as e:
        return _error_response(e, "delete_report_error")


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
    )
