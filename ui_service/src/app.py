"""
Streamlit UI for the Toastmasters feedback service.

Pages:
    Evaluate: the QR landing page; tag picker (or score radios) per speaker
    Reports: Ah-Um Counter, Grammarian, Timer and General Evaluator reports
    Admin: create meetings, share links, per-speaker summary, CSV / mail export

Talks to the FastAPI backend only; no storage access from here.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import httpx
import streamlit as st

from domain.criteria import CRITERIA_CATEGORIES
from domain.tag_picker import bucket_of
from shared_utils.config_loader import get_settings
from shared_utils.constants import (
    APIEndpoints,
    Defaults,
    EvaluationShape,
    FeedbackBucket,
    FunctionaryRole,
    LogScope,
    MEETING_ROLES,
    ReportKind,
    SCORE_LABELS,
    SPEECH_TYPE_LABELS,
    SpeechType,
    TimerStatus,
)
from shared_utils.logging_utils import ContextualLogger
from ui_service.src.downloads import attachment_filename
from ui_service.src.form_state import EvaluationFormState, FormStatus


# ---------------------------------------------------------------------------
# Configuration & logging
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.UI)

API_BASE = settings.get_api_base_url()

BUCKET_LABELS = {
    FeedbackBucket.COMMEND: "👍 Commend",
    FeedbackBucket.RECOMMEND: "💡 Recommend",
    FeedbackBucket.CHALLENGE: "🎯 Challenge",
}

SCORE_DIMENSIONS = {
    "content_score": "Content",
    "delivery_score": "Delivery",
    "language_score": "Language",
    "time_score": "Time",
    "overall_score": "Overall",
}

st.set_page_config(page_title=settings.app_name, layout="wide")


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------

@st.cache_resource
def get_client() -> httpx.Client:
    """One pooled HTTP client per Streamlit server process."""
    return httpx.Client(base_url=API_BASE, timeout=Defaults.REQUEST_TIMEOUT)


def _path(template: str, **params: Any) -> str:
    return template.format(**params)


def _error_message(resp: httpx.Response) -> str:
    if "json" in resp.headers.get("content-type", ""):
        body = resp.json()
        if isinstance(body, dict) and body.get("error"):
            return body["error"]
    return f"API Error: {resp.status_code}"


def api_get(path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
    """GET returning parsed JSON, or None (error already shown)."""
    try:
        resp = get_client().get(path, params=params)
        if resp.status_code == 200:
            return resp.json()
        logger.error("api_get_failed", path=path, status=resp.status_code)
        st.error(f"❌ {_error_message(resp)}")
    except httpx.RequestError as e:
        logger.error("api_connection_failed", path=path, error=str(e))
        st.error(f"❌ API connection failed: {e}")
    return None


def api_send(method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Tuple[bool, Any]:
    """POST/PUT/DELETE returning ``(ok, body_or_message)``."""
    try:
        resp = get_client().request(method, path, json=payload)
        if resp.status_code in (200, 201):
            return True, resp.json()
        message = _error_message(resp)
        logger.warning("api_send_rejected", method=method, path=path, status=resp.status_code, error=message)
        return False, message
    except httpx.RequestError as e:
        logger.error("api_connection_failed", method=method, path=path, error=str(e))
        return False, f"API connection failed: {e}"


def fetch_meetings(recent_only: bool = False) -> List[Dict[str, Any]]:
    path = APIEndpoints.MEETINGS_TODAY if recent_only else APIEndpoints.MEETINGS
    return api_get(path) or []


def meeting_label(meeting: Dict[str, Any]) -> str:
    return f"{meeting['name']} ({meeting['date']})"


def select_meeting(meetings: List[Dict[str, Any]], key: str) -> Optional[Dict[str, Any]]:
    """Meeting picker; the ``meeting_id`` query param (QR link) preselects."""
    if not meetings:
        st.info("No meetings found. An admin can create one on the Admin page.")
        return None

    wanted = st.query_params.get("meeting_id")
    index = 0
    for i, meeting in enumerate(meetings):
        if str(meeting["id"]) == str(wanted):
            index = i
            break
    return st.selectbox("Meeting", meetings, index=index, format_func=meeting_label, key=key)


# ---------------------------------------------------------------------------
# Evaluate page
# ---------------------------------------------------------------------------

def _form_state() -> EvaluationFormState:
    if "evaluation_form" not in st.session_state:
        st.session_state["evaluation_form"] = EvaluationFormState(
            shape=EvaluationShape(settings.evaluation_shape),
        )
    return st.session_state["evaluation_form"]


def render_tag_picker(form: EvaluationFormState) -> None:
    st.caption("Pick each criterion at most once: commend it, recommend it or set it as a challenge.")
    for category, criteria in CRITERIA_CATEGORIES.items():
        with st.expander(category, expanded=True):
            for criterion in criteria:
                current = bucket_of(form.tags, criterion)
                cols = st.columns([4, 1, 1, 1])
                cols[0].markdown(f"**{criterion}**" if current else criterion)
                for col, bucket in zip(cols[1:], FeedbackBucket):
                    selected = current == bucket
                    if col.button(
                        BUCKET_LABELS[bucket],
                        key=f"tag-{bucket.value}-{criterion}",
                        type="primary" if selected else "secondary",
                        use_container_width=True,
                    ):
                        form.toggle_tag(criterion, bucket)
                        st.rerun()

    summary = st.columns(3)
    for col, bucket in zip(summary, FeedbackBucket):
        col.metric(BUCKET_LABELS[bucket], len(form.tags.get(bucket)))


def render_score_inputs(form: EvaluationFormState) -> None:
    options = [0] + list(SCORE_LABELS.keys())
    for name, label in SCORE_DIMENSIONS.items():
        form.set_score(
            name,
            st.radio(
                label,
                options,
                index=options.index(form.scores[name]),
                format_func=lambda v: "-" if v == 0 else f"{v} · {SCORE_LABELS[v]}",
                horizontal=True,
                key=f"score-{name}",
            ),
        )
    form.strengths = st.text_area("Strengths", value=form.strengths)
    form.improvements = st.text_area("Areas to improve", value=form.improvements)


def render_evaluate_page() -> None:
    st.header("📝 Speaker Evaluation")
    form = _form_state()

    meeting = select_meeting(fetch_meetings(recent_only=True), key="evaluate-meeting")
    if meeting is None:
        return

    if form.status == FormStatus.SUBMITTED:
        st.success("✅ Thank you! Your evaluation was submitted.")
        if st.button("Evaluate another speaker"):
            form.reset()
            st.rerun()
        return

    form.evaluator_name = st.text_input("Your name", value=form.evaluator_name)
    form.speaker_name = st.text_input("Speaker name", value=form.speaker_name)
    speech_types = list(SpeechType)
    form.speech_type = st.radio(
        "Speech type",
        speech_types,
        index=speech_types.index(form.speech_type),
        format_func=lambda s: SPEECH_TYPE_LABELS[s.value],
        horizontal=True,
    )

    if form.shape == EvaluationShape.TAGGED:
        render_tag_picker(form)
    else:
        render_score_inputs(form)

    form.comments = st.text_area("Additional comments", value=form.comments)

    if form.error:
        st.error(form.error)

    submitting = form.status == FormStatus.SUBMITTING
    if st.button("Submit evaluation", type="primary", disabled=submitting):
        form.edit()
        with st.spinner("Submitting…"):
            form.submit(get_client(), meeting_id=meeting["id"])
        st.rerun()


# ---------------------------------------------------------------------------
# Reports page
# ---------------------------------------------------------------------------

REPORT_TITLES = {
    ReportKind.AH_UM: "Ah-Um Counter",
    ReportKind.GRAMMARIAN: "Grammarian",
    ReportKind.TIMER: "Timer",
    ReportKind.GENERAL_EVALUATOR: "General Evaluator",
}

# Response keys of GET /api/reports/{meeting_id}
REPORT_KEYS = {
    ReportKind.AH_UM: "ahUm",
    ReportKind.GRAMMARIAN: "grammarian",
    ReportKind.TIMER: "timer",
    ReportKind.GENERAL_EVALUATOR: "generalEvaluator",
}

ENTRY_COLUMNS = {
    "entries:ah_um": {
        "speaker_name": st.column_config.TextColumn("Speaker", required=True),
        "ah_um": st.column_config.NumberColumn("Ah/Um", min_value=0, step=1, default=0),
        "like": st.column_config.NumberColumn("Like", min_value=0, step=1, default=0),
        "so": st.column_config.NumberColumn("So", min_value=0, step=1, default=0),
        "but": st.column_config.NumberColumn("But", min_value=0, step=1, default=0),
        "other": st.column_config.NumberColumn("Other", min_value=0, step=1, default=0),
    },
    "entries:grammarian": {
        "speaker_name": st.column_config.TextColumn("Speaker", required=True),
        "phrase": st.column_config.TextColumn("Phrase", required=True),
        "is_positive": st.column_config.CheckboxColumn("Good usage", default=True),
        "comment": st.column_config.TextColumn("Comment", default=""),
    },
    "entries:timer": {
        "role": st.column_config.SelectboxColumn("Role", options=list(MEETING_ROLES), required=True),
        "speaker_name": st.column_config.TextColumn("Speaker", required=True),
        "title_topic": st.column_config.TextColumn("Title / topic", default=""),
        "duration_seconds": st.column_config.NumberColumn("Seconds", min_value=0, step=1, default=0),
        "status": st.column_config.SelectboxColumn(
            "Light", options=[s.value for s in TimerStatus], default=TimerStatus.GREEN.value
        ),
    },
    "evaluator_feedbacks": {
        "evaluator_name": st.column_config.TextColumn("Evaluator", required=True),
        "speaker_evaluated": st.column_config.TextColumn("Speaker", required=True),
        "rating": st.column_config.NumberColumn("Rating", min_value=1, max_value=5, step=1, default=3),
        "strengths": st.column_config.TextColumn("Strengths", default=""),
        "areas_to_improve": st.column_config.TextColumn("To improve", default=""),
        "comments": st.column_config.TextColumn("Comments", default=""),
    },
    "functionary_feedbacks": {
        "role": st.column_config.SelectboxColumn(
            "Role", options=[r.value for r in FunctionaryRole], required=True
        ),
        "person_name": st.column_config.TextColumn("Name", required=True),
        "rating": st.column_config.NumberColumn("Rating", min_value=1, max_value=5, step=1, default=3),
        "feedback": st.column_config.TextColumn("Feedback", default=""),
    },
}


NUMERIC_COLUMNS = {"ah_um", "like", "so", "but", "other", "duration_seconds", "rating"}


def _clean_rows(rows: List[Dict[str, Any]], columns: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Drop blank editor rows; numeric cells come back from the editor as floats."""
    cleaned = []
    for row in rows:
        if not any(v not in (None, "") for v in row.values()):
            continue
        item = {}
        for name in columns:
            value = row.get(name)
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            if value is None and name not in NUMERIC_COLUMNS and name != "is_positive":
                value = ""
            item[name] = value
        cleaned.append(item)
    return cleaned


def entries_editor(label: str, column_key: str, rows: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    columns = ENTRY_COLUMNS[column_key]
    st.caption(label)
    edited = st.data_editor(
        rows or [{name: None for name in columns}],
        column_config=columns,
        column_order=list(columns.keys()),
        num_rows="dynamic",
        use_container_width=True,
        key=key,
    )
    return _clean_rows(list(edited), columns)


def report_form(kind: ReportKind, existing: Optional[Dict[str, Any]], key: str) -> Optional[Dict[str, Any]]:
    """Render one report form; returns the payload when the user saves."""
    existing = existing or {}
    with st.form(key):
        payload: Dict[str, Any] = {
            "reporter_name": st.text_input("Your name", value=existing.get("reporter_name", "")),
        }
        if kind == ReportKind.AH_UM:
            payload["entries"] = entries_editor("Filler words per speaker", "entries:ah_um", existing.get("entries"), f"{key}-entries")
        elif kind == ReportKind.GRAMMARIAN:
            payload["word_of_day"] = st.text_input("Word of the day", value=existing.get("word_of_day", ""))
            payload["word_of_day_definition"] = st.text_input(
                "Definition", value=existing.get("word_of_day_definition", "")
            )
            payload["entries"] = entries_editor("Observations", "entries:grammarian", existing.get("entries"), f"{key}-entries")
        elif kind == ReportKind.TIMER:
            cols = st.columns(2)
            payload["meeting_start"] = cols[0].text_input("Meeting start", value=existing.get("meeting_start", ""))
            payload["meeting_end"] = cols[1].text_input("Meeting end", value=existing.get("meeting_end", ""))
            payload["entries"] = entries_editor("Timed segments", "entries:timer", existing.get("entries"), f"{key}-entries")
        else:
            payload["evaluator_feedbacks"] = entries_editor(
                "Evaluators", "evaluator_feedbacks", existing.get("evaluator_feedbacks"), f"{key}-evaluators"
            )
            payload["functionary_feedbacks"] = entries_editor(
                "Functionaries", "functionary_feedbacks", existing.get("functionary_feedbacks"), f"{key}-functionaries"
            )
            payload["meeting_highlights"] = st.text_area("Highlights", value=existing.get("meeting_highlights", ""))
            payload["meeting_improvements"] = st.text_area(
                "Improvements", value=existing.get("meeting_improvements", "")
            )
            payload["overall_comments"] = st.text_area("Overall comments", value=existing.get("overall_comments", ""))

        if st.form_submit_button("Save report", type="primary"):
            if not payload["reporter_name"].strip():
                st.error("Please enter your name")
                return None
            return payload
    return None


def render_reports_page() -> None:
    st.header("📋 Functionary Reports")
    meeting = select_meeting(fetch_meetings(), key="reports-meeting")
    if meeting is None:
        return

    kind = st.radio("Role", list(ReportKind), format_func=lambda k: REPORT_TITLES[k], horizontal=True)
    reports = api_get(_path(APIEndpoints.REPORTS, meeting_id=meeting["id"]))
    if reports is None:
        return

    st.subheader(f"New {REPORT_TITLES[kind]} report")
    payload = report_form(kind, None, key=f"new-{kind.value}-{meeting['id']}")
    if payload is not None:
        ok, result = api_send("POST", _path(APIEndpoints.REPORTS, meeting_id=meeting["id"]), {"type": kind.value, **payload})
        if ok:
            st.success("✅ Report saved")
            st.rerun()
        st.error(f"❌ {result}")

    existing = reports.get(REPORT_KEYS[kind], [])
    if existing:
        st.subheader("Saved reports")
    for report in existing:
        with st.expander(f"{report['reporter_name']} · updated {report['updated_at'][:16]}"):
            path = _path(APIEndpoints.REPORT, kind=kind.value, report_id=report["id"])
            updated = report_form(kind, report, key=f"edit-{kind.value}-{report['id']}")
            if updated is not None:
                ok, result = api_send("PUT", path, updated)
                if ok:
                    st.success("✅ Report updated")
                    st.rerun()
                st.error(f"❌ {result}")
            if st.button("🗑️ Delete", key=f"delete-{kind.value}-{report['id']}"):
                ok, result = api_send("DELETE", path)
                if ok:
                    st.rerun()
                st.error(f"❌ {result}")


# ---------------------------------------------------------------------------
# Admin page
# ---------------------------------------------------------------------------

def render_speaker_summary(speakers: List[Dict[str, Any]]) -> None:
    if not speakers:
        st.info("No evaluations yet for this meeting.")
        return
    for speaker in speakers:
        with st.container(border=True):
            cols = st.columns([3, 1, 1, 1, 1])
            cols[0].markdown(f"**{speaker['speaker_name']}**")
            cols[1].metric("Evaluations", speaker["evaluation_count"])
            cols[2].metric("👍", speaker["commend_count"])
            cols[3].metric("💡", speaker["recommend_count"])
            cols[4].metric("🎯", speaker["challenge_count"])
            if speaker.get("average_score") is not None:
                st.caption(f"Average score: {speaker['average_score']}/5")
            for evaluation in speaker["evaluations"]:
                tags = ", ".join(evaluation["commend_tags"] + evaluation["recommend_tags"] + evaluation["challenge_tags"])
                line = f"*{evaluation['evaluator_name']}*"
                if tags:
                    line += f": {tags}"
                if evaluation.get("comments"):
                    line += f"  \n> {evaluation['comments']}"
                st.markdown(line)


def render_admin_page() -> None:
    st.header("🛠️ Admin")

    with st.form("create-meeting"):
        st.subheader("Create meeting")
        name = st.text_input("Meeting name", placeholder="Weekly #42")
        meeting_date = st.date_input("Date", value=date.today())
        if st.form_submit_button("Create", type="primary"):
            ok, result = api_send("POST", APIEndpoints.MEETINGS, {"name": name, "date": meeting_date.isoformat()})
            if ok:
                st.success(f"✅ Created {meeting_label(result)}")
                st.code(result["evaluation_url"])
            else:
                st.error(f"❌ {result}")

    st.markdown("---")
    meeting = select_meeting(fetch_meetings(), key="admin-meeting")
    if meeting is None:
        return

    st.caption("Evaluation link (encode this in the meeting's QR code):")
    st.code(settings.get_evaluation_url(meeting["id"]))

    summary = api_get(_path(APIEndpoints.MEETING_SUMMARY, meeting_id=meeting["id"]))
    if summary is not None:
        render_speaker_summary(summary["speakers"])

    st.subheader("Export")
    cols = st.columns(2)
    try:
        resp = get_client().get(_path(APIEndpoints.MEETING_EXPORT_CSV, meeting_id=meeting["id"]))
        if resp.status_code == 200:
            cols[0].download_button(
                "⬇️ Download CSV",
                data=resp.content,
                file_name=attachment_filename(resp, default=f"evaluations-{meeting['id']}.csv"),
                mime="text/csv",
            )
        else:
            cols[0].error(f"❌ {_error_message(resp)}")
    except httpx.RequestError as e:
        logger.error("csv_export_failed", error=str(e))
        cols[0].error(f"❌ API connection failed: {e}")

    recipient = cols[1].text_input("Mail to", placeholder="club@example.org")
    mail = api_get(
        _path(APIEndpoints.MEETING_EXPORT_MAIL, meeting_id=meeting["id"]),
        params={"to": recipient},
    )
    if mail is not None:
        cols[1].link_button("✉️ Open in mail client", mail["mailto"])
        with st.expander("Preview"):
            st.text(mail["body"])


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

st.title(f"🎤 {settings.app_name}")

PAGES = {
    "Evaluate": render_evaluate_page,
    "Reports": render_reports_page,
    "Admin": render_admin_page,
}

with st.sidebar:
    page = st.radio("Page", list(PAGES.keys()))

PAGES[page]()
