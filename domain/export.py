"""
Admin aggregation and export formatting (pure functions).

* ``group_by_speaker``: per-speaker roll-up (tag counts, mean score).
* ``evaluations_to_csv``: one row per evaluation, fixed column order.
* ``build_mail_report`` / ``build_mailto_url``: plain-text report for the
  user's own mail client.
"""

from __future__ import annotations

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from domain.models import Evaluation, Meeting, SpeakerSummary
from shared_utils.constants import SPEECH_TYPE_LABELS


CSV_HEADERS: Tuple[str, ...] = (
    "Speaker",
    "Evaluator",
    "Type",
    "Shape",
    "Commendations",
    "Recommendations",
    "Challenges",
    "Content",
    "Delivery",
    "Language",
    "Time",
    "Overall",
    "Strengths",
    "Improvements",
    "Comments",
    "Submitted At",
)

TAG_SEPARATOR = ", "


def average_score(evaluations: Sequence[Evaluation]) -> Optional[float]:
    """Mean of all five scores over the scored evaluations, one decimal.

    Rounds half-up (3.25 -> 3.3). Returns ``None`` without scored data.
    """
    values = [score for e in evaluations for score in e.scores()]
    if not values:
        return None
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def group_by_speaker(evaluations: Sequence[Evaluation]) -> List[SpeakerSummary]:
    """Group by exact ``speaker_name`` (case-sensitive, no normalization)."""
    groups: Dict[str, List[Evaluation]] = {}
    for evaluation in evaluations:
        groups.setdefault(evaluation.speaker_name, []).append(evaluation)

    summaries = []
    for speaker, evals in groups.items():
        commend = sum(len(e.commend_tags) for e in evals)
        recommend = sum(len(e.recommend_tags) for e in evals)
        challenge = sum(len(e.challenge_tags) for e in evals)
        summaries.append(
            SpeakerSummary(
                speaker_name=speaker,
                evaluation_count=len(evals),
                commend_count=commend,
                recommend_count=recommend,
                challenge_count=challenge,
                tag_count=commend + recommend + challenge,
                average_score=average_score(evals),
                evaluations=evals,
            )
        )
    return summaries


def _csv_row(e: Evaluation) -> list:
    return [
        e.speaker_name,
        e.evaluator_name,
        SPEECH_TYPE_LABELS.get(e.speech_type.value, e.speech_type.value),
        e.shape.value,
        TAG_SEPARATOR.join(e.commend_tags),
        TAG_SEPARATOR.join(e.recommend_tags),
        TAG_SEPARATOR.join(e.challenge_tags),
        e.content_score,
        e.delivery_score,
        e.language_score,
        e.time_score,
        e.overall_score,
        e.strengths,
        e.improvements,
        e.comments,
        e.created_at.isoformat(),
    ]


def evaluations_to_csv(evaluations: Sequence[Evaluation]) -> str:
    """Render evaluations as CSV text.

    Text fields are always quoted with embedded quotes doubled; scores are
    bare numbers and missing scores are empty quoted cells.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for evaluation in evaluations:
        writer.writerow(_csv_row(evaluation))
    return buffer.getvalue()


def csv_filename(meeting: Meeting) -> str:
    safe = "".join(c if c.isalnum() or c in "-_" else "-" for c in meeting.name).strip("-")
    return f"evaluations-{safe or 'export'}.csv"


def mail_subject(meeting: Meeting) -> str:
    return f"Evaluation Report - {meeting.name} ({meeting.date.isoformat()})"


def _bullets(title: str, items: Sequence[str]) -> List[str]:
    if not items:
        return []
    return [f"{title}:"] + [f"  - {item}" for item in items]


def build_mail_report(meeting: Meeting, evaluations: Sequence[Evaluation]) -> str:
    """Plain-text report grouped by speaker with bulleted tag buckets."""
    lines = [
        f"Evaluation Report: {meeting.name}",
        f"Date: {meeting.date.isoformat()}",
        "",
    ]
    if not evaluations:
        lines.append("No evaluations were submitted.")
        return "\n".join(lines)

    for summary in group_by_speaker(evaluations):
        count = summary.evaluation_count
        lines.append(f"=== {summary.speaker_name} ===")
        lines.append(f"{count} evaluation{'s' if count != 1 else ''}")
        if summary.average_score is not None:
            lines.append(f"Average score: {summary.average_score}/5")

        evals = summary.evaluations
        lines += _bullets("Commendations", [t for e in evals for t in e.commend_tags])
        lines += _bullets("Recommendations", [t for e in evals for t in e.recommend_tags])
        lines += _bullets("Challenges", [t for e in evals for t in e.challenge_tags])
        lines += _bullets("Strengths", [f"{e.evaluator_name}: {e.strengths}" for e in evals if e.strengths])
        lines += _bullets("Improvements", [f"{e.evaluator_name}: {e.improvements}" for e in evals if e.improvements])
        lines += _bullets("Comments", [f"{e.evaluator_name}: {e.comments}" for e in evals if e.comments])
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def build_mailto_url(subject: str, body: str, recipient: str = "") -> str:
    """``mailto:`` link that opens the user's mail composer pre-filled."""
    return (
        f"mailto:{quote(recipient, safe='@,')}"
        f"?subject={quote(subject, safe='')}&body={quote(body, safe='')}"
    )
