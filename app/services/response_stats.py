"""Dashboard summary and CSV export over a form's responses.

Both are pure functions of the form definition and its response rows; the
caller supplies responses newest first, the order the store returns them in.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Iterator, Sequence

from app.models.common import as_utc, utcnow
from app.models.form import QUESTION_TYPE_MULTIPLE_CHOICE

RECENT_ANSWERS_LIMIT = 10
SECONDS_PER_DAY = 24 * 60 * 60
CSV_FIXED_HEADERS = ("Submission Date", "IP Address")
UNKNOWN_IP = "Unknown"

_FILENAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")


@dataclass
class ChoiceSummary:
    question_id: str
    question: str
    total_answers: int
    option_counts: dict[str, int]
    type: str = QUESTION_TYPE_MULTIPLE_CHOICE


@dataclass
class TextSummary:
    question_id: str
    question: str
    total_answers: int
    recent_answers: list[str]
    type: str = "text"


@dataclass
class ResponseSummary:
    total_responses: int
    average_responses_per_day: float
    question_summaries: list = field(default_factory=list)


def _get(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def find_answer(answers: Iterable[Any] | None, question_id: str) -> dict | None:
    for answer in answers or []:
        if _get(answer, "question_id") == question_id:
            return {"question_id": question_id, "answer": str(_get(answer, "answer") or "")}
    return None


def _round_half_up(value: Decimal, places: str = "0.01") -> float:
    return float(value.quantize(Decimal(places), rounding=ROUND_HALF_UP))


def average_per_day(responses: Sequence[Any], now: datetime | None = None) -> float:
    if not responses:
        return 0
    now = as_utc(now) if now is not None else utcnow()
    oldest = min(as_utc(_get(r, "submitted_at")) for r in responses)
    days_since_first = max(1, math.ceil((now - oldest).total_seconds() / SECONDS_PER_DAY))
    return _round_half_up(Decimal(len(responses)) / Decimal(days_since_first))


def summarize_question(question: dict, responses: Sequence[Any]):
    question_id = question.get("id")
    matched = [
        answer
        for answer in (find_answer(_get(r, "answers"), question_id) for r in responses)
        if answer is not None
    ]
    if question.get("type") == QUESTION_TYPE_MULTIPLE_CHOICE:
        option_counts = {option: 0 for option in question.get("options") or []}
        for answer in matched:
            # Answers outside the declared options are not tallied.
            if answer["answer"] in option_counts:
                option_counts[answer["answer"]] += 1
        return ChoiceSummary(
            question_id=question_id,
            question=question.get("question", ""),
            total_answers=len(matched),
            option_counts=option_counts,
        )
    recent = [a["answer"] for a in matched[:RECENT_ANSWERS_LIMIT] if a["answer"]]
    return TextSummary(
        question_id=question_id,
        question=question.get("question", ""),
        total_answers=len(matched),
        recent_answers=recent,
    )


def summarize(questions: Sequence[dict], responses: Sequence[Any], now: datetime | None = None) -> ResponseSummary:
    total = len(responses)
    if total == 0:
        return ResponseSummary(total_responses=0, average_responses_per_day=0, question_summaries=[])
    return ResponseSummary(
        total_responses=total,
        average_responses_per_day=average_per_day(responses, now),
        question_summaries=[summarize_question(q, responses) for q in questions],
    )


def iso_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def quote_cell(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def export_rows(questions: Sequence[dict], responses: Iterable[Any]) -> Iterator[list[str]]:
    """Yield the header row, then one row per response.

    Answer cells come back quoted; the header, timestamp and ip cells are
    left as they are.
    """
    yield [*CSV_FIXED_HEADERS, *(q.get("question", "") for q in questions)]
    for response in responses:
        row = [
            iso_timestamp(_get(response, "submitted_at")),
            _get(response, "ip_address") or UNKNOWN_IP,
        ]
        answers = _get(response, "answers")
        for question in questions:
            answer = find_answer(answers, question.get("id"))
            row.append(quote_cell(answer["answer"] if answer else ""))
        yield row


def iter_csv(questions: Sequence[dict], responses: Iterable[Any]) -> Iterator[str]:
    """Stream the export as text chunks, rows separated by a newline."""
    for index, row in enumerate(export_rows(questions, responses)):
        line = ",".join(row)
        yield line if index == 0 else "\n" + line


def export_filename(title: str, today: date | None = None) -> str:
    today = today or utcnow().date()
    return f"{_FILENAME_UNSAFE_RE.sub('_', title or '')}_responses_{today.isoformat()}.csv"
