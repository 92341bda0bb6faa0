"""
codec.py - Wire format for documents and catalogs

Document wire shape:

    {
        "records": [{"type": "task", "points": 5, "date": "2025-01-01T08:00:00.000Z",
                     "taskCode": "read", "taskName": "Read a book"}, ...],
        "lastSignInDate": "2025-01-01"
    }

Decoding is a best-effort default-filling pass: fields missing from older
documents get their defaults. Anything that cannot be given a safe default
(an unknown record type, an unparseable date) raises DocumentFormatError
instead of being dropped, because the next write would erase it for good.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from .core import (
    Document, Record, RecordType,
    SignInRecord, TaskRecord, RewardRecord, ManualRecord, QuizRecord,
    Task, Reward, Question, QuestionResult,
    DocumentFormatError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# SCALARS
# ============================================================================

def format_instant(instant: datetime) -> str:
    """
    ISO-8601 in UTC with a Z suffix.

    Millisecond precision when that is exact, microseconds otherwise, so
    decoding always yields an equal instant.
    """
    utc = instant.astimezone(timezone.utc)
    timespec = "milliseconds" if utc.microsecond % 1000 == 0 else "microseconds"
    return utc.isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_instant(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive timestamps are taken as UTC.

    Raises:
        DocumentFormatError: If the value is not a parseable timestamp
    """
    if not isinstance(value, str) or not value:
        raise DocumentFormatError(f"Invalid record date: {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise DocumentFormatError(f"Invalid record date: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _int(value: Any, default: int, field_name: str) -> int:
    if value is None:
        logger.debug("Filling missing %s with %r", field_name, default)
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise DocumentFormatError(f"{field_name} is not an integer: {value!r}") from e


def _optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return _int(value, 0, field_name)


def _str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


# ============================================================================
# QUIZ PARTS
# ============================================================================

def question_to_dict(question: Question) -> Dict[str, Any]:
    return {
        "code": question.code,
        "question": question.question,
        "choices": list(question.choices),
        "answer": question.answer,
    }


def question_from_dict(data: Dict[str, Any]) -> Question:
    return Question(
        code=_str(data.get("code")),
        question=_str(data.get("question")),
        choices=tuple(_str(c) for c in data.get("choices") or ()),
        answer=_str(data.get("answer")).strip().upper(),
    )


def _result_to_dict(result: QuestionResult) -> Dict[str, Any]:
    return {
        "questionCode": result.question_code,
        "question": result.question,
        "userAnswer": result.user_answer,
        "correctAnswer": result.correct_answer,
        "correct": result.correct,
    }


def _result_from_dict(data: Dict[str, Any]) -> QuestionResult:
    user_answer = _str(data.get("userAnswer"))
    correct_answer = _str(data.get("correctAnswer"))
    correct = data.get("correct")
    if correct is None:
        correct = bool(user_answer) and user_answer == correct_answer
    return QuestionResult(
        question_code=_str(data.get("questionCode")),
        question=_str(data.get("question")),
        user_answer=user_answer,
        correct_answer=correct_answer,
        correct=bool(correct),
    )


# ============================================================================
# RECORDS
# ============================================================================

def record_to_dict(record: Record) -> Dict[str, Any]:
    """Encode one record to its wire dict."""
    data: Dict[str, Any] = {
        "type": record.record_type.value,
        "points": record.points,
        "date": format_instant(record.timestamp),
    }
    if isinstance(record, TaskRecord):
        data["taskCode"] = record.task_code
        data["taskName"] = record.task_name
    elif isinstance(record, RewardRecord):
        data["rewardCode"] = record.reward_code
        data["rewardName"] = record.reward_name
        data["used"] = record.used
        if record.used_at is not None:
            data["usedAt"] = format_instant(record.used_at)
    elif isinstance(record, ManualRecord):
        data["reason"] = record.reason
    elif isinstance(record, QuizRecord):
        if record.is_wager:
            data["betPoints"] = record.bet_points
            data["questions"] = [question_to_dict(q) for q in record.questions]
            data["questionResults"] = [_result_to_dict(r) for r in record.question_results]
            data["correctCount"] = record.correct_count
        else:
            data["reason"] = record.reason
        data["finished"] = record.finished
    return data


def record_from_dict(data: Dict[str, Any]) -> Record:
    """
    Decode one wire record, filling defaults for missing optional fields.

    Raises:
        DocumentFormatError: If the type is unknown or the date is invalid
    """
    if not isinstance(data, dict):
        raise DocumentFormatError(f"Record must be an object, got {type(data).__name__}")
    try:
        record_type = RecordType(data.get("type"))
    except ValueError as e:
        raise DocumentFormatError(f"Unknown record type: {data.get('type')!r}") from e

    points = _int(data.get("points"), 0, "points")
    timestamp = parse_instant(data.get("date"))

    try:
        if record_type is RecordType.SIGN_IN:
            return SignInRecord(points=points, timestamp=timestamp)
        if record_type is RecordType.TASK:
            return TaskRecord(
                points=points,
                timestamp=timestamp,
                task_code=_str(data.get("taskCode")),
                task_name=_str(data.get("taskName")),
            )
        if record_type is RecordType.REWARD:
            used_at = data.get("usedAt")
            used = bool(data.get("used", False)) or bool(used_at)
            return RewardRecord(
                points=points,
                timestamp=timestamp,
                reward_code=_str(data.get("rewardCode")),
                reward_name=_str(data.get("rewardName")),
                used=used,
                # A legacy "used" flag without a timestamp is pinned to the redemption time.
                used_at=parse_instant(used_at) if used_at else (timestamp if used else None),
            )
        if record_type is RecordType.MANUAL:
            return ManualRecord(
                points=points,
                timestamp=timestamp,
                reason=_str(data.get("reason")) or "manual adjustment",
            )
        bet_points = _optional_int(data.get("betPoints"), "betPoints")
        results = tuple(_result_from_dict(r) for r in data.get("questionResults") or ())
        finished = data.get("finished")
        if finished is None:
            finished = bool(results) if bet_points is not None else True
        return QuizRecord(
            points=points,
            timestamp=timestamp,
            bet_points=bet_points,
            questions=tuple(question_from_dict(q) for q in data.get("questions") or ()),
            question_results=results,
            correct_count=_int(
                data.get("correctCount"), sum(1 for r in results if r.correct), "correctCount"
            ),
            finished=bool(finished),
            reason=_str(data.get("reason")),
        )
    except ValueError as e:
        raise DocumentFormatError(f"Invalid {record_type.value} record: {e}") from e


# ============================================================================
# DOCUMENT
# ============================================================================

def document_to_dict(doc: Document) -> Dict[str, Any]:
    return {
        "records": [record_to_dict(r) for r in doc.records],
        "lastSignInDate": doc.last_sign_in_date,
    }


def document_from_dict(data: Optional[Dict[str, Any]]) -> Document:
    """
    Decode a wire document.

    A missing or null payload decodes to an empty Document.

    Raises:
        DocumentFormatError: If the payload or any record is malformed
    """
    if data is None:
        return Document()
    if not isinstance(data, dict):
        raise DocumentFormatError(f"Document must be an object, got {type(data).__name__}")
    raw_records = data.get("records")
    if raw_records is None:
        raw_records = []
    if not isinstance(raw_records, list):
        raise DocumentFormatError("Document 'records' must be a list")
    return Document(
        records=tuple(record_from_dict(r) for r in raw_records),
        last_sign_in_date=_str(data.get("lastSignInDate")),
    )


# ============================================================================
# CATALOGS
# ============================================================================

def task_from_dict(data: Dict[str, Any]) -> Task:
    return Task(
        code=_str(data.get("code")),
        name=_str(data.get("name")),
        points=_int(data.get("points"), 0, "points"),
        max_daily_times=_optional_int(data.get("maxDailyTimes"), "maxDailyTimes"),
        description=_str(data.get("description")),
    )


def reward_from_dict(data: Dict[str, Any]) -> Reward:
    return Reward(
        code=_str(data.get("code")),
        name=_str(data.get("name")),
        points=_int(data.get("points"), 0, "points"),
        max_daily_times=_optional_int(data.get("maxDailyTimes"), "maxDailyTimes"),
    )


def load_catalog(raw: Any, parser: Callable[[Dict[str, Any]], T]) -> List[T]:
    """
    Parse a flat catalog list with one of the *_from_dict parsers.

    A null payload is an empty catalog.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise DocumentFormatError(f"Catalog must be a list, got {type(raw).__name__}")
    return [parser(item) for item in raw]
