"""
Core types for the points ledger.

This module provides the foundational data structures used by every other module:
1. Record variants: SignInRecord, TaskRecord, RewardRecord, ManualRecord, QuizRecord
2. The persisted aggregate: Document
3. Catalog entities: Task, Reward, Question (externally supplied, never persisted)
4. Exceptions: PointsError and the failure taxonomy

All types are immutable. State changes produce new instances; nothing in this
module performs I/O.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union


# ============================================================================
# CONSTANTS
# ============================================================================

# Number of questions drawn for one quiz attempt.
QUIZ_QUESTION_COUNT = 2

# Letters used to label question choices, in order.
CHOICE_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# ============================================================================
# ENUMS
# ============================================================================

class RecordType(Enum):
    """
    Kind of ledger entry.

    Values are the strings stored in the persisted document.
    """
    SIGN_IN = "sign_in"
    TASK = "task"
    REWARD = "reward"
    MANUAL = "manual"
    QUIZ = "quiz"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PointsError(Exception):
    """Base exception for all points-ledger errors."""
    pass


class TransportFailure(PointsError):
    """Raised when the document store cannot be read or written."""
    pass


class ConflictFailure(PointsError):
    """Raised when a write is rejected because the store changed since it was read."""
    pass


class DocumentFormatError(PointsError):
    """Raised when a persisted document cannot be decoded."""
    pass


class ValidationFailure(PointsError):
    """Raised when user input is rejected before any record is built."""
    pass


class IncompleteAnswers(ValidationFailure):
    """Raised when a quiz is submitted before every question has an answer."""
    pass


class BusinessRuleFailure(PointsError):
    """Raised when an action is well-formed but not allowed by the game rules."""
    pass


class DailyCapReached(BusinessRuleFailure):
    """Raised when a task or reward has hit its per-day limit."""
    pass


class InsufficientBalance(BusinessRuleFailure):
    """Raised when the current balance cannot cover a redemption or a bet."""
    pass


class AlreadySignedInToday(BusinessRuleFailure):
    """Raised on a second sign-in within the same local day."""
    pass


class AlreadyAttemptedToday(BusinessRuleFailure):
    """Raised when a quiz wager already exists for today."""
    pass


class InsufficientQuestionPool(BusinessRuleFailure):
    """Raised when fewer unsolved questions remain than a quiz needs."""
    pass


class NoQuizInProgress(BusinessRuleFailure):
    """Raised when answers are given or submitted with no open quiz for today."""
    pass


class VoucherAlreadyUsed(BusinessRuleFailure):
    """Raised when a reward voucher is used twice (or cannot be found unused)."""
    pass


class UnknownCatalogItem(BusinessRuleFailure):
    """Raised when a task or reward code is not in the loaded catalog."""
    pass


class ActionInFlight(BusinessRuleFailure):
    """Raised when an action is invoked while the same kind of action is still running."""
    pass


# ============================================================================
# CATALOG ENTITIES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Task:
    """
    A task the user can complete for points.

    Attributes:
        code: Stable identifier, used to count completions.
        name: Display name.
        points: Points granted per completion.
        max_daily_times: Completion cap per local day (None = unlimited).
        description: Free text.
    """
    code: str
    name: str
    points: int
    max_daily_times: Optional[int] = None
    description: str = ""


@dataclass(frozen=True, slots=True)
class Reward:
    """
    A reward the user can redeem with points.

    Attributes:
        code: Stable identifier, used to count redemptions.
        name: Display name.
        points: Cost of one redemption (positive).
        max_daily_times: Redemption cap per local day (None = unlimited).
    """
    code: str
    name: str
    points: int
    max_daily_times: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Question:
    """
    A multiple-choice quiz question.

    `answer` is the letter of the correct choice ("A" for choices[0], ...).
    """
    code: str
    question: str
    choices: Tuple[str, ...]
    answer: str

    def __post_init__(self):
        if not isinstance(self.choices, tuple):
            object.__setattr__(self, 'choices', tuple(self.choices))
        object.__setattr__(self, 'answer', str(self.answer).strip().upper())

    def choice_letters(self) -> Tuple[str, ...]:
        """Return the letters that label this question's choices."""
        return tuple(CHOICE_LETTERS[:len(self.choices)])


@dataclass(frozen=True, slots=True)
class QuestionResult:
    """Outcome of one answered quiz question, stored on the wager record."""
    question_code: str
    question: str
    user_answer: str
    correct_answer: str
    correct: bool


# ============================================================================
# RECORDS
# ============================================================================

def _check_common(points: int, timestamp: datetime) -> None:
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValueError(f"Record points must be int, got {type(points).__name__}")
    if not isinstance(timestamp, datetime):
        raise ValueError(f"Record timestamp must be datetime, got {type(timestamp).__name__}")
    if timestamp.tzinfo is None:
        raise ValueError("Record timestamp must be timezone-aware")


@dataclass(frozen=True, slots=True)
class SignInRecord:
    """Daily sign-in with a random point delta."""
    record_type: ClassVar[RecordType] = RecordType.SIGN_IN

    points: int
    timestamp: datetime

    def __post_init__(self):
        _check_common(self.points, self.timestamp)


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """One completion of a catalog task."""
    record_type: ClassVar[RecordType] = RecordType.TASK

    points: int
    timestamp: datetime
    task_code: str = ""
    task_name: str = ""

    def __post_init__(self):
        _check_common(self.points, self.timestamp)


@dataclass(frozen=True, slots=True)
class RewardRecord:
    """
    One redemption of a catalog reward.

    An unused RewardRecord is a voucher. `used` moves from False to True
    exactly once, and `used_at` is set if and only if `used` is True.
    """
    record_type: ClassVar[RecordType] = RecordType.REWARD

    points: int
    timestamp: datetime
    reward_code: str = ""
    reward_name: str = ""
    used: bool = False
    used_at: Optional[datetime] = None

    def __post_init__(self):
        _check_common(self.points, self.timestamp)
        if self.used != (self.used_at is not None):
            raise ValueError("RewardRecord used_at must be set iff used is True")


@dataclass(frozen=True, slots=True)
class ManualRecord:
    """Manual adjustment with a mandatory reason."""
    record_type: ClassVar[RecordType] = RecordType.MANUAL

    points: int
    timestamp: datetime
    reason: str = ""

    def __post_init__(self):
        _check_common(self.points, self.timestamp)
        if not self.reason or not self.reason.strip():
            raise ValueError("ManualRecord reason cannot be empty")


@dataclass(frozen=True, slots=True)
class QuizRecord:
    """
    A quiz ledger line: either the wager or the payout of an attempt.

    Wager: bet_points > 0, points == -bet_points, two questions, results filled
    on submit, finished flips to True on submit. This is the only record that
    is patched after it is appended.

    Payout: bet_points is None, points > 0, reason set, no question fields.
    """
    record_type: ClassVar[RecordType] = RecordType.QUIZ

    points: int
    timestamp: datetime
    bet_points: Optional[int] = None
    questions: Tuple[Question, ...] = ()
    question_results: Tuple[QuestionResult, ...] = ()
    correct_count: int = 0
    finished: bool = False
    reason: str = ""

    def __post_init__(self):
        _check_common(self.points, self.timestamp)
        if not isinstance(self.questions, tuple):
            object.__setattr__(self, 'questions', tuple(self.questions))
        if not isinstance(self.question_results, tuple):
            object.__setattr__(self, 'question_results', tuple(self.question_results))
        if not 0 <= self.correct_count <= QUIZ_QUESTION_COUNT:
            raise ValueError(f"QuizRecord correct_count out of range: {self.correct_count}")

    @property
    def is_wager(self) -> bool:
        return self.bet_points is not None


Record = Union[SignInRecord, TaskRecord, RewardRecord, ManualRecord, QuizRecord]


# ============================================================================
# DOCUMENT
# ============================================================================

@dataclass(frozen=True, slots=True)
class Document:
    """
    The persisted aggregate.

    Attributes:
        records: Ledger entries in append (chronological) order.
        last_sign_in_date: ISO date of the last sign-in, or '' if none.

    Balance and usage counters are never stored; they are always derived
    from `records`.
    """
    records: Tuple[Record, ...] = field(default_factory=tuple)
    last_sign_in_date: str = ""

    def __post_init__(self):
        if not isinstance(self.records, tuple):
            object.__setattr__(self, 'records', tuple(self.records))

    def __repr__(self) -> str:
        return f"Document({len(self.records)} records, last_sign_in={self.last_sign_in_date!r})"


def empty_document() -> Document:
    """Return a Document with no records and no sign-in."""
    return Document(records=(), last_sign_in_date="")
