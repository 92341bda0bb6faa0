"""
quiz.py - Daily bet-and-answer quiz

Per local day the quiz moves NO_ATTEMPT -> IN_PROGRESS -> FINISHED, and the
whole state lives in the record log:

    NO_ATTEMPT   no wager record today
    IN_PROGRESS  today's wager exists with finished=False
    FINISHED     today's wager exists with finished=True

Starting a quiz appends a wager (points = -bet) carrying the two drawn
questions. Submitting patches that wager with the results and, if anything
was won, appends a separate payout record. Wager and payout are always two
ledger lines.

Scoring:
    0 correct -> payout 0          (net -bet)
    1 correct -> payout bet        (net 0)
    2 correct -> payout 2 * bet    (net +bet)

A question answered correctly in any past quiz is never drawn again. The
exclusion set is recomputed from the full history on every draw.

Pending answers are local to the caller (QuizAnswers) until submit.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple
import random

from .core import (
    Document, Question, QuestionResult, QuizRecord, Record,
    QUIZ_QUESTION_COUNT,
    ValidationFailure, IncompleteAnswers,
    AlreadyAttemptedToday, InsufficientBalance, InsufficientQuestionPool, NoQuizInProgress,
)
from .daywindow import in_day, local_day_key
from .ledger import append_record, balance, replace_record


class QuizStatus(Enum):
    NO_ATTEMPT = "no_attempt"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


# Payout multiplier of the bet, indexed by number of correct answers.
PAYOUT_MULTIPLIERS = (0, 1, 2)


# ============================================================================
# STATE DERIVATION
# ============================================================================

def todays_wager(
    records: Sequence[Record],
    day: date,
    tz: Optional[tzinfo] = None,
) -> Optional[Tuple[int, QuizRecord]]:
    """
    Find the wager record of a local day.

    Returns:
        (index in records, wager) or None if no quiz was started that day
    """
    for index, record in enumerate(records):
        if isinstance(record, QuizRecord) and record.is_wager and in_day(record.timestamp, day, tz):
            return index, record
    return None


def quiz_status(records: Sequence[Record], day: date, tz: Optional[tzinfo] = None) -> QuizStatus:
    found = todays_wager(records, day, tz)
    if found is None:
        return QuizStatus.NO_ATTEMPT
    return QuizStatus.FINISHED if found[1].finished else QuizStatus.IN_PROGRESS


def current_questions(records: Sequence[Record], day: date, tz: Optional[tzinfo] = None) -> Tuple[Question, ...]:
    """
    Questions of the quiz in progress on `day`, exactly as persisted.

    Reopening mid-quiz resumes these; nothing is redrawn. Empty if no quiz
    is in progress.
    """
    found = todays_wager(records, day, tz)
    if found is None or found[1].finished:
        return ()
    return found[1].questions


def solved_question_codes(records: Sequence[Record]) -> Set[str]:
    """Codes of every question ever answered correctly, across all days."""
    return {
        result.question_code
        for record in records
        if isinstance(record, QuizRecord) and record.is_wager
        for result in record.question_results
        if result.correct
    }


def eligible_questions(catalog: Sequence[Question], records: Sequence[Record]) -> List[Question]:
    """Catalog questions not yet solved, in catalog order."""
    solved = solved_question_codes(records)
    return [q for q in catalog if q.code not in solved]


def payout_for(correct_count: int, bet: int) -> int:
    """Points paid back for a submitted quiz."""
    if not 0 <= correct_count < len(PAYOUT_MULTIPLIERS):
        raise ValueError(f"correct_count out of range: {correct_count}")
    return PAYOUT_MULTIPLIERS[correct_count] * bet


# ============================================================================
# PENDING ANSWERS
# ============================================================================

class QuizAnswers:
    """
    Answers selected before submit. Local only, never persisted.

    Selections can be overwritten any number of times until submit.
    """

    def __init__(self, questions: Sequence[Question]):
        self.questions: Tuple[Question, ...] = tuple(questions)
        self._selected: Dict[int, str] = {}

    def answer(self, index: int, choice: str) -> None:
        """
        Select a choice letter for one question.

        Raises:
            ValidationFailure: If the index or the letter is out of range
        """
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.questions):
            raise ValidationFailure(f"Question index out of range: {index!r}")
        letter = str(choice).strip().upper()
        if letter not in self.questions[index].choice_letters():
            raise ValidationFailure(
                f"Choice {choice!r} is not one of {self.questions[index].choice_letters()}"
            )
        self._selected[index] = letter

    def selected(self, index: int) -> Optional[str]:
        return self._selected.get(index)

    def is_complete(self) -> bool:
        return bool(self.questions) and all(i in self._selected for i in range(len(self.questions)))

    def as_tuple(self) -> Tuple[Optional[str], ...]:
        return tuple(self._selected.get(i) for i in range(len(self.questions)))

    def __repr__(self):
        return f"QuizAnswers({self.as_tuple()})"


# ============================================================================
# TRANSITIONS
# ============================================================================

def start_quiz(
    doc: Document,
    catalog: Sequence[Question],
    bet: int,
    now: datetime,
    rng: Optional[random.Random] = None,
    tz: Optional[tzinfo] = None,
) -> Document:
    """
    Place today's wager and draw its questions.

    Args:
        doc: Current Document
        catalog: All quiz questions
        bet: Points wagered (positive integer)
        now: Current instant (aware)
        rng: Random source for the draw (module random if None)
        tz: Local zone

    Returns:
        New Document with the wager appended

    Raises:
        ValidationFailure: If bet is not a positive integer
        AlreadyAttemptedToday: If a wager already exists today
        InsufficientBalance: If balance < bet
        InsufficientQuestionPool: If fewer than two unsolved questions remain
    """
    if isinstance(bet, bool) or not isinstance(bet, int) or bet <= 0:
        raise ValidationFailure(f"Bet must be a positive integer, got {bet!r}")

    today = local_day_key(now, tz)
    if quiz_status(doc.records, today, tz) is not QuizStatus.NO_ATTEMPT:
        raise AlreadyAttemptedToday(f"A quiz was already started on {today}")

    current = balance(doc.records)
    if current < bet:
        raise InsufficientBalance(f"Bet {bet} exceeds balance {current}")

    pool = eligible_questions(catalog, doc.records)
    if len(pool) < QUIZ_QUESTION_COUNT:
        raise InsufficientQuestionPool(
            f"Only {len(pool)} unsolved questions left, {QUIZ_QUESTION_COUNT} needed"
        )

    drawn = (rng or random).sample(pool, QUIZ_QUESTION_COUNT)
    wager = QuizRecord(
        points=-bet,
        timestamp=now,
        bet_points=bet,
        questions=tuple(drawn),
        question_results=(),
        correct_count=0,
        finished=False,
    )
    return append_record(doc, wager)


def grade(questions: Sequence[Question], answers: Sequence[Optional[str]]) -> Tuple[QuestionResult, ...]:
    """Compare each answer letter with the question's answer code."""
    return tuple(
        QuestionResult(
            question_code=q.code,
            question=q.question,
            user_answer=a or "",
            correct_answer=q.answer,
            correct=a is not None and a == q.answer,
        )
        for q, a in zip(questions, answers)
    )


def submit_quiz(
    doc: Document,
    answers: Sequence[Optional[str]],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Document:
    """
    Grade today's quiz, finish the wager, and append the payout if any.

    Args:
        doc: Current Document
        answers: One choice letter per question, in question order
        now: Current instant (aware)
        tz: Local zone

    Returns:
        New Document with the patched wager and optional payout record

    Raises:
        NoQuizInProgress: If no unfinished wager exists today
        IncompleteAnswers: If any answer is missing
    """
    today = local_day_key(now, tz)
    found = todays_wager(doc.records, today, tz)
    if found is None or found[1].finished:
        raise NoQuizInProgress(f"No quiz in progress on {today}")
    index, wager = found

    answers = tuple(answers)
    if len(answers) != len(wager.questions) or any(a is None or a == "" for a in answers):
        raise IncompleteAnswers(
            f"All {len(wager.questions)} questions need an answer before submitting"
        )

    results = grade(wager.questions, answers)
    correct = sum(1 for r in results if r.correct)
    finished = replace(wager, question_results=results, correct_count=correct, finished=True)
    doc = replace_record(doc, index, finished)

    payout = payout_for(correct, wager.bet_points)
    if payout > 0:
        doc = append_record(doc, QuizRecord(
            points=payout,
            timestamp=now,
            reason=f"Quiz payout: {correct}/{len(results)} correct on a {wager.bet_points}-point bet",
            finished=True,
        ))
    return doc


# ============================================================================
# REVIEW
# ============================================================================

@dataclass(frozen=True, slots=True)
class QuizReview:
    """Read-only replay of a finished quiz."""
    day: date
    bet_points: int
    correct_count: int
    payout: int
    net: int
    questions: Tuple[Question, ...]
    results: Tuple[QuestionResult, ...]


def _review(wager: QuizRecord, tz: Optional[tzinfo]) -> QuizReview:
    payout = payout_for(wager.correct_count, wager.bet_points)
    return QuizReview(
        day=local_day_key(wager.timestamp, tz),
        bet_points=wager.bet_points,
        correct_count=wager.correct_count,
        payout=payout,
        net=payout - wager.bet_points,
        questions=wager.questions,
        results=wager.question_results,
    )


def review_quiz(records: Sequence[Record], day: date, tz: Optional[tzinfo] = None) -> Optional[QuizReview]:
    """Replay the finished quiz of `day`, or None if there is none."""
    found = todays_wager(records, day, tz)
    if found is None or not found[1].finished:
        return None
    return _review(found[1], tz)


def list_finished_quizzes(records: Sequence[Record], tz: Optional[tzinfo] = None) -> List[QuizReview]:
    """Every finished quiz in chronological order."""
    return [
        _review(record, tz)
        for record in records
        if isinstance(record, QuizRecord) and record.is_wager and record.finished
    ]
