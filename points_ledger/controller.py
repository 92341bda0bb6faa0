"""
controller.py - Single owner of the user's ledger state

PointsController is the one object an application talks to. It owns:
    - the last Document and token read from or written to the store
    - the catalog
    - the pending (unsubmitted) quiz answers
    - one Idle/InFlight guard per kind of action

Every mutating action runs its validation inside the SyncEngine mutator, so
rules are always checked against a freshly read Document. The cached
Document is replaced only after the store accepts a write: a rejected
action, a conflict or a transport failure leaves it exactly as it was.

Guards are per action kind. A second sign-in while one is in flight is
rejected with ActionInFlight; a sign-in and a task completion may interleave,
and whichever writes last wins at document granularity.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone, tzinfo
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple
import logging
import random
import threading

from .core import (
    Document, Question, Record, RewardRecord, QuizRecord,
    PointsError, ConflictFailure, ActionInFlight, AlreadySignedInToday,
    IncompleteAnswers, NoQuizInProgress,
)
from .catalog import Catalog, load_catalog_files
from .config import Settings, configure_logging
from .daywindow import day_string, local_day_key
from .ledger import (
    TaskView, RewardView,
    balance, derive_task_view, derive_reward_view, list_open_vouchers, records_newest_first,
    check_task_cap, check_reward_cap,
    sign_in_record, task_record, reward_record, manual_record,
    append_record, with_last_sign_in, use_voucher,
)
from . import quiz
from .quiz import QuizAnswers, QuizReview, QuizStatus
from .store import create_store
from .sync import Mutator, SyncEngine

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_SIGN_IN_CHOICES = (-5, 0, 5, 10)


class ActionKind(Enum):
    SIGN_IN = "sign_in"
    COMPLETE_TASK = "complete_task"
    REDEEM_REWARD = "redeem_reward"
    USE_VOUCHER = "use_voucher"
    MANUAL_ENTRY = "manual_entry"
    START_QUIZ = "start_quiz"
    SUBMIT_QUIZ = "submit_quiz"


class ActionState(Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class PointsController:
    """
    Application-facing controller for one user's points.

    Example:
        controller = PointsController(SyncEngine(MemoryStore()), catalog)
        controller.refresh()
        controller.sign_in()
        controller.complete_task("read")
        print(controller.balance)
    """

    def __init__(
        self,
        engine: SyncEngine,
        catalog: Optional[Catalog] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        tz: Optional[tzinfo] = None,
        sign_in_choices: Sequence[int] = DEFAULT_SIGN_IN_CHOICES,
    ):
        """
        Create a controller.

        Args:
            engine: Sync engine bound to the document store
            catalog: Tasks, rewards and questions (empty if None)
            clock: Returns the current aware instant (UTC wall clock if None)
            rng: Random source for sign-in points and question draws
            tz: Local zone for day boundaries (system zone if None)
            sign_in_choices: Point deltas a sign-in draws from
        """
        if not sign_in_choices:
            raise ValueError("sign_in_choices cannot be empty")
        self.engine = engine
        self.catalog = catalog or Catalog()
        self.clock = clock or system_clock
        self.rng = rng or random.Random()
        self.tz = tz
        self.sign_in_choices: Tuple[int, ...] = tuple(sign_in_choices)

        self.document: Document = Document()
        self.token: Optional[str] = None
        self.loaded = False

        self._actions: Dict[ActionKind, ActionState] = {kind: ActionState.IDLE for kind in ActionKind}
        self._actions_lock = threading.Lock()
        self._answers: Optional[QuizAnswers] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> 'PointsController':
        """Configure logging, then wire store, engine and catalog from configuration."""
        configure_logging(settings.LOG_LEVEL)
        store = create_store(settings.STORE_BACKEND, settings.STORE_PATH)
        catalog = load_catalog_files(settings.TASKS_PATH, settings.REWARDS_PATH, settings.QUESTIONS_PATH)
        return cls(
            SyncEngine(store),
            catalog,
            tz=settings.tzinfo(),
            sign_in_choices=settings.SIGN_IN_CHOICES,
        )

    # ========================================================================
    # STATE
    # ========================================================================

    def refresh(self) -> Document:
        """
        Reload the Document from the store.

        Raises:
            TransportFailure: If the store cannot be read; the cache is kept
        """
        self.document, self.token = self.engine.load()
        self.loaded = True
        return self.document

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.refresh()

    def action_state(self, kind: ActionKind) -> ActionState:
        return self._actions[kind]

    def today(self) -> date:
        return local_day_key(self.clock(), self.tz)

    @contextmanager
    def _action(self, kind: ActionKind) -> Iterator[None]:
        with self._actions_lock:
            if self._actions[kind] is ActionState.IN_FLIGHT:
                raise ActionInFlight(f"{kind.value} is already in progress")
            self._actions[kind] = ActionState.IN_FLIGHT
        try:
            yield
        finally:
            with self._actions_lock:
                self._actions[kind] = ActionState.IDLE

    def _commit(self, kind: ActionKind, mutator: Mutator) -> Document:
        """Run one guarded read-modify-write cycle and adopt its result."""
        with self._action(kind):
            try:
                outcome = self.engine.apply(mutator)
            except PointsError as e:
                logger.info("%s rejected: %s", kind.value, e)
                raise
            if not outcome.applied:
                raise ConflictFailure(f"{kind.value} lost a concurrent write; reload and retry")
            self.document, self.token = outcome.document, outcome.token
            self.loaded = True
            return self.document

    # ========================================================================
    # VIEWS
    # ========================================================================

    @property
    def balance(self) -> int:
        self._ensure_loaded()
        return balance(self.document.records)

    def task_views(self) -> List[TaskView]:
        self._ensure_loaded()
        return derive_task_view(self.catalog.tasks, self.document.records, self.today(), self.tz)

    def reward_views(self) -> List[RewardView]:
        self._ensure_loaded()
        return derive_reward_view(self.catalog.rewards, self.document.records, self.today(), self.tz)

    def open_vouchers(self) -> List[RewardRecord]:
        """Unused vouchers, most recent first."""
        self._ensure_loaded()
        return sorted(list_open_vouchers(self.document.records), key=lambda r: r.timestamp, reverse=True)

    def history(self) -> List[Record]:
        self._ensure_loaded()
        return records_newest_first(self.document.records)

    def signed_in_today(self) -> bool:
        self._ensure_loaded()
        return self.document.last_sign_in_date == day_string(self.today())

    # ========================================================================
    # ACTIONS
    # ========================================================================

    def sign_in(self) -> int:
        """
        Sign in for today and draw a random point delta.

        Returns:
            The points granted (may be negative or zero)

        Raises:
            AlreadySignedInToday: If today's sign-in already exists
        """
        now = self.clock()
        today = day_string(local_day_key(now, self.tz))
        drawn: List[int] = []

        def mutate(doc: Document) -> Document:
            if doc.last_sign_in_date == today:
                raise AlreadySignedInToday(f"Already signed in on {today}")
            points = self.rng.choice(self.sign_in_choices)
            drawn.append(points)
            return with_last_sign_in(append_record(doc, sign_in_record(points, now)), today)

        self._commit(ActionKind.SIGN_IN, mutate)
        return drawn[-1]

    def complete_task(self, code: str) -> Record:
        """
        Complete a catalog task once.

        Raises:
            UnknownCatalogItem: If the code is not in the catalog
            DailyCapReached: If today's cap is already used up
        """
        task = self.catalog.find_task(code)
        now = self.clock()
        record = task_record(task, now)

        def mutate(doc: Document) -> Document:
            check_task_cap(task, doc.records, local_day_key(now, self.tz), self.tz)
            return append_record(doc, record)

        self._commit(ActionKind.COMPLETE_TASK, mutate)
        return record

    def redeem_reward(self, code: str) -> RewardRecord:
        """
        Redeem a catalog reward, creating an unused voucher.

        Raises:
            UnknownCatalogItem: If the code is not in the catalog
            DailyCapReached: If today's cap is already used up
            InsufficientBalance: If the balance cannot cover the cost
        """
        reward = self.catalog.find_reward(code)
        now = self.clock()
        record = reward_record(reward, now)

        def mutate(doc: Document) -> Document:
            check_reward_cap(reward, doc.records, local_day_key(now, self.tz), self.tz)
            return append_record(doc, record)

        self._commit(ActionKind.REDEEM_REWARD, mutate)
        return record

    def use_voucher(self, voucher: RewardRecord) -> RewardRecord:
        """Mark an open voucher as used. Returns the updated voucher."""
        now = self.clock()
        self._commit(ActionKind.USE_VOUCHER, lambda doc: use_voucher(doc, voucher, now))
        return replace(voucher, used=True, used_at=now)

    def add_manual_record(self, points: int, reason: str) -> Record:
        """
        Append a manual adjustment.

        Raises:
            ValidationFailure: If points is not an integer or reason is blank
        """
        record = manual_record(points, reason, self.clock())
        self._commit(ActionKind.MANUAL_ENTRY, lambda doc: append_record(doc, record))
        return record

    # ========================================================================
    # QUIZ
    # ========================================================================

    def quiz_status(self) -> QuizStatus:
        self._ensure_loaded()
        return quiz.quiz_status(self.document.records, self.today(), self.tz)

    def start_quiz(self, bet: int) -> QuizRecord:
        """
        Place today's wager and draw two unsolved questions.

        Raises:
            ValidationFailure, AlreadyAttemptedToday, InsufficientBalance,
            InsufficientQuestionPool
        """
        now = self.clock()
        doc = self._commit(
            ActionKind.START_QUIZ,
            lambda d: quiz.start_quiz(d, self.catalog.questions, bet, now, self.rng, self.tz),
        )
        _, wager = quiz.todays_wager(doc.records, local_day_key(now, self.tz), self.tz)
        self._answers = QuizAnswers(wager.questions)
        return wager

    def resume_quiz(self) -> Tuple[Question, ...]:
        """
        Return the questions of today's quiz in progress, as persisted.

        Pending answers survive if they belong to the same questions.

        Raises:
            NoQuizInProgress: If no quiz is in progress today
        """
        self._ensure_loaded()
        questions = quiz.current_questions(self.document.records, self.today(), self.tz)
        if not questions:
            self._answers = None
            raise NoQuizInProgress("No quiz in progress today")
        if self._answers is None or self._answers.questions != questions:
            self._answers = QuizAnswers(questions)
        return questions

    def answer(self, index: int, choice: str) -> None:
        """Select an answer locally. Nothing is persisted until submit_quiz()."""
        if self._answers is None:
            self.resume_quiz()
        self._answers.answer(index, choice)

    def pending_answers(self) -> Tuple[Optional[str], ...]:
        return self._answers.as_tuple() if self._answers is not None else ()

    def submit_quiz(self) -> QuizReview:
        """
        Grade and persist today's quiz.

        Returns:
            Review of the finished quiz, including payout and net result

        Raises:
            IncompleteAnswers: If any question has no answer yet
            NoQuizInProgress: If there is no unfinished quiz today
        """
        if self._answers is None:
            self.resume_quiz()
        if not self._answers.is_complete():
            raise IncompleteAnswers("Answer every question before submitting")
        answers = self._answers.as_tuple()
        now = self.clock()
        doc = self._commit(ActionKind.SUBMIT_QUIZ, lambda d: quiz.submit_quiz(d, answers, now, self.tz))
        self._answers = None
        return quiz.review_quiz(doc.records, local_day_key(now, self.tz), self.tz)

    def review_quiz(self, day: Optional[date] = None) -> Optional[QuizReview]:
        """Replay the finished quiz of `day` (today by default)."""
        self._ensure_loaded()
        return quiz.review_quiz(self.document.records, day or self.today(), self.tz)

    def finished_quizzes(self) -> List[QuizReview]:
        self._ensure_loaded()
        return quiz.list_finished_quizzes(self.document.records, self.tz)
