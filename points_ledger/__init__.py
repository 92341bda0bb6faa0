"""
points_ledger - Gamified points ledger with whole-document sync

A single user's point balance derived from an append-only log of sign-ins,
task completions, reward redemptions, manual adjustments and quiz attempts,
persisted to a document store with optimistic concurrency.

Usage:
    from points_ledger import (
        PointsController, SyncEngine, MemoryStore, Catalog, Task, Reward,
    )

    catalog = Catalog(
        tasks=[Task("read", "Read for 20 minutes", 5, max_daily_times=2)],
        rewards=[Reward("tv", "30 minutes of TV", 10, max_daily_times=1)],
    )
    controller = PointsController(SyncEngine(MemoryStore()), catalog)
    controller.refresh()
    controller.complete_task("read")
    print(controller.balance)
"""

# Core types
from .core import (
    RecordType,
    SignInRecord,
    TaskRecord,
    RewardRecord,
    ManualRecord,
    QuizRecord,
    Record,
    Document,
    empty_document,
    Task,
    Reward,
    Question,
    QuestionResult,
    QUIZ_QUESTION_COUNT,
    # Errors
    PointsError,
    TransportFailure,
    ConflictFailure,
    DocumentFormatError,
    ValidationFailure,
    IncompleteAnswers,
    BusinessRuleFailure,
    DailyCapReached,
    InsufficientBalance,
    AlreadySignedInToday,
    AlreadyAttemptedToday,
    InsufficientQuestionPool,
    NoQuizInProgress,
    VoucherAlreadyUsed,
    UnknownCatalogItem,
    ActionInFlight,
)

# Day windows
from .daywindow import (
    local_day_key,
    same_day,
    day_bounds,
    in_day,
    day_string,
)

# Derivations
from .ledger import (
    TaskView,
    RewardView,
    balance,
    daily_count,
    is_task_completion,
    is_reward_redemption,
    derive_task_view,
    derive_reward_view,
    list_open_vouchers,
    records_newest_first,
    check_task_cap,
    check_reward_cap,
    sign_in_record,
    task_record,
    reward_record,
    manual_record,
    append_record,
    replace_record,
    with_last_sign_in,
    use_voucher,
)

# Wire format
from .codec import (
    document_to_dict,
    document_from_dict,
    record_to_dict,
    record_from_dict,
    task_from_dict,
    reward_from_dict,
    question_from_dict,
    load_catalog,
)

# Storage and sync
from .store import (
    DocumentStore,
    ReadResult,
    WriteResult,
    MemoryStore,
    JsonFileStore,
    create_store,
)
from .sync import SyncEngine, SyncOutcome

# Quiz
from .quiz import (
    QuizStatus,
    QuizAnswers,
    QuizReview,
    quiz_status,
    todays_wager,
    current_questions,
    solved_question_codes,
    eligible_questions,
    payout_for,
    start_quiz,
    submit_quiz,
    review_quiz,
    list_finished_quizzes,
)

# Application surface
from .catalog import Catalog, load_catalog_files
from .config import Settings, configure_logging
from .controller import PointsController, ActionKind, ActionState

__all__ = [
    # Core
    'RecordType', 'SignInRecord', 'TaskRecord', 'RewardRecord', 'ManualRecord', 'QuizRecord',
    'Record', 'Document', 'empty_document', 'Task', 'Reward', 'Question', 'QuestionResult',
    'QUIZ_QUESTION_COUNT',
    # Errors
    'PointsError', 'TransportFailure', 'ConflictFailure', 'DocumentFormatError',
    'ValidationFailure', 'IncompleteAnswers', 'BusinessRuleFailure', 'DailyCapReached',
    'InsufficientBalance', 'AlreadySignedInToday', 'AlreadyAttemptedToday',
    'InsufficientQuestionPool', 'NoQuizInProgress', 'VoucherAlreadyUsed',
    'UnknownCatalogItem', 'ActionInFlight',
    # Day windows
    'local_day_key', 'same_day', 'day_bounds', 'in_day', 'day_string',
    # Derivations
    'TaskView', 'RewardView', 'balance', 'daily_count', 'is_task_completion',
    'is_reward_redemption', 'derive_task_view', 'derive_reward_view', 'list_open_vouchers',
    'records_newest_first', 'check_task_cap', 'check_reward_cap',
    'sign_in_record', 'task_record', 'reward_record', 'manual_record',
    'append_record', 'replace_record', 'with_last_sign_in', 'use_voucher',
    # Wire format
    'document_to_dict', 'document_from_dict', 'record_to_dict', 'record_from_dict',
    'task_from_dict', 'reward_from_dict', 'question_from_dict', 'load_catalog',
    # Storage and sync
    'DocumentStore', 'ReadResult', 'WriteResult', 'MemoryStore', 'JsonFileStore',
    'create_store', 'SyncEngine', 'SyncOutcome',
    # Quiz
    'QuizStatus', 'QuizAnswers', 'QuizReview', 'quiz_status', 'todays_wager',
    'current_questions', 'solved_question_codes', 'eligible_questions', 'payout_for',
    'start_quiz', 'submit_quiz', 'review_quiz', 'list_finished_quizzes',
    # Application surface
    'Catalog', 'load_catalog_files', 'Settings', 'configure_logging',
    'PointsController', 'ActionKind', 'ActionState',
]

__version__ = '1.0.0'
