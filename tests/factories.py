"""
factories.py - Test helpers for building clocks, catalogs and records

Provides:
- LOCAL_TZ: fixed +08:00 zone so day boundaries never depend on the test machine
- local(): aware datetime in LOCAL_TZ
- FakeClock: settable clock
- make_catalog() / make_questions(): small deterministic catalogs
- Record factories for hand-built record logs
"""

from datetime import datetime, timedelta, timezone

from points_ledger import (
    Catalog, Task, Reward, Question,
    SignInRecord, TaskRecord, RewardRecord, ManualRecord,
)


LOCAL_TZ = timezone(timedelta(hours=8), "UTC+08")


def local(year, month, day, hour=12, minute=0, second=0, microsecond=0):
    """Aware datetime in LOCAL_TZ."""
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=LOCAL_TZ)


class FakeClock:
    """Settable clock returning aware datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# CATALOG
# =============================================================================

def make_questions(n: int = 4):
    return [
        Question(
            code=f"q{i}",
            question=f"Question {i}?",
            choices=("red", "green", "blue"),
            answer="ABC"[i % 3],
        )
        for i in range(1, n + 1)
    ]


def make_catalog(questions=None) -> Catalog:
    return Catalog(
        tasks=[
            Task("read", "Read for 20 minutes", 5, max_daily_times=2),
            Task("dishes", "Wash the dishes", 3, max_daily_times=None),
            Task("homework", "Finish homework", 10, max_daily_times=1, description="All subjects"),
        ],
        rewards=[
            Reward("tv", "30 minutes of TV", 10, max_daily_times=1),
            Reward("candy", "One candy", 2, max_daily_times=None),
        ],
        questions=make_questions() if questions is None else questions,
    )


def wrong_answer(question: Question) -> str:
    """Some valid letter that is not the question's answer."""
    return next(letter for letter in question.choice_letters() if letter != question.answer)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

def task_done(code: str, when: datetime, points: int = 5) -> TaskRecord:
    return TaskRecord(points=points, timestamp=when, task_code=code, task_name=code.title())


def reward_taken(code: str, when: datetime, points: int = 10) -> RewardRecord:
    return RewardRecord(points=-points, timestamp=when, reward_code=code, reward_name=code.title())


def manual(points: int, when: datetime, reason: str = "adjustment") -> ManualRecord:
    return ManualRecord(points=points, timestamp=when, reason=reason)


def signed_in(points: int, when: datetime) -> SignInRecord:
    return SignInRecord(points=points, timestamp=when)
