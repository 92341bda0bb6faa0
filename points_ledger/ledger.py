"""
ledger.py - Pure derivations over the record log

The record log is the only source of truth. Balance, per-day usage counters
and voucher availability are derived here on demand and never stored, so
re-reading the Document and re-deriving is always correct after a failed or
conflicting write.

Key responsibilities:
    - Derivation: balance, daily_count, task/reward view-models, open vouchers
    - Rule checks: daily caps and affordability, evaluated against fresh counts
    - Record builders: validate user input before a record exists
    - Copy-on-write updates: append_record, replace_record, with_last_sign_in

No function in this module mutates its inputs or performs I/O.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, List, Optional, Sequence

from .core import (
    Document, Record, Task, Reward,
    SignInRecord, TaskRecord, RewardRecord, ManualRecord,
    ValidationFailure, DailyCapReached, InsufficientBalance, VoucherAlreadyUsed,
)
from .daywindow import in_day


RecordPredicate = Callable[[Record], bool]


# ============================================================================
# VIEW MODELS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TaskView:
    """
    A catalog task joined with today's completion count.

    `remaining` is None for unlimited tasks; unlimited tasks are never completed.
    """
    code: str
    name: str
    points: int
    max_daily_times: Optional[int]
    description: str
    completed_count: int
    remaining: Optional[int]
    is_completed: bool


@dataclass(frozen=True, slots=True)
class RewardView:
    """
    A catalog reward joined with today's redemption count and affordability.
    """
    code: str
    name: str
    points: int
    max_daily_times: Optional[int]
    redeemed_count: int
    remaining: Optional[int]
    is_maxed: bool
    affordable: bool


# ============================================================================
# DERIVATION
# ============================================================================

def balance(records: Iterable[Record]) -> int:
    """Sum of points over all records."""
    return sum(record.points for record in records)


def daily_count(
    records: Iterable[Record],
    predicate: RecordPredicate,
    day: date,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Count records matching a predicate within a local calendar day.

    Args:
        records: Record log (any order)
        predicate: Selection function, e.g. is_task_completion("read")
        day: Local calendar day to count in
        tz: Local zone (system local zone if None)

    Returns:
        Number of matching records whose timestamp falls in `day`
    """
    return sum(
        1 for record in records
        if predicate(record) and in_day(record.timestamp, day, tz)
    )


def is_task_completion(code: str) -> RecordPredicate:
    """Predicate selecting completions of one task code."""
    def predicate(record: Record) -> bool:
        return isinstance(record, TaskRecord) and record.task_code == code
    return predicate


def is_reward_redemption(code: str) -> RecordPredicate:
    """Predicate selecting redemptions of one reward code."""
    def predicate(record: Record) -> bool:
        return isinstance(record, RewardRecord) and record.reward_code == code
    return predicate


def _remaining(cap: Optional[int], used: int) -> Optional[int]:
    if cap is None:
        return None
    return max(cap - used, 0)


def derive_task_view(
    catalog: Sequence[Task],
    records: Sequence[Record],
    today: date,
    tz: Optional[tzinfo] = None,
) -> List[TaskView]:
    """Project the task catalog against today's completions, in catalog order."""
    views = []
    for task in catalog:
        completed = daily_count(records, is_task_completion(task.code), today, tz)
        views.append(TaskView(
            code=task.code,
            name=task.name,
            points=task.points,
            max_daily_times=task.max_daily_times,
            description=task.description,
            completed_count=completed,
            remaining=_remaining(task.max_daily_times, completed),
            is_completed=task.max_daily_times is not None and completed >= task.max_daily_times,
        ))
    return views


def derive_reward_view(
    catalog: Sequence[Reward],
    records: Sequence[Record],
    today: date,
    tz: Optional[tzinfo] = None,
) -> List[RewardView]:
    """Project the reward catalog against today's redemptions and the current balance."""
    current = balance(records)
    views = []
    for reward in catalog:
        redeemed = daily_count(records, is_reward_redemption(reward.code), today, tz)
        views.append(RewardView(
            code=reward.code,
            name=reward.name,
            points=reward.points,
            max_daily_times=reward.max_daily_times,
            redeemed_count=redeemed,
            remaining=_remaining(reward.max_daily_times, redeemed),
            is_maxed=reward.max_daily_times is not None and redeemed >= reward.max_daily_times,
            affordable=current >= reward.points,
        ))
    return views


def list_open_vouchers(records: Iterable[Record]) -> List[RewardRecord]:
    """Unused reward records. No ordering guarantee; callers sort."""
    return [r for r in records if isinstance(r, RewardRecord) and not r.used]


def records_newest_first(records: Sequence[Record]) -> List[Record]:
    """History order for display: most recent append first."""
    return list(reversed(records))


# ============================================================================
# RULE CHECKS
# ============================================================================

def check_task_cap(task: Task, records: Sequence[Record], today: date, tz: Optional[tzinfo] = None) -> None:
    """
    Raise DailyCapReached if the task cannot be completed again today.

    Always evaluated against counts freshly derived from `records`.
    """
    if task.max_daily_times is None:
        return
    completed = daily_count(records, is_task_completion(task.code), today, tz)
    if completed >= task.max_daily_times:
        raise DailyCapReached(
            f"Task {task.code} already completed {completed}/{task.max_daily_times} times today"
        )


def check_reward_cap(reward: Reward, records: Sequence[Record], today: date, tz: Optional[tzinfo] = None) -> None:
    """
    Raise DailyCapReached or InsufficientBalance if the reward cannot be redeemed now.
    """
    if reward.max_daily_times is not None:
        redeemed = daily_count(records, is_reward_redemption(reward.code), today, tz)
        if redeemed >= reward.max_daily_times:
            raise DailyCapReached(
                f"Reward {reward.code} already redeemed {redeemed}/{reward.max_daily_times} times today"
            )
    current = balance(records)
    if current < reward.points:
        raise InsufficientBalance(
            f"Reward {reward.code} costs {reward.points}, balance is {current}"
        )


# ============================================================================
# RECORD BUILDERS
# ============================================================================

def _require_int(value, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure(f"{what} must be an integer, got {value!r}")
    return value


def sign_in_record(points: int, now: datetime) -> SignInRecord:
    return SignInRecord(points=_require_int(points, "Sign-in points"), timestamp=now)


def task_record(task: Task, now: datetime) -> TaskRecord:
    return TaskRecord(
        points=_require_int(task.points, "Task points"),
        timestamp=now,
        task_code=task.code,
        task_name=task.name,
    )


def reward_record(reward: Reward, now: datetime) -> RewardRecord:
    """A fresh, unused voucher costing the reward's points."""
    return RewardRecord(
        points=-_require_int(reward.points, "Reward points"),
        timestamp=now,
        reward_code=reward.code,
        reward_name=reward.name,
    )


def manual_record(points, reason: str, now: datetime) -> ManualRecord:
    """
    Build a manual adjustment.

    Raises:
        ValidationFailure: If points is not an integer or reason is blank
    """
    points = _require_int(points, "Manual points")
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationFailure("Manual adjustment requires a non-empty reason")
    return ManualRecord(points=points, timestamp=now, reason=reason.strip())


# ============================================================================
# COPY-ON-WRITE UPDATES
# ============================================================================

def append_record(doc: Document, record: Record) -> Document:
    """
    Return a new Document with `record` appended.

    The input Document is left untouched, so a retry that starts from a
    fresh read never observes a half-applied append.
    """
    return replace(doc, records=doc.records + (record,))


def replace_record(doc: Document, index: int, record: Record) -> Document:
    """Return a new Document with the record at `index` swapped for `record`."""
    if not 0 <= index < len(doc.records):
        raise IndexError(f"Record index {index} out of range")
    records = list(doc.records)
    records[index] = record
    return replace(doc, records=tuple(records))


def with_last_sign_in(doc: Document, day: str) -> Document:
    return replace(doc, last_sign_in_date=day)


def use_voucher(doc: Document, voucher: RewardRecord, now: datetime) -> Document:
    """
    Mark a voucher as used.

    The first unused record equal to `voucher` is patched to used=True with
    used_at=now.

    Raises:
        VoucherAlreadyUsed: If no matching unused voucher exists in `doc`
    """
    if voucher.used:
        raise VoucherAlreadyUsed(f"Voucher {voucher.reward_code} was already used at {voucher.used_at}")
    for index, record in enumerate(doc.records):
        if record == voucher:
            return replace_record(doc, index, replace(record, used=True, used_at=now))
    raise VoucherAlreadyUsed(f"No unused voucher {voucher.reward_code} from {voucher.timestamp}")
