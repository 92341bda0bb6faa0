"""
strategies.py - Hypothesis strategies for record logs

Records are drawn from a five-day window around 2025-03-10 in LOCAL_TZ so
that generated logs regularly straddle local midnight.
"""

from datetime import datetime

from hypothesis import strategies as st

from points_ledger import SignInRecord, TaskRecord, RewardRecord, ManualRecord

from tests.factories import LOCAL_TZ


TASK_CODES = ("read", "dishes", "homework")
REWARD_CODES = ("tv", "candy")

instants = st.datetimes(
    min_value=datetime(2025, 3, 8),
    max_value=datetime(2025, 3, 12, 23, 59, 59),
    timezones=st.just(LOCAL_TZ),
)

points = st.integers(min_value=-1000, max_value=1000)

sign_ins = st.builds(SignInRecord, points=st.sampled_from([-5, 0, 5, 10]), timestamp=instants)

tasks = st.builds(
    lambda p, t, code: TaskRecord(points=p, timestamp=t, task_code=code, task_name=code.title()),
    st.integers(min_value=0, max_value=50), instants, st.sampled_from(TASK_CODES),
)

rewards = st.builds(
    lambda p, t, code: RewardRecord(points=-p, timestamp=t, reward_code=code, reward_name=code.title()),
    st.integers(min_value=1, max_value=50), instants, st.sampled_from(REWARD_CODES),
)

manuals = st.builds(
    lambda p, t: ManualRecord(points=p, timestamp=t, reason="adjustment"),
    points, instants,
)

records = st.one_of(sign_ins, tasks, rewards, manuals)

record_logs = st.lists(records, max_size=30)
