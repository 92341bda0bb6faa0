"""
conftest.py - Shared pytest fixtures for points-ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- A fixed local zone and a settable clock
- A small catalog of tasks, rewards and questions
- Store / engine / controller wiring
"""

import random
import pytest

from points_ledger import MemoryStore, SyncEngine, PointsController

from tests.factories import LOCAL_TZ, FakeClock, local, make_catalog


@pytest.fixture
def tz():
    return LOCAL_TZ


@pytest.fixture
def clock():
    return FakeClock(local(2025, 3, 10, 9, 0))


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return SyncEngine(store)


@pytest.fixture
def controller(engine, catalog, clock):
    c = PointsController(engine, catalog, clock=clock, rng=random.Random(7), tz=LOCAL_TZ)
    c.refresh()
    return c
