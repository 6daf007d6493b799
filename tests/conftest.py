import datetime
import itertools

import pytest

from padel_analyzer.data.db_manager import DBManager
from padel_analyzer.data.memory_store import MemoryStore
from padel_analyzer.data.models import Match
from padel_analyzer.logic.point_ledger import PointLedger
from padel_analyzer.logic.statistic_calculator import StatisticCalculator


def _fixed_clock():
    start = datetime.datetime(2025, 5, 17, 14, 0, 0)
    ticks = itertools.count()
    return lambda: start + datetime.timedelta(seconds=next(ticks))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = DBManager(db_path=str(tmp_path / "db" / "analysis.db"))
    store.setup_database()
    return store


@pytest.fixture
def db_manager(tmp_path):
    db = DBManager(db_path=str(tmp_path / "analysis.db"))
    db.setup_database()
    return db


@pytest.fixture
def match(store):
    return store.insert_match(Match(
        name="Club final",
        player_right="Ana",
        player_left="Bea",
        opponent_right="Opponent 1",
        opponent_left="Opponent 2",
    ))


@pytest.fixture
def ledger(store):
    return PointLedger(store, clock=_fixed_clock())


@pytest.fixture
def calculator(ledger):
    return StatisticCalculator(ledger)
