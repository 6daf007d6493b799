import datetime
import sqlite3

import pytest

from padel_analyzer.data.db_manager import DBManager
from padel_analyzer.data.models import Category1, Category2, Match, MatchStatus, Position, Team
from padel_analyzer.errors import ConcurrentMutationConflict, EmptyLedger, MatchNotFound, StorageError
from padel_analyzer.logic.point_ledger import PointLedger

NOW = datetime.datetime(2025, 5, 17, 18, 30, 0)


def _match(**overrides):
    data = dict(name="League round 3", player_right="Ana", player_left="Bea",
                opponent_right="Opponent 1", opponent_left="Opponent 2")
    data.update(overrides)
    return Match(**data)


def _append(db, match_id, action_id="passing_winner", sub_tag_id="right"):
    return db.append_point(
        match_id=match_id,
        action_id=action_id,
        sub_tag_id=sub_tag_id,
        sub_sub_tag_id=None,
        position=Position.PLAYER1,
        team=Team.TEAM1,
        category1=Category1.WON,
        category2=Category2.WINNER,
        timestamp=NOW,
    )


def test_setup_is_repeatable(db_manager):
    db_manager.setup_database()
    assert db_manager.list_matches() == []


def test_insert_and_get_match(db_manager):
    match = db_manager.insert_match(_match())

    assert match.match_id
    loaded = db_manager.get_match(match.match_id)
    assert loaded.name == "League round 3"
    assert loaded.status == MatchStatus.IN_PROGRESS
    assert loaded.created_at == match.created_at


def test_get_unknown_match(db_manager):
    with pytest.raises(MatchNotFound):
        db_manager.get_match("nope")


def test_list_matches_newest_first(db_manager):
    older = db_manager.insert_match(_match(name="old", created_at=NOW - datetime.timedelta(days=1)))
    newer = db_manager.insert_match(_match(name="new", created_at=NOW))

    assert [m.match_id for m in db_manager.list_matches()] == [newer.match_id, older.match_id]


def test_update_status(db_manager):
    match = db_manager.insert_match(_match())
    db_manager.update_match_status(match.match_id, MatchStatus.COMPLETED)
    assert db_manager.get_match(match.match_id).status == MatchStatus.COMPLETED

    with pytest.raises(MatchNotFound):
        db_manager.update_match_status("nope", "completed")


def test_points_survive_reconnect(tmp_path):
    path = str(tmp_path / "analysis.db")
    first = DBManager(path)
    first.setup_database()
    match = first.insert_match(_match())
    _append(first, match.match_id)
    _append(first, match.match_id, "lob_winner", "left")

    reopened = DBManager(path)
    points = reopened.fetch_points(match.match_id)
    assert [(p.sequence_id, p.action_id) for p in points] == [(1, "passing_winner"), (2, "lob_winner")]
    assert points[0].timestamp == NOW
    assert points[0].category2 == Category2.WINNER


def test_counter_survives_undo(db_manager):
    match = db_manager.insert_match(_match())
    _append(db_manager, match.match_id)
    _append(db_manager, match.match_id)
    db_manager.delete_last_point(match.match_id)

    assert db_manager.count_points(match.match_id) == (1, 2)
    assert _append(db_manager, match.match_id).sequence_id == 3


def test_delete_last_point_on_empty_match(db_manager):
    match = db_manager.insert_match(_match())
    with pytest.raises(EmptyLedger):
        db_manager.delete_last_point(match.match_id)


def test_duplicate_sequence_id_is_a_conflict(db_manager):
    match = db_manager.insert_match(_match())
    _append(db_manager, match.match_id)
    # Zähler manuell zurücksetzen, als hätte ein zweiter Schreiber denselben Stand gelesen
    db_manager.execute_query("UPDATE matches SET last_sequence_id = 0 WHERE match_id = ?", (match.match_id,))

    with pytest.raises(ConcurrentMutationConflict):
        _append(db_manager, match.match_id)
    assert len(db_manager.fetch_points(match.match_id)) == 1


def test_delete_match_removes_points(db_manager):
    match = db_manager.insert_match(_match())
    _append(db_manager, match.match_id)
    db_manager.delete_match(match.match_id)

    with pytest.raises(MatchNotFound):
        db_manager.fetch_points(match.match_id)
    assert db_manager.execute_query_fetch_all("SELECT * FROM points") == []
    with pytest.raises(MatchNotFound):
        db_manager.delete_match(match.match_id)


def test_sql_errors_are_wrapped(db_manager):
    with pytest.raises(StorageError):
        db_manager.execute_query_fetch_all("SELECT * FROM no_such_table")


def test_update_match(db_manager):
    match = db_manager.insert_match(_match())

    updated = db_manager.update_match(match.match_id, {"name": "Semifinal", "player_left": "Cleo"})

    assert updated.name == "Semifinal"
    assert updated.player_left == "Cleo"
    assert updated.player_right == "Ana"
    assert db_manager.get_match(match.match_id) == updated

    with pytest.raises(ValueError):
        db_manager.update_match(match.match_id, {"status": "completed"})
    with pytest.raises(MatchNotFound):
        db_manager.update_match("nope", {"name": "x"})


def test_foreign_write_lock_is_a_conflict(tmp_path):
    path = str(tmp_path / "analysis.db")
    db = DBManager(path, busy_timeout=0.2)
    db.setup_database()
    match = db.insert_match(_match())
    ledger = PointLedger(db)
    _append(db, match.match_id)

    # Zweiter Schreiber (z. B. anderer Prozess) hält die Schreibsperre
    other_writer = sqlite3.connect(path, isolation_level=None)
    other_writer.execute("BEGIN IMMEDIATE")
    try:
        with pytest.raises(ConcurrentMutationConflict):
            ledger.append(match.match_id, "passing_winner", "right", position=Position.PLAYER1)
        with pytest.raises(ConcurrentMutationConflict):
            ledger.undo_last(match.match_id)
        with pytest.raises(ConcurrentMutationConflict):
            db.update_match(match.match_id, {"name": "blocked"})
    finally:
        other_writer.rollback()
        other_writer.close()

    assert [p.sequence_id for p in db.fetch_points(match.match_id)] == [1]
    assert ledger.append(match.match_id, "lob_winner", "left", position=Position.PLAYER2).sequence_id == 2
