import pytest

from padel_analyzer.data.models import Position, StatsSnapshot, Team


def _record(ledger, match_id, *points):
    for action_id, sub_tag, sub_sub_tag, position in points:
        ledger.append(match_id, action_id, sub_tag, sub_sub_tag, position=position)


def test_empty_ledger(calculator, match):
    stats = calculator.compute_stats(match.match_id)

    assert stats == StatsSnapshot()
    assert stats.to_dict() == {
        "total_points": 0,
        "points_won": 0,
        "points_lost": 0,
        "winning_shots": 0,
        "total_faults": 0,
        "fault_to_winner_ratio": None,
    }


def test_smash_winner_and_unforced_error(ledger, calculator, match):
    ledger.append(match.match_id, "smash_winner", "3rd", position=Position.PLAYER1)
    ledger.append(match.match_id, "unforced_error", "lob", "net", position=Position.PLAYER2)

    assert calculator.compute_stats(match.match_id).to_dict() == {
        "total_points": 2,
        "points_won": 1,
        "points_lost": 1,
        "winning_shots": 1,
        "total_faults": 1,
        "fault_to_winner_ratio": 1.0,
    }


def test_opponent_fault_is_not_a_fault_and_direct_fault_counts_as_winner(ledger, calculator, match):
    _record(ledger, match.match_id,
            ("winner_on_error", None, None, Position.PLAYER1),
            ("opponent_direct_fault", None, None, Position.PLAYER2),
            ("forced_error", "short_lob", None, Position.PLAYER1),
            ("unforced_error", "bajada", "glass", Position.PLAYER2),
            ("volley_winner", "right", None, Position.PLAYER1))

    stats = calculator.compute_stats(match.match_id)

    assert stats.total_points == 5
    assert stats.points_won == 2
    assert stats.points_lost == 3
    assert stats.winning_shots == 2
    assert stats.total_faults == 2
    assert stats.fault_to_winner_ratio == pytest.approx(1.0)


def test_ratio_is_none_without_winners(ledger, calculator, match):
    ledger.append(match.match_id, "forced_error", "counter_smash", position=Position.PLAYER1)

    stats = calculator.compute_stats(match.match_id)
    assert stats.total_faults == 1
    assert stats.fault_to_winner_ratio is None


def test_stats_follow_undo(ledger, calculator, match):
    ledger.append(match.match_id, "lob_winner", "left", position=Position.PLAYER1)
    ledger.append(match.match_id, "unforced_error", "smash", "grid", position=Position.PLAYER1)
    ledger.append(match.match_id, "unforced_error", "volley", "net", position=Position.PLAYER2)
    assert calculator.compute_stats(match.match_id).fault_to_winner_ratio == pytest.approx(2.0)

    ledger.undo_last(match.match_id)
    stats = calculator.compute_stats(match.match_id)

    assert stats.total_points == 2
    assert stats.total_faults == 1
    assert stats.fault_to_winner_ratio == pytest.approx(1.0)


def test_compute_stats_is_idempotent(ledger, calculator, match):
    ledger.append(match.match_id, "passing_winner", "center", position=Position.PLAYER2)
    assert calculator.compute_stats(match.match_id) == calculator.compute_stats(match.match_id)


def test_position_breakdown(ledger, calculator, match):
    _record(ledger, match.match_id,
            ("passing_winner", "right", None, Position.PLAYER1),
            ("smash_winner", "4th", None, Position.PLAYER1),
            ("unforced_error", "lob", "net", Position.PLAYER1),
            ("forced_error", "zone_error", None, Position.PLAYER2))

    df = calculator.calculate_position_breakdown(match.match_id).set_index("position")

    assert df.loc["player1", "won"] == 2
    assert df.loc["player1", "lost"] == 1
    assert df.loc["player1", "win_rate"] == pytest.approx(0.667)
    assert df.loc["player2", "won"] == 0
    assert df.loc["player2", "total"] == 1


def test_position_breakdown_empty(calculator, match):
    df = calculator.calculate_position_breakdown(match.match_id)
    assert list(df["position"]) == ["player1", "player2"]
    assert df["total"].sum() == 0
    assert (df["win_rate"] == 0).all()


def test_action_breakdown_in_catalog_order(ledger, calculator, match):
    _record(ledger, match.match_id,
            ("smash_winner", "lob-smash", None, Position.PLAYER2),
            ("passing_winner", "left", None, Position.PLAYER1),
            ("passing_winner", "right", None, Position.PLAYER2),
            ("passing_winner", "right", None, Position.PLAYER1),
            ("opponent_direct_fault", None, None, Position.PLAYER1),
            ("unforced_error", "lob", "net", Position.PLAYER1))

    won = calculator.calculate_action_breakdown(match.match_id, "won")

    rows = list(zip(won["action_id"], won["sub_tag_id"], won["total"]))
    assert rows == [
        ("passing_winner", "right", 2),
        ("passing_winner", "left", 1),
        ("smash_winner", "lob-smash", 1),
        ("opponent_direct_fault", None, 1),
    ]
    first = won.iloc[0]
    assert first["player1"] == 1 and first["player2"] == 1
    assert first["action_label"] == "Passing"
    assert first["sub_tag_label"] == "Right"


def test_action_breakdown_without_points(calculator, match):
    lost = calculator.calculate_action_breakdown(match.match_id, "lost")
    assert lost.empty
    assert "total" in lost.columns


def test_fault_locations(ledger, calculator, match):
    _record(ledger, match.match_id,
            ("unforced_error", "smash", "net", Position.PLAYER1),
            ("unforced_error", "smash", "net", Position.PLAYER2),
            ("unforced_error", "lob", "glass", Position.PLAYER1),
            ("unforced_error", "volley", None, Position.PLAYER1),
            ("forced_error", "short_lob", None, Position.PLAYER1))

    df = calculator.calculate_fault_locations(match.match_id)

    assert list(df.columns) == ["net", "glass", "grid", "total"]
    assert df.loc["smash", "net"] == 2
    assert df.loc["lob", "glass"] == 1
    assert df["total"].sum() == 3


def test_fault_locations_requires_second_dimension(calculator, match):
    with pytest.raises(ValueError):
        calculator.calculate_fault_locations(match.match_id, "forced_error")


def test_export_to_csv(ledger, calculator, match, tmp_path):
    ledger.append(match.match_id, "bajada_winner", "center", position=Position.PLAYER1)
    path = tmp_path / "points.csv"

    assert calculator.export_to_csv(match.match_id, str(path))
    lines = path.read_text().splitlines()
    assert lines[0].startswith("sequence_id,match_id,action_id")
    assert len(lines) == 2


def test_export_to_pdf(ledger, calculator, match, tmp_path):
    ledger.append(match.match_id, "vibora_bandeja_winner", "right", position=Position.PLAYER1)
    ledger.append(match.match_id, "unforced_error", "passing", "grid", position=Position.PLAYER2)
    path = tmp_path / "report.pdf"

    assert calculator.export_to_pdf(match.match_id, str(path))
    assert path.read_bytes().startswith(b"%PDF")


def test_team_breakdown_and_win_rate(ledger, calculator, match):
    ledger.append(match.match_id, "passing_winner", "right", position=Position.PLAYER1)
    ledger.append(match.match_id, "smash_winner", "3rd", position=Position.PLAYER2)
    ledger.append(match.match_id, "unforced_error", "lob", "net", position=Position.PLAYER1)
    ledger.append(match.match_id, "forced_error", "zone_error", position=Position.PLAYER2, team=Team.TEAM2)

    df = calculator.calculate_team_breakdown(match.match_id).set_index("team")

    assert list(df.columns) == ["won", "lost", "total", "share"]
    assert df.loc["team1", "won"] == 2
    assert df.loc["team1", "lost"] == 1
    assert df.loc["team1", "share"] == pytest.approx(0.75)
    assert df.loc["team2", "total"] == 1
    assert df.loc["team2", "share"] == pytest.approx(0.25)
    assert calculator.calculate_win_rate(match.match_id) == pytest.approx(0.5)


def test_team_breakdown_and_win_rate_without_points(calculator, match):
    df = calculator.calculate_team_breakdown(match.match_id)

    assert list(df["team"]) == ["team1", "team2"]
    assert df["total"].sum() == 0
    assert (df["share"] == 0).all()
    assert calculator.calculate_win_rate(match.match_id) is None


def test_win_rate_follows_undo(ledger, calculator, match):
    ledger.append(match.match_id, "volley_winner", "left", position=Position.PLAYER1)
    ledger.append(match.match_id, "unforced_error", "smash", "glass", position=Position.PLAYER2)
    ledger.undo_last(match.match_id)

    assert calculator.calculate_win_rate(match.match_id) == pytest.approx(1.0)
