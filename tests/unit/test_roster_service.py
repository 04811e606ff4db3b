import random

import pytest

from roster_service import (
    ROSTER_COLUMNS,
    compute_session_stats,
    create_court_dataframe,
    create_roster_dataframe,
)
from session_logic import RotationSession
from tests.utils import generate_players


def test_roster_dataframe_sorted_by_games(sample_players):
    sample_players["eve"].games_played = 3
    sample_players["bob"].games_played = 3
    sample_players["alice"].games_played = 1
    session = RotationSession(sample_players, court_count=2)

    df = create_roster_dataframe(session)

    assert list(df.columns) == ROSTER_COLUMNS
    assert list(df["Player Name"][:3]) == ["Bob", "Eve", "Alice"]
    assert df["Status"].iloc[0] == "resting"


def test_roster_dataframe_counts_distinct_partners(sample_players):
    sample_players["alice"].teammates = {"bob": 2, "charlie": 1}
    sample_players["alice"].opponents = {"dave": 1}
    session = RotationSession(sample_players, court_count=1)

    df = create_roster_dataframe(session)
    row = df[df["player_id"] == "alice"].iloc[0]

    assert row["Partners"] == 2
    assert row["Opponents"] == 1


def test_roster_dataframe_empty():
    session = RotationSession([], court_count=1)
    df = create_roster_dataframe(session)
    assert df.empty
    assert list(df.columns) == ROSTER_COLUMNS


def test_court_dataframe_lists_courts_then_queue(twelve_player_session):
    session = twelve_player_session
    session.start_round()
    session.rename_court(2, "Back")

    df = create_court_dataframe(session)

    assert list(df["Slot"]) == ["Court 1", "Back", "Queue 1"]
    assert list(df["Status"]) == ["playing", "playing", "ready"]
    assert " & " in df["Team 1"].iloc[0]


def test_court_dataframe_marks_pending_queue_entries(twelve_player_session):
    session = twelve_player_session
    session.start_round()
    session.finish_court(1)

    df = create_court_dataframe(session)

    queue_rows = df[df["Slot"].str.startswith("Queue")]
    assert sorted(queue_rows["Status"]) == ["pending", "ready"]


def test_court_dataframe_empty_court(sample_players):
    session = RotationSession(sample_players, court_count=1)
    df = create_court_dataframe(session)
    assert df.iloc[0]["Status"] == "empty"
    assert df.iloc[0]["Team 1"] == ""


def test_session_stats_equal_play(sample_players):
    for player in sample_players.values():
        player.games_played = 2
    session = RotationSession(sample_players, court_count=2)

    stats = compute_session_stats(session)

    assert stats.total_participants == 8
    assert stats.active_players == 8
    assert stats.average_games_per_player == 2.0
    assert stats.fairness_index == 1.0


def test_session_stats_uneven_play(sample_players):
    sample_players["alice"].games_played = 4
    sample_players["bob"].games_played = 4
    sample_players["heidi"].has_left = True
    sample_players["heidi"].games_played = 10
    session = RotationSession(sample_players, court_count=2)

    stats = compute_session_stats(session)

    # Jain's index over [4, 4, 0, 0, 0, 0, 0]: 64 / (7 * 32)
    assert stats.active_players == 7
    assert stats.fairness_index == pytest.approx(64 / 224)
    assert stats.most_active_player in ("Alice", "Bob")
    assert stats.least_active_player not in ("Alice", "Bob", "Heidi")


def test_session_stats_skip_away_players(sample_players):
    for player in sample_players.values():
        player.games_played = 3
    sample_players["grace"].away = True
    sample_players["grace"].games_played = 0
    session = RotationSession(sample_players, court_count=2)

    stats = compute_session_stats(session)

    assert stats.total_participants == 8
    assert stats.active_players == 7
    assert stats.fairness_index == 1.0
    assert stats.least_active_player != "Grace"


def test_session_stats_nobody_active(sample_players):
    for player in sample_players.values():
        player.has_left = True
    stats = compute_session_stats(RotationSession(sample_players, court_count=1))

    assert stats.active_players == 0
    assert stats.fairness_index == 1.0
    assert stats.most_active_player is None


def test_session_stats_after_play():
    session = RotationSession(generate_players(8), court_count=2, rng=random.Random(4))
    session.start_round()
    session.finish_court(1)

    stats = compute_session_stats(session)
    assert stats.total_games == 1
    assert stats.average_games_per_player == pytest.approx(0.5)
