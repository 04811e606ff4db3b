"""
Service layer for roster reporting.

This module handles conversion of a session's roster into pandas DataFrames
for display, and the session-wide play statistics shown alongside them.
"""

import logging

import pandas as pd

from app_types import SessionStats
from session_logic import RotationSession

logger = logging.getLogger("app.roster_service")

ROSTER_COLUMNS = [
    "Player Name",
    "Status",
    "Games Played",
    "Rest Rounds",
    "Partners",
    "Opponents",
    "Left",
    "Away",
    "player_id",
]


def create_roster_dataframe(session: RotationSession) -> pd.DataFrame:
    """Creates a DataFrame of the roster, most games played first."""
    players = list(session.players.values())
    df = pd.DataFrame(
        {
            "Player Name": [p.name for p in players],
            "Status": [p.status.value for p in players],
            "Games Played": [p.games_played for p in players],
            "Rest Rounds": [p.rest_rounds for p in players],
            "Partners": [len(p.teammates) for p in players],
            "Opponents": [len(p.opponents) for p in players],
            "Left": [p.has_left for p in players],
            "Away": [p.away for p in players],
            "player_id": [p.id for p in players],
        },
        columns=ROSTER_COLUMNS,
    )
    if df.empty:
        return df
    return df.sort_values(
        ["Games Played", "Player Name"], ascending=[False, True]
    ).reset_index(drop=True)


def create_court_dataframe(session: RotationSession) -> pd.DataFrame:
    """One row per court and queued match, with player names."""
    names = {pid: p.name for pid, p in session.players.items()}

    def team_names(team) -> str:
        return " & ".join(names.get(pid, pid) for pid in team)

    rows = []
    for court in session.courts:
        match = court.match
        rows.append(
            {
                "Slot": court.label,
                "Team 1": team_names(match.team_1) if match else "",
                "Team 2": team_names(match.team_2) if match else "",
                "Status": court.status.value,
            }
        )
    for position, match in enumerate(session.queue, start=1):
        rows.append(
            {
                "Slot": f"Queue {position}",
                "Team 1": team_names(match.team_1),
                "Team 2": team_names(match.team_2),
                "Status": "pending" if match.pending_players else "ready",
            }
        )
    return pd.DataFrame(rows, columns=["Slot", "Team 1", "Team 2", "Status"])


def compute_session_stats(session: RotationSession) -> SessionStats:
    """
    Session-wide statistics over the roster.

    fairness_index is Jain's index over games played by active players (not left, not away):
    1.0 when everyone has played equally, approaching 1/n when one player
    has played everything.
    """
    df = create_roster_dataframe(session)
    active = df[~df["Left"] & ~df["Away"]] if not df.empty else df

    if active.empty:
        return SessionStats(
            total_participants=len(df),
            active_players=0,
            total_games=session.total_games_played,
            average_games_per_player=0.0,
            fairness_index=1.0,
            most_active_player=None,
            least_active_player=None,
        )

    games = active["Games Played"].astype(float)
    square_sum = float((games**2).sum())
    if square_sum == 0:
        fairness_index = 1.0
    else:
        fairness_index = float(games.sum() ** 2 / (len(games) * square_sum))

    most = active.loc[games.idxmax(), "Player Name"]
    least = active.loc[games.idxmin(), "Player Name"]

    stats = SessionStats(
        total_participants=len(df),
        active_players=len(active),
        total_games=session.total_games_played,
        average_games_per_player=float(games.mean()),
        fairness_index=fairness_index,
        most_active_player=most,
        least_active_player=least,
    )
    logger.debug("Session stats: %s", stats)
    return stats
