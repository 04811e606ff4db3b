# team_finder.py
"""
Team finder: splits four players into the best two doubles teams.

Also home to the priority ordering shared by the optimizer and the queue
maintainer, so both agree on who is due to play next.
"""

import logging
import random
from collections.abc import Iterable, Sequence

from app_types import Match, PlayerId, PreferenceWeight, Team
from constants import PLAYERS_PER_COURT
from scoring import PlayerIndex, PlayerLike, calculate_team_score

logger = logging.getLogger("app.team_finder")


def team_splits(group: Sequence[PlayerId]) -> list[tuple[Team, Team]]:
    """The 3 distinct ways to split {A, B, C, D}: AB|CD, AC|BD, AD|BC."""
    a, b, c, d = group
    return [((a, b), (c, d)), ((a, c), (b, d)), ((a, d), (b, c))]


def best_split(
    group: Sequence[PlayerId],
    weights: Iterable[PreferenceWeight],
    players: Iterable[PlayerLike] | PlayerIndex,
    rng: random.Random | None = None,
) -> tuple[Match, float] | None:
    """Returns the highest scoring split of a 4-player group with its score."""
    if len(group) != PLAYERS_PER_COURT:
        logger.warning(
            "Team finder needs exactly %d players, got %d",
            PLAYERS_PER_COURT,
            len(group),
        )
        return None

    weights = list(weights)
    best: tuple[Match, float] | None = None
    for team_1, team_2 in team_splits(group):
        score = calculate_team_score(team_1, team_2, weights, players, rng)
        if best is None or score > best[1]:
            best = (Match(team_1=team_1, team_2=team_2), score)
    return best


def find_best_team_match(
    group: Sequence[PlayerId],
    weights: Iterable[PreferenceWeight],
    players: Iterable[PlayerLike] | PlayerIndex,
    rng: random.Random | None = None,
) -> Match | None:
    """
    Finds the best 2v2 split for exactly four players.

    Args:
        group: Ids of the four players
        weights: Preference weights of the session
        players: Whole roster, used for history lookups
        rng: Random source for score jitter

    Returns:
        The best Match, or None when not given exactly four players
    """
    result = best_split(group, weights, players, rng)
    return result[0] if result is not None else None


def sort_by_priority(
    players: Iterable[PlayerLike], rng: random.Random | None = None
) -> list[PlayerLike]:
    """Fewest games first, then longest rest, then random."""
    rng = rng or random.Random()
    keyed = [(p.games_played, -p.rest_rounds, rng.random(), p) for p in players]
    keyed.sort(key=lambda item: item[:3])
    return [item[3] for item in keyed]
