# stats_updater.py
"""
Play statistics updates after a completed match.

update_player_stats() is the only writer of games played, rest rounds and
the teammate/opponent history used by future scoring. Callers must invoke it
exactly once per completed match: a second call for the same match inflates
the history for the rest of the session, and it is not guarded against here.
"""

import logging
from collections.abc import Iterable

from app_types import Match, PlayerId
from scoring import PlayerIndex, PlayerLike, index_players

logger = logging.getLogger("app.stats_updater")


def _increment(counts: dict[PlayerId, int], other: PlayerId) -> None:
    counts[other] = counts.get(other, 0) + 1


def _record_pair(
    players: PlayerIndex, player_a: PlayerId, player_b: PlayerId, attribute: str
) -> None:
    """Updates both sides of a pair's history in one step."""
    a, b = players.get(player_a), players.get(player_b)
    if a is not None:
        _increment(getattr(a, attribute), player_b)
    if b is not None:
        _increment(getattr(b, attribute), player_a)


def update_player_stats(
    players: Iterable[PlayerLike] | PlayerIndex, finished_match: Match
) -> None:
    """
    Applies a completed match to the roster in place.

    - The four players gain a game and their rest counter resets
    - Partners and opponents are recorded on both sides of each pair
    - Every other player who has not left and is not away gains a rest round

    Args:
        players: Whole roster
        finished_match: The match that just completed
    """
    index = index_players(players)
    involved = set(finished_match.player_ids)

    for pid in involved:
        player = index.get(pid)
        if player is None:
            logger.warning("Finished match references unknown player %s", pid)
            continue
        player.games_played += 1
        player.rest_rounds = 0

    for team in (finished_match.team_1, finished_match.team_2):
        _record_pair(index, team[0], team[1], "teammates")

    for player_a in finished_match.team_1:
        for player_b in finished_match.team_2:
            _record_pair(index, player_a, player_b, "opponents")

    # Includes players still on another court
    for player in index.values():
        if player.id in involved or player.has_left or player.away:
            continue
        player.rest_rounds += 1

    logger.debug(
        "Recorded match %s vs %s", finished_match.team_1, finished_match.team_2
    )


# Name used by the scheduling code for the same operation
record_completion = update_player_stats
