# queue_maintainer.py
"""
Lookahead queue maintenance.

The queue holds the next matches to go on court, aiming for a target number
of full matches (two by default) so players always know what is coming up.
When the resting pool alone cannot fill the queue, the shortfall is borrowed
from players still on court: those who have played the most are earmarked in
the queued match's pending_players while they finish their current game.
Once such a game ends the queued match is dropped, so the queue is rebuilt
from fresh counters instead of sending the busiest players straight back on.

maintain_queue() is a pure computation over the players it is given. The
session-level functions (regenerate_queue, maintain_queue_size,
auto_maintain_queue) apply it to a RotationSession and refresh statuses.
"""

import logging
import random
from collections.abc import Iterable, Sequence
from itertools import combinations
from typing import TYPE_CHECKING

from app_types import Match, MatchQueue, PlayerId, PreferenceWeight
from constants import PLAYERS_PER_COURT
from scoring import PlayerIndex, PlayerLike, group_diversity_score, index_players
from team_finder import find_best_team_match, sort_by_priority

if TYPE_CHECKING:
    from session_logic import RotationSession

logger = logging.getLogger("app.queue_maintainer")


def _is_available(player: PlayerLike) -> bool:
    return not player.has_left and not player.away


def select_most_diverse_group(
    pool: Sequence[PlayerId], players: PlayerIndex
) -> list[PlayerId]:
    """Picks the 4-player subset of pool with the best group diversity score.

    Ties go to the subset found first, so pool order (priority order) decides.
    """
    if len(pool) <= PLAYERS_PER_COURT:
        return list(pool[:PLAYERS_PER_COURT])

    best_group: tuple[PlayerId, ...] = ()
    best_score = float("-inf")
    for group in combinations(pool, PLAYERS_PER_COURT):
        score = group_diversity_score(group, players)
        if score > best_score:
            best_score = score
            best_group = group
    return list(best_group)


def maintain_queue(
    resting_players: Iterable[PlayerLike],
    playing_players: Iterable[PlayerLike],
    court_count: int,
    weights: Iterable[PreferenceWeight],
    all_players: Iterable[PlayerLike] | PlayerIndex,
    target_matches: int = 2,
    rng: random.Random | None = None,
) -> MatchQueue:
    """
    Builds up to target_matches queued matches.

    Args:
        resting_players: Players free to be queued
        playing_players: Players on court who may be earmarked for the queue
        court_count: Number of courts in the session
        weights: Preference weights of the session
        all_players: Whole roster, used for history lookups
        target_matches: Number of full matches to aim for
        rng: Random source for priority ties and score jitter

    Returns:
        Queued matches, front first. Fewer than target_matches when there are
        not enough players; never raises.
    """
    if court_count < 1 or target_matches < 1:
        return []

    rng = rng or random.Random()
    weights = list(weights)
    index = index_players(all_players)
    needed = target_matches * PLAYERS_PER_COURT

    resting_ids = [
        p.id for p in sort_by_priority(
            (p for p in resting_players if _is_available(p)), rng
        )
    ]

    borrowed_ids: list[PlayerId] = []
    shortfall = needed - len(resting_ids)
    if shortfall > 0:
        donors = [
            p for p in playing_players if _is_available(p) and p.id not in resting_ids
        ]
        # Most games played rotate out first; the most recent starters break ties
        donors.sort(key=lambda p: (-p.games_played, p.rest_rounds))
        borrowed_ids = [p.id for p in donors[:shortfall]]

    borrowed = set(borrowed_ids)
    used: set[PlayerId] = set()
    queue: MatchQueue = []

    while len(queue) < target_matches:
        pool = [pid for pid in resting_ids + borrowed_ids if pid not in used]

        if len(pool) < PLAYERS_PER_COURT:
            break

        group = select_most_diverse_group(pool, index)
        match = find_best_team_match(group, weights, index, rng)
        if match is None:
            break

        match.pending_players = tuple(pid for pid in match.player_ids if pid in borrowed)
        queue.append(match)
        used.update(group)

    logger.debug(
        "Built %d of %d queued matches (%d resting, %d borrowed)",
        len(queue),
        target_matches,
        len(resting_ids),
        len(borrowed_ids),
    )
    return queue


# =============================================================================
# Session-level queue maintenance
# =============================================================================


def _on_court_ids(session: "RotationSession") -> set[PlayerId]:
    return {pid for court in session.courts for pid in court.player_ids}


def prune_queue(session: "RotationSession") -> int:
    """
    Drops queue entries that can no longer be played as planned.

    An entry is stale when one of its players left, went away, is unknown,
    already appears earlier in the queue, or is on court without being
    earmarked for it. An entry is also stale once any of its earmarked
    players has come off court.

    Returns:
        Number of entries removed
    """
    on_court = _on_court_ids(session)
    kept: MatchQueue = []
    seen: set[PlayerId] = set()

    for match in session.queue:
        stale = False
        for pid in match.player_ids:
            player = session.players.get(pid)
            if (
                player is None
                or not _is_available(player)
                or pid in seen
                or (pid in on_court and pid not in match.pending_players)
            ):
                stale = True
                break
        if stale or any(pid not in on_court for pid in match.pending_players):
            continue
        kept.append(match)
        seen.update(match.player_ids)

    removed = len(session.queue) - len(kept)
    session.queue = kept
    if removed:
        logger.info("Removed %d stale queue entries", removed)
    return removed


def regenerate_queue(
    session: "RotationSession", target_matches: int | None = None
) -> MatchQueue:
    """
    Dissolves the session queue and rebuilds it from scratch.

    Players who drop out of the queue revert to resting and newly queued
    players become queued; statuses are refreshed from placements.
    """
    if target_matches is None:
        target_matches = session.settings.target_queue_matches

    on_court = _on_court_ids(session)
    available = [p for p in session.players.values() if _is_available(p)]
    resting = [p for p in available if p.id not in on_court]
    playing = [p for p in available if p.id in on_court]

    session.queue = maintain_queue(
        resting_players=resting,
        playing_players=playing,
        court_count=len(session.courts),
        weights=session.weights,
        all_players=session.players,
        target_matches=target_matches,
        rng=session.rng,
    )
    session.refresh_statuses()

    logger.info(
        "Queue regenerated: %d match(es), %d resting candidate(s)",
        len(session.queue),
        len(resting),
    )
    return session.queue


def maintain_queue_size(
    session: "RotationSession", target_matches: int | None = None
) -> bool:
    """
    Keeps the queue at its target size.

    Stale entries are pruned first. A queue that is still at target is left
    alone; a short queue is dissolved and rebuilt so the freshest groups can
    form.

    Returns:
        True when the queue holds at least one match afterwards
    """
    if target_matches is None:
        target_matches = session.settings.target_queue_matches

    prune_queue(session)
    if len(session.queue) < target_matches:
        regenerate_queue(session, target_matches)
    else:
        session.refresh_statuses()
    return len(session.queue) > 0


def auto_maintain_queue(session: "RotationSession") -> None:
    """Queue upkeep after a court finishes or the roster changes."""
    maintain_queue_size(session, session.settings.target_queue_matches)
