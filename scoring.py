# scoring.py
"""
Pairing scorer for candidate doubles matchups.

A matchup score combines four terms in a fixed priority order:
- Fairness: players with similar games played belong on the same court
- Preference weights: caller-supplied teammate/opponent biases
- Repetition penalty: discourages replaying the same partners and opponents
- Jitter: a small random tiebreak so identical inputs do not stagnate

The group diversity score used by the queue maintainer lives here too. It
judges who should queue together before any team split is decided.
"""

import random
from collections.abc import Iterable, Mapping, Sequence
from itertools import combinations
from statistics import mean, pstdev

# Protocol-like type hint for Player (avoids circular import)
from typing import Protocol

from app_types import (
    InteractionCounts,
    PlayerId,
    PlayerStatus,
    PreferenceWeight,
    ScoreDetails,
    Team,
    WeightType,
)
from constants import (
    DIVERSITY_OPPONENT_PENALTY,
    DIVERSITY_REST_BONUS,
    DIVERSITY_TEAMMATE_PENALTY,
    FAIRNESS_BASE,
    FAIRNESS_STDDEV_FACTOR,
    JITTER_RANGE,
    OPPONENT_REPEAT_PENALTY,
    OPPONENT_WEIGHT_FACTOR,
    SCORE_WEIGHTS,
    TEAMMATE_REPEAT_PENALTY,
    TEAMMATE_WEIGHT_FACTOR,
)


class PlayerLike(Protocol):
    """Protocol for objects with player-like attributes."""

    id: PlayerId
    games_played: int
    rest_rounds: int
    teammates: InteractionCounts
    opponents: InteractionCounts
    has_left: bool
    away: bool
    status: PlayerStatus


# Mapping of player ids to player objects
PlayerIndex = Mapping[PlayerId, PlayerLike]


def index_players(players: Iterable[PlayerLike] | PlayerIndex) -> PlayerIndex:
    """Accepts a roster as a list or an id-keyed mapping and returns the mapping."""
    if isinstance(players, Mapping):
        return players
    return {p.id: p for p in players}


def _games_played(player_id: PlayerId, index: PlayerIndex) -> int:
    player = index.get(player_id)
    return player.games_played if player is not None else 0


def teammate_count(player_a: PlayerId, player_b: PlayerId, index: PlayerIndex) -> int:
    """Times two players have been partners, read from whichever side knows more."""
    a, b = index.get(player_a), index.get(player_b)
    return max(
        a.teammates.get(player_b, 0) if a is not None else 0,
        b.teammates.get(player_a, 0) if b is not None else 0,
    )


def opponent_count(player_a: PlayerId, player_b: PlayerId, index: PlayerIndex) -> int:
    """Times two players have faced each other, read from whichever side knows more."""
    a, b = index.get(player_a), index.get(player_b)
    return max(
        a.opponents.get(player_b, 0) if a is not None else 0,
        b.opponents.get(player_a, 0) if b is not None else 0,
    )


def fairness_score(games_played: Sequence[int]) -> float:
    """Higher when the group has played a similar number of games."""
    if not games_played:
        return FAIRNESS_BASE
    return max(0.0, FAIRNESS_BASE - FAIRNESS_STDDEV_FACTOR * pstdev(games_played))


def weight_bonus(
    team_1: Team, team_2: Team, weights: Iterable[PreferenceWeight]
) -> float:
    """Bonus for preference weights realised by this matchup.

    A teammate weight counts when both players are on the same side; an
    opponent weight counts when they are on opposite sides. Weights involving
    players outside the match contribute nothing.
    """
    side_1, side_2 = set(team_1), set(team_2)
    bonus = 0.0
    for weight in weights:
        pair = {weight.player_1, weight.player_2}
        if weight.type == WeightType.TEAMMATE:
            if pair <= side_1 or pair <= side_2:
                bonus += weight.strength * TEAMMATE_WEIGHT_FACTOR
        elif weight.type == WeightType.OPPONENT:
            if (weight.player_1 in side_1 and weight.player_2 in side_2) or (
                weight.player_1 in side_2 and weight.player_2 in side_1
            ):
                bonus += weight.strength * OPPONENT_WEIGHT_FACTOR
    return bonus


def repetition_penalty(team_1: Team, team_2: Team, index: PlayerIndex) -> float:
    """Non-positive penalty for partners and opponents who have met before."""
    penalty = 0.0
    for team in (team_1, team_2):
        penalty -= teammate_count(team[0], team[1], index) * TEAMMATE_REPEAT_PENALTY

    for player_a in team_1:
        for player_b in team_2:
            penalty -= opponent_count(player_a, player_b, index) * OPPONENT_REPEAT_PENALTY
    return penalty


def score_breakdown(
    team_1: Team,
    team_2: Team,
    weights: Iterable[PreferenceWeight],
    players: Iterable[PlayerLike] | PlayerIndex,
    rng: random.Random | None = None,
) -> ScoreDetails:
    """Computes every term of a matchup score.

    Args:
        team_1: First team
        team_2: Second team
        weights: Preference weights of the session
        players: Whole roster (left players included, their history still counts)
        rng: Random source for the jitter term

    Returns:
        ScoreDetails with each term and the combined total
    """
    index = index_players(players)
    rng = rng or random.Random()

    fairness = fairness_score(
        [_games_played(pid, index) for pid in (*team_1, *team_2)]
    )
    bonus = weight_bonus(team_1, team_2, weights)
    penalty = repetition_penalty(team_1, team_2, index)
    jitter = rng.uniform(-JITTER_RANGE, JITTER_RANGE)

    total = (
        fairness * SCORE_WEIGHTS['fairness']
        + bonus * SCORE_WEIGHTS['weight_bonus']
        + penalty * SCORE_WEIGHTS['repetition']
        + jitter
    )
    return ScoreDetails(
        fairness_score=fairness,
        weight_bonus=bonus,
        repetition_penalty=penalty,
        random_factor=jitter,
        total_score=total,
    )


def calculate_team_score(
    team_1: Team,
    team_2: Team,
    weights: Iterable[PreferenceWeight],
    players: Iterable[PlayerLike] | PlayerIndex,
    rng: random.Random | None = None,
) -> float:
    """Scalar desirability of team_1 vs team_2. Higher is better."""
    return score_breakdown(team_1, team_2, weights, players, rng).total_score


def group_diversity_score(
    group: Sequence[PlayerId], players: Iterable[PlayerLike] | PlayerIndex
) -> float:
    """
    Scores a 4-player group by how fresh it is, before teams are split.

    Prior partnerships weigh twice as much as prior meetings across the net.
    Groups with similar games played and long rests score higher.
    """
    index = index_players(players)

    score = 0.0
    for player_a, player_b in combinations(group, 2):
        score -= teammate_count(player_a, player_b, index) * DIVERSITY_TEAMMATE_PENALTY
        score -= opponent_count(player_a, player_b, index) * DIVERSITY_OPPONENT_PENALTY

    games = [_games_played(pid, index) for pid in group]
    score += max(0.0, FAIRNESS_BASE - pstdev(games)) if games else FAIRNESS_BASE

    rests = [index[pid].rest_rounds if pid in index else 0 for pid in group]
    if rests:
        score += mean(rests) * DIVERSITY_REST_BONUS
    return score
