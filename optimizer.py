# optimizer.py
"""
Court assignment optimizer.

Chooses who plays this round (fewest games, longest rest) and how the playing
pool is split across courts so the total pairing score is as high as
possible. Whoever is left over feeds the lookahead queue.

Partitioning by court count:
- 1 court: the team finder picks the best split of the four players
- 2 courts: every split of the eight players into two groups is tried
- 3+ courts: consecutive groups of four in priority order. Exhaustive search
  is not bounded at that size. The "ilp" strategy instead solves the grouping
  as an integer program with pulp, falling back to consecutive groups if the
  solver gives no answer.
"""

import logging
import random
from collections.abc import Iterable, Sequence
from datetime import datetime
from itertools import combinations
from statistics import pstdev

import pulp

from app_types import (
    AssignmentResult,
    AssignmentStats,
    Court,
    Match,
    MatchQueue,
    PartitionStrategy,
    PlayerId,
    PreferenceWeight,
    WeightType,
)
from constants import (
    DEFAULT_TARGET_QUEUE_MATCHES,
    FAIRNESS_STDDEV_FACTOR,
    ILP_FAIRNESS_WEIGHT,
    ILP_TIME_LIMIT_SECONDS,
    OPPONENT_REPEAT_PENALTY,
    OPPONENT_WEIGHT_FACTOR,
    PLAYERS_PER_COURT,
    SCORE_WEIGHTS,
    STATS_FAIRNESS_DIVISOR,
    TEAMMATE_REPEAT_PENALTY,
    TEAMMATE_WEIGHT_FACTOR,
)
from exceptions import OptimizerError
from logger import log_assignment_debug
from queue_maintainer import maintain_queue
from scoring import PlayerIndex, PlayerLike, index_players, opponent_count, teammate_count
from team_finder import best_split, sort_by_priority

logger = logging.getLogger("app.optimizer")


def _empty_courts(court_count: int) -> list[Court]:
    return [Court(id=i + 1) for i in range(max(court_count, 0))]


def _group_consecutively(pool: Sequence[PlayerId], groups: int) -> list[list[PlayerId]]:
    return [
        list(pool[i * PLAYERS_PER_COURT:(i + 1) * PLAYERS_PER_COURT])
        for i in range(groups)
    ]


def _best_two_court_split(
    pool: Sequence[PlayerId],
    weights: list[PreferenceWeight],
    index: PlayerIndex,
    rng: random.Random,
) -> list[Match]:
    """Tries all 35 ways to split eight players into two courts of four."""
    first, rest = pool[0], list(pool[1:PLAYERS_PER_COURT * 2])
    best_matches: list[Match] = []
    best_total = float("-inf")

    for trio in combinations(rest, PLAYERS_PER_COURT - 1):
        group_1 = [first, *trio]
        group_2 = [pid for pid in rest if pid not in trio]
        split_1 = best_split(group_1, weights, index, rng)
        split_2 = best_split(group_2, weights, index, rng)
        if split_1 is None or split_2 is None:
            continue
        total = split_1[1] + split_2[1]
        if total > best_total:
            best_total = total
            best_matches = [split_1[0], split_2[0]]

    logger.debug("Best two-court total score: %.3f", best_total)
    return best_matches


def _pair_cost(
    player_a: PlayerId,
    player_b: PlayerId,
    weights: list[PreferenceWeight],
    index: PlayerIndex,
) -> float:
    """Cost of putting two players on the same court, before teams are split."""
    repeats = (
        teammate_count(player_a, player_b, index) * TEAMMATE_REPEAT_PENALTY
        + opponent_count(player_a, player_b, index) * OPPONENT_REPEAT_PENALTY
    )
    affinity = 0.0
    for weight in weights:
        if weight.involves(player_a, player_b):
            factor = (
                TEAMMATE_WEIGHT_FACTOR
                if weight.type == WeightType.TEAMMATE
                else OPPONENT_WEIGHT_FACTOR
            )
            affinity += weight.strength * factor
    return SCORE_WEIGHTS['repetition'] * repeats - SCORE_WEIGHTS['weight_bonus'] * affinity


def solve_partition_ilp(
    pool: Sequence[PlayerId],
    court_count: int,
    weights: list[PreferenceWeight],
    index: PlayerIndex,
) -> list[list[PlayerId]]:
    """
    Groups the playing pool into courts of four with an integer program.

    Minimises the games-played spread on each court and the cost of pairs who
    share a court (repeat partners/opponents cost, preference weights earn).

    Raises:
        OptimizerError: If the solver does not return a usable solution
    """
    players = list(pool)
    num_players = len(players)
    courts = range(court_count)
    games = [index[pid].games_played if pid in index else 0 for pid in players]

    prob = pulp.LpProblem("Court_Partition", pulp.LpMinimize)

    # x: player i is on court c. Indices keep variable names solver-safe.
    x = pulp.LpVariable.dicts("OnCourt", (range(num_players), courts), cat="Binary")
    # y: pair k shares court c
    pairs = list(combinations(range(num_players), 2))
    y = pulp.LpVariable.dicts("Together", (range(len(pairs)), courts), cat="Binary")

    max_games = pulp.LpVariable.dicts("MaxGamesOnCourt", courts, lowBound=0)
    min_games = pulp.LpVariable.dicts("MinGamesOnCourt", courts, lowBound=0)
    total_spread = pulp.lpSum(max_games[c] - min_games[c] for c in courts)

    costs = [
        _pair_cost(players[i], players[j], weights, index) for i, j in pairs
    ]
    total_pair_cost = pulp.lpSum(
        costs[k] * y[k][c] for k in range(len(pairs)) for c in courts
    )

    prob += (
        ILP_FAIRNESS_WEIGHT * FAIRNESS_STDDEV_FACTOR * total_spread + total_pair_cost
    ), "Minimize_Spread_And_Repeats"

    for c in courts:
        prob += pulp.lpSum(x[i][c] for i in range(num_players)) == PLAYERS_PER_COURT
    for i in range(num_players):
        prob += pulp.lpSum(x[i][c] for c in courts) == 1

    for k, (i, j) in enumerate(pairs):
        for c in courts:
            prob += y[k][c] <= x[i][c]
            prob += y[k][c] <= x[j][c]
            prob += y[k][c] >= x[i][c] + x[j][c] - 1

    big_m = max(games) if games else 0
    for c in courts:
        for i in range(num_players):
            prob += max_games[c] >= games[i] * x[i][c]
            prob += min_games[c] <= games[i] * x[i][c] + big_m * (1 - x[i][c])

    try:
        prob.solve(pulp.PULP_CBC_CMD(msg=False, timeLimit=ILP_TIME_LIMIT_SECONDS))
    except pulp.PulpSolverError as e:
        raise OptimizerError("Partition solver failed to run") from e

    if prob.status != pulp.LpStatusOptimal:
        raise OptimizerError(
            f"No partition found. Status: {pulp.LpStatus[prob.status]}"
        )

    groups = [
        [players[i] for i in range(num_players) if (x[i][c].value() or 0) > 0.5]
        for c in courts
    ]
    if any(len(group) != PLAYERS_PER_COURT for group in groups):
        raise OptimizerError("Partition solver returned incomplete courts")

    logger.debug("Partition objective value: %s", pulp.value(prob.objective))

    # Court numbering follows priority: the court with the most due player first
    position = {pid: n for n, pid in enumerate(players)}
    groups.sort(key=lambda group: min(position[pid] for pid in group))
    return groups


def assign_players_to_courts(
    pool: Sequence[PlayerId],
    court_count: int,
    weights: list[PreferenceWeight],
    index: PlayerIndex,
    rng: random.Random,
    partition_strategy: PartitionStrategy = PartitionStrategy.SEQUENTIAL,
) -> list[Match]:
    """
    Splits a priority-ordered playing pool of court_count * 4 players into
    one match per court.
    """
    if court_count < 1 or len(pool) < PLAYERS_PER_COURT:
        return []

    if court_count == 1:
        result = best_split(pool[:PLAYERS_PER_COURT], weights, index, rng)
        return [result[0]] if result is not None else []

    if court_count == 2:
        return _best_two_court_split(pool, weights, index, rng)

    groups = None
    if partition_strategy == PartitionStrategy.ILP:
        try:
            groups = solve_partition_ilp(pool, court_count, weights, index)
        except OptimizerError as e:
            logger.warning("%s; falling back to sequential grouping", e)

    if groups is None:
        groups = _group_consecutively(pool, court_count)

    matches = []
    for group in groups:
        result = best_split(group, weights, index, rng)
        if result is not None:
            matches.append(result[0])
    return matches


def calculate_assignment_stats(
    courts: list[Court],
    queue: MatchQueue,
    weights: list[PreferenceWeight],
    eligible: Sequence[PlayerLike],
    index: PlayerIndex,
) -> AssignmentStats:
    """
    Quality indicators on a 0-1 scale.

    - fairness_score: 1 minus the games-played deviation of eligible players / 10
    - weight_effectiveness: share of weights realised on a court
    - diversity_score: share of partner/opponent pairings (courts and queue)
      that have never happened before
    """
    games = [p.games_played for p in eligible]
    deviation = pstdev(games) if games else 0.0
    fairness = max(0.0, 1 - deviation / STATS_FAIRNESS_DIVISOR)

    court_matches = [court.match for court in courts if court.match is not None]
    realised = 0
    for weight in weights:
        for match in court_matches:
            if weight.type == WeightType.TEAMMATE:
                hit = match.is_teammate_pair(weight.player_1, weight.player_2)
            else:
                hit = match.is_opponent_pair(weight.player_1, weight.player_2)
            if hit:
                realised += 1
                break
    weight_effectiveness = realised / len(weights) if weights else 1.0

    fresh = total = 0
    for match in [*court_matches, *queue]:
        for team in (match.team_1, match.team_2):
            total += 1
            fresh += teammate_count(team[0], team[1], index) == 0
        for player_a in match.team_1:
            for player_b in match.team_2:
                total += 1
                fresh += opponent_count(player_a, player_b, index) == 0
    diversity = fresh / total if total else 1.0

    return AssignmentStats(
        fairness_score=fairness,
        weight_effectiveness=weight_effectiveness,
        diversity_score=diversity,
    )


def generate_optimal_teams(
    players: Iterable[PlayerLike],
    court_count: int,
    weights: Iterable[PreferenceWeight] = (),
    *,
    target_queue_matches: int = DEFAULT_TARGET_QUEUE_MATCHES,
    partition_strategy: PartitionStrategy = PartitionStrategy.SEQUENTIAL,
    rng: random.Random | None = None,
) -> AssignmentResult:
    """
    Generates courts, a lookahead queue and the waiting list for one round.

    Args:
        players: Whole roster; players who left or are away are skipped but
            their history still informs scoring
        court_count: Number of courts
        weights: Preference weights of the session
        target_queue_matches: Queue length to aim for
        partition_strategy: Grouping method for three or more courts
        rng: Random source for priority ties and score jitter

    Returns:
        AssignmentResult. Too few players degrade to empty courts and a
        longer waiting list; this never raises for legal input.
    """
    rng = rng or random.Random()
    roster = list(players)
    index = index_players(roster)
    weights = list(weights)

    eligible = [p for p in roster if not p.has_left and not p.away]
    courts = _empty_courts(court_count)

    if len(eligible) < PLAYERS_PER_COURT:
        logger.info(
            "Only %d eligible player(s); everyone waits", len(eligible)
        )
        return AssignmentResult(
            courts=courts,
            queue=[],
            waiting=[p.id for p in eligible],
            stats=AssignmentStats(
                fairness_score=1.0, weight_effectiveness=0.0, diversity_score=1.0
            ),
        )

    ordered = sort_by_priority(eligible, rng)
    active_courts = max(0, min(court_count, len(ordered) // PLAYERS_PER_COURT))
    playing_count = active_courts * PLAYERS_PER_COURT

    pool = [p.id for p in ordered[:playing_count]]
    remaining = ordered[playing_count:]

    matches = assign_players_to_courts(
        pool, active_courts, weights, index, rng, PartitionStrategy(partition_strategy)
    )
    started = datetime.now()
    for court, match in zip(courts, matches):
        match.court = court.id
        match.start_time = started
        court.match = match

    queue = maintain_queue(
        resting_players=remaining,
        playing_players=[],
        court_count=court_count,
        weights=weights,
        all_players=index,
        target_matches=target_queue_matches,
        rng=rng,
    )

    queued = {pid for match in queue for pid in match.player_ids}
    waiting = [p.id for p in remaining if p.id not in queued]

    stats = calculate_assignment_stats(courts, queue, weights, eligible, index)

    logger.info(
        "Assigned %d court(s), %d queued match(es), %d waiting",
        len(matches),
        len(queue),
        len(waiting),
    )
    log_assignment_debug(logger, courts, queue, waiting, stats)

    return AssignmentResult(courts=courts, queue=queue, waiting=waiting, stats=stats)
