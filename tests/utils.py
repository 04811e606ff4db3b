import random
from typing import Generator

from app_types import AssignmentResult, PreferenceWeight
from optimizer import generate_optimal_teams
from session_logic import Player
from stats_updater import update_player_stats
from validation import derive_status


def generate_players(n, rng=None, max_games=0, max_rest=0, with_history=False):
    """
    Generates N players with ids p1..pn.

    Args:
        n: Number of players to generate
        rng: Random source (default: fresh)
        max_games: Upper bound for random games_played
        max_rest: Upper bound for random rest_rounds
        with_history: Fill symmetric teammate/opponent counts at random

    Returns:
        List of Player objects.
    """
    rng = rng or random.Random()
    players = [
        Player(
            id=f"p{i}",
            name=f"P{i}",
            games_played=rng.randint(0, max_games),
            rest_rounds=rng.randint(0, max_rest),
        )
        for i in range(1, n + 1)
    ]
    if with_history:
        for i, a in enumerate(players):
            for b in players[i + 1:]:
                if rng.random() < 0.3:
                    count = rng.randint(1, 3)
                    a.teammates[b.id] = b.teammates[a.id] = count
                if rng.random() < 0.3:
                    count = rng.randint(1, 3)
                    a.opponents[b.id] = b.opponents[a.id] = count
    return players


def run_rotation_rounds(
    players: list[Player],
    num_courts: int,
    num_rounds: int = 10,
    weights: list[PreferenceWeight] | None = None,
    rng: random.Random | None = None,
) -> Generator[tuple[int, AssignmentResult], None, None]:
    """
    Generator that assigns and completes rounds back to back.

    Simulates round-based usage by:
    - Generating an assignment from the current roster
    - Marking players on court as playing
    - Completing every court match through the stats updater

    Yields:
        tuple: (round_number, AssignmentResult)
    """
    rng = rng or random.Random()
    weights = weights or []

    for round_num in range(num_rounds):
        result = generate_optimal_teams(players, num_courts, weights, rng=rng)

        for player in players:
            player.status = derive_status(player, result.courts, [])

        yield round_num, result

        for court in result.courts:
            if court.match is not None:
                update_player_stats(players, court.match)
