#!/usr/bin/env python3
"""
Court Rotation Session Simulator.

This standalone script plays out a session with the rotation engine: it starts
a round, then repeatedly finishes the longest-running court so the next queued
match moves on, and finally prints the roster and play statistics.

Usage:
    python simulate_session.py --players 14 --courts 3 --games 40 --seed 7
"""

import argparse
import logging
import random

from app_types import PartitionStrategy, SessionSettings
from constants import DEFAULT_NUM_COURTS
from logger import setup_logging
from roster_service import (
    compute_session_stats,
    create_court_dataframe,
    create_roster_dataframe,
)
from session_logic import Player, RotationSession

# Configure logging using matching app pattern
setup_logging()
logger = logging.getLogger("app.simulate_session")


def build_session(
    num_players: int,
    num_courts: int,
    strategy: PartitionStrategy,
    seed: int | None,
) -> RotationSession:
    """Creates a session with players P1..Pn."""
    players = [Player(id=f"p{i}", name=f"P{i}") for i in range(1, num_players + 1)]
    settings = SessionSettings(court_count=num_courts, partition_strategy=strategy)
    return RotationSession(players, settings=settings, rng=random.Random(seed))


def simulate(session: RotationSession, num_games: int) -> None:
    """Finishes courts one at a time, oldest match first."""
    logger.info("=== Starting simulation ===")
    session.start_round()

    for _ in range(num_games):
        playing = [court for court in session.courts if court.match is not None]
        if not playing:
            logger.info("No court is playing; starting a new round")
            session.start_round()
            playing = [court for court in session.courts if court.match is not None]
            if not playing:
                logger.warning("Not enough players to fill a court")
                break

        oldest = min(playing, key=lambda court: court.match.start_time)
        session.finish_court(oldest.id)

        report = session.validate()
        if not report.is_valid:
            for error in report.errors:
                logger.error("  %s", error)

    logger.info("=== Simulation complete: %d games ===", session.total_games_played)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--players", type=int, default=12)
    parser.add_argument("--courts", type=int, default=DEFAULT_NUM_COURTS)
    parser.add_argument("--games", type=int, default=30)
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in PartitionStrategy],
        default=PartitionStrategy.SEQUENTIAL.value,
    )
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    session = build_session(
        args.players, args.courts, PartitionStrategy(args.strategy), args.seed
    )
    simulate(session, args.games)

    print("\n--- Courts and Queue ---")
    print(create_court_dataframe(session).to_string(index=False))

    print("\n--- Roster ---")
    print(create_roster_dataframe(session).drop(columns=["player_id"]).to_string(index=False))

    stats = compute_session_stats(session)
    print("\n--- Summary ---")
    print(f"Games played:        {stats.total_games}")
    print(f"Average per player:  {stats.average_games_per_player:.2f}")
    print(f"Fairness index:      {stats.fairness_index:.3f}")
    print(f"Most active:         {stats.most_active_player}")
    print(f"Least active:        {stats.least_active_player}")


if __name__ == "__main__":
    main()
