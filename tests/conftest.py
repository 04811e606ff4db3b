import random

import pytest

from session_logic import Player, RotationSession


@pytest.fixture
def sample_players():
    """Returns a dictionary of eight fresh players keyed by id."""
    names = ["Alice", "Bob", "Charlie", "Dave", "Eve", "Frank", "Grace", "Heidi"]
    return {name.lower(): Player(id=name.lower(), name=name) for name in names}


@pytest.fixture
def rng():
    """A seeded random source so assignments are reproducible."""
    return random.Random(1234)


@pytest.fixture
def twelve_player_session(rng):
    """A two-court session with twelve fresh players."""
    players = [Player(id=f"p{i}", name=f"P{i}") for i in range(1, 13)]
    return RotationSession(players, court_count=2, rng=rng)
