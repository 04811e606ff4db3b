# app_types.py
"""
Type aliases and data classes for the Court Rotation engine.

This module defines type aliases to improve code readability and provide
semantic meaning to complex type hints, plus the value objects passed between
the scorer, optimizer, queue maintainer and validators.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4

from constants import DEFAULT_PARTITION_STRATEGY, DEFAULT_TARGET_QUEUE_MATCHES

# =============================================================================
# Basic Type Aliases
# =============================================================================


class PlayerStatus(str, Enum):
    """Where a player currently is. Always derived from placements."""

    PLAYING = "playing"
    QUEUED = "queued"
    RESTING = "resting"
    AWAY = "away"


class CourtStatus(str, Enum):
    """Court occupancy."""

    PLAYING = "playing"
    EMPTY = "empty"


class WeightType(str, Enum):
    """Kind of pairing preference."""

    TEAMMATE = "teammate"
    OPPONENT = "opponent"


class PartitionStrategy(str, Enum):
    """How the playing pool is split across three or more courts."""

    SEQUENTIAL = "sequential"
    ILP = "ilp"


# An opaque, stable player identifier (unique within one roster)
PlayerId = str

# A pair of player ids (used for teams and pairwise history)
PlayerPair = tuple[PlayerId, PlayerId]

# A doubles team. Slot order is representational only.
Team = PlayerPair

# Per-player interaction history: other player id -> number of times
InteractionCounts = dict[PlayerId, int]


def same_team(team_a: Team, team_b: Team) -> bool:
    """Two teams are the same matchup when their unordered pairs are equal."""
    return frozenset(team_a) == frozenset(team_b)


# =============================================================================
# Match Data Classes
# =============================================================================


@dataclass
class Match:
    """A doubles match, either on a court or waiting in the queue.

    Attributes:
        team_1: Tuple of player ids for team 1
        team_2: Tuple of player ids for team 2
        court: Court number (1-indexed) once the match is on a court
        start_time: When the match started on its court
        pending_players: Ids borrowed from a court who are still finishing a
            game there. Only queued matches carry these.
    """

    team_1: Team
    team_2: Team
    court: int | None = None
    start_time: datetime | None = None
    pending_players: tuple[PlayerId, ...] = ()

    @property
    def player_ids(self) -> list[PlayerId]:
        return [*self.team_1, *self.team_2]

    def has_player(self, player_id: PlayerId) -> bool:
        return player_id in self.team_1 or player_id in self.team_2

    def is_teammate_pair(self, player_a: PlayerId, player_b: PlayerId) -> bool:
        pair = frozenset((player_a, player_b))
        return pair == frozenset(self.team_1) or pair == frozenset(self.team_2)

    def is_opponent_pair(self, player_a: PlayerId, player_b: PlayerId) -> bool:
        return (player_a in self.team_1 and player_b in self.team_2) or (
            player_a in self.team_2 and player_b in self.team_1
        )


@dataclass
class Court:
    """A numbered court holding at most one active match."""

    id: int
    name: str | None = None
    match: Match | None = None

    @property
    def status(self) -> CourtStatus:
        return CourtStatus.PLAYING if self.match is not None else CourtStatus.EMPTY

    @property
    def player_ids(self) -> list[PlayerId]:
        return self.match.player_ids if self.match is not None else []

    @property
    def label(self) -> str:
        return self.name or f"Court {self.id}"


@dataclass
class PreferenceWeight:
    """A pairing bias between two distinct players.

    Attributes:
        player_1: First player id
        player_2: Second player id
        strength: Bias strength, 1-10
        type: Whether the pair should team up or face each other
    """

    player_1: PlayerId
    player_2: PlayerId
    strength: int
    type: WeightType = WeightType.TEAMMATE
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)

    def involves(self, player_a: PlayerId, player_b: PlayerId) -> bool:
        return frozenset((self.player_1, self.player_2)) == frozenset(
            (player_a, player_b)
        )


# List of queued matches, front first
MatchQueue = list[Match]


# =============================================================================
# Settings
# =============================================================================


@dataclass
class SessionSettings:
    """Tunables a caller can set per session."""

    court_count: int
    target_queue_matches: int = DEFAULT_TARGET_QUEUE_MATCHES
    partition_strategy: PartitionStrategy = PartitionStrategy(DEFAULT_PARTITION_STRATEGY)


# =============================================================================
# Result Data Classes
# =============================================================================


@dataclass
class ScoreDetails:
    """Breakdown of a team-vs-team score."""

    fairness_score: float
    weight_bonus: float
    repetition_penalty: float
    random_factor: float
    total_score: float


@dataclass
class AssignmentStats:
    """Quality indicators for an assignment, each on a 0-1 scale."""

    fairness_score: float
    weight_effectiveness: float
    diversity_score: float


@dataclass
class AssignmentResult:
    """Result from the court assignment optimizer.

    Attributes:
        courts: One entry per court, empty courts included
        queue: Lookahead matches, front first
        waiting: Ids of eligible players neither on a court nor queued
        stats: Quality indicators
    """

    courts: list[Court]
    queue: MatchQueue
    waiting: list[PlayerId]
    stats: AssignmentStats


@dataclass
class ValidationReport:
    """Findings from a diagnostic validator.

    Attributes:
        errors: Human-readable findings
        duplicates: Player ids found in more than one placement
        is_valid: True when there are no findings
    """

    errors: list[str] = field(default_factory=list)
    duplicates: list[PlayerId] = field(default_factory=list)
    is_valid: bool = field(init=False)

    def __post_init__(self) -> None:
        self.is_valid = not self.errors


@dataclass
class SessionStats:
    """Session-wide play statistics."""

    total_participants: int
    active_players: int
    total_games: int
    average_games_per_player: float
    fairness_index: float
    most_active_player: str | None
    least_active_player: str | None
