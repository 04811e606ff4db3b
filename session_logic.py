# session_logic.py
import logging
import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from app_types import (
    AssignmentResult,
    Court,
    CourtStatus,
    InteractionCounts,
    Match,
    PlayerId,
    PlayerStatus,
    PreferenceWeight,
    SessionSettings,
    ValidationReport,
    WeightType,
)
from constants import (
    DEFAULT_LEFT_REASON,
    DEFAULT_NUM_COURTS,
    MAX_NAME_LENGTH,
    PLAYERS_PER_COURT,
)
from exceptions import SessionError, ValidationError
from optimizer import generate_optimal_teams
from queue_maintainer import auto_maintain_queue, prune_queue
from stats_updater import update_player_stats
from team_finder import find_best_team_match, sort_by_priority
from validation import derive_status, validate_session_integrity, validate_weight

logger = logging.getLogger("app.session_logic")


@dataclass
class Player:
    id: PlayerId
    name: str
    games_played: int = 0
    rest_rounds: int = 0
    teammates: InteractionCounts = field(default_factory=dict)
    opponents: InteractionCounts = field(default_factory=dict)
    status: PlayerStatus = PlayerStatus.RESTING
    away: bool = False
    has_left: bool = False
    left_at: datetime | None = None
    left_reason: str | None = None
    joined_at: datetime = field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        """Neither left nor away."""
        return not self.has_left and not self.away

    def mark_left(self, reason: str | None = None, when: datetime | None = None):
        """Sets the three leave fields together."""
        self.has_left = True
        self.left_at = when or datetime.now()
        self.left_reason = reason or DEFAULT_LEFT_REASON

    def rejoin(self):
        """Clears the three leave fields together."""
        self.has_left = False
        self.left_at = None
        self.left_reason = None


class RotationSession:
    """
    Orchestrates a court rotation session around the assignment engine.
    This class only contains game logic and no persistence code: the caller
    owns storage and must serialize operations on one session (see
    session_service.SessionLocks).
    """
    def __init__(
        self,
        players: Mapping[PlayerId, Player] | Iterable[Player],
        court_count: int = DEFAULT_NUM_COURTS,
        weights: Iterable[PreferenceWeight] | None = None,
        settings: SessionSettings | None = None,
        rng: random.Random | None = None,
    ):
        if settings is None:
            settings = SessionSettings(court_count=court_count)
        if settings.court_count < 1:
            raise ValidationError("Number of courts must be at least 1.")

        if isinstance(players, Mapping):
            players = players.values()
        self.players: dict[PlayerId, Player] = {p.id: p for p in players}

        self.settings = settings
        self.weights: list[PreferenceWeight] = list(weights or [])
        self.rng = rng or random.Random()

        self.courts: list[Court] = [
            Court(id=i + 1) for i in range(settings.court_count)
        ]
        self.queue: list[Match] = []

        self.round_num = 0
        self.total_games_played = 0

        self.refresh_statuses()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    @property
    def court_count(self) -> int:
        return self.settings.court_count

    @property
    def has_active_games(self) -> bool:
        return any(court.status == CourtStatus.PLAYING for court in self.courts)

    def active_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.is_active]

    def get_player(self, player_id: PlayerId) -> Player:
        try:
            return self.players[player_id]
        except KeyError:
            raise SessionError(f"Player {player_id} is not in this session") from None

    def get_court(self, court_id: int) -> Court:
        for court in self.courts:
            if court.id == court_id:
                return court
        raise SessionError(f"Court {court_id} does not exist")

    def refresh_statuses(self):
        """Re-derives every player's status from court and queue placements."""
        for player in self.players.values():
            player.status = derive_status(player, self.courts, self.queue)

    def validate(self) -> ValidationReport:
        return validate_session_integrity(self)

    # ------------------------------------------------------------------ #
    # Rounds and courts
    # ------------------------------------------------------------------ #

    def start_round(self) -> AssignmentResult:
        """
        Generates a fresh assignment for every court and a new queue.
        Only allowed once no court is still playing.
        """
        if self.has_active_games:
            raise SessionError(
                "Matches are still in progress; finish every court before the next round."
            )

        self.round_num += 1
        result = generate_optimal_teams(
            self.players.values(),
            self.court_count,
            self.weights,
            target_queue_matches=self.settings.target_queue_matches,
            partition_strategy=self.settings.partition_strategy,
            rng=self.rng,
        )

        # Keep court names across rounds
        names = {court.id: court.name for court in self.courts}
        for court in result.courts:
            court.name = names.get(court.id)

        self.courts = result.courts
        self.queue = result.queue
        self.refresh_statuses()

        logger.info(
            "Round %d started: %d playing, %d queued, %d waiting",
            self.round_num,
            sum(len(court.player_ids) for court in self.courts),
            len(self.queue),
            len(result.waiting),
        )
        return result

    def finish_court(self, court_id: int) -> Match | None:
        """
        Completes the match on a court and moves the next group on.

        The finished match is recorded exactly once, the court is refilled
        from the front of the queue (skipping entries whose players are still
        on court) and the queue is topped up again. With no playable entry the
        free players with the best priority go on instead.

        Returns:
            The finished match, or None if the court was already empty
        """
        court = self.get_court(court_id)
        finished = court.match

        # Clear first so the same match can never be recorded twice
        court.match = None
        if finished is not None:
            update_player_stats(self.players, finished)
            self.total_games_played += 1
        else:
            logger.info("%s was already empty", court.label)

        if court.id > self.court_count:
            self.courts.remove(court)
            logger.info("%s retired after the court count was reduced", court.label)
        else:
            prune_queue(self)
            self._fill_court(court)

        auto_maintain_queue(self)
        return finished

    def fill_empty_courts(self) -> int:
        """Moves queued matches onto any empty courts. Returns how many moved."""
        prune_queue(self)
        filled = 0
        for court in self.courts:
            if court.match is None and court.id <= self.court_count:
                if self._fill_court(court) is not None:
                    filled += 1
        if filled:
            auto_maintain_queue(self)
        return filled

    def update_courts(self, new_count: int):
        """
        Changes the number of courts mid-session.
        New courts start empty and are filled from the queue; surplus courts
        that are empty go now, playing ones when their match finishes.
        """
        new_count = int(new_count)
        if new_count < 1:
            raise ValidationError("Number of courts must be at least 1.")

        self.settings.court_count = new_count
        existing = {court.id for court in self.courts}
        for court_id in range(1, new_count + 1):
            if court_id not in existing:
                self.courts.append(Court(id=court_id))
        self.courts = [
            court
            for court in self.courts
            if court.id <= new_count or court.match is not None
        ]
        self.courts.sort(key=lambda court: court.id)

        self.fill_empty_courts()
        auto_maintain_queue(self)

    def rename_court(self, court_id: int, name: str):
        court = self.get_court(court_id)
        name = name.strip()
        if not name:
            raise ValidationError("Court name cannot be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Court name cannot exceed {MAX_NAME_LENGTH} characters"
            )
        if any(other.id != court_id and other.name == name for other in self.courts):
            raise ValidationError(f"Court name '{name}' is already in use")
        court.name = name

    def _free_player_count(self) -> int:
        on_court = {pid for court in self.courts for pid in court.player_ids}
        return sum(1 for p in self.active_players() if p.id not in on_court)

    def _fill_court(self, court: Court) -> Match | None:
        """
        Refills an empty court from the queue.

        When no queued match is fully off court, the free players with the
        best priority go on instead. Returns the match placed, or None.
        """
        promoted = self._promote_next(court)
        if promoted is None and self._free_player_count() >= PLAYERS_PER_COURT:
            promoted = self._start_priority_group(court)
        return promoted

    def _promote_next(self, court: Court) -> Match | None:
        """Puts the first fully available queued match on the given court."""
        on_court = {pid for c in self.courts for pid in c.player_ids}
        for position, match in enumerate(self.queue):
            if any(pid in on_court for pid in match.player_ids):
                continue
            if not all(self.players[pid].is_active for pid in match.player_ids):
                continue
            self.queue.pop(position)
            self._place(court, match)
            return match
        return None

    def _start_priority_group(self, court: Court) -> Match | None:
        on_court = {pid for c in self.courts for pid in c.player_ids}
        free = [p for p in self.active_players() if p.id not in on_court]
        group = [p.id for p in sort_by_priority(free, self.rng)[:PLAYERS_PER_COURT]]
        match = find_best_team_match(group, self.weights, self.players, self.rng)
        if match is None:
            return None
        # Queue entries holding these players are now stale
        self._place(court, match)
        prune_queue(self)
        self.refresh_statuses()
        return match

    def _place(self, court: Court, match: Match):
        match.court = court.id
        match.start_time = datetime.now()
        match.pending_players = ()
        court.match = match
        self.refresh_statuses()
        logger.info("%s: %s vs %s", court.label, match.team_1, match.team_2)

    # ------------------------------------------------------------------ #
    # Roster changes
    # ------------------------------------------------------------------ #

    def add_player(self, name: str, player_id: PlayerId | None = None) -> Player | None:
        """
        Adds a new player mid-session.
        - Starts them at the fewest games played among active players, so they
          are neither skipped nor rushed onto court.
        - Starts them with no rest rounds.

        Returns the new Player, or None if the name or id already exists.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Player name cannot be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Player name cannot exceed {MAX_NAME_LENGTH} characters"
            )

        # Prevent duplicates by case-insensitive name match
        if any(p.name.lower() == name.lower() for p in self.players.values()):
            return None
        player_id = player_id or uuid4().hex
        if player_id in self.players:
            return None

        active = self.active_players()
        min_games = min((p.games_played for p in active), default=0)

        new_player = Player(id=player_id, name=name, games_played=min_games)
        self.players[player_id] = new_player

        auto_maintain_queue(self)
        logger.info("Added %s with %d games played", name, min_games)
        return new_player

    def mark_left(self, player_id: PlayerId, reason: str | None = None):
        """
        Marks a player as having left.
        Their history is kept for scoring; queued matches with them are
        dropped. A player on court finishes the current match.
        """
        player = self.get_player(player_id)
        if player.has_left:
            raise SessionError(f"{player.name} has already left")

        player.mark_left(reason)
        auto_maintain_queue(self)
        logger.info("%s left (%s)", player.name, player.left_reason)

    def rejoin(self, player_id: PlayerId):
        """Brings a player who left back into the rotation, resting."""
        player = self.get_player(player_id)
        if not player.has_left:
            raise SessionError(f"{player.name} has not left")

        player.rejoin()
        auto_maintain_queue(self)
        logger.info("%s rejoined", player.name)

    def mark_away(self, player_id: PlayerId):
        """Takes a player out of the rotation temporarily."""
        player = self.get_player(player_id)
        player.away = True
        auto_maintain_queue(self)

    def mark_returned(self, player_id: PlayerId):
        """Puts an away player back into the rotation."""
        player = self.get_player(player_id)
        player.away = False
        auto_maintain_queue(self)

    # ------------------------------------------------------------------ #
    # Preference weights
    # ------------------------------------------------------------------ #

    def add_weight(
        self,
        player_1: PlayerId,
        player_2: PlayerId,
        strength: int,
        weight_type: WeightType = WeightType.TEAMMATE,
    ) -> PreferenceWeight:
        """Adds a validated preference weight. Applies from the next assignment."""
        weight = PreferenceWeight(
            player_1=player_1, player_2=player_2, strength=strength, type=weight_type
        )
        validate_weight(weight, self.players, self.weights)
        weight.type = WeightType(weight.type)
        self.weights.append(weight)
        return weight

    def remove_weight(self, weight_id: str):
        for position, weight in enumerate(self.weights):
            if weight.id == weight_id:
                del self.weights[position]
                return
        raise SessionError(f"Weight {weight_id} does not exist")
