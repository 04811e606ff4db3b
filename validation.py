# validation.py
"""
Status derivation and diagnostic validators.

derive_status() is the single source of truth for a player's status: it is
computed from court and queue placements rather than written at call sites.

validate_assignment() and validate_session_integrity() report structural
problems (duplicate placements, orphaned ids, drifted statuses) as a list of
human-readable findings. They are meant for tests and debugging, not for
production control flow.

validate_weight() is different: it guards preference weights coming in from
a caller and raises ValidationError.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from app_types import (
    AssignmentResult,
    Court,
    Match,
    MatchQueue,
    PlayerId,
    PlayerStatus,
    PreferenceWeight,
    ValidationReport,
    WeightType,
)
from constants import MAX_WEIGHT_STRENGTH, MIN_WEIGHT_STRENGTH, PLAYERS_PER_TEAM
from exceptions import ValidationError
from scoring import PlayerLike

if TYPE_CHECKING:
    from session_logic import RotationSession


def derive_status(
    player: PlayerLike, courts: Iterable[Court], queue: MatchQueue
) -> PlayerStatus:
    """
    Derives a player's status from where they are placed.

    - On a court: playing (a player who leaves mid-match finishes it)
    - Marked away: away
    - In a queued match, other than as a pending earmark: queued
    - Otherwise: resting (players who have left are reported as resting)
    """
    if any(player.id in court.player_ids for court in courts):
        return PlayerStatus.PLAYING
    if player.has_left:
        return PlayerStatus.RESTING
    if player.away:
        return PlayerStatus.AWAY
    for match in queue:
        if match.has_player(player.id) and player.id not in match.pending_players:
            return PlayerStatus.QUEUED
    return PlayerStatus.RESTING


def _check_match_ids(match: Match, where: str, errors: list[str]) -> None:
    for team in (match.team_1, match.team_2):
        if len(team) != PLAYERS_PER_TEAM:
            errors.append(f"Team {team} on {where} does not have {PLAYERS_PER_TEAM} players")
    repeated = [pid for pid, n in Counter(match.player_ids).items() if n > 1]
    for pid in repeated:
        errors.append(f"Player {pid} appears twice within the match on {where}")


def validate_assignment(result: AssignmentResult) -> ValidationReport:
    """
    Checks that no player is placed twice across courts and queue.

    Returns:
        ValidationReport with findings and the duplicated ids
    """
    errors: list[str] = []
    duplicates: list[PlayerId] = []
    assigned: set[PlayerId] = set()

    def place(pid: PlayerId, where: str) -> None:
        if pid in assigned:
            if pid not in duplicates:
                duplicates.append(pid)
            errors.append(f"Player {pid} is placed again on {where}")
        else:
            assigned.add(pid)

    for court in result.courts:
        if court.match is None:
            continue
        _check_match_ids(court.match, court.label, errors)
        for pid in set(court.match.player_ids):
            place(pid, court.label)

    for position, match in enumerate(result.queue, start=1):
        where = f"queue match {position}"
        _check_match_ids(match, where, errors)
        for pid in set(match.player_ids):
            place(pid, where)

    for pid in result.waiting:
        place(pid, "the waiting list")

    return ValidationReport(errors=errors, duplicates=duplicates)


def validate_session_integrity(session: "RotationSession") -> ValidationReport:
    """
    Checks a whole session snapshot.

    Reports duplicate roster ids, court or queue players missing from the
    roster, players placed more than once (pending earmarks excepted), left
    or away players in the queue, and stored statuses that differ from the
    derived ones.
    """
    errors: list[str] = []
    duplicates: list[PlayerId] = []

    roster = (
        list(session.players.values())
        if isinstance(session.players, Mapping)
        else list(session.players)
    )
    id_counts = Counter(p.id for p in roster)
    for pid, count in id_counts.items():
        if count > 1:
            errors.append(f"Player {pid} appears {count} times in the roster")
            duplicates.append(pid)

    by_id = {p.id: p for p in roster}
    placed: set[PlayerId] = set()

    def place(pid: PlayerId, where: str) -> None:
        if pid not in by_id:
            errors.append(f"Player {pid} on {where} is not in the roster")
        if pid in placed:
            errors.append(f"Player {pid} is placed in more than one position")
            if pid not in duplicates:
                duplicates.append(pid)
        placed.add(pid)

    for court in session.courts:
        if court.match is None:
            continue
        _check_match_ids(court.match, court.label, errors)
        for pid in set(court.match.player_ids):
            place(pid, court.label)

    on_court = {pid for court in session.courts for pid in court.player_ids}
    for position, match in enumerate(session.queue, start=1):
        where = f"queue match {position}"
        _check_match_ids(match, where, errors)
        for pid in set(match.player_ids):
            if pid in match.pending_players:
                if pid not in by_id:
                    errors.append(f"Player {pid} on {where} is not in the roster")
                elif pid not in on_court:
                    errors.append(
                        f"Player {pid} is held for {where} but is not on a court"
                    )
                continue
            place(pid, where)
            player = by_id.get(pid)
            if player is not None and player.has_left:
                errors.append(f"Player {pid} on {where} has left the session")
            elif player is not None and player.away:
                errors.append(f"Player {pid} on {where} is marked away")

    for player in roster:
        expected = derive_status(player, session.courts, session.queue)
        if player.status != expected:
            errors.append(
                f"Player {player.id} has status {player.status.value}, "
                f"expected {expected.value}"
            )

    return ValidationReport(errors=errors, duplicates=duplicates)


def validate_weight(
    weight: PreferenceWeight,
    players: Mapping[PlayerId, PlayerLike],
    existing: Iterable[PreferenceWeight] = (),
) -> None:
    """
    Validates a preference weight before it joins a session.

    Raises:
        ValidationError: For a self-pair, an out-of-range strength, an unknown
            type or player, or a same-type duplicate of an existing weight
    """
    if weight.player_1 == weight.player_2:
        raise ValidationError("A weight needs two different players")

    if not MIN_WEIGHT_STRENGTH <= weight.strength <= MAX_WEIGHT_STRENGTH:
        raise ValidationError(
            f"Weight strength must be between {MIN_WEIGHT_STRENGTH} "
            f"and {MAX_WEIGHT_STRENGTH}, got {weight.strength}"
        )

    try:
        weight_type = WeightType(weight.type)
    except ValueError as e:
        raise ValidationError(f"Unknown weight type: {weight.type}") from e

    missing = [pid for pid in (weight.player_1, weight.player_2) if pid not in players]
    if missing:
        raise ValidationError(f"Unknown player(s): {', '.join(missing)}")

    for other in existing:
        if other.type == weight_type and other.involves(weight.player_1, weight.player_2):
            raise ValidationError(
                f"A {weight_type.value} weight already exists for this pair"
            )
