"""
Service layer for running session operations on behalf of a caller.

This module sits between the web/transport layer and the session logic,
ensuring that every read-modify-write of one session happens as a single
critical section. Two triggers for the same session (two admins pressing
"next round" at once) are serialized; different sessions never contend.

Persistence and broadcasting stay with the caller: each operation accepts an
optional `publish` callback that runs inside the lock once the session has
been updated.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from app_types import AssignmentResult, Match, PlayerId
from session_logic import Player, RotationSession

logger = logging.getLogger("app.session_service")

# Called with the updated session while the lock is still held
PublishCallback = Callable[[RotationSession], None]


class SessionLocks:
    """Hands out one exclusive lock per session id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        """Context manager holding the session's lock."""
        lock = self.lock_for(session_id)
        with lock:
            yield

    def discard(self, session_id: str) -> None:
        """Forgets the lock of a session that no longer exists."""
        with self._guard:
            self._locks.pop(session_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def _publish(session: RotationSession, publish: PublishCallback | None) -> None:
    if publish is not None:
        publish(session)


def process_next_round(
    locks: SessionLocks,
    session_id: str,
    session: RotationSession,
    publish: PublishCallback | None = None,
) -> AssignmentResult:
    """
    Starts the next round: fresh courts and queue.

    Raises:
        SessionError: If a court is still playing.
    """
    with locks.hold(session_id):
        result = session.start_round()
        _publish(session, publish)
    logger.info("Session %s: round %d started", session_id, session.round_num)
    return result


def process_court_completion(
    locks: SessionLocks,
    session_id: str,
    session: RotationSession,
    court_id: int,
    publish: PublishCallback | None = None,
) -> Match | None:
    """
    Orchestrates the completion of a court:
    1. Records the finished match once
    2. Moves the next queued match onto the court
    3. Tops the queue back up
    4. Hands the session to the caller for persisting/broadcasting

    Raises:
        SessionError: If the court does not exist.
    """
    with locks.hold(session_id):
        finished = session.finish_court(court_id)
        _publish(session, publish)
    logger.info(
        "Session %s: court %d finished (%s)",
        session_id,
        court_id,
        "recorded" if finished is not None else "was empty",
    )
    return finished


def process_player_join(
    locks: SessionLocks,
    session_id: str,
    session: RotationSession,
    name: str,
    publish: PublishCallback | None = None,
) -> Player | None:
    """
    Adds a player mid-session.

    Returns:
        The new player, or None if the name is already taken.
    """
    with locks.hold(session_id):
        player = session.add_player(name)
        if player is not None:
            _publish(session, publish)
    if player is None:
        logger.info("Session %s: '%s' already exists", session_id, name)
    return player


def process_player_leave(
    locks: SessionLocks,
    session_id: str,
    session: RotationSession,
    player_id: PlayerId,
    reason: str | None = None,
    publish: PublishCallback | None = None,
) -> None:
    """
    Marks a player as left and repairs the queue.

    Raises:
        SessionError: If the player is unknown or has already left.
    """
    with locks.hold(session_id):
        session.mark_left(player_id, reason)
        _publish(session, publish)
    logger.info("Session %s: player %s left", session_id, player_id)
