import random

from app_types import Court, Match, PlayerStatus
from queue_maintainer import (
    maintain_queue,
    maintain_queue_size,
    prune_queue,
    regenerate_queue,
    select_most_diverse_group,
)
from session_logic import Player, RotationSession
from tests.utils import generate_players


def _roster(*players):
    return {p.id: p for p in players}


class TestMaintainQueue:
    def test_resting_players_fill_target(self, rng):
        resting = generate_players(8, rng)
        queue = maintain_queue(resting, [], 2, [], resting, target_matches=2, rng=rng)

        assert len(queue) == 2
        ids = [pid for match in queue for pid in match.player_ids]
        assert sorted(ids) == sorted(p.id for p in resting)
        assert all(match.pending_players == () for match in queue)

    def test_zero_courts_returns_empty(self, rng):
        resting = generate_players(8, rng)
        assert maintain_queue(resting, [], 0, [], resting, rng=rng) == []

    def test_zero_target_returns_empty(self, rng):
        resting = generate_players(8, rng)
        assert maintain_queue(resting, [], 2, [], resting, target_matches=0, rng=rng) == []

    def test_short_pool_gives_short_queue(self, rng):
        resting = generate_players(6, rng)
        queue = maintain_queue(resting, [], 2, [], resting, rng=rng)
        assert len(queue) == 1

    def test_borrows_most_played_from_court(self, rng):
        """Resting players are short by two; the two busiest players on court are earmarked."""
        resting = [Player(id=f"r{i}", name=f"R{i}", rest_rounds=1) for i in range(2)]
        playing = [
            Player(id="c1", name="C1", games_played=5, status=PlayerStatus.PLAYING),
            Player(id="c2", name="C2", games_played=1, status=PlayerStatus.PLAYING),
            Player(id="c3", name="C3", games_played=4, status=PlayerStatus.PLAYING),
            Player(id="c4", name="C4", games_played=2, status=PlayerStatus.PLAYING),
        ]
        roster = _roster(*resting, *playing)

        queue = maintain_queue(resting, playing, 1, [], roster, target_matches=1, rng=rng)

        assert len(queue) == 1
        assert sorted(queue[0].player_ids) == ["c1", "c3", "r0", "r1"]
        assert sorted(queue[0].pending_players) == ["c1", "c3"]

    def test_groups_draw_on_borrowed_players_too(self, rng):
        """Fresh borrowed players beat a resting group that has met many times."""
        resting = [Player(id=f"r{i}", name=f"R{i}") for i in range(5)]
        for a in resting:
            for b in resting:
                if a is not b:
                    a.teammates[b.id] = 5
        playing = [Player(id=f"c{i}", name=f"C{i}", games_played=3) for i in range(3)]
        roster = _roster(*resting, *playing)

        queue = maintain_queue(resting, playing, 1, [], roster, target_matches=2, rng=rng)

        assert len(queue) == 2
        assert set(queue[0].pending_players) == {"c0", "c1", "c2"}
        assert len(set(queue[0].player_ids) - {"c0", "c1", "c2"}) == 1
        assert queue[1].pending_players == ()
        assert set(queue[1].player_ids) <= {p.id for p in resting}

    def test_unavailable_players_skipped(self, rng):
        resting = generate_players(5, rng)
        resting[0].has_left = True
        resting[1].away = True

        queue = maintain_queue(resting, [], 1, [], resting, target_matches=1, rng=rng)
        assert queue == []

    def test_no_player_queued_twice(self):
        rng = random.Random(21)
        resting = generate_players(11, rng, max_games=3, with_history=True)
        playing = generate_players(8, rng, max_games=5)
        for p in playing:
            p.id = f"c{p.id}"
        roster = _roster(*resting, *playing)

        queue = maintain_queue(resting, playing, 2, [], roster, target_matches=4, rng=rng)

        ids = [pid for match in queue for pid in match.player_ids]
        assert len(queue) == 4
        assert len(ids) == len(set(ids))


class TestSelectMostDiverseGroup:
    def test_prefers_players_who_have_not_met(self):
        players = _roster(*(Player(id=pid, name=pid) for pid in "abcdef"))
        for a, b in (("a", "b"), ("c", "d")):
            players[a].teammates[b] = players[b].teammates[a] = 3

        group = select_most_diverse_group(list("abcdef"), players)

        assert not {"a", "b"} <= set(group)
        assert not {"c", "d"} <= set(group)

    def test_small_pool_returned_as_is(self):
        players = _roster(*(Player(id=pid, name=pid) for pid in "abcd"))
        assert select_most_diverse_group(list("abcd"), players) == list("abcd")

    def test_ties_keep_priority_order(self):
        players = _roster(*(Player(id=pid, name=pid) for pid in "abcdef"))
        assert select_most_diverse_group(list("abcdef"), players) == list("abcd")


class TestSessionQueue:
    def test_regenerate_sets_queued_status(self, twelve_player_session):
        session = twelve_player_session
        session.start_round()
        session.queue = []
        session.refresh_statuses()

        queue = regenerate_queue(session)

        assert len(queue) == 2
        queued = [p for p in session.players.values() if p.status == PlayerStatus.QUEUED]
        # Four resting players queue; the second match borrows from court
        assert len(queued) == 4
        assert len(queue[1].pending_players) == 4
        assert session.validate().is_valid

    def test_regenerate_respects_target(self, twelve_player_session):
        session = twelve_player_session
        session.start_round()
        assert len(regenerate_queue(session, target_matches=1)) == 1

    def test_prune_drops_entries_with_left_player(self, twelve_player_session):
        session = twelve_player_session
        session.start_round()
        queued_id = session.queue[0].player_ids[0]
        session.players[queued_id].has_left = True

        removed = prune_queue(session)

        assert removed >= 1
        assert all(not match.has_player(queued_id) for match in session.queue)

    def test_prune_drops_unearmarked_court_players(self):
        players = {p.id: p for p in generate_players(8)}
        session = RotationSession(players, court_count=1, rng=random.Random(2))
        session.courts = [
            Court(id=1, match=Match(team_1=("p1", "p2"), team_2=("p3", "p4"), court=1))
        ]
        session.queue = [
            Match(team_1=("p1", "p5"), team_2=("p6", "p7")),
            Match(team_1=("p2", "p5"), team_2=("p6", "p8"), pending_players=("p2",)),
        ]

        removed = prune_queue(session)

        assert removed == 1
        assert session.queue[0].pending_players == ("p2",)

    def test_prune_drops_entry_once_earmarked_player_is_off_court(self):
        players = {p.id: p for p in generate_players(8)}
        session = RotationSession(players, court_count=1, rng=random.Random(2))
        session.queue = [
            Match(team_1=("p1", "p2"), team_2=("p3", "p4"), pending_players=("p1", "p2"))
        ]

        assert prune_queue(session) == 1
        assert session.queue == []

    def test_maintain_size_leaves_full_queue_alone(self, twelve_player_session):
        session = twelve_player_session
        session.start_round()
        regenerate_queue(session)
        before = list(session.queue)

        assert maintain_queue_size(session) is True
        assert session.queue == before

    def test_maintain_size_reports_empty_queue(self):
        session = RotationSession(generate_players(6), court_count=1, rng=random.Random(4))
        session.start_round()
        session.mark_away("p1")
        session.mark_away("p2")
        session.mark_away("p3")
        session.mark_away("p4")
        session.mark_away("p5")

        assert maintain_queue_size(session) is False
        assert session.queue == []
