import random

from app_types import PreferenceWeight, WeightType, same_team
from team_finder import best_split, find_best_team_match, sort_by_priority, team_splits
from session_logic import Player


class TestTeamSplits:
    def test_three_distinct_splits(self):
        splits = team_splits(["a", "b", "c", "d"])
        assert len(splits) == 3
        keys = {frozenset([frozenset(t1), frozenset(t2)]) for t1, t2 in splits}
        assert len(keys) == 3

    def test_every_split_uses_all_four(self):
        for team_1, team_2 in team_splits(["a", "b", "c", "d"]):
            assert sorted([*team_1, *team_2]) == ["a", "b", "c", "d"]


class TestFindBestTeamMatch:
    def test_teammate_weight_puts_pair_together(self, sample_players, rng):
        """A strong teammate weight outweighs jitter on a fresh roster."""
        weights = [PreferenceWeight("alice", "bob", strength=10, type=WeightType.TEAMMATE)]
        group = ["alice", "charlie", "bob", "dave"]

        match = find_best_team_match(group, weights, sample_players, rng)

        assert match is not None
        assert same_team(match.team_1, ("alice", "bob")) or same_team(
            match.team_2, ("alice", "bob")
        )

    def test_opponent_weight_splits_pair(self, sample_players, rng):
        weights = [PreferenceWeight("alice", "bob", strength=10, type=WeightType.OPPONENT)]
        match = find_best_team_match(
            ["alice", "bob", "charlie", "dave"], weights, sample_players, rng
        )
        assert match.is_opponent_pair("alice", "bob")

    def test_avoids_repeat_partners(self, sample_players, rng):
        """The split whose partners have met before loses to a fresh one."""
        for a, b in (("alice", "bob"), ("charlie", "dave")):
            sample_players[a].teammates[b] = sample_players[b].teammates[a] = 3
        for a, b in (("alice", "charlie"), ("bob", "dave")):
            sample_players[a].teammates[b] = sample_players[b].teammates[a] = 3

        match = find_best_team_match(
            ["alice", "bob", "charlie", "dave"], [], sample_players, rng
        )
        assert match.is_teammate_pair("alice", "dave")
        assert match.is_teammate_pair("bob", "charlie")

    def test_wrong_group_size_returns_none(self, sample_players, caplog):
        with caplog.at_level("WARNING", logger="app.team_finder"):
            assert find_best_team_match(["alice", "bob", "charlie"], [], sample_players) is None
        assert "exactly 4 players" in caplog.text

        five = ["alice", "bob", "charlie", "dave", "eve"]
        assert find_best_team_match(five, [], sample_players) is None

    def test_best_split_returns_winning_score(self, sample_players, rng):
        result = best_split(["alice", "bob", "charlie", "dave"], [], sample_players, rng)
        assert result is not None
        match, score = result
        assert sorted(match.player_ids) == ["alice", "bob", "charlie", "dave"]
        # Fresh players: full fairness plus jitter
        assert 9.95 <= score <= 10.05

    def test_match_has_no_court_yet(self, sample_players, rng):
        match = find_best_team_match(["alice", "bob", "charlie", "dave"], [], sample_players, rng)
        assert match.court is None
        assert match.start_time is None
        assert match.pending_players == ()


class TestSortByPriority:
    def test_fewest_games_first_then_longest_rest(self):
        players = [
            Player(id="a", name="A", games_played=3, rest_rounds=5),
            Player(id="b", name="B", games_played=1, rest_rounds=0),
            Player(id="c", name="C", games_played=1, rest_rounds=2),
            Player(id="d", name="D", games_played=0, rest_rounds=0),
        ]
        ordered = sort_by_priority(players, random.Random(3))
        assert [p.id for p in ordered] == ["d", "c", "b", "a"]

    def test_ties_are_shuffled(self):
        """Identical players come out in different orders for different seeds."""
        players = [Player(id=f"p{i}", name=f"P{i}") for i in range(8)]
        orders = {
            tuple(p.id for p in sort_by_priority(players, random.Random(seed)))
            for seed in range(10)
        }
        assert len(orders) > 1

    def test_same_seed_same_order(self):
        players = [Player(id=f"p{i}", name=f"P{i}") for i in range(8)]
        first = [p.id for p in sort_by_priority(players, random.Random(8))]
        second = [p.id for p in sort_by_priority(players, random.Random(8))]
        assert first == second
