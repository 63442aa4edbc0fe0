"""
Unit tests for the data models (Entrant, Match, Group, RankingEntry).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Entrant, Match, MatchStatus, Group, RankingEntry, GROUP_STAGE, KNOCKOUT_STAGE


class TestEntrant:
    """Tests for the Entrant model."""

    def test_duplicate_tags_collapse(self):
        """Test repeated tags are stored once, first-seen order kept."""
        entrant = Entrant(id="a", name="A", tags=["Mon", "Tue", "Mon"])
        assert entrant.tags == ["Mon", "Tue"]
        assert entrant.tag_set == frozenset({"Mon", "Tue"})

    def test_rank_key_uses_seed(self):
        assert Entrant(id="a", name="A", seed=3).rank_key(10) == 3

    def test_rank_key_unseeded_after_everyone(self):
        """Test unseeded players rank after all seeded players."""
        assert Entrant(id="a", name="A").rank_key(10) == 11

    def test_from_dict_accepts_office_days(self):
        """Test records using the officeDays key still load their tags."""
        entrant = Entrant.from_dict({'id': 'a', 'name': 'A', 'officeDays': ['Wed']})
        assert entrant.tags == ['Wed']
        assert entrant.seed is None

    def test_dict_round_trip(self):
        entrant = Entrant(id="a", name="A", tags=["Mon"], seed=2)
        assert Entrant.from_dict(entrant.to_dict()) == entrant

    def test_with_seed_returns_copy(self):
        entrant = Entrant(id="a", name="A", seed=2)
        updated = entrant.with_seed(7)
        assert updated.seed == 7
        assert entrant.seed == 2


class TestMatch:
    """Tests for the Match model."""

    def setup_method(self):
        self.a = Entrant(id="a", name="A")
        self.b = Entrant(id="b", name="B")

    def test_status_awaiting(self):
        """Test a match with an empty slot is awaiting players."""
        assert Match(round=2, stage=KNOCKOUT_STAGE).status is MatchStatus.AWAITING
        assert Match(round=2, stage=KNOCKOUT_STAGE, player1=self.a).status is MatchStatus.AWAITING

    def test_status_pending(self):
        match = Match(round=1, stage=GROUP_STAGE, player1=self.a, player2=self.b)
        assert match.status is MatchStatus.PENDING

    def test_status_completed(self):
        match = Match(round=1, stage=GROUP_STAGE, player1=self.a, player2=self.b, winner_id="b", complete=True)
        assert match.status is MatchStatus.COMPLETED
        assert match.winner == self.b
        assert match.loser == self.a

    def test_status_bye(self):
        match = Match(round=1, stage=KNOCKOUT_STAGE, player1=self.a, winner_id="a", complete=True, player1_points=1)
        assert match.status is MatchStatus.BYE
        assert match.winner == self.a
        assert match.loser is None

    def test_replace_does_not_mutate(self):
        """Test replace returns an updated copy and leaves the original alone."""
        match = Match(round=1, stage=GROUP_STAGE, player1=self.a, player2=self.b)
        updated = match.replace(winner_id="a", complete=True)
        assert updated is not match
        assert updated.complete is True
        assert match.complete is False
        assert match.winner_id is None

    def test_replace_rejects_unknown_field(self):
        match = Match(round=1, stage=GROUP_STAGE)
        with pytest.raises(AttributeError):
            match.replace(colour="red")

    def test_reset_result(self):
        match = Match(round=1, stage=KNOCKOUT_STAGE, player1=self.a, player2=self.b,
                      winner_id="a", complete=True, player1_points=3, player2_points=1)
        reset = match.reset_result()
        assert reset.status is MatchStatus.PENDING
        assert (reset.player1_points, reset.player2_points) == (0, 0)
        assert reset.winner_id is None

    def test_dict_round_trip(self):
        match = Match(id="ko-r1-m1", round=1, stage=KNOCKOUT_STAGE, player1=self.a, player2=self.b,
                      future_match_id="ko-r2-m1", player1_group_id="group-1", player1_group_place=1)
        assert Match.from_dict(match.to_dict()) == match

    def test_from_dict_defaults(self):
        """Test missing points and completion default to an unplayed match."""
        match = Match.from_dict({'round': 1, 'stage': 'group', 'player1': {'id': 'a', 'name': 'A'}})
        assert match.player1_points == 0
        assert match.player2_points == 0
        assert match.complete is False
        assert match.future_match_id is None


class TestGroupAndRanking:

    def test_group_size(self):
        group = Group("group-1", [Entrant(id="a", name="A"), Entrant(id="b", name="B")], ["Mon"])
        assert group.size == 2
        assert "group-1" in repr(group)

    def test_ranking_entry_round_trip(self):
        entry = RankingEntry(Entrant(id="a", name="A", seed=4), rank=1, points=100, adjusted_seed=1)
        loaded = RankingEntry.from_dict(entry.to_dict())
        assert loaded.rank == 1
        assert loaded.adjusted_seed == 1
        assert loaded.entrant.id == "a"
