"""
Tests for YAML storage of players and tournaments.
"""
import os
import pytest
import sys
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core import storage
from core.errors import MatchLocked, TournamentNotFound
from core.rankings import finalize_rankings
from core.tournament import create_tournament, start_knockout
from conftest import make_entrants, play


class TestPlayers:
    """Tests for player storage."""

    def test_empty_directory(self, data_dir):
        assert storage.load_players(data_dir) == []

    def test_add_player(self, data_dir):
        player = storage.add_player("Alice", data_dir, tags=["Mon", "Tue"], seed=3)
        players = storage.load_players(data_dir)

        assert players == [player]
        assert len(player.id) == 32
        assert players[0].tags == ["Mon", "Tue"]
        assert players[0].seed == 3

    def test_save_and_load(self, data_dir):
        players = make_entrants(3)
        storage.save_players(players, data_dir)
        assert storage.load_players(data_dir) == players

    def test_reads_office_days(self, data_dir):
        """Test player files using officeDays load as tags."""
        with open(os.path.join(data_dir, storage.PLAYERS_FILE), 'w') as f:
            yaml.safe_dump({'players': [{'id': 'a', 'name': 'A', 'officeDays': ['Thu']}]}, f)
        assert storage.load_players(data_dir)[0].tags == ['Thu']


class TestTournaments:
    """Tests for tournament records."""

    def _create(self, data_dir, count=4):
        players = make_entrants(count)
        storage.save_players(players, data_dir)
        _, bracket = create_tournament(players)
        return storage.create_tournament_record("Spring Cup", players, bracket, data_dir, created_by="admin")

    def test_round_trip(self, data_dir):
        record = self._create(data_dir)
        loaded = storage.load_tournament(record['id'], data_dir)

        assert loaded['name'] == "Spring Cup"
        assert loaded['created_by'] == "admin"
        assert loaded['complete'] is False
        assert loaded['players'] == record['players']
        assert loaded['bracket'] == record['bracket']
        assert loaded['final_rankings'] == []

    def test_missing_tournament(self, data_dir):
        with pytest.raises(TournamentNotFound):
            storage.load_tournament("missing", data_dir)

    def test_list_tournaments(self, data_dir):
        assert storage.list_tournaments(data_dir) == []
        record = self._create(data_dir)

        summaries = storage.list_tournaments(data_dir)
        assert len(summaries) == 1
        assert summaries[0]['id'] == record['id']
        assert summaries[0]['players'] == 4
        assert summaries[0]['complete'] is False

    def test_edit_saves_changes(self, data_dir):
        record = self._create(data_dir)
        with storage.edit_tournament(record['id'], data_dir) as editing:
            editing['bracket'] = play(editing['bracket'], "group-1-m1", "p2")

        loaded = storage.load_tournament(record['id'], data_dir)
        assert loaded['bracket'][0].winner_id == "p2"

    def test_edit_discards_on_error(self, data_dir):
        """Test nothing is written when the edit raises."""
        record = self._create(data_dir)
        with pytest.raises(ValueError):
            with storage.edit_tournament(record['id'], data_dir) as editing:
                editing['name'] = "Renamed"
                raise ValueError("boom")

        assert storage.load_tournament(record['id'], data_dir)['name'] == "Spring Cup"

    def test_missing_match_ids_filled(self, data_dir):
        record = self._create(data_dir)
        path = os.path.join(data_dir, storage.TOURNAMENTS_DIR, f"{record['id']}.yaml")
        with open(path) as f:
            data = yaml.safe_load(f)
        data['bracket'][0]['id'] = None
        with open(path, 'w') as f:
            yaml.safe_dump(data, f)

        loaded = storage.load_tournament(record['id'], data_dir)
        assert all(m.id for m in loaded['bracket'])

    def test_lock_is_reentrant(self, data_dir):
        with storage.data_lock(data_dir):
            with storage.data_lock(data_dir):
                storage.add_player("Bob", data_dir)
        assert len(storage.load_players(data_dir)) == 1


class TestCommitFinalization:
    """Tests for commit_finalization."""

    def _finished(self, data_dir):
        players = make_entrants(2)
        storage.save_players(players + [make_entrants(3)[2]], data_dir)
        _, bracket = create_tournament(players)
        bracket = start_knockout(bracket)
        bracket = play(bracket, "ko-r1-m1", "p2")
        record = storage.create_tournament_record("Final Cup", players, bracket, data_dir)
        return record, finalize_rankings(bracket, players)

    def test_updates_seeds_and_marks_complete(self, data_dir):
        record, rankings = self._finished(data_dir)

        updated = storage.commit_finalization(record['id'], rankings, data_dir)

        assert updated == 1
        seeds = {p.id: p.seed for p in storage.load_players(data_dir)}
        # Both finalists would drop below 1 and are held at 1
        assert seeds == {"p1": 1, "p2": 1, "p3": 3}
        loaded = storage.load_tournament(record['id'], data_dir)
        assert loaded['complete'] is True
        assert [r.entrant.id for r in loaded['final_rankings']] == ["p2", "p1"]

    def test_merge_non_participants(self, data_dir):
        record, rankings = self._finished(data_dir)

        storage.commit_finalization(record['id'], rankings, data_dir, merge_non_participants=True)

        seeds = {p.id: p.seed for p in storage.load_players(data_dir)}
        assert seeds == {"p2": 1, "p1": 2, "p3": 3}

    def test_cannot_finalize_twice(self, data_dir):
        record, rankings = self._finished(data_dir)
        storage.commit_finalization(record['id'], rankings, data_dir)

        with pytest.raises(MatchLocked):
            storage.commit_finalization(record['id'], rankings, data_dir)
