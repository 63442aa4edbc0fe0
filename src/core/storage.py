"""
YAML file storage for players and tournaments.

Layout under the data directory:
    players.yaml            - {'players': [...]}
    tournaments/<id>.yaml   - one file per tournament
    .lock                   - guards every read-modify-write
"""
import logging
import os
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

import yaml
from filelock import FileLock

from core.errors import MatchLocked, TournamentNotFound
from core.models import Entrant, Match, RankingEntry
from core.rankings import seed_updates

logger = logging.getLogger(__name__)

PLAYERS_FILE = 'players.yaml'
TOURNAMENTS_DIR = 'tournaments'
LOCK_FILE = '.lock'
LOCK_TIMEOUT = 10

# One entry per data directory for the life of the process; an app uses one directory
_locks = {}


def data_lock(data_dir: str) -> FileLock:
    """One lock object per data directory, so nested use in a thread is re-entrant."""
    path = os.path.abspath(data_dir)
    if path not in _locks:
        os.makedirs(path, exist_ok=True)
        _locks[path] = FileLock(os.path.join(path, LOCK_FILE), timeout=LOCK_TIMEOUT)
    return _locks[path]


def _read_yaml(path: str):
    if not os.path.exists(path):
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def _write_yaml(path: str, data) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp_path = path + '.tmp'
    with open(tmp_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    os.replace(tmp_path, path)


def _tournament_path(tournament_id: str, data_dir: str) -> str:
    return os.path.join(data_dir, TOURNAMENTS_DIR, f'{tournament_id}.yaml')


def load_players(data_dir: str) -> List[Entrant]:
    data = _read_yaml(os.path.join(data_dir, PLAYERS_FILE)) or {}
    return [Entrant.from_dict(p) for p in data.get('players', [])]


def save_players(players: List[Entrant], data_dir: str) -> None:
    _write_yaml(os.path.join(data_dir, PLAYERS_FILE), {'players': [p.to_dict() for p in players]})


def add_player(name: str, data_dir: str, tags=None, seed: Optional[int] = None) -> Entrant:
    player = Entrant(id=uuid.uuid4().hex, name=name, tags=tags, seed=seed)
    with data_lock(data_dir):
        players = load_players(data_dir)
        players.append(player)
        save_players(players, data_dir)
    return player


def _ensure_match_ids(bracket: List[Match]) -> List[Match]:
    # Brackets written by older versions may have group matches without ids
    return [m if m.id else m.replace(id=uuid.uuid4().hex) for m in bracket]


def load_tournament(tournament_id: str, data_dir: str) -> Dict:
    data = _read_yaml(_tournament_path(tournament_id, data_dir))
    if not data:
        raise TournamentNotFound(tournament_id)
    return {
        'id': data.get('id', tournament_id),
        'name': data.get('name', ''),
        'created_by': data.get('created_by'),
        'created_at': data.get('created_at'),
        'complete': bool(data.get('complete', False)),
        'players': [Entrant.from_dict(p) for p in data.get('players', [])],
        'bracket': _ensure_match_ids([Match.from_dict(m) for m in data.get('bracket', [])]),
        'final_rankings': [RankingEntry.from_dict(r) for r in data.get('final_rankings') or []],
    }


def save_tournament(record: Dict, data_dir: str) -> None:
    data = {
        'id': record['id'],
        'name': record.get('name', ''),
        'created_by': record.get('created_by'),
        'created_at': record.get('created_at'),
        'updated_at': datetime.now().isoformat(),
        'complete': record.get('complete', False),
        'players': [p.to_dict() for p in record.get('players', [])],
        'bracket': [m.to_dict() for m in record.get('bracket', [])],
        'final_rankings': [r.to_dict() for r in record.get('final_rankings', [])],
    }
    _write_yaml(_tournament_path(record['id'], data_dir), data)


def list_tournaments(data_dir: str) -> List[Dict]:
    tournaments_dir = os.path.join(data_dir, TOURNAMENTS_DIR)
    if not os.path.isdir(tournaments_dir):
        return []
    summaries = []
    for filename in sorted(os.listdir(tournaments_dir)):
        if not filename.endswith('.yaml'):
            continue
        data = _read_yaml(os.path.join(tournaments_dir, filename)) or {}
        summaries.append({
            'id': data.get('id', filename[:-len('.yaml')]),
            'name': data.get('name', ''),
            'complete': bool(data.get('complete', False)),
            'created_at': data.get('created_at'),
            'players': len(data.get('players', [])),
        })
    summaries.sort(key=lambda t: t['created_at'] or '')
    return summaries


def create_tournament_record(name: str, players: List[Entrant], bracket: List[Match], data_dir: str,
                             created_by: Optional[str] = None) -> Dict:
    record = {
        'id': uuid.uuid4().hex,
        'name': name,
        'created_by': created_by,
        'created_at': datetime.now().isoformat(),
        'complete': False,
        'players': list(players),
        'bracket': list(bracket),
        'final_rankings': [],
    }
    with data_lock(data_dir):
        save_tournament(record, data_dir)
    logger.info("Created tournament %s (%s) with %d players", record['id'], name, len(players))
    return record


@contextmanager
def edit_tournament(tournament_id: str, data_dir: str):
    """
    Read a tournament, let the caller change it, write it back.

    The whole cycle holds the data lock; nothing is written if the body raises.
    """
    with data_lock(data_dir):
        record = load_tournament(tournament_id, data_dir)
        yield record
        save_tournament(record, data_dir)


def commit_finalization(tournament_id: str, rankings: List[RankingEntry], data_dir: str,
                        merge_non_participants: bool = False) -> int:
    """
    Mark a tournament complete, store its rankings and write new player seeds.

    All three writes happen under one lock. Returns how many stored player
    seeds changed.
    """
    with data_lock(data_dir):
        record = load_tournament(tournament_id, data_dir)
        if record['complete']:
            raise MatchLocked("The tournament has already been finalized")

        players = load_players(data_dir)
        updates = seed_updates(rankings, players, merge_non_participants)

        updated_count = 0
        for index, player in enumerate(players):
            new_seed = updates.get(player.id)
            if new_seed is not None and new_seed != player.seed:
                players[index] = player.with_seed(new_seed)
                updated_count += 1

        record['complete'] = True
        record['final_rankings'] = list(rankings)
        save_players(players, data_dir)
        save_tournament(record, data_dir)

    logger.info("Finalized tournament %s, updated %d player seeds", tournament_id, updated_count)
    return updated_count
