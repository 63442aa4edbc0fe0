"""
Flask JSON API for running group + knockout tournaments.
"""
import os
from flask import Flask, request, jsonify
from core.errors import TournamentError, InvalidResult, MatchNotFound, MatchLocked, TournamentNotFound
from core.elimination import get_knockout_bracket_display
from core.rankings import finalize_rankings
from core.round_robin import add_late_entrant
from core.standings import compute_all_standings
from core.tournament import (
    create_tournament, record_result, start_knockout, tournament_phase, can_update_match,
    knockout_started, is_finals_complete,
)
from core import storage

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

app.config['DATA_DIR'] = DATA_DIR


def _data_dir() -> str:
    return app.config['DATA_DIR']


def _tournament_json(record: dict) -> dict:
    """Serialize a stored tournament with its derived standings and phase."""
    bracket = record['bracket']
    standings = compute_all_standings(bracket)
    matches = []
    for match in bracket:
        data = match.to_dict()
        data['status'] = match.status.value
        data['can_update'] = can_update_match(bracket, match, record['complete'])[0]
        matches.append(data)
    return {
        'id': record['id'],
        'name': record['name'],
        'created_by': record.get('created_by'),
        'created_at': record.get('created_at'),
        'complete': record['complete'],
        'phase': tournament_phase(bracket, record['complete']),
        'players': [p.to_dict() for p in record['players']],
        'bracket': matches,
        'standings': {gid: [s.to_dict() for s in rows] for gid, rows in standings.items()},
        'knockout': get_knockout_bracket_display(bracket),
        'final_rankings': [r.to_dict() for r in record.get('final_rankings', [])],
    }


@app.errorhandler(TournamentError)
def handle_tournament_error(error):
    if isinstance(error, (MatchNotFound, TournamentNotFound)):
        status = 404
    elif isinstance(error, MatchLocked):
        status = 409
    else:
        status = 400
    app.logger.warning(f'Rejected request to {request.path}: {error.message}')
    return jsonify({'success': False, 'error': error.message}), status


@app.route('/api/players', methods=['GET'])
def api_players():
    players = storage.load_players(_data_dir())
    return jsonify({'success': True, 'players': [p.to_dict() for p in players]})


@app.route('/api/players', methods=['POST'])
def api_create_player():
    """Create a player. Requires name; tags (or officeDays) and seed are optional."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'success': False, 'error': 'Name is required'}), 400

    seed = data.get('seed')
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 1):
        return jsonify({'success': False, 'error': 'Seed must be a positive integer'}), 400

    tags = data.get('tags', data.get('officeDays', []))
    player = storage.add_player(name, _data_dir(), tags=tags, seed=seed)
    return jsonify({'success': True, 'player': player.to_dict()}), 201


@app.route('/api/tournaments', methods=['GET'])
def api_tournaments():
    return jsonify({'success': True, 'tournaments': storage.list_tournaments(_data_dir())})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Create a tournament from stored players and generate its group stage."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    player_ids = data.get('player_ids') or []
    if not name or not player_ids:
        return jsonify({'success': False, 'error': 'Name and player_ids are required'}), 400

    players_by_id = {p.id: p for p in storage.load_players(_data_dir())}
    missing = [pid for pid in player_ids if pid not in players_by_id]
    if missing:
        return jsonify({'success': False, 'error': f'Unknown players: {", ".join(missing)}'}), 400

    entrants = [players_by_id[pid] for pid in dict.fromkeys(player_ids)]
    groups, bracket = create_tournament(entrants)
    record = storage.create_tournament_record(name, entrants, bracket, _data_dir(), created_by=data.get('created_by'))
    app.logger.info(f'Created tournament {name} with {len(groups)} groups')
    return jsonify({'success': True, 'tournament': _tournament_json(record)}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_tournament(tournament_id):
    record = storage.load_tournament(tournament_id, _data_dir())
    return jsonify({'success': True, 'tournament': _tournament_json(record)})


@app.route('/api/tournaments/<tournament_id>/entrants', methods=['POST'])
def api_add_entrant(tournament_id):
    """Add a stored player to a running group stage."""
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'success': False, 'error': 'player_id is required'}), 400

    player = next((p for p in storage.load_players(_data_dir()) if p.id == player_id), None)
    if player is None:
        return jsonify({'success': False, 'error': 'Player not found'}), 404

    with storage.edit_tournament(tournament_id, _data_dir()) as record:
        if record['complete']:
            raise MatchLocked("The tournament has been finalized")
        record['bracket'] = add_late_entrant(record['bracket'], player, data.get('group_id'))
        record['players'].append(player)
    return jsonify({'success': True, 'tournament': _tournament_json(record)})


@app.route('/api/tournaments/<tournament_id>/knockout', methods=['POST'])
def api_start_knockout(tournament_id):
    with storage.edit_tournament(tournament_id, _data_dir()) as record:
        if record['complete']:
            raise MatchLocked("The tournament has been finalized")
        record['bracket'] = start_knockout(record['bracket'])
    return jsonify({'success': True, 'tournament': _tournament_json(record)})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>', methods=['POST'])
def api_record_result(tournament_id, match_id):
    """
    Record a match result.

    Requires player1_points and player2_points; winner_id defaults to the
    side with more points. allow_correction permits changing a knockout
    result that later rounds already used.
    """
    data = request.get_json(silent=True) or {}
    points1 = data.get('player1_points', 0)
    points2 = data.get('player2_points', 0)
    if not isinstance(points1, int) or not isinstance(points2, int) or points1 < 0 or points2 < 0:
        return jsonify({'success': False, 'error': 'Points must be non-negative integers'}), 400

    with storage.edit_tournament(tournament_id, _data_dir()) as record:
        bracket = record['bracket']
        winner_id = data.get('winner_id')
        if not winner_id:
            match = next((m for m in bracket if m.id == match_id), None)
            if match is None:
                raise MatchNotFound(match_id)
            if points1 == points2 or match.player1 is None or match.player2 is None:
                raise InvalidResult('winner_id is required when points are tied')
            winner_id = match.player1.id if points1 > points2 else match.player2.id

        record['bracket'] = record_result(
            bracket, match_id, winner_id, points1, points2,
            finalized=record['complete'],
            allow_correction=bool(data.get('allow_correction', False)),
        )
    return jsonify({'success': True, 'tournament': _tournament_json(record)})


@app.route('/api/tournaments/<tournament_id>/rankings', methods=['GET'])
def api_rankings(tournament_id):
    """Preview the final rankings without committing them."""
    record = storage.load_tournament(tournament_id, _data_dir())
    rankings = finalize_rankings(record['bracket'], record['players'])
    return jsonify({'success': True, 'rankings': [r.to_dict() for r in rankings]})


@app.route('/api/tournaments/<tournament_id>/finalize', methods=['POST'])
def api_finalize(tournament_id):
    data = request.get_json(silent=True) or {}
    merge = bool(data.get('merge_non_participants', False))

    with storage.data_lock(_data_dir()):
        record = storage.load_tournament(tournament_id, _data_dir())
        if knockout_started(record['bracket']) and not record['complete'] and not is_finals_complete(record['bracket']):
            raise MatchLocked("Complete the final before finalizing the tournament")
        # Seeds may have changed since the tournament was created
        current = {p.id: p for p in storage.load_players(_data_dir())}
        entrants = [current.get(p.id, p) for p in record['players']]
        rankings = finalize_rankings(record['bracket'], entrants)
        updated_count = storage.commit_finalization(tournament_id, rankings, _data_dir(), merge_non_participants=merge)

    return jsonify({
        'success': True,
        'message': f'Tournament finalized successfully. Updated {updated_count} player seeds.',
        'updated_count': updated_count,
        'rankings': [r.to_dict() for r in rankings],
    })


if __name__ == '__main__':
    app.run(debug=True, port=5000)
