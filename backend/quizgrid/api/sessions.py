from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from quizgrid.errors import GameError, ValidationError
from quizgrid.services.games import claims
from quizgrid.services.games import sessions as svc

sessions = Blueprint('sessions', __name__)

CLAIM_ENDPOINTS = ('sessions.request_claim', 'sessions.submit_answer')


@sessions.errorhandler(GameError)
def handle_claim_rejection(exc):
    payload = exc.to_dict()
    if request.endpoint in CLAIM_ENDPOINTS:
        payload['accepted'] = False
    current_app.logger.info(f"[rejected] endpoint={request.endpoint} reason={exc.reason} status={exc.status_code}")
    return jsonify(payload), exc.status_code


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _int_field(data, name):
    value = data.get(name)
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{name} is required')
    if isinstance(value, float):
        raise ValidationError(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def _tile_fields(data):
    tile = data.get('tile')
    if isinstance(tile, dict):
        return tile.get('x'), tile.get('y')
    return data.get('x'), data.get('y')


@sessions.route('', methods=['POST'])
@login_required
def create_session():
    data = _body()
    session = svc.create_session(
        current_user,
        quiz_id=_int_field(data, 'quiz_id'),
        board_size=data.get('board_size'),
        time_limit=data.get('time_limit'),
    )
    return jsonify({
        'session_id': session.id,
        'join_code': session.join_code,
        'session': session.to_dict(),
    }), 201


@sessions.route('/join', methods=['POST'])
def join_session():
    data = _body()
    player, (x, y) = svc.join_session(data.get('join_code'), data.get('name'))
    inactive_after = current_app.config.get('PLAYER_INACTIVE_SEC', 30)
    return jsonify({
        'session_id': player.session_id,
        'player_id': player.id,
        'starting_tile': {'x': x, 'y': y},
        'player': player.to_dict(inactive_after=inactive_after),
    }), 201


@sessions.route('/<int:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    return jsonify(svc.session_state(session_id))


@sessions.route('/<int:session_id>/status', methods=['POST'])
@login_required
def set_status(session_id):
    status = (_body().get('status') or '').strip().lower()
    session = svc.set_session_status(session_id, current_user, status)
    return jsonify(session.to_dict())


@sessions.route('/<int:session_id>/claims', methods=['POST'])
def request_claim(session_id):
    data = _body()
    x, y = _tile_fields(data)
    question = claims.request_claim(session_id, _int_field(data, 'player_id'), x, y)
    return jsonify({'tile': {'x': x, 'y': y}, 'question': question.to_dict()})


@sessions.route('/<int:session_id>/answers', methods=['POST'])
def submit_answer(session_id):
    data = _body()
    x, y = _tile_fields(data)
    result = claims.submit_answer(
        session_id,
        _int_field(data, 'player_id'),
        x,
        y,
        _int_field(data, 'option_index'),
    )
    return jsonify(result.to_dict())


@sessions.route('/<int:session_id>/players/<int:player_id>/claimable', methods=['GET'])
def claimable_tiles(session_id, player_id):
    return jsonify({'tiles': claims.claimable_tiles(session_id, player_id)})


@sessions.route('/<int:session_id>/players/<int:player_id>/heartbeat', methods=['POST'])
def heartbeat(session_id, player_id):
    player = svc.heartbeat(session_id, player_id)
    return jsonify({'player_id': player.id, 'last_active': player.last_active})


@sessions.route('/<int:session_id>/players/<int:player_id>/leave', methods=['POST'])
def leave_session(session_id, player_id):
    svc.remove_player(session_id, player_id, cause='left')
    return jsonify({'message': 'You have left the game.'})


@sessions.route('/<int:session_id>/players/<int:player_id>', methods=['DELETE'])
@login_required
def remove_player(session_id, player_id):
    svc.remove_player(session_id, player_id, user=current_user, cause='removed')
    return jsonify({'message': 'Player removed.'})
