from flask import current_app, request
from flask_socketio import join_room, leave_room, emit
from typing import Any, Dict

from quizgrid import db, socketio
from quizgrid.models import GameSession
from quizgrid.services.games.events import WS_NAMESPACE, session_room

# Clients only listen on these rooms; game actions go through the HTTP API
_sid_to_rooms: Dict[str, set] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _session_id(data: Any):
    raw = (data or {}).get('session_id') if isinstance(data, dict) else None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_connect():
    emit('connected', {'message': f'Connected to {WS_NAMESPACE}'})


def handle_disconnect(*args):
    _sid_to_rooms.pop(_get_sid(), None)


def handle_subscribe(data):
    session_id = _session_id(data)
    if session_id is None:
        emit('error', {'message': 'session_id is required'})
        return
    session = db.session.get(GameSession, session_id)
    if not session:
        emit('error', {'message': 'Game session not found'})
        return
    room = session_room(session_id)
    join_room(room)
    _sid_to_rooms.setdefault(_get_sid(), set()).add(room)
    current_app.logger.info(f"[ws-subscribe] sid={_get_sid()} room={room}")
    emit('subscribed', {'room': room, 'status': session.status, 'seq': session.event_seq})


def handle_unsubscribe(data):
    session_id = _session_id(data)
    if session_id is None:
        emit('error', {'message': 'session_id is required'})
        return
    room = session_room(session_id)
    leave_room(room)
    _sid_to_rooms.get(_get_sid(), set()).discard(room)
    emit('unsubscribed', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'subscribe': handle_subscribe,
        'unsubscribe': handle_unsubscribe,
        'ping': handle_ping,
    }
    namespaces = [WS_NAMESPACE] + (['/'] if testing else [])
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
