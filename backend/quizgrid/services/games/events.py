from flask import current_app

from quizgrid import db, socketio
from quizgrid.models import GameSession

WS_NAMESPACE = '/ws'

TILE_CLAIMED = 'tile_claimed'
PLAYER_JOINED = 'player_joined'
PLAYER_LEFT = 'player_left'
GAME_STATUS_CHANGED = 'game_status_changed'


def session_room(session_id: int) -> str:
    return f"session:{session_id}"


def next_seq(session: GameSession) -> int:
    """Reserve the sequence number for an event; persisted with the caller's commit."""
    session.event_seq = (session.event_seq or 0) + 1
    db.session.add(session)
    return session.event_seq


def publish(session_id: int, event: str, payload: dict) -> None:
    """Fan an event out to every client subscribed to the session.

    Delivery is best effort: clients reconcile against the state endpoint,
    so a transport failure is logged and never propagated into the caller.
    """
    body = dict(payload)
    body.setdefault('session_id', session_id)
    try:
        socketio.emit(event, body, to=session_room(session_id), namespace=WS_NAMESPACE)
        current_app.logger.info(f"[event] session={session_id} event={event} seq={body.get('seq')}")
    except Exception:
        current_app.logger.exception(f"[event-failed] session={session_id} event={event}")
