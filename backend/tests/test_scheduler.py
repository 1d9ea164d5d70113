import time

from conftest import create_session, join, start
from quizgrid import db
from quizgrid.models import GameSession
from quizgrid.services.games.scheduler import expire_session_at_deadline, schedule_time_limit


def _active_session(client, quiz):
    created = create_session(client, quiz['id'], time_limit=60)
    join(client, created['join_code'], 'Alice')
    start(client, created['session_id'])
    return db.session.get(GameSession, created['session_id'])


def test_timer_finishes_overdue_session(flask_app, client, quiz):
    session = _active_session(client, quiz)
    started_at = time.time() - 61
    session.started_at = started_at
    db.session.commit()

    assert expire_session_at_deadline(flask_app, session.id, started_at, 0) is True
    db.session.expire_all()
    state = client.get(f'/api/sessions/{session.id}/state').get_json()
    assert state['status'] == 'finished'


def test_timer_ignores_restarted_session(flask_app, client, quiz):
    session = _active_session(client, quiz)
    assert expire_session_at_deadline(flask_app, session.id, session.started_at - 5, 0) is False
    db.session.expire_all()
    assert db.session.get(GameSession, session.id).status == 'active'


def test_timer_leaves_session_finished_by_teacher(flask_app, client, quiz):
    session = _active_session(client, quiz)
    started_at = session.started_at
    client.post(f'/api/sessions/{session.id}/status', json={'status': 'finished'})
    assert expire_session_at_deadline(flask_app, session.id, started_at, 0) is False


def test_scheduler_is_disabled_in_tests(flask_app, client, quiz, monkeypatch):
    session = _active_session(client, quiz)
    calls = []
    monkeypatch.setattr('quizgrid.services.games.scheduler.socketio.start_background_task',
                        lambda *args: calls.append(args))
    schedule_time_limit(flask_app, session.id)
    assert calls == []

    flask_app.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    schedule_time_limit(flask_app, session.id)
    schedule_time_limit(flask_app, session.id)
    assert len(calls) == 1
    assert 0 < calls[0][4] <= 60
