import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `quizgrid` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizgrid import create_app, db, socketio
from config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    WRONG_ANSWER_COOLDOWN_SEC = 0
    ENFORCE_TIME_LIMIT = True
    MIN_PLAYERS = 1


QUIZ = {
    'title': 'Capitals',
    'questions': [
        {'text': 'Capital of France?', 'options': ['Paris', 'Lyon', 'Nice'], 'correct_option': 0, 'points': 100},
        {'text': 'Capital of Japan?', 'options': ['Osaka', 'Tokyo', 'Kyoto', 'Nara'], 'correct_option': 1,
         'points': 150, 'category': 'geography'},
        {'text': 'Capital of Canada?', 'options': ['Toronto', 'Ottawa'], 'correct_option': 1, 'points': 200},
    ],
}


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    @application.teardown_request
    def _drop_cached_login_user(_exc):
        # The fixture holds one app context for the whole test, so ``g`` is shared
        # across requests; drop Flask-Login's cached user as a fresh context would.
        g.pop('_login_user', None)

    with application.app_context():
        import quizgrid.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def teacher(client):
    """Registers and logs in a teacher on ``client``; returns the user payload."""
    res = client.post('/auth/register', json={'username': 'ms.frizzle', 'password': 'bus'})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def quiz(client, teacher):
    res = client.post('/api/quizzes', json=QUIZ)
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def answers(quiz):
    """question id -> (correct option, points)"""
    return {q['id']: (q['correct_option'], q['points']) for q in quiz['questions']}


@pytest.fixture()
def sio_client(flask_app, client):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=client,
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def create_session(client, quiz_id, board_size=4, time_limit=300):
    res = client.post('/api/sessions', json={'quiz_id': quiz_id, 'board_size': board_size, 'time_limit': time_limit})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def join(client, join_code, name):
    res = client.post('/api/sessions/join', json={'join_code': join_code, 'name': name})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def start(client, session_id):
    res = client.post(f'/api/sessions/{session_id}/status', json={'status': 'active'})
    assert res.status_code == 200, res.get_json()
    return res.get_json()


def request_claim(client, session_id, player_id, x, y):
    return client.post(f'/api/sessions/{session_id}/claims', json={'player_id': player_id, 'tile': {'x': x, 'y': y}})


def submit(client, session_id, player_id, x, y, option_index):
    return client.post(f'/api/sessions/{session_id}/answers',
                       json={'player_id': player_id, 'tile': {'x': x, 'y': y}, 'option_index': option_index})


def claim(client, answers, session_id, player_id, x, y):
    """Request a tile and answer its question correctly; returns the answer response."""
    res = request_claim(client, session_id, player_id, x, y)
    assert res.status_code == 200, res.get_json()
    question_id = res.get_json()['question']['id']
    return submit(client, session_id, player_id, x, y, answers[question_id][0])


@pytest.fixture()
def two_player_game(client, quiz):
    """4x4 board, A starts at (0,0) and B at (3,3), session active."""
    created = create_session(client, quiz['id'], board_size=4)
    a = join(client, created['join_code'], 'Alice')
    b = join(client, created['join_code'], 'Bob')
    assert a['starting_tile'] == {'x': 0, 'y': 0}
    assert b['starting_tile'] == {'x': 3, 'y': 3}
    start(client, created['session_id'])
    return created['session_id'], a['player_id'], b['player_id']


def assert_tiles_owned_consistent(session_id):
    from quizgrid.models import Player, Tile
    for player in Player.query.filter_by(session_id=session_id).all():
        owned = Tile.query.filter_by(session_id=session_id, owner_id=player.id).count()
        assert player.tiles_owned == owned, (player.name, player.tiles_owned, owned)
