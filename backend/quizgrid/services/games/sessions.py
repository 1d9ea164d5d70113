"""Session lifecycle: create, join, status transitions, leave, snapshots."""

import threading
import time
import weakref
from contextlib import contextmanager
from typing import Iterator, List, Optional

from flask import current_app
from sqlalchemy import func, update

from quizgrid import db
from quizgrid.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from quizgrid.models import (
    STATUS_ACTIVE,
    STATUS_FINISHED,
    STATUS_WAITING,
    SESSION_STATUSES,
    GameSession,
    Player,
    QuestionDraw,
    Quiz,
    Tile,
    player_color,
)
from . import events
from .board import Board, choose_starting_tile

_locks_guard = threading.Lock()
# Entries vanish once no thread holds or waits on the lock
_session_locks: "weakref.WeakValueDictionary[int, threading.RLock]" = weakref.WeakValueDictionary()


@contextmanager
def session_lock(session_id: int) -> Iterator[None]:
    """Serialize board mutations for one session within this process."""
    with _locks_guard:
        lock = _session_locks.setdefault(session_id, threading.RLock())
    with lock:
        yield


def get_session(session_id) -> GameSession:
    session = db.session.get(GameSession, session_id) if session_id is not None else None
    if not session:
        raise NotFoundError('Game session not found', reason='session_not_found')
    return session


def get_player(session: GameSession, player_id) -> Player:
    player = Player.query.filter_by(id=player_id, session_id=session.id).first() if player_id is not None else None
    if not player:
        raise NotFoundError('Player not found in this session', reason='player_not_found')
    return player


def load_board(session: GameSession) -> Board:
    return Board.from_tiles(session.board_size, Tile.query.filter_by(session_id=session.id).all())


def require_teacher(session: GameSession, user) -> None:
    if user is None or getattr(user, 'id', None) != session.teacher_id:
        raise AuthorizationError('Only the teacher who created this session may do that')


def create_session(teacher, quiz_id, board_size=None, time_limit=None) -> GameSession:
    cfg = current_app.config
    board_size = cfg.get('DEFAULT_BOARD_SIZE', 10) if board_size is None else board_size
    time_limit = cfg.get('DEFAULT_TIME_LIMIT_SEC', 300) if time_limit is None else time_limit
    try:
        board_size = int(board_size)
        time_limit = int(time_limit)
    except (TypeError, ValueError):
        raise ValidationError('board_size and time_limit must be integers')

    min_size, max_size = cfg.get('MIN_BOARD_SIZE', 2), cfg.get('MAX_BOARD_SIZE', 20)
    if not min_size <= board_size <= max_size:
        raise ValidationError(f'board_size must be between {min_size} and {max_size}')
    if time_limit <= 0:
        raise ValidationError('time_limit must be positive')

    quiz = db.session.get(Quiz, quiz_id) if quiz_id is not None else None
    if not quiz:
        raise NotFoundError('Quiz not found', reason='quiz_not_found')
    if quiz.owner_id != teacher.id:
        raise AuthorizationError('You can only run your own quizzes')
    if not quiz.questions:
        raise ValidationError('Quiz has no questions', reason='no_questions')

    session = GameSession(quiz_id=quiz.id, teacher_id=teacher.id, board_size=board_size,
                          time_limit=time_limit, status=STATUS_WAITING)
    db.session.add(session)
    db.session.flush()
    db.session.add_all(
        Tile(session_id=session.id, x=x, y=y)
        for x in range(board_size) for y in range(board_size)
    )
    db.session.commit()
    current_app.logger.info(
        f"[session-created] session={session.id} code={session.join_code} quiz={quiz.id} size={board_size} limit={time_limit}s"
    )
    return session


def join_session(join_code, name):
    """Add a player to a waiting session and grant their starting tile.

    Returns ``(player, (x, y))``.
    """
    code = (join_code or '').strip().upper()
    name = (name or '').strip()
    if not code or not name:
        raise ValidationError('Join code and player name are required')
    if len(name) > 64:
        raise ValidationError('Player name is too long')

    session = GameSession.query.filter_by(join_code=code, status=STATUS_WAITING).first()
    if not session:
        if GameSession.query.filter_by(join_code=code).first():
            raise StateError('This game has already started or finished', reason='game_not_waiting')
        raise NotFoundError('Game not found', reason='session_not_found')

    with session_lock(session.id):
        db.session.refresh(session)
        if session.status != STATUS_WAITING:
            raise StateError('This game has already started or finished', reason='game_not_waiting')
        taken = Player.query.filter(
            Player.session_id == session.id, func.lower(Player.name) == name.lower()
        ).first()
        if taken:
            raise ValidationError('That name is already taken in this game', reason='name_taken')

        board = load_board(session)
        index = session.players_joined or 0
        cell = choose_starting_tile(board, index, attempts=current_app.config.get('START_POSITION_ATTEMPTS', 50))
        if cell is None:
            raise ConflictError('The board has no room for another player', reason='board_full')

        now = time.time()
        player = Player(session_id=session.id, name=name, color=player_color(index),
                        start_x=cell[0], start_y=cell[1], tiles_owned=1, last_active=now)
        db.session.add(player)
        db.session.flush()
        result = db.session.execute(
            update(Tile)
            .where(Tile.session_id == session.id, Tile.x == cell[0], Tile.y == cell[1], Tile.owner_id.is_(None))
            .values(owner_id=player.id, claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise ConflictError('Starting tile was taken, please try again', reason='tile_unavailable')
        session.players_joined = index + 1
        seq = events.next_seq(session)
        db.session.commit()

        current_app.logger.info(
            f"[player-joined] session={session.id} player={player.id} name={player.name} start=({cell[0]},{cell[1]})"
        )
        events.publish(session.id, events.PLAYER_JOINED, {
            'player': player.to_dict(inactive_after=current_app.config.get('PLAYER_INACTIVE_SEC', 30)),
            'tile': {'x': cell[0], 'y': cell[1]},
            'seq': seq,
        })
    return player, cell


def leaderboard(session: GameSession) -> List[Player]:
    return sorted(session.players, key=lambda p: (-p.score, -p.tiles_owned, p.id))


def finish_session(session: GameSession, cause: str) -> None:
    """Mark the session finished and announce the final standings. Caller holds the lock."""
    session.status = STATUS_FINISHED
    session.ended_at = time.time()
    seq = events.next_seq(session)
    db.session.commit()
    ranked = leaderboard(session)
    current_app.logger.info(f"[session-finished] session={session.id} cause={cause} players={len(ranked)}")
    events.publish(session.id, events.GAME_STATUS_CHANGED, {
        'status': STATUS_FINISHED,
        'cause': cause,
        'winner': ranked[0].to_dict() if ranked else None,
        'leaderboard': [p.to_dict() for p in ranked],
        'seq': seq,
    })


def expire_if_elapsed(session: GameSession, now: Optional[float] = None) -> bool:
    """Finish an active session whose time limit has run out. Caller holds the lock."""
    if not current_app.config.get('ENFORCE_TIME_LIMIT', True):
        return False
    if session.status != STATUS_ACTIVE or session.deadline is None:
        return False
    now = time.time() if now is None else now
    if now < session.deadline:
        return False
    finish_session(session, cause='time_limit')
    return True


def set_session_status(session_id, user, status) -> GameSession:
    if status not in SESSION_STATUSES:
        raise ValidationError(f'Unknown status {status!r}', reason='invalid_status')
    session = get_session(session_id)
    require_teacher(session, user)

    with session_lock(session.id):
        db.session.refresh(session)
        expire_if_elapsed(session)
        if session.status == status:
            return session

        if session.status == STATUS_WAITING and status == STATUS_ACTIVE:
            min_players = int(current_app.config.get('MIN_PLAYERS', 1))
            if len(session.players) < min_players:
                raise StateError(f'At least {min_players} players are required to start',
                                 reason='not_enough_players')
            session.status = STATUS_ACTIVE
            session.started_at = time.time()
            seq = events.next_seq(session)
            db.session.commit()
            current_app.logger.info(f"[session-started] session={session.id} players={len(session.players)}")
            events.publish(session.id, events.GAME_STATUS_CHANGED, {
                'status': STATUS_ACTIVE,
                'started_at': session.started_at,
                'time_limit': session.time_limit,
                'seq': seq,
            })
            from .scheduler import schedule_time_limit
            schedule_time_limit(current_app._get_current_object(), session.id)
            return session

        if session.status == STATUS_ACTIVE and status == STATUS_FINISHED:
            finish_session(session, cause='teacher')
            return session

        raise StateError(f'Cannot move a {session.status} session to {status}', reason='invalid_transition')


def heartbeat(session_id, player_id) -> Player:
    session = get_session(session_id)
    player = get_player(session, player_id)
    player.last_active = time.time()
    db.session.commit()
    return player


def remove_player(session_id, player_id, user=None, cause='left') -> None:
    """Drop a player and release their tiles.

    ``user`` is required (and must be the session's teacher) unless the
    player is leaving on their own, which is only possible before the game
    starts.
    """
    session = get_session(session_id)
    if cause != 'left':
        require_teacher(session, user)
    with session_lock(session.id):
        db.session.refresh(session)
        if cause == 'left' and session.status != STATUS_WAITING:
            raise StateError('Players can only leave before the game starts', reason='game_not_waiting')
        player = get_player(session, player_id)
        Tile.query.filter_by(session_id=session.id, owner_id=player.id).update(
            {'owner_id': None, 'claimed_at': None}, synchronize_session=False
        )
        QuestionDraw.query.filter_by(player_id=player.id).delete(synchronize_session=False)
        db.session.delete(player)
        seq = events.next_seq(session)
        db.session.commit()
        current_app.logger.info(f"[player-left] session={session.id} player={player_id} cause={cause}")
        events.publish(session.id, events.PLAYER_LEFT, {'player_id': player_id, 'cause': cause, 'seq': seq})


def session_state(session_id) -> dict:
    """Full snapshot used by clients to reconcile after missed events."""
    session = get_session(session_id)
    if session.status == STATUS_ACTIVE and session.deadline is not None and time.time() >= session.deadline:
        with session_lock(session.id):
            db.session.refresh(session)
            expire_if_elapsed(session)

    inactive_after = current_app.config.get('PLAYER_INACTIVE_SEC', 30)
    ranked = leaderboard(session)
    claimed = (
        Tile.query.filter(Tile.session_id == session.id, Tile.owner_id.isnot(None))
        .order_by(Tile.x, Tile.y)
        .all()
    )
    payload = session.to_dict()
    payload['players'] = [p.to_dict(inactive_after=inactive_after) for p in session.players]
    payload['claimed_tiles'] = [t.to_dict() for t in claimed]
    payload['leaderboard'] = [{'player_id': p.id, 'name': p.name, 'score': p.score,
                               'tiles_owned': p.tiles_owned} for p in ranked]
    payload['winner'] = ranked[0].to_dict() if (ranked and session.status == STATUS_FINISHED) else None
    return payload
