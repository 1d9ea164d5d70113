"""Claim coordination: serve a question for a tile, then commit the tile on a correct answer.

Both entry points re-read the board inside the session lock. The tile
ownership write is a conditional UPDATE, so even two processes racing on
one tile produce at most one winner.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from flask import current_app
from sqlalchemy import update

from quizgrid import db
from quizgrid.errors import ConflictError, GameError, NotAdjacentError, StateError, ValidationError
from quizgrid.models import STATUS_ACTIVE, GameSession, Player, Question, QuestionDraw, Tile
from . import events
from .board import Board, is_claimable
from .questions import next_question
from .sessions import expire_if_elapsed, get_player, get_session, load_board, session_lock

OUTCOME_CORRECT = 'correct'
OUTCOME_WRONG = 'wrong_answer'
OUTCOME_SUPERSEDED = 'superseded'


@dataclass
class ClaimResult:
    accepted: bool
    points_awarded: int = 0
    reason: Optional[str] = None
    tile: dict = field(default_factory=dict)
    correct_option: Optional[int] = None
    score: Optional[int] = None
    tiles_owned: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'accepted': self.accepted,
            'reason': self.reason,
            'points_awarded': self.points_awarded,
            'tile': self.tile,
            'correct_option': self.correct_option,
            'score': self.score,
            'tiles_owned': self.tiles_owned,
        }


def _require_tile(x, y):
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (x, y)):
        raise ValidationError('Tile coordinates must be integers', reason='invalid_tile')
    return x, y


def _check_claim(session: GameSession, board: Board, player: Player, x: int, y: int) -> None:
    """Gate shared by request and commit; order decides which rejection wins."""
    expire_if_elapsed(session)
    if session.status != STATUS_ACTIVE:
        raise StateError('The game is not active', reason='game_not_active', status=session.status)
    if not board.contains(x, y):
        raise ValidationError(f'Tile ({x},{y}) is not on the board', reason='invalid_tile')
    if board.is_owned(x, y):
        raise ConflictError('This tile is no longer available', reason='tile_unavailable')
    if not is_claimable(board, (x, y), player.id):
        raise NotAdjacentError('You can only claim tiles adjacent to your territory')


def request_claim(session_id, player_id, x, y) -> Question:
    """Validate a claim request and serve the question guarding the tile."""
    x, y = _require_tile(x, y)
    session = get_session(session_id)
    with session_lock(session.id):
        db.session.refresh(session)
        player = get_player(session, player_id)
        _check_claim(session, load_board(session), player, x, y)

        now = time.time()
        if player.cooldown_until and now < player.cooldown_until:
            retry_after = round(player.cooldown_until - now, 2)
            raise StateError(f'Wait {retry_after}s before answering again', reason='cooldown',
                             retry_after=retry_after)

        QuestionDraw.query.filter_by(session_id=session.id, player_id=player.id, outcome=None).update(
            {'outcome': OUTCOME_SUPERSEDED}, synchronize_session=False
        )
        question = next_question(session, player)
        db.session.add(QuestionDraw(session_id=session.id, player_id=player.id, question_id=question.id,
                                    cycle=player.question_cycle, tile_x=x, tile_y=y, served_at=now))
        player.last_active = now
        db.session.commit()
        current_app.logger.info(
            f"[claim-requested] session={session.id} player={player.id} tile=({x},{y}) question={question.id}"
        )
        return question


def submit_answer(session_id, player_id, x, y, option_index) -> ClaimResult:
    """Commit a claim if the answer to the pending question is correct.

    Raises StateError, ConflictError or NotAdjacentError when the board
    moved on since the question was served; a wrong answer is returned as a
    rejected :class:`ClaimResult` rather than raised.
    """
    x, y = _require_tile(x, y)
    try:
        option_index = int(option_index)
    except (TypeError, ValueError):
        raise ValidationError('option_index must be an integer', reason='invalid_option')

    session = get_session(session_id)
    with session_lock(session.id):
        db.session.refresh(session)
        player = get_player(session, player_id)
        draw = (
            QuestionDraw.query.filter_by(session_id=session.id, player_id=player.id,
                                         tile_x=x, tile_y=y, outcome=None)
            .order_by(QuestionDraw.id.desc())
            .first()
        )
        if not draw:
            raise ValidationError('No question is pending for this tile', reason='no_pending_question')

        now = time.time()
        draw.answered_at = now
        draw.option_index = option_index
        player.last_active = now
        try:
            _check_claim(session, load_board(session), player, x, y)
        except GameError as exc:
            draw.outcome = exc.reason
            db.session.commit()
            current_app.logger.info(
                f"[claim-rejected] session={session.id} player={player.id} tile=({x},{y}) reason={exc.reason}"
            )
            raise

        question = draw.question
        if option_index != question.correct_option:
            draw.outcome = OUTCOME_WRONG
            cooldown = float(current_app.config.get('WRONG_ANSWER_COOLDOWN_SEC', 0) or 0)
            if cooldown > 0:
                player.cooldown_until = now + cooldown
            db.session.commit()
            current_app.logger.info(
                f"[claim-wrong] session={session.id} player={player.id} tile=({x},{y}) question={question.id}"
            )
            return ClaimResult(accepted=False, reason=OUTCOME_WRONG, tile={'x': x, 'y': y},
                               score=player.score, tiles_owned=player.tiles_owned)

        points = question.points
        won = db.session.execute(
            update(Tile)
            .where(Tile.session_id == session.id, Tile.x == x, Tile.y == y, Tile.owner_id.is_(None))
            .values(owner_id=player.id, claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        if won.rowcount != 1:
            db.session.rollback()
            _record_lost_race(draw.id, option_index, now)
            raise ConflictError('This tile is no longer available', reason='tile_unavailable')

        db.session.execute(
            update(Player)
            .where(Player.id == player.id)
            .values(score=Player.score + points, tiles_owned=Player.tiles_owned + 1)
            .execution_options(synchronize_session=False)
        )
        draw.outcome = OUTCOME_CORRECT
        draw.points_awarded = points
        seq = events.next_seq(session)
        db.session.commit()
        db.session.refresh(player)

        current_app.logger.info(
            f"[claim-accepted] session={session.id} player={player.id} tile=({x},{y}) points={points} score={player.score}"
        )
        events.publish(session.id, events.TILE_CLAIMED, {
            'tile': {'x': x, 'y': y},
            'player_id': player.id,
            'player_name': player.name,
            'color': player.color,
            'points': points,
            'score': player.score,
            'tiles_owned': player.tiles_owned,
            'claimed_at': now,
            'seq': seq,
        })
        return ClaimResult(accepted=True, points_awarded=points, tile={'x': x, 'y': y},
                           correct_option=question.correct_option, score=player.score,
                           tiles_owned=player.tiles_owned)


def _record_lost_race(draw_id: int, option_index: int, now: float) -> None:
    draw = db.session.get(QuestionDraw, draw_id)
    if draw is None:
        return
    draw.outcome = ConflictError.default_reason
    draw.option_index = option_index
    draw.answered_at = now
    db.session.commit()


def claimable_tiles(session_id, player_id) -> list:
    session = get_session(session_id)
    player = get_player(session, player_id)
    return [{'x': x, 'y': y} for x, y in load_board(session).claimable_tiles(player.id)]
