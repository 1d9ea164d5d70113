import random
from typing import Optional

from quizgrid import db
from quizgrid.errors import NotFoundError
from quizgrid.models import GameSession, Player, Question, QuestionDraw


def served_question_ids(player: Player) -> set:
    """Question ids already shown to ``player`` in the current cycle."""
    rows = (
        db.session.query(QuestionDraw.question_id)
        .filter_by(session_id=player.session_id, player_id=player.id, cycle=player.question_cycle)
        .all()
    )
    return {row[0] for row in rows}


def next_question(session: GameSession, player: Player, rng: Optional[random.Random] = None) -> Question:
    """Draw a question the player has not seen yet in this session.

    When every question in the quiz has been served, the player's cycle is
    bumped, which empties their served-set, and the draw falls back to the
    whole pool. Nothing is committed here.
    """
    rng = rng or random
    pool = Question.query.filter_by(quiz_id=session.quiz_id).order_by(Question.id).all()
    if not pool:
        raise NotFoundError('This quiz has no questions', reason='no_questions')

    seen = served_question_ids(player)
    fresh = [q for q in pool if q.id not in seen]
    if not fresh:
        player.question_cycle = (player.question_cycle or 0) + 1
        db.session.add(player)
        fresh = pool
    return rng.choice(fresh)
