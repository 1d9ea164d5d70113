from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from quizgrid import db
from quizgrid.errors import AuthorizationError, NotFoundError, ValidationError
from quizgrid.models import Quiz, Question

quizzes = Blueprint('quizzes', __name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 4


def _build_question(raw, index, default_points):
    if not isinstance(raw, dict):
        raise ValidationError(f'Question {index} must be an object')
    text = (raw.get('text') or '').strip()
    options = raw.get('options')
    if not text:
        raise ValidationError(f'Question {index} has no text')
    if not isinstance(options, list) or not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValidationError(f'Question {index} needs {MIN_OPTIONS}-{MAX_OPTIONS} options')
    options = [str(o).strip() for o in options]
    if any(not o for o in options):
        raise ValidationError(f'Question {index} has an empty option')
    correct = raw.get('correct_option')
    if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct < len(options):
        raise ValidationError(f'Question {index} has no valid correct_option')
    points = raw.get('points', default_points)
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise ValidationError(f'Question {index} points must be a positive integer')
    return Question(text=text, options=options, correct_option=correct, points=points,
                    category=raw.get('category'))


@quizzes.route('', methods=['POST'])
@login_required
def create_quiz():
    data = request.get_json(silent=True) or {}
    title = (data.get('title') or '').strip()
    raw_questions = data.get('questions') or []
    if not title:
        raise ValidationError('Quiz title is required')
    if not isinstance(raw_questions, list) or not raw_questions:
        raise ValidationError('A quiz needs at least one question')

    default_points = int(current_app.config.get('DEFAULT_QUESTION_POINTS', 100))
    quiz = Quiz(title=title, owner_id=current_user.id)
    quiz.questions = [_build_question(q, i, default_points) for i, q in enumerate(raw_questions)]
    db.session.add(quiz)
    db.session.commit()
    current_app.logger.info(f"[quiz-created] quiz={quiz.id} owner={current_user.id} questions={len(quiz.questions)}")
    return jsonify(quiz.to_dict(include_answers=True)), 201


@quizzes.route('/<int:quiz_id>', methods=['GET'])
@login_required
def get_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        raise NotFoundError('Quiz not found', reason='quiz_not_found')
    if quiz.owner_id != current_user.id:
        raise AuthorizationError('You can only view your own quizzes')
    return jsonify(quiz.to_dict(include_answers=True))
