from quizgrid import db, bcrypt
from flask_login import UserMixin
import string
import random
import time

STATUS_WAITING = 'waiting'
STATUS_ACTIVE = 'active'
STATUS_FINISHED = 'finished'
SESSION_STATUSES = (STATUS_WAITING, STATUS_ACTIVE, STATUS_FINISHED)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6

PLAYER_COLORS = [
    '#3B82F6',  # blue
    '#EF4444',  # red
    '#10B981',  # green
    '#F59E0B',  # yellow
    '#8B5CF6',  # violet
    '#EC4899',  # pink
    '#06B6D4',  # cyan
    '#F97316',  # orange
]


def player_color(index: int) -> str:
    return PLAYER_COLORS[index % len(PLAYER_COLORS)]


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)
    questions = db.relationship('Question', back_populates='quiz', order_by='Question.id',
                                cascade='all, delete-orphan')

    def to_dict(self, include_answers=False):
        return {
            'id': self.id,
            'title': self.title,
            'owner_id': self.owner_id,
            'questions': [q.to_dict(include_answer=include_answers) for q in self.questions],
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False)  # list of 2-4 strings
    correct_option = db.Column(db.Integer, nullable=False)  # 0-based
    points = db.Column(db.Integer, nullable=False, default=100)
    category = db.Column(db.String(64), nullable=True)
    quiz = db.relationship('Quiz', back_populates='questions')

    def to_dict(self, include_answer=False):
        # Correct option and points stay server-side until a claim commits
        data = {
            'id': self.id,
            'text': self.text,
            'options': list(self.options or []),
            'category': self.category,
        }
        if include_answer:
            data['correct_option'] = self.correct_option
            data['points'] = self.points
        return data


def generate_join_code(length=JOIN_CODE_LENGTH):
    """Generate a join code not used by any session still waiting for players."""
    while True:
        code = ''.join(random.choices(JOIN_CODE_ALPHABET, k=length))
        if not GameSession.query.filter_by(join_code=code, status=STATUS_WAITING).first():
            return code


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    join_code = db.Column(db.String(JOIN_CODE_LENGTH), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_WAITING)
    board_size = db.Column(db.Integer, nullable=False, default=10)
    time_limit = db.Column(db.Integer, nullable=False, default=300)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)
    started_at = db.Column(db.Float, nullable=True)
    ended_at = db.Column(db.Float, nullable=True)
    # Bumped on every broadcast so clients can spot a missed event
    event_seq = db.Column(db.Integer, nullable=False, default=0)
    # Join order counter; never decremented
    players_joined = db.Column(db.Integer, nullable=False, default=0)

    quiz = db.relationship('Quiz')
    players = db.relationship('Player', back_populates='session', order_by='Player.id')

    def __init__(self, **kwargs):
        super(GameSession, self).__init__(**kwargs)
        if not self.join_code:
            self.join_code = generate_join_code()

    @property
    def deadline(self):
        if self.started_at is None:
            return None
        return self.started_at + self.time_limit

    def remaining_seconds(self, now=None):
        if self.status == STATUS_WAITING:
            return self.time_limit
        if self.status == STATUS_FINISHED or self.deadline is None:
            return 0
        now = time.time() if now is None else now
        return max(0, int(round(self.deadline - now)))

    def to_dict(self):
        return {
            'id': self.id,
            'join_code': self.join_code,
            'status': self.status,
            'board_size': self.board_size,
            'time_limit': self.time_limit,
            'quiz_id': self.quiz_id,
            'teacher_id': self.teacher_id,
            'created_at': self.created_at,
            'started_at': self.started_at,
            'ended_at': self.ended_at,
            'remaining_seconds': self.remaining_seconds(),
            'seq': self.event_seq,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    color = db.Column(db.String(16), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    tiles_owned = db.Column(db.Integer, nullable=False, default=0)
    start_x = db.Column(db.Integer, nullable=True)
    start_y = db.Column(db.Integer, nullable=True)
    joined_at = db.Column(db.Float, default=time.time, nullable=False)
    last_active = db.Column(db.Float, default=time.time, nullable=False)
    # Served-question generation; bumped when the quiz pool is exhausted
    question_cycle = db.Column(db.Integer, nullable=False, default=0)
    cooldown_until = db.Column(db.Float, nullable=True)
    session = db.relationship('GameSession', back_populates='players')

    def is_connected(self, inactive_after, now=None):
        now = time.time() if now is None else now
        return (now - (self.last_active or 0)) <= inactive_after

    def to_dict(self, inactive_after=None):
        data = {
            'id': self.id,
            'session_id': self.session_id,
            'name': self.name,
            'color': self.color,
            'score': self.score,
            'tiles_owned': self.tiles_owned,
            'position': {'x': self.start_x, 'y': self.start_y},
            'last_active': self.last_active,
        }
        if inactive_after is not None:
            data['connected'] = self.is_connected(inactive_after)
        return data


class Tile(db.Model):
    __tablename__ = 'tile'
    __table_args__ = (db.UniqueConstraint('session_id', 'x', 'y', name='uq_tile_session_xy'),)
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    x = db.Column(db.Integer, nullable=False)
    y = db.Column(db.Integer, nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True, index=True)
    claimed_at = db.Column(db.Float, nullable=True)

    def to_dict(self):
        return {
            'x': self.x,
            'y': self.y,
            'owner_id': self.owner_id,
            'claimed_at': self.claimed_at,
        }


class QuestionDraw(db.Model):
    """A question served to one player for one tile, and what became of it."""
    __tablename__ = 'question_draw'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False)
    cycle = db.Column(db.Integer, nullable=False, default=0)
    tile_x = db.Column(db.Integer, nullable=False)
    tile_y = db.Column(db.Integer, nullable=False)
    served_at = db.Column(db.Float, default=time.time, nullable=False)
    answered_at = db.Column(db.Float, nullable=True)
    option_index = db.Column(db.Integer, nullable=True)
    # None while pending; otherwise correct, wrong_answer, tile_unavailable, ...
    outcome = db.Column(db.String(32), nullable=True)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)
    question = db.relationship('Question')
