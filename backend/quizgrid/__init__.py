from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizgrid.routes import main
    flask_app.register_blueprint(main)

    from quizgrid.api.quizzes import quizzes
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')

    from quizgrid.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from quizgrid.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from quizgrid.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        flask_app.logger.info(f"[rejected] reason={exc.reason} status={exc.status_code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    from quizgrid.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required', 'reason': 'unauthenticated'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from quizgrid.models import Quiz, Question
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            teacher = User(username='teacher')
            teacher.set_password('password')
            db.session.add(teacher)
            db.session.flush()

            quiz = Quiz(title='Capitals', owner_id=teacher.id)
            quiz.questions = [
                Question(text='Capital of France?', options=['Paris', 'Lyon', 'Nice'], correct_option=0,
                         points=100, category='geography'),
                Question(text='Capital of Japan?', options=['Osaka', 'Tokyo', 'Kyoto', 'Nara'], correct_option=1,
                         points=100, category='geography'),
                Question(text='Capital of Canada?', options=['Toronto', 'Ottawa'], correct_option=1,
                         points=150, category='geography'),
            ]
            db.session.add(quiz)
            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
