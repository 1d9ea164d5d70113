from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from quizgrid import db
from quizgrid.models import User

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the QuizGrid game server!'})


@main.route('/auth/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({'error': 'Missing username or password', 'reason': 'invalid_request'}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists', 'reason': 'username_taken'}), 400

    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)

    return jsonify(user.to_dict()), 201


@main.route('/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify(user.to_dict())
    return jsonify({'error': 'Invalid username or password', 'reason': 'invalid_credentials'}), 401


@main.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})


@main.route('/auth/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
