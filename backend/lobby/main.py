from flask import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError

from lobby.errors import LobbyError, PersistenceFailure, ValidationFailure
from lobby.models import User
from lobby.services.rooms import rooms

main = Blueprint('main', __name__)


@main.errorhandler(LobbyError)
def handle_lobby_error(exc):
    current_app.logger.warning(f"[http-error] {exc.type}: {exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


@main.route('/', methods=['GET'])
def index():
    if not session.get('user'):
        return render_template('auth.html')
    return render_template('select_room.html', rooms=rooms.list(), user=session['user'])


@main.route('/', methods=['POST'])
def login():
    """Log in by username. Every outcome redirects home."""
    username = (request.form.get('auth') or '').strip()

    if session.get('user'):
        return redirect(url_for('main.index'))
    if not username:
        current_app.logger.info(f"[login] {ValidationFailure.type}: empty username")
        return redirect(url_for('main.index'))

    try:
        user = User.query.filter_by(username=username).first()
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[login] {PersistenceFailure.type}: failed to retrieve user information: {exc}")
        return redirect(url_for('main.index'))

    if user is None:
        current_app.logger.info(f"[login] no user found with username {username}")
    else:
        session['user'] = user.to_dict()
        current_app.logger.info(f"[login] user {username} logged in")
    return redirect(url_for('main.index'))


@main.route('/logout', methods=['GET', 'POST'])
def logout():
    session.clear()
    return redirect(url_for('main.index'))


@main.route('/room/<string:name>')
def room(name):
    if not session.get('user'):
        return redirect(url_for('main.index'))
    return render_template('room.html', room=name, user=session['user'])


@main.route('/health')
def health():
    return jsonify({'status': 'ok'})
