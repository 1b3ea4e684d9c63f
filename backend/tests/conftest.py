import os
import sys
from datetime import timedelta

import pytest

# Ensure the backend root (containing the `lobby` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from lobby import create_app, db, socketio
from lobby.services.keepalive import keepalives
from lobby.services.seed import seed_defaults


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_NAME = 'cards.sid'
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=30)
    SESSION_KEEPALIVE_SEC = 60
    ROOM_STORAGE = 'sql'
    SOCKETIO_NAMESPACE = '/'
    SOCKETIO_CORS_ORIGINS = '*'
    SEED_ON_STARTUP = False
    SEED_USERS = ['court', 'dan', 'elyse', 'kurt']
    SEED_ROOMS = ['cerf', 'babbage', 'lovelace', 'dijkstra']
    SEED_GAME_TYPES = ['golf']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        seed_defaults()
        yield application
        db.session.remove()
        db.drop_all()
    keepalives.reset()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def session_store(flask_app):
    return flask_app.extensions['server_sessions'].store


def login(http_client, username):
    return http_client.post('/', data={'auth': username})


@pytest.fixture()
def connect_as(flask_app):
    """Log a fresh HTTP client in and open a socket carrying its cookie."""
    opened = []

    def _connect(username=None, http_client=None):
        http_client = http_client or flask_app.test_client()
        if username:
            login(http_client, username)
        sio_client = socketio.test_client(flask_app, flask_test_client=http_client)
        opened.append(sio_client)
        return sio_client

    yield _connect
    for sio_client in opened:
        if sio_client.is_connected():
            sio_client.disconnect()
