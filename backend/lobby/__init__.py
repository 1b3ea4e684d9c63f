from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
# Sessions live in the shared server-side store, so Flask-SocketIO must not
# fork its own copy of the session per socket
socketio = SocketIO(async_mode=None, manage_session=False)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    from lobby.sessions import ServerSideSessions
    from lobby.services.rooms import rooms
    from lobby.services.presence import presence
    from lobby.services.keepalive import keepalives

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    ServerSideSessions(flask_app)
    rooms.init_app(flask_app)
    presence.init_app(flask_app, rooms)
    keepalives.init_app(flask_app)

    socketio.init_app(flask_app, cors_allowed_origins=flask_app.config.get('SOCKETIO_CORS_ORIGINS'))

    from lobby.main import main
    flask_app.register_blueprint(main)

    from lobby.socketio_events import register_socketio_handlers, reset_connections
    reset_connections()
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    from lobby.services.seed import seed_defaults

    @click.command('seed')
    def seed_command():
        """Creates any missing users, rooms and game types."""
        with flask_app.app_context():
            created = seed_defaults()
        for kind, names in created.items():
            print(f"{kind}: {', '.join(names) if names else 'nothing new'}")

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_defaults()
        print('Database has been reset and seeded!')

    flask_app.cli.add_command(seed_command)
    flask_app.cli.add_command(db_reset_command)

    if flask_app.config.get('SEED_ON_STARTUP'):
        # Failing to reach the database here is fatal
        with flask_app.app_context():
            db.create_all()
            presence.purge_stale()
            seed_defaults()

    return flask_app
