import threading

import pytest
from sqlalchemy.exc import OperationalError

from conftest import TestConfig, login
from lobby import create_app, db, socketio
from lobby.errors import PersistenceFailure
from lobby.models import GameType, Player, Room, User
from lobby.services.keepalive import keepalives
from lobby.services.rooms import MemoryRoomStorage, RoomRegistry, RoomStorage, rooms
from lobby.services.seed import seed_defaults

SEEDED = ['cerf', 'babbage', 'lovelace', 'dijkstra']


class BrokenStorage(RoomStorage):
    def _fail(self, *args):
        raise OperationalError('SELECT 1', {}, Exception('database is gone'))

    get = add = all = _fail


def test_seeded_rooms_are_found(flask_app):
    for name in SEEDED:
        room = rooms.find(name)
        assert room is not None
        assert room.name == name
    assert rooms.find('atlantis') is None


def test_list_is_ordered_by_name(flask_app):
    assert [r.name for r in rooms.list()] == sorted(SEEDED)


def test_ensure_seeded_is_idempotent(flask_app):
    assert rooms.ensure_seeded(SEEDED) == []
    assert rooms.ensure_seeded(['turing', 'cerf']) == ['turing']
    assert Room.query.count() == 5
    assert Room.query.filter_by(name='cerf').count() == 1


def _seed_concurrently(flask_app, registry, names, workers=2):
    barrier = threading.Barrier(workers)
    results = []

    def _run():
        barrier.wait()
        with flask_app.app_context():
            results.append(registry.ensure_seeded(names))

    threads = [threading.Thread(target=_run) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results


def test_concurrent_seeding_creates_each_room_once(flask_app):
    db.session.commit()
    results = _seed_concurrently(flask_app, rooms, ['hopper', 'knuth'])
    assert sorted(name for created in results for name in created) == ['hopper', 'knuth']
    assert Room.query.filter_by(name='hopper').count() == 1
    assert Room.query.filter_by(name='knuth').count() == 1


def test_concurrent_seeding_in_memory(flask_app):
    registry = RoomRegistry(MemoryRoomStorage())
    results = _seed_concurrently(flask_app, registry, SEEDED, workers=4)
    assert sum(len(created) for created in results) == len(SEEDED)
    assert [r.name for r in registry.list()] == sorted(SEEDED)


def test_memory_registry_find(flask_app):
    registry = RoomRegistry(MemoryRoomStorage())
    registry.ensure_seeded(['cerf'])
    assert registry.find('cerf').to_dict() == {'id': None, 'name': 'cerf', 'game': None}
    assert registry.find('babbage') is None


def test_store_errors_surface_as_persistence_failure(flask_app):
    registry = RoomRegistry(BrokenStorage())
    with pytest.raises(PersistenceFailure):
        registry.find('cerf')
    with pytest.raises(PersistenceFailure):
        registry.list()


def test_seed_errors_are_logged_not_raised(flask_app, caplog):
    registry = RoomRegistry(BrokenStorage())
    assert registry.ensure_seeded(['cerf', 'babbage']) == []
    assert 'could not determine if room' in caplog.text


def test_seed_defaults_is_idempotent(flask_app):
    assert seed_defaults() == {'users': [], 'rooms': [], 'game_types': []}
    assert User.query.count() == 4
    assert GameType.query.filter_by(name='golf').count() == 1


def test_seed_cli_command(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['seed'])
    assert result.exit_code == 0
    assert 'rooms: nothing new' in result.output


def test_unknown_room_storage_is_rejected():
    class BadConfig(TestConfig):
        ROOM_STORAGE = 'redis'

    with pytest.raises(ValueError):
        create_app(BadConfig)


def test_startup_seeding_creates_tables_and_defaults():
    class StartupConfig(TestConfig):
        SEED_ON_STARTUP = True

    application = create_app(StartupConfig)
    with application.app_context():
        try:
            assert sorted(r.name for r in Room.query.all()) == sorted(SEEDED)
            assert User.query.filter_by(username='dan').count() == 1
        finally:
            db.session.remove()
            db.drop_all()


def test_players_join_rooms_held_in_memory():
    class MemoryConfig(TestConfig):
        ROOM_STORAGE = 'memory'

    application = create_app(MemoryConfig)
    with application.app_context():
        db.create_all()
        seed_defaults()
        try:
            http = application.test_client()
            login(http, 'dan')
            sio_client = socketio.test_client(application, flask_test_client=http)
            err, data = sio_client.emit('room:load', 'lovelace', callback=True)
            assert err is None
            assert data['room'] == {'id': None, 'name': 'lovelace', 'game': None}
            assert Room.query.count() == 0
            assert Player.query.filter_by(room_name='lovelace').count() == 1

            sio_client.disconnect()
            assert Player.query.count() == 0
        finally:
            db.session.remove()
            db.drop_all()
            keepalives.reset()
