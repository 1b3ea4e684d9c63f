import threading
from typing import Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lobby import db
from lobby.errors import PersistenceFailure
from lobby.models import Room


class RoomStorage:
    """Where rooms live. ``add`` returns False when the room already exists."""

    def get(self, name: str) -> Optional[Room]:
        raise NotImplementedError

    def add(self, name: str) -> bool:
        raise NotImplementedError

    def all(self) -> List[Room]:
        raise NotImplementedError


class SqlRoomStorage(RoomStorage):
    def get(self, name):
        return Room.query.filter_by(name=name).first()

    def add(self, name):
        if self.get(name) is not None:
            return False
        db.session.add(Room(name=name))
        try:
            db.session.commit()
        except IntegrityError:
            # Another process inserted the same name first
            db.session.rollback()
            return False
        return True

    def all(self):
        return Room.query.order_by(Room.name).all()


class MemoryRoomStorage(RoomStorage):
    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def get(self, name):
        return self._rooms.get(name)

    def add(self, name):
        with self._lock:
            if name in self._rooms:
                return False
            self._rooms[name] = Room(name=name)
            return True

    def all(self):
        return [self._rooms[name] for name in sorted(self._rooms)]


STORAGE_BACKENDS = {
    'sql': SqlRoomStorage,
    'memory': MemoryRoomStorage,
}


class RoomRegistry:
    def __init__(self, storage: Optional[RoomStorage] = None):
        self.storage = storage or SqlRoomStorage()
        self._seed_lock = threading.Lock()

    def init_app(self, app, storage: Optional[RoomStorage] = None):
        if storage is None:
            kind = app.config.get('ROOM_STORAGE', 'sql')
            try:
                storage = STORAGE_BACKENDS[kind]()
            except KeyError:
                raise ValueError(f"Unknown ROOM_STORAGE '{kind}'") from None
        self.storage = storage
        app.extensions['room_registry'] = self

    def find(self, name: str) -> Optional[Room]:
        try:
            return self.storage.get(name)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure(f"Could not load room '{name}': {exc}") from exc

    def list(self) -> List[Room]:
        try:
            return self.storage.all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure(f"Failed to retrieve rooms: {exc}") from exc

    def ensure_seeded(self, names: Iterable[str]) -> List[str]:
        """Create any missing rooms, returning the names actually created."""
        created = []
        with self._seed_lock:
            for name in names:
                try:
                    if self.storage.add(name):
                        created.append(name)
                        current_app.logger.info(f"[seed] created room {name}")
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    current_app.logger.error(f"[seed-error] could not determine if room '{name}' exists: {exc}")
        return created


rooms = RoomRegistry()
