"""Room presence: who is in which room, over which socket.

A join and a disconnect for the same socket may run on different worker
threads. Both take ``PresenceCoordinator._lock``, so each observes the other
either fully applied or not at all. Broadcasts are sent after the lock is
released.
"""
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from flask import current_app
from flask_socketio import join_room as sio_join_room
from sqlalchemy.exc import SQLAlchemyError

from lobby import db, socketio
from lobby.errors import AuthRejected, LobbyError, PersistenceFailure, RoomNotFound, ValidationFailure
from lobby.models import Player
from lobby.services.rooms import RoomRegistry, rooms as default_registry

PLAYER_DISCONNECTED = 'app:player-disconnected'


@dataclass
class JoinResult:
    """Snapshot of a join, taken while the coordinator lock was held."""
    room: Dict[str, Any]
    player: Dict[str, Any]
    players: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'room': self.room,
            'player': self.player,
            'players': list(self.players),
        }


class PresenceCoordinator:
    def __init__(self, registry: Optional[RoomRegistry] = None):
        self.registry = registry or default_registry
        self.namespace = '/'
        self._live: Set[str] = set()
        self._sid_players: Dict[str, List[int]] = {}
        self._lock = threading.RLock()

    def init_app(self, app, registry: Optional[RoomRegistry] = None):
        if registry is not None:
            self.registry = registry
        self.namespace = app.config.get('SOCKETIO_NAMESPACE', '/')
        with self._lock:
            self._live.clear()
            self._sid_players.clear()
        app.extensions['presence'] = self

    # ---- socket lifecycle ----

    def attach(self, sid: str) -> None:
        with self._lock:
            self._live.add(sid)

    # ---- queries ----

    def players_in(self, room_name: str) -> List[Player]:
        return Player.query.filter_by(room_name=room_name).order_by(Player.id).all()

    # ---- join / leave ----

    def join_room(self, sid: str, room_name: str, user: Optional[dict]) -> JoinResult:
        if not isinstance(room_name, str) or not room_name.strip():
            raise ValidationFailure('room name is required')
        if not user or not user.get('id') or not user.get('username'):
            raise AuthRejected('no user on this session')

        with self._lock:
            if sid not in self._live:
                raise AuthRejected(f"socket {sid} is not connected")

            room = self.registry.find(room_name)
            if room is None:
                raise RoomNotFound(f"no room named '{room_name}'")

            # Rows expire on commit, so payloads are copied out before it
            room_data = room.to_dict()
            channel = room.channel
            try:
                existing = [p.to_dict() for p in self.players_in(room.name)]
                player = Player(name=user['username'], room_name=room.name, user_id=user['id'], sid=sid)
                db.session.add(player)
                db.session.flush()
                player_data = player.to_dict()
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceFailure(f"could not add player to '{room_data['name']}': {exc}") from exc

            self._sid_players.setdefault(sid, []).append(player_data['id'])
            try:
                sio_join_room(channel, sid=sid, namespace=self.namespace)
            except Exception as exc:
                self._sid_players[sid].remove(player_data['id'])
                self._delete_player(sid, player_data['id'])
                raise LobbyError(f"could not subscribe {sid} to {channel}: {exc}") from exc

        current_app.logger.info(f"[join] sid={sid} user={user['username']} room={room_data['name']} player={player_data['id']}")
        return JoinResult(room=room_data, player=player_data, players=existing)

    def _delete_player(self, sid: str, player_id: int) -> Optional[dict]:
        """Delete one player row, returning its public fields if it existed."""
        try:
            player = db.session.get(Player, player_id)
            if player is None:
                return None
            payload = player.to_dict()
            db.session.delete(player)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"[leave-error] sid={sid} player={player_id} {exc}")
            return None
        return payload

    def disconnect(self, sid: str) -> List[dict]:
        """Drop every player owned by ``sid`` and notify their rooms.

        Returns the payloads that were broadcast.
        """
        with self._lock:
            self._live.discard(sid)
            player_ids = self._sid_players.pop(sid, [])

            removed = []
            for player_id in player_ids:
                payload = self._delete_player(sid, player_id)
                if payload is not None:
                    removed.append(payload)

        for payload in removed:
            socketio.emit(
                PLAYER_DISCONNECTED,
                payload,
                to=f"room:{payload['room']}",
                skip_sid=sid,
                namespace=self.namespace,
            )
            current_app.logger.info(f"[leave] sid={sid} player={payload['id']} room={payload['room']}")
        return removed

    def purge_stale(self) -> int:
        """Delete players whose sockets are not connected to this process."""
        with self._lock:
            live = set(self._live)
            try:
                stale = [p for p in Player.query.all() if p.sid not in live]
                for player in stale:
                    db.session.delete(player)
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.error(f"[purge-error] {exc}")
                return 0
        if stale:
            current_app.logger.info(f"[purge] removed {len(stale)} stale players")
        return len(stale)


presence = PresenceCoordinator()
