from dataclasses import dataclass
from typing import Dict, Optional

from flask import current_app, request
from flask_socketio import ConnectionRefusedError

from lobby import socketio
from lobby.errors import LobbyError
from lobby.services.keepalive import keepalives
from lobby.services.presence import presence
from lobby.sessions import ServerSideSession


@dataclass
class Connection:
    sid: str
    session_id: str
    session: ServerSideSession

    @property
    def user(self) -> Optional[dict]:
        return self.session.get('user')


_sid_to_ctx: Dict[str, Connection] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _session_store():
    return current_app.extensions['server_sessions'].store


def handle_connect(auth=None):
    """Accept the socket only if its cookie names a live HTTP session."""
    sid = _get_sid()
    session_id = request.cookies.get(current_app.config.get('SESSION_COOKIE_NAME', 'session'))
    if not session_id:
        current_app.logger.info(f"[socket-reject] sid={sid} no cookie transmitted")
        raise ConnectionRefusedError('No cookie transmitted.')

    store = _session_store()
    try:
        session = store.get(session_id)
    except Exception as exc:
        current_app.logger.error(f"[socket-reject] sid={sid} session store error: {exc}")
        raise ConnectionRefusedError('Failed to read session information') from exc
    if session is None:
        current_app.logger.info(f"[socket-reject] sid={sid} unknown or expired session")
        raise ConnectionRefusedError('Failed to read session information')

    _sid_to_ctx[sid] = Connection(sid=sid, session_id=session_id, session=session)
    presence.attach(sid)
    keepalives.start(current_app._get_current_object(), store, sid, session_id)
    current_app.logger.info(f"[socket-connect] sid={sid} session={session_id[:8]}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    ctx = _sid_to_ctx.pop(sid, None)
    keepalives.cancel(sid)
    presence.disconnect(sid)
    if ctx:
        current_app.logger.info(f"[socket-disconnect] sid={sid} session={ctx.session_id[:8]} reason={reason}")


def handle_room_load(room_name=None):
    sid = _get_sid()
    ctx = _sid_to_ctx.get(sid)
    try:
        result = presence.join_room(sid, room_name, ctx.user if ctx else None)
    except LobbyError as exc:
        current_app.logger.warning(f"[room-load] sid={sid} room={room_name} {exc.type}: {exc.message}")
        return exc.to_dict(), None
    return None, result.to_dict()


def _echo_sync(event: str):
    # Placeholder persistence protocol: acknowledge with the data as sent
    def handler(method=None, context=None, data=None):
        current_app.logger.info(f"[{event}] sid={_get_sid()} method={method} context={context} data={data}")
        return None, data
    handler.__name__ = f"handle_{event.replace(':', '_')}"
    return handler


handle_model_sync = _echo_sync('model:sync')
handle_collection_sync = _echo_sync('collection:sync')


def reset_connections() -> None:
    _sid_to_ctx.clear()


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('room:load', handle_room_load, namespace=namespace)
    socketio.on_event('model:sync', handle_model_sync, namespace=namespace)
    socketio.on_event('collection:sync', handle_collection_sync, namespace=namespace)
