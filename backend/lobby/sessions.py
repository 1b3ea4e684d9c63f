"""Server-side sessions shared by HTTP requests and Socket.IO connections.

The cookie only carries an opaque session id. The payload lives in a
``SessionStore`` so the socket gateway can look up the very same session
from the handshake cookie and keep it alive while the socket is open.
"""
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ServerSideSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid=None, new=False, expires_at=None):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.sid = sid
        self.new = new
        self.expires_at = expires_at
        self.modified = False


class SessionStore:
    """Storage contract for session payloads keyed by session id."""

    def get(self, session_id: str) -> Optional[ServerSideSession]:
        raise NotImplementedError

    def save(self, session: ServerSideSession) -> None:
        raise NotImplementedError

    def touch(self, session_id: str) -> bool:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self, lifetime: timedelta = timedelta(minutes=30)):
        self.lifetime = lifetime
        self._records: Dict[str, Tuple[dict, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, session_id):
        if not session_id:
            return None
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            payload, expires_at = record
            if expires_at <= _now():
                del self._records[session_id]
                return None
            # Callers get their own copy; changes land only through save()
            return ServerSideSession(dict(payload), sid=session_id, expires_at=expires_at)

    def save(self, session):
        expires_at = _now() + self.lifetime
        with self._lock:
            self._records[session.sid] = (dict(session), expires_at)
        session.expires_at = expires_at
        session.new = False
        session.modified = False

    def touch(self, session_id):
        with self._lock:
            record = self._records.get(session_id)
            if record is None or record[1] <= _now():
                self._records.pop(session_id, None)
                return False
            self._records[session_id] = (record[0], _now() + self.lifetime)
            return True

    def delete(self, session_id):
        with self._lock:
            self._records.pop(session_id, None)

    def __len__(self):
        return len(self._records)


class StoreSessionInterface(SessionInterface):
    session_class = ServerSideSession

    def __init__(self, store: SessionStore):
        self.store = store

    @staticmethod
    def generate_sid() -> str:
        return secrets.token_urlsafe(32)

    def open_session(self, app, request):
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            session = self.store.get(sid)
            if session is not None:
                return session
        return self.session_class(sid=self.generate_sid(), new=True)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if not session:
            if not session.new:
                self.store.delete(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        # Every request with a live session extends its expiry
        self.store.save(session)
        response.set_cookie(
            name,
            session.sid,
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )


class ServerSideSessions:
    """Flask extension wiring a ``SessionStore`` into the app."""

    def __init__(self, app=None, store: Optional[SessionStore] = None):
        self.store = store
        if app is not None:
            self.init_app(app, store)

    def init_app(self, app, store: Optional[SessionStore] = None):
        self.store = store or MemorySessionStore(app.permanent_session_lifetime)
        app.session_interface = StoreSessionInterface(self.store)
        app.extensions['server_sessions'] = self
