import threading
from typing import Dict

from lobby import socketio


class KeepAlive:
    """Periodically touches one session until cancelled."""

    def __init__(self, app, store, session_id: str, interval: float):
        self.app = app
        self.store = store
        self.session_id = session_id
        self.interval = interval
        self.touches = 0
        self._stopped = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def cancel(self) -> None:
        self._stopped.set()

    def run(self) -> None:
        # Reload then save; save() is what extends expiry in the store
        while not self._stopped.wait(self.interval):
            try:
                session = self.store.get(self.session_id)
                if session is None:
                    self.app.logger.warning(f"[keepalive-miss] session={self.session_id[:8]} no longer in store")
                    continue
                self.store.save(session)
                self.touches += 1
            except Exception as exc:
                self.app.logger.error(f"[keepalive-error] session={self.session_id[:8]} {exc}")


class KeepAliveRegistry:
    """One keep-alive timer per socket sid."""

    def __init__(self):
        self._timers: Dict[str, KeepAlive] = {}
        self._lock = threading.Lock()

    def init_app(self, app):
        self.reset()
        app.extensions['keepalives'] = self

    def start(self, app, store, sid: str, session_id: str) -> KeepAlive:
        interval = float(app.config.get('SESSION_KEEPALIVE_SEC', 60))
        timer = KeepAlive(app, store, session_id, interval)
        with self._lock:
            previous = self._timers.pop(sid, None)
            self._timers[sid] = timer
        if previous is not None:
            previous.cancel()
        if interval > 0:
            socketio.start_background_task(timer.run)
        return timer

    def cancel(self, sid: str) -> bool:
        """Stop the timer for ``sid``. Returns False if there was none."""
        with self._lock:
            timer = self._timers.pop(sid, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def get(self, sid: str):
        return self._timers.get(sid)

    def active_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def reset(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


keepalives = KeepAliveRegistry()
