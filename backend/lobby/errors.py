"""Error taxonomy shared by the HTTP and Socket.IO layers.

Socket handlers never let these escape: they hand ``to_dict()`` back to the
client's ack callback. HTTP handlers render them as JSON.
"""


class LobbyError(Exception):
    severity = 'ERROR'
    type = 'LobbyError'
    status_code = 500

    def __init__(self, message=None, severity=None):
        super().__init__(message or self.type)
        self.message = message or self.type
        if severity is not None:
            self.severity = severity

    def to_dict(self):
        return {'severity': self.severity, 'type': self.type}


class AuthRejected(LobbyError):
    """Missing or unknown session, or no logged-in user on it."""
    severity = 'FATAL'
    type = 'AuthRejected'
    status_code = 401


class RoomNotFound(LobbyError):
    severity = 'FATAL'
    type = 'RoomNotFound'
    status_code = 404


class PersistenceFailure(LobbyError):
    """A store read or write failed."""
    severity = 'ERROR'
    type = 'PersistenceFailure'
    status_code = 503


class ValidationFailure(LobbyError):
    severity = 'WARNING'
    type = 'ValidationFailure'
    status_code = 400
