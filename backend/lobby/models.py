from lobby import db


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class GameType(db.Model):
    __tablename__ = 'game_type'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False, index=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_type_id = db.Column(db.Integer, db.ForeignKey('game_type.id'), nullable=True)
    game_type = db.relationship('GameType')

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.game_type.name if self.game_type else None,
        }


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False, index=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=True)
    game = db.relationship('Game')

    @property
    def channel(self):
        """Socket.IO room that every player of this room is subscribed to."""
        return f"room:{self.name}"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'game': self.game.to_dict() if self.game else None,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    # Rooms are addressed by name so either room storage backend works
    room_name = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    # Socket.IO sid of the connection that owns this player
    sid = db.Column(db.String(64), nullable=False, index=True)
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'room': self.room_name,
        }
