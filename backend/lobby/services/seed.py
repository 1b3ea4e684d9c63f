from typing import Iterable, List

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lobby import db
from lobby.models import GameType, User
from lobby.services.rooms import rooms


def _ensure_named(model, column: str, values: Iterable[str], label: str) -> List[str]:
    created = []
    for value in values:
        try:
            if model.query.filter_by(**{column: value}).first() is not None:
                continue
            db.session.add(model(**{column: value}))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"[seed-error] could not determine if {label} '{value}' exists: {exc}")
            continue
        created.append(value)
        current_app.logger.info(f"[seed] created {label} {value}")
    return created


def ensure_users(usernames: Iterable[str]) -> List[str]:
    return _ensure_named(User, 'username', usernames, 'user')


def ensure_game_types(names: Iterable[str]) -> List[str]:
    return _ensure_named(GameType, 'name', names, 'game type')


def seed_defaults(config=None) -> dict:
    """Create the configured users, rooms and game types that are missing."""
    config = config or current_app.config
    return {
        'users': ensure_users(config.get('SEED_USERS', [])),
        'rooms': rooms.ensure_seeded(config.get('SEED_ROOMS', [])),
        'game_types': ensure_game_types(config.get('SEED_GAME_TYPES', [])),
    }
