"""
findmyanime.services.auth_service — Account creation & credential checks
=========================================================================

Passwords are hashed with Werkzeug's salted, deliberately slow
``generate_password_hash`` and verified with ``check_password_hash``.
The plaintext never reaches the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from findmyanime.database.engine import get_session
from findmyanime.database.models import User
from findmyanime.validation import USERNAME_MAX_LENGTH, normalize_username

logger = logging.getLogger(__name__)

# Verified against when the username is unknown so that both login failure
# paths spend the same time hashing.
_DUMMY_HASH = generate_password_hash("findmyanime-placeholder-password")


class UsernameTakenError(Exception):
    """Raised when signing up with a username that already exists."""


@dataclass(frozen=True, slots=True)
class SessionUser:
    """The identity attached to an established session."""

    id: int
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


def _credentials(username, password) -> tuple[str, str]:
    name = normalize_username(username)
    if not name or not isinstance(password, str) or not password:
        raise ValueError("Missing fields")
    if len(name) > USERNAME_MAX_LENGTH:
        raise ValueError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    return name, password


def create_user(engine: Engine, username, password) -> SessionUser:
    """Insert a new account and return its identity.

    Raises
    ------
    ValueError
        Missing or malformed username / password.
    UsernameTakenError
        The normalized username already exists.
    """
    name, password = _credentials(username, password)
    password_hash = generate_password_hash(password)

    try:
        with get_session(engine) as session:
            user = User(username=name, password=password_hash)
            session.add(user)
            session.flush()
            identity = SessionUser(id=user.id, username=user.username)
    except IntegrityError as exc:
        raise UsernameTakenError(name) from exc

    logger.info("New account created: %s (id=%d)", identity.username, identity.id)
    return identity


def authenticate(engine: Engine, username, password) -> SessionUser | None:
    """Return the matching identity, or ``None`` for bad credentials."""
    name = normalize_username(username)
    if not isinstance(password, str):
        password = ""

    with get_session(engine) as session:
        user = session.scalars(select(User).where(User.username == name)).first()
        if user is None:
            check_password_hash(_DUMMY_HASH, password)
            return None
        if not check_password_hash(user.password, password):
            return None
        return SessionUser(id=user.id, username=user.username)
