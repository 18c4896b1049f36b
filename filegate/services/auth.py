"""User registration, login sessions and principal resolution."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from werkzeug.security import check_password_hash, generate_password_hash

from filegate.core.errors import (
    AlreadyExistsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from filegate.models.user import Session
from filegate.services.geo import UNKNOWN_LOCATION
from filegate.stores.auth import CredentialStore, SessionStore

logger = logging.getLogger(__name__)

# Only the availability check refuses these; registration does not.
RESERVED_USERNAMES = frozenset({"anon", "admin", "root"})

AVAILABLE = "available"
TAKEN = "taken"
FORBIDDEN = "forbidden"


def generate_session_id() -> str:
    return secrets.token_hex(32)


@dataclass
class Principal:
    session_id: str
    username: str


class AuthService:
    def __init__(
        self,
        users: CredentialStore,
        sessions: SessionStore,
        locate: Callable[[str], str] | None = None,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self._locate = locate or (lambda ip: UNKNOWN_LOCATION)

    def check_username(self, username: str) -> str:
        if not username:
            raise ValidationError("username is required")
        if username in RESERVED_USERNAMES:
            return FORBIDDEN
        if self.users.username_exists(username):
            return TAKEN
        return AVAILABLE

    def register(self, email: str, password: str, username: str) -> None:
        if not email or not password or not username:
            raise ValidationError("email, password and username are required")

        logger.info("register_attempt email=%s", email)
        if self.users.get(email) is not None:
            raise AlreadyExistsError()

        # A duplicate username under a new email is left to the store's
        # unique constraint and comes back as ConflictError.
        self.users.create(email, generate_password_hash(password), username)
        logger.info("user_created email=%s username=%s", email, username)

    def login(self, email: str, password: str, agent: str, ip: str) -> str:
        logger.info("login_attempt email=%s", email)
        user = self.users.get(email)
        if user is None:
            logger.info("login_failed email=%s reason=user_not_found", email)
            raise NotFoundError("user not found")
        if not check_password_hash(user.password, password or ""):
            logger.info("login_failed email=%s reason=invalid_credentials", email)
            raise UnauthorizedError("invalid credentials")

        now = datetime.utcnow()
        session = Session(
            id=generate_session_id(),
            email=user.email,
            location=self._locate(ip),
            agent=agent or "",
            last_seen=now,
            created_at=now,
        )
        self.sessions.create(session)
        logger.info("login_success email=%s location=%s", email, session.location)
        return session.id

    def logout(self, session_id: str) -> None:
        if not session_id:
            raise UnauthorizedError()
        self.sessions.delete(session_id)

    def resolve_principal(self, session_id: str) -> str:
        if not session_id:
            raise UnauthorizedError()
        session = self.sessions.get(session_id)
        if session is None:
            raise UnauthorizedError()
        user = self.users.get(session.email)
        if user is None:
            raise UnauthorizedError()
        return user.username

    def describe(self, session_id: str) -> dict:
        if not session_id:
            raise UnauthorizedError()
        session = self.sessions.get(session_id)
        if session is None:
            raise UnauthorizedError()
        user = self.users.get(session.email)
        if user is None:
            raise UnauthorizedError()

        return {
            "email": user.email,
            "username": user.username,
            "sessions": [
                {
                    "location": s.location,
                    "agent": s.agent,
                    "last_seen": s.last_seen.isoformat(),
                    "created_at": s.created_at.isoformat(),
                    "current": s.id == session_id,
                }
                for s in self.sessions.list_for(user.email)
            ],
        }

    def list_users(self) -> list[dict]:
        return [
            {
                "email": u.email,
                "username": u.username,
                "created_at": u.created_at.isoformat(),
            }
            for u in self.users.all()
        ]

    def list_sessions(self) -> list[dict]:
        return [
            {
                "email": s.email,
                "location": s.location,
                "agent": s.agent,
                "created_at": s.created_at.isoformat(),
            }
            for s in self.sessions.all()
        ]
