"""Persistence for users and their login sessions."""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from filegate.core.errors import ConflictError, InternalError
from filegate.models.user import Session, User

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, email: str) -> User | None:
        try:
            with self._session_factory() as db:
                return db.get(User, email)
        except SQLAlchemyError as exc:
            logger.exception("user_lookup_failed email=%s", email)
            raise InternalError() from exc

    def username_exists(self, username: str) -> bool:
        try:
            with self._session_factory() as db:
                found = db.query(User.username).filter(User.username == username).first()
        except SQLAlchemyError as exc:
            logger.exception("username_lookup_failed username=%s", username)
            raise InternalError() from exc
        return found is not None

    def create(self, email: str, password_hash: str, username: str) -> User:
        user = User(
            email=email,
            password=password_hash,
            username=username,
            created_at=datetime.utcnow(),
        )
        with self._session_factory() as db:
            try:
                db.add(user)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                logger.warning("user_conflict email=%s username=%s", email, username)
                raise ConflictError("email or username already taken") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("user_insert_failed email=%s", email)
                raise InternalError() from exc
        return user

    def all(self) -> list[User]:
        try:
            with self._session_factory() as db:
                return db.query(User).order_by(User.created_at).all()
        except SQLAlchemyError as exc:
            logger.exception("user_list_failed")
            raise InternalError() from exc


class SessionStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create(self, session: Session) -> Session:
        with self._session_factory() as db:
            try:
                db.add(session)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("session_insert_failed email=%s", session.email)
                raise InternalError() from exc
        return session

    def get(self, session_id: str) -> Session | None:
        try:
            with self._session_factory() as db:
                return db.get(Session, session_id)
        except SQLAlchemyError as exc:
            logger.exception("session_lookup_failed")
            raise InternalError() from exc

    def list_for(self, email: str) -> list[Session]:
        try:
            with self._session_factory() as db:
                return (
                    db.query(Session)
                    .filter(Session.email == email)
                    .order_by(Session.created_at)
                    .all()
                )
        except SQLAlchemyError as exc:
            logger.exception("session_list_failed email=%s", email)
            raise InternalError() from exc

    def delete(self, session_id: str) -> None:
        # Deleting a session that does not exist is not an error
        with self._session_factory() as db:
            try:
                db.query(Session).filter(Session.id == session_id).delete()
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("session_delete_failed")
                raise InternalError() from exc

    def all(self) -> list[Session]:
        try:
            with self._session_factory() as db:
                return db.query(Session).order_by(Session.created_at).all()
        except SQLAlchemyError as exc:
            logger.exception("session_list_failed")
            raise InternalError() from exc
